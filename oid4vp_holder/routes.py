"""OID4VP holder admin routes."""

import logging

from acapy_agent.admin.request_context import AdminRequestContext
from acapy_agent.messaging.models.openapi import OpenAPISchema
from acapy_agent.storage.error import StorageError
from aiohttp import web
from aiohttp_apispec import docs, request_schema, response_schema
from marshmallow import fields

from .config import Config, ConfigError
from .dcql import DCQLQueryEvaluator
from .error import DCQLSelectionError, MalformedRequest
from .models.dcql_query import DCQLQuery
from .store import StorageCredentialStore

LOGGER = logging.getLogger(__name__)

VP_SPEC_URI = "https://openid.net/specs/openid-4-verifiable-presentations-1_0.html"


class DCQLMatchRequestSchema(OpenAPISchema):
    """Request schema for matching a DCQL query against held credentials."""

    dcql_query = fields.Dict(
        required=True,
        metadata={
            "description": "DCQL query received from the verifier",
            "example": {
                "credentials": [
                    {
                        "id": "pid",
                        "format": "dc+sd-jwt",
                        "meta": {
                            "vct_values": [
                                "https://credentials.example.com/identity_credential"
                            ]
                        },
                        "claims": [{"path": ["given_name"]}],
                    }
                ]
            },
        },
    )


class DCQLMatchResponseSchema(OpenAPISchema):
    """Response schema for matching a DCQL query against held credentials."""

    responses = fields.List(
        fields.Dict(),
        required=True,
        metadata={
            "description": "Candidate credentials for each selected credential query",
        },
    )


@docs(
    tags=["oid4vp-holder"],
    summary="Find held credentials that satisfy a DCQL query",
)
@request_schema(DCQLMatchRequestSchema())
@response_schema(DCQLMatchResponseSchema())
async def match_dcql_query(request: web.Request):
    """Request handler for matching a DCQL query."""

    context: AdminRequestContext = request["context"]
    body = await request.json()
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(reason="Request body must be a JSON object")

    try:
        query = DCQLQuery.from_json(body.get("dcql_query"))
    except MalformedRequest as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    try:
        config = context.inject_or(Config) or Config.from_settings(context.settings)
    except ConfigError as err:
        raise web.HTTPInternalServerError(reason=str(err)) from err

    try:
        async with context.profile.session() as session:
            store = StorageCredentialStore(session, record_type=config.record_type)
            responses = await DCQLQueryEvaluator(query).execute(store)
    except DCQLSelectionError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err
    except StorageError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    LOGGER.info("DCQL query selected %d credential response(s)", len(responses))
    return web.json_response(
        {"responses": [response.serialize() for response in responses]}
    )


async def register(app: web.Application):
    """Register routes."""
    app.add_routes([web.post("/oid4vp/holder/dcql/match", match_dcql_query)])


def post_process_routes(app: web.Application):
    """Amend swagger API."""

    # Add top-level tags description
    if "tags" not in app._state["swagger_dict"]:
        app._state["swagger_dict"]["tags"] = []
    app._state["swagger_dict"]["tags"].append(
        {
            "name": "oid4vp-holder",
            "description": "OpenID for VP, holder side credential selection",
            "externalDocs": {"description": "Specification", "url": VP_SPEC_URI},
        }
    )
