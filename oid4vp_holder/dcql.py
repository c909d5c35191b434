"""Digital Credentials Query Language evaluator for held credentials.

OpenID4VP 1.0 § 6.4.2: Selecting Claims and Credentials
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#section-6.4.2
"""

import logging
from typing import Any, List, Mapping

from .error import NoMatchForQuery, UnsatisfiedRequiredSet
from .matching import first_match, match_credential
from .models.credential import (
    MDOC_FORMAT,
    SD_JWT_VC_FORMATS,
    HeldCredential,
    MdocCredential,
    SdJwtVcCredential,
)
from .models.dcql_query import CredentialQuery, CredentialSetOption, DCQLQuery
from .models.response import CredentialResponse
from .store import CredentialStore

LOGGER = logging.getLogger(__name__)


def satisfies_meta(
    credential_query: CredentialQuery, credential: HeldCredential
) -> bool:
    """Check the format and format specific metadata of a held credential."""
    if isinstance(credential, MdocCredential):
        return (
            credential_query.format == MDOC_FORMAT
            and credential_query.meta is not None
            and credential.doctype == credential_query.meta.doctype_value
        )
    if isinstance(credential, SdJwtVcCredential):
        return (
            credential_query.format in SD_JWT_VC_FORMATS
            and credential_query.meta is not None
            and credential.vct in (credential_query.meta.vct_values or [])
        )
    raise TypeError(f"Unsupported credential type {type(credential).__name__}")


def option_satisfied(
    option: CredentialSetOption, responses: Mapping[str, CredentialResponse]
) -> bool:
    """Every credential query in the option has at least one match."""
    for credential_query_id in option:
        response = responses.get(credential_query_id)
        if response is None or not response.matches:
            return False
    return True


def select_responses(
    query: DCQLQuery, responses: List[CredentialResponse]
) -> List[CredentialResponse]:
    """Apply credential set logic to the per credential query responses."""
    if not query.credential_sets:
        # Without credential sets, every credential query is requested
        for response in responses:
            if not response.matches:
                LOGGER.warning(
                    "No held credential matches credential query %s",
                    response.credential_query_id,
                )
                raise NoMatchForQuery(response.credential_query_id)
        return list(responses)

    by_id = {response.credential_query_id: response for response in responses}
    selected = []
    for credential_set in query.credential_sets:
        option = first_match(
            credential_set.options,
            lambda option: option if option_satisfied(option, by_id) else None,
        )
        if option is None:
            if credential_set.required:
                LOGGER.warning(
                    "No option of required credential set %r can be satisfied",
                    credential_set.purpose,
                )
                raise UnsatisfiedRequiredSet(credential_set.purpose)
            LOGGER.info(
                "Skipping optional credential set %r; no option can be satisfied",
                credential_set.purpose,
            )
            continue

        for credential_query_id in option:
            response = by_id[credential_query_id]
            selected.append(
                CredentialResponse(
                    credential_query=response.credential_query,
                    credential_set_query=credential_set,
                    matches=response.matches,
                )
            )
    return selected


class DCQLQueryEvaluator:
    """Evaluate a query against the credentials held by the wallet."""

    def __init__(self, query: DCQLQuery):
        """Init the evaluator."""
        self.query: DCQLQuery = query

    @classmethod
    def compile(
        cls, query: Mapping[str, Any] | str | DCQLQuery
    ) -> "DCQLQueryEvaluator":
        """Compile an evaluator."""
        if not isinstance(query, DCQLQuery):
            query = DCQLQuery.from_json(query)

        return cls(query)

    async def evaluate_credential_query(
        self, credential_query: CredentialQuery, store: CredentialStore
    ) -> CredentialResponse:
        """Collect the held credentials that satisfy one credential query."""
        matches = []
        for credential_id in await store.list_credential_ids():
            credential = await store.get_credential(credential_id)
            if credential is None or not satisfies_meta(credential_query, credential):
                continue

            match = match_credential(credential_query, credential)
            if match is not None:
                matches.append(match)

        LOGGER.info(
            "Credential query %s matched %d held credential(s)",
            credential_query.credential_query_id,
            len(matches),
        )
        return CredentialResponse(
            credential_query=credential_query,
            credential_set_query=None,
            matches=matches,
        )

    async def execute(self, store: CredentialStore) -> List[CredentialResponse]:
        """Select the held credentials that satisfy the query.

        Raises:
            NoMatchForQuery: no credential sets were given and a credential
                query has no match.
            UnsatisfiedRequiredSet: a required credential set has no
                satisfiable option.
        """
        responses = []
        for credential_query in self.query.credentials:
            responses.append(
                await self.evaluate_credential_query(credential_query, store)
            )
        return select_responses(self.query, responses)
