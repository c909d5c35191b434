"""DCQL query models.

OpenID4VP 1.0 § 6: Digital Credentials Query Language
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#section-6
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Union

from acapy_agent.messaging.models.base import (
    BaseModel,
    BaseModelError,
    BaseModelSchema,
)
from marshmallow import EXCLUDE, ValidationError, fields, validate, validates_schema

from ..error import MalformedRequest
from .credential import MDOC_FORMAT, SD_JWT_VC_FORMATS

ClaimsPath = List[Union[str, int, None]]
ClaimSet = List[str]
CredentialSetOption = List[str]


class ClaimsPathComponent(fields.Field):
    """A claims path component.

    A string selects a key of an object, a non-negative integer selects an
    element of an array and null selects all elements of an array.
    """

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValidationError(
                "Claims path component must be a string, integer or null"
            )
        if isinstance(value, int) and value < 0:
            raise ValidationError("Claims path index must be non-negative")
        return value


class JSONBool(fields.Bool):
    """A boolean that only accepts JSON true and false."""

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, bool):
            raise ValidationError("Not a valid JSON boolean")
        return value


class ClaimsQuery(BaseModel):
    """A claim requested from a credential."""

    class Meta:
        """ClaimsQuery metadata."""

        schema_class = "ClaimsQuerySchema"

    def __init__(
        self,
        *,
        id: Optional[str] = None,
        path: Optional[ClaimsPath] = None,
        values: Optional[List[Any]] = None,
        intent_to_retain: Optional[bool] = None,
    ):
        """Initialize a ClaimsQuery.

        Args:
            id (Optional[str]): Identifier of the claim, required when the
                claim is referenced from a claim set.
            path (ClaimsPath): Claims path pointer. For ISO mdoc this is
                ``[namespace, element_identifier]``.
            values (Optional[List[Any]]): Acceptable values; any value is
                accepted when omitted.
            intent_to_retain (Optional[bool]): ISO mdoc only; the verifier
                intends to retain the data element.
        """
        super().__init__()
        self.id = id
        self.path = list(path or [])
        self.values = values
        self.intent_to_retain = intent_to_retain


class ClaimsQuerySchema(BaseModelSchema):
    """ClaimsQuery schema."""

    class Meta:
        """ClaimsQuerySchema metadata."""

        model_class = ClaimsQuery
        unknown = EXCLUDE

    id = fields.Str(
        required=False,
        validate=validate.Length(min=1),
        metadata={"description": "Claim identifier", "example": "given_name"},
    )
    path = fields.List(
        ClaimsPathComponent(allow_none=True),
        required=True,
        validate=validate.Length(min=1),
        metadata={
            "description": "Claims path pointer",
            "example": ["address", "street_address"],
        },
    )
    values = fields.List(
        fields.Raw(),
        required=False,
        validate=validate.Length(min=1),
        metadata={"description": "Acceptable values for the claim"},
    )
    intent_to_retain = JSONBool(
        required=False,
        metadata={"description": "ISO mdoc only; verifier will retain the element"},
    )


class CredentialMeta(BaseModel):
    """Format specific constraints on the requested credential."""

    class Meta:
        """CredentialMeta metadata."""

        schema_class = "CredentialMetaSchema"

    def __init__(
        self,
        *,
        doctype_value: Optional[str] = None,
        vct_values: Optional[List[str]] = None,
    ):
        """Initialize CredentialMeta."""
        super().__init__()
        self.doctype_value = doctype_value
        self.vct_values = vct_values


class CredentialMetaSchema(BaseModelSchema):
    """CredentialMeta schema."""

    class Meta:
        """CredentialMetaSchema metadata."""

        model_class = CredentialMeta
        unknown = EXCLUDE

    doctype_value = fields.Str(
        required=False,
        metadata={"description": "ISO mdoc doctype", "example": "org.iso.18013.5.1.mDL"},
    )
    vct_values = fields.List(
        fields.Str(),
        required=False,
        metadata={"description": "Acceptable SD-JWT VC types"},
    )


class CredentialQuery(BaseModel):
    """A request for one credential and the claims wanted from it."""

    class Meta:
        """CredentialQuery metadata."""

        schema_class = "CredentialQuerySchema"

    def __init__(
        self,
        *,
        credential_query_id: str,
        format: str,
        meta: Optional[CredentialMeta] = None,
        claims: Optional[List[ClaimsQuery]] = None,
        claim_sets: Optional[List[ClaimSet]] = None,
    ):
        """Initialize a CredentialQuery."""
        super().__init__()
        self.credential_query_id = credential_query_id
        self.format = format
        self.meta = meta
        self.claims = list(claims or [])
        self.claim_sets = [list(claim_set) for claim_set in claim_sets or []]
        self._claims_by_id: Dict[str, ClaimsQuery] = {
            claim.id: claim for claim in self.claims if claim.id is not None
        }

    def claim_by_id(self, claim_id: str) -> Optional[ClaimsQuery]:
        """Return the claim with the given identifier, if any."""
        return self._claims_by_id.get(claim_id)


class CredentialQuerySchema(BaseModelSchema):
    """CredentialQuery schema."""

    class Meta:
        """CredentialQuerySchema metadata."""

        model_class = CredentialQuery
        unknown = EXCLUDE

    credential_query_id = fields.Str(
        required=True,
        data_key="id",
        validate=validate.Length(min=1),
        metadata={"description": "Credential query identifier", "example": "pid"},
    )
    format = fields.Str(
        required=True,
        metadata={"description": "Requested credential format", "example": "dc+sd-jwt"},
    )
    meta = fields.Nested(CredentialMetaSchema, required=False)
    claims = fields.List(
        fields.Nested(ClaimsQuerySchema),
        required=True,
        validate=validate.Length(min=1),
    )
    claim_sets = fields.List(
        fields.List(fields.Str(), validate=validate.Length(min=1)),
        required=False,
        metadata={"description": "Alternative claim combinations, most preferred first"},
    )

    @validates_schema
    def validate_fields(self, data, **kwargs):
        """Check format specific metadata and claim identifiers."""
        format = data.get("format")
        meta = data.get("meta")
        if format == MDOC_FORMAT and (meta is None or not meta.doctype_value):
            raise ValidationError(
                f"meta.doctype_value is required for format {format}", "meta"
            )
        if format in SD_JWT_VC_FORMATS and (meta is None or not meta.vct_values):
            raise ValidationError(
                f"meta.vct_values is required for format {format}", "meta"
            )

        seen = set()
        for claim in data.get("claims") or []:
            if claim.id is None:
                continue
            if claim.id in seen:
                raise ValidationError(f"Duplicate claim id {claim.id}", "claims")
            seen.add(claim.id)


class CredentialSetQuery(BaseModel):
    """A set of alternative credential combinations."""

    class Meta:
        """CredentialSetQuery metadata."""

        schema_class = "CredentialSetQuerySchema"

    def __init__(
        self,
        *,
        options: Optional[List[CredentialSetOption]] = None,
        required: bool = True,
        purpose: Any = None,
    ):
        """Initialize a CredentialSetQuery."""
        super().__init__()
        self.options = [list(option) for option in options or []]
        self.required = required
        self.purpose = purpose


class CredentialSetQuerySchema(BaseModelSchema):
    """CredentialSetQuery schema."""

    class Meta:
        """CredentialSetQuerySchema metadata."""

        model_class = CredentialSetQuery
        unknown = EXCLUDE

    options = fields.List(
        fields.List(fields.Str(), validate=validate.Length(min=1)),
        required=True,
        validate=validate.Length(min=1),
        metadata={
            "description": "Credential query ids that together satisfy the set",
            "example": [["pid"], ["pid_reduced_1", "pid_reduced_2"]],
        },
    )
    required = JSONBool(load_default=True)
    purpose = fields.Raw(
        required=False,
        allow_none=True,
        metadata={"description": "Why the verifier is asking, for display only"},
    )


class DCQLQuery(BaseModel):
    """A DCQL query."""

    class Meta:
        """DCQLQuery metadata."""

        schema_class = "DCQLQuerySchema"

    def __init__(
        self,
        *,
        credentials: List[CredentialQuery],
        credential_sets: Optional[List[CredentialSetQuery]] = None,
    ):
        """Initialize a DCQLQuery."""
        super().__init__()
        self.credentials = list(credentials)
        self.credential_sets = list(credential_sets or [])

    @classmethod
    def from_json(cls, payload: Union[str, bytes, Mapping[str, Any]]) -> "DCQLQuery":
        """Build a query from a verifier's request payload."""
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as err:
                raise MalformedRequest("DCQL query is not valid JSON") from err

        if not isinstance(payload, Mapping):
            raise MalformedRequest("DCQL query must be a JSON object")

        try:
            return cls.deserialize(dict(payload))
        except (BaseModelError, ValidationError) as err:
            cause = err if isinstance(err, ValidationError) else err.__cause__
            detail = cause.messages if isinstance(cause, ValidationError) else err
            raise MalformedRequest(f"Invalid DCQL query: {detail}") from err


class DCQLQuerySchema(BaseModelSchema):
    """DCQLQuery schema."""

    class Meta:
        """DCQLQuerySchema metadata."""

        model_class = DCQLQuery
        unknown = EXCLUDE

    credentials = fields.List(
        fields.Nested(CredentialQuerySchema),
        required=True,
        validate=validate.Length(min=1),
        metadata={"description": "A list of Credential Queries."},
    )
    credential_sets = fields.List(
        fields.Nested(CredentialSetQuerySchema),
        required=False,
        metadata={"description": "A list of Credential Set Queries."},
    )

    @validates_schema
    def validate_credential_ids(self, data, **kwargs):
        """Credential query identifiers are unique within a query."""
        seen = set()
        for credential in data.get("credentials") or []:
            if credential.credential_query_id in seen:
                raise ValidationError(
                    "Duplicate credential query id "
                    f"{credential.credential_query_id}",
                    "credentials",
                )
            seen.add(credential.credential_query_id)
