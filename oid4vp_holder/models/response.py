"""Results of evaluating a DCQL query against held credentials."""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .credential import HeldCredential, claim_value_to_json
from .dcql_query import ClaimsQuery, CredentialQuery, CredentialSetQuery


@dataclass(frozen=True)
class CredentialResponseMatch:
    """A held credential that satisfies a credential query.

    ``claim_values`` pairs each requested claim with the value resolved from
    the credential, in the order the claims were requested.
    """

    credential: HeldCredential
    claim_values: List[Tuple[ClaimsQuery, Any]] = field(default_factory=list)

    def serialize(self) -> dict:
        """Return a JSON safe representation of the match."""
        claims = []
        for claim, value in self.claim_values:
            entry = {
                "path": claim.path,
                "value": claim_value_to_json(self.credential, value),
            }
            if claim.id is not None:
                entry["id"] = claim.id
            if claim.intent_to_retain is not None:
                entry["intent_to_retain"] = claim.intent_to_retain
            claims.append(entry)

        return {
            "credential_id": self.credential.credential_id,
            "format": self.credential.format,
            "display_name": self.credential.display_name,
            "claims": claims,
        }


@dataclass(frozen=True)
class CredentialResponse:
    """The candidate credentials for one credential query.

    The holder presents exactly one of ``matches``; several entries mean the
    wallet holds more than one suitable credential and the user may choose.
    """

    credential_query: CredentialQuery
    credential_set_query: Optional[CredentialSetQuery]
    matches: List[CredentialResponseMatch] = field(default_factory=list)

    @property
    def credential_query_id(self) -> str:
        """Accessor for the credential query identifier."""
        return self.credential_query.credential_query_id

    def serialize(self) -> dict:
        """Return a JSON safe representation of the response."""
        credential_set = None
        if self.credential_set_query is not None:
            credential_set = {
                "purpose": self.credential_set_query.purpose,
                "required": self.credential_set_query.required,
            }
        return {
            "credential_query_id": self.credential_query_id,
            "credential_set": credential_set,
            "matches": [match.serialize() for match in self.matches],
        }
