"""Match the claims of a credential query against one held credential."""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from .claims_path import ABSENT, resolve_claim
from .models.credential import HeldCredential, claim_value_to_json
from .models.dcql_query import ClaimsQuery, CredentialQuery
from .models.response import CredentialResponseMatch

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ClaimValues = List[Tuple[ClaimsQuery, Any]]


def first_match(
    alternatives: Iterable[T], attempt: Callable[[T], Optional[R]]
) -> Optional[R]:
    """Return the result of the first alternative that does not yield None.

    Later alternatives are not attempted once one succeeds.
    """
    for alternative in alternatives:
        result = attempt(alternative)
        if result is not None:
            return result
    return None


def json_equal(left: Any, right: Any) -> bool:
    """Compare two JSON values.

    Unlike ``==``, booleans never equal numbers.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(
            json_equal(left[key], right[key]) for key in left
        )
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            json_equal(a, b) for a, b in zip(left, right)
        )
    return type(left) is type(right) and left == right


def value_matches(value: Any, values: Optional[List[Any]]) -> bool:
    """Check a resolved JSON value against the accepted values of a claim."""
    if values is None:
        return True
    return any(json_equal(value, accepted) for accepted in values)


def match_claims(
    credential: HeldCredential, claims: Iterable[Optional[ClaimsQuery]]
) -> Optional[ClaimValues]:
    """Resolve every claim in order; None if any is missing or rejected."""
    claim_values = []
    for claim in claims:
        if claim is None:
            return None
        value = resolve_claim(credential, claim.path)
        if value is ABSENT:
            LOGGER.debug(
                "Claim %s not found in credential %s",
                claim.path,
                credential.credential_id,
            )
            return None
        if not value_matches(claim_value_to_json(credential, value), claim.values):
            LOGGER.debug(
                "Claim %s of credential %s not among accepted values",
                claim.path,
                credential.credential_id,
            )
            return None
        claim_values.append((claim, value))
    return claim_values


def match_credential(
    credential_query: CredentialQuery, credential: HeldCredential
) -> Optional[CredentialResponseMatch]:
    """Match a credential query against a held credential.

    Without claim sets every claim must be satisfied. With claim sets the
    first satisfied set, in the order given, decides the disclosed claims.
    """
    if not credential_query.claim_sets:
        claim_values = match_claims(credential, credential_query.claims)
    else:
        claim_values = first_match(
            credential_query.claim_sets,
            lambda claim_set: match_claims(
                credential,
                (credential_query.claim_by_id(claim_id) for claim_id in claim_set),
            ),
        )

    if claim_values is None:
        return None
    return CredentialResponseMatch(credential=credential, claim_values=claim_values)
