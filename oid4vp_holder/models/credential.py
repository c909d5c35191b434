"""Held credentials as seen by the DCQL evaluator.

A held credential is one of a closed set of variants. Code that needs to
treat the variants differently dispatches with ``isinstance`` and raises
``TypeError`` for anything else, so adding a format is a visible change.
"""

import base64
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Mapping, Optional, Union

from cbor2 import CBORTag

MDOC_FORMAT = "mso_mdoc"
SD_JWT_VC_FORMAT = "dc+sd-jwt"
# Pre OpenID4VP 1.0 drafts used the vc+ media type
SD_JWT_VC_FORMATS = (SD_JWT_VC_FORMAT, "vc+sd-jwt")

# RFC 8949 epoch based date/time
CBOR_TAG_EPOCH_DATETIME = 1


@dataclass(frozen=True)
class MdocCredential:
    """An ISO mdoc held by the wallet.

    ``namespaces`` maps a namespace to its data elements, with element values
    already CBOR decoded.
    """

    format: ClassVar[str] = MDOC_FORMAT

    credential_id: str
    doctype: str
    namespaces: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    display_name: Optional[str] = None


@dataclass(frozen=True)
class SdJwtVcCredential:
    """An SD-JWT VC held by the wallet, with all disclosures applied to ``claims``.

    ``format`` keeps the media type the credential was stored with, so a
    legacy ``vc+sd-jwt`` credential is written back and reported unchanged.
    """

    credential_id: str
    vct: str
    claims: Mapping[str, Any] = field(default_factory=dict)
    display_name: Optional[str] = None
    format: str = SD_JWT_VC_FORMAT

    def __post_init__(self):
        if self.format not in SD_JWT_VC_FORMATS:
            raise ValueError(f"Unsupported SD-JWT VC format {self.format}")


HeldCredential = Union[MdocCredential, SdJwtVcCredential]


def mdoc_value_to_json(value: Any) -> Any:
    """Return the JSON equivalent of a CBOR decoded mdoc element value."""
    if isinstance(value, CBORTag):
        if value.tag == CBOR_TAG_EPOCH_DATETIME and isinstance(value.value, (int, float)):
            return mdoc_value_to_json(
                datetime.fromtimestamp(value.value, tz=timezone.utc)
            )
        return mdoc_value_to_json(value.value)
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.urlsafe_b64encode(bytes(value)).rstrip(b"=").decode()
    if isinstance(value, Mapping):
        return {str(key): mdoc_value_to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [mdoc_value_to_json(item) for item in value]
    return value


def claim_value_to_json(credential: HeldCredential, value: Any) -> Any:
    """Return the JSON view of a value resolved from ``credential``."""
    if isinstance(credential, MdocCredential):
        return mdoc_value_to_json(value)
    if isinstance(credential, SdJwtVcCredential):
        return value
    raise TypeError(f"Unsupported credential type {type(credential).__name__}")
