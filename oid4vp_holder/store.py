"""Access to the credentials held by the wallet.

Held credentials are kept as storage records of a configurable type. The
record value is JSON:

    {
        "format": "mso_mdoc",
        "display_name": "My mDL",
        "doctype": "org.iso.18013.5.1.mDL",
        "namespaces": {"org.iso.18013.5.1": {"given_name": "<hex CBOR>"}}
    }

or

    {
        "format": "dc+sd-jwt",
        "display_name": "My PID",
        "vct": "https://credentials.example.com/identity_credential",
        "claims": {"given_name": "Erika"}
    }
"""

import json
import logging
from typing import Any, List, Mapping, Optional, Protocol

import cbor2
from acapy_agent.core.profile import ProfileSession
from acapy_agent.storage.base import BaseStorage, StorageRecord
from acapy_agent.storage.error import StorageNotFoundError

from .config import DEFAULT_RECORD_TYPE
from .models.credential import (
    MDOC_FORMAT,
    SD_JWT_VC_FORMATS,
    HeldCredential,
    MdocCredential,
    SdJwtVcCredential,
)

LOGGER = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Source of held credentials for DCQL evaluation."""

    async def list_credential_ids(self) -> List[str]:
        """Return the identifiers of all held credentials."""
        ...

    async def get_credential(self, credential_id: str) -> Optional[HeldCredential]:
        """Return a held credential, or None if it no longer exists."""
        ...


def credential_from_record(
    credential_id: str, value: Mapping[str, Any]
) -> HeldCredential:
    """Decode the value of a held credential record."""
    format = value["format"]
    if format == MDOC_FORMAT:
        namespaces = {
            namespace: {
                element: cbor2.loads(bytes.fromhex(encoded))
                for element, encoded in elements.items()
            }
            for namespace, elements in value["namespaces"].items()
        }
        return MdocCredential(
            credential_id=credential_id,
            doctype=value["doctype"],
            namespaces=namespaces,
            display_name=value.get("display_name"),
        )
    if format in SD_JWT_VC_FORMATS:
        return SdJwtVcCredential(
            credential_id=credential_id,
            vct=value["vct"],
            claims=value["claims"],
            display_name=value.get("display_name"),
            format=format,
        )
    raise ValueError(f"Unsupported held credential format {format}")


def record_for_credential(
    credential: HeldCredential, record_type: str
) -> StorageRecord:
    """Encode a held credential as a storage record."""
    if isinstance(credential, MdocCredential):
        value = {
            "format": MDOC_FORMAT,
            "doctype": credential.doctype,
            "namespaces": {
                namespace: {
                    element: cbor2.dumps(item).hex()
                    for element, item in elements.items()
                }
                for namespace, elements in credential.namespaces.items()
            },
        }
        tags = {"format": MDOC_FORMAT, "doctype": credential.doctype}
    elif isinstance(credential, SdJwtVcCredential):
        value = {
            "format": credential.format,
            "vct": credential.vct,
            "claims": dict(credential.claims),
        }
        tags = {"format": credential.format, "vct": credential.vct}
    else:
        raise TypeError(f"Unsupported credential type {type(credential).__name__}")

    if credential.display_name is not None:
        value["display_name"] = credential.display_name
    return StorageRecord(
        type=record_type,
        id=credential.credential_id,
        value=json.dumps(value),
        tags=tags,
    )


class StorageCredentialStore:
    """Credential store backed by the storage of a profile session."""

    def __init__(
        self, session: ProfileSession, record_type: str = DEFAULT_RECORD_TYPE
    ):
        """Initialize the store."""
        self._session = session
        self.record_type = record_type

    @property
    def storage(self) -> BaseStorage:
        """Accessor for the session storage."""
        return self._session.inject(BaseStorage)

    async def list_credential_ids(self) -> List[str]:
        """Return the identifiers of all held credentials."""
        records = await self.storage.find_all_records(type_filter=self.record_type)
        return [record.id for record in records]

    async def get_credential(self, credential_id: str) -> Optional[HeldCredential]:
        """Return a held credential, or None if missing or undecodable."""
        try:
            record = await self.storage.get_record(self.record_type, credential_id)
        except StorageNotFoundError:
            LOGGER.debug("Held credential %s no longer exists", credential_id)
            return None

        try:
            return credential_from_record(record.id, json.loads(record.value))
        except (ValueError, KeyError, TypeError, AttributeError) as err:
            LOGGER.warning(
                "Skipping undecodable held credential %s: %s", record.id, err
            )
            return None

    async def add_credential(self, credential: HeldCredential) -> None:
        """Store a held credential."""
        record = record_for_credential(credential, self.record_type)
        await self.storage.add_record(record)
        LOGGER.info("Stored held %s credential %s", credential.format, record.id)
