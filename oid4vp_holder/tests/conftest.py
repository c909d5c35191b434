"""Fixtures for OID4VP holder tests."""

from typing import Dict, List, Optional

import pytest

from oid4vp_holder.models.credential import (
    HeldCredential,
    MdocCredential,
    SdJwtVcCredential,
)

MDL_DOCTYPE = "org.iso.18013.5.1.mDL"
MDL_NAMESPACE = "org.iso.18013.5.1"
PID_VCT = "https://credentials.example.com/identity_credential"


class InMemoryCredentialStore:
    """Credential store over a list of held credentials, in insertion order."""

    def __init__(self, credentials: Optional[List[HeldCredential]] = None):
        self.credentials: Dict[str, HeldCredential] = {}
        self.list_calls = 0
        for credential in credentials or []:
            self.add(credential)

    def add(self, credential: HeldCredential):
        self.credentials[credential.credential_id] = credential

    def remove(self, credential_id: str):
        del self.credentials[credential_id]

    async def list_credential_ids(self) -> List[str]:
        self.list_calls += 1
        return list(self.credentials)

    async def get_credential(self, credential_id: str) -> Optional[HeldCredential]:
        return self.credentials.get(credential_id)


@pytest.fixture
def mdl_erika():
    return MdocCredential(
        credential_id="mdl-erika",
        doctype=MDL_DOCTYPE,
        display_name="my-mDL-Erika",
        namespaces={
            MDL_NAMESPACE: {
                "given_name": "Erika",
                "family_name": "Mustermann",
                "resident_address": "Sample Street 123",
                "age_over_18": True,
                "age_over_21": True,
            }
        },
    )


@pytest.fixture
def pid_erika():
    return SdJwtVcCredential(
        credential_id="pid-erika",
        vct=PID_VCT,
        display_name="my-PID-Erika",
        claims={
            "given_name": "Erika",
            "family_name": "Mustermann",
            "address": {
                "country": "US",
                "state": "CA",
                "postal_code": 90210,
                "street_address": "Sample Street 123",
                "house_number": 123,
            },
            "nationalities": ["German", "American"],
            "degrees": [
                {
                    "type": "Bachelor of Science",
                    "university": "University of Betelgeuse",
                },
                {
                    "type": "Master of Science",
                    "university": "University of Betelgeuse",
                },
            ],
        },
    )


@pytest.fixture
def store(mdl_erika, pid_erika):
    return InMemoryCredentialStore([mdl_erika, pid_erika])


@pytest.fixture
def store_factory():
    return InMemoryCredentialStore
