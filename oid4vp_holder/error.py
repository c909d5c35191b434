"""DCQL evaluation errors."""

from typing import Any

from acapy_agent.core.error import BaseError


class DCQLError(BaseError):
    """Base class for DCQL errors."""


class MalformedRequest(DCQLError):
    """Raised when a DCQL request payload is structurally invalid."""


class DCQLSelectionError(DCQLError):
    """Raised when the held credentials cannot satisfy a DCQL query."""


class NoMatchForQuery(DCQLSelectionError):
    """No held credential matched a credential query."""

    def __init__(self, credential_query_id: str):
        """Initialize the error."""
        super().__init__(
            f"No matches for credential query with id {credential_query_id}"
        )
        self.credential_query_id = credential_query_id


class UnsatisfiedRequiredSet(DCQLSelectionError):
    """No option of a required credential set query could be satisfied."""

    def __init__(self, purpose: Any):
        """Initialize the error."""
        super().__init__(
            "No credentials match required credential_set query "
            f"with purpose {purpose}"
        )
        self.purpose = purpose
