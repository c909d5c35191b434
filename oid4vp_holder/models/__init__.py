"""OID4VP holder models."""
