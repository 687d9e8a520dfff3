"""
Error taxonomy for the IGDB catalog client and the sync reconciler.

Callers branch on these types to decide what to do next:

- ConfigurationError: credentials missing. Terminal, never retried.
- TransportError: network failure or timeout. Retry with backoff.
- UpstreamError: IGDB answered with an error status. Retry only when
  ``is_rate_limited``.
- ParseError: the response body broke the contract. Never retried.
- RecordReconciliationError: one record could not be written locally.
  Caught inside the sync pass and reported, never propagated.
"""
from typing import Optional


class CatalogError(Exception):
    """Base class for catalog client failures."""


class ConfigurationError(CatalogError):
    """IGDB credentials are absent from the environment."""

    def __init__(self, missing: Optional[list[str]] = None):
        self.missing = missing or ["IGDB_CLIENT_ID", "IGDB_CLIENT_SECRET"]
        super().__init__(
            f"IGDB is not configured: set {' and '.join(self.missing)} in the environment."
        )


class TransportError(CatalogError):
    """The catalog service could not be reached (network error or timeout)."""


class UpstreamError(CatalogError):
    """The catalog service answered with a non-2xx status."""

    def __init__(self, status: int, body: str, endpoint: str = ""):
        self.status = status
        self.body = body
        self.endpoint = endpoint
        target = f" for {endpoint}" if endpoint else ""
        super().__init__(f"IGDB returned HTTP {status}{target}: {body[:200]}")

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def retryable(self) -> bool:
        return self.is_rate_limited


class ParseError(CatalogError):
    """The response body was not the JSON the catalog contract promises."""


class CatalogRecordNotFound(CatalogError):
    """A lookup by id or slug matched nothing upstream."""


class RecordReconciliationError(Exception):
    """A single external record could not be reconciled into local storage."""

    def __init__(self, external_id: Optional[int], reason: str):
        self.external_id = external_id
        self.reason = reason
        super().__init__(f"Record {external_id}: {reason}")
