"""
IGDB game catalog access.

- igdb_client: authenticated, cached IGDB client and its process singleton
- records: typed, immutable views of catalog payloads
- cache: TTL response cache
- query: APIcalypse query builder
- exceptions: error taxonomy shared with the sync reconciler
"""
from app.services.catalog.exceptions import (
    CatalogError,
    CatalogRecordNotFound,
    ConfigurationError,
    ParseError,
    RecordReconciliationError,
    TransportError,
    UpstreamError,
)
from app.services.catalog.igdb_client import IgdbClient, close_catalog_client, get_catalog_client
from app.services.catalog.records import (
    AccessToken,
    CatalogReference,
    ExternalGameRecord,
    MalformedGameRecord,
)

__all__ = [
    "AccessToken",
    "CatalogError",
    "CatalogRecordNotFound",
    "CatalogReference",
    "ConfigurationError",
    "ExternalGameRecord",
    "IgdbClient",
    "MalformedGameRecord",
    "ParseError",
    "RecordReconciliationError",
    "TransportError",
    "UpstreamError",
    "close_catalog_client",
    "get_catalog_client",
]
