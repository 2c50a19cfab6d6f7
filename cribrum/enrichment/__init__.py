"""Enrichment sources handed to the engine (KEV catalog, CVE details)."""

from cribrum.enrichment.cache import TTLCache
from cribrum.enrichment.kev import EnrichmentError, KEVCatalog, KEVClient
from cribrum.enrichment.provider import EnrichmentProvider

__all__ = ["EnrichmentError", "EnrichmentProvider", "KEVCatalog", "KEVClient", "TTLCache"]
