"""CISA Known Exploited Vulnerabilities (KEV) catalog."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from cribrum.enrichment.cache import TTLCache
from cribrum.logging import get_logger
from cribrum.models.enrichment import KEVEntry

logger = get_logger("enrichment.kev")


class EnrichmentError(Exception):
    """Raised when enrichment data cannot be obtained."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class KEVCatalog:
    """In-memory view of the KEV catalog, indexed by CVE ID."""

    def __init__(
        self,
        entries: list[KEVEntry] | None = None,
        catalog_version: str | None = None,
        date_released: str | None = None,
    ):
        self.catalog_version = catalog_version
        self.date_released = date_released
        self._entries: dict[str, KEVEntry] = {}
        for entry in entries or []:
            self._entries[entry.cve_id] = entry

    @classmethod
    def from_feed(cls, data: dict[str, Any]) -> "KEVCatalog":
        """
        Build a catalog from the CISA JSON feed.

        Malformed entries are skipped with a warning.
        """
        entries: list[KEVEntry] = []
        skipped = 0
        for item in data.get("vulnerabilities", []):
            try:
                entries.append(KEVEntry.model_validate(item))
            except ValidationError:
                skipped += 1

        if skipped:
            logger.warning(f"Skipped {skipped} malformed KEV entries")

        return cls(
            entries,
            catalog_version=data.get("catalogVersion"),
            date_released=data.get("dateReleased"),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, cve_id: str) -> bool:
        return cve_id.upper() in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    @property
    def cve_ids(self) -> list[str]:
        return list(self._entries)

    def get(self, cve_id: str) -> KEVEntry | None:
        return self._entries.get(cve_id.strip().upper())

    def statuses(self, cve_ids: list[str]) -> dict[str, KEVEntry]:
        """Catalog entries for those of ``cve_ids`` that are listed."""
        result: dict[str, KEVEntry] = {}
        for cve_id in cve_ids:
            entry = self.get(cve_id)
            if entry is not None:
                result[entry.cve_id] = entry
        return result

    def search(self, query: str) -> list[KEVEntry]:
        """Case-insensitive match on CVE ID, vendor, product or vulnerability name."""
        needle = query.lower()
        return [
            entry
            for entry in self._entries.values()
            if needle in entry.cve_id.lower()
            or needle in entry.vendor_project.lower()
            or needle in entry.product.lower()
            or needle in entry.vulnerability_name.lower()
        ]

    def upcoming_due_dates(
        self, days_ahead: int = 30, now: datetime | None = None
    ) -> list[KEVEntry]:
        """Entries due after ``now`` and within ``days_ahead`` days, soonest first."""
        now = now or datetime.now(timezone.utc)
        today = now.date()
        cutoff = (now + timedelta(days=days_ahead)).date()
        upcoming = [e for e in self._entries.values() if today < e.due_date <= cutoff]
        return sorted(upcoming, key=lambda e: e.due_date)

    def has_ransomware_usage(self, cve_id: str) -> bool:
        entry = self.get(cve_id)
        return bool(entry and entry.ransomware_use)


class KEVClient:
    """
    Fetches the KEV catalog from CISA.

    The catalog is cached for ``cache_ttl``. If a refresh fails while a
    cached copy exists, the stale copy is returned.
    """

    KEV_CATALOG_URL = (
        "https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json"
    )
    CACHE_KEY = "kev-catalog"

    def __init__(
        self,
        timeout: float = 30.0,
        cache_ttl: timedelta = timedelta(hours=24),
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the KEV client.

        Args:
            timeout: HTTP request timeout in seconds
            cache_ttl: How long a fetched catalog stays fresh
            transport: Optional httpx transport (used to stub the network)
            clock: Optional clock for cache expiry
        """
        self.timeout = timeout
        self._transport = transport
        self._cache = TTLCache(ttl=cache_ttl, clock=clock)

    def get_catalog(self, force_refresh: bool = False) -> KEVCatalog:
        """
        Return the KEV catalog, fetching it when the cache is cold or stale.

        Raises:
            EnrichmentError: If the fetch fails and nothing is cached
        """
        if not force_refresh:
            cached = self._cache.get(self.CACHE_KEY)
            if cached is not None:
                return cached

        try:
            catalog = KEVCatalog.from_feed(self._fetch_feed())
        except (httpx.HTTPError, ValueError) as e:
            stale = self._cache.get_stale(self.CACHE_KEY)
            if stale is not None:
                logger.warning(f"KEV catalog refresh failed, using cached copy: {e}")
                return stale
            raise EnrichmentError(f"Failed to fetch KEV catalog: {e}", "cisa-kev") from e

        self._cache.set(self.CACHE_KEY, catalog)
        logger.info(f"Loaded {len(catalog)} KEV entries")
        return catalog

    def _fetch_feed(self) -> dict[str, Any]:
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            response = client.get(self.KEV_CATALOG_URL)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected KEV feed format")
        return data

    def clear_cache(self) -> None:
        self._cache.clear()
