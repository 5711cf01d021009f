"""OpenStreetMap Nominatim place lookup adapter.

Searches ``{base_url}/search`` with ``polygon_geojson=1`` and keeps only
results whose boundary is a Polygon or MultiPolygon (points and lines are
useless as coverage regions).

No retries are attempted; failures surface as ``PlaceLookupError`` and
the host decides what to do.

References:
    Nominatim search API:
        https://nominatim.org/release-docs/latest/api/Search/
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from coverage_grid.activities.normalize_boundary import POLYGON_TYPES
from coverage_grid.providers.base import PlaceLookupError, PlaceProvider, PlaceResult

if TYPE_CHECKING:
    from coverage_grid.core.config import CoverageConfig

logger = logging.getLogger("coverage_grid.providers.nominatim")

_SEARCH_PATH = "/search"


class NominatimClient(PlaceProvider):
    """Nominatim ``/search`` client.

    Args:
        base_url: Service root, e.g. ``https://nominatim.openstreetmap.org``.
        user_agent: Identifying User-Agent (required by the usage policy).
        timeout: Request timeout in seconds.
        client: Optional pre-built ``httpx.Client`` (tests inject one with
            a ``MockTransport``).  The caller keeps ownership of it.
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: CoverageConfig) -> NominatimClient:
        return cls(
            config.nominatim_url,
            config.nominatim_user_agent,
            timeout=config.http_timeout_s,
        )

    @property
    def name(self) -> str:
        return "nominatim"

    def search(self, query: str) -> list[PlaceResult]:
        """Search for *query* and return places with polygon boundaries.

        Raises:
            PlaceLookupError: If the query is blank, the request fails, or
                the response is not a JSON array.
        """
        query = query.strip()
        if not query:
            raise PlaceLookupError(self.name, "Place query must not be empty", retryable=False)

        params = {"format": "json", "q": query, "polygon_geojson": "1"}
        url = f"{self._base_url}{_SEARCH_PATH}"
        try:
            payload = self._get_json(url, params)
        except httpx.HTTPStatusError as exc:
            msg = f"Search for {query!r} failed with HTTP {exc.response.status_code}"
            raise PlaceLookupError(self.name, msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Search for {query!r} failed: {exc}"
            raise PlaceLookupError(self.name, msg) from exc
        except ValueError as exc:
            msg = f"Search for {query!r} returned a non-JSON response"
            raise PlaceLookupError(self.name, msg, retryable=False) from exc

        if not isinstance(payload, list):
            msg = f"Search for {query!r} returned {type(payload).__name__}, expected a list"
            raise PlaceLookupError(self.name, msg, retryable=False)

        results = [r for r in (_to_place_result(item) for item in payload) if r is not None]
        logger.info(
            "Place search completed | query=%s | results=%d | polygons=%d",
            query,
            len(payload),
            len(results),
        )
        return results

    def _get_json(self, url: str, params: dict[str, str]) -> Any:
        headers = {"User-Agent": self._user_agent, "Accept": "application/json"}
        if self._client is not None:
            response = self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()

        with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
            response = client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()


def _to_place_result(item: object) -> PlaceResult | None:
    if not isinstance(item, dict):
        return None
    geojson = item.get("geojson")
    if not isinstance(geojson, dict) or geojson.get("type") not in POLYGON_TYPES:
        return None
    display_name = str(item.get("display_name") or "")
    if not display_name:
        return None
    return PlaceResult(display_name=display_name, geojson=geojson)
