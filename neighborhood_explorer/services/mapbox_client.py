# Mapbox place-search client.
# Structured searches use the Search Box category endpoint, free-text searches
# use the Geocoding endpoint. Each call is a single attempt; any transport,
# status or payload problem surfaces as ProviderUnavailable.

import httpx
import logging
from urllib.parse import quote
from typing import Any, Dict, Optional

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.models.dto import FreeTextResult, StructuredResult
from neighborhood_explorer.services.search_strategy import FreeTextQuery, StructuredQuery

logger = logging.getLogger(__name__)


class ProviderUnavailable(Exception):
    """The search provider could not produce a usable response."""


class MapboxSearchClient:
    def __init__(
        self,
        timeout: float = settings.MAPBOX_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def category_search(self, query: StructuredQuery, access_token: str) -> StructuredResult:
        url = settings.MAPBOX_SEARCHBOX_URL.format(category=quote(query.category_token))
        params = self._base_params(query.proximity, query.limit, access_token)
        if query.bbox is not None:
            params["bbox"] = query.bbox.as_bbox_param()

        data = await self._get_json(url, params)
        return StructuredResult(features=self._features(data))

    async def text_search(self, query: FreeTextQuery, access_token: str) -> FreeTextResult:
        url = settings.MAPBOX_GEOCODING_URL.format(query=quote(query.phrase))
        params = self._base_params(query.proximity, query.limit, access_token)
        params["types"] = "poi"
        if query.bbox is not None:
            params["bbox"] = query.bbox.as_bbox_param()

        data = await self._get_json(url, params)
        return FreeTextResult(features=self._features(data))

    @staticmethod
    def _base_params(proximity, limit: int, access_token: str) -> Dict[str, Any]:
        lng, lat = proximity
        return {
            "access_token": access_token,
            "proximity": f"{lng},{lat}",
            "limit": limit,
        }

    @staticmethod
    def _features(data: Any) -> list:
        if not isinstance(data, dict):
            raise ProviderUnavailable("Mapbox response is not a JSON object")
        features = data.get("features")
        if features is None:
            return []
        if not isinstance(features, list):
            raise ProviderUnavailable("Mapbox response 'features' is not a list")
        # Non-object entries cannot be candidates
        return [f for f in features if isinstance(f, dict)]

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Mapbox request timed out: {url}")
            raise ProviderUnavailable("Mapbox request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Mapbox API returned status error: {e.response.status_code}")
            raise ProviderUnavailable(f"Mapbox returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Mapbox request failed: {e}")
            raise ProviderUnavailable("Mapbox request failed") from e
        except ValueError as e:
            # response.json() on a non-JSON body
            logger.error(f"Mapbox returned malformed JSON: {e}")
            raise ProviderUnavailable("Mapbox returned malformed JSON") from e
