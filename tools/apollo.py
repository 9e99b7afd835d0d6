import httpx
import os
from typing import Dict, Any, List, Optional
from loguru import logger

from graph.errors import ConfigurationError, UpstreamError, PARSE_FAILURE

DEFAULT_BASE_URL = "https://api.apollo.io/api/v1"
DEFAULT_TIMEOUT = 20.0
SEARCH_PAGE_SIZE = 25


class ApolloClient:
    """Apollo.io people search and bulk match client.

    Each call is attempted once; failures surface as ``UpstreamError`` tagged
    with the pipeline step that issued them.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("APOLLO_API_KEY")
        self.base_url = (base_url or os.getenv("APOLLO_BASE") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("APOLLO_TIMEOUT", DEFAULT_TIMEOUT))
        self.transport = transport

        if not self.api_key:
            logger.warning("No Apollo API key configured, people search disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Apollo API key is not configured")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-API-KEY": self.api_key or "",
        }

    async def search_people(
        self, title: str, location: str, industry: Optional[str] = None
    ) -> Dict[str, Any]:
        """Run a mixed people search for one title in one location."""
        payload: Dict[str, Any] = {
            "per_page": SEARCH_PAGE_SIZE,
            "person_titles": [title],
            "person_locations": [location],
        }
        if industry:
            # Apollo accepts both; sending the two widens recall
            payload["industries"] = [industry]
            payload["q_organization_keywords"] = [industry]

        return await self._post("search", "/mixed_people/search", payload)

    async def bulk_match(self, details: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Reveal work emails for a batch of previously found people."""
        payload = {
            "details": details,
            "reveal_personal_emails": False,
            "reveal_work_emails": True,
        }
        return await self._post("enrich", "/people/bulk_match", payload)

    async def _post(self, step: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.ensure_configured()
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=self._get_headers())
        except httpx.HTTPError as e:
            logger.error(f"Apollo {step} request failed: {e}")
            raise UpstreamError(step, str(e) or e.__class__.__name__) from e

        if not response.is_success:
            body = _json_or_marker(response)
            logger.warning(f"Apollo {step} returned {response.status_code}: {response.text[:200]}")
            raise UpstreamError.from_payload(step, response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Apollo {step} returned an unreadable body")
            raise UpstreamError(step, PARSE_FAILURE["error"], payload=dict(PARSE_FAILURE)) from e


def _json_or_marker(response: httpx.Response) -> Any:
    """Decode an error body, substituting a marker when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return dict(PARSE_FAILURE)
