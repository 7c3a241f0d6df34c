"""Async HTTP client wrapper for the HubSpot REST API.

Provides HubSpotClient covering the calls the registrar makes:
- Form submissions (paginated, sequential, bounded page count)
- Form definitions (for executive-profile enrichment)
- CRM contacts search/create, deal create, deal-contact association

Every call uses bearer auth. There are no retries: any non-2xx response or
transport failure raises ProviderError with HubSpot's message, and the caller
decides whether to re-trigger.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from src.registrar.attendees.schemas import PageInfo
from src.registrar.errors import ConfigurationError, ProviderError

logger = structlog.get_logger(__name__)

PROVIDER = "hubspot"


class HubSpotClient:
    """Async client for the HubSpot forms and CRM APIs.

    Args:
        api_key: HubSpot private-app access token.
        base_url: API root (default: https://api.hubapi.com).
        timeout: Per-request timeout in seconds.
        max_pages: Upper bound on submission pages fetched per import.
        page_size: Submissions requested per page.
        page_delay: Seconds to sleep between submission pages.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.hubapi.com",
        timeout: float = 30.0,
        max_pages: int = 20,
        page_size: int = 50,
        page_delay: float = 0.1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_pages = max_pages
        self._page_size = page_size
        self._page_delay = page_delay
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client bound to the API root."""
        if not self._api_key:
            raise ConfigurationError("HUBSPOT_API_KEY is not configured")
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                logger.error("hubspot.transport_error", method=method, path=path, error=str(exc))
                raise ProviderError(PROVIDER, f"HubSpot request failed: {exc}") from exc

        if response.is_error:
            logger.error(
                "hubspot.api_error",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ProviderError(
                PROVIDER,
                f"HubSpot API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    # ── Forms ───────────────────────────────────────────────────────────────

    async def fetch_submissions(
        self, form_id: str
    ) -> tuple[list[dict[str, Any]], list[PageInfo]]:
        """Fetch all submissions of a form, following ``paging.next.after``.

        Pages are fetched one at a time with a short delay in between, and
        at most ``max_pages`` pages are read. A failed page aborts the whole
        fetch.

        Returns:
            Tuple of (raw submission dicts in page order, per-page bookkeeping).
            Submissions are validated by the caller, one at a time.
        """
        submissions: list[dict[str, Any]] = []
        pages: list[PageInfo] = []
        after: str | None = None

        for page in range(1, self._max_pages + 1):
            params: dict[str, Any] = {"limit": self._page_size}
            if after:
                params["after"] = after

            response = await self._request(
                "GET",
                f"/form-integrations/v1/submissions/forms/{form_id}",
                params=params,
            )
            data = response.json()
            results = data.get("results") or []
            submissions.extend(results)

            after = ((data.get("paging") or {}).get("next") or {}).get("after")
            pages.append(
                PageInfo(
                    page=page,
                    results_count=len(results),
                    total_so_far=len(submissions),
                    next_after=after,
                )
            )
            logger.info(
                "hubspot.submissions_page_fetched",
                form_id=form_id,
                page=page,
                results=len(results),
                total=len(submissions),
            )

            if not after:
                break
            if page < self._max_pages:
                await asyncio.sleep(self._page_delay)

        return submissions, pages

    async def get_form_definition(self, form_id: str) -> dict[str, Any]:
        """GET /marketing/v3/forms/{form_id}."""
        response = await self._request("GET", f"/marketing/v3/forms/{form_id}")
        return response.json()

    # ── CRM ─────────────────────────────────────────────────────────────────

    async def search_contact_by_email(self, email: str) -> dict[str, Any] | None:
        """Return the first contact whose email equals ``email`` exactly, or None."""
        response = await self._request(
            "POST",
            "/crm/v3/objects/contacts/search",
            json={
                "filterGroups": [
                    {
                        "filters": [
                            {"propertyName": "email", "operator": "EQ", "value": email}
                        ]
                    }
                ]
            },
        )
        results = response.json().get("results") or []
        return results[0] if results else None

    async def create_contact(self, properties: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", "/crm/v3/objects/contacts", json={"properties": properties}
        )
        data = response.json()
        logger.info("hubspot.contact_created", contact_id=data.get("id"))
        return data

    async def create_deal(self, properties: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", "/crm/v3/objects/deals", json={"properties": properties}
        )
        data = response.json()
        logger.info(
            "hubspot.deal_created",
            deal_id=data.get("id"),
            pipeline=properties.get("pipeline"),
            dealstage=properties.get("dealstage"),
        )
        return data

    async def associate_deal_with_contact(self, deal_id: str, contact_id: str) -> None:
        await self._request(
            "PUT",
            f"/crm/v3/objects/deals/{deal_id}/associations/contacts/{contact_id}/deal_to_contact",
        )
        logger.info("hubspot.deal_associated", deal_id=deal_id, contact_id=contact_id)
