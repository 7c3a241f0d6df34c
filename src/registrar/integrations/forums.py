"""One-way forum mirror sync from the external forums source.

Forums are owned by an external PostgREST-style service. ForumSync reads one
forum record from it and upserts the local mirror used for outcome emails and
chat messages. Nothing is ever written back to the source.
"""

from __future__ import annotations

import httpx
import structlog

from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import ForumRead
from src.registrar.errors import ForumUnavailable, ProviderError

logger = structlog.get_logger(__name__)

PROVIDER = "forums"


class ForumSync:
    """Refreshes local forum rows from the external forums source.

    Args:
        repository: AttendeeRepository owning the local forums table.
        base_url: Root URL of the forums source.
        api_key: Key sent as both ``apikey`` and bearer token.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        repository: AttendeeRepository,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._repository = repository
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    async def fetch(self, forum_id: str) -> ForumRead:
        """Read one forum from the source without touching the mirror.

        Raises:
            ForumUnavailable: The source has no forum with this id.
            ProviderError: The source could not be reached or answered an error.
        """
        if not self.configured:
            raise ProviderError(PROVIDER, "External forums source not configured")

        headers = {"apikey": self._api_key, "Authorization": f"Bearer {self._api_key}"}
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(
                    "/rest/v1/forums",
                    params={"id": f"eq.{forum_id}", "select": "*"},
                )
            except httpx.HTTPError as exc:
                raise ProviderError(PROVIDER, f"Forums source request failed: {exc}") from exc

        if response.is_error:
            raise ProviderError(
                PROVIDER,
                f"Failed to fetch forum from external database: {response.status_code}",
                status_code=response.status_code,
            )

        rows = response.json() or []
        if not rows:
            raise ForumUnavailable(forum_id, "Forum not found in external database")

        row = rows[0]
        return ForumRead(
            id=str(row.get("id", forum_id)),
            name=row.get("name") or "",
            brand=row.get("brand") or "",
            date=row.get("date") or "",
            city=row.get("city") or "",
            venue=row.get("venue") or "",
        )

    async def sync(self, forum_id: str) -> ForumRead:
        """Fetch a forum from the source and upsert the local mirror."""
        remote = await self.fetch(forum_id)
        forum = await self._repository.upsert_forum(remote)
        logger.info("forum_sync.synced", forum_id=forum.id, name=forum.name)
        return forum
