"""Tests for the one-way forum mirror sync."""

from __future__ import annotations

import httpx
import pytest

from src.registrar.errors import ForumUnavailable, ProviderError
from src.registrar.integrations.forums import ForumSync

REMOTE_FORUM = {
    "id": "forum-remote",
    "name": "Chicago CIO Forum",
    "brand": "SINC USA",
    "date": "2025-06-03",
    "city": "Chicago",
    "venue": None,
    "capacity": 120,
}


def _sync(repository, handler, base_url="https://forums.example.test") -> ForumSync:
    return ForumSync(
        repository,
        base_url=base_url,
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


class TestForumSync:
    async def test_sync_upserts_local_mirror(self, repository):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[REMOTE_FORUM])

        forum = await _sync(repository, handler).sync("forum-remote")

        assert forum.name == "Chicago CIO Forum"
        assert forum.venue == ""
        stored = await repository.get_forum("forum-remote")
        assert stored.city == "Chicago"

        request = seen[0]
        assert request.url.path == "/rest/v1/forums"
        assert request.url.params["id"] == "eq.forum-remote"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"

    async def test_resync_overwrites_mirror(self, repository, forum):
        renamed = {"id": forum.id, "name": "Renamed Forum", "date": forum.date}

        await _sync(repository, lambda r: httpx.Response(200, json=[renamed])).sync(forum.id)

        stored = await repository.get_forum(forum.id)
        assert stored.name == "Renamed Forum"
        assert stored.city == ""

    async def test_unknown_forum(self, repository):
        with pytest.raises(ForumUnavailable, match="Forum not found in external database"):
            await _sync(repository, lambda r: httpx.Response(200, json=[])).sync("nope")
        assert await repository.get_forum("nope") is None

    async def test_source_error(self, repository):
        with pytest.raises(ProviderError) as exc_info:
            await _sync(repository, lambda r: httpx.Response(503)).fetch("forum-remote")
        assert exc_info.value.status_code == 503

    async def test_unconfigured_source(self, repository):
        forum_sync = _sync(repository, lambda r: httpx.Response(200, json=[]), base_url="")
        assert forum_sync.configured is False
        with pytest.raises(ProviderError):
            await forum_sync.fetch("forum-remote")
