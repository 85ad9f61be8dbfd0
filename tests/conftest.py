"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from novastream.config import Settings  # noqa: E402
from novastream.database import Database  # noqa: E402
from novastream.models import Catalog  # noqa: E402
from novastream.services.content_repository import ContentRepository  # noqa: E402
from novastream.services.local_store import LocalStore  # noqa: E402
from novastream.services.remote_store import RemoteStoreClient  # noqa: E402

REMOTE_URL = "https://db.example.com/"
REMOTE_KEY = "anon-key"

Handler = Callable[[httpx.Request], httpx.Response]


def build_settings(*, remote: bool = True, **overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {
        "REMOTE_STORE_URL": REMOTE_URL if remote else "",
        "REMOTE_STORE_KEY": REMOTE_KEY if remote else "",
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def _unexpected_request(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected remote request: {request.method} {request.url}")


@dataclass
class RepositoryHarness:
    """Repository wired to a mocked remote store and a temporary database."""

    repository: ContentRepository
    local: LocalStore
    settings: Settings
    requests: list[httpx.Request] = field(default_factory=list)

    async def stored_catalog(self) -> Catalog | None:
        stored = await self.local.read(self.settings.storage_key)
        if stored is None:
            return None
        return Catalog.from_storage(stored, normalize=False)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def repository_harness(tmp_path):
    """Return a factory opening a :class:`RepositoryHarness`."""

    @asynccontextmanager
    async def factory(
        handler: Handler | None = None,
        *,
        remote: bool = True,
        stored: str | None = None,
        catalog: Catalog | None = None,
    ) -> AsyncIterator[RepositoryHarness]:
        settings = build_settings(remote=remote)
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
        await database.create_all()
        local = LocalStore(database.session_factory)
        if stored is not None:
            await local.write(settings.storage_key, stored)

        requests: list[httpx.Request] = []
        respond = handler or _unexpected_request

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return respond(request)

        transport = httpx.MockTransport(recording_handler)
        try:
            async with httpx.AsyncClient(transport=transport) as http_client:
                repository = ContentRepository(
                    settings, RemoteStoreClient(settings, http_client), local, catalog
                )
                yield RepositoryHarness(repository, local, settings, requests)
        finally:
            await database.dispose()

    return factory
