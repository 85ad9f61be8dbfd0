"""Catalog repository backed by the remote store with a local fallback."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence
from urllib.parse import quote

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..models import (
    CATEGORIES,
    Catalog,
    Category,
    FilmItem,
    ItemPatch,
    SeriesItem,
    build_row,
    normalize_category,
)
from ..utils import generate_local_id, is_local_id
from .local_store import LocalStore
from .remote_store import RemoteStoreClient, RemoteStoreError

logger = logging.getLogger(__name__)

LoadStatus = Literal["fresh", "fallback", "stale"]


@dataclass(slots=True)
class LoadResult:
    """Outcome of a catalog load.

    ``fresh`` means the remote store answered, ``fallback`` that the catalog was
    read from local storage and ``stale`` that nothing could be read so the
    previous in-memory catalog was kept.
    """

    status: LoadStatus
    catalog: Catalog
    error: Exception | None = None
    degraded_categories: tuple[Category, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "error": str(self.error) if self.error is not None else None,
            "degradedCategories": list(self.degraded_categories),
            "films": len(self.catalog.films),
            "series": len(self.catalog.series),
        }


class ContentRepository:
    """Owns the in-memory catalog and keeps local storage in sync with it.

    Operations are not serialized: callers are expected to run a single
    mutating operation at a time.
    """

    _CONTENT_PATH = "/content"

    def __init__(
        self,
        settings: Settings,
        remote: RemoteStoreClient,
        local: LocalStore,
        catalog: Catalog | None = None,
    ):
        self._settings = settings
        self._remote = remote
        self._local = local
        self._catalog = catalog if catalog is not None else Catalog()

    @property
    def storage_key(self) -> str:
        return self._settings.storage_key

    def is_remote_configured(self) -> bool:
        return self._remote.is_configured

    def get_catalog(self) -> Catalog:
        """Return the in-memory catalog without any I/O."""

        return self._catalog

    def get_item_by_id(self, category: str, item_id: str) -> FilmItem | None:
        return self._catalog.find(normalize_category(category), item_id)

    async def load_catalog(self) -> LoadResult:
        """Refresh the catalog from the remote store or local storage.

        Failures never propagate: the result status tells whether fresh,
        locally stored or previously cached data is being served.
        """

        if not self.is_remote_configured():
            return await self._load_local(normalize=True)

        try:
            catalog, degraded = await self._fetch_remote_catalog()
            self._catalog = catalog
            await self._merge_local_fields()
            await self._persist()
        except (httpx.HTTPError, ValueError, SQLAlchemyError) as exc:
            logger.warning(
                "Remote catalog load failed, falling back to local storage: %s", exc
            )
            # Locally stored series are used as-is on this path.
            return await self._load_local(normalize=False, cause=exc)

        logger.info(
            "Loaded %d films and %d series from the remote store",
            len(self._catalog.films),
            len(self._catalog.series),
        )
        return LoadResult("fresh", self._catalog, degraded_categories=degraded)

    async def add_item(self, category: str, item: FilmItem) -> FilmItem:
        """Create ``item`` and append it to the catalog.

        Without a remote store the item receives a local identifier, assigned
        on the supplied object itself.
        """

        kind = normalize_category(category)
        if not self.is_remote_configured():
            return await self._add_local_item(kind, item)

        episodes = getattr(item, "episodes", None) if kind == "serie" else None
        row = build_row(kind, item)
        try:
            response = await self._remote.request(
                self._CONTENT_PATH, method="POST", json=row
            )
            if not response.is_success:
                raise RemoteStoreError.from_response(response)
            created = self._created_row(response.json())
        except (httpx.HTTPError, RemoteStoreError, ValueError):
            logger.exception("Remote insert failed for %s %r", kind, item.title)
            raise

        model = FilmItem if kind == "film" else SeriesItem
        new_item = model.from_created_row(created, episodes=episodes or None)
        self._catalog.items_for(kind).append(new_item)
        await self._persist()
        return new_item

    async def delete_item(self, category: str, item_id: str) -> None:
        """Remove an item; unknown identifiers are a silent no-op."""

        kind = normalize_category(category)
        if self.is_remote_configured() and not is_local_id(item_id):
            try:
                response = await self._remote.request(
                    self._item_path(item_id), method="DELETE"
                )
                if not response.is_success:
                    raise RemoteStoreError.from_response(response)
            except (httpx.HTTPError, RemoteStoreError):
                logger.exception("Remote delete failed for %s %s", kind, item_id)
                raise

        items = self._catalog.items_for(kind)
        items[:] = [item for item in items if item.id != item_id]
        await self._persist()

    async def update_item(
        self,
        category: str,
        item_id: str,
        updates: ItemPatch | Mapping[str, Any],
    ) -> bool:
        """Apply a partial update; return ``False`` when the item is unknown."""

        patch = (
            updates if isinstance(updates, ItemPatch) else ItemPatch.model_validate(updates)
        )
        kind = normalize_category(category)
        items = self._catalog.items_for(kind)
        index = next(
            (position for position, item in enumerate(items) if item.id == item_id),
            None,
        )
        if index is None:
            return False

        if self.is_remote_configured() and not is_local_id(item_id):
            try:
                response = await self._remote.request(
                    self._item_path(item_id),
                    method="PATCH",
                    json=patch.to_row(include_description=True),
                )
                if not response.is_success:
                    raise RemoteStoreError.from_response(response)
            except (httpx.HTTPError, RemoteStoreError):
                logger.exception("Remote update failed for %s %s", kind, item_id)
                raise

        items[index] = patch.apply(items[index])
        await self._persist()
        return True

    async def _add_local_item(self, kind: Category, item: FilmItem) -> FilmItem:
        items = self._catalog.items_for(kind)
        item.id = generate_local_id({entry.id for entry in items if entry.id})
        stored = item
        if kind == "film" and type(item) is not FilmItem:
            stored = FilmItem.model_validate(item.model_dump(exclude={"episodes"}))
        elif kind == "serie" and not isinstance(item, SeriesItem):
            stored = SeriesItem.model_validate(item.model_dump())
        items.append(stored)
        await self._persist()
        return stored

    async def _fetch_remote_catalog(self) -> tuple[Catalog, tuple[Category, ...]]:
        responses = await asyncio.gather(
            *(self._remote.request(self._listing_path(kind)) for kind in CATEGORIES),
            return_exceptions=True,
        )
        for outcome in responses:
            if isinstance(outcome, BaseException):
                raise outcome
        films_response, series_response = responses
        degraded: list[Category] = []
        film_rows = self._listing_rows("film", films_response, degraded)
        series_rows = self._listing_rows("serie", series_response, degraded)
        catalog = Catalog(
            films=[FilmItem.from_row(row) for row in film_rows],
            series=[SeriesItem.from_row(row) for row in series_rows],
        )
        return catalog, tuple(degraded)

    @staticmethod
    def _listing_rows(
        kind: Category, response: httpx.Response, degraded: list[Category]
    ) -> list[dict[str, Any]]:
        if not response.is_success:
            logger.warning(
                "Remote %s listing returned HTTP %s; treating it as empty",
                kind,
                response.status_code,
            )
            degraded.append(kind)
            return []
        rows = response.json()
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ValueError(f"Unexpected {kind} listing payload from the remote store")
        return rows

    async def _merge_local_fields(self) -> None:
        """Carry locally kept descriptions and episode lists over remote data."""

        try:
            local = await self._read_local(normalize=False)
        except (ValueError, SQLAlchemyError) as exc:
            logger.debug("Ignoring unreadable local catalog: %s", exc)
            return
        if local is None:
            return

        _fill_missing_descriptions(self._catalog.films, local.films)
        _fill_missing_descriptions(self._catalog.series, local.series)

        local_series = _index_by_id(local.series)
        for item in self._catalog.series:
            local_item = local_series.get(item.id)
            if local_item is None:
                continue
            if local_item.episodes:
                item.episodes = local_item.episodes
            if local_item.description:
                item.description = local_item.description

    async def _load_local(
        self, *, normalize: bool, cause: Exception | None = None
    ) -> LoadResult:
        try:
            catalog = await self._read_local(normalize=normalize)
        except (ValueError, SQLAlchemyError) as exc:
            logger.debug("Ignoring unreadable local catalog: %s", exc)
            return LoadResult("stale", self._catalog, error=cause or exc)
        if catalog is None:
            return LoadResult("stale", self._catalog, error=cause)

        self._catalog = catalog
        return LoadResult("fallback", catalog, error=cause)

    async def _read_local(self, *, normalize: bool) -> Catalog | None:
        stored = await self._local.read(self.storage_key)
        if stored is None:
            return None
        return Catalog.from_storage(stored, normalize=normalize)

    async def _persist(self) -> None:
        await self._local.write(self.storage_key, self._catalog.to_storage())

    def _listing_path(self, kind: Category) -> str:
        return f"{self._CONTENT_PATH}?type=eq.{kind}&order=created_at.asc&select=*"

    def _item_path(self, item_id: str) -> str:
        return f"{self._CONTENT_PATH}?id=eq.{quote(item_id, safe='')}"

    @staticmethod
    def _created_row(payload: Any) -> dict[str, Any]:
        if isinstance(payload, list) and payload:
            payload = payload[0]
        if not isinstance(payload, dict):
            raise ValueError("Remote store did not return the created row")
        return payload


def _index_by_id(items: Sequence[FilmItem]) -> dict[str | None, FilmItem]:
    index: dict[str | None, FilmItem] = {}
    for item in items:
        index.setdefault(item.id, item)
    return index


def _fill_missing_descriptions(
    target: Sequence[FilmItem], source: Sequence[FilmItem]
) -> None:
    local_items = _index_by_id(source)
    for item in target:
        local_item = local_items.get(item.id)
        if local_item and local_item.description and not item.description:
            item.description = local_item.description
