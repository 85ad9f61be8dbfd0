"""Pydantic models describing the film and series catalog."""

from __future__ import annotations

import json
from typing import Any, Literal, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import decode_json_list

Category = Literal["film", "serie"]

CATEGORIES: tuple[Category, ...] = ("film", "serie")
PLACEHOLDER = "-"
DEFAULT_EPISODE_TITLE = "Épisode 1"


def normalize_category(value: str) -> Category:
    """Map a caller supplied category onto ``film`` or ``serie``."""

    return "film" if value == "film" else "serie"


class Episode(BaseModel):
    """A playable episode of a series."""

    model_config = ConfigDict(
        populate_by_name=True, extra="allow", coerce_numbers_to_str=True
    )

    season: int | None = None
    episode: int | None = None
    title: str | None = None
    video_url: str | None = Field(default=None, alias="videoUrl")

    @field_validator("season", "episode", mode="before")
    @classmethod
    def _lenient_number(cls, value: object) -> object:
        """Treat blank or unparseable numbering as missing instead of invalid."""

        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            return None

    @classmethod
    def synthesize(cls, video_url: str | None) -> list["Episode"]:
        """Return the single-episode list used for legacy series entries."""

        if not video_url:
            return []
        return [
            cls(season=1, episode=1, title=DEFAULT_EPISODE_TITLE, video_url=video_url)
        ]


class FilmItem(BaseModel):
    """A film entry of the catalog."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str | None = None
    title: str | None = None
    description: str | None = ""
    image: str | None = ""
    video_url: str | None = Field(default=None, alias="videoUrl")
    duration: str | None = PLACEHOLDER
    year: str | None = PLACEHOLDER
    genre: str | None = PLACEHOLDER

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FilmItem":
        """Build an item from a remote ``content`` row, applying defaults."""

        return cls(**_row_fields(row))

    @classmethod
    def from_created_row(
        cls, row: Mapping[str, Any], episodes: list[Episode] | None = None
    ) -> "FilmItem":
        """Build an item from the row echoed back by an insert.

        Only ``description`` is defaulted; every other column is taken as-is.
        """

        return cls(**_created_row_fields(row))

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase representation used by local storage and the API."""

        return self.model_dump(by_alias=True, exclude_none=True)


class SeriesItem(FilmItem):
    """A series entry; ``video_url`` mirrors the first episode."""

    episodes: list[Episode] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SeriesItem":
        episodes = _coerce_episodes(row.get("episodes"))
        if not episodes:
            episodes = Episode.synthesize(row.get("video_url"))
        return cls(**_row_fields(row), episodes=episodes)

    @classmethod
    def from_created_row(
        cls, row: Mapping[str, Any], episodes: list[Episode] | None = None
    ) -> "SeriesItem":
        return cls(**_created_row_fields(row), episodes=list(episodes or []))

    def normalized(self) -> "SeriesItem":
        """Return the item with a synthesized episode list when it has none."""

        if self.episodes:
            return self
        return self.model_copy(update={"episodes": Episode.synthesize(self.video_url)})


ItemT = TypeVar("ItemT", bound=FilmItem)


class Catalog(BaseModel):
    """All films and series known to the service."""

    films: list[FilmItem] = Field(default_factory=list)
    series: list[SeriesItem] = Field(default_factory=list)

    @classmethod
    def from_storage(cls, payload: str, *, normalize: bool = True) -> "Catalog":
        """Parse the JSON text kept in local storage.

        Raises ``ValueError`` for malformed text or an unexpected shape.
        """

        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("Stored catalog must be a JSON object")
        catalog = cls.model_validate(
            {"films": data.get("films") or [], "series": data.get("series") or []}
        )
        if normalize:
            catalog.series = [item.normalized() for item in catalog.series]
        return catalog

    def to_storage(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def items_for(self, category: Category) -> list[Any]:
        """Return the live list backing ``category``."""

        return self.films if category == "film" else self.series

    def find(self, category: Category, item_id: str) -> FilmItem | None:
        for item in self.items_for(category):
            if item.id == item_id:
                return item
        return None


class ItemPatch(BaseModel):
    """Partial update for a catalog item.

    A field takes part in the update only when it was explicitly provided, even
    if the provided value is empty or ``None``.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    title: str | None = None
    description: str | None = None
    image: str | None = None
    video_url: str | None = Field(default=None, alias="videoUrl")
    duration: str | None = None
    year: str | None = None
    genre: str | None = None
    episodes: list[Episode] | None = None

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set

    def to_row(self, *, include_description: bool = True) -> dict[str, Any]:
        """Return the remote ``PATCH`` body for the provided fields."""

        body: dict[str, Any] = {}
        if self.is_set("title"):
            body["title"] = self.title
        if include_description and self.is_set("description"):
            body["description"] = self.description or ""
        if self.is_set("image"):
            body["image"] = self.image
        if self.is_set("video_url"):
            body["video_url"] = self.video_url
        for name in ("duration", "year", "genre"):
            if self.is_set(name):
                body[name] = getattr(self, name)
        if self.is_set("episodes"):
            body["episodes"] = (
                None if self.episodes is None else _dump_episodes(self.episodes)
            )
        if self.episodes and not body.get("video_url"):
            body["video_url"] = self.episodes[0].video_url
        return body

    def apply(self, item: ItemT) -> ItemT:
        """Return ``item`` with the provided fields replaced.

        Fields the target entity does not carry (``episodes`` on a film) are
        ignored.
        """

        known = type(item).model_fields
        updates = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in known
        }
        return item.model_copy(update=updates)


def build_row(category: Category, item: FilmItem) -> dict[str, Any]:
    """Return the remote ``POST`` body for a new item."""

    episodes = getattr(item, "episodes", None) if category == "serie" else None
    first_video_url = episodes[0].video_url if episodes else (item.video_url or "")
    row: dict[str, Any] = {
        "type": category,
        "title": item.title,
        "description": item.description or "",
        "image": item.image or "",
        "video_url": first_video_url or item.video_url or "",
        "duration": item.duration or PLACEHOLDER,
        "year": item.year or PLACEHOLDER,
        "genre": item.genre or PLACEHOLDER,
    }
    if episodes:
        row["episodes"] = _dump_episodes(episodes)
    return row


def _row_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "description": row.get("description") or "",
        "image": row.get("image") or "",
        "video_url": row.get("video_url"),
        "duration": row.get("duration") or PLACEHOLDER,
        "year": row.get("year") or PLACEHOLDER,
        "genre": row.get("genre") or PLACEHOLDER,
    }


def _created_row_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "description": row.get("description") or "",
        "image": row.get("image"),
        "video_url": row.get("video_url"),
        "duration": row.get("duration"),
        "year": row.get("year"),
        "genre": row.get("genre"),
    }


def _coerce_episodes(value: Any) -> list[Episode]:
    return [
        Episode.model_validate(entry)
        for entry in decode_json_list(value)
        if isinstance(entry, dict)
    ]


def _dump_episodes(episodes: list[Episode]) -> list[dict[str, Any]]:
    return [episode.model_dump(by_alias=True, exclude_none=True) for episode in episodes]
