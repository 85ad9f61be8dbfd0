import json

from novastream.models import (
    DEFAULT_EPISODE_TITLE,
    Catalog,
    Episode,
    FilmItem,
    ItemPatch,
    SeriesItem,
    build_row,
    normalize_category,
)


def test_normalize_category_maps_unknown_values_to_series():
    assert normalize_category("film") == "film"
    assert normalize_category("serie") == "serie"
    assert normalize_category("series") == "serie"
    assert normalize_category("anything") == "serie"


def test_film_from_row_applies_defaults():
    item = FilmItem.from_row(
        {"id": 7, "title": "Arrival", "video_url": "https://cdn.example.com/a.mp4", "year": 2016}
    )

    assert item.to_payload() == {
        "id": "7",
        "title": "Arrival",
        "description": "",
        "image": "",
        "videoUrl": "https://cdn.example.com/a.mp4",
        "duration": "-",
        "year": "2016",
        "genre": "-",
    }


def test_series_from_row_decodes_serialized_episodes():
    episodes = [
        {"season": 1, "episode": 1, "title": "Pilot", "videoUrl": "https://cdn.example.com/s1e1.mp4"},
        {"season": 1, "episode": 2, "title": "Second", "videoUrl": "https://cdn.example.com/s1e2.mp4"},
    ]
    item = SeriesItem.from_row(
        {"id": "s1", "title": "Dark", "video_url": "https://cdn.example.com/s1e1.mp4", "episodes": json.dumps(episodes)}
    )

    assert [episode.title for episode in item.episodes] == ["Pilot", "Second"]
    assert item.episodes[1].video_url == "https://cdn.example.com/s1e2.mp4"


def test_series_from_row_synthesizes_single_episode():
    item = SeriesItem.from_row({"id": "s2", "title": "Legacy", "video_url": "https://x/v.mp4", "episodes": "[broken"})

    assert [episode.model_dump(by_alias=True) for episode in item.episodes] == [
        {"season": 1, "episode": 1, "title": DEFAULT_EPISODE_TITLE, "videoUrl": "https://x/v.mp4"}
    ]


def test_series_from_row_without_video_url_has_no_episodes():
    item = SeriesItem.from_row({"id": "s3", "title": "Empty", "episodes": []})
    assert item.episodes == []


def test_episode_keeps_unknown_keys():
    episode = Episode.model_validate({"season": 2, "title": "Finale", "videoUrl": "https://x/f.mp4", "subtitle": "fr"})
    assert episode.model_dump(by_alias=True, exclude_none=True) == {
        "season": 2,
        "title": "Finale",
        "videoUrl": "https://x/f.mp4",
        "subtitle": "fr",
    }


def test_catalog_from_storage_normalizes_series():
    stored = json.dumps(
        {
            "films": [{"id": "f1", "title": "Heat", "videoUrl": "https://x/heat.mp4"}],
            "series": [{"id": "s1", "title": "Legacy", "videoUrl": "https://x/legacy.mp4"}],
        }
    )

    catalog = Catalog.from_storage(stored)
    raw = Catalog.from_storage(stored, normalize=False)

    assert catalog.films[0].video_url == "https://x/heat.mp4"
    assert len(catalog.series[0].episodes) == 1
    assert catalog.series[0].episodes[0].video_url == "https://x/legacy.mp4"
    assert raw.series[0].episodes == []


def test_catalog_from_storage_tolerates_missing_sections():
    catalog = Catalog.from_storage('{"films": null}')
    assert catalog.films == []
    assert catalog.series == []


def test_catalog_storage_uses_camel_case_names():
    catalog = Catalog(films=[FilmItem(id="f1", title="Heat", video_url="https://x/heat.mp4")])
    payload = json.loads(catalog.to_storage())

    assert payload["films"][0]["videoUrl"] == "https://x/heat.mp4"
    assert "video_url" not in payload["films"][0]
    assert payload["series"] == []


def test_build_row_for_series_uses_first_episode_url():
    item = SeriesItem(
        title="Dark",
        video_url="https://x/ignored.mp4",
        episodes=[Episode(season=1, episode=1, title="Pilot", video_url="https://x/pilot.mp4")],
    )

    row = build_row("serie", item)

    assert row["type"] == "serie"
    assert row["video_url"] == "https://x/pilot.mp4"
    assert row["episodes"] == [
        {"season": 1, "episode": 1, "title": "Pilot", "videoUrl": "https://x/pilot.mp4"}
    ]


def test_build_row_for_film_omits_episodes_and_applies_defaults():
    row = build_row("film", FilmItem(title="Foo", video_url="http://x/v.mp4", duration=None))

    assert row == {
        "type": "film",
        "title": "Foo",
        "description": "",
        "image": "",
        "video_url": "http://x/v.mp4",
        "duration": "-",
        "year": "-",
        "genre": "-",
    }


def test_item_patch_body_only_contains_provided_fields():
    patch = ItemPatch.model_validate({"title": "New", "description": None, "year": ""})

    assert patch.to_row() == {"title": "New", "description": "", "year": ""}
    assert patch.to_row(include_description=False) == {"title": "New", "year": ""}


def test_item_patch_defaults_video_url_from_episodes():
    patch = ItemPatch.model_validate(
        {"episodes": [{"season": 1, "title": "Pilot", "videoUrl": "https://x/pilot.mp4"}]}
    )

    assert patch.to_row()["video_url"] == "https://x/pilot.mp4"

    explicit = ItemPatch.model_validate(
        {
            "videoUrl": "https://x/trailer.mp4",
            "episodes": [{"season": 1, "title": "Pilot", "videoUrl": "https://x/pilot.mp4"}],
        }
    )
    assert explicit.to_row()["video_url"] == "https://x/trailer.mp4"


def test_item_patch_apply_keeps_untouched_fields():
    item = FilmItem(id="item_1", title="Old", description="Plot", genre="Drama")

    updated = ItemPatch(title="New").apply(item)

    assert updated.title == "New"
    assert updated.description == "Plot"
    assert updated.genre == "Drama"
    assert item.title == "Old"


def test_item_patch_apply_ignores_episodes_on_films():
    patch = ItemPatch.model_validate({"episodes": [{"season": 1, "title": "Pilot"}]})
    updated = patch.apply(FilmItem(id="f1", title="Heat"))

    assert "episodes" not in updated.to_payload()


def test_episode_tolerates_missing_or_unparseable_numbering():
    episodes = [
        Episode.model_validate({"season": None, "title": "Pilot", "videoUrl": "https://x/p.mp4"}),
        Episode.model_validate({"season": "NaN", "episode": "", "title": None}),
        Episode.model_validate({"season": "2", "episode": 3.0}),
    ]

    assert [(episode.season, episode.episode) for episode in episodes] == [
        (None, None),
        (None, None),
        (2, 3),
    ]
    assert episodes[1].title is None


def test_series_with_loose_episode_survives_storage_round_trip():
    item = SeriesItem.from_row(
        {"id": "s1", "title": "Dark", "episodes": [{"season": None, "title": "Pilot", "videoUrl": "https://x/p.mp4"}]}
    )
    catalog = Catalog(series=[item])

    assert Catalog.from_storage(catalog.to_storage()) == catalog
