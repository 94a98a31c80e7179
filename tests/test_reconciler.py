"""
Tests for the index reconciler.

Covers:
- Additive passes: new episodes added, known episodes untouched, idempotence
- Per-item failures recorded as warnings without aborting the batch
- Preservation rebuild: curated fields, identifiers and status carried over
- Preservation merge rules in isolation
"""

from unittest.mock import patch

import pytest

from cuentame_sync.ingestion import builder
from cuentame_sync.models.entities import (
    Episode,
    EpisodesIndex,
    EpisodeStatus,
    Translation,
    create_empty_index,
)
from cuentame_sync.reconcile.reconciler import (
    build_preservation_source,
    merge_preserved,
    reconcile_additive,
    reconcile_rebuild,
)


def _stored(number: int, **overrides) -> Episode:
    fields = {
        "episode_id": f"stored-{number}",
        "episode_number": number,
        "title": f"{number}. Guardado",
        "publish_date": "2023-01-01T00:00:00.000Z",
        "audio_url": f"https://old/ep{number}.mp3",
    }
    fields.update(overrides)
    return Episode(**fields)


def _item(number: int, **overrides):
    item = {
        "title": f"{number}. Episodio",
        "pubDate": "2024-01-01",
        "enclosure": {"url": f"https://x/ep{number}.mp3"},
    }
    item.update(overrides)
    return item


# ===================================================================
# Additive mode
# ===================================================================

class TestReconcileAdditive:
    """Tests for reconcile_additive()."""

    def test_adds_all_items_to_empty_index(self, sample_items, title_first):
        result = reconcile_additive(sample_items, create_empty_index(), title_first)

        assert result.added_count == 3
        assert result.has_changes
        assert sorted(result.index.episode_numbers) == [0, 193, 194]
        assert result.warnings == []

    def test_feed_order_is_kept(self, sample_items, title_first):
        result = reconcile_additive(sample_items, create_empty_index(), title_first)
        assert result.index.episode_numbers == [194, 193, 0]

    def test_second_pass_adds_nothing(self, sample_items, title_first):
        first = reconcile_additive(sample_items, create_empty_index(), title_first)
        second = reconcile_additive(sample_items, first.index, title_first)

        assert second.added_count == 0
        assert not second.has_changes
        assert second.index == first.index
        assert second.skipped_count == 3

    def test_second_pass_idempotent_with_hint_first(self, hint_first):
        items = [
            {"title": "Sin número", "enclosure": {"url": "https://x/a.mp3"}, "pubDate": "2024-01-01"},
            {"title": "Otro", "enclosure": {"url": "https://x/b.mp3"}, "pubDate": "2024-01-02"},
        ]

        first = reconcile_additive(items, create_empty_index(), hint_first)
        second = reconcile_additive(items, first.index, hint_first)

        assert first.index.episode_numbers == [1, 2]
        assert second.added_count == 0

    def test_curated_record_not_clobbered(self, title_first):
        curated = _stored(
            194,
            shownotes="Notes",
            status=EpisodeStatus.PUBLISHED,
            audio_url="https://x/ep194.mp3",
        )
        index = EpisodesIndex(episodes=(curated,))

        result = reconcile_additive([_item(194)], index, title_first)

        assert result.added_count == 0
        assert result.index.episodes == (curated,)

    @pytest.mark.parametrize(
        "item",
        [
            _item(500, enclosure={"url": "https://old/ep194.mp3"}),
            _item(500, title="194. Guardado", pubDate="2023-01-01"),
        ],
    )
    def test_match_on_url_or_title_and_date(self, item, title_first):
        index = EpisodesIndex(episodes=(_stored(194),))

        result = reconcile_additive([item], index, title_first)

        assert result.added_count == 0

    def test_bad_items_do_not_abort_batch(self, title_first):
        items = [
            {"title": "1. Sin audio"},
            None,
            _item(2),
            {"title": "Especial", "enclosure": {"url": "https://x/s.mp3"}},
            _item(3, pubDate="nonsense"),
            _item(4),
        ]

        result = reconcile_additive(items, create_empty_index(), title_first)

        assert result.index.episode_numbers == [2, 4]
        assert [w.position for w in result.warnings] == [0, 3, 4]
        assert result.skipped_count == 3

    def test_unexpected_error_recorded_as_warning(self, title_first):
        real_build = builder.build_episode

        def flaky_build(item, *args, **kwargs):
            if item["title"] == "boom":
                raise RuntimeError("boom")
            return real_build(item, *args, **kwargs)

        with patch("cuentame_sync.reconcile.reconciler.build_episode", side_effect=flaky_build):
            result = reconcile_additive(
                [{"title": "boom"}, _item(7)], create_empty_index(), title_first
            )

        assert result.index.episode_numbers == [7]
        assert result.warnings[0].title == "boom"
        assert "error: boom" in result.warnings[0].reason

    def test_review_warning_for_hint_fallback(self, title_first):
        item = {"title": "Especial", "enclosure": {"url": "https://x/s.mp3"}, "itunes:episode": "88"}

        result = reconcile_additive([item], create_empty_index(), title_first)

        assert result.added_count == 1
        assert "needs manual review" in result.warnings[0].reason

    def test_input_index_not_mutated(self, sample_items, title_first):
        index = create_empty_index()

        reconcile_additive(sample_items, index, title_first)

        assert index.episodes == ()


# ===================================================================
# Preservation rebuild
# ===================================================================

class TestReconcileRebuild:
    """Tests for reconcile_rebuild()."""

    def test_published_episode_keeps_notes_and_status(self, title_first):
        source = build_preservation_source(
            EpisodesIndex(episodes=(_stored(194, shownotes="Notes", status=EpisodeStatus.PUBLISHED),))
        )

        result = reconcile_rebuild([_item(194)], source, title_first)

        episode = result.index.episodes[0]
        assert episode.shownotes == "Notes"
        assert episode.status == EpisodeStatus.PUBLISHED
        assert episode.episode_id == "stored-194"
        assert episode.audio_url == "https://x/ep194.mp3"
        assert result.preserved_count == 1
        assert result.added_count == 0

    def test_pending_publish_never_reset_to_draft(self, title_first):
        source = {194: _stored(194, status=EpisodeStatus.PENDING_PUBLISH)}

        result = reconcile_rebuild([_item(194)], source, title_first)

        assert result.index.episodes[0].status == EpisodeStatus.PENDING_PUBLISH

    def test_new_episode_gets_fresh_identity(self, title_first):
        result = reconcile_rebuild(
            [_item(195)], {194: _stored(194)}, title_first, id_factory=lambda: "fresh"
        )

        assert result.index.episodes[0].episode_id == "fresh"
        assert result.added_count == 1

    def test_episodes_missing_from_feed_are_dropped(self, title_first):
        source = {193: _stored(193), 194: _stored(194)}

        result = reconcile_rebuild([_item(194)], source, title_first)

        assert result.index.episode_numbers == [194]

    def test_duplicate_feed_items_skipped(self, title_first):
        items = [_item(194), _item(194, enclosure={"url": "https://x/mirror.mp3"})]

        result = reconcile_rebuild(items, {}, title_first)

        assert len(result.index.episodes) == 1
        assert result.index.episodes[0].audio_url == "https://x/ep194.mp3"

    def test_links_refreshed_from_feed(self, title_first):
        source = {194: _stored(194, google_docs_urls=["https://docs.google.com/document/d/OLD"])}
        item = _item(194, description="https://docs.google.com/document/d/NEW")

        result = reconcile_rebuild([item], source, title_first)

        assert result.index.episodes[0].google_docs_urls == [
            "https://docs.google.com/document/d/NEW"
        ]

    def test_empty_feed_yields_empty_index(self, title_first):
        result = reconcile_rebuild([], {194: _stored(194)}, title_first)

        assert result.index.episodes == ()
        assert result.processed_count == 0

    def test_bad_items_recorded(self, title_first):
        result = reconcile_rebuild([{"title": "Especial"}, _item(1)], {}, title_first)

        assert result.index.episode_numbers == [1]
        assert len(result.warnings) == 1

    def test_preservation_source_not_modified(self, title_first):
        stored = _stored(194, shownotes="Notes")
        source = {194: stored}

        reconcile_rebuild([_item(194)], source, title_first)

        assert source == {194: stored}


# ===================================================================
# Merge rules
# ===================================================================

class TestMergePreserved:
    """Tests for merge_preserved()."""

    def _candidate(self, **overrides) -> Episode:
        fields = {
            "episode_id": "candidate",
            "episode_number": 194,
            "title": "194. Nuevo título",
            "publish_date": "2024-01-01T00:00:00.000Z",
            "audio_url": "https://x/ep194.mp3",
        }
        fields.update(overrides)
        return Episode(**fields)

    def test_feed_fields_come_from_candidate(self):
        merged = merge_preserved(self._candidate(), _stored(194))

        assert merged.title == "194. Nuevo título"
        assert merged.audio_url == "https://x/ep194.mp3"
        assert merged.publish_date == "2024-01-01T00:00:00.000Z"

    def test_id_always_preserved(self):
        assert merge_preserved(self._candidate(), _stored(194)).episode_id == "stored-194"

    def test_empty_old_shownotes_take_candidate(self):
        merged = merge_preserved(self._candidate(shownotes="Feed notes"), _stored(194))
        assert merged.shownotes == "Feed notes"

    def test_translations_preserved(self):
        translation = Translation(spanish="hola", english="hello", start_index=0, end_index=4)

        merged = merge_preserved(self._candidate(), _stored(194, translations=[translation]))

        assert merged.translations == [translation]

    def test_empty_old_translations_take_candidate(self):
        translation = Translation(spanish="adiós", english="bye", start_index=5, end_index=10)

        merged = merge_preserved(self._candidate(translations=[translation]), _stored(194))

        assert merged.translations == [translation]

    @pytest.mark.parametrize(
        "old_status, new_status, expected",
        [
            (EpisodeStatus.DRAFT, EpisodeStatus.DRAFT, EpisodeStatus.DRAFT),
            (EpisodeStatus.PUBLISHED, EpisodeStatus.DRAFT, EpisodeStatus.PUBLISHED),
            (EpisodeStatus.PENDING_PUBLISH, EpisodeStatus.DRAFT, EpisodeStatus.PENDING_PUBLISH),
            (EpisodeStatus.DRAFT, EpisodeStatus.PUBLISHED, EpisodeStatus.PUBLISHED),
            (EpisodeStatus.PUBLISHED, EpisodeStatus.PENDING_PUBLISH, EpisodeStatus.PENDING_PUBLISH),
        ],
    )
    def test_status_only_blocks_reversion_to_draft(self, old_status, new_status, expected):
        merged = merge_preserved(self._candidate(status=new_status), _stored(194, status=old_status))
        assert merged.status == expected


class TestBuildPreservationSource:

    def test_keyed_by_number(self):
        index = EpisodesIndex(episodes=(_stored(1), _stored(2)))
        assert set(build_preservation_source(index)) == {1, 2}

    def test_later_duplicate_wins(self):
        index = EpisodesIndex(episodes=(_stored(1), _stored(1, episode_id="later")))
        assert build_preservation_source(index)[1].episode_id == "later"

    def test_none_index(self):
        assert build_preservation_source(None) == {}
