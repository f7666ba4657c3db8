"""Tests for the persistence adapter."""

import asyncio
import datetime as dt

import pytest

from conftest import BASE_TIME
from match_engine.errors import StaleModelError
from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.persistence.repository import (
    SwipeMetadata,
    canonical_pair,
    consume_refresh_counter,
    ensure_preference_model,
    fetch_candidate_pool,
    fetch_refresh_counter,
    fetch_swipe_history,
    fetch_user_profile,
    load_preference_model,
    load_swipe_stats,
    record_swipe_stats,
    save_preference_model,
    set_match_state,
    upsert_swipe_event,
)
from match_engine.ranking.candidate_pool import BoundingBox, CandidateFilters


def test_canonical_pair() -> None:
    assert canonical_pair("bob", "alice") == ("alice", "bob")
    assert canonical_pair("alice", "bob") == ("alice", "bob")


class TestProfiles:
    async def test_fetch_user_profile(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session:
            alice = await fetch_user_profile(session, "alice")
            missing = await fetch_user_profile(session, "zoe")

        assert alice["interests"] == frozenset({"hiking", "music", "travel"})
        assert alice["preferences"]["max_distance_km"] is None
        assert alice["last_active_at"] == BASE_TIME
        assert missing is None


class TestCandidatePool:
    async def _pool(self, session_factory, viewer_id: str, **kwargs) -> list[str]:
        filters = CandidateFilters(limit=kwargs.pop("limit", 100), **kwargs)
        async with session_factory() as session:
            pool = await fetch_candidate_pool(session, viewer_id, filters)
        return [c["id"] for c in pool]

    async def test_ordered_by_activity(self, test_session_factory, seeded_users) -> None:
        assert await self._pool(test_session_factory, "alice") == ["bob", "carol", "dave"]

    async def test_limit(self, test_session_factory, seeded_users) -> None:
        assert await self._pool(test_session_factory, "alice", limit=1) == ["bob"]

    async def test_exclusions(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            await upsert_swipe_event(session, "alice", "carol", "dislike", SwipeMetadata(), BASE_TIME)

        pool = await self._pool(test_session_factory, "alice", exclude_ids=frozenset({"dave"}))
        assert pool == ["bob"]

    async def test_age_filter_passes_unknown_age(self, test_session_factory, add_user, seeded_users) -> None:
        await add_user("ageless", last_active_at=BASE_TIME - dt.timedelta(days=2))
        pool = await self._pool(test_session_factory, "alice", age_min=32, age_max=45)
        assert pool == ["carol", "dave", "ageless"]

    async def test_gender_filter_case_insensitive(self, test_session_factory, seeded_users) -> None:
        assert await self._pool(test_session_factory, "alice", gender="MALE") == ["bob", "dave"]

    async def test_bounding_box_passes_unknown_location(
        self, test_session_factory, add_user, seeded_users
    ) -> None:
        await add_user("nowhere", last_active_at=BASE_TIME - dt.timedelta(days=2))
        box = BoundingBox(min_lat=47.0, max_lat=49.0, min_lon=7.0, max_lon=9.0)
        pool = await self._pool(test_session_factory, "alice", bounding_box=box)
        assert pool == ["bob", "carol", "nowhere"]

    async def test_bounding_box_across_antimeridian(self, test_session_factory, add_user) -> None:
        await add_user("viewer")
        await add_user("fiji", latitude=-17.0, longitude=179.5)
        await add_user("samoa", latitude=-17.0, longitude=-179.5)
        await add_user("lisbon", latitude=38.7, longitude=-9.1)
        box = BoundingBox(min_lat=-20.0, max_lat=-15.0, min_lon=179.0, max_lon=-179.0)

        pool = await self._pool(test_session_factory, "viewer", bounding_box=box)

        assert sorted(pool) == ["fiji", "samoa"]


class TestSwipes:
    async def test_upsert_returns_previous(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            _, first = await upsert_swipe_event(
                session, "alice", "bob", "like", SwipeMetadata(), BASE_TIME
            )
            event, second = await upsert_swipe_event(
                session, "alice", "bob", "dislike", SwipeMetadata(), BASE_TIME + dt.timedelta(hours=1)
            )

        assert first is None
        assert second == "like"
        assert event.direction == "dislike"

    async def test_history_newest_first(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            for i, target in enumerate(["bob", "carol", "dave"]):
                await upsert_swipe_event(
                    session, "alice", target, "like", SwipeMetadata(), BASE_TIME + dt.timedelta(minutes=i)
                )

        async with test_session_factory() as session:
            history = await fetch_swipe_history(session, "alice", limit=2)

        assert [s.target_age for s in history] == [33, 40]
        assert history[0].target_interests == frozenset({"hiking"})


class TestPreferenceModels:
    async def test_ensure_creates_once(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            created = await ensure_preference_model(session, "alice")
        async with test_session_factory() as session, session.begin():
            again = await ensure_preference_model(session, "alice")

        assert created.is_empty
        assert again.version == 0

    async def test_ensure_concurrent_first_requests(self, test_session_factory, seeded_users) -> None:
        async def ensure() -> ImplicitPreferenceModel:
            async with test_session_factory() as session, session.begin():
                return await ensure_preference_model(session, "alice")

        first, second = await asyncio.gather(ensure(), ensure())

        assert first.version == second.version == 0
        assert first.is_empty and second.is_empty

    async def test_stale_version_rejected(self, test_session_factory, seeded_users) -> None:
        model = ImplicitPreferenceModel(user_id="alice", tag_weights={"hiking": 0.5}, sample_count=4)
        async with test_session_factory() as session, session.begin():
            saved = await save_preference_model(session, model)
        assert saved.version == 1

        with pytest.raises(StaleModelError):
            async with test_session_factory() as session, session.begin():
                await save_preference_model(session, model)

        async with test_session_factory() as session:
            stored = await load_preference_model(session, "alice")
        assert stored.version == 1
        assert stored.tag_weights == {"hiking": 0.5}


class TestMatches:
    async def test_deactivating_unknown_pair_is_noop(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            assert await set_match_state(session, "bob", "alice", False, BASE_TIME) is None

    async def test_match_stored_canonically(self, test_session_factory, seeded_users) -> None:
        async with test_session_factory() as session, session.begin():
            match = await set_match_state(session, "carol", "alice", True, BASE_TIME)

        assert (match.user_a_id, match.user_b_id) == ("alice", "carol")
        assert match.active


class TestSwipeStats:
    async def _record(self, session_factory, direction: str, metadata: SwipeMetadata, at=BASE_TIME):
        async with session_factory() as session, session.begin():
            await record_swipe_stats(session, "alice", direction, metadata, at)

    async def test_averages_count_only_swipes_with_metadata(
        self, test_session_factory, seeded_users
    ) -> None:
        await self._record(test_session_factory, "like", SwipeMetadata())
        timed = SwipeMetadata(swipe_latency_ms=1000, profile_view_duration_ms=400)
        await self._record(test_session_factory, "dislike", timed)
        await self._record(test_session_factory, "super_like", SwipeMetadata(swipe_latency_ms=3000))

        async with test_session_factory() as session:
            stats = await load_swipe_stats(session, "alice")

        assert stats.swipe_count == 3
        assert stats.latency_samples == 2
        assert stats.avg_swipe_latency_ms == pytest.approx(2000.0)
        assert stats.avg_profile_view_ms == pytest.approx(400.0)
        assert stats.like_ratio == pytest.approx(2 / 3)

    async def test_no_metadata_leaves_averages_unset(self, test_session_factory, seeded_users) -> None:
        await self._record(test_session_factory, "dislike", SwipeMetadata())

        async with test_session_factory() as session:
            stats = await load_swipe_stats(session, "alice")

        assert stats.avg_swipe_latency_ms is None
        assert stats.avg_profile_view_ms is None
        assert stats.like_ratio == 0.0
        assert stats.active_hours[BASE_TIME.hour] == 1

    async def test_consume_keeps_swipes_recorded_after_read(
        self, test_session_factory, seeded_users
    ) -> None:
        for _ in range(3):
            await self._record(test_session_factory, "like", SwipeMetadata())

        async with test_session_factory() as session, session.begin():
            await consume_refresh_counter(session, "alice", observed=2)
        async with test_session_factory() as session:
            assert await fetch_refresh_counter(session, "alice") == 1

        async with test_session_factory() as session, session.begin():
            await consume_refresh_counter(session, "alice", observed=5)
        async with test_session_factory() as session:
            assert await fetch_refresh_counter(session, "alice") == 0
