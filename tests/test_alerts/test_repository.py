"""Tests for AlertStore with an in-memory durable store."""

import asyncio
from unittest.mock import AsyncMock

from src.alerts.repository import AlertStore
from src.alerts.schemas import AIReview
from src.storage.durable_store import ALERTS_KEY, InMemoryStore, QuotaExceededError


class TestEnqueue:
    async def test_enqueue_appends(self, store, make_alert):
        alerts = AlertStore(store)
        first = await alerts.enqueue_alert(make_alert("A"))
        second = await alerts.enqueue_alert(make_alert("B"))

        stored = await alerts.read_alerts()
        assert [a.id for a in stored] == [first.id, second.id]

    async def test_enqueue_caps_collection(self, store, make_alert):
        alerts = AlertStore(store, max_stored_alerts=3)
        for i in range(5):
            await alerts.enqueue_alert(make_alert(f"Alert {i}"))

        stored = await alerts.read_alerts()
        assert [a.title for a in stored] == ["Alert 2", "Alert 3", "Alert 4"]

    async def test_enqueue_hands_off_to_dispatcher(self, store, make_alert):
        dispatcher = AsyncMock()
        alerts = AlertStore(store, dispatcher=dispatcher)
        alert = await alerts.enqueue_alert(make_alert())
        await asyncio.sleep(0)

        dispatcher.send_alert.assert_awaited_once_with(alert)

    async def test_dispatcher_error_does_not_reach_caller(self, store, make_alert):
        dispatcher = AsyncMock()
        dispatcher.send_alert.side_effect = RuntimeError("queue broken")
        alerts = AlertStore(store, dispatcher=dispatcher)

        await alerts.enqueue_alert(make_alert())
        await asyncio.sleep(0)
        assert len(await alerts.read_alerts()) == 1

    async def test_concurrent_enqueues_are_not_lost(self, store, make_alert):
        alerts = AlertStore(store)
        await asyncio.gather(*(alerts.enqueue_alert(make_alert(f"A{i}")) for i in range(10)))
        assert len(await alerts.read_alerts()) == 10


class TestRead:
    async def test_empty(self, store):
        assert await AlertStore(store).read_alerts() == []

    async def test_corrupt_collection_reads_empty(self, store):
        await store.write(ALERTS_KEY, [{"no": "type"}])
        assert await AlertStore(store).read_alerts() == []

    async def test_bad_record_does_not_hide_the_rest(self, store, make_alert):
        good = make_alert("Good").to_dict()
        bad = dict(make_alert("Bad").to_dict(), severity="warning")
        await store.write(ALERTS_KEY, [good, bad, {"id": "x", "type": "API Failure"}])
        alerts = AlertStore(store)

        assert [a.title for a in await alerts.read_alerts()] == ["Good"]

        new = await alerts.enqueue_alert(make_alert("New"))

        stored = await store.read(ALERTS_KEY)
        assert [a["id"] for a in stored] == [good["id"], new.id]

    async def test_non_list_collection_reads_empty(self, store):
        await store.write(ALERTS_KEY, {"id": "not-a-list"})
        assert await AlertStore(store).read_alerts() == []

    async def test_get_by_id(self, store, make_alert):
        alerts = AlertStore(store)
        alert = await alerts.enqueue_alert(make_alert())
        assert (await alerts.get_by_id(alert.id)).id == alert.id
        assert await alerts.get_by_id("missing") is None


class TestQuotaHandling:
    async def test_prunes_oldest_and_retries_once(self, make_alert):
        backing = InMemoryStore()
        store = AsyncMock(wraps=backing)
        calls = 0

        async def write(key, value):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise QuotaExceededError(key)
            return await backing.write(key, value)

        store.write.side_effect = write
        older = make_alert("Older", minutes_old=10)
        newer = make_alert("Newer", minutes_old=1)

        ok = await AlertStore(store).write_alerts([newer, older])

        assert ok is True
        assert calls == 2
        stored = await backing.read(ALERTS_KEY)
        assert [a["title"] for a in stored] == ["Newer"]

    async def test_second_failure_abandons_write(self, make_alert):
        store = AsyncMock()
        store.write.side_effect = QuotaExceededError(ALERTS_KEY)

        ok = await AlertStore(store).write_alerts([make_alert(), make_alert()])

        assert ok is False
        assert store.write.await_count == 2

    async def test_enqueue_survives_full_store(self, make_alert):
        store = InMemoryStore(quota_bytes=1024)
        alerts = AlertStore(store)
        await alerts.enqueue_alert(make_alert(details_blob="x" * 2000))
        assert await alerts.read_alerts() == []


class TestApplyReviewUpdates:
    async def test_keeps_alerts_added_during_review(self, store, make_alert):
        alerts = AlertStore(store)
        reviewed = await alerts.enqueue_alert(make_alert("Reviewed"))

        snapshot = (await alerts.read_alerts())[0]
        await alerts.enqueue_alert(make_alert("Arrived later"))

        snapshot.ai_review = AIReview(status="completed", provider="GPT-4", summary="fine")
        snapshot.add_note("[AI Review] fine", author="ai-background-agent")
        assert await alerts.apply_review_updates([snapshot]) is True

        stored = await alerts.read_alerts()
        assert [a.title for a in stored] == ["Reviewed", "Arrived later"]
        merged = await alerts.get_by_id(reviewed.id)
        assert merged.ai_review.is_completed
        assert merged.notes[0].text == "[AI Review] fine"

    async def test_never_replaces_completed_review(self, store, make_alert):
        alerts = AlertStore(store)
        alert = await alerts.enqueue_alert(
            make_alert(review=AIReview(status="completed", summary="original"))
        )
        update = (await alerts.read_alerts())[0]
        update.ai_review = AIReview(status="failed", error="late failure")

        await alerts.apply_review_updates([update])

        stored = await alerts.get_by_id(alert.id)
        assert stored.ai_review.summary == "original"

    async def test_skips_removed_alerts(self, store, make_alert):
        alerts = AlertStore(store)
        ghost = make_alert("Gone")
        ghost.ai_review = AIReview(status="completed")
        await alerts.enqueue_alert(make_alert("Kept"))

        await alerts.apply_review_updates([ghost])

        stored = await alerts.read_alerts()
        assert [a.title for a in stored] == ["Kept"]
        assert stored[0].ai_review is None

    async def test_empty_batch_is_noop(self, store):
        assert await AlertStore(store).apply_review_updates([]) is True
