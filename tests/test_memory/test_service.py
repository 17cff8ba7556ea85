"""Tests for consent-gated memory merging and persistence."""

import pytest

from src.memory.schemas import LearningsCandidate, ObservedPreference, Shortcut
from src.memory.service import AgentMemoryService, MemoryConfig
from src.storage.durable_store import MEMORY_KEY, InMemoryStore


def _prefs(*prefs: tuple[str, object, float]) -> LearningsCandidate:
    return LearningsCandidate(
        observed_preferences=[
            ObservedPreference(key=k, value=v, durability_days=d) for k, v, d in prefs
        ]
    )


@pytest.fixture
async def memory(store) -> AgentMemoryService:
    service = AgentMemoryService(store, MemoryConfig(durability_threshold_days=30))
    await service.load()
    return service


class TestLoad:
    async def test_defaults_when_absent(self, memory):
        snapshot = memory.get_memory()
        assert snapshot.defaults == {"export_format": "PDF"}
        assert snapshot.persona.tone == "balanced"
        assert snapshot.persona.confirmation_threshold == 0.7
        assert snapshot.consents.remember_preferences is True
        assert snapshot.consents.store_emails is False

    async def test_partial_stored_memory_merged_over_defaults(self, store):
        await store.write(MEMORY_KEY, {"avoid": ["emoji"]})
        service = AgentMemoryService(store)
        snapshot = await service.load()
        assert snapshot.avoid == ["emoji"]
        assert snapshot.defaults == {"export_format": "PDF"}

    async def test_invalid_stored_memory_falls_back(self, store):
        await store.write(MEMORY_KEY, {"persona": {"confirmation_threshold": 5}})
        snapshot = await AgentMemoryService(store).load()
        assert snapshot.persona.confirmation_threshold == 0.7

    async def test_get_memory_is_a_copy(self, memory):
        snapshot = memory.get_memory()
        snapshot.defaults["export_format"] = "TXT"
        assert memory.get_memory().defaults["export_format"] == "PDF"


class TestPreferences:
    async def test_durability_threshold(self, memory):
        await memory.update_from_learnings(
            _prefs(
                ("defaults.export_format", "DOCX", 45),
                ("defaults.deploy_target", "staging", 10),
            )
        )
        defaults = memory.get_memory().defaults
        assert defaults == {"export_format": "DOCX"}

    async def test_non_string_defaults_serialized(self, memory):
        await memory.update_from_learnings(_prefs(("defaults.page_size", 50, 90)))
        assert memory.get_memory().defaults["page_size"] == "50"

    async def test_persona_fields(self, memory):
        await memory.update_from_learnings(
            _prefs(
                ("persona.tone", "concise", 60),
                ("persona.prefers_no_filler", True, 60),
                ("persona.confirmation_threshold", 0.9, 60),
            )
        )
        persona = memory.get_memory().persona
        assert persona.tone == "concise"
        assert persona.prefers_no_filler is True
        assert persona.confirmation_threshold == 0.9

    async def test_invalid_persona_values_ignored(self, memory):
        await memory.update_from_learnings(
            _prefs(
                ("persona.tone", "sarcastic", 60),
                ("persona.confirmation_threshold", 1.5, 60),
                ("persona.nickname", "Ace", 60),
            )
        )
        persona = memory.get_memory().persona
        assert persona.tone == "balanced"
        assert persona.confirmation_threshold == 0.7
        assert not hasattr(persona, "nickname")

    async def test_dotted_names_kept_whole(self, memory):
        await memory.update_from_learnings(
            _prefs(
                ("defaults.export.format", "DOCX", 60),
                ("defaults.export.size", "A4", 60),
                ("persona.tone.level", "concise", 60),
            )
        )
        snapshot = memory.get_memory()
        assert snapshot.defaults["export.format"] == "DOCX"
        assert snapshot.defaults["export.size"] == "A4"
        assert "export" not in snapshot.defaults
        assert snapshot.persona.tone == "balanced"

    async def test_unknown_namespace_ignored(self, memory):
        await memory.update_from_learnings(_prefs(("consents.store_emails", True, 365)))
        assert memory.get_memory().consents.store_emails is False


class TestShortcuts:
    async def test_new_shortcut_appended(self, memory):
        await memory.update_from_learnings(
            LearningsCandidate(repeated_tasks=[Shortcut(name="digest", trigger_phrases=["digest"], steps=["a"])])
        )
        assert memory.get_memory().find_shortcut("digest").steps == ["a"]

    async def test_existing_shortcut_merged(self, memory):
        await memory.update_from_learnings(
            LearningsCandidate(repeated_tasks=[Shortcut(name="digest", trigger_phrases=["digest", "weekly"], steps=["a"])])
        )
        await memory.update_from_learnings(
            LearningsCandidate(repeated_tasks=[Shortcut(name="digest", trigger_phrases=["weekly", "recap"], steps=["b", "c"])])
        )

        snapshot = memory.get_memory()
        assert len(snapshot.shortcuts) == 1
        assert snapshot.shortcuts[0].trigger_phrases == ["digest", "weekly", "recap"]
        assert snapshot.shortcuts[0].steps == ["b", "c"]


class TestHistoryDigest:
    async def test_corrections_digest(self, memory):
        await memory.update_from_learnings(LearningsCandidate(corrections=["a", "b"]))
        digest = memory.get_memory().history_digest
        assert len(digest) == 1
        assert digest[0].endswith(": a; b")

    async def test_digest_keeps_last_ten(self, memory):
        for i in range(15):
            await memory.update_from_learnings(LearningsCandidate(corrections=[f"fix {i}"]))
        digest = memory.get_memory().history_digest
        assert len(digest) == 10
        assert digest[0].endswith("fix 5")
        assert digest[-1].endswith("fix 14")


class TestConsent:
    async def test_opt_out_resets_and_blocks_merges(self, memory):
        await memory.update_from_learnings(_prefs(("defaults.export_format", "DOCX", 90)))
        assert memory.get_memory().defaults["export_format"] == "DOCX"

        snapshot = await memory.update_consents(remember_preferences=False)
        assert snapshot.defaults == {"export_format": "PDF"}
        assert snapshot.consents.remember_preferences is False

        merged = await memory.update_from_learnings(_prefs(("defaults.export_format", "DOCX", 90)))
        assert merged is False
        assert memory.get_memory().defaults == {"export_format": "PDF"}

    async def test_opt_in_again_allows_merges(self, memory):
        await memory.update_consents(remember_preferences=False)
        await memory.update_consents(remember_preferences=True)
        assert await memory.update_from_learnings(_prefs(("defaults.export_format", "DOCX", 90)))

    async def test_extra_consents_kept(self, memory):
        snapshot = await memory.update_consents(share_usage=True)
        assert snapshot.consents.model_dump()["share_usage"] is True

    async def test_reset_keeps_consents(self, memory):
        await memory.update_consents(store_emails=True)
        await memory.update_from_learnings(_prefs(("persona.tone", "verbose", 90)))

        snapshot = await memory.reset()

        assert snapshot.persona.tone == "balanced"
        assert snapshot.consents.store_emails is True


class TestPersistence:
    async def test_updates_survive_reload(self, store, memory):
        await memory.update_from_learnings(_prefs(("defaults.export_format", "DOCX", 90)))

        reloaded = await AgentMemoryService(store).load()

        assert reloaded.defaults == {"export_format": "DOCX"}
        assert reloaded.last_updated_iso == memory.get_memory().last_updated_iso

    async def test_full_store_keeps_in_memory_state(self):
        store = InMemoryStore(quota_bytes=1024)
        service = AgentMemoryService(store)
        await service.load()

        await service.update_from_learnings(LearningsCandidate(corrections=["x" * 2000]))

        assert len(service.get_memory().history_digest) == 1
        assert await store.read(MEMORY_KEY) is None


class TestAbsorbResponse:
    async def test_returns_clean_text_and_merges(self, memory):
        text, learnings = await memory.absorb_response(
            'Exported.\nLEARNINGS_CANDIDATE {"observed_preferences": '
            '[{"key": "defaults.export_format", "value": "DOCX", "durability_days": 90}]}'
        )
        assert text == "Exported."
        assert learnings is not None
        assert memory.get_memory().defaults["export_format"] == "DOCX"

    async def test_without_block(self, memory):
        text, learnings = await memory.absorb_response("Plain answer.")
        assert text == "Plain answer."
        assert learnings is None

    async def test_format_for_prompt(self, memory):
        rendered = memory.format_memory_for_prompt()
        assert rendered.startswith("MEMORY = {")
        assert '"export_format": "PDF"' in rendered
