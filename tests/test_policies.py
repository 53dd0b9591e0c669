"""Tests for blocking and retry policies and the result store."""

from datetime import datetime, timezone

from coach_agent.agent.context import ToolResultStore
from coach_agent.agent.policies import (
    BlockResult,
    ClarifyingQuestionRetry,
    ValidationGate,
    looks_like_clarifying_question,
    never_block,
    never_retry,
)
from coach_agent.agents.coach_creator.models import COACH_CREATOR_KEY_MAP, CoachCreatorKey

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _retry(min_required_tools: int = 5) -> ClarifyingQuestionRetry:
    return ClarifyingQuestionRetry(
        min_required_tools=min_required_tools,
        build_prompt=lambda text, results, ts: f"retry after {len(results)} at {ts}",
        clock=lambda: FIXED_NOW,
    )


def test_store_maps_tool_names_to_keys():
    store = ToolResultStore(COACH_CREATOR_KEY_MAP)
    key = store.store("validate_coach_config", {"is_valid": True})

    assert key == "validation"
    assert CoachCreatorKey.VALIDATION in store
    assert store.get(CoachCreatorKey.VALIDATION) == {"is_valid": True}
    assert store.get("validation") == {"is_valid": True}
    assert store.keys() == ["validation"]


def test_store_overwrites_and_passes_through_unmapped_names():
    store = ToolResultStore()
    store.store("search", 1)
    store.store("search", 2)

    assert store.get("search") == 2
    assert len(store) == 1
    store.clear()
    assert len(store) == 0


def test_gate_ignores_other_tools():
    gate = ValidationGate("save", "validation")
    store = ToolResultStore()
    store.store("validation", {"is_valid": False, "validation_issues": ["bad"]})

    assert gate("assemble", {}, store) is None


def test_gate_allows_without_validation():
    assert ValidationGate("save", "validation")("save", {}, ToolResultStore()) is None


def test_gate_blocks_invalid_validation():
    gate = ValidationGate("save", "validation")
    store = ToolResultStore()
    store.store("validation", {"is_valid": False, "validation_issues": ["Missing coach_name", "Bad frequency"]})

    blocked = gate("save", {}, store)

    assert isinstance(blocked, BlockResult)
    assert blocked.reason == "Cannot save coach config - validation failed: Missing coach_name, Bad frequency"
    assert blocked.to_payload() == {
        "error": True,
        "blocked": True,
        "reason": blocked.reason,
        "validation_issues": ["Missing coach_name", "Bad frequency"],
    }


def test_gate_blocks_validation_error_field():
    gate = ValidationGate("save", "validation")
    store = ToolResultStore()
    store.store("validation", {"is_valid": False, "error": "KeyError: 'technical_config'"})

    blocked = gate("save", {}, store)

    assert blocked.reason == "Cannot save coach config - validation failed with error: KeyError: 'technical_config'"
    assert "validation_issues" not in blocked.to_payload()


def test_gate_is_idempotent_and_reads_latest_result():
    gate = ValidationGate("save", "validation")
    store = ToolResultStore()
    store.store("validation", {"is_valid": False, "validation_issues": []})

    first, second = gate("save", {}, store), gate("save", {}, store)
    assert first == second
    assert first.reason.endswith("Unknown issues")

    store.store("validation", {"is_valid": True})
    assert gate("save", {}, store) is None


def test_gate_reads_attributes_of_models():
    class Validation:
        is_valid = False
        validation_issues = ["x"]
        error = None

    store = ToolResultStore()
    store.store("validation", Validation())
    assert ValidationGate("save", "validation")("save", {}, store).validation_issues == ["x"]


def test_clarifying_question_heuristic():
    assert looks_like_clarifying_question("Which methodology do you prefer?")
    assert looks_like_clarifying_question("I need to know your schedule")
    assert looks_like_clarifying_question("Would you like a strength focus")
    assert not looks_like_clarifying_question("Coach created successfully! ID: coach_1")
    assert not looks_like_clarifying_question("")


def test_retry_fires_on_question_with_few_tools():
    store = ToolResultStore()
    store.store("load_session_requirements", {})

    decision = _retry()({"success": False, "reason": "Should I pick emma?"}, "Should I pick emma?", store)

    assert decision is not None
    assert decision.should_retry
    assert decision.retry_prompt == f"retry after 1 at {FIXED_NOW.isoformat()}"


def test_retry_skips_successful_results():
    assert _retry()({"success": True}, "Anything else?", ToolResultStore()) is None


def test_retry_skips_validation_failures():
    result = {"success": False, "reason": "Coach validation failed: missing name"}
    assert _retry()(result, "Should I fix it?", ToolResultStore()) is None


def test_retry_skips_when_enough_tools_ran():
    store = ToolResultStore()
    for name in ("a", "b", "c", "d", "e"):
        store.store(name, {})

    assert _retry()({"success": False}, "Should I continue?", store) is None


def test_retry_skips_statements():
    assert _retry()({"success": False}, "The coach could not be created.", ToolResultStore()) is None


def test_defaults_never_act():
    assert never_block("save", {}, ToolResultStore()) is None
    assert never_retry({"success": False}, "why?", ToolResultStore()) is None
