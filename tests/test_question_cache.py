"""Tests for the per-session reply cache."""

from unified_interview.orchestrator.question_cache import QuestionCache
from unified_interview.orchestrator.schemas import InterviewPhase, ModuleKind


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = QuestionCache(ttl_seconds=300.0, clock=clock)
    cache.set("k", "What drives you?")

    clock.now = 299.0
    assert cache.get("k") == "What drives you?"

    clock.now = 300.0
    assert cache.get("k") is None
    assert len(cache) == 0


def test_make_key_normalizes_enums() -> None:
    key = QuestionCache.make_key(ModuleKind.PEER_OBSERVATION, 2, InterviewPhase.DEEP_DIVE)
    assert key == "peer_observation_2_deep-dive"


def test_clear() -> None:
    cache = QuestionCache()
    cache.set("a", "x")
    cache.clear()
    assert cache.get("a") is None
