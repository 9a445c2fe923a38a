import pytest

from engram.runtime.memory.memory_store import LocalMemoryStore
from engram.runtime.memory.models import DistilledMemory
from engram.runtime.memory.retrieval import MMRRetriever, mmr_score


def _memory(memory_id: str, embedding, quality: float = 0.8) -> DistilledMemory:
    return DistilledMemory(
        memory_id=memory_id,
        trajectory_id=f"traj_{memory_id}",
        strategy=f"Apply {memory_id}",
        embedding=list(embedding),
        quality=quality,
    )


def _store(*memories: DistilledMemory) -> LocalMemoryStore:
    store = LocalMemoryStore()
    for memory in memories:
        store.insert(memory)
    return store


def test_mmr_score():
    assert mmr_score(1.0, 0.0, 0.7) == pytest.approx(1.0)
    assert mmr_score(0.5, 1.0, 0.5) == pytest.approx(0.25)


def test_empty_store_or_zero_k_returns_nothing():
    retriever = MMRRetriever(LocalMemoryStore())
    assert retriever.retrieve([1.0, 0.0]) == []

    retriever = MMRRetriever(_store(_memory("a", [1.0, 0.0])))
    assert retriever.retrieve([1.0, 0.0], k=0) == []


def test_lambda_one_is_pure_relevance_order():
    store = _store(
        _memory("far", [0.0, 1.0]),
        _memory("near", [1.0, 0.0]),
        _memory("mid", [1.0, 1.0]),
    )
    retriever = MMRRetriever(store, mmr_lambda=1.0)

    results = retriever.retrieve([1.0, 0.0], k=3)

    assert [r.memory.memory_id for r in results] == ["near", "mid", "far"]
    assert results[0].relevance_score == pytest.approx(1.0)
    assert results[0].diversity_score == pytest.approx(1.0)


def test_low_lambda_prefers_diverse_second_pick():
    store = _store(
        _memory("a", [1.0, 0.0]),
        _memory("a_dup", [0.99, 0.01]),
        _memory("b", [0.6, 0.8]),
    )
    retriever = MMRRetriever(store, mmr_lambda=0.3)

    results = retriever.retrieve([1.0, 0.0], k=2)

    assert [r.memory.memory_id for r in results] == ["a", "b"]
    assert results[1].diversity_score == pytest.approx(1.0 - 0.6)


def test_retrieval_is_deterministic_and_respects_k():
    store = _store(*[_memory(f"m{i}", [1.0, float(i % 3)]) for i in range(6)])
    retriever = MMRRetriever(store, default_k=3)

    first = [r.memory.memory_id for r in retriever.retrieve([1.0, 1.0])]
    second = [r.memory.memory_id for r in retriever.retrieve([1.0, 1.0])]

    assert len(first) == 3
    assert first == second
    assert len(set(first)) == 3


def test_consolidated_memories_are_excluded():
    store = _store(_memory("kept", [1.0, 0.0]), _memory("flagged", [1.0, 0.0]))
    store.mark_consolidated("flagged")

    results = MMRRetriever(store).retrieve([1.0, 0.0], k=5)

    assert [r.memory.memory_id for r in results] == ["kept"]


def test_lambda_zero_prefers_candidate_far_from_selected():
    store = _store(
        _memory("close_twin", [1.0, 1.0]),
        _memory("anchor", [1.0, 0.9]),
        _memory("far_twin", [1.0, -1.0]),
    )
    retriever = MMRRetriever(store, mmr_lambda=0.0)

    results = retriever.retrieve([1.0, 0.0], k=2)

    # close_twin and far_twin are equally relevant; anchor is picked first
    assert [r.memory.memory_id for r in results] == ["anchor", "far_twin"]
