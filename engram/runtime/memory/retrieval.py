"""
MMR Retrieval - Relevance/diversity balanced memory selection

WHAT: Greedy Maximal Marginal Relevance over the active memory corpus
WHERE: engram/runtime/memory/retrieval.py - retrieval layer
WHO: ReasoningBank.retrieve and agents injecting top-k strategies
TIME: O(k · n) similarity evaluations per query

MMR = λ · relevance + (1 − λ) · (1 − max_sim_to_selected)

Candidates are ordered by relevance (stable over store insertion order)
and re-scanned every round; the first candidate reaching the best score
wins ties, so results are deterministic for a fixed corpus and λ.
Soft-excluded (consolidated) memories never appear in results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .memory_store import MemoryStore
from .models import DistilledMemory, RetrievalResult
from .vector_math import Vector, as_array, cosine_similarity

logger = logging.getLogger(__name__)


def mmr_score(relevance: float, max_similarity: float, lambda_param: float = 0.7) -> float:
    """Compute the MMR score from a relevance and a redundancy term."""
    return lambda_param * relevance + (1.0 - lambda_param) * (1.0 - max_similarity)


@dataclass(slots=True)
class _Candidate:
    memory: DistilledMemory
    vector: np.ndarray
    relevance: float


class MMRRetriever:
    """Selects top-k memories from a store with MMR diversity."""

    def __init__(self, store: MemoryStore, *, mmr_lambda: float = 0.7, default_k: int = 3) -> None:
        self.store = store
        self.mmr_lambda = mmr_lambda
        self.default_k = default_k

    def retrieve(
        self,
        query_embedding: Vector,
        k: Optional[int] = None,
        *,
        mmr_lambda: Optional[float] = None,
    ) -> List[RetrievalResult]:
        """
        Return up to ``k`` memories ordered by selection round.

        Args:
            query_embedding: Query vector
            k: Result count (defaults to the configured retrieval k)
            mmr_lambda: Per-call override of λ (1.0 = pure relevance)
        """
        limit = self.default_k if k is None else k
        lam = self.mmr_lambda if mmr_lambda is None else mmr_lambda
        memories = self.store.active()
        if limit <= 0 or not memories:
            return []

        query = as_array(query_embedding)
        candidates = [
            _Candidate(memory=m, vector=as_array(m.embedding), relevance=cosine_similarity(query, m.embedding))
            for m in memories
        ]
        candidates.sort(key=lambda c: c.relevance, reverse=True)

        results: List[RetrievalResult] = []
        # running max similarity of each remaining candidate to the selected set
        max_sim: Dict[str, float] = {c.memory.memory_id: 0.0 for c in candidates}

        while len(results) < limit and candidates:
            best_idx = 0
            best_score = float("-inf")
            for i, candidate in enumerate(candidates):
                score = mmr_score(candidate.relevance, max_sim[candidate.memory.memory_id], lam)
                if score > best_score:
                    best_score = score
                    best_idx = i

            best = candidates.pop(best_idx)
            results.append(
                RetrievalResult(
                    memory=best.memory,
                    relevance_score=best.relevance,
                    diversity_score=1.0 - max_sim[best.memory.memory_id],
                    combined_score=best_score,
                )
            )

            for candidate in candidates:
                sim = cosine_similarity(candidate.vector, best.vector)
                key = candidate.memory.memory_id
                if sim > max_sim[key]:
                    max_sim[key] = sim

        logger.debug(f"MMR retrieval selected {len(results)} of {len(memories)} memories (λ={lam})")
        return results


__all__ = [
    "MMRRetriever",
    "mmr_score",
]
