"""Tests for PropositionCache."""

from __future__ import annotations

import pytest

from decisioning.cache.proposition_cache import PropositionCache
from decisioning.model import Offer, Proposition
from decisioning.scope.decision_scope import DecisionScope

A = DecisionScope("A")
B = DecisionScope("B")


def _proposition(scope: DecisionScope, proposition_id: str = "P1") -> Proposition:
    return Proposition(id=proposition_id, offers=(Offer(id="O1", content="x"),), scope=scope.name)


class TestPut:
    def test_put_and_get(self) -> None:
        cache = PropositionCache()
        proposition = _proposition(A)
        cache.put(A, proposition)
        assert cache.get(A) is proposition
        assert A in cache
        assert len(cache) == 1

    def test_put_is_idempotent(self) -> None:
        cache = PropositionCache()
        proposition = _proposition(A)
        cache.put(A, proposition)
        cache.put(A, proposition)
        assert len(cache) == 1

    def test_put_replaces_wholesale(self) -> None:
        cache = PropositionCache()
        cache.put(A, _proposition(A, "old"))
        cache.put(A, _proposition(A, "new"))
        assert cache.get(A).id == "new"
        assert len(cache) == 1

    def test_scope_mismatch_rejected(self) -> None:
        cache = PropositionCache()
        with pytest.raises(ValueError, match="belongs to scope 'A'"):
            cache.put(B, _proposition(A))
        assert len(cache) == 0


class TestPutAll:
    def test_stores_requested_scopes_only(self) -> None:
        cache = PropositionCache()
        stored = cache.put_all([_proposition(A), _proposition(B, "P2")], [A])
        assert list(stored) == [A]
        assert B not in cache

    def test_empty_input(self) -> None:
        cache = PropositionCache()
        assert cache.put_all([], [A, B]) == {}
        assert len(cache) == 0


class TestLookup:
    def test_partial_hit_omits_missing_scopes(self) -> None:
        cache = PropositionCache()
        cache.put(A, _proposition(A))
        result = cache.lookup([A, B])
        assert list(result) == [A]
        assert B not in result

    def test_miss(self) -> None:
        assert PropositionCache().lookup([A]) == {}
        assert PropositionCache().get(A) is None


class TestClear:
    def test_clear_is_idempotent(self) -> None:
        cache = PropositionCache()
        cache.put(A, _proposition(A))
        cache.clear()
        assert len(cache) == 0
        cache.clear()
        assert len(cache) == 0
