from __future__ import annotations

from collections.abc import Iterable

import structlog

from decisioning.model.proposition import Proposition
from decisioning.scope.decision_scope import DecisionScope

logger = structlog.get_logger()


class PropositionCache:
    """In-memory mapping of decision scope to its latest Proposition.

    Not locked: only the extension's serial worker reads or mutates it.
    Entries are replaced wholesale per scope and only ever evicted by clear().
    Every stored proposition's scope equals the name of the key it is stored under.
    """

    def __init__(self) -> None:
        self._propositions: dict[DecisionScope, Proposition] = {}

    def __len__(self) -> int:
        return len(self._propositions)

    def __contains__(self, scope: object) -> bool:
        return scope in self._propositions

    def put(self, scope: DecisionScope, proposition: Proposition) -> None:
        """Store proposition under scope, overwriting any previous entry.

        Raises ValueError if the proposition was fetched for a different scope.
        """
        if proposition.scope != scope.name:
            raise ValueError(
                f"Proposition '{proposition.id}' belongs to scope '{proposition.scope}', "
                f"not '{scope.name}'"
            )
        self._propositions[scope] = proposition

    def put_all(
        self,
        propositions: Iterable[Proposition],
        scopes_requested: Iterable[DecisionScope],
    ) -> dict[DecisionScope, Proposition]:
        """Store each proposition under the requested scope with the same name.

        Propositions for scopes that were not requested are skipped.
        Returns the entries that were stored.
        """
        requested = {scope.name: scope for scope in scopes_requested}
        stored: dict[DecisionScope, Proposition] = {}
        for proposition in propositions:
            scope = requested.get(proposition.scope)
            if scope is None:
                logger.debug(
                    "proposition_scope_not_requested",
                    proposition_id=proposition.id,
                    scope=proposition.scope,
                )
                continue
            self.put(scope, proposition)
            stored[scope] = proposition
        return stored

    def get(self, scope: DecisionScope) -> Proposition | None:
        return self._propositions.get(scope)

    def lookup(self, scopes: Iterable[DecisionScope]) -> dict[DecisionScope, Proposition]:
        """Return cached entries for the given scopes; absent scopes are omitted."""
        return {
            scope: self._propositions[scope]
            for scope in scopes
            if scope in self._propositions
        }

    def clear(self) -> None:
        """Drop every entry. Idempotent."""
        self._propositions.clear()
