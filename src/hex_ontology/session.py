"""Coordination cycle between editor edits and derived outputs.

The editor is the only writer. Each edit runs inside ``RulesSession.edit()``:
when the block finishes, auto-generated constraints are reconciled before
anyone reads the store, so a relation deletion and the deletion of its
derived constraint land together. If the block raises, the store is rolled
back to where it was.

``refresh()`` then recomputes what is stale. Each output remembers the
version counters of its inputs and is rebuilt wholesale only when one of
them moved.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from loguru import logger

from .config import Settings, get_settings
from .models.board import BoardState
from .models.game_system import EntityTypeRegistry
from .models.validation import SchemaValidation, ValidMoveSet
from .ontology.autogen import ReconcileReport, reconcile
from .ontology.store import OntologyStore
from .ontology.validator import SchemaValidator
from .rules.engine import ReachabilityEngine


@dataclass
class RefreshResult:
    """Which outputs a refresh rebuilt."""
    validated: bool = False
    moves_computed: bool = False


class RulesSession:
    """Owns the stores and the latest validation and move outputs.

    Usage:
        session = RulesSession(entity_types, board)
        with session.edit() as store:
            store.remove_relation(relation_id)
        session.refresh()
        session.validation.is_valid
        session.valid_moves.valid_positions
    """

    def __init__(
        self,
        entity_types: EntityTypeRegistry,
        board: BoardState,
        ontology: Optional[OntologyStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.entity_types = entity_types
        self.board = board
        self.ontology = ontology or OntologyStore(entity_types)
        if self.ontology.entity_types is None:
            self.ontology.entity_types = entity_types

        self.validator = SchemaValidator(self.ontology, entity_types)
        self.engine = ReachabilityEngine(
            self.ontology,
            board,
            entity_types,
            budget_fallback_name=self.settings.budget_fallback_name,
        )
        self._moves = ValidMoveSet.empty()
        self._moves_seen: Optional[tuple[int, int, int]] = None
        self.last_reconcile = ReconcileReport()

    @property
    def validation(self) -> SchemaValidation:
        return self.validator.result

    @property
    def valid_moves(self) -> ValidMoveSet:
        return self._moves

    @contextmanager
    def edit(self) -> Iterator[OntologyStore]:
        """Apply one logical edit atomically."""
        snapshot = self.ontology.snapshot()
        try:
            yield self.ontology
            self.last_reconcile = reconcile(self.ontology)
        except Exception:
            self.ontology.restore(snapshot)
            logger.debug("Edit rolled back")
            raise

    def refresh(self) -> RefreshResult:
        """Recompute validation and moves when their inputs changed."""
        result = RefreshResult()

        if self.validator.is_stale:
            self.validator.validate()
            result.validated = True

        # selection lives on the board, so the board version covers it
        seen = (self.board.version, self.ontology.version, self.entity_types.version)
        if seen != self._moves_seen:
            self._moves = self.engine.compute(self.board.selected_unit)
            self._moves_seen = seen
            result.moves_computed = True

        return result

    def select(self, unit_id: Optional[str]) -> ValidMoveSet:
        """Select a unit (or clear the selection) and return its moves."""
        self.board.select(unit_id)
        self.refresh()
        return self._moves
