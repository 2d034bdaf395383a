"""
Change tracker: alignment passes and user decisions on top of a RecordStore.

Each pass takes a ticket. Only the most recent ticket for a refinement may
commit; an older pass finishing late is discarded whole (last writer wins).
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from .config import AlignConfig, ClassifierConfig
from .models import ChangeRecord, UserDecision
from .remap import DecisionResult, apply_decision
from .store import RecordStore
from .tracking import collect_changes, filter_valid

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PassTicket:
    refinement_id: str
    generation: int


class ChangeTracker:
    def __init__(
        self,
        store: RecordStore,
        *,
        align_cfg: Optional[AlignConfig] = None,
        classifier_cfg: Optional[ClassifierConfig] = None,
    ):
        self.store = store
        self.align_cfg = align_cfg or AlignConfig()
        self.classifier_cfg = classifier_cfg or ClassifierConfig()
        self._generations: Dict[str, int] = {}
        # bumped on every write, so a decision based on an older batch is refused
        self._batches: Dict[str, int] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def begin_pass(self, refinement_id: str) -> PassTicket:
        with self._lock:
            generation = next(self._counter)
            self._generations[refinement_id] = generation
        return PassTicket(refinement_id=refinement_id, generation=generation)

    def is_current(self, ticket: PassTicket) -> bool:
        with self._lock:
            return self._generations.get(ticket.refinement_id) == ticket.generation

    def complete_pass(self, ticket: PassTicket, original: str, enhanced: str) -> Optional[List[ChangeRecord]]:
        """
        Compute the records for (original, enhanced) and replace the stored batch.
        Returns None when a newer pass was started in the meantime.
        """
        records = collect_changes(
            original,
            enhanced,
            align_cfg=self.align_cfg,
            classifier_cfg=self.classifier_cfg,
        )
        return self.commit(ticket, records, original, enhanced)

    def commit(
        self,
        ticket: PassTicket,
        records: List[ChangeRecord],
        original: str,
        enhanced: str,
    ) -> Optional[List[ChangeRecord]]:
        """Validate positions against the live buffers and store the batch if the ticket is current."""
        records = filter_valid(records, original, enhanced)
        rows = [r.to_row(ticket.refinement_id) for r in records]

        with self._lock:
            if self._generations.get(ticket.refinement_id) != ticket.generation:
                logger.info(
                    "discarding superseded pass",
                    refinement_id=ticket.refinement_id,
                    generation=ticket.generation,
                )
                return None
            self.store.replace_records(ticket.refinement_id, rows)
            self._batches[ticket.refinement_id] = next(self._counter)

        logger.info("pass committed", refinement_id=ticket.refinement_id, changes=len(records))
        return records

    def records(self, refinement_id: str) -> List[ChangeRecord]:
        rows = self.store.fetch_records(refinement_id)
        return sorted((ChangeRecord.from_row(r) for r in rows), key=lambda r: r.original_start)

    def decide(
        self,
        refinement_id: str,
        record_id: str,
        decision: UserDecision,
        working_text: str,
    ) -> DecisionResult:
        """
        Apply a decision to the enhanced working text and persist the updated records.

        If another pass or decision replaced the stored batch in the meantime, nothing
        is written and the result comes back with `applied=False` and the live records.
        """
        with self._lock:
            batch = self._batches.get(refinement_id)
        result = apply_decision(working_text, self.records(refinement_id), record_id, decision)
        if result.applied:
            rows = [r.to_row(refinement_id) for r in result.records]
            with self._lock:
                stale = self._batches.get(refinement_id) != batch
                if not stale:
                    self.store.replace_records(refinement_id, rows)
                    self._batches[refinement_id] = next(self._counter)
            if stale:
                logger.warning(
                    "records changed while deciding, decision not saved",
                    refinement_id=refinement_id,
                    change_id=record_id,
                )
                return DecisionResult(text=working_text, records=self.records(refinement_id), applied=False)
            logger.info(
                "decision applied",
                refinement_id=refinement_id,
                change_id=record_id,
                decision=decision.value,
            )
        return result

    def discard(self, refinement_id: str) -> None:
        """Drop all records of a refinement and invalidate any pass in flight."""
        with self._lock:
            self._generations.pop(refinement_id, None)
            self._batches[refinement_id] = next(self._counter)
            self.store.delete_records(refinement_id)
