"""Forensic lab queue.

Evidence handed to the forensic analyst sits in ``pending`` until the game
clock passes its completion time, moves to ``completed`` exactly once, and
stays there until the player asks the analyst for the results.
"""

import logging
from typing import Iterable, List, Optional

from game.case_data import ANALYSIS_COSTS, DEFAULT_ANALYSIS_COST
from game.models import AnalysisRecord

logger = logging.getLogger(__name__)


def analysis_cost(evidence_ids: Iterable[str]) -> int:
    """Lab turnaround for a batch is its slowest item."""
    costs = [ANALYSIS_COSTS.get(e, DEFAULT_ANALYSIS_COST) for e in evidence_ids]
    return max(costs) if costs else 0


class AnalysisScheduler:
    """Pending and completed lab work for one session."""

    def __init__(
        self,
        pending: Optional[List[AnalysisRecord]] = None,
        completed: Optional[List[AnalysisRecord]] = None,
        consumed: Optional[List[str]] = None,
    ):
        self.pending: List[AnalysisRecord] = list(pending or [])
        self.completed: List[AnalysisRecord] = list(completed or [])
        # Evidence ids whose results the player has already heard
        self.consumed: List[str] = list(consumed or [])

    def _known_ids(self) -> set:
        known = set(self.consumed)
        for record in self.pending + self.completed:
            known.update(record.evidence_ids)
        return known

    def submit(self, evidence_ids: Iterable[str], now: int) -> Optional[AnalysisRecord]:
        """Queue evidence for analysis.

        Items already pending or analysed are dropped from the batch. Returns
        None when nothing new is left to submit.
        """
        known = self._known_ids()
        fresh = []
        for evidence_id in evidence_ids:
            if evidence_id not in known and evidence_id not in fresh:
                fresh.append(evidence_id)
        if not fresh:
            logger.info("[ANALYSIS] Nothing new to submit")
            return None

        record = AnalysisRecord(
            evidence_ids=fresh,
            submitted_at=now,
            completes_at=now + analysis_cost(fresh),
        )
        self.pending.append(record)
        logger.info(
            "[ANALYSIS] Submitted %s at %d, ready at %d",
            fresh, now, record.completes_at,
        )
        return record

    def tick(self, now: int) -> List[AnalysisRecord]:
        """Move every due record to completed. Returns the newly completed ones."""
        due = [r for r in self.pending if r.completes_at <= now]
        if not due:
            return []
        self.pending = [r for r in self.pending if r.completes_at > now]
        self.completed.extend(due)
        for record in due:
            logger.info("[ANALYSIS] Completed %s", record.evidence_ids)
        return due

    def has_results(self) -> bool:
        return bool(self.completed)

    def consume(self) -> List[AnalysisRecord]:
        """Hand over and clear every completed record."""
        results = self.completed
        self.completed = []
        for record in results:
            self.consumed.extend(record.evidence_ids)
        return results

    @property
    def completed_evidence_ids(self) -> List[str]:
        """Every evidence id whose analysis has finished, read or not."""
        ids = list(self.consumed)
        for record in self.completed:
            ids.extend(e for e in record.evidence_ids if e not in ids)
        return ids

    @property
    def pending_evidence_ids(self) -> List[str]:
        return [e for record in self.pending for e in record.evidence_ids]
