"""Red-flag detection.

A small fixed set of jurisdiction-independent dangerous-clause patterns.
Red flags are never filtered by the caller's risk threshold.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .models import ClauseReference, ExtractedClause, RedFlag
from .risk import normalize_capture
from .rules import PlaceMismatch, RedFlagRule, RedFlagTable, compiled

logger = logging.getLogger(__name__)


class RedFlagDetector:
    """Scan clauses for red-flag patterns.

    Example::

        detector = RedFlagDetector(get_rulebook().red_flags)
        for flag in detector.detect(clauses):
            print(f"[{flag.severity.value}] {flag.title}")
    """

    def __init__(self, table: RedFlagTable) -> None:
        self.table = table

    def detect(self, clauses: Sequence[ExtractedClause]) -> list[RedFlag]:
        """All flags, most severe first, then in table order and position."""
        ranked: list[tuple[int, int, int, RedFlag]] = []
        for index, rule in enumerate(self.table.flags):
            flagged: list[ExtractedClause] = [c for c in clauses if self._fires(rule, c)]
            if rule.mismatch is not None:
                clause = self._place_mismatch(rule.mismatch, clauses)
                if clause is not None and clause not in flagged:
                    flagged.append(clause)
            flagged.sort(key=lambda c: c.start)
            for k, clause in enumerate(flagged, start=1):
                flag = RedFlag(
                    id=f"flag_{rule.id}_{k}",
                    title=rule.title,
                    description=rule.description,
                    severity=rule.severity,
                    clause=ClauseReference.of(clause),
                )
                ranked.append((-rule.severity.rank, index, clause.start, flag))
        ranked.sort(key=lambda item: item[:3])
        if ranked:
            logger.debug("Detected %d red flags", len(ranked))
        return [item[3] for item in ranked]

    @staticmethod
    def _fires(rule: RedFlagRule, clause: ExtractedClause) -> bool:
        if not any(compiled(p).search(clause.text) for p in rule.patterns):
            return False
        return not any(compiled(p).search(clause.text) for p in rule.unless)

    @staticmethod
    def _place_mismatch(
        mismatch: PlaceMismatch, clauses: Sequence[ExtractedClause]
    ) -> Optional[ExtractedClause]:
        """The forum clause when forum and place of performance disagree."""
        forum: list[tuple[str, ExtractedClause]] = []
        performance: set[str] = set()
        for clause in clauses:
            for found in compiled(mismatch.left).finditer(clause.text):
                forum.append((normalize_capture(found.group(1)), clause))
            for found in compiled(mismatch.right).finditer(clause.text):
                performance.add(normalize_capture(found.group(1)))
        forum = [(place, clause) for place, clause in forum if place]
        performance.discard("")
        if not forum or not performance:
            return None
        if any(place in performance for place, _ in forum):
            return None
        return forum[0][1]
