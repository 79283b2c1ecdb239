"""Negotiation points: clauses worth reopening before signature."""

from __future__ import annotations

import re
from typing import Sequence

from .models import (
    ClauseReference,
    ExtractedClause,
    IdentifiedRisk,
    NegotiationPoint,
    Priority,
    RiskLevel,
)

EXCERPT_CHARS = 100
DEFAULT_POSITION = "Negotiate balanced terms that limit this exposure."

_WS_RE = re.compile(r"\s+")


def excerpt(text: str, limit: int = EXCERPT_CHARS) -> str:
    """First ``limit`` characters of ``text`` on one line."""
    flat = _WS_RE.sub(" ", text).strip()
    if len(flat) <= limit:
        return flat
    return flat[:limit].rstrip() + "..."


class NegotiationPlanner:
    """Turn clauses that carry serious risks into negotiation points.

    Each clause referenced by at least one risk at ``min_severity`` or above
    yields one point, in document order. The most severe risk names the
    issue; its mitigation is the suggested position and the mitigations of
    the other risks on the clause are offered as alternatives.
    """

    def __init__(self, min_severity: RiskLevel = RiskLevel.HIGH) -> None:
        self.min_severity = min_severity

    def identify(
        self, clauses: Sequence[ExtractedClause], risks: Sequence[IdentifiedRisk]
    ) -> list[NegotiationPoint]:
        by_clause: dict[str, list[IdentifiedRisk]] = {}
        for risk in risks:
            if not risk.severity.at_least(self.min_severity):
                continue
            for ref in risk.clauses:
                by_clause.setdefault(ref.clause_id, []).append(risk)

        points = []
        for clause in clauses:
            clause_risks = by_clause.get(clause.id)
            if not clause_risks:
                continue
            worst = max(clause_risks, key=lambda r: r.severity.rank)
            ordered = [worst] + [r for r in clause_risks if r is not worst]
            mitigations = list(dict.fromkeys(r.mitigation for r in ordered if r.mitigation))
            points.append(
                NegotiationPoint(
                    id=f"nego_{clause.id}",
                    clause=ClauseReference.of(clause),
                    issue=worst.description,
                    current_position=excerpt(clause.text),
                    suggested_position=mitigations[0] if mitigations else DEFAULT_POSITION,
                    importance=Priority(worst.severity.value),
                    risk_if_unchanged=worst.severity,
                    alternatives=tuple(mitigations[1:]),
                    linked_ids=tuple(r.id for r in ordered),
                )
            )
        return points
