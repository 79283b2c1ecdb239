"""Tests for negotiation point identification."""

from __future__ import annotations

import pytest

from contract_intelligence.models import (
    ClauseReference,
    ClauseType,
    ExtractedClause,
    IdentifiedRisk,
    Priority,
    RiskLevel,
)
from contract_intelligence.negotiation import DEFAULT_POSITION, NegotiationPlanner, excerpt


@pytest.fixture
def planner() -> NegotiationPlanner:
    return NegotiationPlanner()


def _clause(clause_id: str, text: str, start: int = 0) -> ExtractedClause:
    return ExtractedClause(
        id=clause_id,
        type=ClauseType.LIABILITY,
        start=start,
        end=start + len(text),
        text=text,
        confidence=0.8,
    )


def _risk(
    risk_id: str,
    severity: RiskLevel,
    clause: ExtractedClause | None = None,
    mitigation: str | None = None,
) -> IdentifiedRisk:
    return IdentifiedRisk(
        id=risk_id,
        rule_id=risk_id.rsplit("_", 1)[0],
        severity=severity,
        category="liability",
        description=f"{risk_id} description",
        clauses=(ClauseReference.of(clause),) if clause else (),
        mitigation=mitigation,
    )


class TestExcerpt:
    def test_short_text_flattened(self) -> None:
        assert excerpt("The Supplier\n  shall   deliver.") == "The Supplier shall deliver."

    def test_truncated(self) -> None:
        text = "word " * 40
        result = excerpt(text, limit=20)
        assert result == "word word word word..."
        assert len(result) <= 23


class TestIdentify:
    def test_worst_risk_leads(self, planner: NegotiationPlanner) -> None:
        clause = _clause("clause_1", "The Provider accepts unlimited liability for all losses.")
        risks = [
            _risk("liability_high_1", RiskLevel.HIGH, clause, "Exclude indirect losses."),
            _risk("liability_critical_1", RiskLevel.CRITICAL, clause, "Cap liability at the fees paid."),
        ]
        (point,) = planner.identify([clause], risks)
        assert point.id == "nego_clause_1"
        assert point.clause.clause_id == "clause_1"
        assert point.issue == "liability_critical_1 description"
        assert point.suggested_position == "Cap liability at the fees paid."
        assert point.alternatives == ("Exclude indirect losses.",)
        assert point.importance is Priority.CRITICAL
        assert point.risk_if_unchanged is RiskLevel.CRITICAL
        assert point.linked_ids == ("liability_critical_1", "liability_high_1")
        assert point.current_position == clause.text

    def test_duplicate_mitigations_collapsed(self, planner: NegotiationPlanner) -> None:
        clause = _clause("clause_1", "Unlimited liability.")
        risks = [
            _risk("a_1", RiskLevel.HIGH, clause, "Cap liability."),
            _risk("b_1", RiskLevel.HIGH, clause, "Cap liability."),
        ]
        (point,) = planner.identify([clause], risks)
        assert point.suggested_position == "Cap liability."
        assert point.alternatives == ()
        assert point.linked_ids == ("a_1", "b_1")

    def test_default_position(self, planner: NegotiationPlanner) -> None:
        clause = _clause("clause_1", "Unlimited liability.")
        (point,) = planner.identify([clause], [_risk("a_1", RiskLevel.HIGH, clause)])
        assert point.suggested_position == DEFAULT_POSITION

    def test_below_threshold_ignored(self, planner: NegotiationPlanner) -> None:
        clause = _clause("clause_1", "Payment within 60 days.")
        risks = [_risk("a_1", RiskLevel.MEDIUM, clause, "Shorten."), _risk("b_1", RiskLevel.LOW, clause)]
        assert planner.identify([clause], risks) == []

    def test_custom_threshold(self) -> None:
        clause = _clause("clause_1", "Payment within 60 days.")
        (point,) = NegotiationPlanner(RiskLevel.MEDIUM).identify([clause], [_risk("a_1", RiskLevel.MEDIUM, clause)])
        assert point.importance is Priority.MEDIUM

    def test_document_order(self, planner: NegotiationPlanner) -> None:
        first = _clause("clause_1", "Unlimited liability.")
        second = _clause("clause_2", "Termination without notice.", start=30)
        risks = [_risk("b_1", RiskLevel.CRITICAL, second), _risk("a_1", RiskLevel.HIGH, first)]
        points = planner.identify([first, second], risks)
        assert [p.id for p in points] == ["nego_clause_1", "nego_clause_2"]

    def test_risks_without_clauses_ignored(self, planner: NegotiationPlanner) -> None:
        clause = _clause("clause_1", "Unlimited liability.")
        assert planner.identify([clause], [_risk("missing_1", RiskLevel.CRITICAL)]) == []
