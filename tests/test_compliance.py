"""Tests for compliance checking."""

from __future__ import annotations

import pytest

from contract_intelligence.compliance import ComplianceChecker, compliance_percentage
from contract_intelligence.models import (
    ClauseType,
    ComplianceStandard,
    ExtractedClause,
    Jurisdiction,
    RequirementResult,
    RequirementStatus,
)
from contract_intelligence.rules import Rulebook
from contract_intelligence.segmenter import ClauseSegmenter
from contract_intelligence.terms import TermExtractor


@pytest.fixture
def checker(rulebook: Rulebook) -> ComplianceChecker:
    return ComplianceChecker(rulebook.compliance)


def _analyze(normalize, text: str):
    document = normalize(text)
    return ClauseSegmenter().segment(document), TermExtractor().extract(document)


def _result(status: RequirementStatus, mandatory: bool = True) -> RequirementResult:
    return RequirementResult(id="r", description="d", status=status, mandatory=mandatory)


class TestGdpr:
    def test_complete_dpa(self, checker: ComplianceChecker, normalize, gdpr_text: str) -> None:
        clauses, terms = _analyze(normalize, gdpr_text)
        (check,) = checker.check(clauses, terms, [ComplianceStandard.GDPR], Jurisdiction.INTERNATIONAL)
        assert check.standard is ComplianceStandard.GDPR
        assert [r.status for r in check.requirements] == [RequirementStatus.SATISFIED] * 6
        assert check.percentage == 100.0
        assert check.status == "compliant"

    def test_breach_window_backed_by_term(self, checker: ComplianceChecker, normalize, gdpr_text: str) -> None:
        clauses, terms = _analyze(normalize, gdpr_text)
        (check,) = checker.check(clauses, terms, [ComplianceStandard.GDPR], Jurisdiction.INTERNATIONAL)
        breach = next(r for r in check.requirements if r.id == "gdpr.breach_notification")
        clause_id, *term_ids = breach.evidence
        assert clause_id.startswith("clause_")
        assert term_ids and all(t.startswith("term_deadline_") for t in term_ids)

    def test_partial(self, checker: ComplianceChecker) -> None:
        clause = ExtractedClause(
            id="clause_1",
            type=ClauseType.COMPLIANCE,
            start=0,
            end=70,
            text="The Processor shall notify the Controller of any personal data breach.",
            confidence=0.8,
        )
        check = checker.check_standard([clause], [], ComplianceStandard.GDPR, Jurisdiction.INTERNATIONAL)
        breach = next(r for r in check.requirements if r.id == "gdpr.breach_notification")
        assert breach.status is RequirementStatus.PARTIAL
        assert breach.evidence == ("clause_1",)
        assert breach.note == "Clause clause_1 is missing a concrete notification time window."
        assert check.status == "partially_compliant"

    def test_missing(self, checker: ComplianceChecker) -> None:
        check = checker.check_standard([], [], ComplianceStandard.GDPR, Jurisdiction.INTERNATIONAL)
        assert all(r.status is RequirementStatus.MISSING for r in check.requirements)
        assert check.percentage == 0.0
        assert check.status == "non_compliant"
        breach = next(r for r in check.requirements if r.id == "gdpr.breach_notification")
        assert breach.note == "No clause addresses: personal data breach notification within a defined window."


class TestLocalLabourLaw:
    def test_nigerian_employment(self, checker: ComplianceChecker, normalize, employment_text: str) -> None:
        clauses, terms = _analyze(normalize, employment_text)
        (check,) = checker.check(clauses, terms, [ComplianceStandard.LOCAL_LABOR_LAW], Jurisdiction.NIGERIA)
        ids = [r.id for r in check.requirements]
        assert "local_labor_law.nigerian_statute" in ids
        assert "local_labor_law.south_african_statute" not in ids
        assert check.percentage == 100.0

    def test_jurisdiction_scoped_requirements(self, checker: ComplianceChecker) -> None:
        check = checker.check_standard([], [], ComplianceStandard.LOCAL_LABOR_LAW, Jurisdiction.INTERNATIONAL)
        ids = {r.id for r in check.requirements}
        assert "local_labor_law.nigerian_statute" not in ids
        assert "local_labor_law.south_african_statute" not in ids
        assert "local_labor_law.minimum_wage" in ids


class TestCheck:
    def test_request_order_preserved(self, checker: ComplianceChecker) -> None:
        standards = [ComplianceStandard.SOX, ComplianceStandard.GDPR, ComplianceStandard.HIPAA]
        checks = checker.check([], [], standards, Jurisdiction.INTERNATIONAL)
        assert [c.standard for c in checks] == standards

    def test_every_standard_evaluates(self, checker: ComplianceChecker) -> None:
        for standard in ComplianceStandard:
            check = checker.check_standard([], [], standard, Jurisdiction.INTERNATIONAL)
            assert check.requirements
            assert 0.0 <= check.percentage <= 100.0


class TestCompliancePercentage:
    def test_empty_is_compliant(self) -> None:
        assert compliance_percentage([]) == 100.0

    def test_partial_counts_half(self) -> None:
        assert compliance_percentage([_result(RequirementStatus.PARTIAL)]) == 50.0

    def test_mandatory_weighs_double(self) -> None:
        results = [
            _result(RequirementStatus.SATISFIED, mandatory=True),
            _result(RequirementStatus.MISSING, mandatory=False),
        ]
        assert compliance_percentage(results) == 66.67

    def test_optional_gap_costs_less(self) -> None:
        mandatory_gap = [_result(RequirementStatus.SATISFIED, False), _result(RequirementStatus.MISSING, True)]
        optional_gap = [_result(RequirementStatus.SATISFIED, True), _result(RequirementStatus.MISSING, False)]
        assert compliance_percentage(optional_gap) > compliance_percentage(mandatory_gap)
