"""Compliance checking against per-standard requirement checklists."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from .models import (
    ComplianceCheck,
    ComplianceStandard,
    ExtractedClause,
    ExtractedTerm,
    Jurisdiction,
    RequirementResult,
    RequirementStatus,
)
from .rules import ComplianceTable, Requirement, RequirementElement, compiled

logger = logging.getLogger(__name__)

MANDATORY_WEIGHT = 2.0
OPTIONAL_WEIGHT = 1.0


class ComplianceChecker:
    """Evaluate requested compliance standards clause by clause.

    A clause matching a requirement's anchor is related evidence. If the same
    clause also carries every required element the requirement is
    SATISFIED; otherwise it is PARTIAL. No anchored clause means MISSING.

    Example::

        checker = ComplianceChecker(get_rulebook().compliance)
        checks = checker.check(clauses, terms, [ComplianceStandard.GDPR],
                               Jurisdiction.INTERNATIONAL)
    """

    def __init__(self, table: ComplianceTable) -> None:
        self.table = table

    def check(
        self,
        clauses: Sequence[ExtractedClause],
        terms: Sequence[ExtractedTerm],
        standards: Iterable[ComplianceStandard],
        jurisdiction: Jurisdiction,
    ) -> list[ComplianceCheck]:
        """One check per requested standard, in request order."""
        checks = []
        for standard in standards:
            checks.append(self.check_standard(clauses, terms, standard, jurisdiction))
        return checks

    def check_standard(
        self,
        clauses: Sequence[ExtractedClause],
        terms: Sequence[ExtractedTerm],
        standard: ComplianceStandard,
        jurisdiction: Jurisdiction,
    ) -> ComplianceCheck:
        checklist = self.table.standards[standard]
        results = [
            self._evaluate(requirement, clauses, terms)
            for requirement in checklist.requirements
            if requirement.applies_to(jurisdiction)
        ]
        percentage = compliance_percentage(results)
        logger.debug(
            "%s/%s: %d requirements, %.1f%%",
            standard.value,
            jurisdiction.value,
            len(results),
            percentage,
        )
        return ComplianceCheck(
            standard=standard,
            jurisdiction=jurisdiction,
            requirements=tuple(results),
            percentage=percentage,
        )

    def _evaluate(
        self,
        requirement: Requirement,
        clauses: Sequence[ExtractedClause],
        terms: Sequence[ExtractedTerm],
    ) -> RequirementResult:
        anchored = [
            c for c in clauses if any(compiled(p).search(c.text) for p in requirement.anchor)
        ]
        if not anchored:
            return RequirementResult(
                id=requirement.id,
                description=requirement.description,
                status=RequirementStatus.MISSING,
                mandatory=requirement.mandatory,
                note=f"No clause addresses: {requirement.description.lower()}.",
            )

        best_clause = anchored[0]
        best_missing: Optional[list[str]] = None
        best_terms: list[str] = []
        for clause in anchored:
            missing: list[str] = []
            used_terms: list[str] = []
            for element in requirement.elements:
                evidence = self._element_evidence(element, clause, terms)
                if evidence is None:
                    missing.append(element.label)
                else:
                    used_terms.extend(evidence)
            if best_missing is None or len(missing) < len(best_missing):
                best_clause, best_missing, best_terms = clause, missing, used_terms
            if not missing:
                break

        evidence = (best_clause.id, *dict.fromkeys(best_terms))
        if not best_missing:
            return RequirementResult(
                id=requirement.id,
                description=requirement.description,
                status=RequirementStatus.SATISFIED,
                mandatory=requirement.mandatory,
                evidence=evidence,
            )
        return RequirementResult(
            id=requirement.id,
            description=requirement.description,
            status=RequirementStatus.PARTIAL,
            mandatory=requirement.mandatory,
            evidence=evidence,
            note=f"Clause {best_clause.id} is missing {', '.join(best_missing)}.",
        )

    @staticmethod
    def _element_evidence(
        element: RequirementElement,
        clause: ExtractedClause,
        terms: Sequence[ExtractedTerm],
    ) -> Optional[list[str]]:
        """Term ids backing ``element`` in ``clause``; None when absent.

        A pattern match with no backing term yields an empty list.
        """
        if element.term is not None:
            inside = [
                t.id
                for t in terms
                if t.category == element.term and clause.start <= t.start and t.end <= clause.end
            ]
            if inside:
                return inside
        if any(compiled(p).search(clause.text) for p in element.patterns):
            return []
        return None


def compliance_percentage(results: Sequence[RequirementResult]) -> float:
    """Weighted share of satisfied requirements; partial counts half.

    Mandatory requirements weigh twice as much as optional ones. An empty
    checklist is fully compliant.
    """
    total = 0.0
    earned = 0.0
    for result in results:
        weight = MANDATORY_WEIGHT if result.mandatory else OPTIONAL_WEIGHT
        total += weight
        if result.status == RequirementStatus.SATISFIED:
            earned += weight
        elif result.status == RequirementStatus.PARTIAL:
            earned += 0.5 * weight
    if total == 0:
        return 100.0
    return round(earned / total * 100, 2)
