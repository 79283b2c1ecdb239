"""Risk engine.

Evaluates the declarative risk rules against extracted clauses and terms.
Detection never looks at the caller's risk threshold: the full set feeds
scoring, and :func:`filter_by_threshold` trims what is published.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Iterable, Optional, Sequence

from .errors import StageFailure, StageTimeout
from .inference import AdvisorFinding, InferenceAdvisor
from .models import (
    AnalysisDepth,
    ClauseReference,
    ContractType,
    ExtractedClause,
    ExtractedTerm,
    IdentifiedRisk,
    Jurisdiction,
    RiskLevel,
    TermCategory,
)
from .rules import RiskRule, RiskRuleSet, compiled

logger = logging.getLogger(__name__)

ADVISOR_STAGE = "risk_assessment advisor"

_PLACE_PREFIX_RE = re.compile(r"^(?:the\s+)?(?:federal\s+)?(?:republic|state|kingdom|emirate)\s+of\s+")


def normalize_capture(value: str) -> str:
    value = re.sub(r"\s+", " ", value.strip(" .,;").lower())
    return _PLACE_PREFIX_RE.sub("", value)


def filter_by_threshold(risks: Iterable[IdentifiedRisk], threshold: RiskLevel) -> list[IdentifiedRisk]:
    """Risks at or above ``threshold``, order preserved."""
    return [r for r in risks if r.severity.at_least(threshold)]


class RiskEngine:
    """Evaluate risk rules for one jurisdiction and contract type.

    Example::

        engine = RiskEngine(get_rulebook().risk_rules)
        risks = engine.evaluate(clauses, terms, Jurisdiction.NIGERIA,
                                ContractType.EMPLOYMENT, AnalysisDepth.STANDARD)
        for risk in filter_by_threshold(risks, RiskLevel.HIGH):
            print(f"[{risk.severity.value}] {risk.description}")
    """

    def __init__(self, rules: RiskRuleSet) -> None:
        self.rules = rules

    def applicable_rules(
        self, jurisdiction: Jurisdiction, contract_type: ContractType, depth: AnalysisDepth
    ) -> list[RiskRule]:
        categories = self.rules.categories_for(depth)
        return [
            rule
            for rule in self.rules.rules
            if rule.category in categories and rule.applies(jurisdiction, contract_type)
        ]

    def evaluate(
        self,
        clauses: Sequence[ExtractedClause],
        terms: Sequence[ExtractedTerm],
        jurisdiction: Jurisdiction,
        contract_type: ContractType,
        depth: AnalysisDepth,
        extracted_categories: Iterable[TermCategory] | None = None,
    ) -> list[IdentifiedRisk]:
        """Run every applicable rule.

        Args:
            extracted_categories: Term categories that were actually
                extracted. ``term_absent`` rules for other categories are
                skipped rather than reported. All categories when None.

        Returns:
            Every detected risk, most severe first, then in rule order and
            document position.
        """
        extracted = set(TermCategory if extracted_categories is None else extracted_categories)
        rules = self.applicable_rules(jurisdiction, contract_type, depth)

        ranked: list[tuple[int, int, int, IdentifiedRisk]] = []
        for index, rule in enumerate(rules):
            matches = self._evaluate_rule(rule, clauses, terms, extracted)
            for k, (refs, detail) in enumerate(matches, start=1):
                description = f"{rule.description} ({detail})" if detail else rule.description
                risk = IdentifiedRisk(
                    id=f"risk_{rule.id.replace('.', '_')}_{k}",
                    rule_id=rule.id,
                    severity=rule.severity,
                    category=rule.category,
                    description=description,
                    clauses=tuple(refs),
                    mitigation=rule.mitigation,
                )
                position = refs[0].start if refs else -1
                ranked.append((-rule.severity.rank, index, position, risk))

        ranked.sort(key=lambda item: item[:3])
        risks = [item[3] for item in ranked]
        logger.debug(
            "Evaluated %d rules at depth %s: %d risks", len(rules), depth.value, len(risks)
        )
        return risks

    def _evaluate_rule(
        self,
        rule: RiskRule,
        clauses: Sequence[ExtractedClause],
        terms: Sequence[ExtractedTerm],
        extracted: set[TermCategory],
    ) -> list[tuple[list[ClauseReference], Optional[str]]]:
        """Match instances of one rule as ``(clause refs, detail)`` pairs."""
        match = rule.match
        scoped = [c for c in clauses if not match.clause_types or c.type in match.clause_types]

        if match.kind == "clause_pattern":
            return [
                ([ClauseReference.of(clause)], None)
                for clause in scoped
                if self._matches(clause.text, match.patterns)
                and not self._matches(clause.text, match.unless)
            ]

        if match.kind == "missing_clause":
            if any(c.type == match.clause_type for c in clauses):
                return []
            return [([], None)]

        if match.kind == "term_absent":
            if match.term_category not in extracted:
                return []
            if any(t.category == match.term_category for t in terms):
                return []
            return [([], None)]

        if match.kind == "term_pattern":
            hits = []
            for term in terms:
                if term.category != match.term_category or not self._matches(term.value, match.patterns):
                    continue
                refs = [ClauseReference.of(c) for c in clauses if c.start <= term.start < c.end]
                hits.append((refs, term.value))
            return hits

        # conflict
        values: dict[str, list[ExtractedClause]] = {}
        for clause in scoped:
            for found in compiled(match.capture).finditer(clause.text):
                value = normalize_capture(found.group(1) or "")
                if value:
                    holders = values.setdefault(value, [])
                    if clause not in holders:
                        holders.append(clause)
        if len(values) < 2:
            return []
        involved: list[ExtractedClause] = []
        for holders in values.values():
            for clause in holders:
                if clause not in involved:
                    involved.append(clause)
        involved.sort(key=lambda c: c.start)
        return [([ClauseReference.of(c) for c in involved], " vs ".join(values))]

    @staticmethod
    def _matches(text: str, patterns: Sequence[str]) -> bool:
        return any(compiled(p).search(text) for p in patterns)

    # -----------------------------------------------------------------------
    # Remote advisor
    # -----------------------------------------------------------------------

    async def consult(
        self,
        advisor: InferenceAdvisor,
        risks: list[IdentifiedRisk],
        clauses: Sequence[ExtractedClause],
        jurisdiction: Jurisdiction,
        contract_type: ContractType,
        timeout: float,
    ) -> tuple[list[IdentifiedRisk], Optional[str]]:
        """Ask ``advisor`` for extra risks, bounded by ``timeout`` seconds.

        Returns:
            The merged risk list and a warning when the advisor timed out or
            failed, in which case the local ``risks`` are returned unchanged.
        """
        try:
            findings = await asyncio.wait_for(
                advisor.review(clauses, risks, jurisdiction, contract_type), timeout
            )
        except asyncio.TimeoutError:
            failure: StageFailure = StageTimeout(ADVISOR_STAGE, timeout)
            logger.warning("%s", failure)
            return risks, str(failure)
        except Exception as exc:  # advisor errors degrade to the local result
            failure = StageFailure(ADVISOR_STAGE, str(exc) or type(exc).__name__)
            logger.warning("%s", failure)
            return risks, str(failure)
        return self.merge_findings(risks, findings, clauses), None

    @staticmethod
    def merge_findings(
        risks: list[IdentifiedRisk],
        findings: Sequence[AdvisorFinding],
        clauses: Sequence[ExtractedClause],
    ) -> list[IdentifiedRisk]:
        """Append advisor findings not already covered, keeping severity order."""
        by_id = {c.id: c for c in clauses}
        known = {r.description.lower() for r in risks}
        merged = list(risks)
        k = 0
        for finding in findings:
            if finding.description.lower() in known:
                continue
            known.add(finding.description.lower())
            k += 1
            clause = by_id.get(finding.clause_id or "")
            merged.append(
                IdentifiedRisk(
                    id=f"risk_advisor_{k}",
                    rule_id="advisor",
                    severity=finding.severity,
                    category=finding.category,
                    description=finding.description,
                    clauses=(ClauseReference.of(clause),) if clause else (),
                    mitigation=finding.mitigation,
                    source="advisor",
                )
            )
        # Stable sort keeps rule order within a severity, advisor findings last
        merged.sort(key=lambda r: (-r.severity.rank, r.source != "rules"))
        return merged
