"""Contract scoring.

Combines four dimensions, each 0-100, into an overall score:

- **risk**: severity penalties over every detected risk (before threshold
  filtering), escalated by red flags
- **compliance**: mean percentage of the requested standards
- **completeness**: expected clauses present for the contract type
- **clarity**: readability of the normalized text

Weights, penalties and benchmark baselines come from ``rules/scoring.yaml``.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from .models import (
    BenchmarkComparison,
    ComplianceCheck,
    ContractScore,
    IdentifiedRisk,
    Jurisdiction,
    MissingClause,
    RedFlag,
    ScoreBreakdown,
)
from .preprocessing import ReadabilityResult
from .rules import ExpectedClause, ScoringConfig

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class ScoringEngine:
    """Compute a :class:`ContractScore` from the analysis outputs.

    Example::

        engine = ScoringEngine(get_rulebook().scoring)
        score = engine.score(risks, flags, checks, expected, missing,
                             readability, Jurisdiction.KENYA)
        print(score.overall, score.improvement_areas)
    """

    def __init__(self, config: ScoringConfig) -> None:
        self.config = config

    def risk_dimension(self, risks: Sequence[IdentifiedRisk], red_flags: Sequence[RedFlag]) -> float:
        penalties = self.config.severity_penalties
        total = sum(penalties.get(r.severity, 0.0) for r in risks)
        score = 100.0 - min(self.config.risk_penalty_cap, total)
        score -= self.config.red_flags.risk_escalation * len(red_flags)
        return _clamp(score)

    def compliance_dimension(self, checks: Sequence[ComplianceCheck]) -> float:
        if not checks:
            return 100.0
        return _clamp(sum(c.percentage for c in checks) / len(checks))

    def completeness_dimension(
        self, expected: Sequence[ExpectedClause], missing: Sequence[MissingClause]
    ) -> float:
        if not expected:
            return 100.0
        settings = self.config.completeness

        def weight(importance: str) -> float:
            return 1.0 if importance == "required" else settings.recommended_weight

        total = sum(weight(e.importance) for e in expected)
        absent = sum(weight(m.importance) for m in missing)
        missing_required = sum(1 for m in missing if m.importance == "required")
        score = (total - absent) / total * 100.0
        score -= settings.missing_clause_penalty * missing_required
        return _clamp(score)

    def clarity_dimension(self, readability: ReadabilityResult) -> float:
        if readability.word_count == 0:
            return 100.0
        settings = self.config.clarity
        score = 100.0
        score -= max(0.0, readability.flesch_kincaid_grade - settings.baseline_grade) * settings.grade_penalty
        score -= readability.jargon_density * settings.jargon_penalty
        score -= readability.long_sentence_ratio * settings.long_sentence_penalty
        return _clamp(score)

    def benchmark(self, overall: float, jurisdiction: Jurisdiction) -> BenchmarkComparison:
        baseline = self.config.benchmarks.baseline_for(jurisdiction)
        delta = overall - baseline.mean
        percentile = 50.0 * (1.0 + math.erf(delta / (baseline.stddev * math.sqrt(2.0))))
        return BenchmarkComparison(
            jurisdiction=jurisdiction,
            baseline=baseline.mean,
            delta=round(delta, 2),
            percentile=round(_clamp(percentile), 2),
        )

    def score(
        self,
        risks: Sequence[IdentifiedRisk],
        red_flags: Sequence[RedFlag],
        checks: Sequence[ComplianceCheck],
        expected: Sequence[ExpectedClause],
        missing: Sequence[MissingClause],
        readability: ReadabilityResult,
        jurisdiction: Jurisdiction,
    ) -> ContractScore:
        """Score one analysis.

        Args:
            risks: Every detected risk, unfiltered by threshold.
            red_flags: Every red flag found.
            checks: Compliance checks for the requested standards.
            expected: Clauses expected for the contract type and jurisdiction.
            missing: The expected clauses that were not found.
            readability: Readability of the normalized text.
            jurisdiction: Selects the benchmark baseline.
        """
        breakdown = ScoreBreakdown(
            risk=round(self.risk_dimension(risks, red_flags), 2),
            compliance=round(self.compliance_dimension(checks), 2),
            completeness=round(self.completeness_dimension(expected, missing), 2),
            clarity=round(self.clarity_dimension(readability), 2),
        )
        weights = self.config.weights
        weighted = (
            weights.risk * breakdown.risk
            + weights.compliance * breakdown.compliance
            + weights.completeness * breakdown.completeness
            + weights.clarity * breakdown.clarity
        )
        flag_settings = self.config.red_flags
        flag_penalty = min(flag_settings.overall_penalty_cap, flag_settings.overall_penalty * len(red_flags))
        overall = round(_clamp(weighted - flag_penalty), 2)

        threshold = self.config.improvement_threshold
        improvement_areas = tuple(
            name
            for name, value in (
                ("risk", breakdown.risk),
                ("compliance", breakdown.compliance),
                ("completeness", breakdown.completeness),
                ("clarity", breakdown.clarity),
            )
            if value < threshold
        )
        logger.debug("Score %.1f (%s)", overall, breakdown)
        return ContractScore(
            overall=overall,
            breakdown=breakdown,
            benchmark=self.benchmark(overall, jurisdiction),
            improvement_areas=improvement_areas,
        )
