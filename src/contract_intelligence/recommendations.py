"""Recommendation generation from risks, compliance gaps and missing clauses."""

from __future__ import annotations

from typing import Sequence

from .models import (
    ComplianceCheck,
    IdentifiedRisk,
    MissingClause,
    Priority,
    Recommendation,
    RecommendationType,
    RequirementStatus,
    RiskLevel,
)

_TYPE_ORDER = {t: i for i, t in enumerate(RecommendationType)}

_RISK_PRIORITY = {
    RiskLevel.CRITICAL: Priority.CRITICAL,
    RiskLevel.HIGH: Priority.HIGH,
    RiskLevel.MEDIUM: Priority.MEDIUM,
    RiskLevel.LOW: Priority.LOW,
}


class RecommendationGenerator:
    """Turn findings into prioritized, actionable recommendations.

    - HIGH and CRITICAL risks become ``risk_mitigation`` items, one per risk
    - unmet compliance requirements become ``compliance_fix`` items
    - missing expected clauses become ``clause_improvement`` items

    Output is ordered by priority, then type, then input order; ids are
    ``rec_1``, ``rec_2``... in that order.
    """

    def __init__(self, min_risk_severity: RiskLevel = RiskLevel.HIGH) -> None:
        self.min_risk_severity = min_risk_severity

    def generate(
        self,
        risks: Sequence[IdentifiedRisk],
        checks: Sequence[ComplianceCheck],
        missing: Sequence[MissingClause],
    ) -> list[Recommendation]:
        drafts: list[dict] = []
        drafts.extend(self._from_risks(risks))
        drafts.extend(self._from_compliance(checks))
        drafts.extend(self._from_missing_clauses(missing))

        ordered = sorted(
            enumerate(drafts),
            key=lambda item: (item[1]["priority"].rank, _TYPE_ORDER[item[1]["type"]], item[0]),
        )
        return [
            Recommendation(id=f"rec_{n}", **draft) for n, (_, draft) in enumerate(ordered, start=1)
        ]

    def _from_risks(self, risks: Sequence[IdentifiedRisk]) -> list[dict]:
        drafts = []
        for risk in risks:
            if not risk.severity.at_least(self.min_risk_severity):
                continue
            actions = []
            if risk.mitigation:
                actions.append(risk.mitigation)
            if risk.clauses:
                actions.append(f"Revise {', '.join(ref.clause_id for ref in risk.clauses)}.")
            actions.append("Have counsel confirm the revised wording.")
            drafts.append(
                {
                    "type": RecommendationType.RISK_MITIGATION,
                    "priority": _RISK_PRIORITY[risk.severity],
                    "title": f"Mitigate {risk.category.replace('_', ' ')} risk",
                    "description": risk.description,
                    "expected_impact": f"Removes a {risk.severity.value} severity risk and raises the risk score.",
                    "suggested_actions": tuple(actions),
                    "linked_ids": (risk.id,),
                }
            )
        return drafts

    def _from_compliance(self, checks: Sequence[ComplianceCheck]) -> list[dict]:
        drafts = []
        for check in checks:
            for requirement in check.gaps:
                missing = requirement.status == RequirementStatus.MISSING
                if requirement.mandatory:
                    priority = Priority.HIGH if missing else Priority.MEDIUM
                else:
                    priority = Priority.LOW
                action = (
                    f"Add a clause covering: {requirement.description.lower()}."
                    if missing
                    else f"Complete the existing clause: {requirement.note}"
                )
                drafts.append(
                    {
                        "type": RecommendationType.COMPLIANCE_FIX,
                        "priority": priority,
                        "title": f"{check.standard.value.upper()}: {requirement.description}",
                        "description": requirement.note or requirement.description,
                        "expected_impact": f"Improves {check.standard.value} compliance for {check.jurisdiction.value}.",
                        "suggested_actions": (action,),
                        "linked_ids": (requirement.id, *requirement.evidence),
                    }
                )
        return drafts

    def _from_missing_clauses(self, missing: Sequence[MissingClause]) -> list[dict]:
        drafts = []
        for clause in missing:
            required = clause.importance == "required"
            drafts.append(
                {
                    "type": RecommendationType.CLAUSE_IMPROVEMENT,
                    "priority": Priority.MEDIUM if required else Priority.LOW,
                    "title": f"Add a {clause.type.label.lower()} clause",
                    "description": clause.reason,
                    "expected_impact": "Improves contract completeness.",
                    "suggested_actions": (f"Draft a {clause.type.label.lower()} clause suited to {clause.jurisdiction.value}.",),
                    "linked_ids": (clause.type.value,),
                }
            )
        return drafts
