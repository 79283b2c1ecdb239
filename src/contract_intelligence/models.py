"""Data models for contract analysis.

Every entity here is created fresh per request and never mutated after the
stage that produced it returns, so all result types are frozen dataclasses
holding tuples rather than lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ClauseType(str, Enum):
    """Primary clause labels, in tie-break priority order."""

    CONFIDENTIALITY = "confidentiality"
    LIABILITY = "liability"
    INTELLECTUAL_PROPERTY = "intellectual_property"
    TERMINATION = "termination"
    PAYMENT = "payment"
    DISPUTE_RESOLUTION = "dispute_resolution"
    COMPLIANCE = "compliance"
    FORCE_MAJEURE = "force_majeure"
    OTHER = "other"

    @property
    def priority(self) -> int:
        return _CLAUSE_PRIORITY[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


_CLAUSE_PRIORITY = {ct: i for i, ct in enumerate(ClauseType)}


class TermCategory(str, Enum):
    """Structured entity categories extracted from contract text."""

    PARTY = "party"
    DATE = "date"
    AMOUNT = "amount"
    OBLIGATION = "obligation"
    RIGHT = "right"
    CONDITION = "condition"
    PENALTY = "penalty"
    DEADLINE = "deadline"


class RiskLevel(str, Enum):
    """Risk severity, ordered LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def at_least(self, other: RiskLevel) -> bool:
        return self.rank >= other.rank


_RISK_RANK = {level: i for i, level in enumerate(RiskLevel)}


class AnalysisType(str, Enum):
    """Pipeline stages a caller can request."""

    CLAUSE_EXTRACTION = "clause_extraction"
    RISK_ASSESSMENT = "risk_assessment"
    COMPLIANCE_CHECK = "compliance_check"
    TERM_EXTRACTION = "term_extraction"
    RED_FLAG_DETECTION = "red_flag_detection"


class AnalysisDepth(str, Enum):
    """Controls extraction breadth and how many rule categories run."""

    BASIC = "basic"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"
    EXPERT = "expert"


class ComplianceStandard(str, Enum):
    GDPR = "gdpr"
    CCPA = "ccpa"
    HIPAA = "hipaa"
    SOX = "sox"
    PCI_DSS = "pci_dss"
    ISO_27001 = "iso_27001"
    SOC_2 = "soc_2"
    FCPA = "fcpa"
    UK_BRIBERY_ACT = "uk_bribery_act"
    LOCAL_LABOR_LAW = "local_labor_law"
    LOCAL_COMMERCIAL_LAW = "local_commercial_law"
    INTERNATIONAL_TRADE = "international_trade"


class RequirementStatus(str, Enum):
    SATISFIED = "satisfied"
    PARTIAL = "partial"
    MISSING = "missing"


class ContractType(str, Enum):
    EMPLOYMENT = "employment"
    SERVICE_AGREEMENT = "service_agreement"
    PURCHASE_AGREEMENT = "purchase_agreement"
    LEASE_AGREEMENT = "lease_agreement"
    NDA = "nda"
    PARTNERSHIP = "partnership"
    JOINT_VENTURE = "joint_venture"
    LICENSING = "licensing"
    DISTRIBUTION = "distribution"
    FRANCHISE = "franchise"
    MERGER_ACQUISITION = "merger_acquisition"
    LOAN_AGREEMENT = "loan_agreement"
    INSURANCE = "insurance"
    CONSTRUCTION = "construction"
    TECHNOLOGY_TRANSFER = "technology_transfer"
    CONSULTANCY = "consultancy"
    SUPPLY_CHAIN = "supply_chain"
    INTELLECTUAL_PROPERTY = "intellectual_property"
    REAL_ESTATE = "real_estate"
    INTERNATIONAL_TRADE = "international_trade"


class Jurisdiction(str, Enum):
    """Supported jurisdictions, valued by ISO 3166 alpha-2 code."""

    # Africa
    ALGERIA = "DZ"
    ANGOLA = "AO"
    BENIN = "BJ"
    BOTSWANA = "BW"
    BURKINA_FASO = "BF"
    BURUNDI = "BI"
    CAMEROON = "CM"
    CAPE_VERDE = "CV"
    CAR = "CF"
    CHAD = "TD"
    COMOROS = "KM"
    CONGO = "CG"
    DRC = "CD"
    DJIBOUTI = "DJ"
    EGYPT = "EG"
    EQUATORIAL_GUINEA = "GQ"
    ERITREA = "ER"
    ESWATINI = "SZ"
    ETHIOPIA = "ET"
    GABON = "GA"
    GAMBIA = "GM"
    GHANA = "GH"
    GUINEA = "GN"
    GUINEA_BISSAU = "GW"
    IVORY_COAST = "CI"
    KENYA = "KE"
    LESOTHO = "LS"
    LIBERIA = "LR"
    LIBYA = "LY"
    MADAGASCAR = "MG"
    MALAWI = "MW"
    MALI = "ML"
    MAURITANIA = "MR"
    MAURITIUS = "MU"
    MOROCCO = "MA"
    MOZAMBIQUE = "MZ"
    NAMIBIA = "NA"
    NIGER = "NE"
    NIGERIA = "NG"
    RWANDA = "RW"
    SAO_TOME = "ST"
    SENEGAL = "SN"
    SEYCHELLES = "SC"
    SIERRA_LEONE = "SL"
    SOMALIA = "SO"
    SOUTH_AFRICA = "ZA"
    SOUTH_SUDAN = "SS"
    SUDAN = "SD"
    TANZANIA = "TZ"
    TOGO = "TG"
    TUNISIA = "TN"
    UGANDA = "UG"
    ZAMBIA = "ZM"
    ZIMBABWE = "ZW"
    # Middle East
    BAHRAIN = "BH"
    CYPRUS = "CY"
    IRAN = "IR"
    IRAQ = "IQ"
    ISRAEL = "IL"
    JORDAN = "JO"
    KUWAIT = "KW"
    LEBANON = "LB"
    OMAN = "OM"
    PALESTINE = "PS"
    QATAR = "QA"
    SAUDI_ARABIA = "SA"
    SYRIA = "SY"
    TURKEY = "TR"
    UAE = "AE"
    YEMEN = "YE"
    # Cross-border
    INTERNATIONAL = "INTL"


class Language(str, Enum):
    ENGLISH = "en"
    FRENCH = "fr"
    ARABIC = "ar"
    PORTUGUESE = "pt"
    SWAHILI = "sw"
    AMHARIC = "am"
    HEBREW = "he"
    PERSIAN = "fa"
    TURKISH = "tr"
    GERMAN = "de"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {p: i for i, p in enumerate(Priority)}


class RecommendationType(str, Enum):
    RISK_MITIGATION = "risk_mitigation"
    COMPLIANCE_FIX = "compliance_fix"
    CLAUSE_IMPROVEMENT = "clause_improvement"


class PipelineState(str, Enum):
    VALIDATING = "validating"
    NORMALIZING = "normalizing"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    SCORING = "scoring"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Pipeline entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedDocument:
    """Validated, normalized contract text.

    All downstream spans are half-open offsets into ``text``.
    """

    text: str
    language: Language
    detected_language: Optional[Language] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    original_length: int = 0

    @property
    def length(self) -> int:
        return len(self.text)

    def contains_span(self, start: int, end: int) -> bool:
        return 0 <= start < end <= len(self.text)


@dataclass(frozen=True)
class ExtractedClause:
    """One labeled span of contract text."""

    id: str
    type: ClauseType
    start: int
    end: int
    text: str
    confidence: float
    heading: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "heading": self.heading,
            "span": {"start": self.start, "end": self.end},
            "content": self.text,
            "confidence": round(self.confidence, 3),
        }


@dataclass(frozen=True)
class ClauseReference:
    """Pointer from a finding back to the clause that produced it."""

    clause_id: str
    clause_type: ClauseType
    start: int
    end: int

    @classmethod
    def of(cls, clause: ExtractedClause) -> ClauseReference:
        return cls(clause.id, clause.type, clause.start, clause.end)

    def to_dict(self) -> dict:
        return {
            "clauseId": self.clause_id,
            "clauseType": self.clause_type.value,
            "span": {"start": self.start, "end": self.end},
        }


@dataclass(frozen=True)
class MissingClause:
    type: ClauseType
    importance: str
    reason: str
    jurisdiction: Jurisdiction

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "importance": self.importance,
            "reason": self.reason,
            "jurisdiction": self.jurisdiction.value,
        }


@dataclass(frozen=True)
class ExtractedTerm:
    """A structured entity found in the normalized text.

    ``value`` is the literal as written (``"₦2,000,000"``); ``normalized``
    is the category-specific canonical form (``"NGN 2000000.00"``).
    """

    id: str
    category: TermCategory
    value: str
    start: int
    end: int
    confidence: float
    normalized: Optional[str] = None
    attributes: dict = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category.value,
            "value": self.value,
            "normalizedValue": self.normalized,
            "attributes": dict(self.attributes),
            "span": {"start": self.start, "end": self.end},
            "confidence": round(self.confidence, 3),
        }


@dataclass(frozen=True)
class IdentifiedRisk:
    id: str
    rule_id: str
    severity: RiskLevel
    category: str
    description: str
    clauses: tuple[ClauseReference, ...] = ()
    mitigation: Optional[str] = None
    source: str = "rules"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "category": self.category,
            "description": self.description,
            "clauses": [c.to_dict() for c in self.clauses],
            "mitigation": self.mitigation,
            "source": self.source,
        }


@dataclass(frozen=True)
class RequirementResult:
    id: str
    description: str
    status: RequirementStatus
    mandatory: bool = True
    evidence: tuple[str, ...] = ()
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status.value,
            "mandatory": self.mandatory,
            "evidence": list(self.evidence),
            "note": self.note,
        }


@dataclass(frozen=True)
class ComplianceCheck:
    standard: ComplianceStandard
    jurisdiction: Jurisdiction
    requirements: tuple[RequirementResult, ...] = ()
    percentage: float = 0.0

    @property
    def gaps(self) -> tuple[RequirementResult, ...]:
        return tuple(r for r in self.requirements if r.status != RequirementStatus.SATISFIED)

    @property
    def status(self) -> str:
        if not self.gaps:
            return "compliant"
        if all(r.status == RequirementStatus.MISSING for r in self.requirements):
            return "non_compliant"
        return "partially_compliant"

    def to_dict(self) -> dict:
        return {
            "standard": self.standard.value,
            "jurisdiction": self.jurisdiction.value,
            "status": self.status,
            "percentage": round(self.percentage, 1),
            "requirements": [r.to_dict() for r in self.requirements],
        }


@dataclass(frozen=True)
class RedFlag:
    id: str
    title: str
    description: str
    severity: RiskLevel
    clause: Optional[ClauseReference] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "clause": self.clause.to_dict() if self.clause else None,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    risk: float
    compliance: float
    completeness: float
    clarity: float

    def to_dict(self) -> dict:
        return {
            "risk": round(self.risk, 1),
            "compliance": round(self.compliance, 1),
            "completeness": round(self.completeness, 1),
            "clarity": round(self.clarity, 1),
        }


@dataclass(frozen=True)
class BenchmarkComparison:
    jurisdiction: Jurisdiction
    baseline: float
    delta: float
    percentile: float

    def to_dict(self) -> dict:
        return {
            "jurisdiction": self.jurisdiction.value,
            "baseline": round(self.baseline, 1),
            "delta": round(self.delta, 1),
            "percentile": round(self.percentile, 1),
        }


@dataclass(frozen=True)
class ContractScore:
    overall: float
    breakdown: ScoreBreakdown
    benchmark: BenchmarkComparison
    improvement_areas: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "overall": round(self.overall, 1),
            "breakdown": self.breakdown.to_dict(),
            "benchmarkComparison": self.benchmark.to_dict(),
            "improvementAreas": list(self.improvement_areas),
        }


@dataclass(frozen=True)
class Recommendation:
    id: str
    type: RecommendationType
    priority: Priority
    title: str
    description: str
    expected_impact: str
    suggested_actions: tuple[str, ...] = ()
    linked_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "expectedImpact": self.expected_impact,
            "suggestedActions": list(self.suggested_actions),
            "linkedIds": list(self.linked_ids),
        }


@dataclass(frozen=True)
class NegotiationPoint:
    """A clause worth renegotiating because it carries a serious risk."""

    id: str
    clause: ClauseReference
    issue: str
    current_position: str
    suggested_position: str
    importance: Priority
    risk_if_unchanged: RiskLevel
    alternatives: tuple[str, ...] = ()
    linked_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clause": self.clause.to_dict(),
            "issue": self.issue,
            "currentPosition": self.current_position,
            "suggestedPosition": self.suggested_position,
            "importance": self.importance.value,
            "riskIfUnchanged": self.risk_if_unchanged.value,
            "alternatives": list(self.alternatives),
            "linkedIds": list(self.linked_ids),
        }


@dataclass(frozen=True)
class DocumentInfo:
    file_name: Optional[str]
    mime_type: Optional[str]
    char_count: int
    word_count: int
    page_count: int
    language: Language
    detected_language: Optional[Language]
    checksum: str

    def to_dict(self) -> dict:
        return {
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "charCount": self.char_count,
            "wordCount": self.word_count,
            "pageCount": self.page_count,
            "language": self.language.value,
            "detectedLanguage": self.detected_language.value if self.detected_language else None,
            "checksum": self.checksum,
        }


@dataclass(frozen=True)
class AnalysisSummary:
    execution_time: float
    confidence_level: float
    stages_executed: tuple[str, ...]
    warnings: tuple[str, ...] = ()
    clauses_found: int = 0
    risks_identified: int = 0
    compliance_issues: int = 0
    recommendations_generated: int = 0
    completeness: float = 0.0
    risk_threshold: RiskLevel = RiskLevel.LOW

    def to_dict(self) -> dict:
        return {
            "executionTime": round(self.execution_time, 3),
            "confidenceLevel": round(self.confidence_level, 3),
            "stagesExecuted": list(self.stages_executed),
            "warnings": list(self.warnings),
            "clausesFound": self.clauses_found,
            "risksIdentified": self.risks_identified,
            "complianceIssues": self.compliance_issues,
            "recommendationsGenerated": self.recommendations_generated,
            "completeness": round(self.completeness, 3),
            "riskThreshold": self.risk_threshold.value,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Complete assessment of one contract."""

    analysis_id: str
    contract_type: ContractType
    contract_type_inferred: bool
    jurisdiction: Jurisdiction
    document: DocumentInfo
    score: ContractScore
    summary: AnalysisSummary
    extracted_clauses: tuple[ExtractedClause, ...] = ()
    missing_clauses: tuple[MissingClause, ...] = ()
    extracted_terms: tuple[ExtractedTerm, ...] = ()
    identified_risks: tuple[IdentifiedRisk, ...] = ()
    compliance_checks: tuple[ComplianceCheck, ...] = ()
    red_flags: tuple[RedFlag, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    negotiation_points: tuple[NegotiationPoint, ...] = ()

    @property
    def high_risks(self) -> list[IdentifiedRisk]:
        return [r for r in self.identified_risks if r.severity.at_least(RiskLevel.HIGH)]

    def compliance_for(self, standard: ComplianceStandard) -> Optional[ComplianceCheck]:
        for check in self.compliance_checks:
            if check.standard == standard:
                return check
        return None

    def to_dict(self) -> dict:
        return {
            "analysisId": self.analysis_id,
            "contractType": self.contract_type.value,
            "contractTypeInferred": self.contract_type_inferred,
            "jurisdiction": self.jurisdiction.value,
            "document": self.document.to_dict(),
            "extractedClauses": [c.to_dict() for c in self.extracted_clauses],
            "missingClauses": [m.to_dict() for m in self.missing_clauses],
            "extractedTerms": [t.to_dict() for t in self.extracted_terms],
            "identifiedRisks": [r.to_dict() for r in self.identified_risks],
            "complianceChecks": [c.to_dict() for c in self.compliance_checks],
            "redFlags": [f.to_dict() for f in self.red_flags],
            "contractScore": self.score.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "negotiationPoints": [p.to_dict() for p in self.negotiation_points],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class BatchError:
    """A document in a batch that could not be analyzed."""

    index: int
    file_name: Optional[str]
    error: str

    def to_dict(self) -> dict:
        return {"index": self.index, "fileName": self.file_name, "error": self.error}


@dataclass(frozen=True)
class BatchResult:
    """Results of analyzing several documents with the same analyzer."""

    results: tuple[AnalysisResult, ...] = ()
    errors: tuple[BatchError, ...] = ()

    @property
    def total(self) -> int:
        return len(self.results) + len(self.errors)

    @property
    def average_score(self) -> float:
        if not self.results:
            return 0.0
        return sum(r.score.overall for r in self.results) / len(self.results)

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
            "summary": {
                "totalDocuments": self.total,
                "successfulAnalyses": len(self.results),
                "failedAnalyses": len(self.errors),
                "averageScore": round(self.average_score, 1),
            },
        }
