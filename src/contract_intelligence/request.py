"""Request schema for the analysis pipeline.

Requests arrive as JSON-shaped dicts with camelCase keys from the
surrounding application. They are parsed into frozen pydantic models here;
any schema failure is re-raised as :class:`~contract_intelligence.errors.ValidationError`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .models import (
    AnalysisDepth,
    AnalysisType,
    ComplianceStandard,
    ContractType,
    Jurisdiction,
    Language,
    RiskLevel,
    TermCategory,
)

# Legacy request value that stands for every stage
FULL_ANALYSIS = "full_analysis"


def coerce_enum(enum_cls: type[Enum], value: Any) -> Any:
    """Map an enum value or member name (any case) onto ``enum_cls``.

    Unknown values are returned untouched so pydantic reports them.
    """
    if isinstance(value, enum_cls) or not isinstance(value, str):
        return value
    key = value.strip().lower()
    for member in enum_cls:
        if key == str(member.value).lower() or key == member.name.lower():
            return member
    return value


def _dedupe(items: list) -> list:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class DocumentInput(_RequestModel):
    content: str
    file_name: Optional[str] = None
    mime_type: str = "text/plain"

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("document content is empty")
        return v


class ExtractionOptions(_RequestModel):
    """Per-category switches for term extraction.

    ``extract_entities`` is the master switch; when it is off no terms are
    extracted regardless of the category flags.
    """

    extract_entities: bool = True
    extract_dates: bool = True
    extract_amounts: bool = True
    extract_parties: bool = True
    extract_obligations: bool = True
    extract_rights: bool = True
    extract_conditions: bool = True
    extract_penalties: bool = True
    extract_deadlines: bool = True
    identify_missing_clauses: bool = True

    def enabled_categories(self) -> list[TermCategory]:
        if not self.extract_entities:
            return []
        flags = {
            TermCategory.PARTY: self.extract_parties,
            TermCategory.DATE: self.extract_dates,
            TermCategory.AMOUNT: self.extract_amounts,
            TermCategory.OBLIGATION: self.extract_obligations,
            TermCategory.RIGHT: self.extract_rights,
            TermCategory.CONDITION: self.extract_conditions,
            TermCategory.PENALTY: self.extract_penalties,
            TermCategory.DEADLINE: self.extract_deadlines,
        }
        return [category for category, enabled in flags.items() if enabled]


_SCALAR_ENUMS: dict[str, type[Enum]] = {
    "jurisdiction": Jurisdiction,
    "language": Language,
    "contract_type": ContractType,
    "risk_threshold": RiskLevel,
    "analysis_depth": AnalysisDepth,
}


class AnalysisRequest(_RequestModel):
    """One analysis call: a document plus everything that shapes the run."""

    document: DocumentInput
    analysis_types: list[AnalysisType] = Field(min_length=1)
    jurisdiction: Jurisdiction
    language: Language
    contract_type: Optional[ContractType] = None
    compliance_standards: list[ComplianceStandard] = Field(default_factory=list)
    risk_threshold: RiskLevel = RiskLevel.LOW
    analysis_depth: AnalysisDepth = AnalysisDepth.STANDARD
    include_recommendations: bool = True
    extraction_options: ExtractionOptions = Field(default_factory=ExtractionOptions)
    confidentiality_level: Literal["public", "confidential", "privileged"] = "confidential"

    @field_validator(*_SCALAR_ENUMS, mode="before")
    @classmethod
    def coerce_scalar_enum(cls, v: Any, info: ValidationInfo) -> Any:
        return coerce_enum(_SCALAR_ENUMS[info.field_name], v)

    @field_validator("analysis_types", mode="before")
    @classmethod
    def coerce_analysis_types(cls, v: Any) -> Any:
        if isinstance(v, (str, AnalysisType)):
            v = [v]
        if not isinstance(v, (list, tuple, set, frozenset)):
            return v
        expanded: list = []
        for item in v:
            if isinstance(item, str) and item.strip().lower() == FULL_ANALYSIS:
                expanded.extend(AnalysisType)
            else:
                expanded.append(coerce_enum(AnalysisType, item))
        return _dedupe(expanded)

    @field_validator("compliance_standards", mode="before")
    @classmethod
    def coerce_standards(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, ComplianceStandard)):
            v = [v]
        if not isinstance(v, (list, tuple, set, frozenset)):
            return v
        return _dedupe([coerce_enum(ComplianceStandard, item) for item in v])

    @field_validator("confidentiality_level", mode="before")
    @classmethod
    def lower_confidentiality(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    def wants(self, stage: AnalysisType) -> bool:
        return stage in self.analysis_types


def _describe(exc: PydanticValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "request"
        problems.append(f"{location}: {err['msg']}")
    return "invalid analysis request: " + "; ".join(problems)


def parse_request(data: AnalysisRequest | dict) -> AnalysisRequest:
    """Validate a request dict (camelCase or snake_case keys).

    Raises:
        ValidationError: If any field is missing, malformed or the document
            content is empty.
    """
    if isinstance(data, AnalysisRequest):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"analysis request must be a mapping, got {type(data).__name__}")
    try:
        return AnalysisRequest.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
