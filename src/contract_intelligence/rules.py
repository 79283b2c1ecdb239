"""Declarative rule tables.

The risk rules, compliance checklists, red-flag patterns, contract type
profiles and scoring configuration ship as YAML under ``rules/``. They are
parsed with :func:`yaml.safe_load`, validated into frozen pydantic models and
cached, so every analysis in the process shares one read-only
:class:`Rulebook`.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import RuleConfigurationError
from .models import (
    AnalysisDepth,
    ClauseType,
    ComplianceStandard,
    ContractType,
    Jurisdiction,
    RiskLevel,
    TermCategory,
)

logger = logging.getLogger(__name__)

ANY = "*"


@lru_cache(maxsize=None)
def compiled(pattern: str) -> re.Pattern:
    """Compile a rule pattern (case-insensitive, cached)."""
    return re.compile(pattern, re.IGNORECASE)


def _check_patterns(patterns: tuple[str, ...]) -> tuple[str, ...]:
    for pattern in patterns:
        try:
            compiled(pattern)
        except re.error as exc:
            raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
    return patterns


class _Table(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class _Selector(_Table):
    """Jurisdiction / contract type applicability, ``"*"`` for all."""

    jurisdictions: tuple[str, ...] = (ANY,)
    contract_types: tuple[str, ...] = (ANY,)

    @field_validator("jurisdictions")
    @classmethod
    def known_jurisdictions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for code in v:
            if code != ANY:
                Jurisdiction(code)
        return v

    @field_validator("contract_types")
    @classmethod
    def known_contract_types(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for name in v:
            if name != ANY:
                ContractType(name)
        return v

    def applies(self, jurisdiction: Jurisdiction, contract_type: ContractType) -> bool:
        return (ANY in self.jurisdictions or jurisdiction.value in self.jurisdictions) and (
            ANY in self.contract_types or contract_type.value in self.contract_types
        )


# ---------------------------------------------------------------------------
# Contract types
# ---------------------------------------------------------------------------


class ExpectedClause(_Table):
    type: ClauseType
    importance: Literal["required", "recommended"] = "required"
    reason: str = ""


class ContractTypeProfile(_Table):
    signals: tuple[str, ...] = ()
    expected: tuple[ExpectedClause, ...] = ()


class ClauseAddition(_Selector):
    clauses: tuple[ExpectedClause, ...]


class ContractTypeTable(_Table):
    version: str
    default_type: ContractType
    title_region_chars: int = 400
    types: dict[ContractType, ContractTypeProfile]
    additions: tuple[ClauseAddition, ...] = ()

    def expected_clauses(
        self, contract_type: ContractType, jurisdiction: Jurisdiction
    ) -> list[ExpectedClause]:
        """Expected clauses for a contract type, jurisdiction additions merged in."""
        profile = self.types.get(contract_type, ContractTypeProfile())
        merged: dict[ClauseType, ExpectedClause] = {e.type: e for e in profile.expected}
        for addition in self.additions:
            if not addition.applies(jurisdiction, contract_type):
                continue
            for clause in addition.clauses:
                current = merged.get(clause.type)
                if current is None or (
                    current.importance == "recommended" and clause.importance == "required"
                ):
                    merged[clause.type] = clause
        return sorted(merged.values(), key=lambda e: e.type.priority)


# ---------------------------------------------------------------------------
# Risk rules
# ---------------------------------------------------------------------------


class RiskMatch(_Table):
    kind: Literal["clause_pattern", "missing_clause", "term_absent", "term_pattern", "conflict"]
    clause_types: tuple[ClauseType, ...] = ()
    clause_type: Optional[ClauseType] = None
    term_category: Optional[TermCategory] = None
    patterns: tuple[str, ...] = ()
    unless: tuple[str, ...] = ()
    capture: Optional[str] = None

    @field_validator("patterns", "unless")
    @classmethod
    def valid_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_patterns(v)

    @model_validator(mode="after")
    def fields_for_kind(self) -> RiskMatch:
        if self.kind == "clause_pattern" and not self.patterns:
            raise ValueError("clause_pattern rules need patterns")
        if self.kind == "missing_clause" and self.clause_type is None:
            raise ValueError("missing_clause rules need clause_type")
        if self.kind in ("term_absent", "term_pattern") and self.term_category is None:
            raise ValueError(f"{self.kind} rules need term_category")
        if self.kind == "term_pattern" and not self.patterns:
            raise ValueError("term_pattern rules need patterns")
        if self.kind == "conflict":
            if not self.capture:
                raise ValueError("conflict rules need capture")
            _check_patterns((self.capture,))
            if compiled(self.capture).groups < 1:
                raise ValueError("conflict capture needs a group")
        return self


class RiskRule(_Selector):
    id: str
    category: str
    severity: RiskLevel
    description: str
    mitigation: Optional[str] = None
    match: RiskMatch


class RiskRuleSet(_Table):
    version: str
    categories: tuple[str, ...]
    depth_budgets: dict[AnalysisDepth, int]
    rules: tuple[RiskRule, ...]

    @model_validator(mode="after")
    def consistent(self) -> RiskRuleSet:
        ids = [r.id for r in self.rules]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate rule ids: {', '.join(duplicates)}")
        unknown = sorted({r.category for r in self.rules} - set(self.categories))
        if unknown:
            raise ValueError(f"rules use undeclared categories: {', '.join(unknown)}")
        missing = [d.value for d in AnalysisDepth if d not in self.depth_budgets]
        if missing:
            raise ValueError(f"depth_budgets missing: {', '.join(missing)}")
        return self

    def categories_for(self, depth: AnalysisDepth) -> tuple[str, ...]:
        """Highest-priority categories evaluated at ``depth``."""
        return self.categories[: max(1, self.depth_budgets[depth])]


# ---------------------------------------------------------------------------
# Compliance checklists
# ---------------------------------------------------------------------------


class RequirementElement(_Table):
    label: str
    patterns: tuple[str, ...] = ()
    term: Optional[TermCategory] = None

    @field_validator("patterns")
    @classmethod
    def valid_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_patterns(v)

    @model_validator(mode="after")
    def has_evidence_source(self) -> RequirementElement:
        if not self.patterns and self.term is None:
            raise ValueError(f"element {self.label!r} needs patterns or a term category")
        return self


class Requirement(_Table):
    id: str
    description: str
    mandatory: bool = True
    jurisdictions: tuple[str, ...] = (ANY,)
    anchor: tuple[str, ...] = Field(min_length=1)
    elements: tuple[RequirementElement, ...] = ()

    @field_validator("anchor")
    @classmethod
    def valid_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_patterns(v)

    def applies_to(self, jurisdiction: Jurisdiction) -> bool:
        return ANY in self.jurisdictions or jurisdiction.value in self.jurisdictions


class StandardChecklist(_Table):
    name: str
    requirements: tuple[Requirement, ...] = Field(min_length=1)


class ComplianceTable(_Table):
    version: str
    standards: dict[ComplianceStandard, StandardChecklist]

    @model_validator(mode="after")
    def covers_every_standard(self) -> ComplianceTable:
        missing = [s.value for s in ComplianceStandard if s not in self.standards]
        if missing:
            raise ValueError(f"no checklist for: {', '.join(missing)}")
        return self


# ---------------------------------------------------------------------------
# Red flags
# ---------------------------------------------------------------------------


class PlaceMismatch(_Table):
    left: str
    right: str

    @model_validator(mode="after")
    def capturing(self) -> PlaceMismatch:
        for pattern in (self.left, self.right):
            _check_patterns((pattern,))
            if compiled(pattern).groups < 1:
                raise ValueError("mismatch patterns need a capture group")
        return self


class RedFlagRule(_Table):
    id: str
    title: str
    description: str
    severity: RiskLevel
    patterns: tuple[str, ...] = Field(min_length=1)
    unless: tuple[str, ...] = ()
    mismatch: Optional[PlaceMismatch] = None

    @field_validator("patterns", "unless")
    @classmethod
    def valid_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_patterns(v)


class RedFlagTable(_Table):
    version: str
    flags: tuple[RedFlagRule, ...]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class ScoreWeights(_Table):
    risk: float
    compliance: float
    completeness: float
    clarity: float

    @model_validator(mode="after")
    def sums_to_one(self) -> ScoreWeights:
        total = self.risk + self.compliance + self.completeness + self.clarity
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"score weights must sum to 1.0, got {total:g}")
        return self


class RedFlagScoring(_Table):
    risk_escalation: float
    overall_penalty: float
    overall_penalty_cap: float


class CompletenessScoring(_Table):
    missing_clause_penalty: float
    recommended_weight: float = 0.5


class ClarityScoring(_Table):
    baseline_grade: float
    grade_penalty: float
    jargon_penalty: float
    long_sentence_words: float
    long_sentence_penalty: float


class Baseline(_Table):
    mean: float
    stddev: float = Field(gt=0)


class BenchmarkTable(_Table):
    default: Baseline
    jurisdictions: dict[Jurisdiction, Baseline] = Field(default_factory=dict)

    def baseline_for(self, jurisdiction: Jurisdiction) -> Baseline:
        return self.jurisdictions.get(jurisdiction, self.default)


class ScoringConfig(_Table):
    version: str
    weights: ScoreWeights
    severity_penalties: dict[RiskLevel, float]
    risk_penalty_cap: float
    red_flags: RedFlagScoring
    completeness: CompletenessScoring
    clarity: ClarityScoring
    improvement_threshold: float = 70
    benchmarks: BenchmarkTable


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class Rulebook(_Table):
    """Every rule table the pipeline reads, loaded once and never mutated."""

    contract_types: ContractTypeTable
    risk_rules: RiskRuleSet
    compliance: ComplianceTable
    red_flags: RedFlagTable
    scoring: ScoringConfig

    @property
    def version(self) -> str:
        return self.risk_rules.version


_TABLES: dict[str, tuple[str, type[BaseModel]]] = {
    "contract_types": ("contract_types.yaml", ContractTypeTable),
    "risk_rules": ("risk_rules.yaml", RiskRuleSet),
    "compliance": ("compliance.yaml", ComplianceTable),
    "red_flags": ("red_flags.yaml", RedFlagTable),
    "scoring": ("scoring.yaml", ScoringConfig),
}


def _read_table(file_name: str, rules_dir: Optional[Path]) -> str:
    if rules_dir is not None:
        path = Path(rules_dir) / file_name
        if not path.exists():
            raise RuleConfigurationError(f"rule table not found: {path}")
        return path.read_text(encoding="utf-8")
    table = resources.files("contract_intelligence").joinpath("rules").joinpath(file_name)
    return table.read_text(encoding="utf-8")


def _parse_table(file_name: str, model: type[BaseModel], yaml_text: str) -> BaseModel:
    try:
        raw = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise RuleConfigurationError(f"{file_name}: invalid YAML: {exc}") from exc
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise RuleConfigurationError(f"{file_name}: {exc}") from exc


def load_rulebook(rules_dir: Optional[Path] = None) -> Rulebook:
    """Read and validate every rule table.

    Args:
        rules_dir: Directory holding the YAML tables. The packaged tables are
            used when None.

    Raises:
        RuleConfigurationError: If a table is missing, is not valid YAML or
            fails schema validation.
    """
    tables = {}
    for key, (file_name, model) in _TABLES.items():
        tables[key] = _parse_table(file_name, model, _read_table(file_name, rules_dir))
    rulebook = Rulebook(**tables)
    logger.debug(
        "Loaded rulebook %s: %d risk rules, %d standards, %d red flags",
        rulebook.version,
        len(rulebook.risk_rules.rules),
        len(rulebook.compliance.standards),
        len(rulebook.red_flags.flags),
    )
    return rulebook


@lru_cache(maxsize=None)
def get_rulebook(rules_dir: Optional[Path] = None) -> Rulebook:
    """Process-wide shared rulebook, loaded on first use."""
    return load_rulebook(rules_dir)
