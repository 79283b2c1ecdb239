"""Tests for rule table loading and validation."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import pytest

from contract_intelligence.errors import RuleConfigurationError
from contract_intelligence.models import (
    AnalysisDepth,
    ClauseType,
    ComplianceStandard,
    ContractType,
    Jurisdiction,
    RiskLevel,
)
from contract_intelligence.rules import Rulebook, compiled, get_rulebook, load_rulebook


@pytest.fixture
def rules_copy(tmp_path: Path) -> Path:
    """A writable copy of the packaged rule tables."""
    source = resources.files("contract_intelligence").joinpath("rules")
    for name in ("contract_types.yaml", "risk_rules.yaml", "compliance.yaml", "red_flags.yaml", "scoring.yaml"):
        (tmp_path / name).write_text(source.joinpath(name).read_text(encoding="utf-8"), encoding="utf-8")
    return tmp_path


class TestPackagedRulebook:
    def test_loads(self, rulebook: Rulebook) -> None:
        assert rulebook.version
        assert rulebook.risk_rules.rules
        assert rulebook.red_flags.flags

    def test_shared_instance(self) -> None:
        assert get_rulebook() is get_rulebook()

    def test_every_standard_has_a_checklist(self, rulebook: Rulebook) -> None:
        assert set(rulebook.compliance.standards) == set(ComplianceStandard)

    def test_every_contract_type_has_a_profile(self, rulebook: Rulebook) -> None:
        assert set(rulebook.contract_types.types) == set(ContractType)

    def test_weights_sum_to_one(self, rulebook: Rulebook) -> None:
        w = rulebook.scoring.weights
        assert w.risk + w.compliance + w.completeness + w.clarity == pytest.approx(1.0)

    def test_severity_penalties_increase(self, rulebook: Rulebook) -> None:
        penalties = rulebook.scoring.severity_penalties
        assert penalties[RiskLevel.LOW] < penalties[RiskLevel.MEDIUM] < penalties[RiskLevel.HIGH] < penalties[RiskLevel.CRITICAL]

    def test_rule_ids_unique(self, rulebook: Rulebook) -> None:
        ids = [r.id for r in rulebook.risk_rules.rules]
        assert len(ids) == len(set(ids))

    def test_five_red_flags(self, rulebook: Rulebook) -> None:
        assert len(rulebook.red_flags.flags) == 5


class TestDepthBudgets:
    def test_basic_runs_first_category_only(self, rulebook: Rulebook) -> None:
        categories = rulebook.risk_rules.categories_for(AnalysisDepth.BASIC)
        assert categories == (rulebook.risk_rules.categories[0],)

    def test_depth_is_monotonic(self, rulebook: Rulebook) -> None:
        sizes = [len(rulebook.risk_rules.categories_for(d)) for d in AnalysisDepth]
        assert sizes == sorted(sizes)

    def test_expert_includes_cross_clause(self, rulebook: Rulebook) -> None:
        assert "cross_clause" in rulebook.risk_rules.categories_for(AnalysisDepth.EXPERT)
        assert "cross_clause" not in rulebook.risk_rules.categories_for(AnalysisDepth.COMPREHENSIVE)


class TestExpectedClauses:
    def test_profile(self, rulebook: Rulebook) -> None:
        expected = rulebook.contract_types.expected_clauses(ContractType.NDA, Jurisdiction.INTERNATIONAL)
        assert ClauseType.CONFIDENTIALITY in [e.type for e in expected]

    def test_jurisdiction_addition(self, rulebook: Rulebook) -> None:
        table = rulebook.contract_types
        nigeria = {e.type: e for e in table.expected_clauses(ContractType.EMPLOYMENT, Jurisdiction.NIGERIA)}
        international = {e.type for e in table.expected_clauses(ContractType.EMPLOYMENT, Jurisdiction.INTERNATIONAL)}
        assert nigeria[ClauseType.COMPLIANCE].importance == "required"
        assert ClauseType.COMPLIANCE not in international


class TestBenchmarks:
    def test_known_and_default(self, rulebook: Rulebook) -> None:
        benchmarks = rulebook.scoring.benchmarks
        assert benchmarks.baseline_for(Jurisdiction.NIGERIA).mean == 66
        assert benchmarks.baseline_for(Jurisdiction.YEMEN) == benchmarks.default


class TestLoadErrors:
    def test_custom_directory(self, rules_copy: Path) -> None:
        assert load_rulebook(rules_copy).version == get_rulebook().version

    def test_missing_table(self, rules_copy: Path) -> None:
        (rules_copy / "scoring.yaml").unlink()
        with pytest.raises(RuleConfigurationError, match="not found"):
            load_rulebook(rules_copy)

    def test_invalid_yaml(self, rules_copy: Path) -> None:
        (rules_copy / "red_flags.yaml").write_text("flags: [unclosed", encoding="utf-8")
        with pytest.raises(RuleConfigurationError, match="invalid YAML"):
            load_rulebook(rules_copy)

    def test_schema_violation(self, rules_copy: Path) -> None:
        path = rules_copy / "scoring.yaml"
        path.write_text(path.read_text(encoding="utf-8").replace("risk: 0.40", "risk: 0.90"), encoding="utf-8")
        with pytest.raises(RuleConfigurationError, match="scoring.yaml"):
            load_rulebook(rules_copy)

    def test_bad_regex(self, rules_copy: Path) -> None:
        path = rules_copy / "red_flags.yaml"
        text = path.read_text(encoding="utf-8").replace(r"'\bunlimited\s+liability\b'", "'(unclosed'", 1)
        path.write_text(text, encoding="utf-8")
        with pytest.raises(RuleConfigurationError):
            load_rulebook(rules_copy)


class TestCompiled:
    def test_case_insensitive_and_cached(self) -> None:
        pattern = compiled(r"\bliability\b")
        assert pattern.search("LIABILITY")
        assert compiled(r"\bliability\b") is pattern
