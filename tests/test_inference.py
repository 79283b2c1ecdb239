"""Tests for the LLM-backed risk advisor."""

from __future__ import annotations

import asyncio

import pytest

from contract_intelligence.config import Settings
from contract_intelligence.inference import (
    LLMInferenceAdvisor,
    _parse_json_response,
    parse_findings,
)
from contract_intelligence.models import (
    ClauseType,
    ContractType,
    ExtractedClause,
    IdentifiedRisk,
    Jurisdiction,
    RiskLevel,
)

RESPONSE = '{"risks": [{"clause_id": "clause_1", "severity": "high", "category": "payment", "description": "Fees can change."}]}'


@pytest.fixture
def offline_advisor(monkeypatch) -> LLMInferenceAdvisor:
    monkeypatch.setattr(LLMInferenceAdvisor, "_init_client", lambda self: None)
    return LLMInferenceAdvisor(model="gpt-4-turbo", max_attempts=1)


@pytest.fixture
def clause() -> ExtractedClause:
    text = "The Supplier may change its fees\nat any time."
    return ExtractedClause(
        id="clause_1", type=ClauseType.PAYMENT, start=0, end=len(text), text=text, confidence=0.9
    )


class TestParseJsonResponse:
    def test_plain(self) -> None:
        assert _parse_json_response('{"risks": []}') == {"risks": []}

    def test_json_fence(self) -> None:
        assert _parse_json_response('Here you go:\n```json\n{"risks": []}\n```') == {"risks": []}

    def test_bare_fence(self) -> None:
        assert _parse_json_response('```\n{"risks": []}\n```') == {"risks": []}

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="invalid JSON"):
            _parse_json_response("no risks found")

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError, match="not a JSON object"):
            _parse_json_response("[1, 2]")


class TestParseFindings:
    def test_valid(self) -> None:
        (finding,) = parse_findings(_parse_json_response(RESPONSE))
        assert finding.severity is RiskLevel.HIGH
        assert finding.category == "payment"
        assert finding.clause_id == "clause_1"
        assert finding.mitigation is None

    def test_defaults(self) -> None:
        (finding,) = parse_findings({"risks": [{"description": "  Vague scope.  "}]})
        assert finding.severity is RiskLevel.MEDIUM
        assert finding.category == "advisor"
        assert finding.description == "Vague scope."

    def test_malformed_entries_skipped(self) -> None:
        payload = {
            "risks": [
                "not a dict",
                {"severity": "high"},
                {"severity": "catastrophic", "description": "Unknown severity."},
                {"severity": "LOW", "description": "Kept."},
            ]
        }
        assert [f.description for f in parse_findings(payload)] == ["Kept."]

    def test_missing_key(self) -> None:
        assert parse_findings({}) == []


class TestLLMInferenceAdvisor:
    def test_requires_api_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            LLMInferenceAdvisor(model="gpt-4-turbo")

    def test_anthropic_requires_api_key(self, monkeypatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            LLMInferenceAdvisor(model="claude-3-5-sonnet-latest")

    def test_build_prompt(self, offline_advisor: LLMInferenceAdvisor, clause: ExtractedClause) -> None:
        prompt = offline_advisor.build_prompt([clause], [], Jurisdiction.KENYA, ContractType.SERVICE_AGREEMENT)
        assert "service agreement contract governed in jurisdiction KE" in prompt
        assert "[clause_1] (payment) The Supplier may change its fees at any time." in prompt
        assert "- none" in prompt

    def test_known_risks_listed(self, offline_advisor: LLMInferenceAdvisor, clause: ExtractedClause) -> None:
        known = IdentifiedRisk(
            id="risk_a_1", rule_id="a", severity=RiskLevel.HIGH, category="payment", description="Known issue."
        )
        prompt = offline_advisor.build_prompt([clause], [known], Jurisdiction.KENYA, ContractType.NDA)
        assert "- [high] Known issue." in prompt

    def test_review(self, monkeypatch, offline_advisor: LLMInferenceAdvisor, clause: ExtractedClause) -> None:
        prompts = []

        def fake_call(prompt: str, system_prompt: str = "") -> str:
            prompts.append(prompt)
            return f"```json\n{RESPONSE}\n```"

        monkeypatch.setattr(offline_advisor, "_call_llm", fake_call)
        findings = asyncio.run(
            offline_advisor.review([clause], [], Jurisdiction.NIGERIA, ContractType.SERVICE_AGREEMENT)
        )
        assert [f.description for f in findings] == ["Fees can change."]
        assert len(prompts) == 1

    def test_retries_then_raises(self, monkeypatch, offline_advisor: LLMInferenceAdvisor) -> None:
        calls = []

        def failing_send(prompt: str, system_prompt: str) -> str:
            calls.append(prompt)
            raise ConnectionError("down")

        monkeypatch.setattr(offline_advisor, "_send", failing_send)
        with pytest.raises(ConnectionError):
            offline_advisor._call_llm("prompt")
        assert len(calls) == 1

    def test_from_settings(self, monkeypatch) -> None:
        monkeypatch.setattr(LLMInferenceAdvisor, "_init_client", lambda self: None)
        advisor = LLMInferenceAdvisor.from_settings(
            Settings(llm_model="claude-3-5-sonnet-latest", advisor_max_attempts=5)
        )
        assert advisor.model == "claude-3-5-sonnet-latest"
        assert advisor.max_attempts == 5
        assert advisor.is_anthropic
