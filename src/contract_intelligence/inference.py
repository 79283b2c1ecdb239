"""
Remote inference advisor.

The risk stage may consult an external reasoning service after local rule
evaluation. Advisors are asynchronous; the pipeline bounds each call with a
timeout and keeps the local result if the advisor fails.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from tenacity import retry, stop_after_attempt, wait_exponential

from .config import Settings
from .models import ContractType, ExtractedClause, IdentifiedRisk, Jurisdiction, RiskLevel
from .prompts import CLAUSE_LINE, RISK_REVIEW_PROMPT, SYSTEM_PROMPT

logger = logging.getLogger(__name__)

# Keep prompts within a single request
MAX_PROMPT_CHARS = 50000


@dataclass(frozen=True)
class AdvisorFinding:
    """A risk suggested by an advisor, before it becomes an IdentifiedRisk."""

    severity: RiskLevel
    category: str
    description: str
    clause_id: Optional[str] = None
    mitigation: Optional[str] = None


class InferenceAdvisor(ABC):
    """Something that can suggest extra risks for a contract."""

    @abstractmethod
    async def review(
        self,
        clauses: Sequence[ExtractedClause],
        known_risks: Sequence[IdentifiedRisk],
        jurisdiction: Jurisdiction,
        contract_type: ContractType,
    ) -> list[AdvisorFinding]:
        """Return risks not already in ``known_risks``."""


class LLMInferenceAdvisor(InferenceAdvisor):
    """
    Advisor backed by OpenAI or Anthropic chat models.

    The blocking client call runs in a worker thread so the event loop can
    enforce the pipeline's timeout.
    """

    def __init__(self, model: str = "gpt-4-turbo", max_attempts: int = 3):
        """
        Args:
            model: Model name (gpt-4-turbo, claude-3-5-sonnet-latest, etc.)
            max_attempts: Attempts per call before giving up.
        """
        self.model = model
        self.max_attempts = max_attempts
        self.is_anthropic = model.startswith("claude")
        self._init_client()

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMInferenceAdvisor:
        """Build the advisor configured by ``llm_model`` and ``advisor_max_attempts``."""
        return cls(model=settings.llm_model, max_attempts=settings.advisor_max_attempts)

    def _init_client(self):
        """Initialize the appropriate API client."""
        if self.is_anthropic:
            api_key = os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY not found in environment")

            from anthropic import Anthropic

            self.client = Anthropic(api_key=api_key)
        else:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found in environment")

            from openai import OpenAI

            self.client = OpenAI(api_key=api_key)

    def _call_llm(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        """Call the model, retrying with exponential backoff."""
        caller = retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=4, max=10),
            reraise=True,
        )(self._send)
        return caller(prompt, system_prompt)

    def _send(self, prompt: str, system_prompt: str) -> str:
        if self.is_anthropic:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=2048,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.content[0].text
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=0.0,
            max_tokens=2048,
        )
        return response.choices[0].message.content

    def build_prompt(
        self,
        clauses: Sequence[ExtractedClause],
        known_risks: Sequence[IdentifiedRisk],
        jurisdiction: Jurisdiction,
        contract_type: ContractType,
    ) -> str:
        clause_lines = "\n".join(
            CLAUSE_LINE.format(id=c.id, type=c.type.value, text=" ".join(c.text.split()))
            for c in clauses
        )
        known = "\n".join(f"- [{r.severity.value}] {r.description}" for r in known_risks) or "- none"
        return RISK_REVIEW_PROMPT.format(
            contract_type=contract_type.value.replace("_", " "),
            jurisdiction=jurisdiction.value,
            clauses=clause_lines[:MAX_PROMPT_CHARS],
            known_risks=known,
        )

    async def review(
        self,
        clauses: Sequence[ExtractedClause],
        known_risks: Sequence[IdentifiedRisk],
        jurisdiction: Jurisdiction,
        contract_type: ContractType,
    ) -> list[AdvisorFinding]:
        prompt = self.build_prompt(clauses, known_risks, jurisdiction, contract_type)
        response = await asyncio.to_thread(self._call_llm, prompt)
        return parse_findings(_parse_json_response(response))


def _parse_json_response(response: str) -> dict:
    """
    Parse JSON from a model response, handling markdown code blocks.

    Raises:
        ValueError: If the response holds no JSON object.
    """
    if "```json" in response:
        start = response.find("```json") + 7
        end = response.find("```", start)
        response = response[start:end].strip()
    elif "```" in response:
        start = response.find("```") + 3
        end = response.find("```", start)
        response = response[start:end].strip()

    try:
        parsed = json.loads(response)
    except json.JSONDecodeError as exc:
        raise ValueError(f"advisor returned invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("advisor response is not a JSON object")
    return parsed


def parse_findings(payload: dict) -> list[AdvisorFinding]:
    """Convert an advisor payload into findings, skipping malformed entries."""
    findings: list[AdvisorFinding] = []
    for item in payload.get("risks") or []:
        if not isinstance(item, dict) or not item.get("description"):
            continue
        try:
            severity = RiskLevel(str(item.get("severity", "medium")).lower())
        except ValueError:
            logger.debug("Dropping advisor finding with severity %r", item.get("severity"))
            continue
        findings.append(
            AdvisorFinding(
                severity=severity,
                category=str(item.get("category") or "advisor"),
                description=str(item["description"]).strip(),
                clause_id=item.get("clause_id"),
                mitigation=item.get("mitigation"),
            )
        )
    return findings
