"""Exception hierarchy for the contract analysis pipeline."""

from __future__ import annotations


class ContractAnalysisError(Exception):
    """Base class for all errors raised by the pipeline."""


class ValidationError(ContractAnalysisError):
    """The request is malformed or the document is empty.

    Always fatal: no ``AnalysisResult`` is produced.
    """


class RuleConfigurationError(ContractAnalysisError):
    """A rule table could not be loaded or failed schema validation."""


class StageFailure(ContractAnalysisError):
    """A single pipeline stage raised or returned unusable output."""

    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"{stage} failed: {reason}")
        self.stage = stage
        self.reason = reason


class StageTimeout(StageFailure):
    """A stage exceeded its allotted time."""

    def __init__(self, stage: str, timeout: float) -> None:
        super().__init__(stage, f"timed out after {timeout:g}s")
        self.timeout = timeout


class AnalysisCancelled(ContractAnalysisError):
    """The caller cancelled the run; partial output is discarded."""
