"""Pipeline orchestrator.

``ContractAnalyzer`` validates a request, normalizes the document, runs the
extraction stages and then the analysis stages in parallel on a bounded
worker pool, and assembles scores and recommendations into an
``AnalysisResult``.

Stage failures other than normalization are non-fatal: the failed stage
contributes an empty output and a warning. Cancellation discards everything
and raises :class:`~contract_intelligence.errors.AnalysisCancelled`.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import secrets
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .compliance import ComplianceChecker
from .config import Settings, get_settings
from .errors import AnalysisCancelled, ContractAnalysisError, StageFailure, StageTimeout
from .inference import InferenceAdvisor, LLMInferenceAdvisor
from .models import (
    AnalysisResult,
    AnalysisSummary,
    AnalysisType,
    BatchError,
    BatchResult,
    ComplianceStandard,
    ContractType,
    ExtractedClause,
    Jurisdiction,
    Language,
    MissingClause,
    NormalizedDocument,
    PipelineState,
)
from .negotiation import NegotiationPlanner
from .normalizer import DocumentNormalizer
from .preprocessing import TextPreprocessor
from .recommendations import RecommendationGenerator
from .red_flags import RedFlagDetector
from .request import AnalysisRequest, parse_request
from .risk import RiskEngine, filter_by_threshold
from .rules import Rulebook, get_rulebook
from .scoring import ScoringEngine
from .segmenter import ClauseSegmenter, find_missing_clauses, infer_contract_type
from .terms import TermExtractor, categories_for

logger = logging.getLogger(__name__)

NORMALIZATION = "normalization"
SCORING = "scoring"
RECOMMENDATIONS = "recommendations"

# Confidence lost for each failed stage
FAILURE_CONFIDENCE_PENALTY = 0.15
DEFAULT_CONFIDENCE = 0.5


@dataclass(frozen=True)
class StageOutcome:
    """What one stage produced: its output, or the reason it failed."""

    stage: str
    output: Any = None
    failure: Optional[StageFailure] = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None


def new_analysis_id() -> str:
    """``contract_<epoch ms>_<9 hex chars>``."""
    return f"contract_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class ContractAnalyzer:
    """High-level contract analyzer.

    Example::

        with ContractAnalyzer() as analyzer:
            result = analyzer.analyze({
                "document": {"content": text, "fileName": "msa.txt"},
                "analysisTypes": ["full_analysis"],
                "jurisdiction": "NG",
                "language": "en",
                "complianceStandards": ["local_labor_law"],
            })
        print(result.score.overall)

    Every collaborator can be injected; defaults are built from the shared
    rulebook and settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rulebook: Rulebook | None = None,
        normalizer: DocumentNormalizer | None = None,
        segmenter: ClauseSegmenter | None = None,
        term_extractor: TermExtractor | None = None,
        risk_engine: RiskEngine | None = None,
        compliance_checker: ComplianceChecker | None = None,
        red_flag_detector: RedFlagDetector | None = None,
        scoring_engine: ScoringEngine | None = None,
        recommendation_generator: RecommendationGenerator | None = None,
        negotiation_planner: NegotiationPlanner | None = None,
        preprocessor: TextPreprocessor | None = None,
        advisor: InferenceAdvisor | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rulebook = rulebook or get_rulebook(self.settings.rules_dir)
        self._preprocessor = preprocessor or TextPreprocessor(
            long_sentence_words=int(self.rulebook.scoring.clarity.long_sentence_words)
        )
        self._normalizer = normalizer or DocumentNormalizer(self._preprocessor)
        self._segmenter = segmenter or ClauseSegmenter()
        self._term_extractor = term_extractor or TermExtractor()
        self._risk_engine = risk_engine or RiskEngine(self.rulebook.risk_rules)
        self._compliance_checker = compliance_checker or ComplianceChecker(self.rulebook.compliance)
        self._red_flag_detector = red_flag_detector or RedFlagDetector(self.rulebook.red_flags)
        self._scoring_engine = scoring_engine or ScoringEngine(self.rulebook.scoring)
        self._recommendations = recommendation_generator or RecommendationGenerator()
        self._negotiation = negotiation_planner or NegotiationPlanner()
        if advisor is None and self.settings.use_advisor:
            advisor = LLMInferenceAdvisor.from_settings(self.settings)
        self._advisor = advisor
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers, thread_name_prefix="contract-analysis"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(
        self, request: AnalysisRequest | dict, cancel_event: threading.Event | None = None
    ) -> AnalysisResult:
        """Run the full pipeline synchronously.

        Must not be called from inside a running event loop; use
        :meth:`analyze_async` there.

        Raises:
            ValidationError: If the request is malformed or the document is
                empty. No stage runs.
            StageFailure: If normalization fails or times out.
            AnalysisCancelled: If ``cancel_event`` is set before the run
                completes.
        """
        return asyncio.run(self.analyze_async(request, cancel_event))

    def analyze_many(
        self,
        requests: Iterable[AnalysisRequest | dict],
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Analyze several documents concurrently on the shared worker pool.

        A document that fails validation or normalization is reported in
        ``BatchResult.errors`` and the rest still complete. Results keep the
        input order.

        Raises:
            AnalysisCancelled: If ``cancel_event`` is set; nothing is returned
                for any document of the batch.
        """
        return asyncio.run(self.analyze_many_async(requests, cancel_event))

    async def analyze_many_async(
        self,
        requests: Iterable[AnalysisRequest | dict],
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Asynchronous form of :meth:`analyze_many`."""
        requests = list(requests)
        outcomes = await asyncio.gather(
            *(self.analyze_async(request, cancel_event) for request in requests),
            return_exceptions=True,
        )
        results = []
        errors = []
        for index, (request, outcome) in enumerate(zip(requests, outcomes)):
            if isinstance(outcome, AnalysisCancelled):
                raise outcome
            if isinstance(outcome, ContractAnalysisError):
                errors.append(BatchError(index, _file_name_of(request), str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
        logger.info(
            "Batch of %d documents: %d analyzed, %d failed", len(requests), len(results), len(errors)
        )
        return BatchResult(tuple(results), tuple(errors))

    async def analyze_async(
        self, request: AnalysisRequest | dict, cancel_event: threading.Event | None = None
    ) -> AnalysisResult:
        """Asynchronous form of :meth:`analyze`."""
        started = time.perf_counter()
        analysis_id = new_analysis_id()
        state = PipelineState.VALIDATING

        def transition(new_state: PipelineState) -> None:
            nonlocal state
            logger.info("Analysis %s: %s -> %s", analysis_id, state.value, new_state.value)
            state = new_state

        def checkpoint() -> None:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Analysis %s cancelled during %s", analysis_id, state.value)
                transition(PipelineState.FAILED)
                raise AnalysisCancelled(f"analysis {analysis_id} was cancelled")

        logger.info("Analysis %s started", analysis_id)
        try:
            request = parse_request(request)
        except ContractAnalysisError:
            transition(PipelineState.FAILED)
            raise
        checkpoint()

        # Normalizing ------------------------------------------------------
        transition(PipelineState.NORMALIZING)
        document = await self._normalize(request, analysis_id, transition)
        info = self._normalizer.describe(document)
        contract_type = request.contract_type or infer_contract_type(
            document.text, self.rulebook.contract_types
        )
        checkpoint()

        # Extracting -------------------------------------------------------
        transition(PipelineState.EXTRACTING)
        categories = categories_for(
            request.extraction_options.enabled_categories(), request.analysis_depth
        )
        timeout = self.settings.stage_timeout_seconds
        segmented, extracted = await asyncio.gather(
            self._run_stage(
                analysis_id,
                AnalysisType.CLAUSE_EXTRACTION.value,
                functools.partial(self._segment, document, contract_type, request.jurisdiction),
                timeout,
            ),
            self._run_stage(
                analysis_id,
                AnalysisType.TERM_EXTRACTION.value,
                functools.partial(self._term_extractor.extract, document, categories),
                timeout,
            ),
        )
        clauses, missing = segmented.output if segmented.ok else ([], [])
        terms = extracted.output if extracted.ok else []
        checkpoint()

        # Analyzing --------------------------------------------------------
        transition(PipelineState.ANALYZING)
        analysis_stages = []
        if request.wants(AnalysisType.RISK_ASSESSMENT):
            analysis_stages.append(
                self._assess_risks(
                    analysis_id, clauses, terms, categories, contract_type, request, timeout
                )
            )
        if request.wants(AnalysisType.COMPLIANCE_CHECK):
            analysis_stages.append(
                self._run_stage(
                    analysis_id,
                    AnalysisType.COMPLIANCE_CHECK.value,
                    functools.partial(
                        self._compliance_checker.check,
                        clauses,
                        terms,
                        request.compliance_standards,
                        request.jurisdiction,
                    ),
                    timeout,
                )
            )
        if request.wants(AnalysisType.RED_FLAG_DETECTION):
            analysis_stages.append(
                self._run_stage(
                    analysis_id,
                    AnalysisType.RED_FLAG_DETECTION.value,
                    functools.partial(self._red_flag_detector.detect, clauses),
                    timeout,
                )
            )
        analysed = {o.stage: o for o in await asyncio.gather(*analysis_stages)}
        checkpoint()

        def output_of(stage: AnalysisType) -> list:
            outcome = analysed.get(stage.value)
            return list(outcome.output) if outcome is not None and outcome.ok else []

        all_risks = output_of(AnalysisType.RISK_ASSESSMENT)
        checks = output_of(AnalysisType.COMPLIANCE_CHECK)
        red_flags = output_of(AnalysisType.RED_FLAG_DETECTION)

        # Scoring ----------------------------------------------------------
        transition(PipelineState.SCORING)
        expected = self.rulebook.contract_types.expected_clauses(contract_type, request.jurisdiction)
        readability = self._preprocessor.analyze_readability(document.text)
        score = self._scoring_engine.score(
            all_risks, red_flags, checks, expected, missing, readability, request.jurisdiction
        )
        risks = filter_by_threshold(all_risks, request.risk_threshold)
        published_missing = missing if request.extraction_options.identify_missing_clauses else []
        recommendations = (
            self._recommendations.generate(risks, checks, published_missing)
            if request.include_recommendations
            else []
        )
        negotiation_points = self._negotiation.identify(clauses, risks)
        checkpoint()

        outcomes = [segmented, extracted, *analysed.values()]
        stages_executed = [NORMALIZATION] + [o.stage for o in outcomes if o.ok] + [SCORING]
        if request.include_recommendations:
            stages_executed.append(RECOMMENDATIONS)
        warnings = self._warnings(document, outcomes)

        summary = AnalysisSummary(
            execution_time=time.perf_counter() - started,
            confidence_level=self._confidence(clauses, terms, outcomes),
            stages_executed=tuple(stages_executed),
            warnings=tuple(warnings),
            clauses_found=len(clauses),
            risks_identified=len(risks),
            compliance_issues=sum(len(c.gaps) for c in checks),
            recommendations_generated=len(recommendations),
            completeness=round(score.breakdown.completeness / 100.0, 4),
            risk_threshold=request.risk_threshold,
        )
        result = AnalysisResult(
            analysis_id=analysis_id,
            contract_type=contract_type,
            contract_type_inferred=request.contract_type is None,
            jurisdiction=request.jurisdiction,
            document=info,
            score=score,
            summary=summary,
            extracted_clauses=tuple(clauses) if request.wants(AnalysisType.CLAUSE_EXTRACTION) else (),
            missing_clauses=tuple(published_missing),
            extracted_terms=tuple(terms) if request.wants(AnalysisType.TERM_EXTRACTION) else (),
            identified_risks=tuple(risks),
            compliance_checks=tuple(checks),
            red_flags=tuple(red_flags),
            recommendations=tuple(recommendations),
            negotiation_points=tuple(negotiation_points),
        )
        transition(PipelineState.DONE)
        logger.info(
            "Analysis %s finished in %.3fs: score %.1f, %d warnings",
            analysis_id,
            summary.execution_time,
            score.overall,
            len(warnings),
        )
        return result

    def supported_features(self) -> dict:
        """Jurisdictions, languages, contract types and standards on offer."""
        return {
            "jurisdictions": [j.value for j in Jurisdiction],
            "languages": [lang.value for lang in Language],
            "contractTypes": [ct.value for ct in ContractType],
            "complianceStandards": [s.value for s in ComplianceStandard],
            "analysisTypes": [a.value for a in AnalysisType],
            "ruleSetVersion": self.rulebook.version,
        }

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> ContractAnalyzer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _normalize(
        self,
        request: AnalysisRequest,
        analysis_id: str,
        transition: Callable[[PipelineState], None],
    ) -> NormalizedDocument:
        """Normalization is the only stage whose failure is fatal."""
        loop = asyncio.get_running_loop()
        call = functools.partial(
            self._normalizer.normalize,
            request.document.content,
            request.language,
            request.document.mime_type,
            request.document.file_name,
        )
        timeout = self.settings.normalizer_timeout_seconds
        try:
            return await asyncio.wait_for(loop.run_in_executor(self._executor, call), timeout)
        except asyncio.TimeoutError as exc:
            transition(PipelineState.FAILED)
            failure = StageTimeout(NORMALIZATION, timeout)
            logger.error("Analysis %s: %s", analysis_id, failure)
            raise failure from exc
        except ContractAnalysisError:
            transition(PipelineState.FAILED)
            raise
        except Exception as exc:
            transition(PipelineState.FAILED)
            raise StageFailure(NORMALIZATION, str(exc) or type(exc).__name__) from exc

    async def _run_stage(
        self, analysis_id: str, stage: str, call: Callable[[], Any], timeout: float
    ) -> StageOutcome:
        """Run ``call`` on the worker pool, capturing failure as an outcome."""
        loop = asyncio.get_running_loop()
        try:
            output = await asyncio.wait_for(loop.run_in_executor(self._executor, call), timeout)
        except asyncio.TimeoutError:
            failure: StageFailure = StageTimeout(stage, timeout)
        except Exception as exc:  # a failed stage degrades to an empty output
            failure = StageFailure(stage, str(exc) or type(exc).__name__)
        else:
            return StageOutcome(stage, output)
        logger.warning("Analysis %s: %s", analysis_id, failure)
        return StageOutcome(stage, None, failure)

    def _segment(
        self, document: NormalizedDocument, contract_type: ContractType, jurisdiction: Jurisdiction
    ) -> tuple[list[ExtractedClause], list[MissingClause]]:
        clauses = self._segmenter.segment(document)
        missing = find_missing_clauses(
            clauses, contract_type, jurisdiction, self.rulebook.contract_types
        )
        return clauses, missing

    async def _assess_risks(
        self,
        analysis_id: str,
        clauses: list,
        terms: list,
        categories: list,
        contract_type: ContractType,
        request: AnalysisRequest,
        timeout: float,
    ) -> StageOutcome:
        """Local rule evaluation, then the optional remote advisor."""
        stage = AnalysisType.RISK_ASSESSMENT.value
        outcome = await self._run_stage(
            analysis_id,
            stage,
            functools.partial(
                self._risk_engine.evaluate,
                clauses,
                terms,
                request.jurisdiction,
                contract_type,
                request.analysis_depth,
                categories,
            ),
            timeout,
        )
        if not outcome.ok or self._advisor is None:
            return outcome
        risks, warning = await self._risk_engine.consult(
            self._advisor,
            outcome.output,
            clauses,
            request.jurisdiction,
            contract_type,
            self.settings.advisor_timeout_seconds,
        )
        return StageOutcome(stage, risks, warnings=(warning,) if warning else ())

    # ------------------------------------------------------------------
    # Summary helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _warnings(document: NormalizedDocument, outcomes: list[StageOutcome]) -> list[str]:
        warnings = []
        detected = document.detected_language
        if detected is not None and detected != document.language:
            warnings.append(
                f"declared language '{document.language.value}' but the text looks like '{detected.value}'"
            )
        for outcome in outcomes:
            if outcome.failure is not None:
                warnings.append(str(outcome.failure))
            warnings.extend(outcome.warnings)
        return warnings

    @staticmethod
    def _confidence(clauses: list, terms: list, outcomes: list[StageOutcome]) -> float:
        """Mean item confidence, reduced for every failed stage; in [0.05, 1]."""
        scores = [c.confidence for c in clauses] + [t.confidence for t in terms]
        confidence = sum(scores) / len(scores) if scores else DEFAULT_CONFIDENCE
        confidence -= FAILURE_CONFIDENCE_PENALTY * sum(1 for o in outcomes if not o.ok)
        return round(max(0.05, min(1.0, confidence)), 3)


def _file_name_of(request: AnalysisRequest | dict) -> Optional[str]:
    if isinstance(request, AnalysisRequest):
        return request.document.file_name
    document = request.get("document") if isinstance(request, dict) else None
    if isinstance(document, dict):
        return document.get("fileName") or document.get("file_name")
    return None


def analyze(request: AnalysisRequest | dict, **kwargs: Any) -> AnalysisResult:
    """Analyze one request with a throwaway :class:`ContractAnalyzer`."""
    with ContractAnalyzer(**kwargs) as analyzer:
        return analyzer.analyze(request)
