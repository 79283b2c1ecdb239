"""Contract Intelligence -- jurisdiction-aware contract analysis."""

__version__ = "1.0.0"

import logging

from .analyzer import ContractAnalyzer, analyze
from .compliance import ComplianceChecker
from .config import Settings, get_settings
from .errors import (
    AnalysisCancelled,
    ContractAnalysisError,
    RuleConfigurationError,
    StageFailure,
    StageTimeout,
    ValidationError,
)
from .inference import InferenceAdvisor, LLMInferenceAdvisor
from .models import (
    AnalysisDepth,
    AnalysisResult,
    AnalysisType,
    BatchError,
    BatchResult,
    ClauseType,
    ComplianceStandard,
    ContractScore,
    ContractType,
    ExtractedClause,
    ExtractedTerm,
    IdentifiedRisk,
    Jurisdiction,
    Language,
    NegotiationPoint,
    RedFlag,
    Recommendation,
    RiskLevel,
    TermCategory,
)
from .negotiation import NegotiationPlanner
from .normalizer import DocumentNormalizer
from .parsers import load_document
from .preprocessing import ReadabilityResult, TextPreprocessor
from .recommendations import RecommendationGenerator
from .red_flags import RedFlagDetector
from .request import AnalysisRequest, parse_request
from .risk import RiskEngine
from .rules import Rulebook, get_rulebook, load_rulebook
from .scoring import ScoringEngine
from .segmenter import ClauseSegmenter
from .terms import TermExtractor

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core
    "ContractAnalyzer",
    "analyze",
    "AnalysisRequest",
    "parse_request",
    "AnalysisResult",
    "load_document",
    # Stages
    "DocumentNormalizer",
    "ClauseSegmenter",
    "TermExtractor",
    "RiskEngine",
    "ComplianceChecker",
    "RedFlagDetector",
    "ScoringEngine",
    "RecommendationGenerator",
    "NegotiationPlanner",
    "InferenceAdvisor",
    "LLMInferenceAdvisor",
    "TextPreprocessor",
    "ReadabilityResult",
    # Rules and configuration
    "Rulebook",
    "get_rulebook",
    "load_rulebook",
    "Settings",
    "get_settings",
    # Models
    "AnalysisDepth",
    "AnalysisType",
    "BatchError",
    "BatchResult",
    "ClauseType",
    "ComplianceStandard",
    "ContractScore",
    "ContractType",
    "ExtractedClause",
    "ExtractedTerm",
    "IdentifiedRisk",
    "Jurisdiction",
    "Language",
    "NegotiationPoint",
    "RedFlag",
    "Recommendation",
    "RiskLevel",
    "TermCategory",
    # Errors
    "ContractAnalysisError",
    "ValidationError",
    "RuleConfigurationError",
    "StageFailure",
    "StageTimeout",
    "AnalysisCancelled",
]
