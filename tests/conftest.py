"""Shared test fixtures for contract-intelligence tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from contract_intelligence.analyzer import ContractAnalyzer
from contract_intelligence.config import Settings
from contract_intelligence.models import Language
from contract_intelligence.normalizer import DocumentNormalizer
from contract_intelligence.rules import Rulebook, get_rulebook
from contract_intelligence.segmenter import ClauseSegmenter


@pytest.fixture
def rulebook() -> Rulebook:
    """The packaged rule tables."""
    return get_rulebook()


@pytest.fixture
def settings() -> Settings:
    """Settings with small timeouts, independent of the environment."""
    return Settings(
        max_workers=4,
        stage_timeout_seconds=10,
        normalizer_timeout_seconds=10,
        advisor_timeout_seconds=5,
        advisor_max_attempts=1,
    )


@pytest.fixture
def analyzer(settings: Settings, rulebook: Rulebook):
    """A ContractAnalyzer closed after the test."""
    with ContractAnalyzer(settings=settings, rulebook=rulebook) as instance:
        yield instance


@pytest.fixture
def normalize():
    """Normalize raw text into a NormalizedDocument."""
    normalizer = DocumentNormalizer()

    def _normalize(text: str, language: Language = Language.ENGLISH):
        return normalizer.normalize(text, language)

    return _normalize


@pytest.fixture
def segment(normalize):
    """Segment raw text into clauses."""
    segmenter = ClauseSegmenter()

    def _segment(text: str):
        return segmenter.segment(normalize(text))

    return _segment


@pytest.fixture
def employment_text() -> str:
    """A Nigerian employment contract."""
    return (
        "EMPLOYMENT AGREEMENT\n\n"
        "This Employment Agreement is made on 1 March 2024 between Acme Corporation "
        '("Employer") and Chinedu Okafor ("Employee").\n\n'
        "1. REMUNERATION\n"
        "The Employer shall pay the Employee an annual salary of ₦2,000,000, "
        "payable in monthly instalments.\n\n"
        "2. WORKING HOURS\n"
        "The Employee shall work 40 hours per week, Monday to Friday.\n\n"
        "3. ANNUAL LEAVE\n"
        "The Employee is entitled to 20 working days of paid annual leave each year.\n\n"
        "4. TERMINATION\n"
        "Either party may terminate this Agreement by giving thirty (30) days' written "
        "notice to the other party.\n\n"
        "5. CONFIDENTIALITY\n"
        "The Employee shall not disclose any confidential information or trade secrets "
        "of the Employer.\n\n"
        "6. STATUTORY OBLIGATIONS\n"
        "The Employer shall comply with the Labour Act of Nigeria and the Pension Reform "
        "Act, and shall remit pension contributions for the Employee.\n\n"
        "7. GOVERNING LAW\n"
        "This Agreement shall be governed by the laws of the Federal Republic of Nigeria.\n"
    )


@pytest.fixture
def high_risk_text() -> str:
    """A one-sided service agreement that trips every liability red flag."""
    return (
        "SERVICE AGREEMENT\n\n"
        "This Service Agreement is made between Alpha Holdings Ltd "
        '("Client") and Beta Services Ltd ("Provider").\n\n'
        "1. LIABILITY\n"
        "The Provider accepts unlimited liability for any losses or damages arising "
        "under this Agreement.\n\n"
        "2. INDEMNITY\n"
        "The Provider shall indemnify and hold harmless the Client against all claims, "
        "losses and damages, including those arising from the Client's own negligence.\n\n"
        "3. TERMINATION\n"
        "The Client may terminate this Agreement at any time without compensation to "
        "the Provider.\n\n"
        "4. PAYMENT\n"
        "The Client shall pay the Provider $10,000 per month. Late payments shall "
        "accrue interest at 5% per month.\n"
    )


@pytest.fixture
def gdpr_text() -> str:
    """A data processing agreement covering every GDPR requirement."""
    return (
        "DATA PROCESSING AGREEMENT\n\n"
        "This Data Processing Agreement is entered into between Northwind Analytics GmbH "
        '("Controller") and Cloudhaven Services Ltd ("Processor").\n\n'
        "1. PROCESSING OF PERSONAL DATA\n"
        "The Processor shall process personal data solely for the purposes of providing "
        "the services and only on the documented instructions of the Controller.\n\n"
        "2. DATA SUBJECT RIGHTS\n"
        "The Processor shall assist the Controller in responding to requests from data "
        "subjects to exercise their rights of access, rectification, erasure and portability.\n\n"
        "3. PERSONAL DATA BREACH\n"
        "The Processor shall notify the Controller of any personal data breach without "
        "undue delay and in any event within 24 hours of becoming aware of it.\n\n"
        "4. INTERNATIONAL TRANSFERS\n"
        "The Processor shall not transfer personal data outside the European Economic Area "
        "unless the transfer is covered by standard contractual clauses or an adequacy decision.\n\n"
        "5. RETENTION AND DELETION\n"
        "Upon termination of the services, the Processor shall delete or return all personal "
        "data to the Controller and delete existing copies.\n\n"
        "6. SECURITY\n"
        "The Processor shall implement appropriate technical and organisational measures, "
        "including encryption of personal data and access controls.\n"
    )


@pytest.fixture
def make_request():
    """Build a request dict with sensible defaults."""

    def _make(content: str, **overrides) -> dict:
        request = {
            "document": {"content": content, "fileName": "contract.txt"},
            "analysisTypes": ["full_analysis"],
            "jurisdiction": "INTL",
            "language": "en",
        }
        request.update(overrides)
        return request

    return _make


@pytest.fixture
def tmp_contract_file(tmp_path: Path, high_risk_text: str) -> Path:
    """Create a temporary text file with contract content."""
    file = tmp_path / "contract.txt"
    file.write_text(high_risk_text, encoding="utf-8")
    return file
