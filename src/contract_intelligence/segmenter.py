"""Clause segmentation and labeling.

Text is split into ordered segments on structural cues (blank lines,
numbered headings, ALL-CAPS headings) and each segment is labeled with the
clause type whose heading patterns and body keywords score highest. The
module also infers the contract type and lists expected clauses that are
absent.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .models import (
    ClauseType,
    ContractType,
    ExtractedClause,
    Jurisdiction,
    MissingClause,
    NormalizedDocument,
)
from .rules import ContractTypeTable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Clause patterns
# ---------------------------------------------------------------------------


@dataclass
class _ClausePattern:
    """How to recognise one clause type."""

    clause_type: ClauseType
    # Regexes matched against the segment's first line
    heading_patterns: list[str] = field(default_factory=list)
    # Word stems matched anywhere in the segment
    body_keywords: list[str] = field(default_factory=list)
    min_keyword_hits: int = 2

    def __post_init__(self) -> None:
        self._headings = [re.compile(p, re.IGNORECASE) for p in self.heading_patterns]
        self._keywords = [re.compile(r"\b" + re.escape(k), re.IGNORECASE) for k in self.body_keywords]


_CLAUSE_PATTERNS: list[_ClausePattern] = [
    _ClausePattern(
        clause_type=ClauseType.CONFIDENTIALITY,
        heading_patterns=[r"confidential", r"non[\-\s]?disclosure", r"secrecy"],
        body_keywords=[
            "confidential",
            "non-disclosure",
            "proprietary information",
            "trade secret",
            "disclos",
            "receiving party",
            "disclosing party",
            "secrecy",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.LIABILITY,
        heading_patterns=[r"liabilit", r"indemn", r"hold\s+harmless", r"warrant"],
        body_keywords=[
            "liability",
            "liable",
            "indemnif",
            "hold harmless",
            "damages",
            "shall not exceed",
            "consequential",
            "in no event",
            "losses",
            "negligen",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.INTELLECTUAL_PROPERTY,
        heading_patterns=[r"intellectual\s+property", r"\bip\b", r"ownership", r"work\s+product", r"licen[cs]e"],
        body_keywords=[
            "intellectual property",
            "patent",
            "copyright",
            "trademark",
            "work product",
            "moral rights",
            "ownership",
            "pre-existing",
            "know-how",
            "hereby assign",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.TERMINATION,
        heading_patterns=[r"terminat", r"\bterm\b", r"duration", r"expir"],
        body_keywords=[
            "terminat",
            "expir",
            "notice",
            "material breach",
            "renew",
            "for convenience",
            "without cause",
            "cure period",
            "notice period",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.PAYMENT,
        heading_patterns=[r"payment", r"\bfees?\b", r"compensation", r"remuneration", r"salary", r"pric", r"consideration"],
        body_keywords=[
            "payment",
            "pay",
            "invoice",
            "fee",
            "salary",
            "remuneration",
            "compensation",
            "net 30",
            "late payment",
            "interest",
            "per annum",
            "per month",
            "amount",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.DISPUTE_RESOLUTION,
        heading_patterns=[r"disput", r"arbitrat", r"governing\s+law", r"jurisdiction", r"applicable\s+law", r"venue", r"mediat"],
        body_keywords=[
            "dispute",
            "arbitrat",
            "mediat",
            "governed by",
            "governing law",
            "laws of",
            "courts of",
            "jurisdiction",
            "venue",
            "tribunal",
        ],
        min_keyword_hits=1,
    ),
    _ClausePattern(
        clause_type=ClauseType.COMPLIANCE,
        heading_patterns=[
            r"complian",
            r"data\s+protection",
            r"anti[\-\s]?(?:bribery|corruption)",
            r"regulat",
            r"statutory",
            r"labou?r\s+law",
            r"sanctions",
            r"export",
            r"data\s+breach",
            r"sub-?processor",
            r"security",
        ],
        body_keywords=[
            "comply",
            "complian",
            "regulation",
            "regulatory",
            "statutory",
            "labour act",
            "labor act",
            "gdpr",
            "data protection",
            "personal data",
            "data subject",
            "processor",
            "controller",
            "anti-bribery",
            "anti-corruption",
            "sanctions",
            "export control",
            "applicable laws",
        ],
    ),
    _ClausePattern(
        clause_type=ClauseType.FORCE_MAJEURE,
        heading_patterns=[r"force\s+majeure", r"act\s+of\s+god"],
        body_keywords=[
            "force majeure",
            "act of god",
            "natural disaster",
            "beyond its reasonable control",
            "beyond reasonable control",
            "epidemic",
            "pandemic",
            "war",
            "terrorism",
            "flood",
            "earthquake",
        ],
    ),
]

OTHER_CONFIDENCE = 0.3


# ---------------------------------------------------------------------------
# Clause Segmenter
# ---------------------------------------------------------------------------


class ClauseSegmenter:
    """Split normalized text into labeled clause spans.

    Example::

        segmenter = ClauseSegmenter()
        clauses = segmenter.segment(document)
        for clause in clauses:
            print(f"{clause.type.value}: {clause.text[:80]}...")
    """

    # Lines that open a new clause inside a paragraph block
    _HEADING_LINE_RE = re.compile(
        r"""
        ^(?:
            \d{1,3}[.)](?!\d)[\x20\t]*\S    # "1. " or "2) " (not "2.1")
            |(?:Section|Article|Clause)\s+\d+  # "Section 4"
            |[A-Z][A-Z0-9&,'()\-\x20]{3,79}$  # ALL-CAPS line
        )
        """,
        re.MULTILINE | re.VERBOSE,
    )
    _NUMBER_PREFIX_RE = re.compile(r"^(?:(?:Section|Article|Clause)\s+)?\d{1,3}(?:\.\d{1,3})*[.):]?\s*", re.IGNORECASE)

    _MIN_SEGMENT_CHARS = 20

    def __init__(self, patterns: list[_ClausePattern] | None = None) -> None:
        self.patterns = patterns or _CLAUSE_PATTERNS

    def segment(self, document: NormalizedDocument) -> list[ExtractedClause]:
        """Segment and label the document.

        Returns:
            Clauses in document order with ids ``clause_1``, ``clause_2``...
        """
        text = document.text
        clauses: list[ExtractedClause] = []
        for start, end in self._split_segments(text):
            segment = text[start:end]
            clause_type, confidence = self.classify(segment)
            clauses.append(
                ExtractedClause(
                    id=f"clause_{len(clauses) + 1}",
                    type=clause_type,
                    start=start,
                    end=end,
                    text=segment,
                    confidence=confidence,
                    heading=self._heading(segment),
                )
            )
        logger.debug("Segmented %d chars into %d clauses", len(text), len(clauses))
        return clauses

    def classify(self, segment: str) -> tuple[ClauseType, float]:
        """Label one segment with its highest scoring clause type.

        Ties go to the clause type declared first in :class:`ClauseType`.
        """
        best_type = ClauseType.OTHER
        best_score = 0.0
        for pattern in sorted(self.patterns, key=lambda p: p.clause_type.priority):
            score = self._score_section(segment, pattern)
            if score > best_score:
                best_type, best_score = pattern.clause_type, score
        if best_type == ClauseType.OTHER:
            return ClauseType.OTHER, OTHER_CONFIDENCE
        return best_type, round(min(best_score, 1.0), 3)

    def _split_segments(self, text: str) -> list[tuple[int, int]]:
        """Split text into ``(start, end)`` spans.

        Paragraph blocks first, then numbered or ALL-CAPS heading lines
        inside a block. Heading-only and very short pieces are merged into
        the following piece.
        """
        pieces: list[tuple[int, int]] = []
        for block in re.finditer(r"(?:(?!\n\n).)+", text, re.DOTALL):
            cuts = [block.start()]
            for heading in self._HEADING_LINE_RE.finditer(text, block.start(), block.end()):
                if heading.start() > block.start():
                    cuts.append(heading.start())
            cuts.append(block.end())
            for start, end in zip(cuts, cuts[1:]):
                start, end = self._trim(text, start, end)
                if end > start:
                    pieces.append((start, end))

        merged: list[tuple[int, int]] = []
        pending: int | None = None
        for start, end in pieces:
            if pending is None:
                pending = start
            if self._is_fragment(text[start:end]):
                continue
            merged.append((pending, end))
            pending = None

        if pending is not None:
            last_end = pieces[-1][1]
            if merged:
                merged[-1] = (merged[-1][0], last_end)
            else:
                merged.append((pending, last_end))
        return merged

    def _is_fragment(self, piece: str) -> bool:
        if len(piece.strip()) < self._MIN_SEGMENT_CHARS:
            return True
        return "\n" not in piece and bool(self._HEADING_LINE_RE.match(piece)) and len(piece) <= 80 and not piece.rstrip().endswith((".", ";", ":"))

    @staticmethod
    def _trim(text: str, start: int, end: int) -> tuple[int, int]:
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        return start, end

    def _heading(self, segment: str) -> str | None:
        first_line = segment.split("\n", 1)[0].strip()
        if len(first_line) > 80 or not self._HEADING_LINE_RE.match(first_line):
            return None
        heading = self._NUMBER_PREFIX_RE.sub("", first_line).strip(" .:-")
        # A numbered sentence is a clause body, not a heading
        if not heading or heading.endswith((".", ";")) or len(heading.split()) > 8:
            return None
        return heading

    def _score_section(self, section: str, pattern: _ClausePattern) -> float:
        """Confidence in [0, 1.1] that ``section`` is ``pattern``'s clause type."""
        score = 0.0

        first_line = section.strip().split("\n")[0]
        if len(first_line) <= 80 and any(h.search(first_line) for h in pattern._headings):
            score += 0.5

        keyword_hits = sum(1 for kw in pattern._keywords if kw.search(section))
        keyword_ratio = keyword_hits / max(len(pattern._keywords), 1)
        if keyword_hits >= pattern.min_keyword_hits:
            score += 0.3 + keyword_ratio * 0.3
        if keyword_hits >= pattern.min_keyword_hits + 2:
            score += 0.1

        return score


# ---------------------------------------------------------------------------
# Contract type inference and missing clauses
# ---------------------------------------------------------------------------


def infer_contract_type(text: str, table: ContractTypeTable) -> ContractType:
    """Best contract type by keyword signals, title region weighted 3x.

    Falls back to the table's default type when nothing matches.
    """
    title = text[: table.title_region_chars]
    best_type = table.default_type
    best_score = 0
    for contract_type in ContractType:
        profile = table.types.get(contract_type)
        if profile is None:
            continue
        score = 0
        for signal in profile.signals:
            signal_re = re.compile(r"\b" + re.escape(signal) + r"\b", re.IGNORECASE)
            score += len(signal_re.findall(text)) + 2 * len(signal_re.findall(title))
        if score > best_score:
            best_type, best_score = contract_type, score
    return best_type


def find_missing_clauses(
    clauses: list[ExtractedClause],
    contract_type: ContractType,
    jurisdiction: Jurisdiction,
    table: ContractTypeTable,
) -> list[MissingClause]:
    """Expected clause types with no extracted clause, in priority order."""
    found = {c.type for c in clauses}
    missing: list[MissingClause] = []
    for expected in table.expected_clauses(contract_type, jurisdiction):
        if expected.type in found:
            continue
        missing.append(
            MissingClause(
                type=expected.type,
                importance=expected.importance,
                reason=expected.reason
                or f"{expected.type.label} clause is {expected.importance} for "
                f"{contract_type.value.replace('_', ' ')} contracts in {jurisdiction.value}.",
                jurisdiction=jurisdiction,
            )
        )
    return missing
