"""Text cleaning and readability measurement for contract text.

The cleaner produces the canonical text every span in an analysis refers to.
Readability metrics feed the clarity dimension of the contract score:

- Flesch-Kincaid Grade Level
- Legal jargon density
- Share of overlong sentences
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Readability Result
# ---------------------------------------------------------------------------


@dataclass
class ReadabilityResult:
    """Readability metrics for a document.

    Attributes:
        flesch_kincaid_grade: Estimated US school grade needed to follow the
            text. Contracts typically land between 14 and 20.
        avg_sentence_length: Mean words per sentence.
        avg_syllables_per_word: Estimated mean syllables per word.
        jargon_density: Fraction of words that are legal jargon (0-1).
        long_sentence_ratio: Fraction of sentences above the long-sentence
            word limit.
        sentence_count: Total sentences detected.
        word_count: Total words detected.
    """

    flesch_kincaid_grade: float = 0.0
    avg_sentence_length: float = 0.0
    avg_syllables_per_word: float = 0.0
    jargon_density: float = 0.0
    long_sentence_ratio: float = 0.0
    sentence_count: int = 0
    word_count: int = 0

    def to_dict(self) -> dict:
        return {
            "fleschKincaidGrade": round(self.flesch_kincaid_grade, 2),
            "avgSentenceLength": round(self.avg_sentence_length, 2),
            "avgSyllablesPerWord": round(self.avg_syllables_per_word, 2),
            "jargonDensity": round(self.jargon_density, 4),
            "longSentenceRatio": round(self.long_sentence_ratio, 4),
            "sentenceCount": self.sentence_count,
            "wordCount": self.word_count,
        }


# ---------------------------------------------------------------------------
# Legal-specific constants
# ---------------------------------------------------------------------------

LEGAL_JARGON: frozenset[str] = frozenset(
    {
        "herein",
        "hereinafter",
        "hereof",
        "hereto",
        "hereunder",
        "hereby",
        "herewith",
        "thereof",
        "therein",
        "thereto",
        "thereunder",
        "thereafter",
        "thereby",
        "whereas",
        "wherein",
        "whereby",
        "notwithstanding",
        "aforementioned",
        "aforesaid",
        "foregoing",
        "forthwith",
        "inter",
        "alia",
        "mutatis",
        "mutandis",
        "pari",
        "passu",
        "pursuant",
        "proviso",
        "indemnitor",
        "indemnitee",
        "estoppel",
        "rescission",
        "assignor",
        "assignee",
        "obligor",
        "obligee",
        "encumbrance",
        "hereinabove",
        "hereinbelow",
        "heretofore",
        "howsoever",
        "whatsoever",
        "whomsoever",
    }
)

# OCR and copy-paste artifacts
_ARTIFACT_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\|"), " "),
    (re.compile(r"\.{4,}"), "..."),
    (re.compile(r"[ \t]+([.,;:!?])"), r"\1"),
    (re.compile(r"(\w)-[ \t]*\n[ \t]*(\w)"), r"\1\2"),
]

# Control characters other than tab and newline
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f\u200b\ufeff]")


def count_syllables(word: str) -> int:
    """Estimate syllables in an English word (minimum 1).

    Counts vowel groups with corrections for silent-e, ``-ed`` and ``-es``.
    """
    word = word.lower().strip()
    if not word:
        return 0
    if len(word) <= 3:
        return 1

    if word.endswith("e") and not word.endswith("le"):
        word = word[:-1]

    count = len(re.findall(r"[aeiouy]+", word))

    if word.endswith("ed") and len(word) > 3 and word[-3] not in "td":
        count -= 1
    if word.endswith("es") and len(word) > 3 and word[-3] not in "sz" and word[-4:-2] not in ("sh", "ch"):
        count -= 1
    if re.search(r"[^aeiou]ious$|[^aeiou]eous$", word):
        count += 1

    return max(1, count)


# ---------------------------------------------------------------------------
# Text Preprocessor
# ---------------------------------------------------------------------------


class TextPreprocessor:
    """Clean contract text and measure how readable it is.

    Example::

        preprocessor = TextPreprocessor()
        cleaned = preprocessor.clean("  Whereas , the\\r\\nParty...  ")
        readability = preprocessor.analyze_readability(cleaned)
    """

    _SENTENCE_BOUNDARY_RE = re.compile(
        r"""
        (?<=[.!?;])      # after sentence-ending punctuation
        (?<!\b[A-Z]\.)   # not after an initial ("U.S.")
        (?<!\bNo\.)
        (?<!\bMr\.)
        (?<!\bMs\.)
        (?<!\bDr\.)
        (?<!\bCo\.)
        (?<!\bInc\.)
        (?<!\bLtd\.)
        (?<!\bCorp\.)
        (?<!\bSec\.)
        (?<!\bArt\.)
        (?<!\be\.g\.)
        (?<!\bi\.e\.)
        (?<!\d\.)        # not after section numbers
        \s+
        (?=[A-Z("])
        """,
        re.VERBOSE,
    )

    _WORD_RE = re.compile(r"\b[a-zA-Z'-]+\b")

    def __init__(self, fix_artifacts: bool = True, long_sentence_words: int = 40) -> None:
        self.fix_artifacts = fix_artifacts
        self.long_sentence_words = long_sentence_words

    def clean(self, text: str) -> str:
        """Normalize encoding and whitespace.

        Processing order:
        1. Line endings to ``\\n`` and NFC normalization
        2. Typographic quotes and dashes to ASCII, control characters removed
        3. Artifact removal (table pipes, leader dots, broken hyphenation)
        4. Spaces collapsed within lines, lines stripped, at most one blank
           line between paragraphs
        """
        if not text:
            return ""

        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = unicodedata.normalize("NFC", text)
        text = text.replace("\u201c", '"').replace("\u201d", '"')
        text = text.replace("\u2018", "'").replace("\u2019", "'")
        text = text.replace("\u2013", "-").replace("\u2014", "--")
        text = text.replace("\u2026", "...")
        text = text.replace("\xa0", " ")
        text = _CONTROL_RE.sub("", text)

        if self.fix_artifacts:
            for pattern, replacement in _ARTIFACT_PATTERNS:
                text = pattern.sub(replacement, text)

        text = re.sub(r"[ \t]+", " ", text)
        text = "\n".join(line.strip() for line in text.split("\n"))
        text = re.sub(r"\n{3,}", "\n\n", text)

        return text.strip()

    def segment_sentences(self, text: str) -> list[str]:
        """Split text into sentences, respecting legal abbreviations."""
        if not text:
            return []
        flat = re.sub(r"\s+", " ", text).strip()
        sentences: list[str] = []
        for s in self._SENTENCE_BOUNDARY_RE.split(flat):
            s = s.strip()
            if not s:
                continue
            if len(s) < 15 and sentences and not s[0].isupper():
                sentences[-1] = sentences[-1] + " " + s
            else:
                sentences.append(s)
        return sentences

    def tokenize(self, text: str) -> list[str]:
        """Lowercase alphabetic word tokens."""
        return [m.group().lower() for m in self._WORD_RE.finditer(text)]

    def analyze_readability(self, text: str) -> ReadabilityResult:
        """Compute readability metrics for already-cleaned text."""
        sentences = self.segment_sentences(text)
        tokens = self.tokenize(text)
        if not tokens or not sentences:
            return ReadabilityResult()

        total_words = len(tokens)
        total_sentences = len(sentences)
        avg_sentence_length = total_words / total_sentences
        avg_syllables = sum(count_syllables(t) for t in tokens) / total_words
        long_sentences = sum(
            1 for s in sentences if len(self.tokenize(s)) > self.long_sentence_words
        )

        return ReadabilityResult(
            flesch_kincaid_grade=round(0.39 * avg_sentence_length + 11.8 * avg_syllables - 15.59, 2),
            avg_sentence_length=round(avg_sentence_length, 2),
            avg_syllables_per_word=round(avg_syllables, 2),
            jargon_density=round(sum(1 for t in tokens if t in LEGAL_JARGON) / total_words, 4),
            long_sentence_ratio=round(long_sentences / total_sentences, 4),
            sentence_count=total_sentences,
            word_count=total_words,
        )
