"""Term extraction.

Scans the full normalized text, independent of clause segmentation, for
structured entities: parties, dates, monetary amounts, obligations, rights,
conditions, penalties and deadlines. Each category has its own regex
extractor; categories are additive, so one span may yield terms in more
than one category.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

from .models import AnalysisDepth, ExtractedTerm, NormalizedDocument, TermCategory

logger = logging.getLogger(__name__)

_ALL_CATEGORIES = tuple(TermCategory)

_DEPTH_CATEGORIES: dict[AnalysisDepth, frozenset[TermCategory]] = {
    AnalysisDepth.BASIC: frozenset({TermCategory.PARTY, TermCategory.DATE, TermCategory.AMOUNT}),
    AnalysisDepth.STANDARD: frozenset(
        {
            TermCategory.PARTY,
            TermCategory.DATE,
            TermCategory.AMOUNT,
            TermCategory.OBLIGATION,
            TermCategory.DEADLINE,
            TermCategory.PENALTY,
        }
    ),
    AnalysisDepth.COMPREHENSIVE: frozenset(_ALL_CATEGORIES),
    AnalysisDepth.EXPERT: frozenset(_ALL_CATEGORIES),
}


def categories_for(enabled: Iterable[TermCategory], depth: AnalysisDepth) -> list[TermCategory]:
    """Categories to extract: the enabled ones that ``depth`` allows."""
    allowed = _DEPTH_CATEGORIES[depth]
    enabled = set(enabled)
    return [c for c in _ALL_CATEGORIES if c in enabled and c in allowed]


# ---------------------------------------------------------------------------
# Currency recognition
# ---------------------------------------------------------------------------

CURRENCY_SYMBOLS: dict[str, str] = {
    "\u20a6": "NGN",
    "$": "USD",
    "\u20ac": "EUR",
    "\xa3": "GBP",
    "\xa5": "JPY",
    "\u20b5": "GHS",
    "\u20aa": "ILS",
    "\u20ba": "TRY",
    "KSh": "KES",
    "Ksh": "KES",
}

CURRENCY_CODES: frozenset[str] = frozenset(
    {
        "USD", "EUR", "GBP", "JPY", "CHF", "NGN", "ZAR", "KES", "GHS", "EGP",
        "MAD", "TND", "DZD", "ETB", "TZS", "UGX", "RWF", "XOF", "XAF", "AED",
        "SAR", "QAR", "KWD", "BHD", "OMR", "JOD", "ILS", "TRY", "LBP", "IRR",
    }
)

CURRENCY_WORDS: dict[str, str] = {
    "naira": "NGN",
    "dollar": "USD",
    "dollars": "USD",
    "euro": "EUR",
    "euros": "EUR",
    "pound": "GBP",
    "pounds": "GBP",
    "rand": "ZAR",
    "shillings": "KES",
    "cedis": "GHS",
    "dirhams": "AED",
    "riyals": "SAR",
}

_MULTIPLIERS = {"thousand": 1_000, "million": 1_000_000, "billion": 1_000_000_000}

_NUMBER = r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?"

_UNIT_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7,
    "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13,
    "fourteen": 14, "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}

_TENS_WORDS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _to_decimal(number: str) -> Optional[Decimal]:
    try:
        return Decimal(number.replace(",", ""))
    except InvalidOperation:
        return None


def _quantity(token: str) -> Optional[int]:
    """Digits or an English number word up to ninety-nine ("forty-eight")."""
    token = token.lower()
    if token.isdigit():
        return int(token)
    if token in _UNIT_WORDS:
        return _UNIT_WORDS[token]
    tens, _, unit = token.partition("-")
    if tens not in _TENS_WORDS:
        return None
    if not unit:
        return _TENS_WORDS[tens]
    if _UNIT_WORDS.get(unit, 10) < 10:
        return _TENS_WORDS[tens] + _UNIT_WORDS[unit]
    return None


# ---------------------------------------------------------------------------
# Term Extractor
# ---------------------------------------------------------------------------


class TermExtractor:
    """Extract structured terms from contract text using regex patterns.

    Example::

        extractor = TermExtractor()
        terms = extractor.extract(document, [TermCategory.AMOUNT])
        for term in terms:
            print(f"{term.category.value}: {term.value} -> {term.normalized}")
    """

    _MONTH_NAMES = (
        r"(?:January|February|March|April|May|June|July|August|"
        r"September|October|November|December|"
        r"Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)"
    )

    # "January 1, 2024" / "1st January 2024" / "2024-01-15" / "15/01/2024"
    _DATE_PATTERNS: list[tuple[re.Pattern, str]] = [
        (
            re.compile(
                r"\b(?P<month>" + _MONTH_NAMES + r")\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?,?\s+(?P<year>\d{4})\b",
                re.IGNORECASE,
            ),
            "named",
        ),
        (
            re.compile(
                r"\b(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?:day\s+of\s+)?(?P<month>" + _MONTH_NAMES + r")\.?,?\s+(?P<year>\d{4})\b",
                re.IGNORECASE,
            ),
            "named",
        ),
        (re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})\b"), "iso"),
        (re.compile(r"\b(?P<a>\d{1,2})[/.](?P<b>\d{1,2})[/.](?P<year>\d{4})\b"), "numeric"),
    ]

    # Symbol or ISO code first: "USD 500", "KSh 10,000", "AED 50,000"
    _AMOUNT_PREFIX_RE = re.compile(
        r"(?:(?P<symbol>[\u20a6$\u20ac\xa3\xa5\u20b5\u20aa\u20ba]|KSh|Ksh)|\b(?P<code>[A-Z]{3})\b)"
        r"[\x20\xa0]?(?P<number>" + _NUMBER + r")"
        r"(?:\s*(?P<multiplier>thousand|million|billion)\b)?"
    )

    # "2,000,000 naira" / "500 USD" / "10 million dollars"
    _AMOUNT_SUFFIX_RE = re.compile(
        r"\b(?P<number>" + _NUMBER + r")"
        r"(?:\s*(?P<multiplier>thousand|million|billion))?"
        r"\s*(?:(?P<code>[A-Z]{3})\b|(?P<word>naira|dollars?|euros?|pounds?|rand|shillings|cedis|dirhams|riyals)\b)",
    )

    # 'between Acme Corporation ("Employer") and John Doe ("Employee")'
    _PARTY_NAME = r"[A-Z][\w&.'\-]*(?:[\x20\t]+(?:[A-Z][\w&.'\-]*|of|for|de|&))*"
    _BETWEEN_RE = re.compile(
        r"\bbetween\s+(?:the\s+)?(?P<first>" + _PARTY_NAME + r")"
        r"(?:,[^()\n]{0,160}?)?"
        r"\s*(?:\((?:the\s+|hereinafter\s+(?:referred\s+to\s+as\s+)?)?\"(?P<first_role>[\w\s]+)\"\))?"
        r",?\s+and\s+(?:the\s+)?(?P<second>" + _PARTY_NAME + r")"
        r"(?:,[^()\n]{0,160}?)?"
        r"\s*(?:\((?:the\s+|hereinafter\s+(?:referred\s+to\s+as\s+)?)?\"(?P<second_role>[\w\s]+)\"\))?",
    )
    # 'Globex Ltd (the "Supplier")'
    _DEFINED_PARTY_RE = re.compile(
        r"(?P<name>" + _PARTY_NAME + r")\s*\((?:the\s+|hereinafter\s+(?:referred\s+to\s+as\s+)?)?\"(?P<role>[\w\s]+)\"\)"
    )

    _OBLIGATION_RE = re.compile(
        r"\b(?P<modal>shall|must|agrees?\s+to|is\s+obligated\s+to|undertakes?\s+to|"
        r"covenants?\s+to|will\s+be\s+required\s+to)"
        r"\s+(?P<body>[^\n]{10,120}?)(?:\.|;|$)",
        re.IGNORECASE | re.MULTILINE,
    )

    _RIGHT_RE = re.compile(
        r"\b(?P<modal>may|is\s+entitled\s+to|shall\s+be\s+entitled\s+to|(?:shall\s+)?(?:has|have)\s+the\s+right\s+to|"
        r"reserves\s+the\s+right\s+to|is\s+permitted\s+to)"
        r"\s+(?P<body>[^\n]{10,120}?)(?:\.|;|$)",
        re.IGNORECASE | re.MULTILINE,
    )

    _CONDITION_RE = re.compile(
        r"\b(?P<modal>if|provided\s+(?:always\s+)?that|subject\s+to|in\s+the\s+event\s+(?:that|of)|unless|conditional\s+(?:up)?on)"
        r"\s+(?P<body>[^\n]{10,120}?)(?:,|\.|;|$)",
        re.IGNORECASE | re.MULTILINE,
    )

    _PENALTY_RE = re.compile(
        r"\b(?:penalt(?:y|ies)|liquidated\s+damages|late\s+(?:payment\s+)?(?:fee|charge|interest)|"
        r"forfeit\w*|fine\s+of|interest\s+(?:at|of)\s+(?:the\s+rate\s+of\s+)?\d+(?:\.\d+)?\s?%)"
        r"[^.;\n]{0,120}",
        re.IGNORECASE,
    )
    _RATE_RE = re.compile(r"(\d+(?:\.\d+)?)\s?%")

    _DEADLINE_RE = re.compile(
        r"\b(?P<lead>within|no\s+later\s+than|not\s+later\s+than|not\s+less\s+than|at\s+least|prior\s+to|before|after)\s+"
        r"(?:(?P<word>[a-z]+(?:-[a-z]+)?)\s*\(\s*)?(?P<quantity>\d+|[a-z]+(?:-[a-z]+)?)\s*\)?\s*"
        r"(?P<unit>hours?|business\s+days?|working\s+days?|calendar\s+days?|days?|weeks?|months?|years?)\b"
        r"|\b(?:[a-z]+(?:-[a-z]+)?\s*\(\s*)?(?P<notice_quantity>\d+)\s*\)?\s*(?P<notice_unit>days?|weeks?|months?)'?\s+(?:prior\s+)?(?:written\s+)?notice\b"
        r"|\bnet\s*(?P<net>\d{1,3})\b",
        re.IGNORECASE,
    )

    _CONFIDENCE = {
        TermCategory.PARTY: 0.8,
        TermCategory.DATE: 0.9,
        TermCategory.AMOUNT: 0.95,
        TermCategory.OBLIGATION: 0.7,
        TermCategory.RIGHT: 0.65,
        TermCategory.CONDITION: 0.6,
        TermCategory.PENALTY: 0.75,
        TermCategory.DEADLINE: 0.85,
    }

    def __init__(self) -> None:
        self._extractors: dict[TermCategory, Callable[[str], list[tuple]]] = {
            TermCategory.PARTY: self._extract_parties,
            TermCategory.DATE: self._extract_dates,
            TermCategory.AMOUNT: self._extract_amounts,
            TermCategory.OBLIGATION: lambda text: self._extract_clausal(text, self._OBLIGATION_RE),
            TermCategory.RIGHT: lambda text: self._extract_clausal(text, self._RIGHT_RE),
            TermCategory.CONDITION: lambda text: self._extract_clausal(text, self._CONDITION_RE),
            TermCategory.PENALTY: self._extract_penalties,
            TermCategory.DEADLINE: self._extract_deadlines,
        }

    def extract(
        self,
        document: NormalizedDocument | str,
        categories: Iterable[TermCategory] | None = None,
    ) -> list[ExtractedTerm]:
        """Extract terms of the given categories (all when None).

        Returns:
            Terms ordered by span start, then category. Ids are
            ``term_<category>_<n>`` numbered per category in text order.
        """
        text = document.text if isinstance(document, NormalizedDocument) else document
        wanted = set(_ALL_CATEGORIES if categories is None else categories)

        found: list[tuple[TermCategory, tuple]] = []
        for category in _ALL_CATEGORIES:
            if category not in wanted:
                continue
            for hit in self._extractors[category](text):
                found.append((category, hit))

        order = {c: i for i, c in enumerate(_ALL_CATEGORIES)}
        found.sort(key=lambda item: (item[1][0], order[item[0]], item[1][1]))

        counters: dict[TermCategory, int] = {}
        terms: list[ExtractedTerm] = []
        for category, (start, end, value, normalized, attributes) in found:
            counters[category] = counters.get(category, 0) + 1
            terms.append(
                ExtractedTerm(
                    id=f"term_{category.value}_{counters[category]}",
                    category=category,
                    value=value,
                    start=start,
                    end=end,
                    confidence=self._CONFIDENCE[category],
                    normalized=normalized,
                    attributes=attributes,
                )
            )
        logger.debug("Extracted %d terms across %d categories", len(terms), len(counters))
        return terms

    # Each extractor returns (start, end, value, normalized, attributes) tuples
    # with value == text[start:end].

    def _extract_parties(self, text: str) -> list[tuple]:
        hits: list[tuple] = []
        seen: set[str] = set()

        def add(match: re.Match, name_group: str, role_group: str) -> None:
            name = match.group(name_group)
            if not name:
                return
            start = match.start(name_group)
            cleaned = name.rstrip(",. ")
            if len(cleaned) <= 2 or cleaned.lower() in seen:
                return
            seen.add(cleaned.lower())
            role = match.group(role_group)
            attributes = {"role": role.strip()} if role else {}
            hits.append((start, start + len(cleaned), cleaned, cleaned, attributes))

        for match in self._BETWEEN_RE.finditer(text):
            add(match, "first", "first_role")
            add(match, "second", "second_role")
        for match in self._DEFINED_PARTY_RE.finditer(text):
            add(match, "name", "role")
        return hits

    def _extract_dates(self, text: str) -> list[tuple]:
        hits: list[tuple] = []
        taken: list[tuple[int, int]] = []
        for pattern, style in self._DATE_PATTERNS:
            for match in pattern.finditer(text):
                if any(match.start() < end and start < match.end() for start, end in taken):
                    continue
                parsed = self._parse_date(match, style)
                if parsed is None:
                    continue
                taken.append(match.span())
                hits.append((match.start(), match.end(), match.group(), parsed.isoformat(), {}))
        return hits

    def _parse_date(self, match: re.Match, style: str) -> Optional[date]:
        year = int(match.group("year"))
        if style == "named":
            month = _MONTHS[match.group("month")[:3].lower()]
            day = int(match.group("day"))
        elif style == "iso":
            month, day = int(match.group("month")), int(match.group("day"))
        else:
            first, second = int(match.group("a")), int(match.group("b"))
            # Day first unless that cannot be a valid month/day pair
            day, month = (second, first) if second > 12 >= first else (first, second)
        try:
            return date(year, month, day)
        except ValueError:
            return None

    def _extract_amounts(self, text: str) -> list[tuple]:
        hits: list[tuple] = []
        taken: list[tuple[int, int]] = []
        for pattern in (self._AMOUNT_PREFIX_RE, self._AMOUNT_SUFFIX_RE):
            for match in pattern.finditer(text):
                groups = match.groupdict()
                if groups.get("symbol"):
                    currency = CURRENCY_SYMBOLS[groups["symbol"]]
                elif groups.get("code"):
                    if groups["code"] not in CURRENCY_CODES:
                        continue
                    currency = groups["code"]
                else:
                    currency = CURRENCY_WORDS[groups["word"].lower()]
                if any(match.start() < end and start < match.end() for start, end in taken):
                    continue
                amount = _to_decimal(groups["number"])
                if amount is None:
                    continue
                if groups.get("multiplier"):
                    amount *= _MULTIPLIERS[groups["multiplier"].lower()]
                taken.append(match.span())
                hits.append(
                    (
                        match.start(),
                        match.end(),
                        match.group(),
                        f"{currency} {amount:.2f}",
                        {"currency": currency, "amount": f"{amount:.2f}"},
                    )
                )
        return hits

    def _extract_clausal(self, text: str, pattern: re.Pattern) -> list[tuple]:
        """Obligations, rights and conditions: a trigger phrase plus its clause."""
        hits: list[tuple] = []
        seen: set[str] = set()
        for match in pattern.finditer(text):
            body = match.group("body").strip()
            if len(body) <= 15 or body.lower() in seen:
                continue
            seen.add(body.lower())
            value = match.group().rstrip(".;, ").strip()
            start = match.start()
            modal = re.sub(r"\s+", " ", match.group("modal").lower())
            hits.append((start, start + len(value), value, body, {"trigger": modal}))
        return hits

    def _extract_penalties(self, text: str) -> list[tuple]:
        hits: list[tuple] = []
        for match in self._PENALTY_RE.finditer(text):
            value = match.group().rstrip(",: ")
            attributes = {}
            rate = self._RATE_RE.search(value)
            if rate:
                attributes["rate"] = rate.group(1)
            hits.append((match.start(), match.start() + len(value), value, None, attributes))
        return hits

    def _extract_deadlines(self, text: str) -> list[tuple]:
        hits: list[tuple] = []
        for match in self._DEADLINE_RE.finditer(text):
            if match.group("net"):
                quantity, unit = int(match.group("net")), "days"
            elif match.group("notice_quantity"):
                quantity, unit = int(match.group("notice_quantity")), match.group("notice_unit")
            else:
                quantity = _quantity(match.group("quantity"))
                unit = match.group("unit")
            if quantity is None:
                continue
            unit = re.sub(r"\s+", " ", unit.lower())
            if not unit.endswith("s"):
                unit += "s"
            attributes = {"quantity": quantity, "unit": unit}
            if unit == "hours":
                attributes["hours"] = quantity
            elif unit in ("days", "calendar days"):
                attributes["hours"] = quantity * 24
            hits.append((match.start(), match.end(), match.group(), f"{quantity} {unit}", attributes))
        return hits
