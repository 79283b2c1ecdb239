"""Document normalization: the first stage of every analysis run."""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Optional

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

from .errors import ValidationError
from .models import DocumentInfo, Language, NormalizedDocument
from .parsers import html_to_text
from .preprocessing import TextPreprocessor

logger = logging.getLogger(__name__)

CHARS_PER_PAGE = 3000

# langdetect samples randomly unless seeded; analyses must be repeatable.
DetectorFactory.seed = 0

MIN_DETECTION_CHARS = 10
MIN_DETECTION_PROBABILITY = 0.8


def detect_language(text: str) -> Optional[Language]:
    """Guess the document language with langdetect.

    Returns None for short or ambiguous text and for languages outside
    :class:`Language` (langdetect ships no Amharic profile).
    """
    if len(text.strip()) < MIN_DETECTION_CHARS:
        return None
    try:
        candidates = detect_langs(text)
    except LangDetectException:
        return None
    if not candidates or candidates[0].prob < MIN_DETECTION_PROBABILITY:
        return None
    try:
        return Language(candidates[0].lang)
    except ValueError:
        logger.debug("Detected unsupported language %r", candidates[0].lang)
        return None


class DocumentNormalizer:
    """Validate raw content and produce the canonical text for a run.

    Example::

        normalizer = DocumentNormalizer()
        document = normalizer.normalize(raw, Language.ENGLISH, "text/plain")
        info = normalizer.describe(document)
    """

    def __init__(self, preprocessor: TextPreprocessor | None = None) -> None:
        self._preprocessor = preprocessor or TextPreprocessor()

    def normalize(
        self,
        content: str,
        language: Language | None,
        mime_type: str | None = None,
        file_name: str | None = None,
    ) -> NormalizedDocument:
        """Clean ``content`` into a :class:`NormalizedDocument`.

        Raises:
            ValidationError: If the content is empty or whitespace-only
                (before or after cleaning), or no language is declared.
        """
        if content is None or not content.strip():
            raise ValidationError("document content is empty")
        if language is None:
            raise ValidationError("document language is required")

        raw = content
        if mime_type and mime_type.split(";")[0].strip().lower() in ("text/html", "application/xhtml+xml"):
            raw = html_to_text(raw)

        text = self._preprocessor.clean(raw)
        if not text:
            raise ValidationError("document has no text content after normalization")

        detected = detect_language(text)
        logger.debug(
            "Normalized %s: %d -> %d chars, declared=%s detected=%s",
            file_name or "document",
            len(content),
            len(text),
            language.value,
            detected.value if detected else None,
        )
        return NormalizedDocument(
            text=text,
            language=language,
            detected_language=detected,
            file_name=file_name,
            mime_type=mime_type,
            original_length=len(content),
        )

    def describe(self, document: NormalizedDocument) -> DocumentInfo:
        """Document metadata echoed in the analysis result."""
        return DocumentInfo(
            file_name=document.file_name,
            mime_type=document.mime_type,
            char_count=document.length,
            word_count=len(document.text.split()),
            page_count=max(1, math.ceil(document.length / CHARS_PER_PAGE)),
            language=document.language,
            detected_language=document.detected_language,
            checksum=hashlib.sha256(document.text.encode("utf-8")).hexdigest(),
        )
