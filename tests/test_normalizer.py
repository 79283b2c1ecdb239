"""Tests for document normalization and language detection."""

from __future__ import annotations

import pytest
from langdetect.language import Language as DetectedLanguage

from contract_intelligence import normalizer as normalizer_module
from contract_intelligence.errors import ValidationError
from contract_intelligence.models import Language
from contract_intelligence.normalizer import CHARS_PER_PAGE, DocumentNormalizer, detect_language


@pytest.fixture
def normalizer() -> DocumentNormalizer:
    return DocumentNormalizer()


class TestDetectLanguage:
    def test_english(self) -> None:
        text = "This Agreement is made between the parties and shall be governed by the laws of Kenya."
        assert detect_language(text) is Language.ENGLISH

    def test_french(self) -> None:
        text = "Le présent contrat est conclu entre les parties et la société, et le prix des services."
        assert detect_language(text) is Language.FRENCH

    def test_arabic(self) -> None:
        text = "هذا العقد مبرم بين الطرفين ويخضع لأحكام القانون المعمول به في المملكة العربية السعودية"
        assert detect_language(text) is Language.ARABIC

    def test_hebrew(self) -> None:
        assert detect_language("הסכם זה נחתם בין הצדדים ויחול עליו הדין הישראלי") is Language.HEBREW

    def test_no_letters(self) -> None:
        assert detect_language("12345 67890 !!! ???") is None

    def test_too_short(self) -> None:
        assert detect_language("Hi there.") is None

    def test_repeatable(self) -> None:
        text = "Le contrat est conclu entre les parties. La partie et le prix des services du contrat."
        assert {detect_language(text) for _ in range(5)} == {Language.FRENCH}

    @pytest.mark.parametrize("lang,prob", [("it", 0.99), ("fr", 0.55)])
    def test_unsupported_or_uncertain(self, monkeypatch, lang: str, prob: float) -> None:
        monkeypatch.setattr(normalizer_module, "detect_langs", lambda text: [DetectedLanguage(lang, prob)])
        assert detect_language("Il presente contratto è stipulato tra le parti.") is None


class TestNormalize:
    def test_cleans_text(self, normalizer: DocumentNormalizer) -> None:
        doc = normalizer.normalize("  Clause   one.\r\n\r\n\r\nClause two.  ", Language.ENGLISH)
        assert doc.text == "Clause one.\n\nClause two."
        assert doc.language is Language.ENGLISH
        assert doc.original_length == len("  Clause   one.\r\n\r\n\r\nClause two.  ")

    @pytest.mark.parametrize("content", ["", "   ", "\n\n\t"])
    def test_empty_rejected(self, normalizer: DocumentNormalizer, content: str) -> None:
        with pytest.raises(ValidationError):
            normalizer.normalize(content, Language.ENGLISH)

    def test_language_required(self, normalizer: DocumentNormalizer) -> None:
        with pytest.raises(ValidationError, match="language"):
            normalizer.normalize("Some text here.", None)

    def test_only_control_characters_rejected(self, normalizer: DocumentNormalizer) -> None:
        with pytest.raises(ValidationError, match="no text"):
            normalizer.normalize("\x00\x01\x02", Language.ENGLISH)

    def test_html_stripped(self, normalizer: DocumentNormalizer) -> None:
        html = "<html><head><title>x</title></head><body><p>1. TERM</p><p>One year &amp; a day.</p></body></html>"
        doc = normalizer.normalize(html, Language.ENGLISH, mime_type="text/html")
        assert "<p>" not in doc.text
        assert "One year & a day." in doc.text
        assert "x" not in doc.text.split()

    def test_detected_language_recorded(self, normalizer: DocumentNormalizer) -> None:
        text = "Le contrat est conclu entre les parties. La partie et le prix des services du contrat."
        doc = normalizer.normalize(text, Language.ENGLISH)
        assert doc.detected_language is Language.FRENCH


class TestDescribe:
    def test_document_info(self, normalizer: DocumentNormalizer) -> None:
        doc = normalizer.normalize("word " * 10, Language.ENGLISH, "text/plain", "a.txt")
        info = normalizer.describe(doc)
        assert info.file_name == "a.txt"
        assert info.word_count == 10
        assert info.char_count == doc.length
        assert info.page_count == 1
        assert len(info.checksum) == 64

    def test_page_count(self, normalizer: DocumentNormalizer) -> None:
        doc = normalizer.normalize("x" * (CHARS_PER_PAGE * 2 + 1), Language.ENGLISH)
        assert normalizer.describe(doc).page_count == 3

    def test_checksum_stable(self, normalizer: DocumentNormalizer) -> None:
        a = normalizer.describe(normalizer.normalize("Same text.", Language.ENGLISH))
        b = normalizer.describe(normalizer.normalize("Same   text.", Language.ENGLISH))
        assert a.checksum == b.checksum
