"""Tests for document loaders."""

from __future__ import annotations

from pathlib import Path

import pytest

from contract_intelligence.parsers import (
    DOCXParser,
    HTMLParser,
    TextParser,
    get_parser,
    html_to_text,
    load_document,
)


class TestGetParser:
    @pytest.mark.parametrize(
        "name,parser_cls",
        [("a.txt", TextParser), ("a.MD", TextParser), ("a.docx", DOCXParser), ("a.htm", HTMLParser)],
    )
    def test_by_extension(self, name: str, parser_cls: type) -> None:
        assert isinstance(get_parser(Path(name)), parser_cls)

    def test_unsupported(self) -> None:
        with pytest.raises(ValueError, match="No parser available"):
            get_parser(Path("contract.xyz"))


class TestTextParser:
    def test_pages_split_on_form_feed(self, tmp_path: Path) -> None:
        path = tmp_path / "contract.txt"
        path.write_text("Page one.\fPage two.\f\f", encoding="utf-8")
        parsed = load_document(path)
        assert parsed.pages == ["Page one.", "Page two."]
        assert parsed.page_count == 2
        assert parsed.full_text == "Page one.\n\nPage two."

    def test_request_document(self, tmp_contract_file: Path) -> None:
        document = load_document(tmp_contract_file).to_request_document()
        assert document["fileName"] == "contract.txt"
        assert document["mimeType"] == "text/plain"
        assert document["content"].startswith("SERVICE AGREEMENT")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            TextParser().parse(tmp_path / "absent.txt")

    def test_wrong_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "contract.html"
        path.write_text("<p>x</p>", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported file extension"):
            TextParser().parse(path)


class TestHTML:
    def test_html_to_text(self) -> None:
        raw = "<html><head><title>T</title></head><body><h1>AGREEMENT</h1><p>Fees &amp; costs.</p></body></html>"
        assert html_to_text(raw).strip() == "AGREEMENT\n\nFees & costs."

    def test_scripts_dropped(self) -> None:
        raw = "<p>Keep</p><script>var x = 1;</script><style>p {}</style>"
        assert html_to_text(raw).strip() == "Keep"

    def test_parse_file(self, tmp_path: Path) -> None:
        path = tmp_path / "contract.html"
        path.write_text("<p>1. PAYMENT</p><p>Fees are due monthly.</p>", encoding="utf-8")
        parsed = load_document(path)
        assert parsed.mime_type == "text/html"
        assert parsed.pages == ["1. PAYMENT\n\nFees are due monthly."]


class TestDOCX:
    def test_paragraphs_and_metadata(self, tmp_path: Path) -> None:
        from docx import Document

        path = tmp_path / "contract.docx"
        doc = Document()
        doc.core_properties.title = "Supply Agreement"
        doc.add_paragraph("1. PAYMENT")
        doc.add_paragraph("")
        doc.add_paragraph("The Buyer shall pay within 30 days.")
        doc.save(str(path))

        parsed = load_document(path)
        assert parsed.pages == ["1. PAYMENT\n\nThe Buyer shall pay within 30 days."]
        assert parsed.metadata["paragraph_count"] == 2
        assert parsed.metadata["title"] == "Supply Agreement"
