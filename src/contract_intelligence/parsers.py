"""Document loaders for the command line.

Turn PDF, DOCX, HTML and plain-text files into the ``document`` part of an
analysis request. HTML stripping is shared with the normalizer, which
applies it to ``text/html`` content submitted directly.
"""

from __future__ import annotations

import html as html_module
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from html.parser import HTMLParser as _StdHTMLParser
from pathlib import Path


@dataclass
class ParsedDocument:
    """Text pulled out of a file, one entry per page."""

    filename: str
    mime_type: str
    pages: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def full_text(self) -> str:
        return "\n\n".join(page for page in self.pages if page)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def to_request_document(self) -> dict:
        """The ``document`` field of an analysis request."""
        return {
            "content": self.full_text,
            "fileName": self.filename,
            "mimeType": self.mime_type,
        }


class DocumentParser(ABC):
    """Base class for file parsers."""

    supported_extensions: tuple[str, ...] = ()
    mime_type: str = "application/octet-stream"

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.supported_extensions

    @abstractmethod
    def parse(self, path: Path) -> ParsedDocument:
        """Parse ``path``.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the extension is not handled by this parser.
        """

    def _validate_path(self, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if not self.can_handle(path):
            raise ValueError(
                f"Unsupported file extension '{path.suffix}' for {self.__class__.__name__}. "
                f"Supported: {self.supported_extensions}"
            )


class TextParser(DocumentParser):
    """Plain text; form feeds separate pages."""

    supported_extensions = (".txt", ".text", ".md")
    mime_type = "text/plain"

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        pages = [p.strip() for p in text.split("\f") if p.strip()]
        return ParsedDocument(filename=path.name, mime_type=self.mime_type, pages=pages)


class PDFParser(DocumentParser):
    """PDF via pdfplumber, page by page."""

    supported_extensions = (".pdf",)
    mime_type = "application/pdf"

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)

        import pdfplumber

        pages: list[str] = []
        metadata: dict = {}
        with pdfplumber.open(str(path)) as pdf:
            metadata["pdf_metadata"] = pdf.metadata or {}
            for page in pdf.pages:
                pages.append((page.extract_text() or "").strip())

        return ParsedDocument(
            filename=path.name, mime_type=self.mime_type, pages=pages, metadata=metadata
        )


class DOCXParser(DocumentParser):
    """Word documents via python-docx.

    DOCX has no page boundaries, so paragraphs are grouped into
    approximate pages.
    """

    supported_extensions = (".docx",)
    mime_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    _PARAGRAPHS_PER_PAGE = 25

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)

        from docx import Document

        doc = Document(str(path))
        paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        pages = [
            "\n\n".join(paragraphs[i : i + self._PARAGRAPHS_PER_PAGE])
            for i in range(0, len(paragraphs), self._PARAGRAPHS_PER_PAGE)
        ]

        metadata: dict = {"paragraph_count": len(paragraphs)}
        props = doc.core_properties
        if props.title:
            metadata["title"] = props.title
        if props.author:
            metadata["author"] = props.author

        return ParsedDocument(
            filename=path.name, mime_type=self.mime_type, pages=pages, metadata=metadata
        )


class HTMLParser(DocumentParser):
    """HTML files, tags stripped."""

    supported_extensions = (".html", ".htm")
    mime_type = "text/html"

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)
        raw_html = path.read_text(encoding="utf-8", errors="replace")
        return ParsedDocument(
            filename=path.name, mime_type=self.mime_type, pages=[html_to_text(raw_html).strip()]
        )


class _TextExtractor(_StdHTMLParser):
    _SKIPPED = ("script", "style", "head")
    _BLOCKS = ("p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "section")

    def __init__(self) -> None:
        super().__init__()
        self.parts: list[str] = []
        self._skip = 0

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag in self._SKIPPED:
            self._skip += 1
        elif tag == "br":
            self.parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in self._SKIPPED:
            self._skip = max(0, self._skip - 1)
        elif tag in self._BLOCKS:
            self.parts.append("\n\n")

    def handle_data(self, data: str) -> None:
        if not self._skip:
            self.parts.append(data)


def html_to_text(raw_html: str) -> str:
    """Strip tags and decode entities, keeping block breaks as blank lines."""
    extractor = _TextExtractor()
    extractor.feed(raw_html)
    extractor.close()
    text = html_module.unescape("".join(extractor.parts))
    return re.sub(r"\n{3,}", "\n\n", text)


_PARSERS: tuple[DocumentParser, ...] = (PDFParser(), DOCXParser(), TextParser(), HTMLParser())


def get_parser(path: Path) -> DocumentParser:
    """Parser for ``path`` chosen by file extension.

    Raises:
        ValueError: If no parser supports the extension.
    """
    for parser in _PARSERS:
        if parser.can_handle(path):
            return parser
    supported = sorted({ext for p in _PARSERS for ext in p.supported_extensions})
    raise ValueError(
        f"No parser available for '{path.suffix}'. Supported formats: {', '.join(supported)}"
    )


def load_document(path: str | Path) -> ParsedDocument:
    """Parse any supported file."""
    path = Path(path)
    return get_parser(path).parse(path)
