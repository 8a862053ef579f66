"""
DocuMind - Text Extraction Service
Turns uploaded .txt/.pdf/.docx bytes into plain text for the knowledge base.

PDF methods (in order of preference):
1. pdfplumber - Best for text-based PDFs with tables
2. PyPDF2 - Fallback for simple PDFs

DOCX goes through python-docx (paragraphs, then table cells).

Extraction never decides whether an upload is accepted: callers substitute
placeholder text when `TextExtractor.extract` raises or returns too little.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Optional

import docx
import pdfplumber
import PyPDF2

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = ("txt", "pdf", "docx")


class ExtractionFailed(Exception):
    """No method produced text for the document."""


@dataclass
class ExtractionResult:
    """Result of text extraction."""
    text: str
    method_used: str
    page_count: int = 0
    metadata: dict = field(default_factory=dict)


def file_extension(filename: str) -> str:
    """Lower-case extension without the dot, '' when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


class TextExtractor:
    """
    Multi-method document text extractor.
    Tries multiple extraction methods to get the best results.
    """

    def extract(self, content: bytes, file_type: str) -> ExtractionResult:
        """
        Extract text from document bytes.

        Args:
            content: Raw uploaded bytes
            file_type: One of SUPPORTED_TYPES

        Raises:
            ExtractionFailed: the document could not be parsed at all
        """
        if file_type == "txt":
            return ExtractionResult(
                text=content.decode("utf-8", errors="replace"),
                method_used="utf-8",
            )
        if file_type == "pdf":
            return self._extract_pdf(content)
        if file_type == "docx":
            return self._extract_docx(content)
        raise ExtractionFailed(f"unsupported file type: {file_type}")

    def _extract_pdf(self, content: bytes) -> ExtractionResult:
        result = self._extract_pdfplumber(content)
        if result and result.text.strip():
            return result

        fallback = self._extract_pypdf2(content)
        if fallback:
            return fallback
        if result:
            return result
        raise ExtractionFailed("no PDF method could read the document")

    def _extract_pdfplumber(self, content: bytes) -> Optional[ExtractionResult]:
        """Extract text using pdfplumber."""
        try:
            texts = []
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                page_count = len(pdf.pages)
                for page in pdf.pages:
                    texts.append(page.extract_text() or "")
                    for table in page.extract_tables():
                        for row in table or []:
                            if row:
                                texts.append(" | ".join(str(cell or "") for cell in row))
            return ExtractionResult(
                text="\n\n".join(texts),
                method_used="pdfplumber",
                page_count=page_count,
            )
        except Exception as e:
            logger.warning(f"pdfplumber extraction failed: {e}")
            return None

    def _extract_pypdf2(self, content: bytes) -> Optional[ExtractionResult]:
        """Extract text using PyPDF2."""
        try:
            reader = PyPDF2.PdfReader(io.BytesIO(content))
            texts = [page.extract_text() or "" for page in reader.pages]
            return ExtractionResult(
                text="\n\n".join(texts),
                method_used="pypdf2",
                page_count=len(reader.pages),
            )
        except Exception as e:
            logger.warning(f"PyPDF2 extraction failed: {e}")
            return None

    def _extract_docx(self, content: bytes) -> ExtractionResult:
        try:
            document = docx.Document(io.BytesIO(content))
        except Exception as e:
            raise ExtractionFailed(f"python-docx could not open the document: {e}") from e

        parts = [p.text for p in document.paragraphs if p.text]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text for cell in row.cells if cell.text]
                if cells:
                    parts.append(" | ".join(cells))
        return ExtractionResult(text="\n".join(parts), method_used="python-docx")


_extractor: Optional[TextExtractor] = None


def get_text_extractor() -> TextExtractor:
    """Get the shared extractor instance (FastAPI dependency)."""
    global _extractor
    if _extractor is None:
        _extractor = TextExtractor()
    return _extractor
