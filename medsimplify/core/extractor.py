"""
Text extraction for uploaded medical reports.

Plain-text files are decoded verbatim; PDF files are parsed with
pdfplumber. Anything else is rejected before any parser runs.
"""

import io
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import pdfplumber

from medsimplify.core.errors import ExtractionFailed, UnsupportedMediaType
from medsimplify.utils.logger import get_logger

logger = get_logger("extractor")


class DocumentKind(str, Enum):
    """Document formats the extractor understands."""
    TEXT = "text"
    PDF = "pdf"


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file, held in memory for the duration of one request."""

    content: bytes
    content_type: Optional[str]
    filename: str


class DocumentExtractor:
    """
    Extracts plain text from uploaded reports.

    Supports:
    - Plain text (.txt / text/plain), decoded as UTF-8
    - PDF (.pdf / application/pdf), parsed page by page
    """

    TEXT_MIME_TYPES = {"text/plain"}
    PDF_MIME_TYPES = {"application/pdf"}
    TEXT_EXTENSIONS = {".txt"}
    PDF_EXTENSIONS = {".pdf"}

    UNSUPPORTED_MESSAGE = "Unsupported file type. Use .txt or .pdf"

    def classify(self, content_type: Optional[str], filename: str) -> DocumentKind:
        """
        Decide how a file should be read.

        Declared type and extension are both honoured; plain text wins
        when both match.

        Raises:
            UnsupportedMediaType: If neither text nor PDF
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        ext = Path(filename or "").suffix.lower()

        if mime in self.TEXT_MIME_TYPES or ext in self.TEXT_EXTENSIONS:
            return DocumentKind.TEXT
        if mime in self.PDF_MIME_TYPES or ext in self.PDF_EXTENSIONS:
            return DocumentKind.PDF

        raise UnsupportedMediaType(self.UNSUPPORTED_MESSAGE)

    def extract_text(
        self,
        content: bytes,
        content_type: Optional[str],
        filename: str = "document"
    ) -> str:
        """
        Extract plain text from an uploaded file.

        Args:
            content: Raw file bytes
            content_type: Declared media type
            filename: Original filename

        Returns:
            Extracted text

        Raises:
            UnsupportedMediaType: If the file is neither text nor PDF
            ExtractionFailed: If the PDF cannot be parsed
        """
        kind = self.classify(content_type, filename)

        if kind == DocumentKind.TEXT:
            text = content.decode("utf-8", errors="replace")
        else:
            text = self._extract_pdf(content, filename)

        logger.info(
            "Text extracted",
            filename=filename,
            kind=kind.value,
            text_length=len(text)
        )
        return text

    def extract(self, upload: UploadedFile) -> str:
        """Extract text from an UploadedFile."""
        return self.extract_text(upload.content, upload.content_type, upload.filename)

    def _extract_pdf(self, content: bytes, filename: str) -> str:
        """Run pdfplumber over every page and join the page texts."""
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.warning("PDF extraction failed", filename=filename, error=str(e))
            raise ExtractionFailed("Failed to parse uploaded file") from e

        text = "\n\n".join(pages).replace("\r\n", "\n")

        if not text.strip():
            # Scanned documents carry no text layer
            logger.warning("PDF contains no extractable text", filename=filename, page_count=len(pages))

        return text


# Singleton instance
document_extractor = DocumentExtractor()
