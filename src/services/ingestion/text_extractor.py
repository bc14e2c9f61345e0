"""Plain-text extraction from raw document bytes, dispatched by file kind.

# ─── SUPPORTED FORMATS ────────────────────────────────────────────────
#
#   pdf        → PyMuPDF (fitz), page by page; page_count is reported
#   docx       → python-docx, paragraphs then table rows ("a | b | c")
#   pptx       → zip archive scan of slide XML text runs (degraded)
#   ppt        → printable-run scan of the binary (degraded)
#   txt / md   → UTF-8 decode, undecodable bytes replaced
#   doc        → rejected, users must convert to DOCX
#
# "Degraded" extractors recover readable text but lose structure; they
# log ``degraded_extraction`` so the quality loss is visible.
# ──────────────────────────────────────────────────────────────────────

Parsing is CPU-bound, so :meth:`TextExtractor.extract` runs the parser in a
worker thread via :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import io
import re
import zipfile
from collections.abc import Callable
from html import unescape

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx import Document

from src.models.rag import ExtractedText, ValidationReport
from src.utils.errors import ExtractionError, UnsupportedFormatError
from src.utils.text_normalizer import count_words, has_encoding_corruption

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_KINDS = ("pdf", "docx", "pptx", "ppt", "txt", "md")

_MIN_WORDS = 10
_MIN_CHARS = 50

_SLIDE_NAME = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
_TEXT_RUN = re.compile(r"<a:t>([^<]*)</a:t>")
_PRINTABLE_RUN = re.compile(rb"[\x20-\x7e]{4,}")


class TextExtractor:
    """Turns document bytes into :class:`ExtractedText`."""

    def __init__(self) -> None:
        self._parsers: dict[str, Callable[[bytes], ExtractedText]] = {
            "pdf": self._extract_pdf,
            "docx": self._extract_docx,
            "pptx": self._extract_pptx,
            "ppt": self._extract_ppt,
            "txt": self._extract_plain,
            "md": self._extract_plain,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(self, data: bytes, file_kind: str) -> ExtractedText:
        """Extract plain text from *data*.

        Parameters
        ----------
        data:
            Raw file bytes.
        file_kind:
            Lower-case extension without the dot (``"pdf"``, ``"docx"``...).
            A leading dot and upper case are tolerated.

        Raises
        ------
        UnsupportedFormatError
            For ``doc`` and any kind without a parser.
        ExtractionError
            When the parser cannot read the file (corrupt or encrypted).
        """
        kind = self.normalize_kind(file_kind)
        if kind == "doc":
            raise UnsupportedFormatError(
                message="DOC files are not supported. Please convert to DOCX format."
            )
        parser = self._parsers.get(kind)
        if parser is None:
            raise UnsupportedFormatError(message=f"Unsupported file type: {file_kind}")

        try:
            result = await asyncio.to_thread(parser, data)
        except (ExtractionError, UnsupportedFormatError):
            raise
        except Exception as exc:
            raise ExtractionError(
                message=f"Failed to extract {kind.upper()} text: {exc}",
                provider_name=kind,
            ) from exc

        logger.info(
            "text_extracted",
            file_kind=kind,
            char_count=result.char_count,
            word_count=result.word_count,
            page_count=result.page_count,
        )
        return result

    @staticmethod
    def validate(extracted: ExtractedText) -> ValidationReport:
        """Flag extractions that are empty, suspiciously short or corrupted.

        The report is advisory; it never raises.
        """
        issues: list[str] = []
        if not extracted.text.strip():
            issues.append("No text extracted")
        else:
            if extracted.word_count < _MIN_WORDS:
                issues.append(f"Very few words extracted ({extracted.word_count})")
            if extracted.char_count < _MIN_CHARS:
                issues.append(f"Very little text extracted ({extracted.char_count} characters)")
            if has_encoding_corruption(extracted.text):
                issues.append("Text contains encoding corruption markers")
        return ValidationReport(is_valid=not issues, issues=issues)

    @staticmethod
    def normalize_kind(file_kind: str) -> str:
        return file_kind.strip().lower().lstrip(".")

    # ------------------------------------------------------------------
    # Format parsers (run in a worker thread)
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes) -> ExtractedText:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(message=f"Cannot open PDF: {exc}", provider_name="pdf") from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(
                    message="PDF is encrypted and cannot be read", provider_name="pdf"
                )
            if doc.page_count == 0:
                raise ExtractionError(message="PDF has no pages", provider_name="pdf")
            pages = [page.get_text("text") for page in doc]
            page_count = doc.page_count
        finally:
            doc.close()

        text = "\n\n".join(p.strip() for p in pages if p.strip())
        return _build_result(text, page_count=page_count)

    @staticmethod
    def _extract_docx(data: bytes) -> ExtractedText:
        document = Document(io.BytesIO(data))
        parts = [para.text for para in document.paragraphs if para.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append(" | ".join(cells))
        return _build_result("\n\n".join(parts))

    @staticmethod
    def _extract_pptx(data: bytes) -> ExtractedText:
        logger.warning("degraded_extraction", file_kind="pptx")
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise ExtractionError(
                message="PPTX file is not a valid archive", provider_name="pptx"
            ) from exc

        with archive:
            slides: list[tuple[int, str]] = []
            for name in archive.namelist():
                match = _SLIDE_NAME.match(name)
                if match:
                    slides.append((int(match.group(1)), name))
            slides.sort()

            slide_texts: list[str] = []
            for _, name in slides:
                xml = archive.read(name).decode("utf-8", errors="replace")
                runs = [unescape(run) for run in _TEXT_RUN.findall(xml)]
                text = "\n".join(r for r in runs if r.strip())
                if text:
                    slide_texts.append(text)

        return _build_result("\n\n".join(slide_texts), page_count=len(slides))

    @staticmethod
    def _extract_ppt(data: bytes) -> ExtractedText:
        logger.warning("degraded_extraction", file_kind="ppt")
        runs = [run.decode("ascii") for run in _PRINTABLE_RUN.findall(data)]
        return _build_result("\n".join(r.strip() for r in runs if r.strip()))

    @staticmethod
    def _extract_plain(data: bytes) -> ExtractedText:
        return _build_result(data.decode("utf-8", errors="replace"))


def _build_result(text: str, page_count: int | None = None) -> ExtractedText:
    return ExtractedText(
        text=text,
        page_count=page_count,
        word_count=count_words(text),
        char_count=len(text),
    )

