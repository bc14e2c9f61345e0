"""Unit tests for TextExtractor -- format dispatch, parsers and quality validation."""

from __future__ import annotations

import io
import zipfile

import fitz
import pytest
from docx import Document

from src.models.rag import ExtractedText
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.errors import ExtractionError, UnsupportedFormatError


def _make_pdf(*pages: str, **save_options) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes(**save_options)
    doc.close()
    return data


def _make_docx() -> bytes:
    document = Document()
    document.add_paragraph("Thermodynamics lecture notes")
    document.add_paragraph("")
    document.add_paragraph("Energy is conserved in an isolated system.")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Quantity"
    table.cell(0, 1).text = "Unit"
    table.cell(1, 0).text = "Energy"
    table.cell(1, 1).text = "Joule"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _make_pptx(slides: dict[int, list[str]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        for number, runs in slides.items():
            body = "".join(f"<a:r><a:t>{run}</a:t></a:r>" for run in runs)
            archive.writestr(f"ppt/slides/slide{number}.xml", f"<p:sld>{body}</p:sld>")
        archive.writestr("ppt/slides/_rels/slide1.xml.rels", "<Relationships/>")
    return buffer.getvalue()


@pytest.fixture()
def extractor() -> TextExtractor:
    return TextExtractor()


class TestDispatch:
    @pytest.mark.asyncio
    async def test_doc_is_rejected_with_conversion_hint(self, extractor: TextExtractor) -> None:
        with pytest.raises(UnsupportedFormatError, match="convert to DOCX"):
            await extractor.extract(b"\xd0\xcf\x11\xe0", "doc")

    @pytest.mark.asyncio
    async def test_unknown_kind_is_rejected(self, extractor: TextExtractor) -> None:
        with pytest.raises(UnsupportedFormatError, match="Unsupported file type: xlsx"):
            await extractor.extract(b"data", "xlsx")

    @pytest.mark.asyncio
    async def test_kind_is_normalized(self, extractor: TextExtractor) -> None:
        result = await extractor.extract(b"plain words", ".TXT")
        assert result.text == "plain words"

    def test_normalize_kind(self) -> None:
        assert TextExtractor.normalize_kind(" .PDF ") == "pdf"


class TestPdf:
    @pytest.mark.asyncio
    async def test_extracts_pages_in_order(self, extractor: TextExtractor) -> None:
        data = _make_pdf("First page about vectors", "Second page about matrices")
        result = await extractor.extract(data, "pdf")

        assert result.page_count == 2
        assert "First page about vectors" in result.text
        assert result.text.index("vectors") < result.text.index("matrices")
        assert result.word_count == 8

    @pytest.mark.asyncio
    async def test_corrupt_pdf_raises_extraction_error(self, extractor: TextExtractor) -> None:
        with pytest.raises(ExtractionError):
            await extractor.extract(b"garbage bytes, not a document", "pdf")

    @pytest.mark.asyncio
    async def test_encrypted_pdf_raises_extraction_error(self, extractor: TextExtractor) -> None:
        data = _make_pdf(
            "Secret notes",
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner",
            user_pw="user",
        )
        with pytest.raises(ExtractionError, match="encrypted"):
            await extractor.extract(data, "pdf")


class TestDocx:
    @pytest.mark.asyncio
    async def test_paragraphs_then_table_rows(self, extractor: TextExtractor) -> None:
        result = await extractor.extract(_make_docx(), "docx")

        assert result.text == (
            "Thermodynamics lecture notes\n\n"
            "Energy is conserved in an isolated system.\n\n"
            "Quantity | Unit\n\n"
            "Energy | Joule"
        )
        assert result.page_count is None

    @pytest.mark.asyncio
    async def test_garbage_docx_raises_extraction_error(self, extractor: TextExtractor) -> None:
        with pytest.raises(ExtractionError, match="DOCX"):
            await extractor.extract(b"not a zip archive", "docx")


class TestPptx:
    @pytest.mark.asyncio
    async def test_slides_read_in_numeric_order(self, extractor: TextExtractor) -> None:
        data = _make_pptx({10: ["Tenth slide"], 2: ["Second slide", "R&amp;D budget"]})
        result = await extractor.extract(data, "pptx")

        assert result.text == "Second slide\nR&D budget\n\nTenth slide"
        assert result.page_count == 2

    @pytest.mark.asyncio
    async def test_invalid_archive(self, extractor: TextExtractor) -> None:
        with pytest.raises(ExtractionError, match="not a valid archive"):
            await extractor.extract(b"plain bytes", "pptx")


class TestLegacyAndPlain:
    @pytest.mark.asyncio
    async def test_ppt_printable_runs(self, extractor: TextExtractor) -> None:
        data = b"\x00\x01Kinetics overview\x00\x02ab\x00\x03Rate laws\xff"
        result = await extractor.extract(data, "ppt")

        assert result.text == "Kinetics overview\nRate laws"

    @pytest.mark.asyncio
    async def test_plain_text_replaces_invalid_bytes(self, extractor: TextExtractor) -> None:
        result = await extractor.extract("café ".encode() + b"\xff", "md")

        assert result.text.startswith("café")
        assert "\ufffd" in result.text


class TestValidate:
    def test_empty_text(self) -> None:
        report = TextExtractor.validate(ExtractedText(text="  "))
        assert report.issues == ["No text extracted"]

    def test_short_text(self) -> None:
        text = "Only four words here"
        report = TextExtractor.validate(
            ExtractedText(text=text, word_count=4, char_count=len(text))
        )
        assert not report.is_valid
        assert "Very few words extracted (4)" in report.issues
        assert f"Very little text extracted ({len(text)} characters)" in report.issues

    def test_corruption_markers(self) -> None:
        text = "A long enough sentence with plenty of words in it but one bad glyph \ufffd here."
        report = TextExtractor.validate(
            ExtractedText(text=text, word_count=len(text.split()), char_count=len(text))
        )
        assert report.issues == ["Text contains encoding corruption markers"]

    def test_good_text(self) -> None:
        text = "This lecture explains the first and second laws of thermodynamics in detail."
        report = TextExtractor.validate(
            ExtractedText(text=text, word_count=len(text.split()), char_count=len(text))
        )
        assert report.is_valid
