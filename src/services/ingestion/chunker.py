"""Sentence-based chunking with overlapping windows and shape classification.

Splits extracted document text into :class:`~src.models.rag.Chunk` objects
sized for embedding (~800 estimated tokens each, never more than 1200 unless
a single sentence is longer than that).

The chunking strategy has three parts:

1. **Conservative sentence splitting** -- A boundary is only recognised
   after ``.``, ``!`` or ``?`` followed by whitespace (or a line break) and
   an uppercase letter.  Technical text with abbreviations or lowercase
   identifiers is under-segmented rather than broken mid-thought.

2. **Greedy accumulation with overlap** -- Sentences are packed into a
   buffer until it reaches the soft target (``chunk_size``) or the next
   sentence would push it past the hard limit (``max_chunk_size``).  The
   next buffer then starts with the trailing ``chunk_overlap // 20``
   sentences of the closed one (roughly ``chunk_overlap`` tokens at ~20
   tokens per sentence), so text near a boundary is retrievable from
   either side.

3. **Shape classification** -- Each chunk gets a :class:`ChunkType`
   (heading, list, table, footnote, image caption, paragraph) from cheap
   textual heuristics.  These are display hints and will misclassify some
   inputs, e.g. a short all-caps sentence becomes a heading.

All sizes are *estimated* tokens (``ceil(chars / 4)``), see
:mod:`src.utils.text_normalizer`.
"""

from __future__ import annotations

import re
import time

import structlog

from src.models.rag import Chunk, ChunkingResult, ChunkMetadata, ChunkType, ValidationReport
from src.utils.text_normalizer import estimate_tokens, normalize_whitespace

logger = structlog.get_logger(logger_name=__name__)

CHUNK_SIZE = 800
CHUNK_OVERLAP = 100
MIN_CHUNK_SIZE = 50
MAX_CHUNK_SIZE = 1200

# Rough average sentence length used to turn the token overlap into a
# sentence count.
_TOKENS_PER_SENTENCE = 20

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z])|(?<=[.!?])\s*\n\s*(?=[A-Z])")
_NUMERIC_PREFIX = re.compile(r"^\d+\.?\s")
_LIST_ITEM = re.compile(r"^\s*(?:[-•*]\s|\d+\.\s)")
_COLUMN_GAP = re.compile(r"\s{3,}")
_FIGURE_MENTION = re.compile(r"figure|image", re.IGNORECASE)


class DocumentChunker:
    """Splits document text into overlapping, size-bounded, typed chunks.

    Parameters
    ----------
    chunk_size:
        Soft target in estimated tokens; a buffer that reaches it is closed.
    chunk_overlap:
        Approximate overlap in tokens between consecutive chunks, converted
        to ``chunk_overlap // 20`` trailing sentences.
    min_chunk_size:
        Chunks below this size are reported by :meth:`validate_chunks`.
    max_chunk_size:
        Hard limit; a sentence that would push a buffer past it closes the
        buffer first.
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        min_chunk_size: int = MIN_CHUNK_SIZE,
        max_chunk_size: int = MAX_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0 or max_chunk_size < chunk_size:
            raise ValueError(
                f"Invalid chunk sizes: chunk_size={chunk_size}, max_chunk_size={max_chunk_size}"
            )
        self._chunk_size = chunk_size
        self._overlap_sentences = max(0, chunk_overlap // _TOKENS_PER_SENTENCE)
        self._min_chunk_size = min_chunk_size
        self._max_chunk_size = max_chunk_size

    @property
    def overlap_sentences(self) -> int:
        return self._overlap_sentences

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, document_id: str) -> ChunkingResult:
        """Split *text* into overlapping :class:`Chunk` objects.

        Parameters
        ----------
        text:
            The full extracted text of the document.
        document_id:
            Used to build deterministic chunk ids
            (``{document_id}_chunk_{index}``).

        Returns
        -------
        ChunkingResult
            Chunks with strictly increasing ``chunk_index`` starting at 0.
            Empty input returns no chunks; any non-empty input returns at
            least one, however short.
        """
        start = time.monotonic()

        cleaned = normalize_whitespace(text)
        if not cleaned:
            return ChunkingResult()

        sentences = self.split_sentences(cleaned)
        raw_chunks = self._accumulate_chunks(sentences)

        chunks = [
            self._build_chunk(content, document_id, index)
            for index, content in enumerate(raw_chunks)
        ]
        total_tokens = sum(c.token_count for c in chunks)
        avg = total_tokens / len(chunks) if chunks else 0.0
        elapsed = time.monotonic() - start

        logger.info(
            "chunking_complete",
            document_id=document_id,
            num_chunks=len(chunks),
            total_tokens=total_tokens,
            avg_tokens=round(avg),
            time_s=round(elapsed, 3),
        )
        return ChunkingResult(
            chunks=chunks,
            total_tokens=total_tokens,
            avg_chunk_size=avg,
            processing_time=elapsed,
        )

    def validate_chunks(self, chunks: list[Chunk]) -> ValidationReport:
        """Report chunks outside ``[min_chunk_size, max_chunk_size]`` or empty.

        Never raises and never blocks ingestion; the trailing chunk of a
        document is allowed to be small.
        """
        issues: list[str] = []
        if not chunks:
            issues.append("No chunks were created")

        last_index = len(chunks) - 1
        for position, chunk in enumerate(chunks):
            if not chunk.content.strip():
                issues.append(f"Chunk {chunk.chunk_index} is empty")
                continue
            if chunk.token_count < self._min_chunk_size and position != last_index:
                issues.append(
                    f"Chunk {chunk.chunk_index} is too small "
                    f"({chunk.token_count} < {self._min_chunk_size} tokens)"
                )
            if chunk.token_count > self._max_chunk_size:
                issues.append(
                    f"Chunk {chunk.chunk_index} is too large "
                    f"({chunk.token_count} > {self._max_chunk_size} tokens)"
                )

        return ValidationReport(is_valid=not issues, issues=issues)

    # ------------------------------------------------------------------
    # Sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split normalized *text* at conservative sentence boundaries."""
        parts = _SENTENCE_BOUNDARY.split(text)
        return [p.strip() for p in parts if p and p.strip()]

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _accumulate_chunks(self, sentences: list[str]) -> list[str]:
        """Greedily pack sentences into chunk texts.

        Sizes are measured on the joined text, separators included, so an
        emitted chunk's ``token_count`` is exactly what was checked against
        the limits.  ``fresh`` counts the sentences in the buffer that did
        not come from the previous chunk's overlap; a buffer with no fresh
        sentences is never emitted, so the tail of the document is not
        duplicated.
        """
        chunks: list[str] = []
        buffer: list[str] = []
        fresh = 0

        for sentence in sentences:
            if buffer and self._joined_tokens(buffer, sentence) > self._max_chunk_size:
                if fresh:
                    chunks.append(" ".join(buffer))
                    buffer = self._overlap_tail(buffer)
                    fresh = 0
                if buffer and self._joined_tokens(buffer, sentence) > self._max_chunk_size:
                    # The overlap alone cannot make room for this sentence.
                    buffer = []

            buffer.append(sentence)
            fresh += 1

            if estimate_tokens(" ".join(buffer)) >= self._chunk_size:
                chunks.append(" ".join(buffer))
                buffer = self._overlap_tail(buffer)
                fresh = 0

        if buffer and fresh:
            chunks.append(" ".join(buffer))

        return chunks

    @staticmethod
    def _joined_tokens(buffer: list[str], sentence: str) -> int:
        """Estimated tokens of *buffer* with *sentence* appended."""
        return estimate_tokens(" ".join([*buffer, sentence]))

    def _overlap_tail(self, buffer: list[str]) -> list[str]:
        """Return the trailing sentences that seed the next chunk."""
        if self._overlap_sentences == 0:
            return []
        return buffer[-self._overlap_sentences :]

    # ------------------------------------------------------------------
    # Chunk construction / classification
    # ------------------------------------------------------------------

    def _build_chunk(self, content: str, document_id: str, index: int) -> Chunk:
        return Chunk(
            id=f"{document_id}_chunk_{index}",
            document_id=document_id,
            content=content,
            chunk_index=index,
            token_count=estimate_tokens(content),
            char_count=len(content),
            chunk_type=self.classify(content),
            metadata=ChunkMetadata(
                section_title=self.extract_section_title(content),
                original_position=index,
            ),
        )

    @staticmethod
    def classify(content: str) -> ChunkType:
        """Classify *content* by shape.

        Checked in order: heading, list, table, footnote, image caption,
        and paragraph as the fallback.
        """
        text = content.strip()
        lines = [line for line in text.split("\n") if line.strip()]

        if len(text) < 100 and (text == text.upper() or _NUMERIC_PREFIX.match(text)):
            return ChunkType.HEADING

        if lines and all(_LIST_ITEM.match(line) for line in lines):
            return ChunkType.LIST

        if len(lines) > 2 and all("|" in line or _COLUMN_GAP.search(line) for line in lines):
            return ChunkType.TABLE

        if text.startswith("[") and "]" in text:
            return ChunkType.FOOTNOTE

        if len(text) < 200 and _FIGURE_MENTION.search(text):
            return ChunkType.IMAGE_CAPTION

        return ChunkType.PARAGRAPH

    @staticmethod
    def extract_section_title(content: str) -> str | None:
        """Return the first line when it is 4-99 characters long."""
        first_line = content.strip().split("\n", 1)[0].strip()
        if 3 < len(first_line) < 100:
            return first_line
        return None
