"""Document ingestion pipeline for the studyRAG vector index.

Pipeline stages overview:

1. **Extract** (text_extractor.py / TextExtractor) -- Format-specific readers
   turn raw PDF, DOCX, PPTX, PPT, TXT and Markdown bytes into plain text.

2. **Chunk** (chunker.py / DocumentChunker) -- Splits the text into ~800
   estimated-token overlapping windows along sentence boundaries and tags
   each chunk with a structural type.

3. **Embed** (EmbeddingGenerator) -- Generates vectors in bounded batches,
   isolating failures to the chunks that caused them.

4. **Index** (via IVectorStoreProvider) -- Replaces the document's vectors
   in the index (delete, then upsert).

The IngestionOrchestrator drives these stages and the processing state
machine (orchestrator.py).
"""

from src.services.ingestion.chunker import DocumentChunker
from src.services.ingestion.orchestrator import IngestionOrchestrator
from src.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "DocumentChunker",
    "IngestionOrchestrator",
    "TextExtractor",
]
