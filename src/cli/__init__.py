# =============================================================================
# src/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line tools for operators and developers who need to drive the
# pipeline outside of the host application:
#
#   rag.py -- register, ingest, retry and inspect documents; run similarity
#            searches and grounded questions against an ingested document.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (chromadb, openai) are deferred until a command runs.
#   - Components come from src.main.build_components, the same factory
#     the application uses.
# =============================================================================

"""CLI tools for the studyRAG pipeline.

- ``python -m src.cli`` -- document ingestion and retrieval commands.
"""
