# =============================================================================
# src/cli/__main__.py -- Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m src.cli ingest lecture-01
#
# Delegates to the document CLI (rag.py).
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.rag import main

main()
