"""Pipeline support components for studyRAG ingestion."""

from src.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
