"""Ingestion progress tracking with callback-based listener notification.

Tracks the current stage, processing state and progress percentage for each
document being ingested and broadcasts updates to registered listener
callbacks.  Listeners are keyed by document ID so several documents can be
ingested concurrently without cross-talk.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
# This implements the Observer pattern:
#
#   IngestionOrchestrator ──update()──→ ProgressTracker ──callback()──→ CLI printer
#                                                       ──→ (any other listener)
#
# Data flow:
#   1. The orchestrator calls tracker.update(document_id, stage, state, progress, msg)
#   2. ProgressTracker stores the snapshot and calls all registered listeners
#   3. A listener (e.g. the CLI's `ingest --progress` printer) renders it
#
#   - Listeners are keyed by document_id → no cross-talk between documents
#   - Listener errors are caught and logged → one broken listener can't
#     block ingestion or other listeners
#   - Both sync and async callbacks are supported (asyncio.iscoroutine check)
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from src.models.processing import IngestionStage, ProcessingState
from src.utils.logging import get_logger


@dataclass
class _DocumentProgress:
    """Internal snapshot of a single document's progress.

    A plain dataclass (mutable, not Pydantic) because it is internal-only.
    """

    stage: IngestionStage = IngestionStage.QUEUED
    state: ProcessingState = ProcessingState.PENDING
    progress: float = 0.0
    message: str = ""


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks.

    Callbacks receive ``(document_id, stage, state, progress, message)``.
    """

    def __init__(self) -> None:
        # Per-document progress snapshots
        self._snapshots: dict[str, _DocumentProgress] = {}
        # Per-document list of listener callbacks (Observer pattern)
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        stage: IngestionStage,
        state: ProcessingState,
        progress: float,
        message: str = "",
    ) -> None:
        """Record a progress update and notify all registered listeners.

        Parameters
        ----------
        document_id:
            The document being ingested.
        stage:
            The current ingestion stage.
        state:
            The document's processing state at this point.
        progress:
            Completion percentage (0.0 – 100.0); clamped.
        message:
            Human-readable status message.
        """
        progress = max(0.0, min(100.0, progress))

        self._snapshots[document_id] = _DocumentProgress(
            stage=stage,
            state=state,
            progress=progress,
            message=message,
        )

        self._logger.debug(
            "progress_update",
            document_id=document_id,
            stage=stage.value,
            state=state.value,
            progress=round(progress, 1),
            message=message,
        )

        await self._notify_listeners(document_id, stage, state, progress, message)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register a sync or async callback for a document's updates."""
        if document_id not in self._listeners:
            self._listeners[document_id] = []

        if callback not in self._listeners[document_id]:
            self._listeners[document_id].append(callback)
            self._logger.debug(
                "listener_registered",
                document_id=document_id,
                total_listeners=len(self._listeners[document_id]),
            )

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        """Remove a previously registered callback for a document."""
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                document_id=document_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(document_id, None)

    def get_status(self, document_id: str) -> dict:
        """Return the latest snapshot for a document.

        Returns
        -------
        dict
            Keys: ``stage``, ``state``, ``progress``, ``message``.  Zeroed
            defaults are returned for documents not yet tracked.
        """
        snapshot = self._snapshots.get(document_id) or _DocumentProgress()
        return {
            "stage": snapshot.stage.value,
            "state": snapshot.state.value,
            "progress": snapshot.progress,
            "message": snapshot.message,
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(
        self,
        document_id: str,
        stage: IngestionStage,
        state: ProcessingState,
        progress: float,
        message: str,
    ) -> None:
        """Invoke all registered listeners for a document.

        Listeners that raise are logged and skipped so a single faulty
        listener cannot block progress updates.
        """
        for callback in list(self._listeners.get(document_id, [])):
            try:
                result = callback(document_id, stage, state, progress, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
