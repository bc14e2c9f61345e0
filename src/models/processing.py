"""Document processing state models.

Defines the document registry record and the processing state machine that
the ingestion orchestrator drives.  All models are frozen -- state
transitions produce new :class:`ProcessingStatus` instances via
:meth:`ProcessingStatus.transition`, which refuses edges the state machine
does not have.

State machine::

    PENDING ──→ PROCESSING ──→ COMPLETED ──→ RETRYING ──→ PROCESSING
                     │                          ↑
                     └────────→ FAILED ─────────┘
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.utils.errors import InvalidStateTransitionError


# ---------------------------------------------------------------------------
# ProcessingState
# ---------------------------------------------------------------------------
class ProcessingState(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Lifecycle states of a document in the ingestion pipeline."""

    PENDING = "PENDING"         # Registered, never processed
    PROCESSING = "PROCESSING"   # An ingestion run is in flight
    COMPLETED = "COMPLETED"     # Indexed (possibly with some failed chunks)
    FAILED = "FAILED"           # Last run aborted; retriable
    RETRYING = "RETRYING"       # Retry requested, run about to start


_ALLOWED_TRANSITIONS: dict[ProcessingState, frozenset[ProcessingState]] = {
    ProcessingState.PENDING: frozenset({ProcessingState.PROCESSING}),
    ProcessingState.PROCESSING: frozenset({ProcessingState.COMPLETED, ProcessingState.FAILED}),
    ProcessingState.COMPLETED: frozenset({ProcessingState.RETRYING}),
    ProcessingState.FAILED: frozenset({ProcessingState.RETRYING}),
    ProcessingState.RETRYING: frozenset({ProcessingState.PROCESSING, ProcessingState.FAILED}),
}

TERMINAL_STATES = frozenset({ProcessingState.COMPLETED, ProcessingState.FAILED})


class IngestionStage(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Coarse progress stages reported while a document is ingested."""

    QUEUED = "queued"
    EXTRACT = "extract"
    CHUNK = "chunk"
    EMBED = "embed"
    INDEX = "index"
    DONE = "done"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# DocumentRecord -- what the pipeline knows about an uploaded document.
# ---------------------------------------------------------------------------
class DocumentRecord(BaseModel):
    """An uploaded document awaiting or having gone through ingestion.

    Created once when an upload completes; never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: str = Field(min_length=1)
    tenant_id: str = ""
    # Key (or URL) handed to the object store's fetch_bytes().
    storage_key: str = Field(min_length=1)
    file_kind: str = Field(description='File kind, e.g. "pdf", "docx", "pptx".')
    title: str = ""


# ---------------------------------------------------------------------------
# ProcessingStatus
# ---------------------------------------------------------------------------
class ProcessingStatus(BaseModel):
    """Processing status of one document.

    Immutable -- use :meth:`transition` to move to the next state::

        status = status.transition(ProcessingState.COMPLETED, total_chunks=12)
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    state: ProcessingState = ProcessingState.PENDING
    total_chunks: int = Field(default=0, ge=0)
    processed_chunks: int = Field(default=0, ge=0)
    failed_chunks: int = Field(default=0, ge=0)
    error_message: str | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    def can_transition(self, new_state: ProcessingState) -> bool:
        return new_state in _ALLOWED_TRANSITIONS[self.state]

    def transition(self, new_state: ProcessingState, **updates: Any) -> ProcessingStatus:
        """Return a copy moved to *new_state* with *updates* applied.

        Raises
        ------
        InvalidStateTransitionError
            If the state machine has no ``self.state -> new_state`` edge.
        """
        if not self.can_transition(new_state):
            raise InvalidStateTransitionError(
                message=(
                    f"Cannot move document {self.document_id} "
                    f"from {self.state.value} to {new_state.value}"
                )
            )
        # The error message only survives on FAILED.
        if new_state != ProcessingState.FAILED:
            updates.setdefault("error_message", None)
        return self.model_copy(
            update={**updates, "state": new_state, "updated_at": _utcnow()}
        )

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def is_stale(self, max_age_seconds: float, now: datetime | None = None) -> bool:
        """True for a PROCESSING status not updated for *max_age_seconds*.

        Such a run outlived its own timeout: the process that owned it died
        and nothing will ever finish it.
        """
        if self.state != ProcessingState.PROCESSING:
            return False
        updated = self.updated_at
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)  # noqa: UP017
        current = now if now is not None else _utcnow()
        return (current - updated).total_seconds() > max_age_seconds


# ---------------------------------------------------------------------------
# IngestionResult -- summary of a single ingestion run.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one ingestion run, returned by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    state: ProcessingState
    total_chunks: int = Field(default=0, ge=0)
    processed_chunks: int = Field(default=0, ge=0)
    failed_chunks: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    ingestion_time: float = Field(
        default=0.0, ge=0.0, description="Wall-clock seconds for the run."
    )
    error_message: str | None = None
    # Validation issues and partial-failure notes; never fatal.
    warnings: list[str] = Field(default_factory=list)
