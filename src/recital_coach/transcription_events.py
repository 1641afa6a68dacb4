"""
Messages exchanged with the transcription worker.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np


class TranscriptionTask(str, Enum):
    TRANSCRIBE = "transcribe"
    TRANSLATE = "translate"


@dataclass(frozen=True)
class TranscribedChunk:
    """A piece of transcript with its (start, end) time in seconds."""
    text: str
    timestamp: Tuple[float, Optional[float]]


@dataclass
class TranscriptionRequest:
    """Request posted to the transcription worker."""
    audio: np.ndarray
    model: str
    multilingual: bool = False
    quantized: bool = False
    subtask: Optional[TranscriptionTask] = None
    language: Optional[str] = None

    def __post_init__(self):
        self.audio = np.asarray(self.audio, dtype=np.float32)
        if self.audio.ndim != 1:
            raise ValueError(f"Transcription audio must be mono, got shape {self.audio.shape}")

        if not self.multilingual:
            # Task and language only apply to multilingual models
            self.subtask = None
            self.language = None
            return

        if self.subtask is not None:
            self.subtask = TranscriptionTask(self.subtask)
        if self.language in ("", "auto"):
            self.language = None


@dataclass(frozen=True)
class InitiateEvent:
    """A model resource started loading."""
    resource_id: str
    name: str


@dataclass(frozen=True)
class ProgressEvent:
    resource_id: str
    loaded: int
    total: int


@dataclass(frozen=True)
class DoneEvent:
    resource_id: str


@dataclass(frozen=True)
class ReadyEvent:
    """The model is fully initialized."""


@dataclass(frozen=True)
class UpdateEvent:
    """Partial transcript while the request is still running."""
    text: str
    chunks: List[TranscribedChunk] = field(default_factory=list)


@dataclass(frozen=True)
class CompleteEvent:
    """Final transcript. Terminates the request."""
    text: str
    chunks: List[TranscribedChunk] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorEvent:
    """Worker failure. Terminates the request."""
    message: str


TranscriptionEvent = Union[
    InitiateEvent, ProgressEvent, DoneEvent, ReadyEvent, UpdateEvent, CompleteEvent, ErrorEvent
]

TERMINAL_EVENTS = (CompleteEvent, ErrorEvent)


def _parse_chunks(raw_chunks: Optional[List[Dict[str, Any]]]) -> List[TranscribedChunk]:
    chunks = []
    for chunk in raw_chunks or []:
        timestamp = chunk.get("timestamp") or (0.0, None)
        start = timestamp[0] if len(timestamp) > 0 else 0.0
        end = timestamp[1] if len(timestamp) > 1 else None
        chunks.append(TranscribedChunk(text=chunk.get("text", ""), timestamp=(start, end)))
    return chunks


def event_from_message(message: Optional[Dict[str, Any]]) -> Optional[TranscriptionEvent]:
    """
    Convert a raw worker message into a typed event.

    Worker messages carry a 'status' key ('initiate', 'progress', 'done',
    'ready', 'update', 'complete', 'error') plus status-specific fields.

    Returns:
        The event, or None for empty messages and unknown statuses
    """
    if not message:
        return None

    status = message.get("status")
    data = message.get("data")

    if status == "initiate":
        return InitiateEvent(resource_id=message.get("file", ""), name=message.get("name", ""))
    if status == "progress":
        return ProgressEvent(
            resource_id=message.get("file", ""),
            loaded=int(message.get("loaded") or 0),
            total=int(message.get("total") or 0),
        )
    if status == "done":
        return DoneEvent(resource_id=message.get("file", ""))
    if status == "ready":
        return ReadyEvent()
    if status == "update":
        # Partial results arrive as [text, {"chunks": [...]}]
        parts = list(data or [])
        text = parts[0] if parts else ""
        extra = parts[1] if len(parts) > 1 else {}
        return UpdateEvent(text=text or "", chunks=_parse_chunks((extra or {}).get("chunks")))
    if status == "complete":
        data = data or {}
        return CompleteEvent(text=data.get("text", ""), chunks=_parse_chunks(data.get("chunks")))
    if status == "error":
        error_message = (data or {}).get("message") if isinstance(data, dict) else None
        return ErrorEvent(message=error_message or "")

    return None
