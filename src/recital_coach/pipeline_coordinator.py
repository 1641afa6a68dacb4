"""
Coordinates transcription requests with an asynchronous transcription worker.

The coordinator owns the pipeline state. It is changed only by submit() and by
events coming back from the worker, one event at a time, and every change is
committed as a new immutable snapshot. Subscribers see snapshots in commit order.
"""

import functools
import itertools
import logging
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np

from . import config
from .audio_processing import AudioProcessor
from .observable import Observable
from .transcription_events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    InitiateEvent,
    ProgressEvent,
    ReadyEvent,
    TERMINAL_EVENTS,
    TranscribedChunk,
    TranscriptionEvent,
    TranscriptionRequest,
    TranscriptionTask,
    UpdateEvent,
)
from .worker_service import TranscriptionWorker

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Transcription worker error. Check the server logs."
TIMEOUT_ERROR_MESSAGE = "Transcription timed out"

_NO_RESOURCES: Mapping[str, "ProgressItem"] = MappingProxyType({})


@dataclass(frozen=True)
class ProgressItem:
    """Loading progress of one model resource."""
    resource_id: str
    name: str
    loaded: int = 0
    total: int = 0
    progress: float = 0.0


@dataclass(frozen=True)
class TranscriberData:
    """Latest transcript, partial while is_busy is True."""
    is_busy: bool
    text: str
    chunks: Tuple[TranscribedChunk, ...] = ()


@dataclass(frozen=True)
class PipelineState:
    is_busy: bool = False
    is_model_loading: bool = False
    # Read-only view, replaced as a whole on every change
    pending_resources: Mapping[str, ProgressItem] = field(default_factory=lambda: _NO_RESOURCES)
    last_error: Optional[str] = None
    last_result: Optional[TranscriberData] = None


def is_english_only(model: str) -> bool:
    return bool(config.MODELS.get(model, {}).get("lang"))


def supported_languages() -> Tuple[str, ...]:
    """Language codes accepted for multilingual models ('' is auto detect)."""
    return tuple(entry["value"] for entry in config.LANGUAGES)


@dataclass
class TranscriberSettings:
    """Model options applied to every request."""
    model: str = config.DEFAULT_MODEL
    multilingual: bool = config.DEFAULT_MULTILINGUAL
    quantized: bool = config.DEFAULT_QUANTIZED
    subtask: Optional[str] = config.DEFAULT_SUBTASK
    language: Optional[str] = config.DEFAULT_LANGUAGE

    def __post_init__(self):
        if self.model not in config.MODELS:
            raise ValueError(
                f"Unknown model '{self.model}'. Available models: {', '.join(config.MODELS)}"
            )
        if self.multilingual and is_english_only(self.model):
            logger.warning(f"Model '{self.model}' is English-only, disabling multilingual options")
            self.multilingual = False
        if self.language == "auto":
            self.language = ""
        if self.language is not None and self.language not in supported_languages():
            raise ValueError(
                f"Unsupported language '{self.language}'. Supported: {', '.join(supported_languages())}"
            )

    def build_request(self, samples: np.ndarray) -> TranscriptionRequest:
        return TranscriptionRequest(
            audio=samples,
            model=self.model,
            multilingual=self.multilingual,
            quantized=self.quantized,
            subtask=TranscriptionTask(self.subtask) if self.multilingual and self.subtask else None,
            language=self.language if self.multilingual else None,
        )


def apply_event(state: PipelineState, event: TranscriptionEvent) -> PipelineState:
    """Return the state that results from one worker event."""
    if isinstance(event, InitiateEvent):
        pending = dict(state.pending_resources)
        pending[event.resource_id] = ProgressItem(resource_id=event.resource_id, name=event.name)
        return replace(state, is_model_loading=True, pending_resources=MappingProxyType(pending))

    if isinstance(event, ProgressEvent):
        item = state.pending_resources.get(event.resource_id)
        if item is None:
            return state
        progress = (event.loaded / event.total) * 100.0 if event.total > 0 else 0.0
        pending = dict(state.pending_resources)
        pending[event.resource_id] = replace(
            item, loaded=event.loaded, total=event.total, progress=min(100.0, progress)
        )
        return replace(state, pending_resources=MappingProxyType(pending))

    if isinstance(event, DoneEvent):
        pending = {
            resource_id: item
            for resource_id, item in state.pending_resources.items()
            if resource_id != event.resource_id
        }
        is_model_loading = state.is_model_loading if pending else False
        return replace(
            state, pending_resources=MappingProxyType(pending), is_model_loading=is_model_loading
        )

    if isinstance(event, ReadyEvent):
        return replace(state, is_model_loading=False)

    if isinstance(event, UpdateEvent):
        return replace(
            state, last_result=TranscriberData(is_busy=True, text=event.text, chunks=tuple(event.chunks))
        )

    if isinstance(event, CompleteEvent):
        return replace(
            state,
            is_busy=False,
            last_result=TranscriberData(is_busy=False, text=event.text, chunks=tuple(event.chunks)),
        )

    if isinstance(event, ErrorEvent):
        return replace(
            state,
            is_busy=False,
            is_model_loading=False,
            last_error=event.message or DEFAULT_ERROR_MESSAGE,
        )

    raise ValueError(f"Unknown transcription event: {event!r}")


class PipelineCoordinator(Observable[PipelineState]):
    """Drives one transcription request at a time through a worker."""

    def __init__(
        self,
        worker: TranscriptionWorker,
        settings: Optional[TranscriberSettings] = None,
        audio_processor: Optional[AudioProcessor] = None
    ):
        """
        Initialize the coordinator.

        Args:
            worker: Transcription worker boundary
            settings: Model options (defaults come from config)
            audio_processor: Used to downmix and trim submitted audio
        """
        super().__init__(PipelineState())
        self.logger = logging.getLogger(__name__)
        self.worker = worker
        self.settings = settings or TranscriberSettings()
        self.audio_processor = audio_processor or AudioProcessor()

        # Held across commit and notify; reentrant so subscribers may call back in
        self._lock = threading.RLock()
        self._tokens = itertools.count(1)
        self._current_token = 0
        self._terminated = True
        self._finished = threading.Event()
        self._finished.set()

    @property
    def current_token(self) -> int:
        return self._current_token

    def submit(self, audio: Optional[np.ndarray]) -> Optional[int]:
        """
        Start transcribing audio, superseding any request in flight.

        Args:
            audio: Mono samples, or (channels, samples) audio. None or empty is ignored.

        Returns:
            Token of the new request, or None when there was no audio
        """
        if audio is None:
            return None
        audio = np.asarray(audio, dtype=np.float32)
        if audio.size == 0:
            self.logger.debug("Ignoring submit without audio")
            return None

        samples = self.audio_processor.prepare_samples(audio)
        request = self.settings.build_request(samples)

        with self._lock:
            token = next(self._tokens)
            self._current_token = token
            self._terminated = False
            self._finished.clear()
            self._set_state(replace(
                self._state,
                is_busy=True,
                is_model_loading=False,
                pending_resources=_NO_RESOURCES,
                last_error=None,
                last_result=None,
            ))

        self.logger.info(
            f"Submitting transcription request {token}: {len(samples)} samples, model={request.model}"
        )
        try:
            self.worker.post(request, functools.partial(self.handle_event, token=token))
        except Exception as e:
            self.logger.error(f"Failed to post request {token} to the worker: {e}")
            self.on_worker_failure(token, e)

        return token

    def handle_event(self, event: TranscriptionEvent, token: Optional[int] = None) -> bool:
        """
        Apply a worker event.

        Args:
            event: Event from the worker
            token: Request token the event belongs to (None means the current request)

        Returns:
            True if the event was applied, False if it belonged to a superseded
            or already finished request
        """
        with self._lock:
            current = self._current_token
            if token is not None and token != current:
                self.logger.debug(f"Dropping {type(event).__name__} from stale request {token}")
                return False
            if self._terminated:
                self.logger.debug(f"Dropping {type(event).__name__} after request {current} finished")
                return False

            state = apply_event(self._state, event)
            if isinstance(event, TERMINAL_EVENTS):
                self._terminated = True
                self._finished.set()

            if isinstance(event, ErrorEvent):
                self.logger.error(f"Transcription error from worker: {state.last_error}")
            elif isinstance(event, CompleteEvent):
                self.logger.info(f"Transcription request {current} complete")

            self._set_state(state)
        return True

    def on_worker_failure(self, token: Optional[int], error: Exception) -> bool:
        """Treat a worker crash as a terminal error for the request."""
        message = str(error) or "An unexpected worker error occurred."
        return self.handle_event(ErrorEvent(message=message), token=token)

    def on_input_change(self) -> None:
        """Clear the previous transcript and error when the input audio changes."""
        with self._lock:
            self._set_state(replace(self._state, last_result=None, last_error=None))

    def wait_for_result(self, timeout: Optional[float] = None) -> PipelineState:
        """
        Block until the current request completes or fails.

        If the timeout expires, the worker is aborted and the request is
        failed with a timeout error. Events the worker sends afterwards are
        dropped.
        """
        if not self._finished.wait(timeout):
            token = self._current_token
            self.logger.warning(f"Transcription request {token} timed out after {timeout}s")
            try:
                self.worker.abort()
            except Exception as e:
                self.logger.warning(f"Error aborting worker: {e}")
            self.handle_event(ErrorEvent(message=TIMEOUT_ERROR_MESSAGE), token=token)
        return self.state
