"""
Transcription worker boundary and its implementations.

A worker accepts a TranscriptionRequest and reports back asynchronously
through an emit callback, ending every request with exactly one
CompleteEvent or ErrorEvent.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests

from . import config
from .audio_processing import AudioProcessor
from .transcription_events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    InitiateEvent,
    ProgressEvent,
    ReadyEvent,
    TranscribedChunk,
    TranscriptionEvent,
    TranscriptionRequest,
    TranscriptionTask,
)

EmitCallback = Callable[[TranscriptionEvent], None]


class TranscriptionWorker:
    """Interface of the off-process transcription worker."""

    def post(self, request: TranscriptionRequest, emit: EmitCallback) -> None:
        """Start processing a request. Must not block until it finishes."""
        raise NotImplementedError

    def abort(self) -> None:
        """Stop the request in flight, if any."""


class ThreadedWorker(TranscriptionWorker):
    """
    Runs each request on a daemon thread.

    Subclasses implement _run(). Exceptions escaping _run() are reported as
    an ErrorEvent, and nothing is emitted once the request has been aborted.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._abort_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def post(self, request: TranscriptionRequest, emit: EmitCallback) -> None:
        abort_event = threading.Event()
        self._abort_event = abort_event

        def guarded_emit(event: TranscriptionEvent) -> None:
            if not abort_event.is_set():
                emit(event)

        def target():
            try:
                self._run(request, guarded_emit, abort_event)
            except Exception as e:
                self.logger.error(f"Transcription worker failed: {e}")
                guarded_emit(ErrorEvent(message=str(e)))

        self._thread = threading.Thread(target=target, daemon=True, name=type(self).__name__)
        self._thread.start()

    def abort(self) -> None:
        if self._abort_event is not None:
            self._abort_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread of the latest request."""
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self, request: TranscriptionRequest, emit: EmitCallback, abort_event: threading.Event) -> None:
        raise NotImplementedError


class AssemblyAIWorker(ThreadedWorker):
    """Transcribes requests with the AssemblyAI REST API."""

    UPLOAD_RESOURCE = "upload"

    def __init__(
        self,
        api_key: Optional[str] = config.ASSEMBLYAI_API_KEY,
        base_url: str = config.ASSEMBLYAI_BASE_URL,
        poll_interval: float = config.TRANSCRIPTION_POLL_INTERVAL,
        audio_processor: Optional[AudioProcessor] = None
    ):
        """
        Initialize the AssemblyAI worker.

        Args:
            api_key: AssemblyAI API key
            base_url: Base URL of the v2 API
            poll_interval: Seconds between transcript status checks
            audio_processor: Used to encode request audio as WAV
        """
        super().__init__()
        self.api_key = api_key
        self.base_url = base_url
        self.poll_interval = poll_interval
        self.audio_processor = audio_processor or AudioProcessor()
        self.session = requests.Session()

        if not self.api_key:
            self.logger.warning("ASSEMBLYAI_API_KEY not found. Transcription requests will fail.")

    def _headers(self) -> Dict[str, str]:
        return {"authorization": self.api_key or ""}

    def _run(self, request: TranscriptionRequest, emit: EmitCallback, abort_event: threading.Event) -> None:
        if not self.api_key:
            raise RuntimeError("ASSEMBLYAI_API_KEY is not configured")
        if request.subtask == TranscriptionTask.TRANSLATE:
            raise ValueError("Translation is not supported by the AssemblyAI worker")

        try:
            audio_url = self._upload(request, emit)
            if abort_event.is_set():
                return
            transcript_id = self._create_transcript(audio_url, request)
            self._poll(transcript_id, emit, abort_event)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"API error during transcription: {e}")
            emit(ErrorEvent(message=f"Transcription service error: {e}"))

    def _upload(self, request: TranscriptionRequest, emit: EmitCallback) -> str:
        wav_bytes = self.audio_processor.encode_wav(request.audio)
        total = len(wav_bytes)

        emit(InitiateEvent(resource_id=self.UPLOAD_RESOURCE, name="recording.wav"))
        emit(ProgressEvent(resource_id=self.UPLOAD_RESOURCE, loaded=0, total=total))

        response = self.session.post(
            urljoin(self.base_url, "upload"),
            headers=self._headers(),
            data=wav_bytes,
            timeout=config.REQUEST_TIMEOUT,
        )
        response.raise_for_status()

        emit(ProgressEvent(resource_id=self.UPLOAD_RESOURCE, loaded=total, total=total))
        emit(DoneEvent(resource_id=self.UPLOAD_RESOURCE))
        emit(ReadyEvent())
        return response.json()['upload_url']

    def _create_transcript(self, audio_url: str, request: TranscriptionRequest) -> str:
        transcript_request = {'audio_url': audio_url}
        if request.language:
            transcript_request['language_code'] = request.language
        elif request.multilingual:
            transcript_request['language_detection'] = True

        response = self.session.post(
            urljoin(self.base_url, "transcript"),
            json=transcript_request,
            headers=self._headers(),
            timeout=config.REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        transcript_id = response.json()['id']
        self.logger.info(f"Created AssemblyAI transcript {transcript_id}")
        return transcript_id

    def _poll(self, transcript_id: str, emit: EmitCallback, abort_event: threading.Event) -> None:
        url = urljoin(self.base_url, f"transcript/{transcript_id}")
        while not abort_event.is_set():
            response = self.session.get(url, headers=self._headers(), timeout=config.REQUEST_TIMEOUT)
            response.raise_for_status()
            polling_json = response.json()

            status = polling_json.get('status')
            if status == 'completed':
                chunks = self._word_chunks(polling_json.get('words') or [])
                self.logger.info(f"Retrieved transcript with {len(chunks)} words from AssemblyAI.")
                emit(CompleteEvent(text=polling_json.get('text') or "", chunks=chunks))
                return
            if status == 'error':
                emit(ErrorEvent(message=f"AssemblyAI transcription failed: {polling_json.get('error')}"))
                return

            self.logger.debug("Transcription in progress, waiting...")
            abort_event.wait(self.poll_interval)

    @staticmethod
    def _word_chunks(words: List[Dict]) -> List[TranscribedChunk]:
        return [
            TranscribedChunk(
                text=word['text'],
                timestamp=(word['start'] / 1000.0, word['end'] / 1000.0 if word.get('end') is not None else None),
            )
            for word in words
        ]
