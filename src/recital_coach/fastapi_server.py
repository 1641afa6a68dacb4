"""
FastAPI backend for the recital coach.
"""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from . import config
from .alignment import DiffEntry
from .audio_processing import AudioProcessor
from .lesson_state import LessonState
from .lessons import get_default_catalog
from .persistence import CompletedLessonStore
from .pipeline_coordinator import PipelineCoordinator, PipelineState, is_english_only
from .practice_state import PracticeState
from .recital_session import RecitalCoach, RecitalResult
from .worker_service import AssemblyAIWorker


# Pydantic models for API requests/responses
class LessonResponse(BaseModel):
    id: str
    title: str
    content: str


class StartLessonRequest(BaseModel):
    lesson_id: str = Field(..., description="Id of the lesson to start")


class PracticeRequest(BaseModel):
    paragraph: str = Field(..., description="Paragraph to practice sentence by sentence")


class EvaluateRequest(BaseModel):
    """Request model for scoring a transcript against reference text."""
    reference_text: str
    transcript: str


class CompleteRecitalRequest(BaseModel):
    transcript: Optional[str] = Field(None, description="Recital transcript (defaults to the latest transcription)")


class DiffEntryResponse(BaseModel):
    text: str
    type: str


class RecitalResponse(BaseModel):
    """Response model for a scored recital."""
    reference_text: str
    transcript: str
    diff: List[DiffEntryResponse]
    similarity: float
    word_summary: Dict[str, float]
    lesson_id: Optional[str] = None
    summary: str


class ProgressItemResponse(BaseModel):
    resource_id: str
    name: str
    loaded: int
    total: int
    progress: float


class TranscriptResponse(BaseModel):
    is_busy: bool
    text: str


class PipelineStateResponse(BaseModel):
    is_busy: bool
    is_model_loading: bool
    pending_resources: List[ProgressItemResponse]
    last_error: Optional[str] = None
    last_result: Optional[TranscriptResponse] = None


class LessonStateResponse(BaseModel):
    phase: str
    lesson_id: Optional[str] = None
    current_lesson_index: int
    sentences: List[str]
    current_sentence_index: int
    current_sentence: Optional[str] = None


class PracticeStateResponse(BaseModel):
    paragraph_input: str
    sentences: List[str]
    current_sentence_index: int
    is_practice_mode: bool


class SessionStateResponse(BaseModel):
    lesson: LessonStateResponse
    practice: PracticeStateResponse
    pipeline: PipelineStateResponse
    diff: List[DiffEntryResponse]
    similarity: Optional[float] = None


class TranscribeResponse(BaseModel):
    request_token: Optional[int] = None
    pipeline: PipelineStateResponse


class ModelInfoResponse(BaseModel):
    id: str
    size_mb: int
    english_only: bool


class LanguageResponse(BaseModel):
    value: str
    label: str


class ModelsResponse(BaseModel):
    """Transcription models and languages the coach can be configured with."""
    models: List[ModelInfoResponse]
    languages: List[LanguageResponse]
    current_model: str
    max_recording_seconds: int
    max_audio_seconds: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    message: str
    lessons_loaded: int


# Initialize FastAPI app
app = FastAPI(
    title="Recital Coach API",
    description="API for practicing and scoring spoken recitation of reference text",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global coach instance
coach: Optional[RecitalCoach] = None
audio_processor = AudioProcessor()
recording_processor = AudioProcessor(max_audio_seconds=config.MAX_RECORDING_SECONDS)
logger = logging.getLogger(__name__)


def create_coach() -> RecitalCoach:
    """Build a coach wired to the configured worker, catalog and store."""
    coordinator = PipelineCoordinator(AssemblyAIWorker(), audio_processor=audio_processor)
    return RecitalCoach(
        coordinator=coordinator,
        catalog=get_default_catalog(),
        store=CompletedLessonStore(config.COMPLETED_LESSONS_PATH),
    )


@app.on_event("startup")
async def startup_event():
    """Initialize the recital coach on startup."""
    global coach
    if coach is not None:
        return
    try:
        logger.info("Initializing recital coach...")
        coach = create_coach()
        logger.info("Recital coach initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize recital coach: {e}")
        raise


def _require_coach() -> RecitalCoach:
    if coach is None:
        raise HTTPException(status_code=503, detail="Recital coach not initialized")
    return coach


def _convert_diff(diff: List[DiffEntry]) -> List[DiffEntryResponse]:
    return [DiffEntryResponse(text=entry.text, type=entry.type.value) for entry in diff]


def _convert_pipeline_state(state: PipelineState) -> PipelineStateResponse:
    return PipelineStateResponse(
        is_busy=state.is_busy,
        is_model_loading=state.is_model_loading,
        pending_resources=[
            ProgressItemResponse(
                resource_id=item.resource_id,
                name=item.name,
                loaded=item.loaded,
                total=item.total,
                progress=item.progress,
            )
            for item in state.pending_resources.values()
        ],
        last_error=state.last_error,
        last_result=TranscriptResponse(
            is_busy=state.last_result.is_busy, text=state.last_result.text
        ) if state.last_result else None,
    )


def _convert_lesson_state(state: LessonState, current_sentence: Optional[str]) -> LessonStateResponse:
    return LessonStateResponse(
        phase=state.phase.value,
        lesson_id=state.current_lesson.id if state.current_lesson else None,
        current_lesson_index=state.current_lesson_index,
        sentences=list(state.sentences),
        current_sentence_index=state.current_sentence_index,
        current_sentence=current_sentence,
    )


def _convert_practice_state(state: PracticeState) -> PracticeStateResponse:
    return PracticeStateResponse(
        paragraph_input=state.paragraph_input,
        sentences=list(state.sentences),
        current_sentence_index=state.current_sentence_index,
        is_practice_mode=state.is_practice_mode,
    )


def _convert_recital_result(result: RecitalResult) -> RecitalResponse:
    return RecitalResponse(
        reference_text=result.reference_text,
        transcript=result.transcript,
        diff=_convert_diff(result.diff),
        similarity=result.similarity,
        word_summary=result.word_summary,
        lesson_id=result.lesson_id,
        summary=_require_coach().get_correction_summary(result),
    )


def _session_state() -> SessionStateResponse:
    current = _require_coach()
    snapshot = current.presentation_snapshot()
    return SessionStateResponse(
        lesson=_convert_lesson_state(current.lessons.state, snapshot["current_sentence"]),
        practice=_convert_practice_state(snapshot["practice"]),
        pipeline=_convert_pipeline_state(snapshot["pipeline"]),
        diff=_convert_diff(snapshot["diff"]),
        similarity=snapshot["similarity"],
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if coach is not None else "unhealthy",
        message="Recital coach API is running",
        lessons_loaded=len(coach.lessons.catalog) if coach is not None else 0
    )


@app.get("/lessons", response_model=List[LessonResponse])
async def list_lessons():
    """List the lesson catalog in order."""
    current = _require_coach()
    return [
        LessonResponse(id=lesson.id, title=lesson.title, content=lesson.content)
        for lesson in current.lessons.catalog
    ]


@app.get("/lessons/{lesson_id}", response_model=LessonResponse)
async def get_lesson(lesson_id: str):
    lesson = _require_coach().lessons.catalog.get(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail=f"Lesson {lesson_id} not found")
    return LessonResponse(id=lesson.id, title=lesson.title, content=lesson.content)


@app.get("/state", response_model=SessionStateResponse)
async def get_state():
    """Current phase, sentence, transcription state and latest score."""
    return _session_state()


@app.post("/lesson/start", response_model=SessionStateResponse)
async def start_lesson(request: StartLessonRequest):
    current = _require_coach()
    lesson = current.lessons.catalog.get(request.lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail=f"Lesson {request.lesson_id} not found")
    current.lessons.start_lesson(lesson)
    return _session_state()


@app.post("/lesson/begin-practice", response_model=SessionStateResponse)
async def begin_practice():
    _require_coach().lessons.begin_practice()
    return _session_state()


@app.post("/lesson/advance", response_model=SessionStateResponse)
async def advance_sentence():
    _require_coach().lessons.advance_sentence()
    return _session_state()


@app.post("/lesson/start-recital", response_model=SessionStateResponse)
async def start_recital():
    _require_coach().lessons.start_recital()
    return _session_state()


@app.post("/lesson/next", response_model=SessionStateResponse)
async def start_next_lesson():
    _require_coach().lessons.start_next_lesson()
    return _session_state()


@app.post("/lesson/hub", response_model=SessionStateResponse)
async def return_to_hub():
    _require_coach().lessons.return_to_hub()
    return _session_state()


@app.post("/practice/start", response_model=SessionStateResponse)
async def start_practice(request: PracticeRequest):
    _require_coach().practice.start_practice(request.paragraph)
    return _session_state()


@app.post("/practice/advance", response_model=SessionStateResponse)
async def advance_practice():
    _require_coach().practice.advance()
    return _session_state()


@app.post("/practice/reset", response_model=SessionStateResponse)
async def reset_practice():
    _require_coach().practice.reset()
    return _session_state()


@app.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(
    audio_file: UploadFile = File(..., description="WAV recording of the recitation"),
    source: str = Query("recording", description="'recording' (microphone) or 'file' (uploaded audio file)")
):
    """
    Start transcribing an uploaded recording.

    Microphone recordings are cut to MAX_RECORDING_SECONDS, audio files to
    MAX_AUDIO_SECONDS. Transcription runs in the background; poll
    /transcription for progress.
    """
    current = _require_coach()
    if source not in ("recording", "file"):
        raise HTTPException(status_code=400, detail=f"Unknown audio source: {source}")

    content = await audio_file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty audio file")

    try:
        channels, _ = audio_processor.load_channels(content)
    except Exception as e:
        logger.error(f"Error reading uploaded audio: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid audio file: {str(e)}")

    if source == "recording":
        channels = recording_processor.prepare_samples(channels)

    token = current.transcribe(channels)
    return TranscribeResponse(
        request_token=token,
        pipeline=_convert_pipeline_state(current.coordinator.state),
    )


@app.get("/models", response_model=ModelsResponse)
async def list_models():
    """List the available transcription models and languages."""
    current = _require_coach()
    return ModelsResponse(
        models=[
            ModelInfoResponse(id=model_id, size_mb=info["size"], english_only=is_english_only(model_id))
            for model_id, info in config.MODELS.items()
        ],
        languages=[LanguageResponse(**language) for language in config.LANGUAGES],
        current_model=current.coordinator.settings.model,
        max_recording_seconds=config.MAX_RECORDING_SECONDS,
        max_audio_seconds=config.MAX_AUDIO_SECONDS,
    )


@app.get("/transcription", response_model=PipelineStateResponse)
async def get_transcription():
    return _convert_pipeline_state(_require_coach().coordinator.state)


@app.post("/recital/complete", response_model=RecitalResponse)
async def complete_recital(request: CompleteRecitalRequest):
    """Score the current lesson's recital, store it and mark the lesson complete."""
    current = _require_coach()
    result = current.complete_recital(request.transcript)
    if result is None:
        raise HTTPException(status_code=409, detail="No current lesson or no finished transcript to score")
    return _convert_recital_result(result)


@app.post("/evaluate", response_model=RecitalResponse)
async def evaluate(request: EvaluateRequest):
    """Score a transcript against arbitrary reference text."""
    result = _require_coach().evaluate(request.reference_text, request.transcript)
    return _convert_recital_result(result)


@app.get("/completed-lessons")
async def completed_lessons():
    ids = _require_coach().store.get_all_completed_lesson_ids()
    return {"lesson_ids": sorted(ids), "total_count": len(ids)}


# Development server function
def run_server(host: str = config.API_HOST, port: int = config.API_PORT, reload: bool = False):
    """Run the FastAPI server."""
    uvicorn.run(
        "recital_coach.fastapi_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    # Configure logging
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    # Run server
    run_server()
