"""
Configuration for the recital coach.

Values come from the environment (and a local .env file when present).
"""

import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Audio settings
SAMPLE_RATE = 16000
MAX_AUDIO_SECONDS = 30 * 60  # Max audio duration for file input
MAX_RECORDING_SECONDS = 2 * 60  # Max recording duration

# Transcriber defaults
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "tiny.en")
DEFAULT_SUBTASK = os.getenv("DEFAULT_SUBTASK", "transcribe")
DEFAULT_QUANTIZED = _env_bool("DEFAULT_QUANTIZED", False)
DEFAULT_MULTILINGUAL = _env_bool("DEFAULT_MULTILINGUAL", False)
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "en")

# Available models (size in MB)
MODELS: Dict[str, Dict[str, object]] = {
    "tiny.en": {"url": "/ggml-model-whisper-tiny.en.bin", "size": 75, "lang": "en"},
    "tiny": {"url": "/ggml-model-whisper-tiny.bin", "size": 75},
    "base.en": {"url": "/ggml-model-whisper-base.en.bin", "size": 142, "lang": "en"},
    "base": {"url": "/ggml-model-whisper-base.bin", "size": 142},
    "small.en": {"url": "/ggml-model-whisper-small.en.bin", "size": 466, "lang": "en"},
    "small": {"url": "/ggml-model-whisper-small.bin", "size": 466},
    "tiny-en-q5_1": {"url": "/ggml-model-whisper-tiny.en-q5_1.bin", "size": 31, "lang": "en"},
    "tiny-q5_1": {"url": "/ggml-model-whisper-tiny-q5_1.bin", "size": 31},
    "base-en-q5_1": {"url": "/ggml-model-whisper-base.en-q5_1.bin", "size": 57, "lang": "en"},
    "base-q5_1": {"url": "/ggml-model-whisper-base-q5_1.bin", "size": 57},
    "small-en-q5_1": {"url": "/ggml-model-whisper-small.en-q5_1.bin", "size": 182, "lang": "en"},
    "small-q5_1": {"url": "/ggml-model-whisper-small-q5_1.bin", "size": 182},
}

LANGUAGES: List[Dict[str, str]] = [
    {"value": "es", "label": "Spanish"},
    {"value": "en", "label": "English"},
    {"value": "", "label": "Auto Detect"},
]

# AssemblyAI transcription worker
ASSEMBLYAI_API_KEY = os.getenv("ASSEMBLYAI_API_KEY")
ASSEMBLYAI_BASE_URL = os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2/")
TRANSCRIPTION_POLL_INTERVAL = float(os.getenv("TRANSCRIPTION_POLL_INTERVAL", "2.0"))
REQUEST_TIMEOUT = 10

# Lesson catalog and completed lessons
LESSON_CATALOG_PATH = os.getenv("LESSON_CATALOG_PATH")
LESSON_CATALOG_URL = os.getenv("LESSON_CATALOG_URL")
COMPLETED_LESSONS_PATH = os.getenv(
    "COMPLETED_LESSONS_PATH", str(PROJECT_ROOT / ".data" / "completed_lessons.json")
)

# API server
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
