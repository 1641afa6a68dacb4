"""
Audio preparation utilities for the transcription pipeline.
"""

import io
import logging
import math
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import soundfile as sf

from . import config

# Import librosa with error handling
try:
    import librosa
    RESAMPLING_AVAILABLE = True
except Exception as e:
    logging.warning(f"Librosa not available: {e}")
    RESAMPLING_AVAILABLE = False

# Stereo is folded to mono with sqrt(2) gain for loudness parity with the model's training audio
STEREO_SCALING_FACTOR = math.sqrt(2)

AudioSource = Union[str, Path, bytes]


def downmix_to_mono(channels: np.ndarray) -> np.ndarray:
    """
    Convert (channels, samples) audio to mono.

    Two channels are mixed as sqrt(2) * (left + right) / 2. Mono input is
    returned as-is; any other channel count keeps the first channel.
    """
    audio = np.asarray(channels, dtype=np.float32)
    if audio.ndim == 1:
        return audio
    if audio.shape[0] == 2:
        left, right = audio[0], audio[1]
        return (STEREO_SCALING_FACTOR * (left + right) / 2).astype(np.float32)
    return audio[0]


class AudioProcessor:
    """Loads, resamples, trims and encodes audio for transcription."""

    def __init__(
        self,
        target_sample_rate: int = config.SAMPLE_RATE,
        max_audio_seconds: float = config.MAX_AUDIO_SECONDS
    ):
        """
        Initialize AudioProcessor.

        Args:
            target_sample_rate: Sample rate expected by the transcriber (default: 16000)
            max_audio_seconds: Audio longer than this is trimmed
        """
        self.target_sample_rate = target_sample_rate
        self.max_audio_seconds = max_audio_seconds
        self.logger = logging.getLogger(__name__)

    def load_channels(self, source: AudioSource) -> Tuple[np.ndarray, int]:
        """
        Load audio keeping its channels.

        Args:
            source: Path to an audio file or its raw bytes

        Returns:
            Tuple of (audio with shape (channels, samples), sample_rate)
        """
        try:
            if isinstance(source, bytes):
                source = io.BytesIO(source)
            data, sample_rate = sf.read(source, dtype='float32', always_2d=True)
        except Exception as e:
            self.logger.error(f"Error loading audio: {e}")
            raise Exception(f"Failed to load audio: {e}")

        channels = data.T
        if sample_rate != self.target_sample_rate:
            channels = self.resample(channels, sample_rate)
            sample_rate = self.target_sample_rate

        self.logger.debug(f"Loaded audio: {channels.shape[0]} channel(s), {channels.shape[1]} samples at {sample_rate}Hz")
        return channels, sample_rate

    def resample(self, channels: np.ndarray, original_sample_rate: int) -> np.ndarray:
        """Resample (channels, samples) audio to the target sample rate."""
        if not RESAMPLING_AVAILABLE:
            raise RuntimeError("Librosa not available. Cannot resample audio.")
        return librosa.resample(
            channels, orig_sr=original_sample_rate, target_sr=self.target_sample_rate
        ).astype(np.float32)

    def prepare_samples(self, channels: np.ndarray) -> np.ndarray:
        """Downmix to mono and trim to the maximum audio duration."""
        mono = downmix_to_mono(channels)
        max_samples = int(self.max_audio_seconds * self.target_sample_rate)
        if len(mono) > max_samples:
            self.logger.warning(
                f"Audio is {len(mono) / self.target_sample_rate:.1f}s long, trimming to {self.max_audio_seconds}s"
            )
            mono = mono[:max_samples]
        return mono

    def encode_wav(self, samples: np.ndarray) -> bytes:
        """Encode mono samples as 16-bit WAV bytes."""
        buffer = io.BytesIO()
        sf.write(buffer, np.asarray(samples, dtype=np.float32), self.target_sample_rate, format='WAV', subtype='PCM_16')
        return buffer.getvalue()

    def get_duration(self, samples: np.ndarray) -> float:
        """Duration of mono samples in seconds."""
        return len(samples) / self.target_sample_rate
