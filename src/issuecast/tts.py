"""
Narration synthesis with OpenAI TTS.
"""

import logging
import math
import os
from collections.abc import Callable

from openai import OpenAI, OpenAIError
from pydub import AudioSegment as PydubAudio
from tqdm import tqdm

from .exceptions import AudioSynthesisError
from .io_ffmpeg import ensure_dir
from .models import AudioResult, AudioSegment, VideoScript

logger = logging.getLogger("issuecast")

# Average speaking rate: ~150 words per minute
WORDS_PER_SECOND = 2.5


def word_count(text: str) -> int:
    return len(text.split())


def estimate_duration(text: str, speed: float = 1.0) -> int:
    """Estimate spoken duration in whole seconds from the word count."""
    if speed <= 0:
        speed = 1.0
    return math.ceil(word_count(text) / (WORDS_PER_SECOND * speed))


def tts_speak_openai(
    client: OpenAI,
    text: str,
    model: str,
    voice: str,
    out_path: str,
    speed: float = 1.0,
) -> None:
    """Synthesize speech using OpenAI TTS and write the audio bytes as-is."""
    if client is None:
        raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    with client.audio.speech.with_streaming_response.create(
        model=model,
        voice=voice,
        input=text,
        speed=speed,
        response_format="mp3",
    ) as resp:
        resp.stream_to_file(out_path)


def make_synth_openai(
    client: OpenAI, tts_model: str, voice: str, speed: float = 1.0
) -> Callable[[str, str], None]:
    """Create OpenAI TTS synthesis function."""

    def _synth(text: str, out_path: str) -> None:
        tts_speak_openai(client, text, tts_model, voice, out_path, speed=speed)

    return _synth


def synthesize_audio(
    script: VideoScript,
    synth_func: Callable[[str, str], None],
    output_dir: str,
    *,
    speed: float = 1.0,
) -> AudioResult:
    """Synthesize narration for every section with non-blank narration.

    Sections are processed in order. Blank sections are skipped, so
    ``section_index`` may have gaps. Any synthesis failure aborts the batch.
    """
    ensure_dir(output_dir)
    segments: list[AudioSegment] = []
    total = 0

    for i, section in enumerate(tqdm(script.sections, desc="TTS")):
        narration = section.narration
        if not narration or not narration.strip():
            logger.debug("Section %d has no narration, skipping audio", i)
            continue

        logger.info(
            "Generating audio for section %d/%d: %s", i + 1, len(script.sections), section.heading
        )
        audio_path = os.path.join(output_dir, f"section_{i}_{section.type}.mp3")
        try:
            synth_func(narration, audio_path)
        except (OpenAIError, OSError, RuntimeError) as e:
            raise AudioSynthesisError(f"TTS failed for section {i} ({section.heading}): {e}") from e
        if not os.path.exists(audio_path):
            raise AudioSynthesisError(f"TTS produced no file for section {i}: {audio_path}")

        duration = estimate_duration(narration, speed)
        segments.append(
            AudioSegment(section_index=i, path=audio_path, duration=duration, text=narration)
        )
        total += duration

    return AudioResult(segments=tuple(segments), total_duration=total, output_dir=output_dir)


def combine_audio_files(audio_files: list[str], output_path: str) -> str:
    """Concatenate audio files into one track (format taken from the extension)."""
    if not audio_files:
        raise ValueError("No audio files to combine")
    combined = PydubAudio.silent(duration=0)
    for path in audio_files:
        combined += PydubAudio.from_file(path)
    fmt = os.path.splitext(output_path)[1].lstrip(".") or "mp3"
    combined.export(output_path, format=fmt)
    logger.info("Combined %d audio files -> %s", len(audio_files), output_path)
    return output_path
