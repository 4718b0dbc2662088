"""
Speech synthesis and WAV encoding.

The TTS model returns raw PCM (24 kHz, mono, 16-bit signed little-endian).
It is wrapped in a canonical 44-byte RIFF/WAVE header and written to a
temporary file whose URL the caller can play and later revoke.
"""

from __future__ import annotations

import base64
import os
import struct
import tempfile
from pathlib import Path
from typing import Optional

import gemini_wrapper

from .errors import AudioMissing
from .resilience import invoke


SAMPLE_RATE = 24000
CHANNELS = 1
BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44
SPEECH_RETRIES = 2

DEFAULT_VOICE = "Kore"
VOICE_OPTIONS = {
    "Kore": "Female, Soothing",
    "Puck": "Male, Energetic",
    "Fenrir": "Male, Deep",
    "Charon": "Male, Deep",
    "Zephyr": "Female, Calm",
}


def wav_header(data_size: int, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS, bits_per_sample: int = BITS_PER_SAMPLE) -> bytes:
    """Build the 44-byte PCM WAV header for a payload of data_size bytes."""
    byte_rate = sample_rate * channels * bits_per_sample // 8
    block_align = channels * bits_per_sample // 8
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,  # Subchunk1Size for PCM
        1,  # AudioFormat: linear PCM
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )


def pcm_to_wav(pcm: bytes, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS, bits_per_sample: int = BITS_PER_SAMPLE) -> bytes:
    return wav_header(len(pcm), sample_rate, channels, bits_per_sample) + pcm


class AudioResource:
    """A playable WAV file owned by the caller.

    url stays valid until revoke() is called; revoking twice is harmless.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.revoked = False

    @classmethod
    def from_wav_bytes(cls, wav_bytes: bytes) -> "AudioResource":
        with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as tmp:
            try:
                tmp.write(wav_bytes)
            except Exception:
                tmp.close()
                os.unlink(tmp.name)
                raise
        return cls(Path(tmp.name))

    @property
    def url(self) -> str:
        if self.revoked:
            raise ValueError("Audio resource has been revoked")
        return self.path.resolve().as_uri()

    def read_bytes(self) -> bytes:
        if self.revoked:
            raise ValueError("Audio resource has been revoked")
        return self.path.read_bytes()

    def revoke(self) -> None:
        if self.revoked:
            return
        self.revoked = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass

    def __enter__(self) -> "AudioResource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.revoke()

    def __repr__(self) -> str:
        state = "revoked" if self.revoked else str(self.path)
        return f"AudioResource({state})"


def extract_audio_base64(full_response) -> Optional[str]:
    """Base64 audio from the first part's inline data, or None."""
    parts = gemini_wrapper.extract_parts(full_response)
    if not parts or not isinstance(parts[0], dict):
        return None
    inline = parts[0].get("inlineData")
    if not isinstance(inline, dict):
        return None
    return inline.get("data") or None


async def generate_speech(text: str, voice_id: str = DEFAULT_VOICE, api_key: Optional[str] = None) -> AudioResource:
    """Speak text with a prebuilt voice and return a playable WAV resource.

    Raises:
        AudioMissing: If the response carries no audio payload
    """
    config = {
        "responseModalities": ["AUDIO"],
        "speechConfig": {
            "voiceConfig": {
                "prebuiltVoiceConfig": {"voiceName": voice_id},
            },
        },
    }
    response = await invoke(lambda: gemini_wrapper.generate_content_async(
        model=gemini_wrapper.TTS_MODEL,
        contents=gemini_wrapper.build_text_contents(text),
        generation_config=config,
        api_key=api_key,
        _caller="generate_speech",
    ), max_retries=SPEECH_RETRIES)

    audio_b64 = extract_audio_base64(response)
    if not audio_b64:
        raise AudioMissing("AI did not return audio data.")

    return AudioResource.from_wav_bytes(pcm_to_wav(base64.b64decode(audio_b64)))
