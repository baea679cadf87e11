"""
Text-to-speech providers: OpenAI, ElevenLabs and Edge TTS.

Every provider is wrapped into a ``synth(text, out_path)`` callable that
writes a WAV file.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import edge_tts
import httpx
from openai import OpenAI
from pydub import AudioSegment

logger = logging.getLogger("dubtrack")

SynthFunc = Callable[[str, str], None]

DEFAULT_EDGE_VOICE = "ka-GE-GiorgiNeural"
DEFAULT_OPENAI_VOICE = "alloy"


def _mp3_to_wav(mp3_path: str, out_path: str) -> None:
    clip = AudioSegment.from_file(mp3_path, format="mp3")
    clip.export(out_path, format="wav")
    Path(mp3_path).unlink(missing_ok=True)


def tts_speak_openai(
    client: OpenAI,
    text: str,
    model: str,
    voice: str,
    out_path: str,
    instructions: str | None = None,
) -> None:
    """Synthesize speech using OpenAI TTS."""
    if client is None:
        raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    kwargs = {"model": model, "voice": voice, "input": text, "response_format": "wav"}
    if instructions:
        kwargs["instructions"] = instructions
    with client.audio.speech.with_streaming_response.create(**kwargs) as resp:
        resp.stream_to_file(out_path)


def elevenlabs_tts_speak(
    api_key: str, voice_id: str, text: str, out_path: str, model_id: str = "eleven_multilingual_v2"
) -> None:
    """Synthesize speech using ElevenLabs TTS."""
    if not api_key:
        raise RuntimeError("ELEVENLABS_API_KEY is not set.")
    if not voice_id:
        raise RuntimeError("ElevenLabs voice_id is required (use --voice or ELEVENLABS_VOICE_ID).")

    url = f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
    headers = {
        "xi-api-key": api_key,
        "accept": "audio/mpeg",
        "Content-Type": "application/json",
        "User-Agent": "dubtrack/0.1",
    }
    payload = {
        "text": text,
        "model_id": model_id,
        "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
    }

    with httpx.Client(follow_redirects=True, timeout=60.0) as client:
        r = client.post(url, json=payload, headers=headers)
        ctype = r.headers.get("content-type", "")
        if r.status_code != 200 or not ctype.startswith(("audio/", "application/octet-stream")):
            raise RuntimeError(f"ElevenLabs TTS failed: {r.status_code} {r.text[:300]}")
        tmp_mp3 = str(Path(out_path).with_suffix(".mp3"))
        with open(tmp_mp3, "wb") as f:
            f.write(r.content)
    _mp3_to_wav(tmp_mp3, out_path)


def edge_tts_speak(text: str, voice: str, out_path: str) -> None:
    """Synthesize speech with Microsoft Edge's online TTS.

    A fresh Communicate object is used per call; the service connection is
    not shared between calls.
    """
    tmp_mp3 = str(Path(out_path).with_suffix(".mp3"))
    asyncio.run(edge_tts.Communicate(text, voice).save(tmp_mp3))
    if not Path(tmp_mp3).exists() or Path(tmp_mp3).stat().st_size == 0:
        raise RuntimeError("Edge TTS produced no audio")
    _mp3_to_wav(tmp_mp3, out_path)


def make_synth_openai(
    client: OpenAI, tts_model: str, voice: str, instructions: str | None = None
) -> SynthFunc:
    """Create OpenAI TTS synthesis function."""

    def _synth(text: str, out_path: str) -> None:
        tts_speak_openai(client, text, tts_model, voice, out_path, instructions=instructions)

    return _synth


def make_synth_elevenlabs(api_key: str, voice_id: str, model_id: str) -> SynthFunc:
    """Create ElevenLabs TTS synthesis function."""

    def _synth(text: str, out_path: str) -> None:
        elevenlabs_tts_speak(api_key, voice_id, text, out_path, model_id=model_id)

    return _synth


def make_synth_edge(voice: str = DEFAULT_EDGE_VOICE) -> SynthFunc:
    """Create Edge TTS synthesis function."""

    def _synth(text: str, out_path: str) -> None:
        edge_tts_speak(text, voice, out_path)

    return _synth


def pick_elevenlabs_default_voice(api_key: str) -> str | None:
    """Auto-pick first available ElevenLabs voice."""
    try:
        r = httpx.get(
            "https://api.elevenlabs.io/v1/voices",
            headers={
                "xi-api-key": api_key,
                "accept": "application/json",
                "User-Agent": "dubtrack/0.1",
            },
            timeout=30.0,
        )
        if r.status_code == httpx.codes.OK:
            voices = r.json().get("voices", []) or []
            if voices and isinstance(voices, list):
                vid = voices[0].get("voice_id")
                return str(vid) if vid else None
        else:
            logger.warning("Could not fetch voices list (%d)", r.status_code)
    except httpx.HTTPError as e:
        logger.warning("Failed to auto-pick ElevenLabs voice: %s", e)
    return None


def make_synth(
    provider: str,
    *,
    voice: str | None = None,
    openai_client: OpenAI | None = None,
    openai_model: str = "gpt-4o-mini-tts",
    instructions: str | None = None,
    elevenlabs_key: str | None = None,
    elevenlabs_model: str = "eleven_multilingual_v2",
) -> SynthFunc:
    """Build the synthesis function for ``provider``."""
    if provider == "edge":
        return make_synth_edge(voice or DEFAULT_EDGE_VOICE)
    if provider == "openai":
        return make_synth_openai(
            openai_client, openai_model, voice or DEFAULT_OPENAI_VOICE, instructions
        )
    if provider == "elevenlabs":
        if not elevenlabs_key:
            raise RuntimeError("ELEVENLABS_API_KEY is not set. Put it in .env or environment.")
        voice_id = voice or pick_elevenlabs_default_voice(elevenlabs_key)
        if not voice_id:
            raise RuntimeError("ElevenLabs voice_id not provided. Set ELEVENLABS_VOICE_ID or --voice.")
        logger.info("Using ElevenLabs voice_id: %s", voice_id)
        return make_synth_elevenlabs(elevenlabs_key, voice_id, elevenlabs_model)
    raise RuntimeError(f"Unknown TTS provider: {provider}")
