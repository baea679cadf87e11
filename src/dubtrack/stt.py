"""
Speech-to-text fallback for videos without captions.
"""

import logging

from openai import OpenAI

from .models import CaptionFragment

logger = logging.getLogger("dubtrack")


def _fragments_from_response(resp) -> list[CaptionFragment]:
    segs = getattr(resp, "segments", None)
    if segs is None and isinstance(resp, dict):
        segs = resp.get("segments")
    out: list[CaptionFragment] = []
    for seg in segs or []:
        if isinstance(seg, dict):
            start, end, text = seg.get("start", 0.0), seg.get("end", 0.0), seg.get("text", "")
        else:
            start = getattr(seg, "start", 0.0)
            end = getattr(seg, "end", 0.0)
            text = getattr(seg, "text", "")
        out.append(CaptionFragment(start=float(start), end=float(end), text=str(text).strip()))
    return out


def transcribe_whisper_api(
    client: OpenAI, audio_path: str, model: str = "whisper-1", language: str | None = None
) -> list[CaptionFragment]:
    """Transcribe audio using OpenAI Whisper API with segment timestamps."""
    if client is None:
        raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    with open(audio_path, "rb") as f:
        logger.info("Transcribing with %s (language: %s) …", model, language or "auto")
        kwargs = {
            "model": model,
            "file": f,
            "response_format": "verbose_json",
            "timestamp_granularities": ["segment"],
        }
        if language:
            kwargs["language"] = language
        resp = client.audio.transcriptions.create(**kwargs)
    fragments = _fragments_from_response(resp)
    logger.info("Transcribed %d segments", len(fragments))
    return fragments


def transcribe_local_faster_whisper(
    wav_path: str, local_model: str = "base", beam_size: int = 1, language: str | None = None
) -> list[CaptionFragment]:
    """Transcribe audio using local faster-whisper."""
    try:
        from faster_whisper import WhisperModel
    except ImportError as e:
        raise RuntimeError(
            "faster-whisper is not installed. Install with: pip install 'dubtrack[local]'"
        ) from e

    logger.info(
        "Transcribing locally with faster-whisper (%s, language: %s) …",
        local_model,
        language or "auto",
    )
    model = WhisperModel(local_model, device="cpu", compute_type="int8")
    segments_iter, _info = model.transcribe(
        wav_path,
        language=language,
        vad_filter=True,
        beam_size=beam_size,
        word_timestamps=False,
    )
    return [
        CaptionFragment(start=float(s.start), end=float(s.end), text=str(s.text).strip())
        for s in segments_iter
    ]
