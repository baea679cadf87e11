"""
Per-unit speech synthesis with a single retry and request pacing.
"""

import logging
import re
import time
from pathlib import Path

from tqdm import tqdm

from .errors import SynthesisFailure
from .io_ffmpeg import probe_duration
from .models import SpeechUnit, SynthesizedClip
from .tts import SynthFunc
from .workspace import CancelToken, RunWorkspace

logger = logging.getLogger("dubtrack")

_ANNOTATION_RE = re.compile(r"\[[^\]]*\]")


def strip_annotations(text: str) -> str:
    """Remove bracketed non-speech annotations like ``[Music]``."""
    return " ".join(_ANNOTATION_RE.sub(" ", text or "").split())


def _synthesize_once(synth_func: SynthFunc, text: str, out_path: str) -> float:
    synth_func(text, out_path)
    duration = probe_duration(out_path)
    if duration <= 0:
        raise RuntimeError(f"synthesized clip is empty: {out_path}")
    return duration


def synthesize_units(
    units: list[SpeechUnit],
    workspace: RunWorkspace,
    synth_func: SynthFunc,
    *,
    pacing_delay: float = 0.8,
    retry_backoff: float = 2.0,
    cancel: CancelToken | None = None,
) -> list[SynthesizedClip]:
    """
    Synthesize every unit, one call at a time.
    A failed unit is retried once after ``retry_backoff`` seconds and dropped
    if it fails again. Units with nothing speakable are skipped.
    """
    clips: list[SynthesizedClip] = []
    failures: list[int] = []
    skipped = 0
    attempted = False

    for i, unit in enumerate(tqdm(units, desc="TTS units")):
        if cancel is not None:
            cancel.check("synthesize")
        text = strip_annotations(unit.text)
        if not text:
            skipped += 1
            continue

        if attempted:
            time.sleep(pacing_delay)
        attempted = True
        out_path = workspace.clip_path(i)
        try:
            duration = _synthesize_once(synth_func, text, out_path)
        except Exception as first:
            logger.warning("TTS failed for unit %d (%s); retrying in %.1fs", i, first, retry_backoff)
            time.sleep(retry_backoff)
            try:
                duration = _synthesize_once(synth_func, text, out_path)
            except Exception as second:
                logger.error("%s", SynthesisFailure(i, second))
                failures.append(i)
                Path(out_path).unlink(missing_ok=True)
                continue

        clips.append(SynthesizedClip(unit=unit, index=i, path=out_path, measured_duration=duration))
        logger.debug("Unit %d: %.2fs of speech for %.2fs window", i, duration, unit.window)

    if skipped:
        logger.info("Skipped %d units with no speakable text", skipped)
    if failures:
        logger.warning("TTS completed with %d dropped units: %s", len(failures), failures)
    return clips
