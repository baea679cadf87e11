"""
Compositing of adjusted clips into one time-aligned, loudness-normalized track.
"""

import logging
import math
import os
from pathlib import Path

from .config import LoudnessTarget
from .errors import CompositeFailure, NormalizationFailure, NoUsableSegments
from .io_ffmpeg import ensure_dir, mix_delayed_clips, normalize_loudness, probe_duration
from .models import AdjustedClip, DubTrack
from .workspace import RunWorkspace

logger = logging.getLogger("dubtrack")


def _unlink(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def _normalize(out_path: str, loudness: LoudnessTarget, sample_rate: int) -> None:
    root, ext = os.path.splitext(out_path)
    tmp_path = f"{root}_norm{ext}"
    try:
        normalize_loudness(out_path, tmp_path, loudness.filter(), sample_rate=sample_rate)
    except RuntimeError as e:
        _unlink(tmp_path)
        raise NormalizationFailure(e) from e
    os.replace(tmp_path, out_path)


def composite(
    clips: list[AdjustedClip],
    total_duration: float,
    out_path: str,
    workspace: RunWorkspace,
    *,
    loudness: LoudnessTarget | None = None,
    sample_rate: int = 24000,
    expected_units: int | None = None,
) -> DubTrack:
    """
    Place every clip at its anchor and mix them into ``out_path``.

    The mix is cut at ``total_duration`` and then loudness-normalized; a failed
    normalization keeps the plain mix.
    """
    if not clips:
        raise NoUsableSegments(expected_units if expected_units is not None else 0)

    loudness = loudness or LoudnessTarget()
    ordered = sorted(clips, key=lambda c: c.exact_start)
    if total_duration <= 0:
        total_duration = max(c.exact_start + c.effective_duration for c in ordered)
        logger.warning("Unknown video duration; using end of last clip (%.3fs)", total_duration)

    delays_ms = [int(math.floor(c.exact_start * 1000)) for c in ordered]
    for c, ms in zip(ordered, delays_ms):
        logger.debug("Unit %d at %dms, %.2fs long", c.index, ms, c.effective_duration)

    ensure_dir(str(Path(out_path).parent))
    filter_script = workspace.scratch_path("mix_filter.txt")
    logger.info("Mixing %d clips into %.3fs track …", len(ordered), total_duration)
    try:
        mix_delayed_clips(
            [c.effective_path for c in ordered],
            delays_ms,
            filter_script,
            out_path,
            total_duration,
            sample_rate=sample_rate,
        )
    except RuntimeError as e:
        _unlink(out_path)
        raise CompositeFailure(len(ordered), e) from e
    finally:
        _unlink(filter_script)
        for c in ordered:
            if c.was_speed_adjusted:
                _unlink(c.effective_path)

    normalized = True
    try:
        _normalize(out_path, loudness, sample_rate)
    except NormalizationFailure as e:
        logger.warning("%s; keeping unnormalized mix", e)
        normalized = False

    try:
        duration = probe_duration(out_path)
    except RuntimeError as e:
        raise CompositeFailure(len(ordered), e) from e
    logger.info("[dur] video = %.3fs, dub track = %.3fs", total_duration, duration)
    return DubTrack(
        path=out_path,
        duration=duration,
        clip_count=len(ordered),
        adjusted_count=sum(1 for c in ordered if c.was_speed_adjusted),
        normalized=normalized,
    )
