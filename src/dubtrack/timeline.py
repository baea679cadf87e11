"""
Timing resolution: fit each synthesized clip before the next unit starts.
"""

import logging

from .errors import CompressionFailure
from .io_ffmpeg import probe_duration, time_stretch_wav_ffmpeg
from .models import AdjustedClip, SpeechUnit, SynthesizedClip
from .workspace import CancelToken, RunWorkspace

logger = logging.getLogger("dubtrack")


def available_time(units: list[SpeechUnit], i: int, *, floor: float = 0.5) -> float:
    """
    Time budget of unit i in seconds.
    The deadline is the next unit's start, not unit i's own end; the floor
    keeps units that start almost together from getting a near-zero budget.
    The last unit simply gets its own window.
    """
    unit = units[i]
    target = unit.end - unit.start
    if i == len(units) - 1:
        return target
    return max(min(target, units[i + 1].start - unit.start), floor)


def resolve_timing(
    clips: list[SynthesizedClip],
    workspace: RunWorkspace,
    *,
    max_speedup: float = 3.0,
    floor: float = 0.5,
    cancel: CancelToken | None = None,
) -> list[AdjustedClip]:
    """
    Speed up clips that would run into the next unit.

    Compression is capped at ``max_speedup``; past that the clip is allowed to
    overrun. Compressed clips are re-probed, anchors stay at the unit's
    original start.
    """
    ordered = sorted(clips, key=lambda c: c.unit.start)
    units = [c.unit for c in ordered]
    adjusted: list[AdjustedClip] = []

    for i, clip in enumerate(ordered):
        if cancel is not None:
            cancel.check("timing")
        budget = available_time(units, i, floor=floor)
        result = AdjustedClip(
            unit=clip.unit,
            index=clip.index,
            original_path=clip.path,
            effective_path=clip.path,
            effective_duration=clip.measured_duration,
            was_speed_adjusted=False,
            available_time=budget,
        )

        if clip.measured_duration <= budget:
            logger.debug(
                "Unit %d: %.2fs fits in %.2fs, no adjustment",
                clip.index,
                clip.measured_duration,
                budget,
            )
            adjusted.append(result)
            continue

        needed = clip.measured_duration / budget if budget > 0 else max_speedup
        factor = min(needed, max_speedup)
        out_path = workspace.adjusted_path(clip.index)
        try:
            time_stretch_wav_ffmpeg(clip.path, out_path, ratio=factor)
            new_duration = probe_duration(out_path)
        except RuntimeError as e:
            logger.warning("%s; using unadjusted clip", CompressionFailure(clip.index, e))
            adjusted.append(result)
            continue

        result.effective_path = out_path
        result.effective_duration = new_duration
        result.was_speed_adjusted = True
        result.applied_factor = factor
        if needed > max_speedup:
            logger.info(
                "Unit %d: %.2fs -> %.2fs (capped at %.1fx, needed %.2fx; overruns by %.2fs)",
                clip.index,
                clip.measured_duration,
                new_duration,
                max_speedup,
                needed,
                new_duration - budget,
            )
        else:
            logger.info(
                "Unit %d: %.2fs -> %.2fs (%.2fx speedup)",
                clip.index,
                clip.measured_duration,
                new_duration,
                factor,
            )
        adjusted.append(result)

    count = sum(1 for a in adjusted if a.was_speed_adjusted)
    logger.info("Timing resolved: %d of %d clips sped up", count, len(adjusted))
    return adjusted
