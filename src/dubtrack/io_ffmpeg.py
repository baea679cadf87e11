"""
Audio processing utilities using ffmpeg/ffprobe.
"""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger("dubtrack")

MIN_ATEMPO = 0.5
MAX_ATEMPO = 2.0


def run(cmd: list[str], *, check: bool = True) -> str:
    """Run a shell command and return stdout."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    proc = subprocess.run(
        cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=False
    )
    if proc.returncode != 0 and check:
        logger.error("Command failed with code %d: %s", proc.returncode, proc.stdout[-2000:])
        msg = f"{cmd[0]} failed with code {proc.returncode}"
        raise RuntimeError(msg)
    return proc.stdout


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def probe_duration(path: str) -> float:
    """Return the duration of a media file in seconds."""
    out = run(
        [
            "ffprobe",
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            path,
        ]
    )
    try:
        return float(out.strip())
    except ValueError:
        msg = f"ffprobe returned no duration for {path}: {out.strip()[:200]}"
        raise RuntimeError(msg) from None


def atempo_chain(ratio: float) -> list[float]:
    """
    Split a tempo ratio into atempo stages that each stay within 0.5..2.0.
    NOTE: atempo < 1.0 => slow down (longer), atempo > 1.0 => speed up (shorter).
    """
    if ratio <= 0:
        ratio = 1.0
    steps: list[float] = []
    r = ratio
    while r < MIN_ATEMPO or r > MAX_ATEMPO:
        step = MIN_ATEMPO if r < 1.0 else MAX_ATEMPO
        steps.append(step)
        r /= step
    steps.append(r)
    return steps


def time_stretch_wav_ffmpeg(in_wav: str, out_wav: str, ratio: float) -> None:
    """Change audio tempo by ``ratio`` via a chained atempo filter."""
    filt = ",".join(f"atempo={s:.6f}" for s in atempo_chain(ratio))
    run(["ffmpeg", "-y", "-i", in_wav, "-filter:a", filt, out_wav])


def build_mix_filter(delays_ms: list[int]) -> str:
    """
    Filter graph placing input i at delays_ms[i] and summing all inputs.
    amix runs with normalize=0 so N inputs are not attenuated to 1/N.
    """
    parts = [f"[{i}]adelay=delays={ms}:all=1[a{i}]" for i, ms in enumerate(delays_ms)]
    labels = "".join(f"[a{i}]" for i in range(len(delays_ms)))
    weights = " ".join("1" for _ in delays_ms)
    parts.append(
        f"{labels}amix=inputs={len(delays_ms)}:duration=longest"
        f":dropout_transition=0:normalize=0:weights={weights}[out]"
    )
    return ";".join(parts)


def mix_delayed_clips(
    inputs: list[str],
    delays_ms: list[int],
    filter_script: str,
    out_path: str,
    total_duration: float,
    sample_rate: int = 24000,
) -> None:
    """Mix clips at their delays into one track cut at ``total_duration`` seconds.

    The filter graph goes through a script file so long timelines do not hit
    command-line length limits.
    """
    Path(filter_script).write_text(build_mix_filter(delays_ms), encoding="utf-8")
    cmd = ["ffmpeg", "-y"]
    for p in inputs:
        cmd += ["-i", p]
    cmd += [
        "-filter_complex_script",
        filter_script,
        "-map",
        "[out]",
        "-t",
        f"{total_duration:.3f}",
        "-ar",
        str(sample_rate),
        out_path,
    ]
    run(cmd)


def normalize_loudness(in_path: str, out_path: str, loudnorm: str, sample_rate: int = 24000) -> None:
    """Apply a loudnorm filter (EBU R128) to a track."""
    run(["ffmpeg", "-y", "-i", in_path, "-af", loudnorm, "-ar", str(sample_rate), out_path])


def extract_audio(input_media: str, out_wav: str, sample_rate: int = 16000) -> None:
    """Extract mono PCM audio for transcription."""
    ensure_dir(str(Path(out_wav).parent))
    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        input_media,
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(sample_rate),
        "-ac",
        "1",
        out_wav,
    ]
    run(cmd)
