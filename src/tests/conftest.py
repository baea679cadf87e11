"""
Shared fixtures: an in-memory stand-in for ffmpeg/ffprobe.
"""

from pathlib import Path

import pytest

from dubtrack import compositor, synth, timeline
from dubtrack.io_ffmpeg import build_mix_filter


class FakeAudio:
    """Tracks the duration of every "audio file" written during a test."""

    def __init__(self) -> None:
        self.durations: dict[str, float] = {}
        self.stretches: list[tuple[str, float]] = []
        self.mixes: list[dict] = []
        self.fail_stretch = False
        self.fail_mix = False
        self.fail_normalize = False
        self.normalized: list[str] = []

    def write(self, path: str, duration: float) -> None:
        Path(path).write_bytes(b"RIFF")
        self.durations[str(path)] = duration

    def probe(self, path: str) -> float:
        if str(path) not in self.durations or not Path(path).exists():
            raise RuntimeError(f"ffprobe failed for {path}")
        return self.durations[str(path)]

    def stretch(self, in_wav: str, out_wav: str, ratio: float) -> None:
        if self.fail_stretch:
            raise RuntimeError("ffmpeg failed with code 1")
        self.stretches.append((in_wav, ratio))
        self.write(out_wav, self.durations[in_wav] / ratio)

    def mix(self, inputs, delays_ms, filter_script, out_path, total_duration, sample_rate=24000):
        Path(filter_script).write_text(build_mix_filter(delays_ms), encoding="utf-8")
        self.mixes.append(
            {
                "inputs": list(inputs),
                "delays_ms": list(delays_ms),
                "filter_script": filter_script,
                "total": total_duration,
            }
        )
        if self.fail_mix:
            Path(out_path).write_bytes(b"partial")
            raise RuntimeError("ffmpeg failed with code 1")
        longest = max(ms / 1000 + self.durations[p] for p, ms in zip(inputs, delays_ms))
        self.write(out_path, min(longest, total_duration))

    def normalize(self, in_path, out_path, loudnorm, sample_rate=24000):
        if self.fail_normalize:
            raise RuntimeError("ffmpeg failed with code 1")
        self.normalized.append(loudnorm)
        self.write(out_path, self.durations[in_path])

    def synth_by_text(self, durations: dict[str, float]):
        """A synth function producing clips of a fixed length per text."""

        def _synth(text: str, out_path: str) -> None:
            self.write(out_path, durations[text])

        return _synth


@pytest.fixture
def fake_audio(monkeypatch) -> FakeAudio:
    audio = FakeAudio()
    monkeypatch.setattr(synth, "probe_duration", audio.probe)
    monkeypatch.setattr(timeline, "probe_duration", audio.probe)
    monkeypatch.setattr(timeline, "time_stretch_wav_ffmpeg", audio.stretch)
    monkeypatch.setattr(compositor, "probe_duration", audio.probe)
    monkeypatch.setattr(compositor, "mix_delayed_clips", audio.mix)
    monkeypatch.setattr(compositor, "normalize_loudness", audio.normalize)
    return audio


@pytest.fixture
def workspace(tmp_path):
    from dubtrack.workspace import RunWorkspace

    return RunWorkspace(str(tmp_path / "work"), "test")
