"""
Tests for timing resolution.
"""

import pytest

from dubtrack.models import SpeechUnit, SynthesizedClip
from dubtrack.timeline import available_time, resolve_timing


def _clip(fake_audio, workspace, index, start, end, duration):
    path = workspace.clip_path(index)
    fake_audio.write(path, duration)
    return SynthesizedClip(
        unit=SpeechUnit(start, end, f"u{index}"), index=index, path=path, measured_duration=duration
    )


def test_available_time_uses_next_start():
    units = [SpeechUnit(0.0, 3.0, "a"), SpeechUnit(2.0, 4.0, "b"), SpeechUnit(2.1, 6.0, "c")]

    assert available_time(units, 0) == 2.0
    assert available_time(units, 1) == 0.5  # floor
    assert available_time(units, 2) == pytest.approx(3.9)


def test_available_time_own_window_when_next_is_later():
    units = [SpeechUnit(0.0, 1.0, "a"), SpeechUnit(5.0, 6.0, "b")]

    assert available_time(units, 0) == 1.0


def test_fitting_clip_untouched(fake_audio, workspace):
    clip = _clip(fake_audio, workspace, 0, 0.0, 2.0, 1.8)

    [out] = resolve_timing([clip], workspace)

    assert out.was_speed_adjusted is False
    assert out.effective_duration == 1.8
    assert out.effective_path == clip.path
    assert out.applied_factor == 1.0
    assert fake_audio.stretches == []


def test_compression_within_ceiling(fake_audio, workspace):
    """A 3s clip with 2s before the next unit is compressed by 1.5x."""
    clips = [
        _clip(fake_audio, workspace, 0, 0.0, 2.5, 3.0),
        _clip(fake_audio, workspace, 1, 2.0, 4.0, 1.0),
    ]

    first, second = resolve_timing(clips, workspace)

    assert first.was_speed_adjusted is True
    assert first.applied_factor == pytest.approx(1.5)
    assert first.effective_duration <= first.available_time + 1e-6
    assert first.effective_path == workspace.adjusted_path(0)
    assert first.exact_start == 0.0
    assert second.was_speed_adjusted is False


def test_compression_capped_at_ceiling(fake_audio, workspace):
    """4s of speech for a 1s budget is only sped up 3x and overruns."""
    clips = [
        _clip(fake_audio, workspace, 0, 0.0, 1.0, 4.0),
        _clip(fake_audio, workspace, 1, 1.2, 3.0, 1.0),
    ]

    first, _ = resolve_timing(clips, workspace, max_speedup=3.0)

    assert first.available_time == 1.0
    assert first.applied_factor == 3.0
    assert fake_audio.stretches[0][1] == 3.0
    assert first.was_speed_adjusted is True
    assert first.effective_duration == pytest.approx(4.0 / 3.0)


def test_effective_duration_is_probed(fake_audio, workspace, monkeypatch):
    """The re-probed length is used, not the arithmetic target."""
    from dubtrack import timeline

    def imprecise(in_wav, out_wav, ratio):
        fake_audio.write(out_wav, fake_audio.durations[in_wav] / ratio + 0.04)

    monkeypatch.setattr(timeline, "time_stretch_wav_ffmpeg", imprecise)
    clip = _clip(fake_audio, workspace, 0, 0.0, 1.0, 2.0)

    [out] = resolve_timing([clip], workspace)

    assert out.effective_duration == pytest.approx(1.04)


def test_compression_failure_falls_back(fake_audio, workspace):
    fake_audio.fail_stretch = True
    clip = _clip(fake_audio, workspace, 0, 0.0, 1.0, 2.0)

    [out] = resolve_timing([clip], workspace)

    assert out.was_speed_adjusted is False
    assert out.effective_path == clip.path
    assert out.effective_duration == 2.0


def test_clips_resolved_in_time_order(fake_audio, workspace):
    """Budgets follow start times, not the order clips were handed in."""
    late = _clip(fake_audio, workspace, 1, 2.0, 4.0, 1.0)
    early = _clip(fake_audio, workspace, 0, 0.0, 5.0, 1.5)

    out = resolve_timing([late, early], workspace)

    assert [a.index for a in out] == [0, 1]
    assert out[0].available_time == 2.0
