"""
Tests for the compositor and its ffmpeg filter graph.
"""

from pathlib import Path

import pytest

from dubtrack.compositor import composite
from dubtrack.config import LoudnessTarget
from dubtrack.errors import CompositeFailure, NoUsableSegments
from dubtrack.io_ffmpeg import atempo_chain, build_mix_filter
from dubtrack.models import AdjustedClip, SpeechUnit


def _adjusted(fake_audio, workspace, index, start, duration, adjusted=False):
    original = workspace.clip_path(index)
    fake_audio.write(original, duration * 2 if adjusted else duration)
    effective = original
    if adjusted:
        effective = workspace.adjusted_path(index)
        fake_audio.write(effective, duration)
    return AdjustedClip(
        unit=SpeechUnit(start, start + duration, f"u{index}"),
        index=index,
        original_path=original,
        effective_path=effective,
        effective_duration=duration,
        was_speed_adjusted=adjusted,
        available_time=duration,
        applied_factor=2.0 if adjusted else 1.0,
    )


def test_build_mix_filter():
    filt = build_mix_filter([0, 1500])

    assert filt == (
        "[0]adelay=delays=0:all=1[a0];"
        "[1]adelay=delays=1500:all=1[a1];"
        "[a0][a1]amix=inputs=2:duration=longest:dropout_transition=0:normalize=0:weights=1 1[out]"
    )


def test_atempo_chain_stays_in_safe_range():
    assert atempo_chain(1.5) == [1.5]
    steps = atempo_chain(3.0)
    assert steps == [2.0, 1.5]
    assert all(0.5 <= s <= 2.0 for s in atempo_chain(7.3))
    product = 1.0
    for s in atempo_chain(7.3):
        product *= s
    assert product == pytest.approx(7.3)


def test_composite_places_clips_at_anchors(fake_audio, workspace, tmp_path):
    clips = [
        _adjusted(fake_audio, workspace, 1, 2.0049, 1.0),
        _adjusted(fake_audio, workspace, 0, 0.0, 1.5),
    ]
    out = str(tmp_path / "out" / "dub.mp3")

    track = composite(clips, 10.0, out, workspace)

    mix = fake_audio.mixes[0]
    assert mix["delays_ms"] == [0, 2004]
    assert mix["inputs"] == [workspace.clip_path(0), workspace.clip_path(1)]
    assert mix["total"] == 10.0
    assert track.clip_count == 2
    assert track.normalized is True
    assert fake_audio.normalized == [LoudnessTarget().filter()]
    assert fake_audio.normalized[0] == "loudnorm=I=-14:TP=-1:LRA=7"
    assert Path(out).exists()


def test_composite_never_exceeds_video_duration(fake_audio, workspace, tmp_path):
    clips = [_adjusted(fake_audio, workspace, 0, 9.0, 3.0)]

    track = composite(clips, 10.0, str(tmp_path / "dub.mp3"), workspace)

    assert track.duration <= 10.0


def test_no_clips_is_fatal(fake_audio, workspace, tmp_path):
    out = tmp_path / "dub.mp3"

    with pytest.raises(NoUsableSegments) as excinfo:
        composite([], 10.0, str(out), workspace, expected_units=4)

    assert excinfo.value.fatal
    assert excinfo.value.expected == 4
    assert not out.exists()
    assert fake_audio.mixes == []


def test_cleanup_after_success(fake_audio, workspace, tmp_path):
    """Adjusted clips and the filter script go away; originals stay with the run."""
    clips = [
        _adjusted(fake_audio, workspace, 0, 0.0, 1.0, adjusted=True),
        _adjusted(fake_audio, workspace, 1, 2.0, 1.0),
    ]

    composite(clips, 5.0, str(tmp_path / "dub.mp3"), workspace)

    assert not Path(workspace.adjusted_path(0)).exists()
    assert not Path(fake_audio.mixes[0]["filter_script"]).exists()
    assert Path(workspace.clip_path(0)).exists()
    assert Path(workspace.clip_path(1)).exists()


def test_mix_failure_is_fatal_and_cleans_up(fake_audio, workspace, tmp_path):
    fake_audio.fail_mix = True
    clips = [_adjusted(fake_audio, workspace, 0, 0.0, 1.0, adjusted=True)]
    out = tmp_path / "dub.mp3"

    with pytest.raises(CompositeFailure):
        composite(clips, 5.0, str(out), workspace)

    assert not out.exists()
    assert not Path(workspace.adjusted_path(0)).exists()
    assert not Path(fake_audio.mixes[0]["filter_script"]).exists()


def test_normalization_failure_keeps_mix(fake_audio, workspace, tmp_path):
    fake_audio.fail_normalize = True
    out = tmp_path / "dub.mp3"

    track = composite([_adjusted(fake_audio, workspace, 0, 0.0, 1.0)], 5.0, str(out), workspace)

    assert track.normalized is False
    assert out.exists()


def test_unknown_duration_uses_last_clip_end(fake_audio, workspace, tmp_path):
    clips = [_adjusted(fake_audio, workspace, 0, 1.0, 2.0)]

    composite(clips, 0.0, str(tmp_path / "dub.mp3"), workspace)

    assert fake_audio.mixes[0]["total"] == 3.0


def test_final_probe_failure_is_composite_failure(fake_audio, workspace, tmp_path, monkeypatch):
    from dubtrack import compositor

    def broken_probe(path):
        raise RuntimeError("ffprobe failed with code 1")

    monkeypatch.setattr(compositor, "probe_duration", broken_probe)

    with pytest.raises(CompositeFailure):
        composite(
            [_adjusted(fake_audio, workspace, 0, 0.0, 1.0)], 5.0, str(tmp_path / "d.mp3"), workspace
        )
