"""
Tests for the command-line entry point.
"""

import pytest

from dubtrack import cli
from dubtrack.models import VideoInfo
from dubtrack.store import TrackStore


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


@pytest.fixture
def srt_file(tmp_path):
    p = tmp_path / "talk.srt"
    p.write_text("1\n00:00:00,000 --> 00:00:01,000\nHello\n", encoding="utf-8")
    return str(p)


def test_missing_api_key_exits_with_error(monkeypatch, tmp_path, srt_file, caplog):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    code = cli.main(
        ["--captions-srt", srt_file, "--duration", "1", "--outdir", str(tmp_path / "dubs")]
    )

    assert code == 1
    assert "OPENAI_API_KEY is not set" in caplog.text


def test_missing_duration_exits_with_error(monkeypatch, tmp_path, srt_file, caplog):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    code = cli.main(["--captions-srt", srt_file, "--outdir", str(tmp_path / "dubs")])

    assert code == 1
    assert "--duration" in caplog.text


def test_missing_srt_exits_with_error(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    code = cli.main(
        [
            "--captions-srt",
            str(tmp_path / "nope.srt"),
            "--duration",
            "5",
            "--outdir",
            str(tmp_path / "dubs"),
        ]
    )

    assert code == 1


def test_list_and_delete(tmp_path, capsys):
    outdir = tmp_path / "dubs"
    store = TrackStore(str(outdir))
    produced = tmp_path / "mix.mp3"
    produced.write_bytes(b"ID3")
    info = VideoInfo(video_id="abc", title="Talk", thumbnail=None, total_duration=3.0)
    store.save("abc", str(produced), info)

    assert cli.main(["--list", "--outdir", str(outdir)]) == 0
    assert "abc" in capsys.readouterr().out

    assert cli.main(["--delete", "abc", "--outdir", str(outdir)]) == 0
    assert cli.main(["--delete", "abc", "--outdir", str(outdir)]) == 1
