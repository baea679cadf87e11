"""
Video metadata, captions and audio from YouTube via yt-dlp.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from .captions import parse_json3
from .errors import AcquisitionFailure, NoCaptionsAvailable
from .models import CaptionFragment, VideoInfo

logger = logging.getLogger("dubtrack")

_YOUTUBE_URL = re.compile(
    r"(?ix)"
    r"(?:youtu\.be/|youtube\.com/)"
    r"(?:watch\?(?:.*&)?v=|shorts/|embed/|v/|live/)?"
    r"(?P<id>[A-Za-z0-9_-]{11})"
)
_YOUTUBE_ID_ONLY = re.compile(r"^(?P<id>[A-Za-z0-9_-]{11})$")

_COMMON_YT_OPTS = {
    "quiet": True,
    "no_warnings": True,
    "noprogress": True,
    "retries": 3,
}


def extract_video_id(url: str) -> str:
    """Return the 11-character YouTube id of ``url``."""
    value = (url or "").strip()
    m = _YOUTUBE_URL.search(value) or _YOUTUBE_ID_ONLY.match(value)
    if not m:
        raise AcquisitionFailure(f"Invalid YouTube URL: {url!r}")
    return m.group("id")


def clean_url(url: str) -> str:
    """Canonical watch URL without tracking parameters."""
    return f"https://www.youtube.com/watch?v={extract_video_id(url)}"


def _extract(url: str, options: dict[str, Any], *, download: bool) -> dict[str, Any]:
    opts = dict(_COMMON_YT_OPTS)
    opts.update(options)
    try:
        with YoutubeDL(opts) as ydl:
            info = ydl.extract_info(url, download=download)
    except (DownloadError, ExtractorError) as e:
        raise AcquisitionFailure(f"yt-dlp failed for {url}: {e}") from e
    if not isinstance(info, dict):
        raise AcquisitionFailure(f"yt-dlp returned no info for {url}")
    return info


def fetch(url: str) -> VideoInfo:
    """Fetch title, thumbnail and duration of a video."""
    url = clean_url(url)
    info = _extract(url, {"skip_download": True}, download=False)
    duration = info.get("duration")
    if not isinstance(duration, (int, float)) or duration <= 0:
        raise AcquisitionFailure(f"Video duration unavailable for {url}")
    title = info.get("title")
    thumb = info.get("thumbnail")
    return VideoInfo(
        video_id=str(info.get("id") or extract_video_id(url)),
        title=title.strip() if isinstance(title, str) and title.strip() else None,
        thumbnail=thumb if isinstance(thumb, str) and thumb else None,
        total_duration=float(duration),
    )


def fetch_captions(
    url: str, workdir: str, languages: tuple[str, ...] = ("en.*", "en")
) -> list[CaptionFragment]:
    """
    Download manual or auto-generated captions in json3 format (precise
    timestamps) and parse them. Raises NoCaptionsAvailable if none exist.
    """
    url = clean_url(url)
    video_id = extract_video_id(url)
    out_dir = Path(workdir)
    out_dir.mkdir(parents=True, exist_ok=True)
    base = out_dir / f"{video_id}_subs"
    _extract(
        url,
        {
            "skip_download": True,
            "writesubtitles": True,
            "writeautomaticsub": True,
            "subtitleslangs": list(languages),
            "subtitlesformat": "json3",
            "outtmpl": str(base) + ".%(ext)s",
            "overwrites": True,
        },
        download=True,
    )

    candidates = sorted(out_dir.glob(f"{base.name}*.json3"))
    if not candidates:
        raise NoCaptionsAvailable(f"No captions found for {video_id}")
    sub_file = candidates[0]
    try:
        payload = json.loads(sub_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise AcquisitionFailure(f"Unreadable caption file {sub_file.name}: {e}") from e
    finally:
        for p in candidates:
            p.unlink(missing_ok=True)

    fragments = parse_json3(payload)
    if not fragments:
        raise NoCaptionsAvailable(f"Caption track for {video_id} is empty")
    logger.info("Loaded %d caption fragments from %s", len(fragments), sub_file.name)
    return fragments


def download_audio(url: str, workdir: str) -> Path:
    """Download the audio track as mp3 (used when no captions exist)."""
    url = clean_url(url)
    video_id = extract_video_id(url)
    out_dir = Path(workdir)
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / f"{video_id}.mp3"
    if target.exists():
        return target
    _extract(
        url,
        {
            "format": "bestaudio/best",
            "outtmpl": str(out_dir / video_id) + ".%(ext)s",
            "postprocessors": [
                {"key": "FFmpegExtractAudio", "preferredcodec": "mp3"},
            ],
        },
        download=True,
    )
    if not target.exists():
        raise AcquisitionFailure(f"Audio download produced no file for {video_id}")
    return target
