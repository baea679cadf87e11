"""
Persistence of finished dub tracks with a small metadata sidecar.
"""

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from .models import SpeechUnit, TrackRecord, VideoInfo
from .srt_utils import write_srt

logger = logging.getLogger("dubtrack")

TRACK_SUFFIX = "_dub.mp3"
META_SUFFIX = "_meta.json"
SUBS_SUFFIX = "_subs.srt"


class TrackStore:
    """Directory of ``<video_id>_dub.mp3`` files and their ``_meta.json`` sidecars."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def track_path(self, video_id: str) -> str:
        return str(self.root / f"{video_id}{TRACK_SUFFIX}")

    def meta_path(self, video_id: str) -> str:
        return str(self.root / f"{video_id}{META_SUFFIX}")

    def subs_path(self, video_id: str) -> str:
        return str(self.root / f"{video_id}{SUBS_SUFFIX}")

    def save(
        self,
        video_id: str,
        produced_path: str,
        info: VideoInfo,
        *,
        units: list[SpeechUnit] | None = None,
    ) -> TrackRecord:
        """Move a finished track into the store and write its sidecars.

        When ``units`` are given the translated subtitles are saved as
        ``<video_id>_subs.srt`` next to the track.
        """
        target = self.track_path(video_id)
        if os.path.abspath(produced_path) != os.path.abspath(target):
            shutil.move(produced_path, target)
        created_at = datetime.now(timezone.utc).isoformat()
        meta = {
            "title": info.title,
            "thumbnail": info.thumbnail,
            "totalDuration": info.total_duration,
            "createdAt": created_at,
        }
        Path(self.meta_path(video_id)).write_text(
            json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        if units:
            write_srt(units, self.subs_path(video_id))
        logger.info("Saved dub track -> %s", target)
        return TrackRecord(
            video_id=video_id,
            audio_path=target,
            title=info.title,
            thumbnail=info.thumbnail,
            total_duration=info.total_duration,
            created_at=created_at,
        )

    def get(self, video_id: str) -> TrackRecord | None:
        audio = Path(self.track_path(video_id))
        if not audio.exists():
            return None
        meta: dict = {}
        meta_file = Path(self.meta_path(video_id))
        if meta_file.exists():
            try:
                meta = json.loads(meta_file.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Unreadable metadata for %s: %s", video_id, e)
        created = meta.get("createdAt") or datetime.fromtimestamp(
            audio.stat().st_mtime, tz=timezone.utc
        ).isoformat()
        return TrackRecord(
            video_id=video_id,
            audio_path=str(audio),
            title=meta.get("title"),
            thumbnail=meta.get("thumbnail"),
            total_duration=meta.get("totalDuration"),
            created_at=created,
        )

    def list_tracks(self) -> list[TrackRecord]:
        """All stored tracks, newest first."""
        records = []
        for audio in self.root.glob(f"*{TRACK_SUFFIX}"):
            record = self.get(audio.name[: -len(TRACK_SUFFIX)])
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def delete(self, video_id: str) -> list[str]:
        """Remove the track and sidecars of ``video_id``. Returns removed names."""
        removed: list[str] = []
        names = [f"{video_id}{suffix}" for suffix in (TRACK_SUFFIX, META_SUFFIX, SUBS_SUFFIX)]
        for p in (self.root / name for name in names):
            if not p.exists():
                continue
            try:
                p.unlink()
                removed.append(p.name)
            except OSError as e:
                logger.error("Failed to delete %s: %s", p.name, e)
        return removed
