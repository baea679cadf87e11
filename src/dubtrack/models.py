"""
Data models for the dub track pipeline.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CaptionFragment:
    """A raw caption fragment as delivered by the caption source."""

    start: float  # seconds
    end: float  # seconds
    text: str


@dataclass
class SpeechUnit:
    """A merged (and possibly translated) unit of speech.

    ``start``/``end`` always come from the original caption timeline.
    """

    start: float
    end: float
    text: str

    @property
    def window(self) -> float:
        return self.end - self.start


@dataclass
class SynthesizedClip:
    """Speech audio written for one unit."""

    unit: SpeechUnit
    index: int
    path: str
    measured_duration: float  # seconds, probed


@dataclass
class AdjustedClip:
    """A clip after timing resolution, ready to be placed on the timeline."""

    unit: SpeechUnit
    index: int
    original_path: str
    effective_path: str
    effective_duration: float
    was_speed_adjusted: bool
    available_time: float
    applied_factor: float = 1.0

    @property
    def exact_start(self) -> float:
        return self.unit.start


@dataclass
class VideoInfo:
    """Metadata of the source video."""

    video_id: str
    title: str | None
    thumbnail: str | None
    total_duration: float  # seconds


@dataclass
class DubTrack:
    """The composited dub track."""

    path: str
    duration: float
    clip_count: int
    adjusted_count: int
    normalized: bool


@dataclass
class TrackRecord:
    """A persisted dub track with its sidecar metadata."""

    video_id: str
    audio_path: str
    title: str | None
    thumbnail: str | None
    total_duration: float | None
    created_at: str
