"""
Pipeline settings with environment overrides.
"""

import os
from dataclasses import dataclass, field, fields

ENV_PREFIX = "DUBTRACK_"


@dataclass
class LoudnessTarget:
    """EBU R128 loudnorm parameters."""

    integrated: float = -14.0  # LUFS
    true_peak: float = -1.0  # dBTP
    loudness_range: float = 7.0  # LU

    def filter(self) -> str:
        return (
            f"loudnorm=I={self.integrated:g}:TP={self.true_peak:g}:LRA={self.loudness_range:g}"
        )


@dataclass
class DubSettings:
    """All tunables of a dubbing run."""

    # Segment merger
    merge_gap: float = 0.3
    merge_span: float = 10.0
    # Timing resolver
    min_available: float = 0.5
    max_speedup: float = 3.0
    # Synthesizer pacing
    pacing_delay: float = 0.8
    retry_backoff: float = 2.0
    # Output
    sample_rate: int = 24000
    loudness: LoudnessTarget = field(default_factory=LoudnessTarget)
    # Translation
    target_language: str = "ka"
    translation_model: str = "gpt-4o-mini"
    translation_batch_size: int = 40
    min_translation_coverage: float = 0.8
    strict_translation: bool = False
    caption_languages: tuple[str, ...] = ("en.*", "en")
    stt_backend: str = "openai"
    # TTS
    tts_provider: str = "edge"
    tts_model: str = "gpt-4o-mini-tts"
    voice: str | None = None
    # Directories
    work_dir: str = ".work"
    output_dir: str = "dubs"
    keep_workdir: bool = False

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "DubSettings":
        """Build settings from DUBTRACK_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        settings = cls()
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            current = getattr(settings, f.name)
            if isinstance(current, bool):
                value = raw.strip().lower() in {"1", "true", "yes", "on"}
            elif isinstance(current, int):
                value = int(raw)
            elif isinstance(current, float):
                value = float(raw)
            elif isinstance(current, tuple):
                value = tuple(p.strip() for p in raw.split(",") if p.strip())
            elif isinstance(current, LoudnessTarget):
                continue
            else:
                value = raw
            setattr(settings, f.name, value)

        lufs = env.get(ENV_PREFIX + "LOUDNESS_I")
        if lufs:
            settings.loudness.integrated = float(lufs)
        tp = env.get(ENV_PREFIX + "LOUDNESS_TP")
        if tp:
            settings.loudness.true_peak = float(tp)
        lra = env.get(ENV_PREFIX + "LOUDNESS_LRA")
        if lra:
            settings.loudness.loudness_range = float(lra)
        return settings
