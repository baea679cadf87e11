"""
End-to-end dubbing run: captions -> units -> translation -> speech -> track.
"""

import logging
from collections.abc import Callable
from typing import Any

from openai import OpenAI

from . import source as video_source
from .captions import merge_fragments
from .compositor import composite
from .config import DubSettings
from .errors import IncompleteTranslation, NoCaptionsAvailable
from .io_ffmpeg import extract_audio
from .models import CaptionFragment, DubTrack, SpeechUnit, TrackRecord
from .store import TrackStore
from .stt import transcribe_local_faster_whisper, transcribe_whisper_api
from .synth import synthesize_units
from .timeline import resolve_timing
from .translation import map_translations, translate_units
from .tts import SynthFunc
from .workspace import CancelToken, RunWorkspace

logger = logging.getLogger("dubtrack")

Translator = Callable[[list[SpeechUnit]], list[dict[str, Any]]]


def dub_units(
    units: list[SpeechUnit],
    total_duration: float,
    out_path: str,
    workspace: RunWorkspace,
    synth_func: SynthFunc,
    settings: DubSettings,
    cancel: CancelToken | None = None,
) -> DubTrack:
    """Synthesize, fit and mix already translated units into ``out_path``."""
    clips = synthesize_units(
        units,
        workspace,
        synth_func,
        pacing_delay=settings.pacing_delay,
        retry_backoff=settings.retry_backoff,
        cancel=cancel,
    )
    logger.info("Synthesized %d of %d units", len(clips), len(units))
    adjusted = resolve_timing(
        clips,
        workspace,
        max_speedup=settings.max_speedup,
        floor=settings.min_available,
        cancel=cancel,
    )
    if cancel is not None:
        cancel.check("composite")
    return composite(
        adjusted,
        total_duration,
        out_path,
        workspace,
        loudness=settings.loudness,
        sample_rate=settings.sample_rate,
        expected_units=len(units),
    )


def apply_translation(
    units: list[SpeechUnit], entries: list[dict[str, Any]], settings: DubSettings
) -> list[SpeechUnit]:
    """Map translator output onto units, degrading on partial coverage."""
    try:
        return map_translations(units, entries, min_coverage=settings.min_translation_coverage)
    except IncompleteTranslation as e:
        if settings.strict_translation:
            raise
        logger.warning("%s; continuing with %d units", e, e.mapped)
        return e.units


def make_openai_translator(client: OpenAI, settings: DubSettings) -> Translator:
    """Translator backed by OpenAI chat completions."""

    def _translate(units: list[SpeechUnit]) -> list[dict[str, Any]]:
        return translate_units(
            client,
            units,
            target_language=settings.target_language,
            model=settings.translation_model,
            batch_size=settings.translation_batch_size,
        )

    return _translate


class DubPipeline:
    """One dubbing run per call to run()."""

    def __init__(
        self,
        settings: DubSettings,
        synth_func: SynthFunc,
        translator: Translator,
        store: TrackStore,
        *,
        openai_client: OpenAI | None = None,
    ) -> None:
        self.settings = settings
        self.synth_func = synth_func
        self.translator = translator
        self.store = store
        self.openai_client = openai_client

    def _fallback_fragments(self, url: str, workspace: RunWorkspace) -> list[CaptionFragment]:
        local = self.settings.stt_backend == "local"
        if not local and self.openai_client is None:
            raise NoCaptionsAvailable("No captions and no OpenAI client for transcription")
        logger.info("No captions available, transcribing audio instead")
        mp3 = video_source.download_audio(url, str(workspace.path))
        wav = workspace.scratch_path("source_16k.wav")
        extract_audio(str(mp3), wav)
        if local:
            return transcribe_local_faster_whisper(wav)
        return transcribe_whisper_api(self.openai_client, wav)

    def dub_fragments(
        self,
        fragments: list[CaptionFragment],
        video_id: str,
        total_duration: float,
        workspace: RunWorkspace,
        cancel: CancelToken | None = None,
    ) -> tuple[DubTrack, list[SpeechUnit]]:
        """Merge, translate and dub caption fragments. Returns the track and the spoken units."""
        s = self.settings
        units = merge_fragments(fragments, max_gap=s.merge_gap, max_span=s.merge_span)
        if cancel is not None:
            cancel.check("translate")
        translated = apply_translation(units, self.translator(units), s)
        logger.info("Translated %d of %d units", len(translated), len(units))
        out_path = workspace.scratch_path(f"{video_id}_mix.mp3")
        track = dub_units(translated, total_duration, out_path, workspace, self.synth_func, s, cancel)
        return track, translated

    def run(self, url: str, cancel: CancelToken | None = None) -> TrackRecord:
        """Dub the video at ``url`` and persist the result."""
        info = video_source.fetch(url)
        logger.info("Dubbing %s (%s, %.1fs)", info.video_id, info.title, info.total_duration)
        with RunWorkspace(self.settings.work_dir, info.video_id, keep=self.settings.keep_workdir) as ws:
            try:
                fragments = video_source.fetch_captions(
                    url, str(ws.path), self.settings.caption_languages
                )
            except NoCaptionsAvailable as e:
                logger.warning("%s", e)
                fragments = self._fallback_fragments(url, ws)
            track, units = self.dub_fragments(
                fragments, info.video_id, info.total_duration, ws, cancel
            )
            return self.store.save(info.video_id, track.path, info, units=units)
