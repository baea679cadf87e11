"""
Command-line interface for the dub track pipeline.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from openai import OpenAI

from .config import DubSettings
from .errors import DubError
from .io_ffmpeg import probe_duration
from .models import VideoInfo
from .pipeline import DubPipeline, make_openai_translator
from .srt_utils import parse_srt
from .store import TrackStore
from .tts import make_synth
from .workspace import CancelToken, RunWorkspace

logger = logging.getLogger("dubtrack")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Timed dub track synthesis")

    # What to do
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("--url", help="YouTube URL to dub")
    mode.add_argument(
        "--captions-srt", help="Dub from a local caption file instead of fetching captions"
    )
    mode.add_argument("--list", action="store_true", help="List stored dub tracks and exit")
    mode.add_argument("--delete", metavar="VIDEO_ID", help="Delete a stored dub track and exit")

    # Local captions
    ap.add_argument("--video-id", default=None, help="Identifier for --captions-srt runs")
    ap.add_argument("--title", default=None, help="Title stored with --captions-srt runs")
    ap.add_argument(
        "--duration", type=float, default=None, help="Total video duration in seconds"
    )
    ap.add_argument(
        "--duration-from",
        default=None,
        help="Probe total duration from this media file (for --captions-srt)",
    )

    # Directories
    ap.add_argument("--workdir", default=None, help="Scratch directory for runs")
    ap.add_argument("--outdir", default=None, help="Directory of finished dub tracks")
    ap.add_argument("--keep-workdir", action="store_true", help="Keep per-run scratch files")

    # Translation
    ap.add_argument("--target-language", default=None, help="Target language code (e.g. 'ka')")
    ap.add_argument("--translation-model", default=None)
    ap.add_argument(
        "--strict-translation",
        action="store_true",
        help="Abort when the translation misses too many units",
    )

    # Transcription fallback
    ap.add_argument(
        "--stt",
        choices=["openai", "local"],
        default=None,
        help="Transcriber used when a video has no captions",
    )

    # TTS
    ap.add_argument("--tts-provider", choices=["edge", "openai", "elevenlabs"], default=None)
    ap.add_argument("--tts-model", default=None, help="Used when --tts-provider=openai")
    ap.add_argument("--voice", default=None, help="Voice name / ElevenLabs voice_id")
    ap.add_argument(
        "--voice-instructions",
        default=os.getenv("OPENAI_TTS_INSTRUCTIONS"),
        help="Optional TTS style instructions for OpenAI (not read aloud)",
    )
    ap.add_argument("--elevenlabs-model-id", default="eleven_multilingual_v2")

    # Timing
    ap.add_argument("--max-speedup", type=float, default=None, help="Speed ceiling (default 3.0)")
    ap.add_argument(
        "--min-available", type=float, default=None, help="Minimum time budget per unit (sec)"
    )
    ap.add_argument("--merge-gap", type=float, default=None, help="Max pause merged (sec)")
    ap.add_argument("--merge-span", type=float, default=None, help="Max merged unit span (sec)")

    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return ap.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> DubSettings:
    """Environment settings with command line overrides applied."""
    settings = DubSettings.from_env()
    overrides = {
        "work_dir": args.workdir,
        "output_dir": args.outdir,
        "target_language": args.target_language,
        "translation_model": args.translation_model,
        "stt_backend": args.stt,
        "tts_provider": args.tts_provider,
        "tts_model": args.tts_model,
        "voice": args.voice,
        "max_speedup": args.max_speedup,
        "min_available": args.min_available,
        "merge_gap": args.merge_gap,
        "merge_span": args.merge_span,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    if args.keep_workdir:
        settings.keep_workdir = True
    if args.strict_translation:
        settings.strict_translation = True
    return settings


def _build_pipeline(args: argparse.Namespace, settings: DubSettings, store: TrackStore) -> DubPipeline:
    openai_key = os.getenv("OPENAI_API_KEY")
    if not openai_key:
        raise RuntimeError("OPENAI_API_KEY is not set. Put it in .env or environment.")
    client = OpenAI(api_key=openai_key)
    voice = settings.voice
    if voice is None and settings.tts_provider == "elevenlabs":
        voice = os.getenv("ELEVENLABS_VOICE_ID")
    synth = make_synth(
        settings.tts_provider,
        voice=voice,
        openai_client=client,
        openai_model=settings.tts_model,
        instructions=args.voice_instructions,
        elevenlabs_key=os.getenv("ELEVENLABS_API_KEY"),
        elevenlabs_model=args.elevenlabs_model_id,
    )
    return DubPipeline(
        settings, synth, make_openai_translator(client, settings), store, openai_client=client
    )


def _dub_local(
    args: argparse.Namespace, pipeline: DubPipeline, store: TrackStore, cancel: CancelToken
) -> None:
    duration = args.duration
    if duration is None and args.duration_from:
        duration = probe_duration(args.duration_from)
    if not duration:
        raise RuntimeError("--duration or --duration-from is required with --captions-srt")
    if not Path(args.captions_srt).is_file():
        raise RuntimeError(f"SRT not found: {args.captions_srt}")
    video_id = args.video_id or Path(args.captions_srt).stem
    info = VideoInfo(video_id=video_id, title=args.title, thumbnail=None, total_duration=duration)
    fragments = parse_srt(args.captions_srt)
    logger.info("Loaded SRT -> %s (%d fragments)", args.captions_srt, len(fragments))
    settings = pipeline.settings
    with RunWorkspace(settings.work_dir, video_id, keep=settings.keep_workdir) as ws:
        track, units = pipeline.dub_fragments(fragments, video_id, duration, ws, cancel)
        record = store.save(video_id, track.path, info, units=units)
    logger.info("Done (dubbed) -> %s", record.audio_path)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.verbose)
    settings = settings_from_args(args)
    store = TrackStore(settings.output_dir)

    if args.list:
        for rec in store.list_tracks():
            print(f"{rec.video_id}\t{rec.created_at}\t{rec.title or '-'}\t{rec.audio_path}")
        return 0
    if args.delete:
        removed = store.delete(args.delete)
        logger.info("Deleted %d files for %s", len(removed), args.delete)
        return 0 if removed else 1

    cancel = CancelToken()
    try:
        pipeline = _build_pipeline(args, settings, store)
        if args.captions_srt:
            _dub_local(args, pipeline, store, cancel)
        else:
            record = pipeline.run(args.url, cancel=cancel)
            logger.info("Done (dubbed) -> %s", record.audio_path)
    except KeyboardInterrupt:
        cancel.cancel()
        logger.error("Interrupted; scratch files discarded")
        return 130
    except DubError as e:
        logger.error("Dubbing failed: %s", e)
        return 1
    except RuntimeError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
