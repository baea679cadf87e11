"""
Translation of speech units with GPT, mapped back onto the original timeline.
"""

import json
import logging
from typing import Any

from openai import OpenAI

from .errors import IncompleteTranslation
from .models import SpeechUnit

logger = logging.getLogger("dubtrack")


def get_language_name(language_code: str) -> str:
    """Get human-readable language name from language code."""
    language_names = {
        "ru": "Russian",
        "de": "German",
        "fr": "French",
        "es": "Spanish",
        "it": "Italian",
        "pt": "Portuguese",
        "ja": "Japanese",
        "ko": "Korean",
        "zh": "Chinese",
        "ar": "Arabic",
        "hi": "Hindi",
        "en": "English",
        "ka": "Georgian",
        "uk": "Ukrainian",
        "pl": "Polish",
        "nl": "Dutch",
        "sv": "Swedish",
        "tr": "Turkish",
        "he": "Hebrew",
        "vi": "Vietnamese",
    }
    return language_names.get(language_code.lower(), language_code.upper())


def _entry_index(value: Any) -> int | None:
    """Index of a translation entry; only integers or digit strings count."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def map_translations(
    units: list[SpeechUnit],
    translations: list[dict[str, Any]],
    *,
    min_coverage: float = 0.8,
) -> list[SpeechUnit]:
    """
    Attach translated text to the units it was produced for, by explicit index.

    The model may reorder, omit or repeat indices:
    - the first entry for an index wins, later duplicates are ignored,
    - indices outside [0, len(units)) and blank texts are ignored,
    - units without a translation are dropped.
    The result is sorted by start time. Raises IncompleteTranslation (with the
    partial result attached) when fewer than ``min_coverage`` of the units
    were mapped.
    """
    used: set[int] = set()
    result: list[SpeechUnit] = []
    for entry in translations:
        if not isinstance(entry, dict):
            continue
        idx = _entry_index(entry.get("index"))
        if idx is None:
            continue
        text = str(entry.get("text") or "").strip()
        if idx < 0 or idx >= len(units) or idx in used or not text:
            continue
        used.add(idx)
        src = units[idx]
        result.append(SpeechUnit(start=src.start, end=src.end, text=text))

    result.sort(key=lambda u: u.start)

    dropped = len(units) - len(result)
    if dropped:
        logger.debug("Dropped %d units without translation", dropped)
    if units and len(result) < min_coverage * len(units):
        raise IncompleteTranslation(result, expected=len(units))
    return result


def _parse_json_array(content: str) -> list[Any]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        start = content.find("[")
        end = content.rfind("]")
        if start == -1 or end == -1:
            raise ValueError("Model did not return a JSON array") from None
        data = json.loads(content[start : end + 1])
    if isinstance(data, dict):
        # {"translations": [...]} style replies
        data = next((v for v in data.values() if isinstance(v, list)), [])
    if not isinstance(data, list):
        raise ValueError("Model did not return a JSON array")
    return data


def translate_units(
    client: OpenAI,
    units: list[SpeechUnit],
    *,
    target_language: str = "ka",
    source_language: str | None = None,
    model: str = "gpt-4o-mini",
    batch_size: int = 40,
) -> list[dict[str, Any]]:
    """
    Translate units in batches. Returns raw ``{"index", "text"}`` entries, with
    indices relative to ``units``; feed them to map_translations().
    """
    if client is None:
        raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    target = get_language_name(target_language)
    source = get_language_name(source_language) if source_language else "the source language"
    system = (
        "You are a professional translator for voice-over scripts. "
        "Keep translations natural, conversational and about as long as the original "
        "so they can be spoken in the same time."
    )

    entries: list[dict[str, Any]] = []
    for b in range(0, len(units), batch_size):
        batch = units[b : b + batch_size]
        numbered = "\n".join(f"{b + j}: {u.text}" for j, u in enumerate(batch))
        prompt = f"""Translate the following numbered segments from {source} to {target}.
Each line starts with the segment number followed by the text.
Return ONLY a JSON array of objects with "index" (the segment number) and "text" (the translation),
one object per segment, e.g. [{{"index": {b}, "text": "..."}}].

Segments:
{numbered}"""
        try:
            logger.info(
                "Translating batch %d (%d units) to %s …", b // batch_size + 1, len(batch), target
            )
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.1,
            )
            content = response.choices[0].message.content or ""
            entries.extend(_parse_json_array(content))
        except Exception as e:
            logger.error("Batch translation failed (units %d-%d): %s", b, b + len(batch) - 1, e)

    logger.info("Translation returned %d entries for %d units", len(entries), len(units))
    return entries
