"""
Caption fragment parsing and merging into speakable units.
"""

import logging
from typing import Any

from .models import CaptionFragment, SpeechUnit

logger = logging.getLogger("dubtrack")


def parse_json3(payload: dict[str, Any]) -> list[CaptionFragment]:
    """Parse YouTube json3 caption events into fragments."""
    fragments: list[CaptionFragment] = []
    for event in payload.get("events") or []:
        segs = event.get("segs")
        if not segs or event.get("tStartMs") is None:
            continue
        text = "".join(str(s.get("utf8", "")) for s in segs).strip()
        if not text:
            continue
        start_ms = int(event["tStartMs"])
        dur_ms = int(event.get("dDurationMs") or 0)
        fragments.append(
            CaptionFragment(start=start_ms / 1000.0, end=(start_ms + dur_ms) / 1000.0, text=text)
        )
    return fragments


def merge_fragments(
    fragments: list[CaptionFragment],
    *,
    max_gap: float = 0.3,
    max_span: float = 10.0,
    min_span: float = 0.5,
) -> list[SpeechUnit]:
    """
    Coalesce consecutive caption fragments into units long enough to speak:
    - a fragment joins the open unit when the pause before it is < max_gap
      AND the merged unit would stay shorter than max_span,
    - a fragment starting at or before the open unit's start always joins it,
    - otherwise it opens a new unit.
    Blank fragments are dropped. Units never overlap and always have start < end.
    """
    kept = [f for f in fragments if f.text and f.text.strip()]
    kept.sort(key=lambda f: f.start)

    units: list[SpeechUnit] = []
    cur: SpeechUnit | None = None
    for frag in kept:
        text = " ".join(frag.text.split())
        if cur is None:
            cur = SpeechUnit(start=frag.start, end=frag.end, text=text)
            continue
        gap = frag.start - cur.end
        new_end = max(cur.end, frag.end)
        if frag.start <= cur.start or (gap < max_gap and new_end - cur.start < max_span):
            cur.end = new_end
            cur.text = f"{cur.text} {text}"
        else:
            units.append(cur)
            cur = SpeechUnit(start=frag.start, end=frag.end, text=text)
    if cur is not None:
        units.append(cur)

    for i, unit in enumerate(units):
        nxt = units[i + 1].start if i + 1 < len(units) else None
        # overlapping captions: the next unit's start wins
        if nxt is not None and unit.end > nxt:
            unit.end = nxt
        if unit.end <= unit.start:
            unit.end = unit.start + min_span if nxt is None else min(nxt, unit.start + min_span)

    logger.info("Merged %d caption fragments into %d units", len(kept), len(units))
    return units
