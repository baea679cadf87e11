"""
SRT parsing and writing.
"""

import logging
import re

from .models import CaptionFragment, SpeechUnit

logger = logging.getLogger("dubtrack")

_TS_RE = re.compile(r"(\d\d:\d\d:\d\d[,.]\d\d\d)\s+--\>\s+(\d\d:\d\d:\d\d[,.]\d\d\d)")


def format_ts(t: float) -> str:
    """Format seconds as an SRT timestamp."""
    total_ms = int(round(t * 1000))
    h, rem = divmod(total_ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms = divmod(rem, 1000)
    return f"{h:02}:{m:02}:{s:02},{ms:03}"


def parse_ts(ts: str) -> float:
    h, m, rest = ts.replace(".", ",").split(":")
    s, ms = rest.split(",")
    return int(h) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000.0


def write_srt(units: list[SpeechUnit], path: str) -> None:
    """Write units to an SRT file."""
    with open(path, "w", encoding="utf-8") as f:
        for i, u in enumerate(units, 1):
            f.write(f"{i}\n{format_ts(u.start)} --> {format_ts(u.end)}\n{u.text}\n\n")


def parse_srt(path: str) -> list[CaptionFragment]:
    """Parse an SRT file into caption fragments."""
    with open(path, encoding="utf-8-sig") as f:
        raw = f.read()

    blocks = re.split(r"\n\s*\n", raw.strip(), flags=re.M)
    out: list[CaptionFragment] = []
    for b in blocks:
        lines = [ln for ln in b.splitlines() if ln.strip()]
        if lines and re.match(r"^\d+$", lines[0].strip()):
            lines = lines[1:]
        if not lines:
            continue
        m = _TS_RE.match(lines[0].strip())
        if not m:
            logger.debug("Skipping SRT block without timing: %r", lines[0])
            continue
        text = " ".join(ln.strip() for ln in lines[1:])
        out.append(CaptionFragment(start=parse_ts(m.group(1)), end=parse_ts(m.group(2)), text=text))
    return out
