from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


TELEGRAM_MAX_MESSAGE_LEN = 3900
ELLIPSIS = "…"


def telegram_len(s: str) -> int:
    """Length as Telegram counts it: UTF-16 code units (astral emoji count twice)."""
    return len(s.encode("utf-16-le")) // 2


def _fit_line(line: str, budget: int) -> str:
    length = telegram_len(line)
    if length <= budget:
        return line
    logger.warning("Report line truncated to fit message size", length=length, budget=budget)

    keep = max(0, budget - telegram_len(ELLIPSIS))
    used = 0
    out: list[str] = []
    for ch in line:
        cost = telegram_len(ch)
        if used + cost > keep:
            break
        out.append(ch)
        used += cost
    return "".join(out) + ELLIPSIS


def split_report(text: str, caption: str, *, max_len: int = TELEGRAM_MAX_MESSAGE_LEN) -> list[str]:
    """
    Split a line-oriented report into messages of at most `max_len` UTF-16 units.

    Each message is the caption followed by whole report lines, every line
    introduced by a newline; the final line carries no trailing newline since
    Telegram trims it. Lines are never split across messages; a single line too
    long for any message is truncated. Empty input yields no messages.
    """
    if not (text or "").strip():
        return []

    caption = caption.rstrip("\n")
    max_len = int(max_len)
    # Every content line costs its own length plus the newline before it.
    budget = max_len - telegram_len(caption) - 1
    if budget < 1:
        raise ValueError(f"Caption of {telegram_len(caption)} units leaves no room within max_len={max_len}")

    segments: list[str] = []
    current: list[str] = []
    used = 0
    for raw_line in text.splitlines():
        line = _fit_line(raw_line, budget)
        cost = telegram_len(line) + 1
        if current and used + cost > budget + 1:
            segments.append("\n".join([caption, *current]))
            current = []
            used = 0
        current.append(line)
        used += cost

    if current:
        segments.append("\n".join([caption, *current]))
    return segments
