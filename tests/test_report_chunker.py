from __future__ import annotations

import pytest

from blockwatch.chunker import TELEGRAM_MAX_MESSAGE_LEN, split_report, telegram_len
from blockwatch.dispatcher import REPORT_CAPTION

CAPTION = "📋 Report"


def _content_lines(segments: list[str], caption: str = CAPTION) -> list[str]:
    lines: list[str] = []
    for seg in segments:
        head, *rest = seg.split("\n")
        assert head == caption
        assert rest, "segment without content lines"
        lines.extend(rest)
    return lines


@pytest.mark.parametrize("text", ["", "   ", "\n\n"])
def test_empty_report_produces_no_segments(text: str) -> None:
    assert split_report(text, CAPTION) == []


def test_short_report_is_one_segment() -> None:
    assert split_report("a.com: ✅ Not Blocked", CAPTION) == [f"{CAPTION}\na.com: ✅ Not Blocked"]


@pytest.mark.parametrize("max_len", [45, 64, 100, 500])
def test_segments_respect_limit_and_keep_every_line(max_len: int) -> None:
    lines = [f"domain-{i}.example: {'🚫 BLOCKED' if i % 3 else '✅ Not Blocked'}" for i in range(200)]
    segments = split_report("\n".join(lines), CAPTION, max_len=max_len)

    assert len(segments) > 1
    assert all(telegram_len(s) <= max_len for s in segments)
    assert _content_lines(segments) == lines


def test_segments_fill_up_to_limit() -> None:
    # Caption (9 units, the emoji counts twice) + three 9-char lines with their newlines = 39.
    segments = split_report("\n".join(["x" * 9] * 6), CAPTION, max_len=39)
    assert [telegram_len(s) for s in segments] == [39, 39]


def test_default_limit() -> None:
    text = "\n".join(["y" * 99] * 200)
    segments = split_report(text, CAPTION)
    assert all(telegram_len(s) <= TELEGRAM_MAX_MESSAGE_LEN for s in segments)
    assert len(_content_lines(segments)) == 200


def test_overlong_line_is_truncated_not_split() -> None:
    text = "short\n" + "z" * 200 + "\nafter"
    segments = split_report(text, CAPTION, max_len=50)

    assert all(telegram_len(s) <= 50 for s in segments)
    lines = _content_lines(segments)
    assert len(lines) == 3
    assert lines[0] == "short"
    assert lines[1].endswith("…")
    assert lines[2] == "after"


def test_caption_too_long_raises() -> None:
    with pytest.raises(ValueError):
        split_report("a", "c" * 20, max_len=20)


def test_telegram_len_counts_astral_emoji_twice() -> None:
    assert telegram_len("🚫") == 2
    assert telegram_len("✅") == 1
    assert telegram_len("a.io: 🚫 BLOCKED") == len("a.io: 🚫 BLOCKED") + 1


def test_emoji_heavy_report_stays_within_telegram_limit() -> None:
    lines = [f"{i:03d}.io: 🚫 BLOCKED" for i in range(400)]
    segments = split_report("\n".join(lines), REPORT_CAPTION)

    assert len(segments) > 1
    assert all(telegram_len(s) <= TELEGRAM_MAX_MESSAGE_LEN for s in segments)
    assert _content_lines(segments, REPORT_CAPTION) == lines


def test_truncation_never_splits_a_surrogate_pair() -> None:
    line = "🚫" * 50
    segments = split_report(line, CAPTION, max_len=30)

    assert len(segments) == 1
    assert telegram_len(segments[0]) <= 30
    content = segments[0].split("\n", 1)[1]
    assert content.endswith("…")
    assert set(content[:-1]) == {"🚫"}
