"""Chapter ordering for the index.

The order key is derived from the chapter's file name and header on every
run and is never written back.
"""

from __future__ import annotations

import locale
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from content_index.config import DEFAULT_CHAPTER_PATTERNS

DIGITS_RE = re.compile(r"[0-9]+")


def _number_in(text: str, patterns: Sequence[str]) -> Optional[int]:
    # patterns capture the chapter number in their first group; a pattern
    # without a group, or whose group is not a number, is skipped
    for pattern in patterns:
        m = re.search(pattern, text)
        if m and m.groups():
            key = _as_int(m.group(1))
            if key is not None:
                return key
    m = DIGITS_RE.search(text)
    if m:
        return int(m.group(0))
    return None


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_order_key(
    name: str,
    header: Dict[str, Any],
    patterns: Sequence[str] = DEFAULT_CHAPTER_PATTERNS,
) -> int:
    """Return the chapter number used to sort a chapter.

    Tried in order: a chapter marker in the name, any digits in the name,
    the same two rules on the header title, then the header's ``order``
    and ``index`` fields. Falls back to 0.
    """
    key = _number_in(name, patterns)
    if key is not None:
        return key

    title = header.get("title")
    if title is not None and str(title) != name:
        key = _number_in(str(title), patterns)
        if key is not None:
            return key

    for field in ("order", "index"):
        key = _as_int(header.get(field))
        if key:
            return key
    return 0


def _collation_key(title) -> str:
    return locale.strxfrm(str(title))


def sort_chapters(
    entries: Iterable[Tuple[str, Dict[str, Any]]],
    patterns: Sequence[str] = DEFAULT_CHAPTER_PATTERNS,
) -> List[Dict[str, Any]]:
    """Sort (name, record) pairs by order key, then title. Returns records."""
    ordered = sorted(
        entries,
        key=lambda e: (extract_order_key(e[0], e[1], patterns),
                       _collation_key(e[1].get("title", e[0]))),
    )
    return [record for _, record in ordered]
