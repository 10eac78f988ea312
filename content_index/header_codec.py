"""YAML front matter codec for chapter and volume documents.

A document is an optional header block followed by the body:

    ---
    title: 第1章
    date: '2024-01-05T00:00:00.000Z'
    ---
    body text...

parse_document() and serialize_document() round-trip: serializing a parsed
header and parsing it again yields an equal mapping and the identical body.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

FM_DELIM = "---\n"

FRONT_MATTER_RE = re.compile(
    r"\A(?:\ufeff)?---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


class HeaderError(ValueError):
    """Raised when a front matter block is not a YAML mapping."""


def parse_document(text: str) -> Tuple[Dict[str, Any], str]:
    """Split a document into (header, body).

    Documents without front matter parse as an empty header and the
    unchanged text as body.
    """
    m = FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text
    block = m.group(1) or ""
    try:
        header = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise HeaderError(f"Invalid YAML front matter: {e}") from e
    if header is None:
        header = {}
    if not isinstance(header, dict):
        raise HeaderError(f"Front matter must be a mapping, got {type(header).__name__}")
    return header, text[m.end():]


def dump_header(header: Dict[str, Any]) -> str:
    return yaml.dump(header, allow_unicode=True, default_flow_style=False,
                     sort_keys=False, width=120)


def serialize_document(header: Dict[str, Any], body: str) -> str:
    return FM_DELIM + dump_header(header) + FM_DELIM + body


def write_text_atomic(path, text: str) -> None:
    """Write text via a temp file in the same directory, then rename."""
    path = Path(path)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp",
                                    prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass  # cleanup failure should not mask the original exception
        raise
