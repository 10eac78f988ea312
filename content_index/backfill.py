"""Chapter metadata backfill.

Fills the recognized header fields a chapter is missing:

  title   file name without the document extension
  date    file modification time; existing values are normalized to ISO-8601
  length  count_length() over the body
  uuid    a fresh identifier

An existing date that cannot be parsed is reported and left as written.
"""

from __future__ import annotations

import re
from typing import Any, Dict

from content_index.config import DEFAULT_DOC_EXTENSION
from content_index.console import warn
from content_index.dates import normalize_date, timestamp_from_epoch
from content_index.identity import generate_id

# CJK ideographs plus full-width / CJK punctuation, one unit per character.
CJK_PUNCTUATION = "。？！，、；：“”‘’（）《》〈〉【】『』「」﹃﹄〔〕…—～﹏￥"

LENGTH_UNIT_RE = re.compile(
    "[一-龥" + re.escape(CJK_PUNCTUATION) + "]"
    r"|[0-9]+"
    r"|[a-zA-Z\-]+"
)


def count_length(text: str) -> int:
    """Count readable units in mixed CJK / Latin text.

    Each CJK character or punctuation mark counts once, each run of ASCII
    digits counts once, each run of Latin letters and hyphens counts once.
    """
    return len(LENGTH_UNIT_RE.findall(text))


def is_missing(value) -> bool:
    return value is None or value == ""


def strip_extension(file_name: str, extension: str = DEFAULT_DOC_EXTENSION) -> str:
    if extension and file_name.endswith(extension):
        return file_name[:-len(extension)]
    return file_name


def backfill_header(
    header: Dict[str, Any],
    body: str,
    file_name: str,
    mtime: float,
    extension: str = DEFAULT_DOC_EXTENSION,
) -> bool:
    """Fill missing fields of a parsed chapter header in place.

    Returns True if any field was added or altered.
    """
    changed = False

    if is_missing(header.get("title")):
        header["title"] = strip_extension(file_name, extension)
        changed = True

    if is_missing(header.get("date")):
        header["date"] = timestamp_from_epoch(mtime)
        changed = True
    else:
        try:
            normalized = normalize_date(header["date"])
        except ValueError:
            warn(f"Invalid date in chapter {file_name}: {header['date']}")
        else:
            if header["date"] != normalized:
                header["date"] = normalized
                changed = True

    if is_missing(header.get("length")):
        header["length"] = count_length(body)
        changed = True

    if is_missing(header.get("uuid")):
        header["uuid"] = generate_id()
        changed = True

    return changed
