"""Index assembly: walk the content tree and build index.json.

Layout of the content root:

  <content_dir>/
    <volume>/
      .volume_uuid      identity record (identity.py)
      _volume.yml       optional volume metadata, merged into volumeInfo
      第1章.md          chapters with YAML front matter
    index.json          the generated index

Chapters whose header gained or changed a field are rewritten in place
before being recorded. The index is regenerated from scratch on every run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from content_index.backfill import backfill_header, strip_extension
from content_index.config import IndexConfig
from content_index.console import info, warn
from content_index.dates import format_timestamp
from content_index.header_codec import (
    HeaderError,
    parse_document,
    serialize_document,
    write_text_atomic,
)
from content_index.identity import resolve_volume_identity
from content_index.ordering import sort_chapters


@dataclass
class IndexStats:
    volumes: int = 0
    chapters: int = 0
    rewritten: int = 0


def merge_fields(*sources: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge mappings left to right. Later sources win on key collision."""
    merged: Dict[str, Any] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


def list_volumes(config: IndexConfig) -> List[str]:
    root = config.content_dir
    return sorted(
        p.name for p in root.iterdir()
        if p.is_dir() and not config.is_excluded(p.name)
    )


def list_chapter_files(volume_path: Path, config: IndexConfig) -> List[str]:
    return sorted(
        p.name for p in volume_path.iterdir()
        if p.is_file()
        and p.name.endswith(config.doc_extension)
        and not config.is_excluded(p.name)
    )


def read_volume_meta(meta_path: Path) -> Dict[str, Any]:
    """Read a volume metadata sidecar.

    The sidecar is normally a front matter document; a file without a
    front matter block is read as a plain YAML mapping.
    """
    with open(meta_path, "r", encoding="utf-8", newline="") as f:
        text = f.read()
    header, body = parse_document(text)
    if header or not body.strip():
        return header
    data = yaml.safe_load(body)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise HeaderError(f"Volume metadata must be a mapping, got {type(data).__name__}")
    return data


def load_volume_info(volume_path: Path, volume_name: str, volume_uuid: str,
                     config: IndexConfig) -> Dict[str, Any]:
    defaults = {"uuid": volume_uuid, "title": volume_name}
    meta_path = volume_path / config.volume_meta_file
    if not meta_path.exists():
        return defaults
    try:
        meta = read_volume_meta(meta_path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError, HeaderError) as e:
        warn(f"Failed to read volume metadata {meta_path}: {e}")
        return defaults
    return merge_fields(defaults, meta)


def build_chapter_record(volume_name: str, file_name: str, header: Dict[str, Any],
                         config: IndexConfig) -> Dict[str, Any]:
    """Project a backfilled header into its index record.

    The processed title goes first; the raw header title is not repeated
    among the pass-through fields.
    """
    rest = {k: v for k, v in header.items() if k != "title"}
    record = {
        "title": header["title"],
        "path": f"{config.path_prefix}/{volume_name}/{file_name}",
        "uuid": rest.get("uuid"),
    }
    return merge_fields(record, rest)


def process_chapter(volume_path: Path, volume_name: str, file_name: str,
                    config: IndexConfig, dry_run: bool = False,
                    quiet: bool = False) -> Tuple[Dict[str, Any], bool]:
    """Backfill one chapter and return (index record, header changed)."""
    file_path = volume_path / file_name
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        text = f.read()
    try:
        header, body = parse_document(text)
    except HeaderError as e:
        raise HeaderError(f"{file_path}: {e}") from e

    changed = backfill_header(header, body, file_name, file_path.stat().st_mtime,
                              extension=config.doc_extension)
    if changed:
        if dry_run:
            if not quiet:
                info(f"  ~ Would update metadata: {volume_name}/{file_name}")
        else:
            write_text_atomic(file_path, serialize_document(header, body))
            if not quiet:
                info(f"  ✓ Updated metadata: {volume_name}/{file_name}")

    return build_chapter_record(volume_name, file_name, header, config), changed


def _peek_volume_identity(volume_path: Path, volume_name: str,
                          config: IndexConfig) -> Optional[str]:
    record_path = volume_path / config.identity_file
    try:
        with open(record_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None
    if isinstance(data, dict) and data.get("volumeName") == volume_name:
        return data.get("uuid")
    return None


def build_volume(volume_name: str, config: IndexConfig, stats: IndexStats,
                 dry_run: bool = False, quiet: bool = False) -> Dict[str, Any]:
    volume_path = config.content_dir / volume_name
    if dry_run:
        # resolve_volume_identity writes the sidecar; leave the tree untouched
        volume_uuid = _peek_volume_identity(volume_path, volume_name, config)
    else:
        volume_uuid = resolve_volume_identity(volume_path, volume_name,
                                              config.identity_file)
    volume_info = load_volume_info(volume_path, volume_name, volume_uuid, config)

    entries = []
    for file_name in list_chapter_files(volume_path, config):
        record, changed = process_chapter(volume_path, volume_name, file_name,
                                          config, dry_run=dry_run, quiet=quiet)
        entries.append((strip_extension(file_name, config.doc_extension), record))
        stats.chapters += 1
        if changed:
            stats.rewritten += 1

    return {
        "volumeInfo": volume_info,
        "chapters": sort_chapters(entries, config.chapter_patterns),
    }


def build_index(config: IndexConfig, dry_run: bool = False,
                quiet: bool = False) -> Tuple[Dict[str, Any], IndexStats]:
    """Walk the content root and return (index, stats)."""
    stats = IndexStats()
    index: Dict[str, Any] = {}
    for volume_name in list_volumes(config):
        index[volume_name] = build_volume(volume_name, config, stats,
                                          dry_run=dry_run, quiet=quiet)
        stats.volumes += 1
    return index, stats


def _json_default(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_index(index: Dict[str, Any]) -> str:
    return json.dumps(index, ensure_ascii=False, indent=2, default=_json_default)


def write_index(index: Dict[str, Any], output_file: Path) -> None:
    write_text_atomic(output_file, render_index(index))
