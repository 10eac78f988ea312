"""Run configuration for the content index generator.

The configuration is built once at the entry point and passed down
explicitly. Values come from three layers, later layers winning:

  1. built-in defaults (below)
  2. an optional YAML config file (``--config``)
  3. command-line flags (``--content-dir``, ``--output``)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

# ─── Defaults ───────────────────────────────────────────────────────────────

DEFAULT_CONTENT_DIR = "public/content"
DEFAULT_OUTPUT_NAME = "index.json"
DEFAULT_EXCLUDE = (".DS_Store", DEFAULT_OUTPUT_NAME)
DEFAULT_DOC_EXTENSION = ".md"
DEFAULT_IDENTITY_FILE = ".volume_uuid"
DEFAULT_VOLUME_META_FILE = "_volume.yml"
DEFAULT_PATH_PREFIX = "content"
# "第12章" (chapter 12). First capture group is the chapter number.
DEFAULT_CHAPTER_PATTERNS = (r"第([0-9]+)章",)

CONFIG_KEYS = {
    "content_dir",
    "output_file",
    "exclude",
    "doc_extension",
    "identity_file",
    "volume_meta_file",
    "path_prefix",
    "chapter_patterns",
}


class ConfigError(ValueError):
    """Raised for an unreadable or invalid configuration file."""


@dataclass(frozen=True)
class IndexConfig:
    content_dir: Path
    output_file: Path
    exclude: frozenset = field(default_factory=lambda: frozenset(DEFAULT_EXCLUDE))
    doc_extension: str = DEFAULT_DOC_EXTENSION
    identity_file: str = DEFAULT_IDENTITY_FILE
    volume_meta_file: str = DEFAULT_VOLUME_META_FILE
    path_prefix: str = DEFAULT_PATH_PREFIX
    chapter_patterns: Tuple[str, ...] = DEFAULT_CHAPTER_PATTERNS

    def is_excluded(self, name: str) -> bool:
        return name in self.exclude


def load_config_file(config_path) -> Dict[str, Any]:
    """Read a YAML config file. Returns the mapping of recognized keys."""
    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, "
                          f"got {type(data).__name__}")
    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return data


def _as_tuple(value, key):
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigError(f"Config key '{key}' must be a string or a list of strings")


def build_config(
    content_dir: Optional[str] = None,
    output_file: Optional[str] = None,
    config_path: Optional[str] = None,
) -> IndexConfig:
    """Assemble the run configuration from defaults, file and flags."""
    overrides = load_config_file(config_path) if config_path else {}

    root = Path(content_dir or overrides.get("content_dir") or DEFAULT_CONTENT_DIR)
    out = output_file or overrides.get("output_file")
    output = Path(out) if out else root / DEFAULT_OUTPUT_NAME

    cfg = IndexConfig(content_dir=root, output_file=output)

    changes: Dict[str, Any] = {}
    if "exclude" in overrides:
        changes["exclude"] = frozenset(_as_tuple(overrides["exclude"], "exclude"))
    if "chapter_patterns" in overrides:
        changes["chapter_patterns"] = _as_tuple(overrides["chapter_patterns"],
                                                "chapter_patterns")
    for key in ("doc_extension", "identity_file", "volume_meta_file", "path_prefix"):
        if key in overrides:
            if not isinstance(overrides[key], str) or not overrides[key]:
                raise ConfigError(f"Config key '{key}' must be a non-empty string")
            changes[key] = overrides[key]
    if changes:
        cfg = replace(cfg, **changes)

    # The index must never be picked up as content on the next run.
    return replace(cfg, exclude=cfg.exclude | {cfg.output_file.name})
