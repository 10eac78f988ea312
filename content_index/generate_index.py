#!/usr/bin/env python3
"""CLI for generating the nested content index (index.json).

Backfills missing chapter metadata (title, date, length, uuid) in place,
keeps volume identifiers stable across runs, and writes the aggregated
index of all volumes and their ordered chapters.

Usage:
  generate-content-index                          # defaults: public/content
  generate-content-index --content-dir site/content
  generate-content-index --config index_config.yaml
  generate-content-index --dry-run                # show changes, write nothing
"""

from __future__ import annotations

import argparse
import locale

from content_index.assembler import build_index, write_index
from content_index.config import build_config
from content_index.console import abort, info, warn


def main(argv=None) -> None:
    ap = argparse.ArgumentParser(description="Generate the nested content index.")
    ap.add_argument("--content-dir", help="Content root holding one directory per volume")
    ap.add_argument("--output", help="Index file path (default: <content-dir>/index.json)")
    ap.add_argument("--config", help="YAML file overriding the default configuration")
    ap.add_argument("--dry-run", action="store_true",
                    help="Report metadata changes without writing any file")
    ap.add_argument("--quiet", "-q", action="store_true",
                    help="Only print warnings, errors and the summary")
    args = ap.parse_args(argv)

    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        warn(f"Could not apply system collation locale, using code point order: {e}")

    try:
        config = build_config(content_dir=args.content_dir, output_file=args.output,
                              config_path=args.config)
        info(f"Generating content index from {config.content_dir} ...")
        index, stats = build_index(config, dry_run=args.dry_run, quiet=args.quiet)
        if not args.dry_run:
            write_index(index, config.output_file)
    except Exception as e:
        abort(f"Index generation failed: {e}")

    info("\n" + "=" * 60)
    if args.dry_run:
        info("DRY RUN complete. No files written.")
    else:
        info(f"✅ Index written: {config.output_file}")
    info(f"   Volumes:  {stats.volumes}")
    info(f"   Chapters: {stats.chapters}")
    info(f"   {'Would update' if args.dry_run else 'Updated'}:  {stats.rewritten}")
    info("=" * 60)


if __name__ == "__main__":
    main()
