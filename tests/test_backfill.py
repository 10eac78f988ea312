#!/usr/bin/env python3
"""
Tests for metadata backfill and date handling
(content_index/backfill.py, content_index/dates.py)

Run: pytest tests/test_backfill.py -v
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from content_index.backfill import backfill_header, count_length, strip_extension
from content_index.dates import format_timestamp, normalize_date, timestamp_from_epoch

UUID = "0b7c2f1e-5a3d-4c8e-9f21-6d4b8a0c3e57"


def complete_header(**overrides):
    header = {
        "title": "第1章",
        "date": "2024-01-05T00:00:00.000Z",
        "length": 10,
        "uuid": UUID,
    }
    header.update(overrides)
    return header


# ─── count_length ─────────────────────────────────────────────────────────

class TestCountLength:
    def test_mixed_cjk_digits_latin(self):
        assert count_length("你好，世界123abc") == 7

    def test_empty(self):
        assert count_length("") == 0

    def test_latin_words_with_hyphen(self):
        assert count_length("well-known words here") == 3

    def test_digit_runs(self):
        assert count_length("2024 05 1") == 3

    def test_cjk_punctuation_each_counts(self):
        assert count_length("“你”……") == 5

    def test_ascii_punctuation_and_whitespace_ignored(self):
        assert count_length("  ,.!?\n\t") == 0

    def test_chapter_heading(self):
        assert count_length("第10章") == 3


# ─── dates ────────────────────────────────────────────────────────────────

class TestNormalizeDate:
    def test_slash_date(self):
        assert normalize_date("2024/01/05") == "2024-01-05T00:00:00.000Z"

    def test_canonical_is_fixed_point(self):
        assert normalize_date("2024-01-05T00:00:00.000Z") == "2024-01-05T00:00:00.000Z"

    def test_offset_converted_to_utc(self):
        assert normalize_date("2024-01-05T08:30:00+08:00") == "2024-01-05T00:30:00.000Z"

    def test_plain_iso_date(self):
        assert normalize_date("2024-01-05") == "2024-01-05T00:00:00.000Z"

    def test_chinese_date(self):
        assert normalize_date("2024年1月5日") == "2024-01-05T00:00:00.000Z"

    def test_month_name(self):
        assert normalize_date("January 5, 2024") == "2024-01-05T00:00:00.000Z"

    def test_date_object(self):
        assert normalize_date(date(2024, 1, 5)) == "2024-01-05T00:00:00.000Z"

    def test_aware_datetime_object(self):
        dt = datetime(2024, 1, 5, 8, 0, tzinfo=timezone(timedelta(hours=8)))
        assert normalize_date(dt) == "2024-01-05T00:00:00.000Z"

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            normalize_date("not-a-date")

    def test_non_string_raises(self):
        with pytest.raises(ValueError):
            normalize_date(12345)


class TestFormatTimestamp:
    def test_milliseconds(self):
        dt = datetime(2024, 1, 5, 1, 2, 3, 456789, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-01-05T01:02:03.456Z"

    def test_naive_is_utc(self):
        assert format_timestamp(datetime(2024, 1, 5)) == "2024-01-05T00:00:00.000Z"

    def test_epoch(self):
        assert timestamp_from_epoch(0) == "1970-01-01T00:00:00.000Z"


# ─── backfill_header ──────────────────────────────────────────────────────

class TestBackfillHeader:
    def test_empty_header_gets_all_fields(self):
        header = {}
        changed = backfill_header(header, "你好，世界123abc", "第1章.md", 0)
        assert changed is True
        assert header["title"] == "第1章"
        assert header["date"] == "1970-01-01T00:00:00.000Z"
        assert header["length"] == 7
        assert isinstance(header["uuid"], str) and len(header["uuid"]) == 36

    def test_complete_header_unchanged(self):
        header = complete_header()
        before = dict(header)
        assert backfill_header(header, "正文", "第1章.md", 0) is False
        assert header == before

    def test_existing_values_kept(self):
        header = complete_header(title="自定义标题", length=999)
        backfill_header(header, "短", "第1章.md", 0)
        assert header["title"] == "自定义标题"
        assert header["length"] == 999
        assert header["uuid"] == UUID

    def test_zero_length_is_not_missing(self):
        header = complete_header(length=0)
        assert backfill_header(header, "正文很长", "第1章.md", 0) is False
        assert header["length"] == 0

    def test_empty_title_is_missing(self):
        header = complete_header(title="")
        assert backfill_header(header, "", "序章.md", 0) is True
        assert header["title"] == "序章"

    def test_date_normalized(self):
        header = complete_header(date="2024/01/05")
        assert backfill_header(header, "", "第1章.md", 0) is True
        assert header["date"] == "2024-01-05T00:00:00.000Z"

    def test_yaml_date_object_normalized(self):
        header = complete_header(date=date(2024, 1, 5))
        assert backfill_header(header, "", "第1章.md", 0) is True
        assert header["date"] == "2024-01-05T00:00:00.000Z"

    def test_invalid_date_left_alone(self, capsys):
        header = complete_header(date="not-a-date")
        assert backfill_header(header, "", "第1章.md", 0) is False
        assert header["date"] == "not-a-date"
        assert "WARNING: Invalid date in chapter 第1章.md: not-a-date" in capsys.readouterr().err

    def test_invalid_date_with_other_missing_field(self):
        header = complete_header(date="not-a-date")
        del header["uuid"]
        assert backfill_header(header, "", "第1章.md", 0) is True
        assert header["date"] == "not-a-date"
        assert header["uuid"]

    def test_mtime_used_for_missing_date(self):
        header = complete_header()
        del header["date"]
        backfill_header(header, "", "第1章.md", 86400.5)
        assert header["date"] == "1970-01-02T00:00:00.500Z"

    def test_new_fields_appended_after_existing(self):
        header = {"title": "第1章", "author": "某人"}
        backfill_header(header, "", "第1章.md", 0)
        assert list(header) == ["title", "author", "date", "length", "uuid"]


class TestStripExtension:
    def test_strips_only_suffix(self):
        assert strip_extension("v1.2.md") == "v1.2"

    def test_other_extension_untouched(self):
        assert strip_extension("notes.txt") == "notes.txt"

    def test_custom_extension(self):
        assert strip_extension("第1章.markdown", ".markdown") == "第1章"
