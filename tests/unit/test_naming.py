"""Tests for backup file name templating."""

import pytest

from twserver.utils.naming import index_base_name, render_backup_name


@pytest.mark.parametrize(
    "index_file, expected",
    [
        ("index.html", "index.1700000000.html"),
        ("wiki.htm", "wiki.1700000000.html"),
        ("my.notes.html", "my.notes.1700000000.html"),
        ("README", "README.1700000000.html"),
    ],
)
def test_default_template(index_file, expected):
    assert render_backup_name(":name:.:date:.html", index_file, 1700000000) == expected


def test_multiple_occurrences_are_all_replaced():
    name = render_backup_name(":name:-:date:-:name:-:date:", "index.html", 42)
    assert name == "index-42-index-42"


def test_template_without_tokens_renders_unchanged():
    assert render_backup_name("backup.html", "index.html", 42) == "backup.html"


def test_substituted_text_is_not_rescanned():
    assert render_backup_name(":name:.html", ":date:.html", 42) == ":date:.html"


def test_fractional_timestamp_is_truncated():
    assert render_backup_name(":date:", "index.html", 1700000000.987) == "1700000000"


def test_defaults_to_current_time(monkeypatch):
    monkeypatch.setattr("twserver.utils.naming.time.time", lambda: 123.4)
    assert render_backup_name(":name:.:date:", "index.html") == "index.123"


def test_index_base_name_strips_directories_and_extension():
    assert index_base_name("sub/dir/index.html") == "index"
