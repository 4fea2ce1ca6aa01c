"""Tests for reference parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from ocabuild.core.errors import InvalidIdentifier, MissingHeader, UnreadableFile
from ocabuild.graph.parser import (
    find_header,
    find_references,
    parse_node,
    parse_source,
    read_source,
    replace_references,
)


class TestFindHeader:
    def test_plain_header(self):
        assert find_header("-- name=first\nADD ATTRIBUTE x=Text") == "first"

    def test_marker_without_space(self):
        assert find_header("--name=first") == "first"

    def test_quotes_stripped(self):
        assert find_header('-- name="first"\nADD ATTRIBUTE x=Text') == "first"

    def test_identifier_stops_at_whitespace(self):
        assert find_header("-- name=first version=2") == "first"

    def test_name_after_other_header_fields(self):
        assert find_header("-- version=1.0.0 name=x\nADD ATTRIBUTE a=Text") == "x"

    def test_name_must_be_a_whole_key(self):
        assert find_header("-- nickname=x\nADD ATTRIBUTE a=Text") is None

    def test_crlf_header(self):
        assert find_header("-- name=first\r\nADD ATTRIBUTE x=Text\r\n") == "first"

    def test_leading_blank_lines_skipped(self):
        assert find_header("\n   \n-- name=first\n") == "first"

    def test_header_must_be_first_non_empty_line(self):
        assert find_header("ADD ATTRIBUTE x=Text\n-- name=first") is None

    def test_no_marker(self):
        assert find_header("name=first\nADD ATTRIBUTE x=Text") is None

    def test_empty_text(self):
        assert find_header("") is None


class TestFindReferences:
    def test_references_in_order(self):
        text = "-- name=third\nADD ATTRIBUTE first=refn:first second=refn:second"
        assert find_references(text) == ["first", "second"]

    def test_array_wrapped_reference(self):
        text = "-- name=list\nADD ATTRIBUTE items=Array[refn:item] other=Text"
        assert find_references(text) == ["item"]

    def test_duplicates_preserved(self):
        text = "-- name=x\nADD ATTRIBUTE a=refn:shared\nADD ATTRIBUTE b=refn:shared"
        assert find_references(text) == ["shared", "shared"]

    def test_reference_in_header_line(self):
        assert find_references("-- name=x refn:header\nADD ATTRIBUTE a=Text") == ["header"]

    def test_no_references(self):
        assert find_references("-- name=x\nADD ATTRIBUTE a=Text") == []


class TestParseSource:
    def test_node_fields(self):
        node = parse_source("-- name=third\nADD ATTRIBUTE a=refn:first b=refn:second", Path("third.ocafile"))
        assert node.identifier == "third"
        assert node.path == Path("third.ocafile")
        assert node.dependencies == ("first", "second")

    def test_missing_header(self):
        with pytest.raises(MissingHeader) as exc_info:
            parse_source("ADD ATTRIBUTE a=Text", Path("broken.ocafile"))
        assert exc_info.value.path == Path("broken.ocafile")
        assert "name=" in str(exc_info.value)

    def test_blank_file_is_missing_header(self):
        with pytest.raises(MissingHeader):
            parse_source("\n\n", Path("empty.ocafile"))

    def test_invalid_identifier_characters(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            parse_source("-- name=bad.name\nADD ATTRIBUTE a=Text", Path("bad.ocafile"))
        assert exc_info.value.identifier == "bad.name"

    def test_dash_and_underscore_allowed(self):
        node = parse_source("-- name=my-schema_v2\nADD ATTRIBUTE a=Text", Path("x.ocafile"))
        assert node.identifier == "my-schema_v2"


class TestParseNode:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "first.ocafile"
        path.write_text("-- name=first\nADD ATTRIBUTE a=refn:other\n")
        node = parse_node(path)
        assert node.identifier == "first"
        assert node.dependencies == ("other",)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(UnreadableFile) as exc_info:
            parse_node(tmp_path / "missing.ocafile")
        assert exc_info.value.path == tmp_path / "missing.ocafile"

    def test_header_with_leading_fields(self, tmp_path):
        path = tmp_path / "x.ocafile"
        path.write_text("-- version=1.0.0 name=x\nADD ATTRIBUTE a=refn:y\n")
        node = parse_node(path)
        assert node.identifier == "x"
        assert node.dependencies == ("y",)

    def test_line_endings_preserved(self, tmp_path):
        path = tmp_path / "x.ocafile"
        path.write_bytes(b"-- name=x\r\nADD ATTRIBUTE a=Text\r\n")
        assert read_source(path) == "-- name=x\r\nADD ATTRIBUTE a=Text\r\n"

    def test_invalid_utf8_is_unreadable(self, tmp_path):
        path = tmp_path / "x.ocafile"
        path.write_bytes(b"-- name=x\n\xff\xfe")
        with pytest.raises(UnreadableFile):
            read_source(path)


def test_replace_references():
    text = "ADD ATTRIBUTE a=refn:first b=Array[refn:second]"
    result = replace_references(text, lambda token: f"refs:{token.upper()}")
    assert result == "ADD ATTRIBUTE a=refs:FIRST b=Array[refs:SECOND]"
