"""Tests for package specifier parsing."""

from envsync.probes.specifier import Specifier, parse_specifier


def test_scoped_with_version():
    spec = parse_specifier("@scope/name@1.2.3")
    assert spec.base_name == "@scope/name"
    assert spec.version == "1.2.3"


def test_plain_with_tag():
    spec = parse_specifier("name@latest")
    assert spec == Specifier(base_name="name", version="latest")


def test_plain_without_version():
    spec = parse_specifier("name")
    assert spec.base_name == "name"
    assert spec.version is None


def test_scoped_without_version():
    spec = parse_specifier("@angular/cli")
    assert spec.base_name == "@angular/cli"
    assert spec.version is None


def test_empty_tag_is_no_tag():
    assert parse_specifier("nx@").version is None
    assert parse_specifier("@angular/cli@").version is None


def test_whitespace_is_stripped():
    assert parse_specifier("  typescript@5.3.3 ") == Specifier("typescript", "5.3.3")


def test_str_round_trips_the_text():
    assert str(parse_specifier("@angular/cli@17.1.0")) == "@angular/cli@17.1.0"
    assert str(parse_specifier("typescript")) == "typescript"
