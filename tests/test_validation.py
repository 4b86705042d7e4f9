"""Tests for the pre-launch check of serialized tokens."""

import argparse
from pathlib import Path

import pytest

from argpane.models import ValidationErrorInfo
from argpane.validation import validate_tokens


def positive(text):
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError("must be positive")
    return value


@pytest.fixture
def parser():
    parser = argparse.ArgumentParser(prog="checker")
    parser.add_argument("input_file")
    parser.add_argument("--mode", choices=["One", "Two", "Three"])
    parser.add_argument("--count", type=positive)
    sub = parser.add_subparsers(dest="command")
    build = sub.add_parser("build")
    build.add_argument("--jobs", type=int)
    return parser


def test_valid_tokens(parser):
    assert validate_tokens(parser, ["in.txt", "--mode", "Two", "build", "--jobs", "3"]) is None


def test_invalid_choice_with_suggestion(parser):
    info = validate_tokens(parser, ["in.txt", "--mode", "Tow"])
    assert info is not None
    assert info.argument_name == "Mode"
    assert "invalid choice" in info.message
    assert info.message.endswith("did you mean 'Two'?")


def test_type_error(parser):
    info = validate_tokens(parser, ["in.txt", "--count", "0"])
    assert info == ValidationErrorInfo("Count", "must be positive")


def test_missing_required(parser):
    info = validate_tokens(parser, [])
    assert info is not None
    assert info.argument_name == "Input file"
    assert "required" in info.message


def test_subcommand_errors(parser):
    info = validate_tokens(parser, ["in.txt", "build", "--jobs", "many"])
    assert info is not None
    assert info.argument_name == "Jobs"
    assert "invalid int value" in info.message


def test_parser_error_restored(parser):
    validate_tokens(parser, ["in.txt", "--count", "0"])
    assert "error" not in vars(parser)
    with pytest.raises(SystemExit):
        parser.parse_args(["in.txt", "--count", "0"])


def test_unknown_argument_has_no_target(parser):
    info = validate_tokens(parser, ["in.txt", "--nope"])
    assert info is not None
    assert info.argument_name == ""
    assert "unrecognized arguments" in info.message


def existing(text):
    if not Path(text).exists():
        raise argparse.ArgumentTypeError(f"{text} doesn't exist")
    return Path(text)


def broken(text):
    raise RuntimeError("converter crashed")


class TestConverters:
    def test_file_type_is_not_opened(self, tmp_path):
        target = tmp_path / "out.txt"
        target.write_text("precious")
        parser = argparse.ArgumentParser(prog="writer")
        parser.add_argument("--out", type=argparse.FileType("w"))
        assert validate_tokens(parser, ["--out", str(target)]) is None
        assert target.read_text() == "precious"
        assert isinstance(parser._actions[1].type, argparse.FileType)

    def test_unexpected_exception_is_reported(self):
        parser = argparse.ArgumentParser(prog="fragile")
        parser.add_argument("--level", type=broken)
        info = validate_tokens(parser, ["--level", "3"])
        assert info is not None
        assert info.argument_name == "Level"
        assert "RuntimeError: converter crashed" in info.message
        assert parser._actions[1].type is broken

    def test_relative_paths_use_working_dir(self, tmp_path):
        (tmp_path / "data.csv").write_text("")
        parser = argparse.ArgumentParser(prog="reader")
        parser.add_argument("source", type=existing)
        assert validate_tokens(parser, ["data.csv"], working_dir=tmp_path) is None
        info = validate_tokens(parser, ["missing.csv"], working_dir=tmp_path)
        assert info == ValidationErrorInfo("Source", "missing.csv doesn't exist")
