"""Tests for argparse introspection."""

import argparse
import pathlib

from argpane.descriptors import describe_action, describe_parser, iter_subparsers
from argpane.models import Arity, MultipleSpec, ValueHint


def test_describe_parser(showcase_parser):
    desc = describe_parser(showcase_parser)
    assert desc.name == "showcase"
    assert desc.about == "Showcase program"
    assert [arg.name for arg in desc.arguments] == ["name", "mode", "verbose", "dry_run", "tags", "files", "out_dir"]
    assert [sub.name for sub in desc.subcommands] == ["build", "clean"]
    assert desc.subcommand("build").arguments[0].default_values == ("1",)
    assert desc.subcommand("clean").about == "Remove things"


def test_argument_shapes(showcase_parser):
    args = {arg.name: arg for arg in describe_parser(showcase_parser).arguments}

    assert args["name"].call_token is None
    assert args["name"].required is True
    assert args["name"].display_name == "Name"

    assert args["mode"].allowed_values == ("fast", "slow")
    assert args["mode"].default == "fast"

    assert args["verbose"].arity is Arity.OCCURRENCE
    assert args["verbose"].call_token == "--verbose"
    assert args["dry_run"].arity is Arity.FLAG

    assert args["tags"].multiple == MultipleSpec(via_repeated_occurrence=True)
    assert args["files"].multiple == MultipleSpec(via_repeated_value=True)


def test_shtab_hints(showcase_parser):
    args = {arg.name: arg for arg in describe_parser(showcase_parser).arguments}
    assert args["files"].value_hint is ValueHint.FILE_PATH
    assert args["out_dir"].value_hint is ValueHint.DIR_PATH
    assert args["mode"].value_hint is ValueHint.NONE


def test_path_type_hint():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("--config", type=pathlib.Path))
    assert decl.value_hint is ValueHint.ANY_PATH
    assert decl.value_hint.allows_file and decl.value_hint.allows_dir


def test_extend_uses_both_layouts():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("--item", action="extend", nargs="+"))
    assert decl.arity is Arity.MULTIPLE
    assert decl.multiple.via_repeated_occurrence and decl.multiple.via_repeated_value


def test_extend_without_nargs_repeats_the_option():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("--item", action="extend"))
    assert decl.multiple.via_repeated_occurrence
    assert not decl.multiple.via_repeated_value


def test_boolean_optional_action():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("--color", action=argparse.BooleanOptionalAction, default=True))
    assert decl.arity is Arity.FLAG
    assert decl.call_token == "--color"
    assert decl.negation_token == "--no-color"
    assert decl.default_values == ("true",)


def test_optional_positional():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("target", nargs="?", default="all"))
    assert decl.arity is Arity.SINGLE
    assert decl.required is False
    assert decl.default_values == ("all",)


def test_list_default():
    parser = argparse.ArgumentParser()
    decl = describe_action(parser.add_argument("--size", nargs=2, type=int, default=[1, 2]))
    assert decl.default_values == ("1", "2")


def test_hidden_and_implicit_arguments_are_skipped():
    parser = argparse.ArgumentParser(prog="p")
    parser.add_argument("--version", action="version", version="1")
    parser.add_argument("--secret", help=argparse.SUPPRESS)
    parser.add_argument("--shown")
    assert [arg.name for arg in describe_parser(parser).arguments] == ["shown"]


def test_aliases_are_skipped(showcase_parser):
    names = [name for name, _parser, _help in iter_subparsers(showcase_parser)]
    assert names == ["build", "clean"]
