" generic fixtures "
import argparse

import pytest
import shtab

from argpane.models import ArgumentDeclaration, Arity, CommandDescriptor, MultipleSpec


def pytest_configure():
    "Runs once before all"
    from argpane.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def showcase_parser():
    "A parser using most argument shapes"
    parser = argparse.ArgumentParser(prog="showcase", description="Showcase program")
    parser.add_argument("name", help="Your name")
    parser.add_argument("--mode", choices=["fast", "slow"], default="fast")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--tag", action="append", dest="tags")
    parser.add_argument("--files", nargs="+").complete = shtab.FILE
    parser.add_argument("--out-dir").complete = shtab.DIRECTORY
    sub = parser.add_subparsers(dest="command", required=True)
    build = sub.add_parser("build", help="Build things")
    build.add_argument("--jobs", type=int, default=1)
    sub.add_parser("clean", aliases=["rm"], help="Remove things")
    return parser


@pytest.fixture
def descriptor():
    "A hand-built descriptor with one sub-command"
    return CommandDescriptor(
        name="tool",
        arguments=(
            ArgumentDeclaration("input_file", required=True),
            ArgumentDeclaration("level", call_token="--level", default_values=("3",)),
            ArgumentDeclaration("quiet", call_token="-q", arity=Arity.FLAG),
            ArgumentDeclaration(
                "include",
                call_token="--include",
                arity=Arity.MULTIPLE,
                multiple=MultipleSpec(via_repeated_occurrence=True),
            ),
        ),
        subcommands=(
            CommandDescriptor(
                "run",
                about="Run it",
                arguments=(ArgumentDeclaration("count", call_token="--count"),),
            ),
            CommandDescriptor("check"),
        ),
    )
