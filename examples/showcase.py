"""Sub-commands, counters, flags, choices and path pickers."""

import argparse
import sys

import shtab

import argpane


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="showcase", description="This text is shown as the program help")
    parser.add_argument("input", help="Some input, required since it has no default")
    parser.add_argument("-c", "--config", default="default.conf", help="Sets a custom config file").complete = shtab.FILE
    parser.add_argument("-v", "--verbose", action="count", default=0, help="A level of verbosity, can be used multiple times")
    parser.add_argument("--color", choices=["auto", "always", "never"], default="auto")

    sub = parser.add_subparsers(dest="command", required=True)
    test = sub.add_parser("test", help="Controls testing")
    test.add_argument("-d", "--debug", action="store_true", help="Print debug info")
    run = sub.add_parser("run", help="Runs things")
    run.add_argument("targets", nargs="+", help="What to run")
    walk = sub.add_parser("walk", help="Walks a directory")
    walk.add_argument("--root", required=True).complete = shtab.DIRECTORY
    walk.add_argument("--skip", action="extend", nargs="+", default=[])
    return parser


def main(args: argparse.Namespace) -> None:
    print(f"\x1b[1mParsed:\x1b[0m {args}")


if __name__ == "__main__":
    sys.exit(argpane.run_parser(build_parser(), main))
