"""Values checked by the parser are reported next to the argument."""

import argparse
import sys

import argpane


def is_hello(text: str) -> str:
    if text != "hello":
        msg = 'Is not "hello"'
        raise argparse.ArgumentTypeError(msg)
    return text


def main(args: argparse.Namespace) -> None:
    print(args)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="Validation example", description="Help is displayed at the top")
    parser.add_argument("--input", type=is_hello, required=True)
    sys.exit(argpane.run_parser(parser, main))
