"""Two progress bars: one keyed by its description, one by an explicit id."""

import argparse
import sys
import time

import argpane

MAX = 100


def main(_args: argparse.Namespace) -> None:
    for i in range(MAX + 1):
        argpane.progress_bar("Static description", i / MAX)
        argpane.progress_bar_with_id("Progress", f"Dynamic description [{i}/{MAX}]", i / MAX)
        time.sleep(0.02)
    print("Finished!")


if __name__ == "__main__":
    sys.exit(argpane.run_parser(argparse.ArgumentParser(prog="Progress bars"), main))
