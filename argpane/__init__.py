"""argpane - turn an argparse command line into an interactive front-end.

The front-end edits argument values, serializes them back into the exact
tokens the parser accepts, relaunches the same program as a worker and
streams its output, decoding embedded progress-bar records on the way.
"""

from .app import run_parser
from .output import progress_bar, progress_bar_with_id
from .settings import Localization, Settings

__all__ = [
    "Localization",
    "Settings",
    "progress_bar",
    "progress_bar_with_id",
    "run_parser",
]
