"""
halfpipe/errors.py
Error types shared by the loaders, the statistics functions and the scripts.
"""
import sys


class HalfpipeDataError(Exception):
    """Base class for every data error raised by the pipeline."""


class MissingFileError(HalfpipeDataError):
    """A required input file does not exist."""


class MalformedInputError(HalfpipeDataError):
    """Header/row field-count mismatch, or a field that should be numeric isn't."""


class InsufficientDataError(HalfpipeDataError):
    """A statistic was asked for with fewer data points than it needs."""


def run_script(main) -> None:
    """Run a script entry point; report data errors on stderr and exit 1."""
    try:
        main()
    except HalfpipeDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
