"""maziq: provision and maintain a macOS developer workstation."""

import logging
import sys

__version__ = "0.3.0"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_debug_enabled = False


def setup_logging(debug: bool = False) -> None:
    """Configure root logging; --debug switches to DEBUG on stderr."""
    global _debug_enabled
    _debug_enabled = debug
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return _debug_enabled


__all__ = ["__version__", "setup_logging", "is_debug"]
