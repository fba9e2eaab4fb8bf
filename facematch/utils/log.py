"""Logging setup"""

import logging
import os

from contextlib import contextmanager

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_CONFIGURED = False


def setup_logging(level="INFO"):
    """Configure the root logger once; later calls only adjust the level."""
    global _CONFIGURED
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if not _CONFIGURED:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        _CONFIGURED = True
    else:
        logging.getLogger().setLevel(level)


def get_logger(name):
    """Return a module logger"""
    return logging.getLogger(name)


@contextmanager
def suppress_fds():
    """Redirect FD 1 and 2 to /dev/null for the duration of the block.

    InsightFace and onnxruntime print straight to the C-level streams while
    building sessions, bypassing sys.stdout/sys.stderr.
    """
    devnull = os.open(os.devnull, os.O_RDWR)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)
