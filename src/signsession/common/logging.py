"""Logging initialisation code."""

import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path

__author__ = "ft"

STDERR_FORMATTER = "%(asctime)s: %(name)s: %(levelname)s %(message)s"
SYSLOG_FORMATTER = "%(name)s[%(process)d]: %(levelname)s %(message)s"
SYSLOG_SOCKET = "/dev/log"


def get_logger(
    progname: str,
    debug: bool = False,
    syslog: bool = False,
    logdir: Path | None = None,
) -> logging.Logger:
    """
    Initialize logging for a tool and return a logger named after it.

    :param logdir: If set, also log everything to a timestamped file in this directory
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, stream=sys.stderr, format=STDERR_FORMATTER)
    root = logging.getLogger()
    # Only warnings on stderr when not run interactively, the log file gets the rest
    if not sys.stderr.isatty() and not debug:
        for this_h in root.handlers:
            this_h.setLevel(logging.WARNING)
    if syslog:
        if os.path.exists(SYSLOG_SOCKET):
            syslog_h = logging.handlers.SysLogHandler(address=SYSLOG_SOCKET)
        else:
            syslog_h = logging.handlers.SysLogHandler()
        syslog_h.setFormatter(logging.Formatter(SYSLOG_FORMATTER))
        root.addHandler(syslog_h)
    if logdir is not None:
        _fn = logdir.joinpath(
            f"{progname}-{time.strftime('%Y%m%d-%H%M%S')}-{os.getpid()}.log"
        )
        file_h = logging.FileHandler(_fn)
        file_h.setFormatter(logging.Formatter(STDERR_FORMATTER))
        root.addHandler(file_h)
    return root.getChild(progname)
