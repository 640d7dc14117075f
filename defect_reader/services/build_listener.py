"""
Build Listener
==============
Line-oriented log sink for one build.

Every line is appended to the build console (what the build page shows)
and mirrored to the Python logger, so server logs and build logs agree.
The error channel additionally records the exception's stack trace.
"""
import logging
import traceback
from typing import List, Optional

logger = logging.getLogger(__name__)


class BuildListener:

    def __init__(self, console: Optional[List[str]] = None) -> None:
        self.console: List[str] = console if console is not None else []

    def log(self, line: str) -> None:
        self.console.append(line)
        logger.info(line)

    def error(self, message: str, exc: Optional[BaseException] = None) -> None:
        """Write an ERROR line, followed by the stack trace of exc when given."""
        self.console.append(f"ERROR: {message}")
        if exc is not None:
            trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            self.console.extend(trace.rstrip("\n").splitlines())
            logger.error(message, exc_info=exc)
        else:
            logger.error(message)
