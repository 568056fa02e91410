"""Console feedback for provisioning runs."""

import logging
import sys

from novalaunch.provisioning.interfaces import ProgressUI

logger = logging.getLogger(__name__)


class ConsoleUI(ProgressUI):
    """Messages go through logging; the progress line is drawn on *stream*.

    Progress and line clearing are skipped on non-interactive streams so
    redirected output is not filled with carriage returns.
    """

    def __init__(self, stream=None, interactive=None):
        self.stream = stream or sys.stdout
        if interactive is None:
            interactive = self.stream.isatty()
        self.interactive = interactive

    def info(self, message):
        logger.info(message)

    def report_progress(self, current, total):
        if not self.interactive:
            return
        percent = int(current * 100 / total) if total else 100
        self.stream.write(f"\rProgress: {percent}% ({current} / {total})")
        self.stream.flush()

    def clear_line(self):
        if not self.interactive:
            return
        self.stream.write("\r\033[K")
        self.stream.flush()
