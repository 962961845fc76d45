"""Timing of pipeline stages, replacing the shell `time` wrapper.
"""
import contextlib
import time

from kinnex.log import logger

@contextlib.contextmanager
def report(label):
    """Log wall clock timing for a labelled block, also when it fails."""
    logger.info("Timing: %s" % label)
    start = time.time()
    try:
        yield None
    finally:
        logger.info("Timing: %s finished in %s" % (label, _format_elapsed(time.time() - start)))

def _format_elapsed(seconds):
    minutes, seconds = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    return "%dh%02dm%02ds" % (hours, minutes, seconds)
