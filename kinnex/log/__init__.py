"""Utility functionality for logging.
"""
import os
import sys

import logbook

from kinnex import utils

LOG_NAME = "kinnex-decat-demux"
RUN_LOG = "runlog.txt"

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")
logger_stdout = logbook.Logger(LOG_NAME + "-stdout")

def _is_stdout(record, _):
    return record.channel == LOG_NAME + "-stdout"

def _not_stdout(record, handler):
    return not _is_stdout(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    def close(self):
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def get_run_log(out_dir):
    return os.path.join(out_dir, RUN_LOG)

def _create_log_handler(out_dir=None, include_time=True, truncate=True):
    logbook.set_datetime_format("utc")
    handlers = [logbook.NullHandler()]
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if include_time else "",
                          "{record.message}"])
    if out_dir:
        utils.safe_makedir(out_dir)
        # one log per invocation, including command lines and tool output
        handlers.append(logbook.FileHandler(get_run_log(out_dir), mode="w" if truncate else "a",
                                            format_string=format_str, level="DEBUG",
                                            bubble=True))
    handlers.append(logbook.StreamHandler(sys.stdout, format_string="{record.message}",
                                          level="DEBUG", filter=_is_stdout))
    handlers.append(logbook.StreamHandler(sys.stderr, format_string=format_str,
                                          level="INFO", bubble=True, filter=_not_stdout))
    return CloseableNestedSetup(handlers)

def setup_local_logging(out_dir=None, include_time=True, truncate=True):
    """Setup logging for a run, writing the run log into the output directory.

    Handlers are pushed application wide so messages from parallel job
    threads reach the same run log.
    """
    handler = _create_log_handler(out_dir, include_time, truncate)
    handler.push_application()
    return handler
