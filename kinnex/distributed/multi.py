"""Run independent jobs in parallel on a single machine.

Each job blocks on one external process, so a thread pool is enough to keep
the configured number of processes busy.
"""
import joblib

from kinnex.errors import KinnexError, ToolFailureError
from kinnex.log import logger

def run_jobs(fn, items, max_workers, name=None):
    """Run fn on every item with at most max_workers running at once.

    Every item is processed, also after a failure, since jobs write to
    disjoint outputs and killing running siblings would only leave partial
    files behind. Failures are then raised together as one error.
    """
    items = [x for x in items if x is not None]
    if len(items) == 0:
        return []
    max_workers = max(1, int(max_workers))
    name = name or getattr(fn, "__name__", "jobs")
    logger.info("parallel: %s, %s jobs with %s workers" % (name, len(items), max_workers))
    results = joblib.Parallel(n_jobs=min(max_workers, len(items)), backend="threading",
                              batch_size=1)(joblib.delayed(_guarded)(fn, x) for x in items)
    failed = [(item, err) for item, (ok, err) in zip(items, results) if not ok]
    if failed:
        for item, err in failed:
            logger.error("Job failed: %s" % err)
        raise ToolFailureError("%s: %s of %s jobs failed" % (name, len(failed), len(items)),
                               output="\n".join(str(err) for _, err in failed))
    return [out for ok, out in results]

def _guarded(fn, item):
    """Run one job, returning its failure instead of aborting the pool.
    """
    try:
        return True, fn(item)
    except KinnexError as e:
        return False, e
