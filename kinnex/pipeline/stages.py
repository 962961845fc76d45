"""Ordered, resumable execution of pipeline stages.

Each stage writes a `<name>.done` marker as the very last step, after its
outputs are flushed to disk. Re-running the pipeline skips stages with a
marker, so an interrupted or failed run resumes at the first unfinished
stage. Stages that loop over units also keep one marker per unit, letting a
restart skip the units already finished within the stage.
"""
import os

from kinnex import utils
from kinnex.log import logger
from kinnex.provenance import profile

MARKER_EXT = ".done"


class Stage(object):
    """One pipeline step: pending -> running -> completed, or failed.
    """
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __init__(self, name, ordinal, marker, fn, out_dirs=None, descr=None):
        self.name = name
        self.ordinal = ordinal
        self.marker = marker
        self.fn = fn
        self.out_dirs = list(out_dirs or [])
        self.descr = descr or name
        self.state = Stage.PENDING

    def __repr__(self):
        return "Stage(%s, %s, %s)" % (self.ordinal, self.name, self.state)

    def is_done(self):
        return os.path.exists(self.marker)

    def complete(self):
        for out_dir in self.out_dirs:
            utils.fsync_tree(out_dir)
        write_marker(self.marker)
        self.state = Stage.COMPLETED


class StageRunner(object):
    """Run stages in order, stopping at the first failure.

    Failed stages leave their partial output on disk for inspection and do
    not get a marker.
    """
    def __init__(self, run, stages):
        self.run = run
        self.stages = sorted(stages, key=lambda s: s.ordinal)

    def execute(self):
        ran = []
        for stage in self.stages:
            logger.info("")
            logger.info("# %s" % stage.descr)
            if stage.is_done():
                logger.info("%s: already done." % stage.name)
                stage.state = Stage.COMPLETED
                continue
            stage.state = Stage.RUNNING
            try:
                with profile.report(stage.name):
                    stage.fn(self.run)
                stage.complete()
            except Exception:
                stage.state = Stage.FAILED
                logger.error("%s failed" % stage.name)
                raise
            ran.append(stage.name)
        return ran

def marker_file(dname, name):
    return os.path.join(dname, name + MARKER_EXT)

def write_marker(marker):
    return utils.write_durable(marker, "done\n")

def unit_marker(stage_dir, unit, substage):
    """Per-unit sub-marker kept inside the unit's own stage folder.
    """
    return marker_file(os.path.join(stage_dir, unit.name), substage)

def is_checkpoint_file(fname):
    return fname.endswith(MARKER_EXT)
