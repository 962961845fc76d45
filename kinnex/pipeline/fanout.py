"""Apply one operation to every processing unit, in unit order.

Units run one after the other; the external tools parallelize internally
with their configured thread counts.
"""
import os

from kinnex import utils
from kinnex.log import logger
from kinnex.pipeline import stages

def run_units(run, stage_dir, substage, fn):
    """Call fn(run, unit, unit_dir) for each unit not already checkpointed.

    A failure for any unit stops the loop and propagates, so a run never
    continues with a partial set of units.
    """
    out = []
    for unit in run.units:
        unit_dir = utils.safe_makedir(os.path.join(stage_dir, unit.name))
        marker = stages.unit_marker(stage_dir, unit, substage)
        if os.path.exists(marker):
            logger.info("%s %s: already done." % (substage, unit.name))
            continue
        fn(run, unit, unit_dir)
        utils.fsync_tree(unit_dir)
        stages.write_marker(marker)
        out.append(unit.name)
    return out
