"""Deconcatenate Kinnex arrays into segmented reads with skera.
"""
import os

from kinnex import utils
from kinnex.errors import MissingInputError
from kinnex.pipeline import fanout, run_info
from kinnex.provenance import do

OUT_BAM = "skera.bam"

def skera_split(run):
    stage_dir = utils.safe_makedir(run_info.get_dir(run, "skera_results"))
    return fanout.run_units(run, stage_dir, "skera", _skera_unit)

def _skera_unit(run, unit, unit_dir):
    bam_file = unit.staged_bam(run)
    if not os.path.isfile(bam_file):
        raise MissingInputError("%s: staged BAM file is missing: %s" % (unit.name, bam_file))
    stage_dir = os.path.dirname(unit_dir)
    out_file = os.path.join(unit_dir, OUT_BAM)
    cmd = [run.programs["skera"], "split",
           bam_file,
           run.params["adapters"],
           out_file,
           "--num-threads", run.params["nthr_skera"],
           "--log-level", run.params["log_skera"],
           "--log-file", os.path.join(stage_dir, "skera_run_%s-log.txt" % unit.name)]
    do.run(cmd, "Running skera de-concatenation", unit=unit,
           checks=[do.file_exists(out_file)])
    return out_file

def get_out_bam(run, unit):
    return os.path.join(run_info.unit_dir(run, "skera_results", unit), OUT_BAM)
