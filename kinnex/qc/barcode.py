"""Barcode QC report rendered from lima counts by barcode_QC_Kinnex.sh.

The renderer writes its report into the current directory, so it runs in a
private temporary directory and the results are moved into the unit folder.
"""
import glob
import os
import shutil

from kinnex.distributed.transaction import tx_tmpdir
from kinnex.log import logger
from kinnex.provenance import do

REPORT_PREFIX = "barcode_QC_Kinnex."

def render_report(run, unit, counts_file, samplesheet_file, out_dir):
    """Render the barcode QC report for one unit, returning the relocated files.

    A renderer failure is fatal: the report is part of the delivery.
    """
    cmd = [run.params["qc_script"],
           "-i", os.path.abspath(counts_file),
           "-r", run.params["qc_rmd"],
           "-m", run.params["mincnt"],
           "-f", run.params["qc_format"],
           "-p", unit.project(),
           "-s", os.path.abspath(samplesheet_file)]
    moved = []
    with tx_tmpdir(run) as work_dir:
        do.run(cmd, "Creating barcode QC report", unit=unit, cwd=work_dir)
        for fname in sorted(glob.glob(os.path.join(work_dir, REPORT_PREFIX + "*"))):
            dest = os.path.join(out_dir, os.path.basename(fname))
            shutil.move(fname, dest)
            moved.append(dest)
    if not moved:
        logger.warning("No %s* files found to move for %s" % (REPORT_PREFIX, unit.name))
    return moved
