"""Pipeline support for barcode demultiplexing of segmented reads with lima.

lima splits each unit into one BAM per barcode pair, named
HiFi.<barcode pair>.bam inside a sub-directory per pair, and writes a
HiFi.lima.counts table used for the barcode QC report.
"""
import os

from kinnex import utils
from kinnex.errors import MissingInputError
from kinnex.pipeline import deconcat, fanout, run_info
from kinnex.provenance import do
from kinnex.qc import barcode

OUT_PREFIX = "HiFi"
COUNTS = OUT_PREFIX + ".lima.counts"

def lima_demux(run):
    stage_dir = utils.safe_makedir(run_info.get_dir(run, "lima_results"))
    return fanout.run_units(run, stage_dir, "lima", _lima_unit)

def _lima_unit(run, unit, unit_dir):
    bam_file = deconcat.get_out_bam(run, unit)
    samplesheet_file = unit.staged_samplesheet(run)
    for fname in [bam_file, samplesheet_file]:
        if not os.path.isfile(fname):
            raise MissingInputError("%s: required input for lima is missing: %s" % (unit.name, fname))
    stage_dir = os.path.dirname(unit_dir)
    cmd = [run.programs["lima"],
           bam_file,
           run.params["primers"],
           os.path.join(unit_dir, OUT_PREFIX + ".bam"),
           "--hifi-preset", "ASYMMETRIC",
           "--min-length", run.params["lima_min_len"],
           "--split-named",
           "--split-subdirs",
           "--biosample-csv", samplesheet_file,
           "--num-threads", run.params["nthr_lima"],
           "--log-level", run.params["log_lima"],
           "--log-file", os.path.join(stage_dir, "lima_run_%s-log.txt" % unit.name)]
    counts_file = os.path.join(unit_dir, COUNTS)
    do.run(cmd, "Running lima demultiplexing", unit=unit,
           checks=[do.file_exists(counts_file)])
    barcode.render_report(run, unit, counts_file, samplesheet_file, unit_dir)
    return unit_dir
