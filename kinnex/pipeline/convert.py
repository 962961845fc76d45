"""Convert demultiplexed BAM files to FASTQ named after their Bio Sample.

Jobs are generated fresh from whatever lima produced, one per BAM file,
and the sample name for each is resolved from the unit's sample sheet
before any conversion starts. Jobs for a unit run on a bounded pool.
"""
import collections
import os

from kinnex import utils
from kinnex.distributed import multi
from kinnex.errors import MissingInputError
from kinnex.log import logger
from kinnex.pipeline import demultiplex, fanout, run_info, samplesheet
from kinnex.provenance import do

BAM_PREFIX = demultiplex.OUT_PREFIX + "."
FASTQ_EXT = ".fastq.gz"

Job = collections.namedtuple("Job", ["unit", "bam", "barcode", "biosample", "out_prefix", "threads"])

def bam2fastq(run):
    stage_dir = utils.safe_makedir(run_info.get_dir(run, "fastq_results"))
    jobs_by_unit = collections.OrderedDict()
    for unit in run.units:
        jobs_by_unit[unit.name] = unit_jobs(run, unit)

    def _convert_unit(run, unit, unit_dir):
        jobs = jobs_by_unit[unit.name]
        logger.info("Executing %s bam2fastq jobs for %s in parallel batches of %s" %
                    (len(jobs), unit.name, run.params["par_bam2fastq"]))
        multi.run_jobs(lambda job: run_job(run, job), jobs, run.params["par_bam2fastq"],
                       name="bam2fastq %s" % unit.name)
    return fanout.run_units(run, stage_dir, "bam2fastq", _convert_unit)

def barcode_from_bam(bam_file):
    """Barcode pair embedded in a lima output name: HiFi.<pair>.bam -> <pair>
    """
    base = os.path.basename(bam_file)
    if base.endswith(".bam"):
        base = base[:-len(".bam")]
    if base.startswith(BAM_PREFIX):
        base = base[len(BAM_PREFIX):]
    return base

def unit_jobs(run, unit):
    """Build the conversion jobs for every demultiplexed BAM of a unit.

    Raises UnresolvedSampleError if any BAM has no usable Bio Sample, so no
    job is started for a unit with unresolved outputs.
    """
    lima_dir = run_info.unit_dir(run, "lima_results", unit)
    samplesheet_file = unit.staged_samplesheet(run)
    if not os.path.isdir(lima_dir):
        raise MissingInputError("%s: lima results folder not found: %s" % (unit.name, lima_dir))
    if not os.path.isfile(samplesheet_file):
        raise MissingInputError("%s: staged samplesheet not found: %s" % (unit.name, samplesheet_file))
    sheet = samplesheet.read(samplesheet_file)
    out_dir = run_info.unit_dir(run, "fastq_results", unit)
    logger.info("Preparing job list from all %s lima BAM files" % unit.name)
    jobs = []
    for bam_file in utils.locate("*.bam", lima_dir):
        bc_pair = barcode_from_bam(bam_file)
        biosample = sheet.biosample_for(bc_pair)
        jobs.append(Job(unit=unit, bam=bam_file, barcode=bc_pair, biosample=biosample,
                        out_prefix=os.path.join(out_dir, biosample),
                        threads=run.params["nthr_bam2fastq"]))
    if not jobs:
        logger.warning("No demultiplexed BAM files found for %s in %s" % (unit.name, lima_dir))
    return jobs

def run_job(run, job):
    cmd = [run.programs["bam2fastq"],
           job.bam,
           "--output", job.out_prefix,
           "--num-threads", job.threads]
    out_file = job.out_prefix + FASTQ_EXT
    do.run(cmd, "bam2fastq %s -> %s" % (job.barcode, job.biosample), unit=job.unit,
           checks=[do.file_exists(out_file)])
    return out_file
