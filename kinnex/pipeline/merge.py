"""Prepare outputs for delivery by combining results across units.

QC files from every unit are collected in one folder, prefixed with the
unit name. FASTQ files are merged by name: a Bio Sample sequenced in
several units is concatenated in unit order, which is valid for both plain
and gzip compressed FASTQ.
"""
import collections
import os
import re
import shutil

from kinnex import utils
from kinnex.distributed.transaction import file_transaction
from kinnex.log import logger
from kinnex.pipeline import demultiplex, run_info, stages

QC_EXCLUDE_NAMES = set([demultiplex.OUT_PREFIX + ".lima.report"])
QC_EXCLUDE_SUFFIXES = ("-log.txt", ".xml", ".json")
FASTQ_RE = re.compile(r"\.(fastq|fq)(\.gz)?$")

def post_processing(run):
    qc_dir = collect_qc(run)
    final_dir = merge_fastq_results(run)
    return qc_dir, final_dir

# ## QC collection

def collect_qc(run):
    """Copy lima QC and sample sheets for all units into the delivery QC folder.
    """
    qc_dir = utils.safe_makedir(run_info.get_dir(run, "qc_results"))
    lima_dir = run_info.get_dir(run, "lima_results")
    logger.info("Collecting QC files from lima results")
    for unit in run.units:
        for fname in _qc_files(os.path.join(lima_dir, unit.name)):
            _copy_prefixed(run, fname, qc_dir, unit)
    logger.info("Collecting CSV samplesheet files")
    for unit in run.units:
        samplesheet_file = unit.staged_samplesheet(run)
        if os.path.exists(samplesheet_file):
            _copy_prefixed(run, samplesheet_file, qc_dir, unit)
        else:
            logger.warning("Samplesheet file not found: %s" % samplesheet_file)
    movie_report = os.path.join(run.outfolder, "%s.report.pdf" % run.movie)
    if os.path.exists(movie_report):
        logger.info("Copying movie report PDF")
        _copy(run, movie_report, os.path.join(qc_dir, os.path.basename(movie_report)))
    else:
        logger.info("Movie report PDF not found: %s" % os.path.basename(movie_report))
    logger.info("QC files prepared in: %s" % qc_dir)
    return qc_dir

def _qc_files(unit_dir):
    if not os.path.isdir(unit_dir):
        return []
    out = []
    for fname in sorted(os.listdir(unit_dir)):
        full = os.path.join(unit_dir, fname)
        if not os.path.isfile(full):
            continue
        if (fname in QC_EXCLUDE_NAMES or fname.endswith(QC_EXCLUDE_SUFFIXES)
              or stages.is_checkpoint_file(fname)):
            continue
        out.append(full)
    return out

def _copy_prefixed(run, fname, out_dir, unit):
    new_name = "%s_%s" % (unit.name, os.path.basename(fname))
    logger.info("  Copying %s -> %s" % (os.path.basename(fname), new_name))
    return _copy(run, fname, os.path.join(out_dir, new_name))

def _copy(run, orig, new):
    with file_transaction(run, new) as tx_out_file:
        shutil.copyfile(orig, tx_out_file)
    return new

# ## FASTQ merging

def merge_fastq_results(run):
    """Merge FASTQ files with the same name across unit folders.

    Returns the delivery folder, or None when no unit produced results.
    """
    fastq_dir = run_info.get_dir(run, "fastq_results")
    final_dir = run_info.get_dir(run, "final_results")
    unit_dirs = _unit_dirs(run, fastq_dir)
    logger.info("Found %s unit subfolder(s) in fastq results" % len(unit_dirs))
    if not unit_dirs:
        logger.info("No unit subfolders found, skipping FASTQ merge")
        return None
    utils.safe_makedir(final_dir)
    by_name = group_fastq_files(unit_dirs)
    for fname, in_files in by_name.items():
        out_file = os.path.join(final_dir, fname)
        if len(in_files) == 1:
            logger.info("  Copying %s (single file)" % fname)
        else:
            logger.info("  Merging %s (%s files)" % (fname, len(in_files)))
        concatenate(run, in_files, out_file)
    logger.info("FASTQ files processed in: %s" % final_dir)
    logger.info("Total unique files processed: %s" % len(by_name))
    return final_dir

def _unit_dirs(run, fastq_dir):
    """Unit result folders in unit order, only those present on disk.
    """
    dirs = [os.path.join(fastq_dir, unit.name) for unit in run.units]
    return [d for d in dirs if os.path.isdir(d)]

def group_fastq_files(unit_dirs):
    """Map each FASTQ file name to its copies, in the order of unit_dirs.
    """
    out = collections.OrderedDict()
    names = set()
    for unit_dir in unit_dirs:
        for fname in os.listdir(unit_dir):
            if FASTQ_RE.search(fname) and os.path.isfile(os.path.join(unit_dir, fname)):
                names.add(fname)
    for fname in sorted(names):
        out[fname] = [os.path.join(d, fname) for d in unit_dirs
                      if os.path.isfile(os.path.join(d, fname))]
    return out

def concatenate(run, in_files, out_file):
    """Byte-wise concatenation of in_files into out_file; a plain copy for one file.
    """
    with file_transaction(run, out_file) as tx_out_file:
        with open(tx_out_file, "wb") as out_handle:
            for in_file in in_files:
                with open(in_file, "rb") as in_handle:
                    shutil.copyfileobj(in_handle, out_handle)
    return out_file
