"""Main entry point for Kinnex 16S deconcatenation and demultiplexing runs.

Handles running the full pipeline based on a YAML run configuration.
"""
import contextlib
import fcntl
import os

from kinnex import log, utils
from kinnex.errors import ConfigError, KinnexError
from kinnex.log import logger
from kinnex.pipeline import (archive, convert, deconcat, demultiplex, inputs, merge,
                             run_info, samplesheet, stages)
from kinnex.pipeline.version import __version__

LOCK_FILE = ".kinnex.lock"

def run_main(config_file, check_programs=True):
    """Run the pipeline for a configuration file, returning the process exit status.
    """
    try:
        run = run_info.organize(config_file)
    except KinnexError as e:
        # no output folder known yet, report on the console only
        with _console_logging():
            logger.error(str(e))
        return 1
    utils.safe_makedir(run.outfolder)
    try:
        with run_lock(run):
            handler = log.setup_local_logging(run.outfolder)
            try:
                logger.info("kinnex-decat-demux version %s" % __version__)
                run_info.log_run_config(run)
                preflight(run, check_programs=check_programs)
                run_pipeline(run)
            except KinnexError as e:
                logger.error(str(e))
                return 1
            except Exception:
                logger.exception("Unexpected error, stopping the run")
                return 1
            finally:
                handler.pop_application()
                handler.close()
    except ConfigError as e:
        with _console_logging():
            logger.error(str(e))
        return 1
    return 0

@contextlib.contextmanager
def _console_logging():
    handler = log.setup_local_logging(None)
    try:
        yield handler
    finally:
        handler.pop_application()
        handler.close()

def preflight(run, check_programs=True):
    """Checks done before any stage runs: inputs, sample sheets and programs.
    """
    run_info.check_units(run)
    for unit in run.units:
        samplesheet.validate(unit.samplesheet)
    if check_programs:
        run_info.check_programs(run)

def build_stages(run):
    """The fixed, ordered pipeline stages, each with its checkpoint marker.
    """
    d = lambda name: run_info.get_dir(run, name)
    return [
        stages.Stage("CopyRunData", 1, stages.marker_file(d("inputs"), "CopyRunData"),
                     inputs.copy_run_data, [d("inputs")], "Copying RUN data locally"),
        stages.Stage("SkeraSplit", 2, stages.marker_file(d("skera_results"), "SkeraSplit"),
                     deconcat.skera_split, [d("skera_results")], "Running Skera de-concatenation"),
        stages.Stage("Lima", 3, stages.marker_file(d("lima_results"), "Lima"),
                     demultiplex.lima_demux, [d("lima_results")], "Running Lima demultiplexing"),
        stages.Stage("bam2fastq", 4, stages.marker_file(d("fastq_results"), "bam2fastq"),
                     convert.bam2fastq, [d("fastq_results")],
                     "Converting BAM data to FastQ and renaming samples"),
        stages.Stage("post_processing", 5, stages.marker_file(run.outfolder, "post_processing"),
                     merge.post_processing, [d("qc_results"), d("final_results")],
                     "Post-processing: preparing outputs for delivery"),
        stages.Stage("create_archive", 6, stages.marker_file(run.outfolder, "create_archive"),
                     archive.create_archive, [], "Creating delivery archive"),
    ]

def run_pipeline(run):
    """Run all stages for an organized Run, skipping those already done.
    """
    ran = stages.StageRunner(run, build_stages(run)).execute()
    logger.info("")
    logger.info("Pipeline completed, stages run: %s" % (", ".join(ran) if ran else "none"))
    return ran

@contextlib.contextmanager
def run_lock(run):
    """Hold an exclusive lock on the output folder for the duration of a run.

    The lock is released by the kernel if the process dies, so it never
    blocks a restart after a crash.
    """
    lock_file = os.path.join(run.outfolder, LOCK_FILE)
    with open(lock_file, "a") as lock_handle:
        try:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            raise ConfigError("Output folder %s is in use by another run" % run.outfolder)
        try:
            yield lock_file
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)
