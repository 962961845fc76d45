"""Copy run data locally: barcoded HiFi BAM files and validated sample sheets.
"""
import os
import shutil

from kinnex import utils
from kinnex.distributed.transaction import file_transaction
from kinnex.errors import MissingInputError
from kinnex.log import logger
from kinnex.pipeline import run_info, samplesheet

def copy_run_data(run):
    """Stage each unit's BAM (with its .pbi index) and sample sheet in the inputs folder.
    """
    inputs_dir = utils.safe_makedir(run_info.get_dir(run, "inputs"))
    hifi_dir = os.path.join(run.runfolder, run.hififolder)
    if not os.path.isdir(hifi_dir):
        raise MissingInputError("HiFi folder not found: %s" % hifi_dir)
    for unit in run.units:
        if not utils.is_readable_file(unit.bam):
            raise MissingInputError("%s: BAM file not found: %s" % (unit.name, unit.bam))
        _copy_file(run, unit.bam, unit.staged_bam(run))
        for ext in [".pbi"]:
            if os.path.exists(unit.bam + ext):
                _copy_file(run, unit.bam + ext, unit.staged_bam(run) + ext)
    for unit in run.units:
        samplesheet.validate(unit.samplesheet)
        _copy_file(run, unit.samplesheet, unit.staged_samplesheet(run))
        logger.info("Copied %s to %s" % (os.path.basename(unit.samplesheet), inputs_dir))
    return inputs_dir

def _copy_file(run, orig, new):
    with file_transaction(run, new) as tx_out_file:
        shutil.copyfile(orig, tx_out_file)
    return new
