import os

import pytest

from kinnex.errors import MissingInputError, ValidationError
from kinnex.pipeline import inputs
from tests.unit.conftest import write_file, write_samplesheet


def test_copies_bams_indexes_and_samplesheets(run):
    write_file(run.units[0].bam + ".pbi", b"index")
    inputs_dir = inputs.copy_run_data(run)
    for unit in run.units:
        assert os.path.exists(unit.staged_bam(run))
        assert os.path.exists(unit.staged_samplesheet(run))
    assert os.path.exists(run.units[0].staged_bam(run) + ".pbi")
    assert not os.path.exists(run.units[1].staged_bam(run) + ".pbi")
    with open(run.units[1].staged_bam(run), "rb") as in_handle:
        assert in_handle.read() == b"BAM2"
    assert inputs_dir == os.path.join(run.outfolder, "inputs")


def test_missing_bam(run):
    os.remove(run.units[1].bam)
    with pytest.raises(MissingInputError):
        inputs.copy_run_data(run)


def test_missing_hifi_folder(run):
    os.rename(os.path.join(run.runfolder, run.hififolder), os.path.join(run.runfolder, "moved"))
    with pytest.raises(MissingInputError):
        inputs.copy_run_data(run)


def test_invalid_samplesheet_not_staged(run):
    write_samplesheet(run.units[0].samplesheet, [("BC01", "bad name")])
    with pytest.raises(ValidationError):
        inputs.copy_run_data(run)
    assert not os.path.exists(run.units[0].staged_samplesheet(run))
