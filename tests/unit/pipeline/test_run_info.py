import os

import pytest

from kinnex.errors import ConfigError, MissingInputError
from kinnex.pipeline import run_info
from tests.unit.conftest import MOVIE, make_config, write_file


def _base_config(tmp_path, **extra):
    config = {"runfolder": str(tmp_path / "run"), "movie": MOVIE,
              "outfolder": str(tmp_path / "out")}
    config.update(extra)
    return config


def test_discovers_units_in_label_order(tmp_path):
    config = _base_config(tmp_path,
                          bcM0010={"bam": "c.bam", "samplesheet": "c.csv"},
                          bcM0002={"bam": "b.bam", "samplesheet": "b.csv"},
                          bcM0001={"bam": "a.bam", "samplesheet": "a.csv"})
    run = run_info.from_config(config, str(tmp_path))
    assert [u.label for u in run.units] == [1, 2, 10]
    assert [u.name for u in run.units] == ["unit01", "unit02", "unit010"]
    assert run.units[0].bam == os.path.join(str(tmp_path / "run"), "hifi_reads", "a.bam")
    assert run.units[0].samplesheet == os.path.join(str(tmp_path / "run"), "a.csv")


def test_flat_unit_keys_are_accepted(tmp_path):
    config = _base_config(tmp_path, bcM0003_bam="x.bam", bcM0003_samplesheet="x.csv")
    run = run_info.from_config(config, str(tmp_path))
    assert [u.label for u in run.units] == [3]


@pytest.mark.parametrize("fields", [{"bam": "a.bam", "samplesheet": ""},
                                    {"bam": "", "samplesheet": "a.csv"},
                                    {"bam": "a.bam"}])
def test_half_filled_unit_is_kept_then_fails_file_check(tmp_path, fields):
    config = _base_config(tmp_path, bcM0001=fields)
    run = run_info.from_config(config, str(tmp_path))
    assert [u.label for u in run.units] == [1]
    with pytest.raises(MissingInputError):
        run_info.check_units(run)


def test_unit_with_no_fields_is_ignored(tmp_path):
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "a.csv"},
                          bcM0002={"bam": "", "samplesheet": ""})
    run = run_info.from_config(config, str(tmp_path))
    assert [u.label for u in run.units] == [1]


def test_no_units_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        run_info.from_config(_base_config(tmp_path), str(tmp_path))


@pytest.mark.parametrize("key", ["runfolder", "movie", "outfolder"])
def test_missing_required_value(tmp_path, key):
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "a.csv"})
    config[key] = ""
    with pytest.raises(ConfigError):
        run_info.from_config(config, str(tmp_path))


@pytest.mark.parametrize("key", ["lima_results", "final_results", "hififolder", "adapters"])
def test_folder_expanding_to_empty_is_a_config_error(tmp_path, monkeypatch, key):
    monkeypatch.setenv("EMPTY_FOLDER", "")
    config_file = make_config(str(tmp_path), **{key: "$EMPTY_FOLDER"})
    with pytest.raises(ConfigError):
        run_info.organize(config_file)


def test_blank_folder_is_a_config_error(tmp_path):
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "a.csv"},
                          lima_results="   ")
    with pytest.raises(ConfigError):
        run_info.from_config(config, str(tmp_path))


def test_absent_folder_uses_default(tmp_path):
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "a.csv"},
                          lima_results=None)
    run = run_info.from_config(config, str(tmp_path))
    assert run.params["lima_results"] == "lima_results"


def test_bad_numeric_tunable(tmp_path):
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "a.csv"},
                          nthr_lima="many")
    with pytest.raises(ConfigError):
        run_info.from_config(config, str(tmp_path))


def test_organize_resolves_references_next_to_config(config_file):
    run = run_info.organize(config_file)
    base_dir = os.path.dirname(config_file)
    assert run.base_dir == base_dir
    assert run.params["adapters"].startswith(os.path.join(base_dir, "barcode_files"))
    assert run.units[0].project() == "1234"
    assert run.units[0].staged_bam(run) == os.path.join(run.outfolder, "inputs",
                                                        os.path.basename(run.units[0].bam))
    run_info.check_units(run)


def test_run_params_are_read_only(run):
    with pytest.raises(TypeError):
        run.params["nthr_lima"] = 99


def test_check_programs_reports_missing(run, mocker):
    mocker.patch("kinnex.pipeline.run_info.utils.which", return_value=None)
    with pytest.raises(ConfigError) as excinfo:
        run_info.check_programs(run)
    assert "skera" in str(excinfo.value)
    assert "barcode_QC_Kinnex.sh" in str(excinfo.value)


def test_samplesheets_sharing_a_name_are_rejected(tmp_path):
    run_dir = tmp_path / "run"
    for name in ["hifi_reads/a.bam", "hifi_reads/b.bam", "lane1/sheet.csv", "lane2/sheet.csv"]:
        write_file(str(run_dir / name))
    config = _base_config(tmp_path, bcM0001={"bam": "a.bam", "samplesheet": "lane1/sheet.csv"},
                          bcM0002={"bam": "b.bam", "samplesheet": "lane2/sheet.csv"})
    run = run_info.from_config(config, str(tmp_path))
    with pytest.raises(ConfigError) as excinfo:
        run_info.check_units(run)
    assert "sheet.csv" in str(excinfo.value)


def test_programs_resolved_when_run_is_built(tmp_path):
    config_file = make_config(str(tmp_path), program={"lima": "/opt/pacbio/lima"})
    run = run_info.organize(config_file)
    assert run.programs["lima"] == "/opt/pacbio/lima"
    assert run.programs["skera"] == "skera"
    with pytest.raises(TypeError):
        run.programs["lima"] = "other"
    with pytest.raises(TypeError):
        run.config["program"] = {}
