import os

import pytest
import yaml

from kinnex.pipeline import run_info

MOVIE = "m84000_240603_000000_s1"
HEADER = "Barcode,Bio Sample"

# unit label -> [(barcode pair, Bio Sample)]
UNIT_SAMPLES = {
    1: [("Kinnex16S_Fwd_01--Kinnex16S_Rev_13", "Sample1"),
        ("Kinnex16S_Fwd_02--Kinnex16S_Rev_13", "Sample2")],
    2: [("Kinnex16S_Fwd_03--Kinnex16S_Rev_14", "Sample1"),
        ("Kinnex16S_Fwd_04--Kinnex16S_Rev_14", "Sample3")],
}


def write_samplesheet(path, rows, header=HEADER, newline="\n"):
    lines = [header] + [",".join(r) for r in rows]
    with open(path, "w", newline="") as out_handle:
        out_handle.write(newline.join(lines) + newline)
    return path


def write_file(path, content=b"x"):
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d)
    with open(path, "wb") as out_handle:
        out_handle.write(content)
    return path


def fastq_records(name, n):
    return "".join("@%s_%s\nACGT\n+\nIIII\n" % (name, i) for i in range(n)).encode()


def make_config(tmp_dir, unit_samples=None, **overrides):
    """Write a run folder and configuration, returning the configuration file.
    """
    unit_samples = UNIT_SAMPLES if unit_samples is None else unit_samples
    runfolder = os.path.join(tmp_dir, "run")
    hifi = os.path.join(runfolder, "hifi_reads")
    os.makedirs(hifi)
    config = {"runfolder": runfolder,
              "movie": MOVIE,
              "hififolder": "hifi_reads",
              "outfolder": os.path.join(tmp_dir, "out"),
              "nthr_skera": 2, "nthr_lima": 2,
              "par_bam2fastq": 2, "nthr_bam2fastq": 1,
              "mincnt": 10, "qc_format": "html"}
    for label, rows in unit_samples.items():
        bam = "%s.hifi_reads.bcM%04d.bam" % (MOVIE, label)
        sheet = "1234_samplesheet_bcM%04d.csv" % label
        write_file(os.path.join(hifi, bam), b"BAM%s" % str(label).encode())
        write_samplesheet(os.path.join(runfolder, sheet), rows)
        config["bcM%04d" % label] = {"bam": bam, "samplesheet": sheet}
    config.update(overrides)
    config_file = os.path.join(tmp_dir, "config.yaml")
    with open(config_file, "w") as out_handle:
        yaml.safe_dump(config, out_handle, default_flow_style=False)
    return config_file


class FakeTools(object):
    """Stand-in for do.run producing the outputs each external tool would write.
    """
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []

    def tool_name(self, cmd):
        prog = os.path.basename(str(cmd[0]))
        if prog == "skera":
            return "skera"
        elif prog == "lima":
            return "lima"
        elif prog == "bam2fastq":
            return "bam2fastq"
        elif prog.startswith("barcode_QC_Kinnex"):
            return "qc"
        return prog

    def __call__(self, cmd, descr=None, unit=None, checks=None, cwd=None, **kwargs):
        from kinnex.errors import ToolFailureError
        name = self.tool_name(cmd)
        self.calls.append(name)
        if self.fail_on == name:
            raise ToolFailureError(" ".join(str(x) for x in cmd), 1, "simulated failure")
        getattr(self, "_" + name)([str(x) for x in cmd], cwd)

    def _skera(self, cmd, cwd):
        write_file(cmd[4], b"SKERA")

    def _lima(self, cmd, cwd):
        unit_dir = os.path.dirname(cmd[3])
        sheet = cmd[cmd.index("--biosample-csv") + 1]
        with open(sheet) as in_handle:
            rows = [l.strip().split(",") for l in in_handle.readlines()[1:] if l.strip()]
        for bc, _ in rows:
            write_file(os.path.join(unit_dir, bc, "HiFi.%s.bam" % bc), bc.encode())
        for fname in ["HiFi.lima.counts", "HiFi.lima.summary", "HiFi.lima.report",
                      "HiFi.json", "HiFi.consensusreadset.xml"]:
            write_file(os.path.join(unit_dir, fname), b"lima")

    def _qc(self, cmd, cwd):
        write_file(os.path.join(cwd, "barcode_QC_Kinnex.html"), b"<html></html>")

    def _bam2fastq(self, cmd, cwd):
        out_prefix = cmd[cmd.index("--output") + 1]
        name = os.path.basename(out_prefix)
        write_file(out_prefix + ".fastq.gz", fastq_records(name, 2))

    def count(self, name):
        return self.calls.count(name)


@pytest.fixture
def config_file(tmp_path):
    return make_config(str(tmp_path))


@pytest.fixture
def run(config_file):
    return run_info.organize(config_file)


@pytest.fixture
def fake_tools(mocker):
    tools = FakeTools()
    mocker.patch("kinnex.provenance.do.run", side_effect=tools)
    return tools
