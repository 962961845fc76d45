"""Retrieve run information describing the barcoded units to process.

The configuration lists one entry per barcoded HiFi BAM (bcM0001, bcM0002,
...), each pairing the BAM with the sample sheet for that barcode. These
are organized into an immutable Run passed to every pipeline stage.
"""
import collections
import os
import re
import types

from kinnex import utils
from kinnex.errors import ConfigError, MissingInputError
from kinnex.log import logger
from kinnex.pipeline import config_utils

UNIT_KEY = re.compile(r"^bcM(\d{4})_(bam|samplesheet)$")
UNIT_FIELDS = ("bam", "samplesheet")
REQUIRED_KEYS = ["runfolder", "movie", "outfolder"]


class ProcessingUnit(collections.namedtuple("ProcessingUnit", ["label", "bam", "samplesheet"])):
    """One barcoded HiFi BAM plus the sample sheet used to demultiplex it.
    """
    __slots__ = ()

    @property
    def name(self):
        """Stable directory name used by every stage for this unit.
        """
        return "unit0%s" % self.label

    def staged_bam(self, run):
        return os.path.join(get_dir(run, "inputs"), os.path.basename(self.bam))

    def staged_samplesheet(self, run):
        return os.path.join(get_dir(run, "inputs"), os.path.basename(self.samplesheet))

    def project(self):
        """Project number, the sample sheet prefix up to the first underscore.
        """
        return os.path.basename(self.samplesheet).split("_")[0]


Run = collections.namedtuple("Run", ["movie", "runfolder", "hififolder", "outfolder", "base_dir",
                                     "units", "params", "programs", "config", "config_file"])

def organize(config_file):
    """Build a Run from a YAML configuration file.
    """
    config = config_utils.load_config(config_file)
    base_dir = os.path.dirname(os.path.abspath(config_file))
    return from_config(config, base_dir, os.path.abspath(config_file))

def from_config(config, base_dir, config_file=None):
    """Build a Run from an already loaded configuration dictionary.
    """
    for key in REQUIRED_KEYS:
        if not _as_str(config.get(key)):
            raise ConfigError("Missing required configuration value '%s'" % key)
    params = config_utils.get_params(config)
    for key in config_utils.PATH_KEYS:
        params[key] = utils.add_full_path(_as_str(params[key]), base_dir)
    runfolder = utils.add_full_path(_as_str(config["runfolder"]), base_dir)
    outfolder = utils.add_full_path(_as_str(config["outfolder"]), base_dir)
    hififolder = _as_str(params["hififolder"])
    units = discover_units(config_utils.flatten_config(config), runfolder, hififolder)
    programs = {p: config_utils.get_program(p, config) for p in config_utils.PROGRAMS}
    return Run(movie=_as_str(config["movie"]), runfolder=runfolder, hififolder=hififolder,
               outfolder=outfolder, base_dir=base_dir, units=tuple(units),
               params=types.MappingProxyType(params),
               programs=types.MappingProxyType(programs),
               config=types.MappingProxyType(config), config_file=config_file)

def _as_str(val):
    return "" if val is None else str(val).strip()

def discover_units(flat_config, runfolder, hififolder):
    """Find bcM<NNNN> units in a flattened configuration, ordered by number.

    A unit is kept if either its BAM or its sample sheet is given, so a
    half-filled entry is reported by check_units rather than silently dropped.
    """
    found = collections.defaultdict(dict)
    for key, val in flat_config.items():
        match = UNIT_KEY.match(key)
        if match:
            found[int(match.group(1))][match.group(2)] = _as_str(val)
    units = []
    for label in sorted(found):
        fields = found[label]
        if not any(fields.get(f) for f in UNIT_FIELDS):
            continue
        bam = fields.get("bam", "")
        samplesheet = fields.get("samplesheet", "")
        units.append(ProcessingUnit(
            label=label,
            bam=os.path.join(runfolder, hififolder, bam) if bam else "",
            samplesheet=os.path.join(runfolder, samplesheet) if samplesheet else ""))
    if not units:
        raise ConfigError("No barcoded units found in configuration. Expected entries like "
                          "'bcM0001' with 'bam' and 'samplesheet' values")
    logger.info("Found %s barcoded bam HiFi files" % len(units))
    return units

def check_units(run):
    """Ensure every unit has an existing, readable BAM and sample sheet.

    Staged inputs are named by basename, so names must differ between units.
    """
    for unit in run.units:
        for field in UNIT_FIELDS:
            fname = getattr(unit, field)
            if not fname:
                raise MissingInputError("bcM%04d: no %s configured" % (unit.label, field))
            if not utils.is_readable_file(fname):
                raise MissingInputError("bcM%04d: %s file not found or not readable: %s" %
                                        (unit.label, field, fname))
    for field in UNIT_FIELDS:
        staged = {}
        for unit in run.units:
            base = os.path.basename(getattr(unit, field))
            if base in staged:
                raise ConfigError("bcM%04d and bcM%04d: %s files share the name %s and would "
                                  "overwrite each other when staged" %
                                  (staged[base], unit.label, field, base))
            staged[base] = unit.label

def check_programs(run):
    """Ensure external programs needed by the pipeline are available.
    """
    missing = []
    progs = [run.programs[p] for p in config_utils.PROGRAMS]
    progs.append(run.params["qc_script"])
    for prog in progs:
        if not utils.which(prog):
            missing.append(prog)
    if missing:
        raise ConfigError("Required programs not found in PATH: %s" % ", ".join(missing))

def get_dir(run, name):
    """Output folder for a stage, by its configuration key.
    """
    return os.path.join(run.outfolder, run.params[name])

def unit_dir(run, name, unit):
    return os.path.join(get_dir(run, name), unit.name)

def log_run_config(run):
    """Write the resolved run configuration to the log.
    """
    logger.info("####################")
    logger.info("# run configuration")
    logger.info("- config: %s" % run.config_file)
    logger.info("- runfolder: %s" % run.runfolder)
    logger.info("- movie: %s" % run.movie)
    logger.info("- hififolder: %s" % run.hififolder)
    logger.info("- barcode_number: %s" % len(run.units))
    for unit in run.units:
        logger.info("- bcM%04d BAM: %s" % (unit.label, unit.bam))
        logger.info("- bcM%04d Samplesheet: %s" % (unit.label, unit.samplesheet))
    logger.info("- outfolder: %s" % run.outfolder)
    for key in sorted(run.params):
        logger.info("- %s: %s" % (key, run.params[key]))
    for prog in sorted(run.programs):
        logger.info("- program %s: %s" % (prog, run.programs[prog]))
