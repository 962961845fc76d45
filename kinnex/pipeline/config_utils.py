"""Loads configurations from .yaml files and expands environment variables.

The run configuration yaml has the structure

runfolder:
movie:
hififolder:
bcM0001:
	bam:
	samplesheet:
outfolder:
inputs:
skera_results:
lima_results:
...
program:
	skera:
	lima:

Any number of bcM<NNNN> units can be listed. Stage tunables not present
in the file fall back to the defaults in LOOKUPS.
"""
import os

import toolz as tz
import yaml

from kinnex.errors import ConfigError

# ## Stage tunables

LOOKUPS = {
    "hififolder": {"keys": ["hififolder"], "default": "hifi_reads"},
    "inputs": {"keys": ["inputs"], "default": "inputs"},
    "skera_results": {"keys": ["skera_results"], "default": "skera_results"},
    "lima_results": {"keys": ["lima_results"], "default": "lima_results"},
    "fastq_results": {"keys": ["fastq_results"], "default": "fastq_results"},
    "qc_results": {"keys": ["qc_results"], "default": "run_QC"},
    "final_results": {"keys": ["final_results"], "default": "fastq_final"},
    "lima_min_len": {"keys": ["lima_min_len"], "default": 50, "type": int},
    "log_skera": {"keys": ["log_skera"], "default": "INFO"},
    "log_lima": {"keys": ["log_lima"], "default": "INFO"},
    "nthr_skera": {"keys": ["nthr_skera"], "default": 8, "type": int},
    "nthr_lima": {"keys": ["nthr_lima"], "default": 8, "type": int},
    "par_bam2fastq": {"keys": ["par_bam2fastq"], "default": 4, "type": int},
    "nthr_bam2fastq": {"keys": ["nthr_bam2fastq"], "default": 2, "type": int},
    "mincnt": {"keys": ["mincnt"], "default": 100, "type": int},
    "qc_format": {"keys": ["qc_format"], "default": "html"},
    "adapters": {"keys": ["adapters"],
                 "default": os.path.join("barcode_files", "MAS-Seq_Adapter_v2", "mas12_primers.fasta")},
    "primers": {"keys": ["primers"],
                "default": os.path.join("barcode_files", "Kinnex16S_384plex_primers",
                                        "Kinnex16S_384plex_primers.fasta")},
    "qc_script": {"keys": ["qc_script"], "default": os.path.join("scripts", "barcode_QC_Kinnex.sh")},
    "qc_rmd": {"keys": ["qc_rmd"], "default": os.path.join("scripts", "barcode_QC_Kinnex.Rmd")},
}

# folders below outfolder, each must be a non-empty name
FOLDER_KEYS = ["inputs", "skera_results", "lima_results", "fastq_results",
               "qc_results", "final_results"]
# reference files resolved relative to the configuration directory
PATH_KEYS = ["adapters", "primers", "qc_script", "qc_rmd"]
# set in the configuration, these may not be blank
NONEMPTY_KEYS = FOLDER_KEYS + ["hififolder"] + PATH_KEYS

PROGRAMS = ["skera", "lima", "bam2fastq"]

def get_param(name, config):
    """Retrieve a stage tunable, applying the default and expected type.
    """
    lookup = LOOKUPS[name]
    val = tz.get_in(lookup["keys"], config)
    if val is None:
        val = lookup.get("default")
    elif isinstance(val, str) and not val.strip():
        if name in NONEMPTY_KEYS:
            raise ConfigError("Configuration value '%s' expands to an empty string" % name)
        val = lookup.get("default")
    if "type" in lookup and val is not None:
        try:
            val = lookup["type"](val)
        except (TypeError, ValueError):
            raise ConfigError("Configuration value for '%s' should be %s, found: %r" %
                              (name, lookup["type"].__name__, val))
        if val < 1 and name.startswith(("nthr_", "par_")):
            raise ConfigError("Configuration value for '%s' must be at least 1, found: %s" % (name, val))
    return val

def get_params(config):
    return {name: get_param(name, config) for name in LOOKUPS}

def get_program(name, config, default=None):
    """Retrieve the executable for an external program.

    Defaults to the program name, found on the PATH.
    """
    return tz.get_in(["program", name], config) or default or name

# ## Loading

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    if not config_file or not os.path.isfile(config_file):
        raise ConfigError("Configuration file '%s' not found." % config_file)
    try:
        with open(config_file) as in_handle:
            config = yaml.safe_load(in_handle)
    except yaml.YAMLError as e:
        raise ConfigError("Could not parse configuration file %s:\n%s" % (config_file, e))
    if not isinstance(config, dict):
        raise ConfigError("Configuration file %s should contain a mapping of settings, found: %s" %
                          (config_file, type(config).__name__))
    return _expand_paths(config)

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def flatten_config(config, prefix=""):
    """Flatten nested configuration keys into underscore joined names.

    {"bcM0001": {"bam": "x.bam"}} -> {"bcM0001_bam": "x.bam"}
    """
    out = {}
    for key, val in config.items():
        name = "%s%s" % (prefix, key)
        if isinstance(val, dict):
            out.update(flatten_config(val, name + "_"))
        else:
            out[name] = val
    return out
