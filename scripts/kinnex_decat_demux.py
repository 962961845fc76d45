#!/usr/bin/env python -Es
"""Deconcatenate and demultiplex a PacBio Revio multiplexed Kinnex 16S run.

Runs skera and lima on every barcoded HiFi BAM listed in the configuration,
converts demultiplexed reads to FASTQ named after their Bio Sample, merges
samples across barcoded BAMs and packages the delivery with its md5sum.
All parameters are externalised in the YAML configuration file.

Re-running with the same configuration resumes after the last completed
step.

Usage:
  kinnex_decat_demux.py -c <config.yaml>
  kinnex_decat_demux.py verify <archive.tar.gz.md5>
"""
import argparse
import sys

from kinnex import log
from kinnex.log import logger
from kinnex.pipeline import archive
from kinnex.pipeline.main import run_main
from kinnex.pipeline import version

def main(**kwargs):
    if kwargs.get("verify"):
        sys.exit(verify_main(kwargs["md5_file"]))
    sys.exit(run_main(kwargs["config_file"], check_programs=not kwargs.get("skip_program_check")))

def verify_main(md5_file):
    handler = log.setup_local_logging(None)
    try:
        ok = archive.verify_archive(md5_file)
    except (IOError, ValueError) as e:
        logger.error(str(e))
        ok = False
    finally:
        handler.pop_application()
        handler.close()
    return 0 if ok else 1

def parse_cl_args(in_args):
    """Parse input commandline arguments, handling the verify sub-command.
    """
    description = "Kinnex 16S deconcatenation and demultiplexing of a Revio run."
    parser = argparse.ArgumentParser(description=description)
    if len(in_args) > 0 and in_args[0] == "verify":
        subparsers = parser.add_subparsers(help="Supplemental commands")
        sub = subparsers.add_parser("verify", help="Check a delivery archive against its md5 file")
        sub.add_argument("md5_file", help="md5sum file written next to the archive")
        args = parser.parse_args(in_args)
        return {"verify": True, "md5_file": args.md5_file}
    parser.add_argument("-c", "--config", dest="config_file",
                        help="Path to the YAML configuration file (required)")
    parser.add_argument("--skip-program-check", action="store_true", default=False,
                        help="Do not check external programs are available before starting")
    parser.add_argument("-v", "--version", help="Print current version",
                        action="store_true")
    args = parser.parse_args(in_args)
    if args.version:
        print(version.__version__)
        sys.exit()
    if not args.config_file:
        parser.error("Configuration file is required. Please use the -c option.")
    return {"config_file": args.config_file,
            "skip_program_check": args.skip_program_check}

if __name__ == "__main__":
    kwargs = parse_cl_args(sys.argv[1:])
    main(**kwargs)
