"""Validate and read the sample sheets linking barcode pairs to Bio Sample names.

A sample sheet is a comma separated file with Unix line endings:

    Barcode,Bio Sample
    Kinnex16S_Fwd_01--Kinnex16S_Rev_13,Sample1
    Kinnex16S_Fwd_02--Kinnex16S_Rev_13,Sample2

Bio Sample names end up in output file names, so they are restricted to
letters, digits, '_', '.' and '-'. Validation stops at the first problem,
reporting the line number and offending content.
"""
import collections
import os
import re

from kinnex.errors import UnresolvedSampleError, ValidationError
from kinnex.log import logger

HEADER = "Barcode,Bio Sample"
VALID_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")

SampleMappingEntry = collections.namedtuple("SampleMappingEntry", ["barcode", "biosample", "line"])


class SampleSheet(object):
    """Parsed sample sheet with exact barcode pair lookup.
    """
    def __init__(self, path, entries):
        self.path = path
        self.entries = tuple(entries)
        self._by_barcode = {e.barcode: e.biosample for e in self.entries}

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __contains__(self, barcode):
        return barcode in self._by_barcode

    @property
    def biosamples(self):
        return [e.biosample for e in self.entries]

    def biosample_for(self, barcode):
        """Resolve the Bio Sample for a barcode pair, suitable for use in a file name.
        """
        biosample = self._by_barcode.get(barcode)
        if biosample is None:
            raise UnresolvedSampleError("Sample name not found in the samplesheet %s for barcode pair %s" %
                                        (os.path.basename(self.path), barcode))
        if not is_valid_name(biosample):
            raise UnresolvedSampleError("Invalid sample name '%s' in %s for barcode pair %s" %
                                        (biosample, os.path.basename(self.path), barcode))
        return biosample

def is_valid_name(name):
    return bool(name) and VALID_NAME.match(name) is not None

def validate(csv_file):
    """Validate a sample sheet, returning the parsed SampleSheet.

    Raises ValidationError at the first problem found.
    """
    logger.info("Validating CSV samplesheet: %s" % os.path.basename(csv_file))
    if not os.path.isfile(csv_file):
        raise ValidationError(csv_file, None, "CSV file not found")
    with open(csv_file, "rb") as in_handle:
        raw = in_handle.read()
    if b"\r" in raw:
        line_num = raw[:raw.index(b"\r")].count(b"\n") + 1
        raise ValidationError(csv_file, line_num,
                              "CSV file contains carriage return characters (^M). "
                              "Please use Unix line endings (LF only)")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(csv_file, raw[:e.start].count(b"\n") + 1,
                              "CSV file is not UTF-8 encoded text")
    lines = text.split("\n")
    header = lines[0].lstrip("\ufeff")
    if header != HEADER:
        raise ValidationError(csv_file, 1, "CSV header must be exactly '%s', found: '%s'" %
                              (HEADER, header))
    entries = []
    barcodes_seen = {}
    biosamples_seen = {}
    for line_num, line in enumerate(lines[1:], start=2):
        if not line:
            continue
        parts = line.split(",")
        if len(parts) != 2:
            raise ValidationError(csv_file, line_num, "must have exactly 2 columns, found %s: '%s'" %
                                  (len(parts), line))
        barcode, biosample = parts
        if not biosample:
            raise ValidationError(csv_file, line_num, "empty Bio Sample column: '%s'" % line)
        if not is_valid_name(biosample):
            raise ValidationError(csv_file, line_num,
                                  "Bio Sample '%s' contains invalid characters. "
                                  "Only a-z, A-Z, 0-9, -, _, . are allowed" % biosample)
        if barcode in barcodes_seen:
            raise ValidationError(csv_file, line_num, "duplicate barcode '%s' (first seen on line %s)" %
                                  (barcode, barcodes_seen[barcode]))
        barcodes_seen[barcode] = line_num
        if biosample in biosamples_seen:
            raise ValidationError(csv_file, line_num,
                                  "duplicate Bio Sample name '%s' (first seen on line %s)" %
                                  (biosample, biosamples_seen[biosample]))
        biosamples_seen[biosample] = line_num
        entries.append(SampleMappingEntry(barcode, biosample, line_num))
    logger.info("CSV validation passed: %s" % os.path.basename(csv_file))
    return SampleSheet(csv_file, entries)

def read(csv_file):
    """Read an already staged sample sheet, re-checking it on the way in.
    """
    return validate(csv_file)
