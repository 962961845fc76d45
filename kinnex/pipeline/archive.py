"""Package delivery folders into a compressed archive with its md5 checksum.

The checksum is computed from the bytes as they are written to the
archive, in the same pass, so archive and checksum always describe the
same data. The .md5 file uses md5sum format and can be checked with
`md5sum -c` or verify_archive.
"""
import hashlib
import os
import tarfile

from kinnex import utils
from kinnex.distributed.transaction import file_transaction
from kinnex.errors import ArchiveError
from kinnex.log import logger
from kinnex.pipeline import run_info

CHUNK_SIZE = 1024 * 1024


class HashingWriter(object):
    """File-like writer passing every byte to an output handle and a hash.
    """
    def __init__(self, out_handle, hasher=None):
        self.out_handle = out_handle
        self.hasher = hasher or hashlib.md5()
        self.size = 0

    def write(self, data):
        self.out_handle.write(data)
        self.hasher.update(data)
        self.size += len(data)
        return len(data)

    def flush(self):
        self.out_handle.flush()

    def hexdigest(self):
        return self.hasher.hexdigest()

def get_archive_file(run):
    return os.path.join(run.outfolder, "%s.tar.gz" % run.movie)

def get_md5_file(archive_file):
    return archive_file + ".md5"

def create_archive(run):
    """Create <movie>.tar.gz from the QC and FASTQ delivery folders.
    """
    to_archive = [run.params[k] for k in ["qc_results", "final_results"]
                  if os.path.isdir(run_info.get_dir(run, k))]
    if not to_archive:
        raise ArchiveError("Neither %s nor %s directories exist in %s, nothing to archive" %
                           (run.params["qc_results"], run.params["final_results"], run.outfolder))
    archive_file = get_archive_file(run)
    logger.info("Creating archive %s with directories: %s" %
                (os.path.basename(archive_file), ", ".join(to_archive)))
    md5 = write_archive(run, archive_file, to_archive)
    logger.info("Archive size: %s" % utils.human_size(os.path.getsize(archive_file)))
    logger.info("MD5: %s  %s" % (md5, os.path.basename(archive_file)))
    return archive_file

def write_archive(run, archive_file, subdirs):
    """Stream a gzip'ed tar of subdirs (relative to outfolder) while hashing it.
    """
    md5_file = get_md5_file(archive_file)
    with file_transaction(run, archive_file, md5_file) as (tx_archive, tx_md5):
        with open(tx_archive, "wb") as out_handle:
            writer = HashingWriter(out_handle)
            with tarfile.open(fileobj=writer, mode="w|gz") as tar:
                for subdir in subdirs:
                    tar.add(os.path.join(run.outfolder, subdir), arcname=subdir)
            out_handle.flush()
            os.fsync(out_handle.fileno())
        md5 = writer.hexdigest()
        with open(tx_md5, "w") as out_handle:
            out_handle.write("%s  %s\n" % (md5, os.path.basename(archive_file)))
            out_handle.flush()
            os.fsync(out_handle.fileno())
    utils.fsync_dir(os.path.dirname(archive_file))
    return md5

def file_md5(fname):
    hasher = hashlib.md5()
    with open(fname, "rb") as in_handle:
        for chunk in iter(lambda: in_handle.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()

def read_md5_file(md5_file):
    """Parse an md5sum style file into (checksum, file name) pairs.
    """
    out = []
    with open(md5_file) as in_handle:
        for line in in_handle:
            line = line.rstrip("\n")
            if not line.strip():
                continue
            parts = line.split(None, 1)
            if len(parts) != 2:
                raise ValueError("Unexpected line in md5 file %s: %s" % (md5_file, line))
            checksum, fname = parts
            out.append((checksum.lower(), fname.lstrip("*")))
    return out

def verify_archive(md5_file):
    """Check files listed in an md5sum file, resolved relative to its folder.

    Returns True when every listed file exists and matches.
    """
    base_dir = os.path.dirname(os.path.abspath(md5_file))
    entries = read_md5_file(md5_file)
    ok = bool(entries)
    for checksum, fname in entries:
        full = os.path.join(base_dir, fname)
        if not os.path.exists(full):
            logger.error("%s: FAILED open or read" % fname)
            ok = False
        elif file_md5(full) != checksum:
            logger.error("%s: FAILED" % fname)
            ok = False
        else:
            logger.info("%s: OK" % fname)
    return ok
