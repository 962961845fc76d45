"""Helpful utilities for building the pipeline.
"""
import fnmatch
import os
import shutil
import time


def safe_makedir(dname):
    """Make a directory if it doesn't exist, handling concurrent race conditions.
    """
    if not dname:
        return dname
    num_tries = 0
    max_tries = 5
    while not os.path.exists(dname):
        # we could get an error here if multiple processes are creating
        # the directory at the same time. Grr, concurrency.
        try:
            os.makedirs(dname)
        except OSError:
            if num_tries > max_tries:
                raise
            num_tries += 1
            time.sleep(2)
    return dname

def file_exists(fname):
    """Check if a file exists and is non-empty.
    """
    try:
        return fname and os.path.exists(fname) and os.path.getsize(fname) > 0
    except OSError:
        return False

def is_readable_file(fname):
    """Check for a regular file we are allowed to read, empty or not.
    """
    return bool(fname) and os.path.isfile(fname) and os.access(fname, os.R_OK)

def get_size(path):
    """ Returns the size in bytes if `path` is a file,
        or the size of all files in `path` if it's a directory.
        Analogous to `du -s`.
    """
    if os.path.isfile(path):
        return os.path.getsize(path)
    return sum(get_size(os.path.join(path, f)) for f in os.listdir(path))

def human_size(nbytes):
    for unit in ["B", "K", "M", "G", "T"]:
        if nbytes < 1024.0 or unit == "T":
            break
        nbytes /= 1024.0
    return "%.1f%s" % (nbytes, unit)

def add_full_path(dirname, basedir=None):
    if basedir is None:
        basedir = os.getcwd()
    if not dirname.startswith("/"):
        dirname = os.path.join(basedir, dirname)
    return dirname

def remove_safe(f):
    try:
        if os.path.isdir(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass

def locate(pattern, root=os.curdir):
    '''Locate all files matching supplied filename pattern in and below
    supplied root directory.'''
    for path, dirs, files in os.walk(os.path.abspath(root)):
        dirs.sort()
        for filename in sorted(fnmatch.filter(files, pattern)):
            yield os.path.join(path, filename)

def which(program, env=None):
    """ returns the path to an executable or None if it can't be found"""
    if env is None:
        env = os.environ.copy()

    def is_exe(fpath):
        return os.path.isfile(fpath) and os.access(fpath, os.X_OK)

    fpath, fname = os.path.split(program)
    if fpath:
        if is_exe(program):
            return program
    else:
        for path in env.get("PATH", "").split(os.pathsep):
            exe_file = os.path.join(path, program)
            if is_exe(exe_file):
                return exe_file
    return None

def get_abspath(path, pardir=None):
    if pardir is None:
        pardir = os.getcwd()
    path = os.path.expandvars(path)
    return os.path.normpath(os.path.join(pardir, path))

# ## Durability

def fsync_dir(dname):
    """Flush directory entries (new names, renames) to disk.
    """
    fd = os.open(dname, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)

def fsync_tree(root):
    """fsync every file and directory below root, so later markers are trustworthy.
    """
    if not os.path.isdir(root):
        return
    for path, dirs, files in os.walk(root):
        for fname in files:
            full = os.path.join(path, fname)
            if os.path.islink(full) or not os.path.isfile(full):
                continue
            with open(full, "rb") as in_handle:
                os.fsync(in_handle.fileno())
        fsync_dir(path)

def write_durable(fname, content):
    """Write a small file atomically: temporary file, fsync, rename, fsync directory.
    """
    dname = os.path.dirname(os.path.abspath(fname))
    safe_makedir(dname)
    tmp_file = fname + ".tmp"
    with open(tmp_file, "w") as out_handle:
        out_handle.write(content)
        out_handle.flush()
        os.fsync(out_handle.fileno())
    os.rename(tmp_file, fname)
    fsync_dir(dname)
    return fname
