"""Handle file based transactions allowing safe restarts at any point.

To handle interrupts, this defines output files written to temporary
locations during processing and moved to the final location when finished.
This ensures output files will be complete independent of method of
interruption.
"""
import contextlib
import os
import shutil
import tempfile

from kinnex import utils


DEFAULT_TMP = 'kinnextx'


@contextlib.contextmanager
def tx_tmpdir(run=None, base_dir=None, remove=True):
    """Context manager to create and remove a transactional temporary directory.

    Uses the run output folder when a Run is passed, otherwise base_dir or
    the current directory. A unique directory is created below a shared
    `kinnextx` folder to prevent collisions.
    """
    base_dir = base_dir or os.getcwd()
    tmpdir_base = utils.get_abspath(_get_base_tmpdir(run, base_dir))
    utils.safe_makedir(tmpdir_base)
    tmp_dir = tempfile.mkdtemp(dir=tmpdir_base)
    try:
        yield tmp_dir
    finally:
        if remove:
            utils.remove_safe(tmp_dir)
        # drop the shared folder once the last transaction finishes
        if remove and os.path.isdir(tmpdir_base) and not os.listdir(tmpdir_base):
            utils.remove_safe(tmpdir_base)


def _get_base_tmpdir(run, fallback_base_dir):
    if run is not None and getattr(run, "outfolder", None):
        return os.path.join(run.outfolder, DEFAULT_TMP)
    return os.path.join(fallback_base_dir, DEFAULT_TMP)


@contextlib.contextmanager
def file_transaction(*run_and_files):
    """Wrap file generation in a transaction, moving to output if finishes.

    The initial argument can be the Run, used to place temporary files on
    the same filesystem as the outputs.
    """
    with _flatten_plus_safe(run_and_files) as (safe_names, orig_names):
        # remove any half-finished transactions
        for safe in safe_names:
            utils.remove_safe(safe)
        # no need for try except block here,
        # because exceptions and tmp dir removal
        # are handled by tx_tmpdir contextmanager
        if len(safe_names) == 1:
            yield safe_names[0]
        else:
            yield tuple(safe_names)

        for safe, orig in zip(safe_names, orig_names):
            if os.path.exists(safe):
                _move_file_with_sizecheck(safe, orig)


def _move_file_with_sizecheck(tx_file, final_file):
    """Move transaction file to final location,
       with size checks avoiding failed transfers.

       Creates an empty file with '.kinnextmp' extension in the destination
       location, which serves as a flag. If a file like that is present,
       it means that transaction didn't finish successfully.
    """
    utils.safe_makedir(os.path.dirname(final_file))
    if os.path.isdir(final_file) and os.path.isdir(tx_file):
        utils.remove_safe(final_file)

    tmp_file = final_file + ".kinnextmp"
    open(tmp_file, 'wb').close()

    want_size = utils.get_size(tx_file)
    shutil.move(tx_file, final_file)
    transfer_size = utils.get_size(final_file)

    if want_size != transfer_size:
        raise IOError(
            'distributed.transaction.file_transaction: File copy error: '
            'file or directory on temporary storage ({}) size {} bytes '
            'does not equal size of file or directory after transfer to '
            'final storage ({}) size {} bytes'.format(
                tx_file, want_size, final_file, transfer_size))
    utils.remove_safe(tmp_file)


@contextlib.contextmanager
def _flatten_plus_safe(run_and_files):
    """Flatten names of files and create temporary file names.
    """
    run, rollback_files = _normalize_args(run_and_files)
    with tx_tmpdir(run) as tmpdir:
        tx_files = [os.path.join(tmpdir, os.path.basename(f))
                    for f in rollback_files]
        yield tx_files, rollback_files


def _normalize_args(run_and_files):
    run, files = _get_args(run_and_files)
    rollback_files = [f for f in _flatten(files) if f]
    return (run, rollback_files)


def _get_args(run_and_files):
    if run_and_files and hasattr(run_and_files[0], "outfolder"):
        return run_and_files[0], run_and_files[1:]
    return None, run_and_files


def _flatten(iterable):
    for elem in iterable:
        if isinstance(elem, (tuple, list)):
            for i in elem:
                yield i
        else:
            yield elem
