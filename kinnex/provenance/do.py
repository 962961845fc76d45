"""Centralize running of external commands, providing logging and tracking.
"""
import collections
import os
import subprocess

from kinnex import utils
from kinnex.errors import ToolFailureError
from kinnex.log import logger, logger_cl, logger_stdout


def run(cmd, descr=None, unit=None, checks=None, log_error=True,
        log_stdout=False, env=None, cwd=None):
    """Run the provided command, logging details and checking for errors.
    """
    if descr:
        descr = _descr_str(descr, unit)
        logger.info(descr)
    try:
        logger_cl.info("# " + (" ".join(str(x) for x in cmd) if not isinstance(cmd, str) else cmd))
        _do_run(cmd, checks, log_stdout, env=env, cwd=cwd)
    except ToolFailureError as e:
        if log_error:
            logger.error(str(e))
        raise

def _descr_str(descr, unit):
    """Add the processing unit to the description string.
    """
    if unit is not None:
        descr = "{0} : {1}".format(descr, unit.name)
    return descr

def find_bash():
    for test_bash in [utils.which("bash"), "/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if test_bash and os.path.exists(test_bash):
            return test_bash
    raise IOError("Could not find bash in any standard location. Needed for unix pipes")

def _normalize_cmd_args(cmd):
    """Normalize subprocess arguments to handle list commands, string and pipes.
    Piped commands set pipefail and require use of bash to help with debugging
    intermediate errors.
    """
    if isinstance(cmd, str):
        # check for standard or anonymous named pipes
        if cmd.find(" | ") > 0 or cmd.find(">(") >= 0 or cmd.find("<(") >= 0:
            return "set -o pipefail; " + cmd, True, find_bash()
        else:
            return cmd, True, None
    else:
        return [str(x) for x in cmd], False, None

def _do_run(cmd, checks, log_stdout=False, env=None, cwd=None):
    """Perform running and check results, raising errors for issues.
    """
    cmd, shell_arg, executable_arg = _normalize_cmd_args(cmd)
    try:
        s = subprocess.Popen(
            cmd,
            shell=shell_arg,
            executable=executable_arg,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            close_fds=True,
            env=env,
            cwd=cwd,
        )
    except OSError as e:
        raise ToolFailureError(_cmd_str(cmd), None, str(e))
    debug_stdout = collections.deque(maxlen=100)
    with s.stdout:
        for raw in s.stdout:
            line = raw.decode("utf-8", errors="replace")
            if line.rstrip():
                debug_stdout.append(line)
                if log_stdout:
                    logger_stdout.debug(line.rstrip())
                else:
                    logger.debug(line.rstrip())
    exitcode = s.wait()
    if exitcode != 0:
        raise ToolFailureError(_cmd_str(cmd), exitcode, "".join(debug_stdout))
    # Check for problems not identified by shell return codes
    if checks:
        for check in checks:
            if not check():
                raise ToolFailureError(_cmd_str(cmd), exitcode, "External command did not produce expected output")

def _cmd_str(cmd):
    return " ".join(cmd) if not isinstance(cmd, str) else cmd

# checks for validating run completed successfully

def file_nonempty(target_file):
    def check():
        ok = utils.file_exists(target_file)
        if not ok:
            logger.info("Did not find non-empty output file {0}".format(target_file))
        return ok
    return check

def file_exists(target_file):
    def check():
        ok = os.path.exists(target_file)
        if not ok:
            logger.info("Did not find output file {0}".format(target_file))
        return ok
    return check
