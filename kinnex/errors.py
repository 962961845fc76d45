"""Exceptions raised while organizing and running a Kinnex pipeline.

Every error is fatal to the run. Re-running the pipeline after fixing the
cause skips the stages that already completed.
"""


class KinnexError(Exception):
    pass


class ConfigError(KinnexError):
    """Missing, unparseable or incomplete run configuration.
    """
    pass


class ValidationError(KinnexError):
    """Malformed sample sheet, reported at the first offending line.
    """
    def __init__(self, path, line, reason):
        self.path = path
        self.line = line
        self.reason = reason
        if line is None:
            msg = "%s: %s" % (path, reason)
        else:
            msg = "%s, line %s: %s" % (path, line, reason)
        super(ValidationError, self).__init__(msg)


class MissingInputError(KinnexError):
    """An expected file or directory is absent when a stage starts.
    """
    pass


class ToolFailureError(KinnexError):
    """An external program exited with a non-zero status.
    """
    def __init__(self, cmd, returncode=None, output=""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        msg = "Command failed"
        if returncode is not None:
            msg += " with exit status %s" % returncode
        msg += ": %s" % cmd
        if output:
            msg += "\n" + output
        super(ToolFailureError, self).__init__(msg)


class UnresolvedSampleError(KinnexError):
    """A demultiplexed barcode pair has no usable Bio Sample name.
    """
    pass


class ArchiveError(KinnexError):
    """Nothing available to package into the delivery archive.
    """
    pass
