import os

from kinnex import log


def _read_log(out_dir):
    with open(log.get_run_log(out_dir)) as in_handle:
        return in_handle.read()


def test_run_log_captures_messages_and_commands(tmp_path):
    handler = log.setup_local_logging(str(tmp_path))
    try:
        log.logger.info("Running lima demultiplexing : unit01")
        log.logger_cl.info("# lima skera.bam primers.fasta HiFi.bam")
        log.logger.debug("tool output line")
    finally:
        handler.pop_application()
        handler.close()
    content = _read_log(str(tmp_path))
    assert "Running lima demultiplexing : unit01" in content
    assert "# lima skera.bam" in content
    assert "tool output line" in content


def test_run_log_truncated_per_invocation(tmp_path):
    for msg in ["first run", "second run"]:
        handler = log.setup_local_logging(str(tmp_path))
        log.logger.info(msg)
        handler.pop_application()
        handler.close()
    content = _read_log(str(tmp_path))
    assert "first run" not in content
    assert "second run" in content


def test_console_only_logging(tmp_path):
    handler = log.setup_local_logging(None)
    log.logger.info("no output folder yet")
    handler.pop_application()
    handler.close()
    assert not os.path.exists(log.get_run_log(str(tmp_path)))
