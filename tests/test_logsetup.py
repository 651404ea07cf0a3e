import json
import logging
import os

from slslog.logsetup import default_logger, generate_inner_logger


def _close(logger):
    for handler in logger.handlers:
        handler.close()


def test_empty_file_name_logs_everything_plainly(capsys):
    logger = generate_inner_logger("", "", "", "", "error")
    logger.debug("hello")
    assert capsys.readouterr().out == "level=debug msg=hello\n"


def test_json_to_stdout_with_level_filter(capsys):
    logger = generate_inner_logger("app.log", "true", "", "", "warn")
    logger.info("dropped")
    logger.warning("kept")
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert set(record) == {"caller", "level", "msg", "time"}
    assert record["level"] == "warn"
    assert record["msg"] == "kept"
    assert record["caller"].startswith("test_logsetup.py:")
    assert record["time"].endswith("Z")


def test_logfmt_to_stdout_quotes_and_context(capsys):
    logger = generate_inner_logger("app.log", "false", "", "", "")
    logger.debug("dropped")
    logger.error("two words", extra={"fields": {"ok": True}})
    out = capsys.readouterr().out.strip()
    assert out.startswith("time=")
    assert " caller=test_logsetup.py:" in out
    assert "level=error" in out
    assert 'msg="two words"' in out
    assert out.endswith("ok=true")


def test_unknown_level_defaults_to_info():
    logger = generate_inner_logger("app.log", "", "", "", "verbose")
    assert logger.getEffectiveLevel() == logging.INFO
    assert logger.isEnabledFor(logging.DEBUG) is False


def test_stdout_name_writes_rotating_json_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger = generate_inner_logger("stdout", "false", "0", "0", "info")
    handler = logger.handlers[0]
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 10
    logger.info("to file")
    _close(logger)
    record = json.loads((tmp_path / "stdout").read_text(encoding="utf-8").strip())
    assert record["msg"] == "to file"
    assert record["level"] == "info"


def test_stdout_name_with_json_flag_writes_logfmt(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger = generate_inner_logger("stdout", "true", "", "", "info")
    assert logger.getEffectiveLevel() == logging.INFO
    assert os.path.basename(logger.handlers[0].baseFilename) == "stdout"
    logger.info("plain")
    _close(logger)
    text = (tmp_path / "stdout").read_text(encoding="utf-8").strip()
    assert text.startswith("time=")
    assert text.endswith("level=info msg=plain")


def test_default_logger_reads_environment(monkeypatch):
    monkeypatch.setenv("SLSLOG_LOG_FILE_NAME", "app.log")
    monkeypatch.setenv("SLSLOG_ALLOW_LOG_LEVEL", "error")
    logger = default_logger()
    assert logger.getEffectiveLevel() == logging.ERROR


def test_default_logger_without_environment(monkeypatch):
    for name in (
        "SLSLOG_LOG_FILE_NAME",
        "SLSLOG_IS_JSON_TYPE",
        "SLSLOG_LOG_MAX_SIZE",
        "SLSLOG_LOG_FILE_BACKUP_COUNT",
        "SLSLOG_ALLOW_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    logger = default_logger()
    assert logger.getEffectiveLevel() == logging.DEBUG