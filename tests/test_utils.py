"""Tests for helper utilities."""

from __future__ import annotations

import codecs
import io
import logging
from pathlib import Path

import pytest

from outliner.utils import file_io
from outliner.utils import logging as logging_utils


def test_read_text_strips_bom_and_normalizes_newlines(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(codecs.BOM_UTF8 + "# Title\r\nbody\rmore\n".encode("utf-8"))

    assert file_io.read_text(target) == "# Title\nbody\nmore\n"


def test_read_text_detects_utf16(tmp_path: Path) -> None:
    target = tmp_path / "notes.org"
    target.write_bytes(codecs.BOM_UTF16_LE + "* Héading\n".encode("utf-16-le"))

    assert file_io.read_text(target) == "* Héading\n"


def test_read_text_falls_back_to_latin1(tmp_path: Path) -> None:
    target = tmp_path / "legacy.md"
    target.write_bytes("# Caf\xe9\n".encode("latin-1"))

    assert file_io.read_text(target, encoding="latin-1") == "# Café\n"
    assert file_io.read_text(target).startswith("# Caf")


def test_read_text_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        file_io.read_text(tmp_path / "absent.md")


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


def test_setup_logging_writes_package_records_to_rotating_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(logging.INFO, log_dir=log_dir, force=True)
    logging.getLogger("outliner.tests").info("Logging smoke test")
    _flush(logging.getLogger("outliner"))

    assert log_path == log_dir / "outliner.log"
    assert logging_utils.get_log_path() == log_path
    assert "Logging smoke test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("markdown_it").level == logging.WARNING


def test_setup_logging_echoes_warnings_to_stream(tmp_path: Path) -> None:
    stream = io.StringIO()
    logging_utils.setup_logging(logging.INFO, log_dir=tmp_path, stream=stream, force=True)
    logger = logging.getLogger("outliner.tests")

    logger.info("only in the file")
    logger.warning("Heading %r not found", "Nowhere")
    _flush(logging.getLogger("outliner"))

    assert stream.getvalue() == "outliner: WARNING: Heading 'Nowhere' not found\n"


def test_setup_logging_replaces_handlers_only_when_forced(tmp_path: Path) -> None:
    package_logger = logging.getLogger("outliner")
    first = logging_utils.setup_logging(log_dir=tmp_path / "one", stream=io.StringIO(), force=True)
    handler_count = len(package_logger.handlers)

    assert logging_utils.setup_logging(log_dir=tmp_path / "two") == first
    assert len(package_logger.handlers) == handler_count

    second = logging_utils.setup_logging(log_dir=tmp_path / "two", force=True)

    assert second == tmp_path / "two" / "outliner.log"
    assert len(package_logger.handlers) == handler_count - 1


def test_setup_logging_honours_env_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(logging_utils.LOG_DIR_ENV, str(tmp_path / "env-logs"))

    log_path = logging_utils.setup_logging(force=True)

    assert log_path.parent == tmp_path / "env-logs"
    assert log_path.exists()
