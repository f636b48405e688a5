"""
test_logging.py — Log formatting, handler setup and request-outcome levels.
"""

import json
import logging

import pytest

from otgtrack.services.logging_config import JSONFormatter, setup_logging
from otgtrack.services.middleware import SLOW_REQUEST_MS, _outcome_level


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def _record(msg="hello", **extra):
    record = logging.LogRecord("otgtrack-test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ===========================================================================
# JSONFormatter
# ===========================================================================

class TestJSONFormatter:

    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "otgtrack-test"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_request_fields_are_copied(self):
        entry = json.loads(JSONFormatter().format(
            _record(request_id="abc", http_status=404, duration_ms=1.5)
        ))
        assert entry["request_id"] == "abc"
        assert entry["http_status"] == 404
        assert entry["duration_ms"] == 1.5

    def test_missing_fields_are_omitted(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert "request_id" not in entry
        assert "exception" not in entry

    def test_accents_kept_verbatim(self):
        line = JSONFormatter().format(_record("Cliché reçu"))
        assert "Cliché reçu" in line


# ===========================================================================
# setup_logging
# ===========================================================================

class TestSetupLogging:

    def test_stdout_only_by_default(self, restore_root_logger):
        handlers = setup_logging(level="DEBUG")
        assert len(handlers) == 1
        assert logging.getLogger().level == logging.DEBUG
        assert isinstance(handlers[0].formatter, JSONFormatter)

    def test_text_format(self, restore_root_logger):
        handlers = setup_logging(json_output=False)
        assert not isinstance(handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_log_file_receives_lines(self, restore_root_logger, tmp_path):
        path = tmp_path / "otgtrack.log"
        handlers = setup_logging(log_file=str(path))
        assert len(handlers) == 2
        logging.getLogger("otgtrack-test").info("dossier saved")
        for handler in handlers:
            handler.flush()
        entry = json.loads(path.read_text(encoding="utf-8").splitlines()[-1])
        assert entry["message"] == "dossier saved"

    def test_noisy_libraries_quieted(self, restore_root_logger):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING


# ===========================================================================
# Request outcome levels
# ===========================================================================

class TestOutcomeLevel:

    def test_success_is_info(self):
        assert _outcome_level(200, 5.0) == logging.INFO

    def test_client_error_is_warning(self):
        assert _outcome_level(409, 5.0) == logging.WARNING

    def test_server_error_is_error(self):
        assert _outcome_level(500, 5.0) == logging.ERROR

    def test_slow_success_is_warning(self):
        assert _outcome_level(200, SLOW_REQUEST_MS) == logging.WARNING
