"""Tests for logging setup."""

import logging

import pytest

from accessmatrix.common.logger import get_logger, setup_logger


class TestLogger:
    """Tests for logger configuration."""

    def test_get_logger_namespaced(self):
        assert get_logger("matrix_service").name == "accessmatrix.matrix_service"
        assert get_logger("accessmatrix.audit").name == "accessmatrix.audit"

    def test_setup_logger_file_handler(self, tmp_path):
        logger = setup_logger(
            name="accessmatrix_test_file",
            log_dir=str(tmp_path),
            level="DEBUG",
            file_logging=True,
            console_logging=False,
        )
        try:
            logger.info("hello")
            for handler in logger.handlers:
                handler.flush()

            log_file = tmp_path / "accessmatrix_test_file.log"
            assert log_file.exists()
            assert "[INFO] [accessmatrix_test_file] hello" in log_file.read_text()
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_setup_logger_no_duplicate_handlers(self):
        name = "accessmatrix_test_dupes"
        logger = setup_logger(name=name)
        try:
            count = len(logger.handlers)
            assert setup_logger(name=name) is logger
            assert len(logger.handlers) == count
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            setup_logger(name="accessmatrix_test_invalid", level="LOUD")

    def test_service_logs_rejections(self, matrix_service, caplog):
        from accessmatrix.core.errors import ValidationFailed

        with caplog.at_level(logging.WARNING, logger="accessmatrix"):
            with pytest.raises(ValidationFailed):
                matrix_service.reset_to_defaults("home", "member")

        assert "privilege_escalation" in caplog.text
