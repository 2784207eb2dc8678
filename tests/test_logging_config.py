# tests/test_logging_config.py
import logging

import pytest

from feature_pipeline.utils.logging_config import (
    PipelineLogger, configure_third_party_logging, get_logger, setup_logging
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggingConfig:

    def test_setup_writes_log_file(self, tmp_path, restore_root_logger):
        """File logging creates the directory and a timestamped log file"""
        log_dir = tmp_path / "logs"

        logger = setup_logging(log_level="DEBUG", log_dir=str(log_dir), log_to_console=False)
        logger.debug("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        files = list(log_dir.glob("feature_pipeline_*.log"))
        assert len(files) == 1
        assert "hello" in files[0].read_text()

    def test_console_only_creates_no_directory(self, tmp_path, restore_root_logger):
        setup_logging(log_dir=str(tmp_path / "logs"), log_to_file=False)
        assert not (tmp_path / "logs").exists()

    def test_third_party_loggers(self):
        configure_third_party_logging()
        assert logging.getLogger("langgraph").level == logging.WARNING

    def test_get_logger_prefix(self):
        assert get_logger("pipeline").name == "feature_pipeline.pipeline"
        assert get_logger("feature_pipeline.agents").name == "feature_pipeline.agents"

    def test_pipeline_logger_reports_failure(self, caplog):
        """A failing step is logged and the exception still propagates"""
        with caplog.at_level(logging.INFO):
            with pytest.raises(RuntimeError):
                with PipelineLogger("encoding step") as step:
                    step.log_metric("total_dim", 12)
                    raise RuntimeError("boom")

        assert "Metric - total_dim: 12" in caplog.text
        assert "=== Failed encoding step" in caplog.text
