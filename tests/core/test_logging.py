"""Tests for finresolve.core.utils.logging."""

import os
import sys

import pytest
from loguru import logger

from finresolve.core.config import Config
from finresolve.core.utils.logging import setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def restore_loguru():
    yield
    logger.remove()
    logger.add(sys.stderr)


def _read(path):
    with open(path) as f:
        return f.read()


class TestSetupLogging:
    def test_file_sink_includes_identity(self, tmp_dir):
        log_file = os.path.join(tmp_dir, "sync.log")
        setup_logging(level="INFO", log_file=log_file)

        logger.bind(identity="user:u1").info("flushed")
        logger.info("no session")
        logger.complete()

        lines = _read(log_file).splitlines()
        assert "| user:u1 | flushed" in lines[0]
        assert "| - | no session" in lines[1]

    def test_level_filters(self, tmp_dir):
        log_file = os.path.join(tmp_dir, "sync.log")
        setup_logging(level="WARNING", log_file=log_file)
        logger.info("quiet")
        logger.warning("loud")
        assert "quiet" not in _read(log_file)
        assert "loud" in _read(log_file)


class TestSetupFromConfig:
    def test_relative_file_goes_under_log_dir(self, tmp_dir):
        config = Config(data_dir=tmp_dir, env_prefix="")
        config.set("logging.file", "finresolve.log")
        config.set("logging.level", "info")

        path = setup_logging_from_config(config)

        assert path == os.path.join(tmp_dir, "logs", "finresolve.log")
        logger.info("hello")
        assert "hello" in _read(path)

    def test_console_only_by_default(self, tmp_dir):
        config = Config(data_dir=tmp_dir, env_prefix="")
        assert setup_logging_from_config(config) is None

    def test_level_override(self, tmp_dir):
        config = Config(data_dir=tmp_dir, env_prefix="")
        config.set("logging.file", os.path.join(tmp_dir, "x.log"))
        setup_logging_from_config(config, level="debug")
        logger.debug("detail")
        assert "detail" in _read(os.path.join(tmp_dir, "x.log"))
