"""Tests for pkgmeta.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from pkgmeta.logging import configure_logging, get_logger


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_component_loggers_share_the_package_hierarchy() -> None:
    assert get_logger().name == "pkgmeta"
    assert get_logger("context").name == "pkgmeta.context"
    assert get_logger("attributes.csharp").parent is not None


def test_verbose_file_sink_records_component_names(tmp_path: Path) -> None:
    log_file = tmp_path / "pkgmeta.log"
    logger = configure_logging(verbose=True, log_file=log_file)
    try:
        get_logger("context").debug("Semantic version taken from PackageVersion")
        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
    finally:
        _reset(logger)

    assert "DEBUG pkgmeta.context: Semantic version taken from PackageVersion" in content


def test_reconfiguring_replaces_handlers() -> None:
    configure_logging()
    logger = configure_logging(verbose=False)
    try:
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
    finally:
        _reset(logger)
