"""Tests for structured logging configuration."""

import json
import logging

import structlog

from cli.logging_config import setup_logging
from shared_types import EntityKind, EntityRef, RelationType


class TestLoggingConfig:
    """Test structlog setup modes."""

    def test_level_filtering(self):
        """Log level filters lower messages."""
        setup_logging(json_mode=False, level="WARNING")
        root = logging.getLogger()
        assert root.level == logging.WARNING

    def test_default_level_is_info(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_single_handler(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_json_mode_renders_domain_values(self, capsys):
        setup_logging(json_mode=True, level="DEBUG")
        logger = structlog.get_logger("board.test")
        logger.info(
            "relation.created",
            source=EntityRef(EntityKind.TASK, "a"),
            relation_type=RelationType.BLOCKS,
        )
        err = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(err)
        assert payload["event"] == "relation.created"
        assert payload["source"] == "task:a"
        assert payload["relation_type"] == "blocks"
        assert payload["level"] == "info"
