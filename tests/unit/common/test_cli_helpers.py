"""Tests for common.cli_helpers module."""

import logging
from unittest.mock import patch

from common.cli_helpers import setup_logging


class TestSetupLogging:
    @patch("common.cli_helpers.logging.basicConfig")
    def test_info_by_default(self, mock_config, monkeypatch) -> None:
        monkeypatch.delenv("DEBUG", raising=False)
        setup_logging()
        assert mock_config.call_args.kwargs["level"] == logging.INFO

    @patch("common.cli_helpers.logging.basicConfig")
    def test_debug_when_env_mentions_libingester(self, mock_config, monkeypatch) -> None:
        monkeypatch.setenv("DEBUG", "other,libingester")
        setup_logging()
        assert mock_config.call_args.kwargs["level"] == logging.DEBUG
