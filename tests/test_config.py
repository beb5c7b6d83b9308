"""
Tests for config module.
Tests application configuration and environment variable handling.
"""

from app.config import _parse_csv


class TestConfigEnvironmentVariables:
    """Tests for config environment variable handling."""

    def test_config_loads_without_error(self):
        from app.config import config

        assert config is not None

    def test_drive_defaults(self):
        from app.config import config

        assert config.DRIVE_FOLDER_NAME
        assert config.TOKEN_REFRESH_MARGIN_SECONDS >= 0
        assert config.STREAM_CHUNK_SIZE > 0
        assert config.UPLOAD_CHUNK_SIZE > 0


class TestParseCsv:
    """Tests for _parse_csv."""

    def test_empty(self):
        assert _parse_csv(None) == []
        assert _parse_csv("") == []

    def test_strips_and_drops_blanks(self):
        assert _parse_csv(" https://a.example , ,https://b.example") == [
            "https://a.example",
            "https://b.example",
        ]
