"""Unit tests for the command-line interface."""

from unittest.mock import AsyncMock, patch

import yaml
from typer.testing import CliRunner

from chatshot import __version__
from chatshot.cli.main import app
from chatshot.errors import BlockedNavigationError

runner = CliRunner()


class TestCli:
    """Tests for the chatshot commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_config(self, tmp_path):
        path = tmp_path / "config" / "config.yaml"

        result = runner.invoke(app, ["init-config", str(path)])

        assert result.exit_code == 0
        assert yaml.safe_load(path.read_text())["server"]["port"] == 3000

    def test_init_config_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("headless: false\n")

        result = runner.invoke(app, ["init-config", str(path)])

        assert result.exit_code == 1
        assert path.read_text() == "headless: false\n"

    def test_serve_with_missing_config(self, tmp_path):
        result = runner.invoke(app, ["serve", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 2

    def test_capture_moves_file(self, tmp_path):
        produced = tmp_path / "produced.png"
        produced.write_bytes(b"png")
        output = tmp_path / "out" / "page.png"

        with patch("chatshot.cli.main.BrowserSession") as session_cls, \
             patch("chatshot.cli.main.GenericCaptureEngine") as engine_cls:
            session_cls.return_value.init = AsyncMock()
            session_cls.return_value.close = AsyncMock()
            engine_cls.return_value.capture_screenshot = AsyncMock(return_value=produced)

            result = runner.invoke(app, ["capture", "https://example.com", "-o", str(output)])

        assert result.exit_code == 0
        assert output.read_bytes() == b"png"
        assert not produced.exists()
        session_cls.return_value.close.assert_called_once()

    def test_capture_failure(self, tmp_path):
        with patch("chatshot.cli.main.BrowserSession") as session_cls, \
             patch("chatshot.cli.main.GenericCaptureEngine") as engine_cls:
            session_cls.return_value.init = AsyncMock()
            session_cls.return_value.close = AsyncMock()
            engine_cls.return_value.capture_screenshot = AsyncMock(
                side_effect=BlockedNavigationError("file:///etc/passwd")
            )

            result = runner.invoke(app, ["capture", "file:///etc/passwd", "-o", str(tmp_path / "x.png")])

        assert result.exit_code == 1
        session_cls.return_value.close.assert_called_once()
