"""
CLI Tests
"""

from unittest.mock import AsyncMock

import pytest

from serverinfo import cli


class TestCli:
    """Test argument dispatch of the command line interface."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "serverinfo" in capsys.readouterr().out

    def test_info_with_credentials(self, monkeypatch):
        get = AsyncMock(return_value=0)
        monkeypatch.setattr(cli, "cmd_get", get)

        code = cli.main([
            "info", "--url", "http://host:9000", "--path", "/metrics",
            "--user", "ops", "--password", "pw",
        ])

        assert code == 0
        get.assert_awaited_once_with("http://host:9000/metrics", ("ops", "pw"))

    def test_info_without_credentials(self, monkeypatch):
        get = AsyncMock(return_value=1)
        monkeypatch.setattr(cli, "cmd_get", get)

        assert cli.main(["info"]) == 1
        get.assert_awaited_once_with("http://localhost:8000/serverInfo", None)

    def test_doc(self, monkeypatch):
        get = AsyncMock(return_value=0)
        monkeypatch.setattr(cli, "cmd_get", get)

        assert cli.main(["doc", "--path", "/metrics"]) == 0
        get.assert_awaited_once_with("http://localhost:8000/metrics/doc")

    def test_unknown_command_exits(self):
        with pytest.raises(SystemExit):
            cli.main(["bogus"])
