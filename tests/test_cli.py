"""
Tests for the command line interface
"""
import json

import pytest

from epg_catalog import __main__ as cli
from epg_catalog.config import settings


class TestCli:
    def test_build_writes_to_output(self, monkeypatch, capsys, tmp_path):
        target = str(tmp_path / "out.json")
        monkeypatch.setattr(settings, "catalog_output_path", settings.catalog_output_path)

        async def fake_fetch():
            return {"status": "success", "output_path": settings.catalog_output_path}

        monkeypatch.setattr(cli, "fetch_and_process", fake_fetch)

        assert cli.main(["build", "-o", target]) == 0
        assert json.loads(capsys.readouterr().out)["output_path"] == target

    def test_filter_error_exit_code(self, monkeypatch, capsys):
        async def failing_filter():
            return {"error": "Channel allow-list is empty"}

        monkeypatch.setattr(cli, "filter_and_process", failing_filter)

        assert cli.main(["filter"]) == 1
        assert "allow-list is empty" in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.main([])
