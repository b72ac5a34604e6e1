"""
Tests for the OpenShelf command line interface.
"""

import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import cli


class TestInitCommand:
    """Tests for `openshelf init`."""

    def test_init(self, monkeypatch, capsys, service, super_admin):
        monkeypatch.setattr(cli, "_get_service", lambda: service)
        code = cli.cmd_init(argparse.Namespace(caller=super_admin.to_hex().upper()))
        assert code == 0
        assert service.is_initialized()
        assert "Catalog initialized" in capsys.readouterr().out

    def test_init_wrong_caller(self, monkeypatch, capsys, service, outsider):
        monkeypatch.setattr(cli, "_get_service", lambda: service)
        code = cli.cmd_init(argparse.Namespace(caller=outsider.to_hex()))
        assert code == 1
        assert "OnlySuperAdmin" in capsys.readouterr().out

    def test_init_bad_hex(self, monkeypatch, capsys, service):
        monkeypatch.setattr(cli, "_get_service", lambda: service)
        assert cli.cmd_init(argparse.Namespace(caller="xyz")) == 1
        assert "InvalidPrincipal" in capsys.readouterr().out


class TestStatusCommand:
    """Tests for `openshelf status`."""

    def test_uninitialized(self, monkeypatch, capsys, service):
        monkeypatch.setattr(cli, "_get_service", lambda: service)
        assert cli.cmd_status(argparse.Namespace(json=False)) == 1
        assert "NotInitialized" in capsys.readouterr().out

    def test_bad_configuration(self, monkeypatch, capsys):
        """Test that a bad setting is reported instead of raised."""
        monkeypatch.setenv("OPENSHELF_RECOVERY_THRESHOLD", "9")
        assert cli.cmd_status(argparse.Namespace(json=False)) == 1
        out = capsys.readouterr().out
        assert "Error [NotConfigured]" in out
        assert "Recovery threshold" in out

    def test_text_output(self, monkeypatch, capsys, initialized_service, super_admin, candidate):
        initialized_service.initiate_transfer(super_admin, candidate)
        monkeypatch.setattr(cli, "_get_service", lambda: initialized_service)

        assert cli.cmd_status(argparse.Namespace(json=False)) == 0
        out = capsys.readouterr().out
        assert "Admins (2/3)" in out
        assert "Curators (1/10)" in out
        assert f"Transfer pending to {candidate.to_hex()}" in out

    def test_json_output(self, monkeypatch, capsys, initialized_service):
        monkeypatch.setattr(cli, "_get_service", lambda: initialized_service)
        assert cli.cmd_status(argparse.Namespace(json=True)) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["transfer"]["pending"] is False
        assert len(data["state"]["admins"]) == 2


class TestInfoCommand:
    """Tests for `openshelf info`."""

    def test_info(self, monkeypatch, capsys, initialized_service):
        monkeypatch.setattr(cli, "_get_service", lambda: initialized_service)
        assert cli.cmd_info(argparse.Namespace()) == 0
        out = capsys.readouterr().out
        assert "initialized: True" in out
        assert "backend_type: MemoryStorage" in out
