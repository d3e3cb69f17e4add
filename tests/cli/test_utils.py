"""Tests for CLI utility functions."""

import io
from argparse import Namespace
from unittest.mock import patch

from interpkit.cli.utils import (
    create_manager,
    print_error,
    print_warning,
    progress_printer,
    resolve_project_root,
    safe_print,
)
from interpkit.core.download import DownloadProgress


class TestCreateManager:
    def test_uses_home_option(self, tmp_path):
        manager = create_manager(Namespace(home=tmp_path))

        assert manager.layout.root == tmp_path
        assert manager.registry.registry_path == tmp_path / "registry.json"

    def test_falls_back_to_environment(self, isolated_home):
        manager = create_manager(Namespace(home=None))

        assert manager.layout.root == isolated_home


class TestResolveProjectRoot:
    def test_default_is_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert resolve_project_root() == tmp_path.resolve()

    def test_relative_path(self, tmp_path, monkeypatch):
        (tmp_path / "proj").mkdir()
        monkeypatch.chdir(tmp_path)

        assert resolve_project_root("proj") == (tmp_path / "proj").resolve()


class TestOutput:
    def test_print_error(self, capsys):
        """Test error message with details."""
        print_error("Failed to fetch toolchain", "No toolchain matches '3.8'")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == "ERROR: Failed to fetch toolchain\n  No toolchain matches '3.8'\n"

    def test_print_error_without_details(self, capsys):
        print_error("Something went wrong")

        assert capsys.readouterr().err == "ERROR: Something went wrong\n"

    def test_print_warning(self, capsys):
        print_warning("Skipping catalog 'pypy'")

        assert capsys.readouterr().err == "WARNING: Skipping catalog 'pypy'\n"

    def test_safe_print_replaces_unencodable(self):
        stream = io.TextIOWrapper(io.BytesIO(), encoding="ascii")

        safe_print("café", file=stream)

        stream.flush()
        assert stream.buffer.getvalue() == b"caf?\n"


class TestProgressPrinter:
    def test_quiet_disables_progress(self):
        assert progress_printer(quiet=True) is None

    def test_non_tty_disables_progress(self):
        with patch("interpkit.cli.utils.sys.stderr") as stderr:
            stderr.isatty.return_value = False
            assert progress_printer() is None

    def test_reports_to_stderr(self):
        with patch("interpkit.cli.utils.sys.stderr") as stderr:
            stderr.isatty.return_value = True
            report = progress_printer()
            report(
                DownloadProgress(
                    bytes_downloaded=1024,
                    total_bytes=1024,
                    percentage=100.0,
                    speed_bps=512.0,
                    eta_seconds=0,
                )
            )

        written = "".join(call.args[0] for call in stderr.write.call_args_list)
        assert written.startswith("\r")
        assert written.endswith("\n")
