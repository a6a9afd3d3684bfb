"""Tests for the click command-line interface."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from tests.support import completed, make_config, write_os_release
from traefik_setup import __version__
from traefik_setup.cli import cli, main
from traefik_setup.templates import render_dynamic_config, render_static_config
from traefik_setup.ui import logger, open_log_file, setup_logging


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = make_config(self.temp_dir)
        self.log_file = str(self.temp_dir / "setup.log")
        self.runner = CliRunner()

    def tearDown(self):
        setup_logging(None)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run_main(self, *args: str) -> int:
        return main(["--log-file", self.log_file, *args], config=self.config)

    def write_configs(self):
        self.config.CONFIG_DIR.mkdir(parents=True)
        self.config.static_config.write_text(render_static_config(self.config))
        self.config.dynamic_config.write_text(render_dynamic_config(self.config))


class TestGroup(CliTestCase):
    def test_version(self):
        result = self.runner.invoke(cli, ["--version"], obj=self.config)
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_unknown_command_exits_1(self):
        self.assertEqual(self.run_main("upgrade"), 1)

    def test_missing_command_exits_1(self):
        self.assertEqual(self.run_main(), 1)

    def test_log_file_is_written(self):
        with patch("traefik_setup.service.run_command", return_value=completed("inactive\n", 3)):
            self.assertEqual(self.run_main("status"), 0)
        self.assertTrue(Path(self.log_file).is_file())

    def test_deferred_records_reach_log_file(self):
        setup_logging(self.log_file, defer=True)
        logger.info("recorded before the file exists")
        self.assertFalse(Path(self.log_file).exists())

        self.assertTrue(open_log_file())
        logger.info("recorded afterwards")
        text = Path(self.log_file).read_text()
        self.assertLess(
            text.index("recorded before the file exists"), text.index("recorded afterwards")
        )
        self.assertFalse(open_log_file())

    @patch("traefik_setup.preflight.os.geteuid", return_value=1000)
    def test_no_log_file_without_root(self, _geteuid):
        self.assertEqual(self.run_main("uninstall", "--yes"), 1)
        self.assertFalse(Path(self.log_file).exists())

    @patch("traefik_setup.preflight.os.geteuid", return_value=0)
    def test_no_log_file_on_unsupported_system(self, _geteuid):
        write_os_release(self.config, "debian", "11", "Debian GNU/Linux 11 (bullseye)")
        code = self.run_main("install", "--no-dashboard", "--non-interactive")
        self.assertEqual(code, 1)
        self.assertFalse(Path(self.log_file).exists())


class TestStatus(CliTestCase):
    @patch("traefik_setup.service.run_command", return_value=completed("inactive\n", 3))
    def test_status_not_installed(self, _run):
        result = self.runner.invoke(cli, ["--log-file", self.log_file, "status"], obj=self.config)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("not installed", result.output)
        self.assertIn("inactive", result.output)
        self.assertIn("unknown", result.output)

    @patch("traefik_setup.service.run_command", return_value=completed("active\n"))
    def test_status_installed(self, _run):
        self.write_configs()
        result = self.runner.invoke(cli, ["--log-file", self.log_file, "status"], obj=self.config)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("present", result.output)
        self.assertIn("disabled", result.output)


@patch("traefik_setup.cli.TraefikInstaller")
class TestInstallOptions(CliTestCase):
    def options(self, mock_installer):
        return mock_installer.call_args.args[1]

    def test_flags(self, mock_installer):
        mock_installer.return_value.run.return_value = 0
        with patch.dict(os.environ, {"TRAEFIK_DASHBOARD_PASSWORD": "secret"}):
            code = self.run_main(
                "install", "--dashboard", "--auth", "--hash-scheme", "sha", "--non-interactive"
            )
        self.assertEqual(code, 0)
        options = self.options(mock_installer)
        self.assertTrue(options.dashboard)
        self.assertTrue(options.auth)
        self.assertEqual(options.password, "secret")
        self.assertEqual(options.hash_scheme, "sha")
        self.assertFalse(options.interactive)

    def test_defaults_are_undecided(self, mock_installer):
        mock_installer.return_value.run.return_value = 0
        with patch.dict(os.environ, {}, clear=True):
            self.run_main("install")
        options = self.options(mock_installer)
        self.assertIsNone(options.dashboard)
        self.assertIsNone(options.auth)
        self.assertIsNone(options.password)
        self.assertEqual(options.hash_scheme, "apr1")
        self.assertTrue(options.interactive)

    def test_precedence(self, mock_installer):
        mock_installer.return_value.run.return_value = 0
        settings = self.temp_dir / "settings.yml"
        settings.write_text(
            "dashboard:\n  enabled: true\n  auth: true\n  password: from-file\nrelease: v2.11.0\n"
        )
        env = {"TRAEFIK_DASHBOARD_AUTH": "false", "TRAEFIK_RELEASE": "v3.0.0"}
        with patch.dict(os.environ, env, clear=True):
            self.run_main("install", "--config", str(settings), "--no-dashboard")
        options = self.options(mock_installer)
        self.assertFalse(options.dashboard)  # flag beats file
        self.assertFalse(options.auth)  # env beats file
        self.assertEqual(options.password, "from-file")
        self.assertEqual(options.release, "v3.0.0")

    def test_bad_env_value(self, mock_installer):
        with patch.dict(os.environ, {"TRAEFIK_DASHBOARD": "maybe"}):
            self.assertEqual(self.run_main("install"), 1)
        mock_installer.assert_not_called()

    def test_bad_settings_file(self, mock_installer):
        settings = self.temp_dir / "settings.yml"
        settings.write_text("colour: blue\n")
        self.assertEqual(self.run_main("install", "--config", str(settings)), 1)
        mock_installer.assert_not_called()

    def test_failed_install_exit_code(self, mock_installer):
        mock_installer.return_value.run.return_value = 1
        self.assertEqual(self.run_main("install", "--no-dashboard"), 1)


class TestUninstall(CliTestCase):
    @patch("traefik_setup.cli.Uninstaller")
    @patch("traefik_setup.preflight.os.geteuid", return_value=1000)
    def test_requires_root(self, _geteuid, mock_uninstaller):
        self.assertEqual(self.run_main("uninstall", "--yes"), 1)
        mock_uninstaller.assert_not_called()

    @patch("traefik_setup.uninstall.run_command")
    @patch("traefik_setup.preflight.os.geteuid", return_value=0)
    def test_answer_no_keeps_everything(self, _geteuid, mock_run):
        self.write_configs()
        result = self.runner.invoke(
            cli, ["--log-file", self.log_file, "uninstall"], input="n\n", obj=self.config
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(self.config.static_config.exists())
        mock_run.assert_not_called()

    @patch("traefik_setup.uninstall.run_command", return_value=completed())
    @patch("traefik_setup.preflight.os.geteuid", return_value=0)
    def test_answer_yes_removes(self, _geteuid, mock_run):
        self.write_configs()
        result = self.runner.invoke(
            cli, ["--log-file", self.log_file, "uninstall"], input="y\n", obj=self.config
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertFalse(self.config.CONFIG_DIR.exists())
        self.assertIn(["userdel", "traefik"], [c.args[0] for c in mock_run.call_args_list])


@patch("traefik_setup.preflight.os.geteuid", return_value=0)
@patch("traefik_setup.cli.ServiceRegistrar")
class TestDashboardCommand(CliTestCase):
    def test_disable_on_fresh_config_does_not_restart(self, mock_registrar, _geteuid):
        self.write_configs()
        self.assertEqual(self.run_main("dashboard", "--disable", "--non-interactive"), 0)
        mock_registrar.return_value.restart.assert_not_called()
        self.assertEqual(
            self.config.dynamic_config.read_text(), render_dynamic_config(self.config)
        )

    def test_enable_restarts(self, mock_registrar, _geteuid):
        self.write_configs()
        code = self.run_main("dashboard", "--enable", "--no-auth", "--non-interactive")
        self.assertEqual(code, 0)
        mock_registrar.return_value.restart.assert_called_once()
        self.assertIn("api@internal", self.config.dynamic_config.read_text())

    def test_enable_without_restart(self, mock_registrar, _geteuid):
        self.write_configs()
        code = self.run_main(
            "dashboard", "--enable", "--no-auth", "--non-interactive", "--no-restart"
        )
        self.assertEqual(code, 0)
        mock_registrar.return_value.restart.assert_not_called()

    def test_missing_password_non_interactive(self, mock_registrar, _geteuid):
        self.write_configs()
        with patch.dict(os.environ, {}, clear=True):
            code = self.run_main("dashboard", "--enable", "--auth", "--non-interactive")
        self.assertEqual(code, 1)
        self.assertNotIn("api@internal", self.config.dynamic_config.read_text())

    def test_not_installed(self, mock_registrar, _geteuid):
        code = self.run_main("dashboard", "--enable", "--no-auth", "--non-interactive")
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
