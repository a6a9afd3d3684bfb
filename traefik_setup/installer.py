"""
Install Orchestrator
--------------------

Runs the install as an explicit sequence of steps. The first step that raises
a SetupError is marked failed, every later step is marked skipped, and the
status table is shown either way.
"""

import time
from typing import Callable, Dict, List, Optional, Tuple

from traefik_setup.config import AppConfig, InstallOptions
from traefik_setup.dashboard import DashboardPatcher, DashboardSettings, resolve_settings
from traefik_setup.errors import SetupError
from traefik_setup.fetcher import BinaryFetcher
from traefik_setup.preflight import PreflightChecker
from traefik_setup.provisioning import Provisioner
from traefik_setup.service import ServiceRegistrar
from traefik_setup.templates import ConfigTemplater
from traefik_setup.ui import (
    NordColors,
    display_panel,
    logger,
    open_log_file,
    print_error,
    print_message,
    print_section,
    status_report,
)


class TraefikInstaller:
    """Main orchestration class for a Traefik install."""

    def __init__(self, config: AppConfig, options: InstallOptions) -> None:
        self.config = config
        self.options = options
        self.preflight = PreflightChecker(config)
        self.provisioner = Provisioner(config)
        self.fetcher = BinaryFetcher(config)
        self.templater = ConfigTemplater(config)
        self.patcher = DashboardPatcher(config)
        self.registrar = ServiceRegistrar(config)
        self.settings: Optional[DashboardSettings] = None
        self.status: Dict[str, Dict[str, str]] = {}

    # ----------------------------------------------------------------
    # Steps
    # ----------------------------------------------------------------
    def step_preflight(self) -> str:
        self.preflight.check_root()
        os_id, version = self.preflight.check_os_version()
        open_log_file()
        return f"{os_id} {version}"

    def step_settings(self) -> str:
        self.settings = resolve_settings(self.options, self.config.DASHBOARD_USER)
        if not self.settings.enabled:
            return "Dashboard disabled"
        if self.settings.auth:
            return f"Dashboard with basic auth ({self.settings.hash_scheme})"
        return "Dashboard without password"

    def step_dependencies(self) -> str:
        installed = self.preflight.check_dependencies()
        return f"Installed {', '.join(installed)}" if installed else "All present"

    def step_provisioning(self) -> str:
        self.provisioner.provision()
        return f"{self.config.owner} and {self.config.CONFIG_DIR}"

    def step_binary(self) -> str:
        return str(self.fetcher.fetch_and_install(self.options.release))

    def step_configuration(self) -> str:
        self.templater.create_all()
        return "traefik.yml and dynamic_conf.yml written"

    def step_dashboard(self) -> str:
        changed = self.patcher.apply(self.settings)
        rewritten = [name for name, flag in changed.items() if flag]
        return f"Updated {' and '.join(rewritten)} config" if rewritten else "No changes"

    def step_service(self) -> str:
        active = self.registrar.register()
        return "Service active" if active else "Service not active"

    def steps(self) -> List[Tuple[str, str, Callable[[], str]]]:
        return [
            ("preflight", "Checking privileges and operating system", self.step_preflight),
            ("dashboard_settings", "Dashboard options", self.step_settings),
            ("dependencies", "Checking dependencies", self.step_dependencies),
            ("provisioning", "Creating user and directories", self.step_provisioning),
            ("binary", "Installing the Traefik binary", self.step_binary),
            ("configuration", "Writing configuration files", self.step_configuration),
            ("dashboard", "Configuring the dashboard", self.step_dashboard),
            ("service", "Registering the systemd service", self.step_service),
        ]

    # ----------------------------------------------------------------
    # Run
    # ----------------------------------------------------------------
    def run(self) -> int:
        """
        Run every install step in order.

        Returns:
            int: Exit code (0 for success, 1 for failure)
        """
        steps = self.steps()
        self.status = {key: {"status": "pending", "message": ""} for key, _, _ in steps}
        failed = False

        for key, title, func in steps:
            if failed:
                self.status[key] = {"status": "skipped", "message": "Not run"}
                continue

            print_section(title)
            self.status[key] = {"status": "in_progress", "message": f"{title}..."}
            start = time.time()
            try:
                message = func()
            except SetupError as e:
                elapsed = time.time() - start
                logger.debug("Step %s failed", key, exc_info=True)
                print_error(str(e))
                self.status[key] = {
                    "status": "failed",
                    "message": f"Failed after {elapsed:.2f}s: {e}",
                }
                failed = True
                continue
            elapsed = time.time() - start
            self.status[key] = {
                "status": "success",
                "message": f"{message} ({elapsed:.2f}s)",
            }

        status_report(self.status, "Traefik Installation Status")

        if failed:
            if self.config.LOG_FILE.is_file():
                print_message(f"Log file: {self.config.LOG_FILE}", NordColors.FROST_2)
            return 1

        lines = [
            "Traefik installation complete!",
            f"To check the logs, use: journalctl -u {self.config.SERVICE_NAME} -f",
        ]
        if self.settings is not None and self.settings.enabled:
            lines.append("Dashboard: http://<server-address>/dashboard/")
        display_panel("\n".join(lines), NordColors.GREEN, "Done")
        return 0
