"""
Uninstaller
-----------

Removes everything the installer created. Nothing is touched unless the
operator confirms. After that every step is best-effort: a target that is
already gone, or a systemctl/userdel call that fails, does not stop the rest.
"""

from pathlib import Path
from typing import List

from traefik_setup.config import AppConfig
from traefik_setup.errors import ExecutionError
from traefik_setup.ui import (
    confirm_action,
    logger,
    print_step,
    print_success,
    print_warning,
)
from traefik_setup.utils import remove_path, run_command


class Uninstaller:
    """Stops the service and deletes the binary, unit, configuration and account."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _run(self, cmd: List[str]) -> None:
        try:
            result = run_command(cmd, check=False, timeout=self.config.COMMAND_TIMEOUT)
        except ExecutionError as e:
            logger.debug("Ignoring failure of %s: %s", " ".join(cmd), e)
            return
        if result.returncode != 0:
            logger.debug("%s exited with %d", " ".join(cmd), result.returncode)

    def _systemctl(self, *args: str) -> None:
        self._run(["systemctl", *args])

    def _remove(self, path: Path) -> bool:
        try:
            removed = remove_path(path)
        except OSError as e:
            print_warning(f"Could not remove {path}: {e}")
            return False
        if removed:
            logger.info("Removed %s", path)
        else:
            logger.debug("%s already absent", path)
        return removed

    def stop_service(self) -> None:
        name = self.config.SERVICE_NAME
        print_step(f"Stopping and disabling {name}...")
        self._systemctl("stop", name)
        self._systemctl("disable", name)

    def remove_unit(self) -> None:
        print_step("Removing systemd service file...")
        self._remove(self.config.unit_path)
        self._systemctl("daemon-reload")

    def remove_files(self) -> List[Path]:
        """Delete the binary, configuration directory and log directory."""
        cfg = self.config
        print_step("Removing binary, configuration and log files...")
        return [
            path
            for path in (cfg.BINARY_PATH, cfg.CONFIG_DIR, cfg.VAR_LOG_DIR)
            if self._remove(path)
        ]

    def remove_account(self) -> None:
        cfg = self.config
        print_step(f"Removing user '{cfg.SERVICE_USER}' and group '{cfg.SERVICE_GROUP}'...")
        self._run(["userdel", cfg.SERVICE_USER])
        self._run(["groupdel", cfg.SERVICE_GROUP])

    def run(self, assume_yes: bool = False) -> bool:
        """
        Remove the Traefik installation.

        Args:
            assume_yes: Skip the confirmation prompt

        Returns:
            True if the removal ran, False if the operator cancelled
        """
        if not assume_yes and not confirm_action(
            "This will remove Traefik, its configuration and its user. Continue?"
        ):
            print_warning("Uninstall cancelled.")
            return False

        self.stop_service()
        self.remove_unit()
        self.remove_files()
        self.remove_account()
        print_success("Traefik has been completely removed from the system.")
        return True
