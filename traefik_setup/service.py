"""
Service Registrar
-----------------

Writes the systemd unit for Traefik, enables and starts it, and reports
whether it came up. The service is checked once after start and never
watched beyond that.
"""

import time
from textwrap import dedent

from traefik_setup.config import AppConfig
from traefik_setup.errors import ConfigurationError
from traefik_setup.ui import (
    console,
    logger,
    print_step,
    print_success,
    print_warning,
)
from traefik_setup.utils import run_command


def render_unit(config: AppConfig) -> str:
    return dedent(
        f"""\
        [Unit]
        Description=Traefik Reverse Proxy
        After=network-online.target
        Wants=network-online.target

        [Service]
        User={config.SERVICE_USER}
        Group={config.SERVICE_GROUP}
        Type=simple
        ExecStart={config.BINARY_PATH} --configfile={config.static_config} --global.sendAnonymousUsage=false
        Restart=on-failure
        CapabilityBoundingSet=CAP_NET_BIND_SERVICE
        AmbientCapabilities=CAP_NET_BIND_SERVICE
        NoNewPrivileges=true

        [Install]
        WantedBy=multi-user.target
        """
    )


class ServiceRegistrar:
    """Manages the traefik systemd unit."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def write_unit(self) -> bool:
        """
        Write the unit file.

        Returns:
            True if the file was created or its content changed
        """
        path = self.config.unit_path
        content = render_unit(self.config)
        print_step(f"Creating systemd service file {path}...")
        try:
            if path.is_file() and path.read_text() == content:
                logger.info("Unit file already up to date")
                return False
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        except OSError as e:
            raise ConfigurationError(f"Could not write {path}: {e}")
        return True

    def is_active(self) -> bool:
        result = run_command(
            ["systemctl", "is-active", self.config.SERVICE_NAME],
            check=False,
            timeout=self.config.COMMAND_TIMEOUT,
        )
        return (result.stdout or "").strip() == "active"

    def show_status(self) -> None:
        result = run_command(
            ["systemctl", "status", self.config.SERVICE_NAME, "--no-pager"],
            check=False,
            timeout=self.config.COMMAND_TIMEOUT,
        )
        output = (result.stdout or "").strip()
        if output:
            console.print(f"[dim]{output}[/dim]")

    def activate(self) -> bool:
        """
        Reload systemd, enable and start the service, then check it once.

        Returns:
            True if the service reports active after the start wait
        """
        name = self.config.SERVICE_NAME
        print_step("Reloading systemd, enabling and starting the service...")
        timeout = self.config.COMMAND_TIMEOUT
        run_command(["systemctl", "daemon-reload"], timeout=timeout)
        run_command(["systemctl", "enable", "--now", name], timeout=timeout)

        print_step("Checking service status...")
        time.sleep(self.config.SERVICE_START_WAIT)
        self.show_status()

        if self.is_active():
            print_success(f"Service '{name}' is active")
            return True
        print_warning(
            f"Service '{name}' is not active. Check: journalctl -u {name} --no-pager"
        )
        return False

    def restart(self) -> bool:
        """Restart the service and report whether it is active afterwards."""
        name = self.config.SERVICE_NAME
        print_step(f"Restarting {name}...")
        run_command(["systemctl", "restart", name], timeout=self.config.COMMAND_TIMEOUT)
        time.sleep(self.config.SERVICE_START_WAIT)
        if self.is_active():
            print_success(f"Service '{name}' restarted successfully")
            return True
        print_warning(f"Service '{name}' is not active after restart")
        return False

    def register(self) -> bool:
        self.write_unit()
        return self.activate()
