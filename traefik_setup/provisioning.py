"""Service account and directory provisioning."""

import grp
import pwd

from traefik_setup.config import AppConfig
from traefik_setup.ui import logger, print_step, print_success
from traefik_setup.utils import chown_path, run_command, touch_file


def group_exists(name: str) -> bool:
    try:
        grp.getgrnam(name)
    except KeyError:
        return False
    return True


def user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
    except KeyError:
        return False
    return True


class Provisioner:
    """Creates the dedicated system user/group and the configuration directory."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def create_service_account(self) -> bool:
        """
        Create the system group and user if they are absent.

        Returns:
            True if anything was created, False if both already existed
        """
        cfg = self.config
        created = False

        if not group_exists(cfg.SERVICE_GROUP):
            run_command(
                ["groupadd", "--system", cfg.SERVICE_GROUP], timeout=cfg.COMMAND_TIMEOUT
            )
            logger.info("Created group %s", cfg.SERVICE_GROUP)
            created = True

        if not user_exists(cfg.SERVICE_USER):
            run_command(
                [
                    "useradd",
                    "--system",
                    "-g",
                    cfg.SERVICE_GROUP,
                    "-d",
                    str(cfg.CONFIG_DIR),
                    "-s",
                    "/bin/false",
                    cfg.SERVICE_USER,
                ],
                timeout=cfg.COMMAND_TIMEOUT,
            )
            logger.info("Created user %s", cfg.SERVICE_USER)
            created = True

        return created

    def create_directories(self) -> None:
        """Create the config directory and acme.json (mode 600), owned by the service user."""
        cfg = self.config
        cfg.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        touch_file(cfg.acme_file, mode=0o600)
        chown_path(cfg.CONFIG_DIR, cfg.owner, recursive=True)

    def provision(self) -> None:
        print_step(f"Creating user '{self.config.SERVICE_USER}' and directories...")
        self.create_service_account()
        self.create_directories()
        print_success("User and directories created successfully")
