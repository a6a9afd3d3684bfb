"""
Preflight checks: privileges, operating system and required tools.

Nothing in this module changes the host except check_dependencies(), which
installs missing packages. It runs after the OS check so that an unsupported
system is rejected before anything is installed.
"""

import os
from pathlib import Path
from typing import Dict, List, Tuple

from traefik_setup.config import AppConfig
from traefik_setup.errors import (
    DependencyError,
    ExecutionError,
    PrivilegeError,
    UnsupportedSystemError,
)
from traefik_setup.ui import logger, print_step, print_success
from traefik_setup.utils import command_exists, get_apt_command, run_command


def parse_os_release(path: Path) -> Dict[str, str]:
    """
    Parse an os-release file into a dictionary.

    Args:
        path: Path to the os-release file

    Returns:
        Mapping of keys (ID, VERSION_ID, PRETTY_NAME, ...) to unquoted values
    """
    os_info: Dict[str, str] = {}
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os_info[key] = value.strip().strip('"').strip("'")
    return os_info


def version_tuple(version: str) -> Tuple[int, ...]:
    """Turn a dotted version string such as "22.04" into (22, 4)."""
    parts = []
    for part in version.split("."):
        digits = "".join(ch for ch in part if ch.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


class PreflightChecker:
    """Preflight checks to ensure the system is ready for installation."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def check_root(self) -> None:
        """
        Ensure the tool runs as root.

        Raises:
            PrivilegeError: If not running as root
        """
        if os.geteuid() != 0:
            logger.error("Not running as root.")
            raise PrivilegeError("This tool must be run as root (use sudo)")
        logger.info("Root privileges confirmed.")

    def check_os_version(self) -> Tuple[str, str]:
        """
        Check that the system is Debian 12 or Ubuntu 20.04 and newer.

        Returns:
            Tuple of (os_id, version)

        Raises:
            UnsupportedSystemError: If the OS cannot be identified or is unsupported
        """
        release_file = self.config.OS_RELEASE_FILE
        if not release_file.is_file():
            raise UnsupportedSystemError(
                f"Could not determine distribution: {release_file} not found"
            )

        os_info = parse_os_release(release_file)
        os_id = os_info.get("ID", "")
        version = os_info.get("VERSION_ID", "")
        pretty = os_info.get("PRETTY_NAME", f"{os_id} {version}".strip() or "unknown")
        logger.info("Detected OS: %s %s", os_id or "unknown", version or "unknown")

        if os_id == "debian" and version in self.config.DEBIAN_VERSIONS:
            print_success(f"Debian {version} detected")
            return os_id, version

        minimum = version_tuple(self.config.UBUNTU_MIN_VERSION)
        if os_id == "ubuntu" and version and version_tuple(version) >= minimum:
            print_success(f"Ubuntu {version} detected")
            return os_id, version

        raise UnsupportedSystemError(
            "This tool supports only Debian "
            f"{'/'.join(self.config.DEBIAN_VERSIONS)} or Ubuntu "
            f"{self.config.UBUNTU_MIN_VERSION} and newer. Your system: {pretty}"
        )

    def missing_packages(self) -> List[str]:
        """Packages providing the required commands that are not on PATH."""
        packages: List[str] = []
        for cmd, package in self.config.REQUIRED_COMMANDS.items():
            if not command_exists(cmd) and package not in packages:
                logger.debug("Command %s missing (package %s)", cmd, package)
                packages.append(package)
        return packages

    def check_dependencies(self) -> List[str]:
        """
        Install packages for any required command that is missing.

        Returns:
            The packages that were installed (empty if nothing was missing)

        Raises:
            DependencyError: If the package manager fails
        """
        packages = self.missing_packages()
        if not packages:
            logger.info("All required commands are available")
            return []

        apt_cmd = get_apt_command()
        print_step(f"Installing missing dependencies: {', '.join(packages)}")
        env = dict(os.environ, DEBIAN_FRONTEND="noninteractive")
        try:
            run_command([apt_cmd, "update"], env=env, timeout=self.config.COMMAND_TIMEOUT)
            run_command(
                [apt_cmd, "install", "-y"] + packages,
                env=env,
                timeout=self.config.COMMAND_TIMEOUT,
            )
        except ExecutionError as e:
            raise DependencyError(f"Failed to install {', '.join(packages)}: {e}")

        print_success("All dependencies installed")
        return packages
