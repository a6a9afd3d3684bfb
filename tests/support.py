"""Shared fixtures for the test suite."""

import subprocess
from pathlib import Path

from traefik_setup.config import AppConfig


def make_config(root: Path) -> AppConfig:
    """AppConfig with every host path moved under ``root``."""
    (root / "tmp").mkdir(parents=True, exist_ok=True)
    return AppConfig(
        CONFIG_DIR=root / "etc" / "traefik",
        BINARY_PATH=root / "usr" / "local" / "bin" / "traefik",
        UNIT_DIR=root / "etc" / "systemd" / "system",
        VAR_LOG_DIR=root / "var" / "log" / "traefik",
        OS_RELEASE_FILE=root / "etc" / "os-release",
        LOG_FILE=root / "traefik_setup.log",
        TEMP_DIR=str(root / "tmp"),
        SERVICE_START_WAIT=0,
    )


def completed(stdout: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess([], returncode, stdout, "")


def write_os_release(config: AppConfig, os_id: str, version: str, pretty: str) -> None:
    config.OS_RELEASE_FILE.parent.mkdir(parents=True, exist_ok=True)
    config.OS_RELEASE_FILE.write_text(
        f'PRETTY_NAME="{pretty}"\nNAME="{pretty}"\nVERSION_ID="{version}"\nID={os_id}\n'
    )
