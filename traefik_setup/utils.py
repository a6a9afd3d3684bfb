"""Command execution and filesystem helpers."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from traefik_setup.config import AppConfig
from traefik_setup.errors import ExecutionError
from traefik_setup.ui import logger


# ----------------------------------------------------------------
# Command Execution Helpers
# ----------------------------------------------------------------
def run_command(
    cmd: List[str],
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    capture_output: bool = True,
    timeout: int = AppConfig.COMMAND_TIMEOUT,
) -> subprocess.CompletedProcess:
    """
    Execute a system command with error handling.

    Args:
        cmd: Command and arguments as a list
        env: Environment variables
        check: Whether to raise an exception on non-zero exit
        capture_output: Whether to capture stdout/stderr
        timeout: Command timeout in seconds

    Returns:
        subprocess.CompletedProcess object

    Raises:
        ExecutionError: If the command fails (with check=True), times out or
            cannot be started
    """
    cmd_str = " ".join(cmd)
    logger.debug("Executing: %s", cmd_str)

    try:
        result = subprocess.run(
            cmd,
            env=env or os.environ.copy(),
            check=check,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        error_msg = f"Command failed (code {e.returncode}): {cmd_str}"
        if e.stdout:
            error_msg += f"\nOutput: {e.stdout.strip()}"
        if e.stderr:
            error_msg += f"\nError: {e.stderr.strip()}"
        logger.error(error_msg)
        raise ExecutionError(error_msg)
    except subprocess.TimeoutExpired:
        error_msg = f"Command timed out after {timeout} seconds: {cmd_str}"
        logger.error(error_msg)
        raise ExecutionError(error_msg)
    except OSError as e:
        error_msg = f"Error executing command: {cmd_str}: {e}"
        logger.error(error_msg)
        raise ExecutionError(error_msg)

    if result.returncode != 0:
        logger.debug("Command returned %d: %s", result.returncode, cmd_str)
    return result


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(cmd) is not None


def get_apt_command() -> str:
    """Package manager front end: nala if available, otherwise apt-get."""
    return "nala" if command_exists("nala") else "apt-get"


# ----------------------------------------------------------------
# Filesystem Helpers
# ----------------------------------------------------------------
def chown_path(path: Union[str, Path], owner: str, recursive: bool = False) -> None:
    """
    Change ownership of a path to ``user:group``.

    Raises:
        ExecutionError: If the user/group does not exist or chown fails
    """
    user, _, group = owner.partition(":")
    targets = [Path(path)]
    if recursive and Path(path).is_dir():
        for root, dirs, files in os.walk(path):
            targets.extend(Path(root) / name for name in dirs + files)

    for target in targets:
        try:
            shutil.chown(target, user=user, group=group or None)
        except (LookupError, OSError) as e:
            raise ExecutionError(f"Failed to set owner {owner} on {target}: {e}")
    logger.debug("Set owner %s on %s%s", owner, path, " (recursive)" if recursive else "")


def touch_file(path: Union[str, Path], mode: Optional[int] = None) -> None:
    """Create an empty file if it does not exist and optionally set its mode."""
    path = Path(path)
    path.touch(exist_ok=True)
    if mode is not None:
        os.chmod(path, mode)


def remove_path(path: Union[str, Path]) -> bool:
    """
    Remove a file or directory tree.

    Returns:
        True if something was removed, False if the path was already absent
    """
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False


def format_file_size(size_bytes: int) -> str:
    """Format a file size in human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
