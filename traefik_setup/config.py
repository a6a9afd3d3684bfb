"""
Configuration & Constants
-------------------------

AppConfig holds every path and constant the installer touches. InstallOptions
holds the operator's choices, merged from a YAML settings file, environment
variables and command-line flags.
"""

import tempfile
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from traefik_setup import __version__
from traefik_setup.errors import ConfigurationError

HASH_SCHEMES: List[str] = ["apr1", "sha"]


@dataclass
class AppConfig:
    """Global application configuration."""

    # Application info
    VERSION: str = __version__
    APP_NAME: str = "Traefik Setup"
    APP_SUBTITLE: str = "Reverse Proxy Installer for Debian & Ubuntu"

    # Service account
    SERVICE_USER: str = "traefik"
    SERVICE_GROUP: str = "traefik"
    SERVICE_NAME: str = "traefik"
    DASHBOARD_USER: str = "traefik"

    # Paths and files
    CONFIG_DIR: Path = Path("/etc/traefik")
    BINARY_PATH: Path = Path("/usr/local/bin/traefik")
    UNIT_DIR: Path = Path("/etc/systemd/system")
    VAR_LOG_DIR: Path = Path("/var/log/traefik")
    OS_RELEASE_FILE: Path = Path("/etc/os-release")
    LOG_FILE: Path = Path("/var/log/traefik_setup.log")
    TEMP_DIR: str = tempfile.gettempdir()

    # Release source
    RELEASE_API: str = "https://api.github.com/repos/traefik/traefik/releases"
    ASSET_PATTERN: str = "linux_amd64.tar.gz"
    BINARY_MEMBER: str = "traefik"

    # Supported systems: Debian 12 exactly, Ubuntu from 20.04 on
    DEBIAN_VERSIONS: List[str] = field(default_factory=lambda: ["12"])
    UBUNTU_MIN_VERSION: str = "20.04"

    # Commands the installer shells out to, mapped to the package providing them
    REQUIRED_COMMANDS: Dict[str, str] = field(
        default_factory=lambda: {
            "useradd": "passwd",
            "groupadd": "passwd",
            "systemctl": "systemd",
            "update-ca-certificates": "ca-certificates",
        }
    )

    # Operation settings
    COMMAND_TIMEOUT: int = 300  # seconds
    HTTP_TIMEOUT: int = 60  # seconds
    SERVICE_START_WAIT: float = 2.0  # seconds

    @property
    def static_config(self) -> Path:
        return self.CONFIG_DIR / "traefik.yml"

    @property
    def dynamic_config(self) -> Path:
        return self.CONFIG_DIR / "dynamic_conf.yml"

    @property
    def acme_file(self) -> Path:
        return self.CONFIG_DIR / "acme.json"

    @property
    def traefik_log(self) -> Path:
        return self.CONFIG_DIR / "traefik.log"

    @property
    def access_log(self) -> Path:
        return self.CONFIG_DIR / "access.log"

    @property
    def unit_path(self) -> Path:
        return self.UNIT_DIR / f"{self.SERVICE_NAME}.service"

    @property
    def owner(self) -> str:
        return f"{self.SERVICE_USER}:{self.SERVICE_GROUP}"

    def release_url(self, tag: Optional[str] = None) -> str:
        """Metadata URL for the latest release, or for a pinned tag."""
        if tag:
            return f"{self.RELEASE_API}/tags/{tag}"
        return f"{self.RELEASE_API}/latest"


@dataclass
class InstallOptions:
    """
    Operator choices for an install run.

    ``None`` means "not decided yet": the interactive front end asks for it,
    non-interactive runs treat it as a validation error (dashboard/auth) or use
    the default.

    Attributes:
        dashboard: Enable the Traefik dashboard
        auth: Protect the dashboard with basic auth
        password: Dashboard password (only used when auth is enabled)
        hash_scheme: Credential hash format, "apr1" or "sha"
        release: Pinned release tag, latest release when unset
        interactive: Whether prompts may be shown
    """

    dashboard: Optional[bool] = None
    auth: Optional[bool] = None
    password: Optional[str] = None
    hash_scheme: str = "apr1"
    release: Optional[str] = None
    interactive: bool = True

    def merged(self, **overrides: Any) -> "InstallOptions":
        """Return a copy where every override that is not None wins."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


# ----------------------------------------------------------------
# Settings File
# ----------------------------------------------------------------
_SETTINGS_KEYS = {
    ("dashboard", "enabled"): "dashboard",
    ("dashboard", "auth"): "auth",
    ("dashboard", "password"): "password",
    ("dashboard", "hash_scheme"): "hash_scheme",
    ("release",): "release",
}


def _flatten(data: Dict[str, Any], prefix: tuple = ()) -> Dict[tuple, Any]:
    flat: Dict[tuple, Any] = {}
    for key, value in data.items():
        path = prefix + (str(key),)
        if isinstance(value, dict):
            flat.update(_flatten(value, path))
        else:
            flat[path] = value
    return flat


def load_settings(path: Union[str, Path]) -> InstallOptions:
    """
    Load install options from a YAML settings file.

    Example::

        dashboard:
          enabled: true
          auth: true
          password: "s3cret"
          hash_scheme: apr1
        release: v3.1.0

    Args:
        path: Settings file path

    Returns:
        InstallOptions populated from the file

    Raises:
        ConfigurationError: If the file is unreadable, malformed or has unknown keys
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = YAML(typ="safe").load(f)
    except (OSError, YAMLError) as e:
        raise ConfigurationError(f"Could not read settings file {path}: {e}")

    if data is None:
        return InstallOptions()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    values: Dict[str, Any] = {}
    for key_path, value in _flatten(data).items():
        name = _SETTINGS_KEYS.get(key_path)
        if name is None:
            raise ConfigurationError(
                f"Unknown setting '{'.'.join(key_path)}' in {path}"
            )
        values[name] = value

    for flag in ("dashboard", "auth"):
        if flag in values and not isinstance(values[flag], bool):
            raise ConfigurationError(f"Setting '{flag}' in {path} must be true or false")
    if "password" in values and values["password"] is not None:
        values["password"] = str(values["password"])
    if "release" in values and values["release"] is not None:
        values["release"] = str(values["release"])
    if values.get("hash_scheme", "apr1") not in HASH_SCHEMES:
        raise ConfigurationError(
            f"Setting 'hash_scheme' in {path} must be one of: {', '.join(HASH_SCHEMES)}"
        )

    known = {f.name for f in fields(InstallOptions)}
    return InstallOptions(**{k: v for k, v in values.items() if k in known})
