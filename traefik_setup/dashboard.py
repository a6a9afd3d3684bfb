"""
Dashboard Patcher
-----------------

Adds or removes the Traefik dashboard and its basic-auth protection.

Both configuration files are loaded as round-trip YAML documents (comments and
quoting survive), changed through named keys and written back only when a
change was actually made. Nothing here depends on the exact line layout of the
templates, and applying the same settings twice never duplicates a block.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError
from ruamel.yaml.scalarstring import DoubleQuotedScalarString

from traefik_setup.config import AppConfig, InstallOptions
from traefik_setup.credentials import basic_auth_user, validate_password
from traefik_setup.errors import ConfigurationError, ValidationError
from traefik_setup.ui import (
    ask_secret,
    ask_yes_no,
    console,
    logger,
    print_error,
    print_success,
    print_warning,
)

API_SERVICE = "api@internal"
AUTH_MIDDLEWARE = "auth"
ENTRY_POINT = "web"

# Router name -> path prefix served by the internal API service
DASHBOARD_ROUTERS: Dict[str, str] = {
    "dashboard": "/dashboard/",
    "dashboard-api": "/api",
}


@dataclass
class DashboardSettings:
    """Resolved dashboard choices for one run."""

    enabled: bool
    auth: bool = False
    password: Optional[str] = None
    hash_scheme: str = "apr1"


# ----------------------------------------------------------------
# YAML Document Helpers
# ----------------------------------------------------------------
def make_yaml() -> YAML:
    """Round-trip YAML instance matching the template layout."""
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


def load_document(path: Path) -> CommentedMap:
    """
    Load a YAML configuration file for editing.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    try:
        with open(path) as f:
            data = make_yaml().load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except (OSError, YAMLError) as e:
        raise ConfigurationError(f"Could not parse {path}: {e}")
    if data is None:
        data = CommentedMap()
    if not isinstance(data, CommentedMap):
        raise ConfigurationError(f"{path} does not contain a YAML mapping")
    return data


def dump_document(data: CommentedMap) -> str:
    stream = io.StringIO()
    make_yaml().dump(data, stream)
    return stream.getvalue()


def save_document(path: Path, data: CommentedMap) -> None:
    try:
        path.write_text(dump_document(data))
    except OSError as e:
        raise ConfigurationError(f"Could not write {path}: {e}")
    logger.info("Updated %s", path)


def to_plain(value: Any) -> Any:
    """Convert ruamel containers and scalar strings to plain Python values."""
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    if isinstance(value, str):
        return str(value)
    return value


def _child_map(parent: CommentedMap, key: str) -> CommentedMap:
    """Return parent[key] as a mapping, creating it if absent or empty."""
    child = parent.get(key)
    if child is None:
        child = CommentedMap()
        parent[key] = child
    elif not isinstance(child, dict):
        raise ConfigurationError(f"'{key}' is not a mapping")
    return child


# ----------------------------------------------------------------
# Static Document
# ----------------------------------------------------------------
def enable_api(static: CommentedMap) -> bool:
    """Ensure a single api block with the dashboard on. Returns True if changed."""
    desired = {"dashboard": True, "insecure": False}
    if to_plain(static.get("api")) == desired:
        return False
    api = CommentedMap()
    api["dashboard"] = True
    api["insecure"] = False
    static["api"] = api
    return True


def disable_api(static: CommentedMap) -> bool:
    if "api" not in static:
        return False
    del static["api"]
    return True


# ----------------------------------------------------------------
# Dynamic Document
# ----------------------------------------------------------------
def _dashboard_router(prefix: str, middlewares: List[str]) -> CommentedMap:
    router = CommentedMap()
    router["rule"] = DoubleQuotedScalarString(f"PathPrefix(`{prefix}`)")
    router["service"] = DoubleQuotedScalarString(API_SERVICE)
    router["entryPoints"] = CommentedSeq([ENTRY_POINT])
    if middlewares:
        router["middlewares"] = CommentedSeq(middlewares)
    return router


def add_dashboard_routers(dynamic: CommentedMap) -> bool:
    """
    Put the dashboard routers at the top of http.routers.

    Existing dashboard routers are replaced in place; their middlewares are kept.

    Returns:
        True if the document changed
    """
    routers = _child_map(_child_map(dynamic, "http"), "routers")
    changed = False
    for position, (name, prefix) in enumerate(DASHBOARD_ROUTERS.items()):
        existing = routers.get(name)
        middlewares = list(existing.get("middlewares") or []) if isinstance(existing, dict) else []
        router = _dashboard_router(prefix, middlewares)
        if existing is not None and to_plain(existing) == to_plain(router):
            continue
        if existing is None:
            routers.insert(position, name, router)
        else:
            routers[name] = router
        changed = True
    return changed


def remove_dashboard_routers(dynamic: CommentedMap) -> bool:
    """Remove the dashboard routers and any other router bound to the internal API."""
    routers = (dynamic.get("http") or {}).get("routers")
    if not routers:
        return False
    doomed = [
        name
        for name, router in routers.items()
        if name in DASHBOARD_ROUTERS
        or (isinstance(router, dict) and router.get("service") == API_SERVICE)
    ]
    for name in doomed:
        del routers[name]
    return bool(doomed)


def set_basic_auth(dynamic: CommentedMap, users: List[str]) -> bool:
    """
    Define the auth middleware with ``users`` and attach it to the dashboard routers.

    Returns:
        True if the document changed
    """
    http = _child_map(dynamic, "http")
    changed = False

    middlewares = _child_map(http, "middlewares")
    if to_plain(middlewares.get(AUTH_MIDDLEWARE)) != {"basicAuth": {"users": users}}:
        basic_auth = CommentedMap()
        basic_auth["users"] = CommentedSeq(DoubleQuotedScalarString(u) for u in users)
        middleware = CommentedMap()
        middleware["basicAuth"] = basic_auth
        middlewares[AUTH_MIDDLEWARE] = middleware
        changed = True

    routers = http.get("routers") or {}
    for name in DASHBOARD_ROUTERS:
        router = routers.get(name)
        if not isinstance(router, dict):
            continue
        refs = router.get("middlewares")
        if refs is None:
            router["middlewares"] = CommentedSeq([AUTH_MIDDLEWARE])
            changed = True
        elif AUTH_MIDDLEWARE not in refs:
            refs.append(AUTH_MIDDLEWARE)
            changed = True
    return changed


def remove_basic_auth(dynamic: CommentedMap) -> bool:
    """Drop the auth middleware and every reference to it."""
    http = dynamic.get("http")
    if not isinstance(http, dict):
        return False
    changed = False

    for router in (http.get("routers") or {}).values():
        if not isinstance(router, dict):
            continue
        refs = router.get("middlewares")
        if refs and AUTH_MIDDLEWARE in refs:
            refs.remove(AUTH_MIDDLEWARE)
            changed = True
        if "middlewares" in router and not router["middlewares"]:
            del router["middlewares"]
            changed = True

    middlewares = http.get("middlewares")
    if isinstance(middlewares, dict) and AUTH_MIDDLEWARE in middlewares:
        del middlewares[AUTH_MIDDLEWARE]
        changed = True
    if "middlewares" in http and not http["middlewares"]:
        del http["middlewares"]
        changed = True
    return changed


def check_dynamic_invariants(dynamic: CommentedMap) -> None:
    """
    Every router must point at a defined service (or an @internal one) and,
    when the auth middleware exists, every dashboard router must use it.

    Raises:
        ConfigurationError: On the first violation found
    """
    http = dynamic.get("http") or {}
    routers = http.get("routers") or {}
    services = http.get("services") or {}
    middlewares = http.get("middlewares") or {}

    for name, router in routers.items():
        service = (router or {}).get("service")
        if not service:
            raise ConfigurationError(f"Router '{name}' has no service")
        if not str(service).endswith("@internal") and service not in services:
            raise ConfigurationError(
                f"Router '{name}' references unknown service '{service}'"
            )
        for ref in router.get("middlewares") or []:
            if "@" not in ref and ref not in middlewares:
                raise ConfigurationError(
                    f"Router '{name}' references unknown middleware '{ref}'"
                )

    if AUTH_MIDDLEWARE in middlewares:
        for name in DASHBOARD_ROUTERS:
            router = routers.get(name)
            if router is not None and AUTH_MIDDLEWARE not in (router.get("middlewares") or []):
                raise ConfigurationError(
                    f"Dashboard router '{name}' is not protected by '{AUTH_MIDDLEWARE}'"
                )


# ----------------------------------------------------------------
# Settings Resolution
# ----------------------------------------------------------------
def prompt_password(user: str) -> str:
    """Ask for the password twice until both entries are non-empty and equal."""
    while True:
        password = ask_secret(f"Enter password for '{user}'")
        confirmation = ask_secret("Confirm password")
        try:
            return validate_password(password, confirmation)
        except ValidationError:
            print_error("Passwords do not match or empty. Please try again.")


def resolve_settings(options: InstallOptions, user: str) -> DashboardSettings:
    """
    Turn install options into concrete dashboard settings, prompting for
    anything undecided when prompts are allowed.

    Raises:
        ValidationError: If a decision or password is missing or invalid in
            non-interactive mode
    """
    enabled = options.dashboard
    if enabled is None:
        if not options.interactive:
            raise ValidationError(
                "Dashboard choice missing: pass --dashboard or --no-dashboard"
            )
        enabled = ask_yes_no("Enable Traefik dashboard?")
    if not enabled:
        return DashboardSettings(enabled=False, hash_scheme=options.hash_scheme)

    auth = options.auth
    if auth is None:
        if not options.interactive:
            raise ValidationError("Dashboard auth choice missing: pass --auth or --no-auth")
        auth = ask_yes_no("Enable password protection for the dashboard?")
    if not auth:
        return DashboardSettings(enabled=True, auth=False, hash_scheme=options.hash_scheme)

    if options.password is not None:
        password = validate_password(options.password, options.password)
    elif not options.interactive:
        raise ValidationError(
            "Dashboard password missing: set TRAEFIK_DASHBOARD_PASSWORD or dashboard.password"
        )
    else:
        console.print(f"Dashboard username will be: [bold]{user}[/bold]")
        password = prompt_password(user)

    return DashboardSettings(
        enabled=True, auth=True, password=password, hash_scheme=options.hash_scheme
    )


# ----------------------------------------------------------------
# Patcher
# ----------------------------------------------------------------
class DashboardPatcher:
    """Applies dashboard settings to the static and dynamic configuration files."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def is_enabled(self) -> Optional[bool]:
        """Whether the static config has an api block; None if it cannot be read."""
        try:
            static = load_document(self.config.static_config)
        except ConfigurationError as e:
            logger.debug("Dashboard state unknown: %s", e)
            return None
        return "api" in static

    def apply(self, settings: DashboardSettings) -> Dict[str, bool]:
        """
        Enable or disable the dashboard in both configuration files.

        Args:
            settings: Resolved dashboard settings

        Returns:
            Which files were rewritten, keyed "static" and "dynamic"

        Raises:
            ConfigurationError: If a file cannot be read or written, or the
                result breaks a routing invariant
        """
        cfg = self.config
        static = load_document(cfg.static_config)
        dynamic = load_document(cfg.dynamic_config)

        if settings.enabled:
            static_changed = enable_api(static)
            dynamic_changed = add_dashboard_routers(dynamic)
            if settings.auth:
                if not settings.password:
                    raise ValidationError("Password must not be empty")
                entry = basic_auth_user(
                    cfg.DASHBOARD_USER, settings.password, settings.hash_scheme
                )
                dynamic_changed |= set_basic_auth(dynamic, [entry])
            else:
                dynamic_changed |= remove_basic_auth(dynamic)
        else:
            static_changed = disable_api(static)
            dynamic_changed = remove_dashboard_routers(dynamic)
            dynamic_changed |= remove_basic_auth(dynamic)

        check_dynamic_invariants(dynamic)
        if ("api" in static) != settings.enabled:
            raise ConfigurationError(
                "Static configuration api block does not match dashboard setting"
            )

        if static_changed:
            save_document(cfg.static_config, static)
        if dynamic_changed:
            save_document(cfg.dynamic_config, dynamic)

        if not settings.enabled:
            print_warning("Dashboard will be disabled.")
        elif settings.auth:
            print_success("Password protection for the dashboard is enabled.")
        else:
            print_warning("Dashboard will remain without a password. Access will be open.")

        return {"static": static_changed, "dynamic": dynamic_changed}
