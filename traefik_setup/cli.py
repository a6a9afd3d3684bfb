"""
Command-line interface.

    traefik-setup install [--config FILE] [--dashboard/--no-dashboard] ...
    traefik-setup uninstall [--yes]
    traefik-setup status
    traefik-setup dashboard --enable/--disable [--auth/--no-auth]

Exit codes: 0 success, 1 failure, 130 interrupted.
"""

import os
from pathlib import Path
from typing import List, Optional

import click
from rich.box import ROUNDED
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from traefik_setup import __version__
from traefik_setup.config import HASH_SCHEMES, AppConfig, InstallOptions, load_settings
from traefik_setup.dashboard import DashboardPatcher, resolve_settings
from traefik_setup.errors import SetupError
from traefik_setup.fetcher import installed_version
from traefik_setup.installer import TraefikInstaller
from traefik_setup.preflight import PreflightChecker
from traefik_setup.service import ServiceRegistrar
from traefik_setup.ui import (
    NordColors,
    console,
    create_header,
    open_log_file,
    print_error,
    print_warning,
    setup_logging,
)
from traefik_setup.uninstall import Uninstaller

ENV_DASHBOARD = "TRAEFIK_DASHBOARD"
ENV_AUTH = "TRAEFIK_DASHBOARD_AUTH"
ENV_PASSWORD = "TRAEFIK_DASHBOARD_PASSWORD"
ENV_RELEASE = "TRAEFIK_RELEASE"


def env_flag(name: str) -> Optional[bool]:
    """Read a boolean environment variable; unset or empty means undecided."""
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    try:
        return click.BOOL.convert(value, None, None)
    except click.BadParameter:
        raise click.UsageError(f"{name} must be true or false, got {value!r}")


def env_password() -> Optional[str]:
    return os.environ.get(ENV_PASSWORD) or None


def require_root(config: AppConfig) -> None:
    PreflightChecker(config).check_root()


# ----------------------------------------------------------------
# Command Group
# ----------------------------------------------------------------
@click.group(no_args_is_help=False)
@click.version_option(version=__version__, prog_name="traefik-setup")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=str(AppConfig.LOG_FILE),
    show_default=True,
    help="Installer log file",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, log_file: Path, debug: bool) -> None:
    """Install or remove the Traefik reverse proxy on Debian 12 and Ubuntu 20.04+."""
    if ctx.obj is None:
        ctx.obj = AppConfig()
    config: AppConfig = ctx.obj
    config.LOG_FILE = log_file
    setup_logging(log_file, debug, defer=True)
    console.print(create_header(config.APP_NAME, config.VERSION, config.APP_SUBTITLE))


@cli.command()
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML settings file",
)
@click.option(
    "--dashboard/--no-dashboard",
    default=None,
    help=f"Enable the Traefik dashboard [env: {ENV_DASHBOARD}]",
)
@click.option(
    "--auth/--no-auth",
    default=None,
    help=f"Protect the dashboard with basic auth [env: {ENV_AUTH}]",
)
@click.option(
    "--hash-scheme",
    type=click.Choice(HASH_SCHEMES),
    default=None,
    help="Password hash format (default: apr1)",
)
@click.option(
    "--release",
    metavar="TAG",
    envvar=ENV_RELEASE,
    default=None,
    help="Install a pinned release instead of the latest",
)
@click.option("--non-interactive", is_flag=True, help="Run without prompts")
@click.pass_obj
def install(
    config: AppConfig,
    config_file: Optional[Path],
    dashboard: Optional[bool],
    auth: Optional[bool],
    hash_scheme: Optional[str],
    release: Optional[str],
    non_interactive: bool,
) -> int:
    """Install Traefik, its configuration and the systemd service."""
    options = load_settings(config_file) if config_file else InstallOptions()
    options = options.merged(
        dashboard=env_flag(ENV_DASHBOARD),
        auth=env_flag(ENV_AUTH),
        password=env_password(),
    ).merged(
        dashboard=dashboard,
        auth=auth,
        hash_scheme=hash_scheme,
        release=release,
    )
    if non_interactive:
        options = options.merged(interactive=False)
    return TraefikInstaller(config, options).run()


@cli.command()
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def uninstall(config: AppConfig, assume_yes: bool) -> int:
    """Remove Traefik, its configuration, logs and service user."""
    require_root(config)
    open_log_file()
    Uninstaller(config).run(assume_yes=assume_yes)
    return 0


@cli.command()
@click.pass_obj
def status(config: AppConfig) -> int:
    """Show service state, installed version and configuration files."""
    open_log_file()
    version = installed_version(config)
    registrar = ServiceRegistrar(config)
    dashboard_state = DashboardPatcher(config).is_enabled()

    def present(path: Path) -> str:
        return "[green]present[/]" if path.exists() else "[red]missing[/]"

    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=ROUNDED,
        title=f"[bold {NordColors.FROST_2}]Traefik Status[/]",
    )
    table.add_column("Item", style=f"bold {NordColors.FROST_2}")
    table.add_column("State")
    table.add_row("Binary", version or "[red]not installed[/]")
    table.add_row(
        "Service",
        "[green]active[/]" if registrar.is_active() else "[yellow]inactive[/]",
    )
    table.add_row("Unit file", present(config.unit_path))
    table.add_row("Static config", present(config.static_config))
    table.add_row("Dynamic config", present(config.dynamic_config))
    table.add_row(
        "Dashboard",
        {True: "enabled", False: "disabled", None: "unknown"}[dashboard_state],
    )
    console.print(table)
    return 0


@cli.command()
@click.option("--enable/--disable", "enabled", default=None, help="Turn the dashboard on or off")
@click.option(
    "--auth/--no-auth",
    default=None,
    help=f"Protect the dashboard with basic auth [env: {ENV_AUTH}]",
)
@click.option("--hash-scheme", type=click.Choice(HASH_SCHEMES), default=None)
@click.option("--non-interactive", is_flag=True, help="Run without prompts")
@click.option("--no-restart", is_flag=True, help="Do not restart the service afterwards")
@click.pass_obj
def dashboard(
    config: AppConfig,
    enabled: Optional[bool],
    auth: Optional[bool],
    hash_scheme: Optional[str],
    non_interactive: bool,
    no_restart: bool,
) -> int:
    """Enable or disable the dashboard of an installed Traefik."""
    require_root(config)
    open_log_file()
    options = InstallOptions(interactive=not non_interactive).merged(
        auth=env_flag(ENV_AUTH), password=env_password()
    ).merged(dashboard=enabled, auth=auth, hash_scheme=hash_scheme)

    settings = resolve_settings(options, config.DASHBOARD_USER)
    changed = DashboardPatcher(config).apply(settings)
    if not any(changed.values()):
        console.print("[dim]Configuration already up to date[/dim]")
    elif no_restart:
        print_warning(f"Restart the service to apply: systemctl restart {config.SERVICE_NAME}")
    else:
        ServiceRegistrar(config).restart()
    return 0


# ----------------------------------------------------------------
# Main Entry Point
# ----------------------------------------------------------------
def main(argv: Optional[List[str]] = None, config: Optional[AppConfig] = None) -> int:
    """
    Run the CLI and translate failures into exit codes.

    Returns:
        int: Exit code (0 success, 1 failure, 130 interrupted)
    """
    install_rich_traceback(show_locals=False)
    try:
        result = cli.main(
            args=argv, prog_name="traefik-setup", obj=config, standalone_mode=False
        )
    except (click.Abort, KeyboardInterrupt):
        print_warning("Process interrupted by user")
        return 130
    except click.ClickException as e:
        e.show()
        return 1
    except SetupError as e:
        print_error(str(e))
        return 1
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        console.print_exception()
        return 1
    return result if isinstance(result, int) else 0
