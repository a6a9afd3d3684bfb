"""
Console output, banner, status table, prompts and logging setup.

All user-facing output goes through the Rich console defined here. Every
print_* helper also writes to the installer log.
"""

import logging
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import Dict, List, Optional, Union

import pyfiglet
from rich.align import Align
from rich.box import ROUNDED
from rich.console import Console, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from traefik_setup.errors import ValidationError


# ----------------------------------------------------------------
# Nord-Themed Colors and Rich Console
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark background)
    POLAR_NIGHT_4: str = "#4C566A"

    # Snow Storm (light text)
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"

    # Frost (blue accents)
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"

    # Aurora (other accents)
    RED: str = "#BF616A"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, steps: int = 4) -> List[str]:
        """Returns a gradient using the frost color palette."""
        frosts = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return frosts[:steps]


console = Console(
    theme=Theme(
        {
            "warning": f"bold {NordColors.YELLOW}",
            "error": f"bold {NordColors.RED}",
            "success": f"bold {NordColors.GREEN}",
            "section": f"{NordColors.FROST_3} bold",
            "step": f"{NordColors.FROST_2}",
            "prompt": f"bold {NordColors.PURPLE}",
        }
    ),
    highlight=False,
)

logger = logging.getLogger("traefik_setup")

# Records already shown by a print_* helper carry this flag
ECHOED = {"echoed": True}


# ----------------------------------------------------------------
# Logging Setup
# ----------------------------------------------------------------
class PendingLogHandler(MemoryHandler):
    """Buffers records until the log file may be created."""

    def __init__(self, log_path: Path) -> None:
        super().__init__(capacity=10000, flushLevel=logging.CRITICAL + 1)
        self.log_path = log_path


def _file_handler(log_path: Path) -> logging.FileHandler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s", "%Y-%m-%d %H:%M:%S")
    )
    return handler


def setup_logging(
    log_file: Optional[Union[str, Path]], debug: bool = False, defer: bool = False
) -> logging.Logger:
    """
    Configure logging with a Rich console handler and file output.

    The console handler only shows warnings and errors that no print_* helper
    has already echoed; the file receives everything. If the log file cannot
    be opened the logger falls back to console-only output.

    Args:
        log_file: Path of the log file, or None for console-only logging
        debug: Also show debug messages on the console
        defer: Keep records in memory until open_log_file() is called, so
            nothing is written to disk before the preflight checks pass

    Returns:
        The configured package logger
    """
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = RichHandler(
        console=console, rich_tracebacks=True, markup=False, show_path=False
    )
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.addFilter(lambda record: not getattr(record, "echoed", False))
    logger.addHandler(console_handler)

    if log_file and defer:
        logger.addHandler(PendingLogHandler(Path(log_file)))
    elif log_file:
        _attach_file(Path(log_file))

    return logger


def _attach_file(log_path: Path) -> Optional[logging.FileHandler]:
    try:
        file_handler = _file_handler(log_path)
    except OSError as e:
        logger.warning("Could not open log file %s: %s", log_path, e)
        return None
    logger.addHandler(file_handler)
    logger.debug("Logging initialized: %s", log_path)
    return file_handler


def open_log_file() -> bool:
    """
    Start writing a deferred log file and replay the records held so far.

    Returns:
        True if a log file was opened, False if none was pending or it
        could not be created
    """
    pending = [h for h in logger.handlers if isinstance(h, PendingLogHandler)]
    if not pending:
        return False
    buffered = pending[0]
    logger.removeHandler(buffered)
    file_handler = _attach_file(buffered.log_path)
    if file_handler is not None:
        buffered.setTarget(file_handler)
        buffered.flush()
    buffered.setTarget(None)
    buffered.close()
    return file_handler is not None


# ----------------------------------------------------------------
# Banner and Message Helpers
# ----------------------------------------------------------------
def create_header(title: str, version: str, subtitle: str) -> Panel:
    """
    Create an ASCII art header using Pyfiglet with a Nord-themed gradient.

    Args:
        title: Text rendered as ASCII art
        version: Version shown in the panel title
        subtitle: Text shown under the banner

    Returns:
        Panel: A Rich Panel containing the styled header.
    """
    fonts = ["slant", "small", "standard", "mini"]
    width = min(console.width - 10, 80) if console.width else 70
    ascii_art = ""

    for font in fonts:
        try:
            ascii_art = pyfiglet.Figlet(font=font, width=width).renderText(title)
            if ascii_art.strip():
                break
        except pyfiglet.FigletError as e:
            logger.debug("Font %s failed: %s", font, e)

    if not ascii_art.strip():
        ascii_art = f"=== {title} ===\n"

    lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = NordColors.get_frost_gradient()
    banner = Text()
    for i, line in enumerate(lines):
        banner.append(line, style=f"bold {colors[i % len(colors)]}")
        if i < len(lines) - 1:
            banner.append("\n")

    return Panel(
        Align.center(banner),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        box=ROUNDED,
        title=Text(f"v{version}", style=f"bold {NordColors.SNOW_STORM_2}"),
        title_align="right",
        subtitle=Text(subtitle, style=f"bold {NordColors.SNOW_STORM_1}"),
        subtitle_align="center",
    )


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    """Print a styled message with a prefix."""
    console.print(Text(f"{prefix} {text}", style=style))


def print_step(text: str) -> None:
    """Print a step description with arrow indication."""
    print_message(text, NordColors.FROST_3, "➜")
    logger.info(text, extra=ECHOED)


def print_success(text: str) -> None:
    """Print a success message with checkmark."""
    print_message(text, NordColors.GREEN, "✓")
    logger.info("SUCCESS: %s", text, extra=ECHOED)


def print_warning(text: str) -> None:
    """Print a warning message with warning symbol."""
    print_message(text, NordColors.YELLOW, "⚠")
    logger.warning(text, extra=ECHOED)


def print_error(text: str) -> None:
    """Print an error message with X symbol."""
    print_message(text, NordColors.RED, "✗")
    logger.error(text, extra=ECHOED)


def print_section(title: str) -> None:
    """Print a section header with a decorative separator."""
    console.print()
    console.print(f"[section]{title}[/section]")
    console.print(f"[{NordColors.FROST_3}]{'─' * max(len(title), 40)}[/]")
    logger.info("--- %s ---", title, extra=ECHOED)


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    """Display a styled panel with a message."""
    console.print(
        Panel(
            Text(message, style=style),
            border_style=style,
            padding=(1, 2),
            title=Text(title, style=f"bold {style}") if title else None,
            box=ROUNDED,
        )
    )


def status_report(status: Dict[str, Dict[str, str]], title: str) -> None:
    """
    Display a table reporting the status of every step.

    Args:
        status: Mapping of step key to {"status": ..., "message": ...}
        title: Table title
    """
    icons = {
        "success": "✓",
        "failed": "✗",
        "pending": "?",
        "in_progress": "⋯",
        "skipped": "-",
    }
    styles = {
        "success": "success",
        "failed": "error",
        "in_progress": "warning",
    }

    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=ROUNDED,
        title=f"[bold {NordColors.FROST_2}]{title}[/]",
        title_justify="center",
        expand=True,
    )
    table.add_column("Step", style=f"bold {NordColors.FROST_2}")
    table.add_column("Status", justify="center")
    table.add_column("Message", style=NordColors.SNOW_STORM_1, ratio=3)

    counts: Dict[str, int] = {}
    for key, data in status.items():
        st = data["status"]
        counts[st] = counts.get(st, 0) + 1
        style = styles.get(st, "step")
        table.add_row(
            key.replace("_", " ").title(),
            Text(f"{icons.get(st, '?')} {st.upper()}", style=style),
            data["message"],
        )

    summary = Text()
    summary.append("Summary: ", style=f"bold {NordColors.FROST_3}")
    summary.append(f"{counts.get('success', 0)} Succeeded", style=f"bold {NordColors.GREEN}")
    summary.append(" | ")
    summary.append(f"{counts.get('failed', 0)} Failed", style=f"bold {NordColors.RED}")
    summary.append(" | ")
    summary.append(
        f"{counts.get('skipped', 0) + counts.get('pending', 0)} Not Run",
        style=f"bold {NordColors.POLAR_NIGHT_4}",
    )

    console.print(
        Panel(
            Group(table, Align.center(summary)),
            border_style=Style(color=NordColors.FROST_4),
            padding=(0, 1),
            box=ROUNDED,
        )
    )


# ----------------------------------------------------------------
# User Interaction Helpers
# ----------------------------------------------------------------
def ask_yes_no(question: str) -> bool:
    """
    Ask a yes/no question, re-prompting until the answer is y or n.

    Raises:
        ValidationError: If standard input is closed
    """
    try:
        return Confirm.ask(f"[prompt]{question}[/prompt]", console=console)
    except EOFError:
        raise ValidationError(f"No answer available for: {question}")


def confirm_action(question: str) -> bool:
    """
    Ask for an explicit confirmation. Only an answer starting with "y" confirms;
    anything else, including an empty answer or closed input, declines.
    """
    try:
        answer = Prompt.ask(
            f"[prompt]{question} \\[y/N][/prompt]",
            console=console,
            default="",
            show_default=False,
        )
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")


def ask_secret(question: str) -> str:
    """
    Read a secret without echoing it.

    Raises:
        ValidationError: If standard input is closed
    """
    try:
        return Prompt.ask(f"[prompt]{question}[/prompt]", password=True, console=console)
    except EOFError:
        raise ValidationError("Standard input closed while reading a password")
