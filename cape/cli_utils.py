# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                            ᚱᚢᚾᛁᚱ • THE RUNES
#                    Sacred Symbols of Power and Knowledge
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Shared console, constants and small helpers for every CAPE command.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from typing import Dict, List

import click
from rich.console import Console

from cape.graph.models import TriState

# ᚢᚱᚢᛉ • Uruz - The Rune of Strength (Constants)
DEFAULT_TABLE_LIMIT = 50
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


# ᛏᛁᚹᚨᛉ • Tiwaz - Exit Codes for CI/CD Integration
class ExitCode:
    """
    Standardized exit codes.

    Usage:
        sys.exit(ExitCode.PARTIAL_DATA)
    """
    SUCCESS = 0              # Every account analyzed
    ERROR = 1                # General error (invalid args, file not found, etc.)
    PARTIAL_DATA = 2         # Results written, some accounts lack full data
    ABORTED = 3              # Local escalation data missing and not allowed
    AWS_ERROR = 10           # No profile could be resolved


# Rich color mapping for tri-state answers
TRISTATE_COLORS: Dict[TriState, str] = {
    TriState.YES: 'red',
    TriState.NO: 'green',
    TriState.UNKNOWN: 'yellow',
}

# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════
logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Console Configuration
# ═══════════════════════════════════════════════════════════════════════════════
console = Console()


def set_console_theme(*, no_color: bool = False) -> None:
    """
    Configure global console instance with theme settings.

    Args:
        no_color: If True, disable all colored/styled output (useful for CI/CD)
    """
    global console
    console = Console(force_terminal=not no_color, no_color=no_color)


def get_console() -> Console:
    """Current console; commands call this after set_console_theme()."""
    return console


def tag(*labels: str) -> str:
    """Progress prefix like '[cape][prod]'."""
    return ''.join(f"[cyan]\\[{label}][/cyan]" for label in labels)


# ═══════════════════════════════════════════════════════════════════════════════
# Helper Functions
# ═══════════════════════════════════════════════════════════════════════════════
def truncate(text: str, max_length: int, suffix: str = '..') -> str:
    """
    Truncate text to max_length, adding suffix if truncated.

    Args:
        text: Input string to truncate
        max_length: Maximum allowed length including suffix
        suffix: String to append when truncated (default: '..')

    Returns:
        Truncated string with suffix, or original if within limit
    """
    text = str(text) if text else ''
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def format_tristate(value: TriState) -> str:
    """Rich markup for a Yes/No/Unknown answer."""
    color = TRISTATE_COLORS.get(value, 'white')
    return f"[{color}]{value.value}[/{color}]"


def read_profiles_file(filepath: str) -> List[str]:
    """
    Read profile names, one per line.

    Raises:
        click.ClickException: If the file cannot be read
    """
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise click.ClickException(f"Cannot read profiles file {filepath}: {e}")
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith('#')]


def gather_profiles(profiles: tuple, profiles_list: str = None) -> List[str]:
    """Combine --profile options and a -l profiles file, keeping order."""
    names = list(profiles)
    if profiles_list:
        names.extend(read_profiles_file(profiles_list))
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


# ᚨᛊᚲᛁᛁ • Banner
CAPE_BANNER_SMALL = "[bold cyan]🦊 CAPE[/bold cyan] [dim]• Cross-Account Privilege Escalation[/dim]"


def print_banner() -> None:
    console.print(CAPE_BANNER_SMALL)
