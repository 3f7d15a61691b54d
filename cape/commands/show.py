# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                      ᚺᛚᛁᛞᛊᚲᛃᚨᛚᚠ • HLIDSKJALF
#                    Odin's Throne - Seeing All Paths
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Loads result files written by 'cape run' and prints the inbound paths.
#   Files are found again from the same profiles and --admin-only flag.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from cape.cli_utils import format_tristate, get_console, tag, truncate
from cape.errors import CapeError, ResultFileError
from cape.exporters.results import CapeResults, load_results, result_file_path
from cape.graph.analyzer import PrivescPath
from cape.graph.ledger import AccountRecord

logger = logging.getLogger(__name__)

# Later hops are shown in hotter colors
HOP_COLORS = {1: 'green', 2: 'yellow', 3: 'orange1'}


def locate_result_files(
    output_dir: str,
    accounts: Dict[str, str],
    admin_only: bool
) -> List[Path]:
    """
    Recompute result file locations for profile -> account ID pairs.

    Missing files are reported and skipped.
    """
    console = get_console()
    files = []
    for profile, account_id in accounts.items():
        path = result_file_path(output_dir, profile, account_id, admin_only)
        if path.is_file():
            files.append(path)
            continue
        console.print(f"{tag('cape', profile)} [yellow]Could not find CAPE data at {path}[/yellow]")
        if admin_only:
            console.print("[dim]Did you run 'cape run' without --admin-only? "
                          "Use the same flag for run and show.[/dim]")
        else:
            console.print("[dim]Did you run 'cape run' with --admin-only? "
                          "Use the same flag for run and show.[/dim]")
    return files


def merge_results(files: List[Path]) -> CapeResults:
    """Combine several result files, one record per account, one path per pair."""
    accounts: Dict[str, AccountRecord] = {}
    paths: Dict[tuple, PrivescPath] = {}
    for path in files:
        results = load_results(path)
        for record in results.accounts:
            existing = accounts.get(record.account_id)
            # A record from the account's own run is more complete
            if existing is None or (record.profile and not existing.profile):
                accounts[record.account_id] = record
        for privesc_path in results.paths:
            paths.setdefault((privesc_path.destination, privesc_path.source), privesc_path)

    return CapeResults(
        accounts=[accounts[a] for a in sorted(accounts)],
        paths=[paths[k] for k in sorted(paths)],
    )


def run_show(
    files: List[Path],
    tree_view: bool = False,
    source_filter: Optional[str] = None,
    limit: Optional[int] = None
) -> CapeResults:
    """
    Print paths from result files.

    Args:
        files: Result files to load
        tree_view: Display each path as a tree
        source_filter: Only paths whose source ARN or name contains this text
        limit: Maximum number of paths to print

    Raises:
        ResultFileError: If no file could be loaded
    """
    console = get_console()
    if not files:
        raise ResultFileError("No CAPE result files to show")

    try:
        results = merge_results(files)
    except CapeError as e:
        logger.error("Failed to load results: %s", e)
        raise

    paths = results.paths
    if source_filter:
        needle = source_filter.lower()
        paths = [p for p in paths if needle in p.source.lower() or needle in p.source_name.lower()]

    console.print(f"\n[bold cyan]🦊 CAPE inbound privesc paths[/bold cyan] [dim]({len(paths)} found)[/dim]\n")

    shown = paths[:limit] if limit else paths
    if tree_view:
        for index, privesc_path in enumerate(shown, 1):
            _display_path_tree(index, privesc_path)
    else:
        _display_path_table(shown)

    if limit and len(paths) > limit:
        console.print(f"[dim]... and {len(paths) - limit} more paths[/dim]\n")

    unanalyzed = [r for r in results.accounts if not r.analyzed_successfully]
    if unanalyzed:
        ids = ', '.join(r.account_id for r in unanalyzed)
        console.print(f"[yellow]⚠ Accounts without full analysis:[/yellow] {ids}\n")

    return CapeResults(accounts=results.accounts, paths=paths, metadata=results.metadata)


def _display_path_table(paths: List[PrivescPath]) -> None:
    console = get_console()
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Destination", style="red")
    table.add_column("Admin?")
    table.add_column("Source", style="green")
    table.add_column("Source Account", style="dim")
    table.add_column("Hops", justify="right")
    table.add_column("Path")

    for privesc_path in paths:
        chain = ' → '.join(_short(arn) for arn in privesc_path.arns)
        table.add_row(
            privesc_path.destination_name or privesc_path.destination,
            format_tristate(privesc_path.destination_is_admin),
            privesc_path.source_name or privesc_path.source,
            privesc_path.source_account_id or '-',
            str(privesc_path.length),
            truncate(chain, 120),
        )
    console.print(table)


def _display_path_tree(index: int, privesc_path: PrivescPath) -> None:
    """Display path as tree structure."""
    console = get_console()
    console.print(f"[bold]Path {index}[/bold] ({privesc_path.length} hops) - "
                  f"admin: {format_tristate(privesc_path.destination_is_admin)}")

    tree = Tree(f"[cyan]{privesc_path.source}[/cyan]")
    current = tree
    for j, hop in enumerate(privesc_path.hops, 1):
        hop_color = HOP_COLORS.get(j, 'red')
        codes = escape(', '.join(sorted(hop.reasons))) or 'edge'
        current = current.add(f"[{hop_color}]↓ {codes}[/{hop_color}]")
        current = current.add(f"[cyan]{hop.destination}[/cyan]")

    console.print(tree)
    console.print(f"  [dim]Reason: {escape(privesc_path.explanation)}[/dim]")
    console.print()


def _short(arn: str) -> str:
    return arn.rsplit('/', 1)[-1] if '/' in arn else arn
