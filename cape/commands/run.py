# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                     ᛒᛁᚠᚱᛟᛊᛏ ᚠᛖᚱᛞ • BIFRÖST JOURNEY
#                       Every Realm Joined in One Graph
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Collects every profile, assembles the cross-account graph, finds the
#   inbound privesc paths and writes one result file per analyzed account.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.table import Table

from cape.baseline import read_arn_ignore_list
from cape.cli_utils import ExitCode, get_console, tag
from cape.errors import IgnoreListError
from cape.graph.analyzer import PrivescPath, find_admin_paths, summarize_paths
from cape.graph.builder import GraphAssembler
from cape.graph.collector import AccountCollector, CollectionResult
from cape.graph.ledger import AccountLedger
from cape.graph.store import PrivescGraph
from cape.exporters.results import ResultPublisher
from cape.iam.trust_policy import TrustPolicyDeriver
from cape.iam.vendors import VendorMap
from cape.settings import CapeConfig

logger = logging.getLogger(__name__)


@dataclass
class CapeRun:
    """Everything one run produced."""
    collection: CollectionResult
    ledger: AccountLedger
    graph: PrivescGraph
    paths: List[PrivescPath] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)
    ignore_list_error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        if not self.collection.resolved:
            return ExitCode.AWS_ERROR
        if any(not r.analyzed_successfully for r in self.ledger.records() if r.profile):
            return ExitCode.PARTIAL_DATA
        return ExitCode.SUCCESS


def load_ignore_list(config: CapeConfig) -> tuple:
    """ARNs to ignore and the load error, if any. Never raises."""
    if not config.arn_ignore_list:
        return [], None
    try:
        return read_arn_ignore_list(config.arn_ignore_list), None
    except IgnoreListError as e:
        logger.error("%s", e)
        return [], str(e)


def run_cape(
    config: CapeConfig,
    collector: Optional[AccountCollector] = None,
    vendors: Optional[VendorMap] = None
) -> CapeRun:
    """
    Run the full pipeline for the configured profiles.

    Args:
        config: Invocation settings
        collector: Collector to use (default: boto3 + PMapper on disk)
        vendors: Vendor lookup (default: built-in table + config.vendor_file)

    Returns:
        CapeRun with graph, paths and written files

    Raises:
        CollectionAborted: If PMapper data is missing and not allowed
    """
    console = get_console()
    vendors = vendors or VendorMap.load(config.vendor_file)
    collector = collector or AccountCollector(config)

    for profile in config.profiles:
        console.print(f"{tag('cape', profile)} Collecting IAM principals and PMapper data")
    collection = collector.collect()

    for contribution in collection.contributions:
        prefix = tag('cape', contribution.profile)
        if not contribution.account_id:
            console.print(f"{prefix} [red]✗ Could not resolve account:[/red] {'; '.join(contribution.errors)}")
            continue
        console.print(
            f"{prefix} Account {contribution.account_id}: "
            f"{len(contribution.nodes)} PMapper vertices, {len(contribution.edges)} PMapper edges, "
            f"{len(contribution.roles)} roles, {len(contribution.users)} users"
        )
        for error in contribution.errors:
            console.print(f"{prefix} [yellow]⚠ {error}[/yellow]")

    ledger = AccountLedger()
    collection.apply_to_ledger(ledger, config.admin_only)

    ignore_arns, ignore_error = load_ignore_list(config)
    if ignore_error:
        console.print(f"{tag('cape')} [yellow]⚠ {ignore_error} - continuing without exclusions[/yellow]")

    console.print(f"{tag('cape')} Making vertices and edges for all profiles")
    assembler = GraphAssembler(ledger, TrustPolicyDeriver(vendors), admin_only=config.admin_only)
    graph = assembler.assemble(collection.resolved, ignore_arns)
    stats = graph.stats()
    console.print(
        f"{tag('cape')} Graph has {stats['vertex_count']} vertices and {stats['edge_count']} edges "
        f"({stats['cross_account_edges']} cross-account) across {stats['account_count']} accounts"
    )

    paths = find_admin_paths(graph, admin_only=config.admin_only)
    summary = summarize_paths(paths)
    console.print(
        f"{tag('cape')} Found {summary['path_count']} paths from {summary['source_count']} principals "
        f"({summary['cross_account_paths']} cross-account)"
    )

    run = CapeRun(
        collection=collection,
        ledger=ledger,
        graph=graph,
        paths=paths,
        ignore_list_error=ignore_error,
    )

    publisher = ResultPublisher(config.output_dir)
    records = ledger.records(admin_only=config.admin_only)
    for contribution in collection.resolved:
        path = publisher.publish(
            contribution.profile, contribution.account_id, records, paths, config.admin_only
        )
        run.files.append(path)
        console.print(f"{tag('cape', contribution.profile)} Results written to {path}")

    _print_ledger(ledger)
    return run


def _print_ledger(ledger: AccountLedger) -> None:
    """Show accounts that lack full data."""
    missing = ledger.unanalyzed()
    if not missing:
        return

    console = get_console()
    table = Table(title="Accounts without full analysis", show_header=True, header_style="bold cyan")
    table.add_column("Account", style="yellow")
    table.add_column("Profile")
    table.add_column("Source", style="dim")
    table.add_column("Reason", style="dim")

    for record in missing:
        reason = '; '.join(record.errors) if record.errors else 'only referenced in a trust policy'
        table.add_row(record.account_id, record.profile or '-', record.source, reason)

    console.print()
    console.print(table)
    console.print("[dim]Risk answers for these accounts read 'Unknown' rather than 'No'.[/dim]\n")
