# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                              ᛒᛁᚠᚱᛟᛊᛏ • BIFRÖST
#                     The Rainbow Bridge Between Realms
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Entry point for the 'cape' command. Options are parsed here, turned into
#   a CapeConfig and handed to the command modules.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
from rich.table import Table

from cape import __version__
from cape.aws_utils import get_aws_profiles, missing_profiles
from cape.cli_utils import (
    DEFAULT_TABLE_LIMIT,
    ExitCode,
    configure_logging,
    gather_profiles,
    get_console,
    print_banner,
    set_console_theme,
    tag,
)
from cape.commands import locate_result_files, run_cape, run_show
from cape.errors import CapeError, CollectionAborted
from cape.graph.collector import default_scanner_factory
from cape.settings import DEFAULT_MAX_WORKERS, CapeConfig

# ᛗᛁᛗᛁᚱ • Mimir's Well of Wisdom - Logger
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--version', '-v', is_flag=True, help='Show version and exit')
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.option('--no-color', is_flag=True, help='Disable colored output (useful for CI/CD logs)')
@click.pass_context
def main(ctx, version, verbose, no_color):
    """
    🦊 CAPE - Cross-Account Privilege Escalation

    Joins the IAM graphs of many AWS accounts and finds the principals that
    can reach admin (or any) principals in another account.

    \b
    Quick Start:
      cape run -p dev -p prod              # Analyze two accounts together
      cape show -p dev -p prod             # Print the inbound paths
      cape profiles                        # List configured AWS profiles
    """
    configure_logging(verbose)
    set_console_theme(no_color=no_color)

    if version:
        get_console().print(f"cape {__version__}", highlight=False)
        ctx.exit(0)
    elif ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@main.command()
def profiles():
    """
    List available AWS profiles from ~/.aws/credentials and ~/.aws/config

    Example:
        cape profiles
    """
    console = get_console()
    profiles_list = get_aws_profiles()

    if not profiles_list:
        console.print("[yellow]⚠️  No AWS profiles found[/yellow]")
        console.print("\n[dim]Configure AWS credentials:[/dim]")
        console.print("  aws configure")
        return

    console.print(f"\n[bold cyan]📋 Available AWS Profiles:[/bold cyan] [dim]({len(profiles_list)} found)[/dim]\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Profile", style="green")
    table.add_column("Region", style="yellow")

    for profile in profiles_list:
        table.add_row(profile['name'], profile.get('region') or '[dim]not configured[/dim]')

    console.print(table)
    console.print("\n[dim]💡 Usage:[/dim] cape run -p <name> -p <name>")
    console.print()


@main.command()
@click.option('--profile', '-p', 'profile_names', multiple=True, help='AWS profile to analyze (repeatable)')
@click.option('--profiles-list', '-l', type=click.Path(), default=None, help='File with one profile per line')
@click.option('--admin-only', is_flag=True, help='Only report paths that end in admin principals')
@click.option('--output-dir', '-o', default=None, help='Output root (default: $CAPE_OUTPUT_DIR or cwd)')
@click.option('--arn-ignore-list', type=click.Path(), default=None, help='File of ARNs to drop from the graph')
@click.option('--pmapper-data', 'pmapper_data', type=click.Path(), default=None,
              help='PMapper storage root (default: $PMAPPER_STORAGE or platform default)')
@click.option('--vendor-file', type=click.Path(exists=True), default=None,
              help='JSON file of extra vendor accounts')
@click.option('--stop-without-local-data', is_flag=True,
              help='Abort if PMapper data is missing for any account')
@click.option('--max-workers', default=DEFAULT_MAX_WORKERS, show_default=True,
              help='Accounts collected concurrently')
@click.option('--region', default=None, help='Region for STS/IAM clients')
def run(
    profile_names: Tuple[str, ...],
    profiles_list: Optional[str],
    admin_only: bool,
    output_dir: Optional[str],
    arn_ignore_list: Optional[str],
    pmapper_data: Optional[str],
    vendor_file: Optional[str],
    stop_without_local_data: bool,
    max_workers: int,
    region: Optional[str]
) -> None:
    """
    Analyze several accounts together and write inbound privesc paths.

    Every profile's account gets one result file for the chosen mode.
    Run 'pmapper graph create' for each account first.
    """
    console = get_console()
    names = gather_profiles(profile_names, profiles_list)
    if not names:
        console.print("[red]✗ No profiles given.[/red] Use -p NAME or -l FILE")
        sys.exit(ExitCode.ERROR)

    for name in missing_profiles(names):
        console.print(f"{tag('cape', name)} [yellow]⚠️  Profile not found in local AWS config[/yellow]")

    config = CapeConfig(
        profiles=names,
        output_dir=output_dir,
        admin_only=admin_only,
        arn_ignore_list=arn_ignore_list,
        pmapper_data_path=pmapper_data,
        vendor_file=vendor_file,
        continue_without_local_data=not stop_without_local_data,
        max_workers=max_workers,
        region=region,
    )
    logger.info("Starting CAPE run: profiles=%s, admin_only=%s", names, admin_only)

    try:
        result = run_cape(config)
    except CollectionAborted as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print("[dim]💡 Run 'pmapper graph create' for those accounts or drop --stop-without-local-data[/dim]")
        sys.exit(ExitCode.ABORTED)
    except CapeError as e:
        logger.error("CAPE run failed: %s", e)
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(ExitCode.ERROR)

    if result.files:
        console.print("\n[bold green]✓ Output files:[/bold green]")
        for path in result.files:
            console.print(f"  {path}")
    else:
        console.print("[red]✗ No account could be analyzed; nothing written[/red]")

    sys.exit(result.exit_code)


def _parse_accounts(values: Tuple[str, ...]) -> Dict[str, str]:
    accounts = {}
    for value in values:
        profile, sep, account_id = value.partition('=')
        if not sep or not profile or not account_id:
            raise click.BadParameter(f"expected PROFILE=ACCOUNT_ID, got '{value}'", param_hint='--account')
        accounts[profile.strip()] = account_id.strip()
    return accounts


def _resolve_accounts(names, known: Dict[str, str], region: Optional[str]) -> Dict[str, str]:
    """Account ID per profile, asking STS for the ones not given."""
    console = get_console()
    accounts = {}
    for name in names:
        if name in known:
            accounts[name] = known[name]
            continue
        try:
            accounts[name] = default_scanner_factory(name, region).account_id
        except CapeError as e:
            logger.error("[%s] Could not resolve account: %s", name, e)
            console.print(f"{tag('cape', name)} [red]✗ Could not resolve account:[/red] {e}")
    for name, account_id in known.items():
        accounts.setdefault(name, account_id)
    return accounts


@main.command()
@click.option('--profile', '-p', 'profile_names', multiple=True, help='AWS profile to show (repeatable)')
@click.option('--profiles-list', '-l', type=click.Path(), default=None, help='File with one profile per line')
@click.option('--account', 'account_pairs', multiple=True, metavar='PROFILE=ID',
              help='Account ID for a profile, skips the STS lookup (repeatable)')
@click.option('--results', 'result_files', multiple=True, type=click.Path(exists=True),
              help='Result file to load directly (repeatable)')
@click.option('--admin-only', is_flag=True, help='Show the admin-targets-only results')
@click.option('--output-dir', '-o', default=None, help='Output root used by run')
@click.option('--tree-view', is_flag=True, help='Display each path as a tree')
@click.option('--from', 'source_filter', default=None, help='Only paths whose source matches')
@click.option('--limit', default=DEFAULT_TABLE_LIMIT, show_default=True, help='Maximum paths to print (0 = all)')
@click.option('--region', default=None, help='Region for STS clients')
def show(
    profile_names: Tuple[str, ...],
    profiles_list: Optional[str],
    account_pairs: Tuple[str, ...],
    result_files: Tuple[str, ...],
    admin_only: bool,
    output_dir: Optional[str],
    tree_view: bool,
    source_filter: Optional[str],
    limit: int,
    region: Optional[str]
) -> None:
    """
    Print inbound privesc paths written by 'cape run'.

    Use the same profiles and --admin-only flag as the run.
    """
    console = get_console()
    files = [Path(f) for f in result_files]

    names = gather_profiles(profile_names, profiles_list)
    known = _parse_accounts(account_pairs)
    if names or known:
        config = CapeConfig(profiles=names, output_dir=output_dir, admin_only=admin_only, region=region)
        accounts = _resolve_accounts(config.profiles, known, region)
        files.extend(locate_result_files(config.output_dir, accounts, admin_only))

    if not files:
        console.print("[red]✗ No CAPE result files found[/red]")
        console.print("[dim]💡 Run 'cape run' first, or pass --results FILE[/dim]")
        sys.exit(ExitCode.ERROR)

    try:
        run_show(files, tree_view=tree_view, source_filter=source_filter, limit=limit or None)
    except CapeError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(ExitCode.ERROR)


if __name__ == '__main__':
    main()
