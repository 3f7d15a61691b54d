# ᚺᚢᚷᛁᚾᚾ • Huginn - The Raven Sent to Every Realm
"""
Per-account data collection.

One task per profile runs on a thread pool. Each task fills its own
AccountContribution (caller identity, PMapper data, IAM roles and users)
and never touches shared state; the ledger is only updated afterwards, on
the calling thread, by CollectionResult.apply_to_ledger().
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError

from cape.errors import (
    CapeError,
    CollectionAborted,
    IdentityListingError,
    LocalDataUnavailable,
    OperationError,
)
from cape.graph.ledger import AccountLedger
from cape.graph.models import AccountContribution
from cape.iam.pmapper import PmapperLoader
from cape.iam.scanner import IAMScanner
from cape.settings import CapeConfig

logger = logging.getLogger(__name__)

ScannerFactory = Callable[[str, Optional[str]], IAMScanner]


def default_scanner_factory(profile: str, region: Optional[str] = None) -> IAMScanner:
    try:
        return IAMScanner(profile_name=profile, region_name=region)
    except BotoCoreError as e:
        # e.g. ProfileNotFound
        raise OperationError('sts', 'CreateSession', e) from e


@dataclass
class CollectionResult:
    """Contributions of every profile, in the order profiles were given."""
    contributions: List[AccountContribution] = field(default_factory=list)

    @property
    def resolved(self) -> List[AccountContribution]:
        """Contributions whose account ID is known."""
        return [c for c in self.contributions if c.account_id]

    @property
    def unresolved(self) -> List[AccountContribution]:
        return [c for c in self.contributions if not c.account_id]

    @property
    def missing_local_data(self) -> List[AccountContribution]:
        return [c for c in self.resolved if not c.local_data_loaded]

    def apply_to_ledger(self, ledger: AccountLedger, admin_only: bool = False) -> None:
        """Register every resolved account, then flag the ones with errors."""
        for contribution in self.resolved:
            ledger.register_analyzed(contribution.account_id, contribution.profile, admin_only)
        for contribution in self.resolved:
            for error in contribution.errors:
                ledger.mark_failed(contribution.account_id, error)


class AccountCollector:
    """Collects identity and escalation data for many profiles concurrently."""

    def __init__(
        self,
        config: CapeConfig,
        scanner_factory: Optional[ScannerFactory] = None,
        pmapper_loader: Optional[PmapperLoader] = None
    ):
        self.config = config
        self.scanner_factory = scanner_factory or default_scanner_factory
        self.pmapper_loader = pmapper_loader or PmapperLoader(config.pmapper_data_path)

    def collect(self, profiles: Optional[List[str]] = None) -> CollectionResult:
        """
        Collect every profile.

        Raises:
            CollectionAborted: If PMapper data is missing for some account and
                continue_without_local_data is off
        """
        profiles = profiles if profiles is not None else self.config.profiles
        by_profile: Dict[str, AccountContribution] = {}

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {executor.submit(self.collect_profile, p): p for p in profiles}
            for future in as_completed(futures):
                profile = futures[future]
                by_profile[profile] = future.result()

        result = CollectionResult([by_profile[p] for p in profiles])

        missing = result.missing_local_data
        if missing and not self.config.continue_without_local_data:
            names = ', '.join(c.profile for c in missing)
            raise CollectionAborted(f"No PMapper data for profile(s): {names}")

        return result

    def collect_profile(self, profile: str) -> AccountContribution:
        """Gather one profile's data; failures are recorded, not raised."""
        contribution = AccountContribution(profile=profile)
        try:
            self._fill(contribution)
        except Exception as e:
            # Only this profile's account is flagged; the others still run
            logger.exception("[%s] Collection failed: %s", profile, e)
            contribution.add_error(f"collection failed: {e}")
        return contribution

    def _fill(self, contribution: AccountContribution) -> None:
        profile = contribution.profile

        try:
            scanner = self.scanner_factory(profile, self.config.region)
            contribution.account_id = scanner.account_id
        except CapeError as e:
            logger.error("[%s] Could not resolve account: %s", profile, e)
            contribution.add_error(e)
            return

        account_id = contribution.account_id

        try:
            local = self.pmapper_loader.load(account_id)
            contribution.nodes.extend(local.nodes)
            contribution.edges.extend(local.edges)
            contribution.local_data_loaded = True
        except LocalDataUnavailable as e:
            logger.warning("[%s] %s", profile, e)
            contribution.add_error(e)

        try:
            contribution.roles = scanner.scan_roles()
        except IdentityListingError as e:
            logger.error("[%s] Failed to list roles for %s: %s", profile, account_id, e)
            contribution.add_error(e)

        try:
            contribution.users = scanner.scan_users()
        except IdentityListingError as e:
            logger.error("[%s] Failed to list users for %s: %s", profile, account_id, e)
            contribution.add_error(e)

        logger.info(
            "[%s] Collected %d PMapper nodes, %d PMapper edges, %d roles, %d users for %s",
            profile, len(contribution.nodes), len(contribution.edges),
            len(contribution.roles), len(contribution.users), account_id
        )
