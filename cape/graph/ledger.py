# ᛗᚢᚾᛁᚾᚾ • Muninn - Memory of Every Realm Visited
"""
Account ledger for partial-failure reporting.

Every account touched by the analysis gets exactly one AccountRecord:
accounts supplied through a profile (source 'user') and accounts only
seen in a trust policy reference (source 'discovered'). Records are never
removed; the only update allowed is flipping analyzed_successfully off.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional

from cape.graph.models import Node, TriState

logger = logging.getLogger(__name__)

SOURCE_USER = 'user'
SOURCE_DISCOVERED = 'discovered'


@dataclass
class AccountRecord:
    """Bookkeeping entry for one account ID."""
    account_id: str
    profile: str = ""
    analyzed_successfully: bool = False
    admin_only_analysis: bool = False
    source: str = SOURCE_DISCOVERED
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_id': self.account_id,
            'profile': self.profile,
            'analyzed_successfully': self.analyzed_successfully,
            'admin_only_analysis': self.admin_only_analysis,
            'source': self.source,
            'errors': list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountRecord':
        return cls(
            account_id=data['account_id'],
            profile=data.get('profile', ''),
            analyzed_successfully=bool(data.get('analyzed_successfully', False)),
            admin_only_analysis=bool(data.get('admin_only_analysis', False)),
            source=data.get('source', SOURCE_DISCOVERED),
            errors=list(data.get('errors', [])),
        )


class AccountLedger:
    """One AccountRecord per account ID, passed explicitly through assembly."""

    def __init__(self):
        self._records: Dict[str, AccountRecord] = {}

    def register_analyzed(self, account_id: str, profile: str, admin_only: bool = False) -> AccountRecord:
        """Record an account supplied through a profile."""
        existing = self._records.get(account_id)
        if existing is not None:
            # Two profiles for one account: keep the first profile name
            if existing.source != SOURCE_USER:
                existing.source = SOURCE_USER
                existing.profile = profile
                existing.analyzed_successfully = True
            return existing

        record = AccountRecord(
            account_id=account_id,
            profile=profile,
            analyzed_successfully=True,
            admin_only_analysis=admin_only,
            source=SOURCE_USER,
        )
        self._records[account_id] = record
        return record

    def register_discovered(self, account_id: str, admin_only: bool = False) -> Optional[AccountRecord]:
        """Record an account only seen through a reference. No-op if known."""
        if not account_id or account_id in self._records:
            return None
        record = AccountRecord(
            account_id=account_id,
            analyzed_successfully=False,
            admin_only_analysis=admin_only,
            source=SOURCE_DISCOVERED,
        )
        self._records[account_id] = record
        logger.debug("Discovered account %s through a trust reference", account_id)
        return record

    def mark_failed(self, account_id: str, reason: str = "") -> None:
        """Flip an account to unsuccessful, keeping its other fields."""
        record = self._records.get(account_id)
        if record is None:
            record = AccountRecord(account_id=account_id)
            self._records[account_id] = record
        record.analyzed_successfully = False
        if reason:
            record.errors.append(reason)
        logger.info("Account %s marked as not fully analyzed: %s", account_id, reason or 'no reason given')

    def get(self, account_id: str) -> Optional[AccountRecord]:
        return self._records.get(account_id)

    def contains(self, account_id: str) -> bool:
        return account_id in self._records

    def is_analyzed(self, account_id: str) -> bool:
        record = self._records.get(account_id)
        return record is not None and record.analyzed_successfully

    def unanalyzed(self) -> List[AccountRecord]:
        """Accounts lacking full data, sorted by account ID."""
        return [r for r in self.records() if not r.analyzed_successfully]

    def records(self, admin_only: Optional[bool] = None) -> List[AccountRecord]:
        """
        Snapshot of all records sorted by account ID.

        Args:
            admin_only: When given, stamps admin_only_analysis on the copies
                from the query mode instead of the stored value
        """
        snapshot = []
        for account_id in sorted(self._records):
            record = replace(self._records[account_id], errors=list(self._records[account_id].errors))
            if admin_only is not None:
                record.admin_only_analysis = admin_only
            snapshot.append(record)
        return snapshot

    def mask_unknown(self, node: Node) -> Node:
        """
        Turn 'No' risk answers into 'Unknown' for accounts without full data.

        A No from an account whose analysis failed is not trustworthy; Yes
        answers are kept because they cannot cause a false negative.
        """
        if not node.account_id or node.is_vendor or self.is_analyzed(node.account_id):
            return node
        return replace(
            node,
            is_admin=TriState.UNKNOWN if node.is_admin is TriState.NO else node.is_admin,
            can_privesc_to_admin=(
                TriState.UNKNOWN if node.can_privesc_to_admin is TriState.NO
                else node.can_privesc_to_admin
            ),
        )

    def __iter__(self) -> Iterator[AccountRecord]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)
