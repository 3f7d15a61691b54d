# ᚨᛊᚷᚨᚱᛞ • Asgard - Accounts of the Gods
"""
Lookup table of AWS-owned and well-known vendor account IDs.

Trust policies often name accounts that do not belong to the customer
(load balancer log delivery, monitoring vendors). Those accounts must not
be reported as discovered customer accounts.

Usage:
    vendors = VendorMap.load()
    vendors.lookup('127311923021')  # -> 'AWS Elastic Load Balancing (us-east-1)'
"""

import json
import logging
from typing import Dict, Iterator, Optional

from cape.errors import CapeError
from cape.iam.arn_utils import extract_account_id

logger = logging.getLogger(__name__)

KNOWN_AWS_ACCOUNTS: Dict[str, str] = {
    # Elastic Load Balancing access-log delivery
    '127311923021': 'AWS Elastic Load Balancing (us-east-1)',
    '033677994240': 'AWS Elastic Load Balancing (us-east-2)',
    '027434742980': 'AWS Elastic Load Balancing (us-west-1)',
    '797873946194': 'AWS Elastic Load Balancing (us-west-2)',
    '156460612806': 'AWS Elastic Load Balancing (eu-west-1)',
    '054676820928': 'AWS Elastic Load Balancing (eu-central-1)',
    '114774131450': 'AWS Elastic Load Balancing (ap-southeast-1)',
    '582318560864': 'AWS Elastic Load Balancing (ap-northeast-1)',
    # Redshift audit logging
    '193672423079': 'AWS Redshift (us-east-1)',
    '391106570357': 'AWS Redshift (us-east-2)',
    # Third-party monitoring vendors
    '464622532012': 'Datadog',
}


class VendorMap:
    """Maps account IDs to a vendor label."""

    def __init__(self, accounts: Optional[Dict[str, str]] = None):
        self._accounts: Dict[str, str] = dict(accounts or {})

    @classmethod
    def load(cls, extra_file: Optional[str] = None) -> 'VendorMap':
        """
        Build the default map, optionally extended from a JSON file.

        The file holds either {"account_id": "vendor", ...} or a list of
        {"name": ..., "accounts": [...]} entries.
        """
        vendors = cls(KNOWN_AWS_ACCOUNTS)
        if extra_file:
            vendors.update_from_file(extra_file)
        return vendors

    def update_from_file(self, path: str) -> int:
        """Merge vendor entries from a JSON file. Returns the number added."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CapeError(f"Failed to read vendor file {path}: {e}")

        added = 0
        if isinstance(data, dict):
            for account_id, name in data.items():
                self.add(str(account_id), str(name))
                added += 1
        elif isinstance(data, list):
            for entry in data:
                if not isinstance(entry, dict):
                    continue
                name = entry.get('name', '')
                for account_id in entry.get('accounts', []):
                    self.add(str(account_id), name)
                    added += 1
        logger.debug("Loaded %d vendor accounts from %s", added, path)
        return added

    def add(self, account_id: str, name: str) -> None:
        self._accounts[account_id] = name

    def lookup(self, principal: str) -> Optional[str]:
        """Vendor label for an account ID or ARN, or None for customer accounts."""
        account_id = extract_account_id(principal)
        if not account_id:
            return None
        return self._accounts.get(account_id)

    def is_vendor(self, principal: str) -> bool:
        return self.lookup(principal) is not None

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._accounts)
