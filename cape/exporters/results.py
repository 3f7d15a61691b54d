"""
CAPE result files.

One JSON file per analyzed profile and query mode. The location is a pure
function of (output directory, profile, account ID, admin-only flag), so
a viewer given the same profile list finds the file without any handle
from the run that produced it.

Layout:
    <output_dir>/cape-output/aws/<profile>-<account_id>/json/
        inbound-privesc-paths-admin-targets-only.json
        inbound-privesc-paths-all-targets.json
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from cape import __version__
from cape.errors import ResultFileError
from cape.graph.analyzer import PrivescPath, inbound_paths
from cape.graph.ledger import AccountRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0.0'
OUTPUT_ROOT = 'cape-output'
ADMIN_TARGETS_FILE = 'inbound-privesc-paths-admin-targets-only.json'
ALL_TARGETS_FILE = 'inbound-privesc-paths-all-targets.json'


def result_file_name(admin_only: bool) -> str:
    return ADMIN_TARGETS_FILE if admin_only else ALL_TARGETS_FILE


def output_location(output_dir: str, profile: str, account_id: str) -> Path:
    """Per-profile output directory."""
    return Path(output_dir) / OUTPUT_ROOT / 'aws' / f'{profile}-{account_id}'


def result_file_path(output_dir: str, profile: str, account_id: str, admin_only: bool) -> Path:
    """Full path of the result file for one profile and query mode."""
    return output_location(output_dir, profile, account_id) / 'json' / result_file_name(admin_only)


@dataclass
class CapeResults:
    """Contents of one result file."""
    accounts: List[AccountRecord] = field(default_factory=list)
    paths: List[PrivescPath] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_version': SCHEMA_VERSION,
            'metadata': self.metadata,
            'accounts': [a.to_dict() for a in self.accounts],
            'paths': [p.to_dict() for p in self.paths],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CapeResults':
        return cls(
            accounts=[AccountRecord.from_dict(a) for a in data.get('accounts', [])],
            paths=[PrivescPath.from_dict(p) for p in data.get('paths', [])],
            metadata=dict(data.get('metadata', {})),
        )


class ResultPublisher:
    """Writes result files under an output directory."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def path_for(self, profile: str, account_id: str, admin_only: bool) -> Path:
        return result_file_path(self.output_dir, profile, account_id, admin_only)

    def publish(
        self,
        profile: str,
        account_id: str,
        records: List[AccountRecord],
        paths: List[PrivescPath],
        admin_only: bool
    ) -> Path:
        """
        Write the inbound paths of one account.

        Args:
            profile: Profile the account was analyzed with
            account_id: Account whose inbound paths are written
            records: Ledger snapshot
            paths: All paths of the query; only those ending in account_id are kept
            admin_only: Query mode, selects the file name

        Returns:
            Path of the written file
        """
        results = CapeResults(
            accounts=list(records),
            paths=inbound_paths(paths, account_id),
            metadata={
                'profile': profile,
                'account_id': account_id,
                'admin_only': admin_only,
                'generated_at': datetime.now(timezone.utc).isoformat(),
                'cape_version': __version__,
            },
        )
        return write_results(self.path_for(profile, account_id, admin_only), results)


def write_results(path: Path, results: CapeResults) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(results.to_dict(), f, indent=2)
    logger.info("Wrote %d paths to %s", len(results.paths), path)
    return path


def load_results(path: Path) -> CapeResults:
    """
    Load a result file.

    Raises:
        ResultFileError: If the file is missing or malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ResultFileError(f"Result file not found: {path}")
    except (OSError, ValueError) as e:
        raise ResultFileError(f"Cannot read result file {path}: {e}")

    if not isinstance(data, dict) or 'paths' not in data:
        raise ResultFileError(f"{path} is not a CAPE result file")

    try:
        return CapeResults.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ResultFileError(f"Malformed result file {path}: {e}")
