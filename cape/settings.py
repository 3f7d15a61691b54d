"""
CAPE configuration.

One CapeConfig is built from CLI options and passed through collection,
assembly and publishing. Paths fall back to environment variables so the
same profile list can be reused between runs.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

OUTPUT_DIR_ENV = 'CAPE_OUTPUT_DIR'
PMAPPER_STORAGE_ENV = 'PMAPPER_STORAGE'
DEFAULT_MAX_WORKERS = 4


@dataclass
class CapeConfig:
    """Settings decided once per invocation.

    Attributes:
        profiles: AWS profile names to analyze
        output_dir: Root directory for result files
        admin_only: Only report paths into admin principals
        arn_ignore_list: File of ARNs to drop from the graph
        pmapper_data_path: PMapper storage root (None = platform default)
        vendor_file: Extra vendor account JSON file
        continue_without_local_data: Keep going when PMapper data is missing
        max_workers: Threads used for per-account collection
        region: Region for STS/IAM clients
    """
    profiles: List[str] = field(default_factory=list)
    output_dir: Optional[str] = None
    admin_only: bool = False
    arn_ignore_list: Optional[str] = None
    pmapper_data_path: Optional[str] = None
    vendor_file: Optional[str] = None
    continue_without_local_data: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    region: Optional[str] = None

    def __post_init__(self):
        if self.output_dir is None:
            self.output_dir = os.environ.get(OUTPUT_DIR_ENV, os.getcwd())
        if self.pmapper_data_path is None:
            self.pmapper_data_path = os.environ.get(PMAPPER_STORAGE_ENV)
        if self.max_workers < 1:
            self.max_workers = 1
        # Preserve order, drop duplicates and blanks
        seen = set()
        profiles = []
        for profile in self.profiles:
            profile = profile.strip()
            if profile and profile not in seen:
                seen.add(profile)
                profiles.append(profile)
        self.profiles = profiles
