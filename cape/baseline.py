# ᛒᚨᛊᛖᛚᛁᚾᛖ • Baseline - Known Principals to Leave Out
"""
ARN ignore list for excluding known noisy principals.

Break-glass roles and similar principals can drown the results in
expected paths. The ignore list is a text file with one ARN per line;
blank lines and '#' comments are skipped, and a trailing '# reason' is
allowed after an ARN.

Usage:
    arns = read_arn_ignore_list('ignore.txt')
"""

import logging
from typing import List

from cape.errors import IgnoreListError

logger = logging.getLogger(__name__)


def parse_arn_ignore_list(content: str) -> List[str]:
    """Extract ARNs from ignore list text, keeping first-seen order."""
    arns = []
    seen = set()
    for line in content.splitlines():
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith('#'):
            continue

        # Parse line: arn [# reason]
        if '#' in line:
            line = line.split('#', 1)[0].strip()

        if line and line not in seen:
            seen.add(line)
            arns.append(line)
    return arns


def read_arn_ignore_list(path: str) -> List[str]:
    """
    Load the ARN ignore list.

    Args:
        path: Path to the ignore list file

    Returns:
        ARNs to exclude

    Raises:
        IgnoreListError: If the file cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IgnoreListError(f"Cannot read ARN ignore list {path}: {e}") from e

    arns = parse_arn_ignore_list(content)
    logger.info("Loaded %d ARNs to ignore from %s", len(arns), path)
    return arns
