"""
ARN parsing utilities for IAM principals.

Account ID extraction and principal normalization for AWS ARNs.
"""

from typing import Optional
import re

from cape.graph.models import NodeType

_ACCOUNT_ID_RE = re.compile(r'^\d{12}$')


def is_account_id(value: str) -> bool:
    """True when value is a bare 12-digit AWS account ID."""
    return bool(value) and bool(_ACCOUNT_ID_RE.match(value))


def extract_account_id(arn: str) -> Optional[str]:
    """
    Extract account ID from AWS ARN.

    ARN format: arn:partition:service:region:account-id:resource-type/resource-id

    Examples:
        arn:aws:iam::123456789012:role/MyRole -> 123456789012
        arn:aws:iam::123456789012:user/Alice -> 123456789012
        123456789012 -> 123456789012 (bare account IDs are accepted)
        arn:aws:s3:::my-bucket -> None (S3 buckets don't have account IDs)

    Args:
        arn: AWS ARN string

    Returns:
        Account ID (12-digit string) or None if not found/invalid
    """
    if not arn or not isinstance(arn, str):
        return None

    if is_account_id(arn):
        return arn

    # ARN format: arn:partition:service:region:account-id:resource
    parts = arn.split(':')

    # Need at least 6 parts
    if len(parts) < 6:
        return None

    account_id = parts[4]

    if is_account_id(account_id):
        return account_id

    return None


def account_root_arn(account_id: str, partition: str = 'aws') -> str:
    """Build the root principal ARN for an account."""
    return f'arn:{partition}:iam::{account_id}:root'


def is_account_root(principal: str) -> bool:
    """True for 'arn:...:iam::123456789012:root' or a bare account ID."""
    if is_account_id(principal):
        return True
    return principal.startswith('arn:') and principal.endswith(':root')


def normalize_principal(principal: str) -> str:
    """
    Normalize an AWS principal reference from a trust policy.

    Handles cases like:
    - Full ARN: arn:aws:iam::123456789012:role/MyRole (unchanged)
    - Bare account ID: 123456789012 -> arn:aws:iam::123456789012:root
    """
    principal = principal.strip()
    if is_account_id(principal):
        return account_root_arn(principal)
    return principal


def principal_type(arn: str) -> NodeType:
    """Infer the node type of an IAM principal ARN."""
    if is_account_root(arn):
        return NodeType.EXTERNAL_ACCOUNT
    resource = arn.split(':', 5)[-1] if arn.startswith('arn:') else ''
    if resource.startswith('role/'):
        return NodeType.ROLE
    if resource.startswith('user/'):
        return NodeType.USER
    return NodeType.UNKNOWN


def principal_name(arn: str) -> str:
    """
    Friendly name of a principal.

    Examples:
        arn:aws:iam::123456789012:role/path/Admin -> Admin
        arn:aws:iam::123456789012:root -> 123456789012
    """
    if is_account_id(arn):
        return arn
    if is_account_root(arn):
        return extract_account_id(arn) or arn
    resource = arn.split(':', 5)[-1]
    return resource.rsplit('/', 1)[-1]
