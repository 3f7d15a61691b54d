"""
IAM Scanner - Lists IAM roles and users for one AWS profile.

This module provides the IAMScanner class, the identity listing provider
used during collection. Each role comes back with its trust policy so the
graph builder can derive assume-role edges.

Typical usage:
    scanner = IAMScanner(profile_name='production')
    roles = scanner.scan_roles()
    users = scanner.scan_users()
"""

import logging
from typing import Any, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cape.errors import IdentityListingError, OperationError
from cape.graph.models import Node, NodeType
from cape.iam.arn_utils import extract_account_id

# Configure module logger
logger = logging.getLogger(__name__)

# Constants
DEFAULT_REGION = 'us-east-1'
MAX_RETRIES = 3
PAGINATION_PAGE_SIZE = 100


def operation_error(service: str, error: Exception, error_class=OperationError) -> OperationError:
    """Tag a botocore failure with its service and operation."""
    operation = getattr(error, 'operation_name', None) or 'unknown'
    return error_class(service, operation, error)


class IAMScanner:
    """Lists IAM principals for a single account"""

    def __init__(
        self,
        profile_name: Optional[str] = None,
        region_name: Optional[str] = None,
        session: Any = None
    ):
        """
        Initialize IAM scanner with AWS credentials

        Args:
            profile_name: AWS profile name from ~/.aws/credentials
            region_name: AWS region (optional, IAM is global)
            session: Pre-built boto3 session (overrides profile_name)
        """
        boto_config = Config(
            retries={'max_attempts': MAX_RETRIES, 'mode': 'standard'}
        )

        self.profile_name = profile_name
        self.session = session or boto3.Session(
            profile_name=profile_name,
            region_name=region_name or DEFAULT_REGION
        )
        self.iam = self.session.client('iam', config=boto_config)
        self.sts = self.session.client('sts', config=boto_config)
        self._account_id: Optional[str] = None

    @property
    def account_id(self) -> str:
        """Account of the calling identity (sts:GetCallerIdentity)."""
        if self._account_id is None:
            try:
                self._account_id = self.sts.get_caller_identity()['Account']
            except ClientError as e:
                logger.error("Failed to get AWS account ID for profile %s: %s", self.profile_name, e)
                raise operation_error('sts', e)
            except BotoCoreError as e:
                logger.error("Failed to get AWS account ID for profile %s: %s", self.profile_name, e)
                raise OperationError('sts', 'GetCallerIdentity', e)
        return self._account_id

    def scan_roles(self) -> List[Node]:
        """
        List all IAM roles in the account

        Returns:
            Role nodes carrying their trust policies

        Raises:
            IdentityListingError: If the listing fails
        """
        roles = []

        try:
            paginator = self.iam.get_paginator('list_roles')
            pagination_config = {'PageSize': PAGINATION_PAGE_SIZE}

            for page in paginator.paginate(PaginationConfig=pagination_config):
                for role in page['Roles']:
                    roles.append(Node(
                        arn=role['Arn'],
                        type=NodeType.ROLE,
                        name=role['RoleName'],
                        account_id=extract_account_id(role['Arn']) or '',
                        trust_policy=role.get('AssumeRolePolicyDocument'),
                    ))

        except ClientError as e:
            logger.error("AWS API error listing roles: %s", e)
            raise operation_error('iam', e, IdentityListingError) from e
        except BotoCoreError as e:
            logger.error("AWS client error listing roles: %s", e)
            raise IdentityListingError('iam', 'ListRoles', e) from e

        logger.debug("Listed %d roles", len(roles))
        return roles

    def scan_users(self) -> List[Node]:
        """
        List all IAM users in the account

        Returns:
            User nodes

        Raises:
            IdentityListingError: If the listing fails
        """
        users = []

        try:
            paginator = self.iam.get_paginator('list_users')
            pagination_config = {'PageSize': PAGINATION_PAGE_SIZE}

            for page in paginator.paginate(PaginationConfig=pagination_config):
                for user in page['Users']:
                    users.append(Node(
                        arn=user['Arn'],
                        type=NodeType.USER,
                        name=user['UserName'],
                        account_id=extract_account_id(user['Arn']) or '',
                    ))

        except ClientError as e:
            logger.error("AWS API error listing users: %s", e)
            raise operation_error('iam', e, IdentityListingError) from e
        except BotoCoreError as e:
            logger.error("AWS client error listing users: %s", e)
            raise IdentityListingError('iam', 'ListUsers', e) from e

        logger.debug("Listed %d users", len(users))
        return users
