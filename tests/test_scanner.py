"""Tests for the boto3 identity listing provider."""

import json
from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from cape.errors import IdentityListingError, OperationError
from cape.graph.models import NodeType
from cape.iam.scanner import IAMScanner

from conftest import ACCOUNT_A, trust

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def scanner():
    session = boto3.Session(
        aws_access_key_id='testing',
        aws_secret_access_key='testing',
        region_name='us-east-1',
    )
    return IAMScanner(profile_name='dev', session=session)


def role_entry(name, policy):
    return {
        'Path': '/',
        'RoleName': name,
        'RoleId': f'AROA{name.upper():0<16}',
        'Arn': f'arn:aws:iam::{ACCOUNT_A}:role/{name}',
        'CreateDate': CREATED,
        'AssumeRolePolicyDocument': json.dumps(policy),
    }


def user_entry(name):
    return {
        'Path': '/',
        'UserName': name,
        'UserId': f'AIDA{name.upper():0<16}',
        'Arn': f'arn:aws:iam::{ACCOUNT_A}:user/{name}',
        'CreateDate': CREATED,
    }


class TestAccountId:

    def test_caller_identity(self, scanner):
        with Stubber(scanner.sts) as stub:
            stub.add_response('get_caller_identity', {
                'UserId': 'AIDAEXAMPLE',
                'Account': ACCOUNT_A,
                'Arn': f'arn:aws:iam::{ACCOUNT_A}:user/alice',
            })
            assert scanner.account_id == ACCOUNT_A
            assert scanner.account_id == ACCOUNT_A
            stub.assert_no_pending_responses()

    def test_error_is_tagged(self, scanner):
        with Stubber(scanner.sts) as stub:
            stub.add_client_error('get_caller_identity', service_error_code='ExpiredToken',
                                  http_status_code=403)
            with pytest.raises(OperationError) as exc:
                scanner.account_id
        assert exc.value.service == 'sts'
        assert exc.value.operation == 'GetCallerIdentity'


class TestListings:

    def test_scan_roles_across_pages(self, scanner):
        policy = trust('arn:aws:iam::222222222222:root')
        with Stubber(scanner.iam) as stub:
            stub.add_response('list_roles', {
                'Roles': [role_entry('Deploy', policy)],
                'IsTruncated': True,
                'Marker': 'page-2',
            })
            stub.add_response('list_roles', {
                'Roles': [role_entry('Admin', policy)],
                'IsTruncated': False,
            })
            roles = scanner.scan_roles()

        assert [r.name for r in roles] == ['Deploy', 'Admin']
        assert all(r.type is NodeType.ROLE and r.account_id == ACCOUNT_A for r in roles)
        assert json.loads(roles[0].trust_policy) == policy

    def test_scan_users(self, scanner):
        with Stubber(scanner.iam) as stub:
            stub.add_response('list_users', {'Users': [user_entry('alice')], 'IsTruncated': False})
            [alice] = scanner.scan_users()
        assert alice.arn == f'arn:aws:iam::{ACCOUNT_A}:user/alice'
        assert alice.type is NodeType.USER

    def test_access_denied(self, scanner):
        with Stubber(scanner.iam) as stub:
            stub.add_client_error('list_roles', service_error_code='AccessDenied', http_status_code=403)
            with pytest.raises(IdentityListingError) as exc:
                scanner.scan_roles()
        assert 'iam:ListRoles' in str(exc.value)
        assert isinstance(exc.value, OperationError)
        assert (exc.value.service, exc.value.operation) == ('iam', 'ListRoles')
        assert exc.value.cause.response['Error']['Code'] == 'AccessDenied'
