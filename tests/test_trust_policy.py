"""Tests for trust policy parsing."""

import json
from urllib.parse import quote

import pytest

from cape.errors import MalformedStatementError
from cape.graph.models import ANY_PRINCIPAL_ARN, NodeType
from cape.iam.trust_policy import decode_policy, describe_conditions

from conftest import ACCOUNT_A, ALICE, DEPLOY, role, trust


def policy(*statements):
    return {'Version': '2012-10-17', 'Statement': list(statements)}


class TestWildcards:

    def test_star_principal(self, deriver):
        deploy = role(DEPLOY, trust_policy=policy(
            {'Effect': 'Allow', 'Principal': '*', 'Action': 'sts:AssumeRole'}))
        [ref] = deriver.references(deploy)
        assert ref.node.arn == ANY_PRINCIPAL_ARN
        assert ref.node.is_any_principal
        assert "any principal ('*')" in ref.reason

    def test_star_aws_principal(self, deriver):
        [ref] = deriver.references(role(DEPLOY, trust_policy=trust('*')))
        assert ref.node.arn == ANY_PRINCIPAL_ARN

    def test_not_principal(self, deriver):
        deploy = role(DEPLOY, trust_policy=policy({
            'Effect': 'Allow',
            'NotPrincipal': {'AWS': ALICE},
            'Action': 'sts:AssumeRole',
        }))
        [ref] = deriver.references(deploy)
        assert ref.node.arn == ANY_PRINCIPAL_ARN
        assert 'NotPrincipal' in ref.reason


class TestPrincipals:

    def test_named_user(self, deriver):
        [edge] = deriver.derive_edges(role(DEPLOY, trust_policy=trust(ALICE)))
        assert edge.source == ALICE
        assert edge.destination == DEPLOY
        assert edge.short_reason == 'sts:AssumeRole'
        assert edge.reason == 'alice can assume Deploy'

    def test_account_root(self, deriver):
        [ref] = deriver.references(role(DEPLOY, trust_policy=trust(f'arn:aws:iam::{ACCOUNT_A}:root')))
        assert ref.account_root
        assert ref.node.type is NodeType.EXTERNAL_ACCOUNT
        assert ref.node.account_id == ACCOUNT_A
        assert ref.node.vendor_name == ''

    def test_bare_account_id_is_root(self, deriver):
        [node] = deriver.find_vertices(role(DEPLOY, trust_policy=trust(ACCOUNT_A)))
        assert node.arn == f'arn:aws:iam::{ACCOUNT_A}:root'

    def test_vendor_account(self, deriver):
        [ref] = deriver.references(role(DEPLOY, trust_policy=trust('464622532012')))
        assert ref.node.vendor_name == 'Datadog'
        assert ref.node.name == 'Datadog'
        assert 'Datadog account 464622532012' in ref.reason

    def test_service_principal(self, deriver):
        deploy = role(DEPLOY, trust_policy=policy({
            'Effect': 'Allow',
            'Principal': {'Service': ['ec2.amazonaws.com', 'lambda.amazonaws.com']},
            'Action': 'sts:AssumeRole',
        }))
        nodes = deriver.find_vertices(deploy)
        assert [n.arn for n in nodes] == ['ec2.amazonaws.com', 'lambda.amazonaws.com']
        assert all(n.type is NodeType.SERVICE and n.vendor_name == 'AWS' for n in nodes)

    def test_federated_principal(self, deriver):
        provider = f'arn:aws:iam::{ACCOUNT_A}:saml-provider/Okta'
        deploy = role(DEPLOY, trust_policy=policy({
            'Effect': 'Allow',
            'Principal': {'Federated': provider},
            'Action': 'sts:AssumeRoleWithSAML',
        }))
        [ref] = deriver.references(deploy)
        assert ref.node.type is NodeType.FEDERATED
        assert ref.node.name == 'Okta'
        assert ref.node.account_id == ACCOUNT_A
        assert ref.short_reason == 'sts:AssumeRoleWithSAML'

    def test_conditions_in_reason(self, deriver):
        deploy = role(DEPLOY, trust_policy=trust(
            ALICE, condition={'StringEquals': {'sts:ExternalId': 'abc'}}))
        [ref] = deriver.references(deploy)
        assert ref.reason.endswith('(Condition: StringEquals sts:ExternalId=abc)')


class TestStatementFiltering:

    def test_deny_and_other_actions_ignored(self, deriver):
        deploy = role(DEPLOY, trust_policy=policy(
            {'Effect': 'Deny', 'Principal': {'AWS': ALICE}, 'Action': 'sts:AssumeRole'},
            {'Effect': 'Allow', 'Principal': {'AWS': ALICE}, 'Action': 'sts:TagSession'},
        ))
        assert deriver.references(deploy) == []

    def test_wildcard_action(self, deriver):
        [ref] = deriver.references(role(DEPLOY, trust_policy=trust(ALICE, action='sts:*')))
        assert ref.short_reason == 'sts:AssumeRole'

    def test_malformed_statement_skipped(self, deriver):
        deploy = role(DEPLOY, trust_policy=policy(
            'not a statement',
            {'Effect': 'Allow', 'Action': 'sts:AssumeRole'},
            {'Effect': 'Maybe', 'Principal': '*', 'Action': 'sts:AssumeRole'},
            {'Effect': 'Allow', 'Principal': {'AWS': ALICE}, 'Action': 'sts:AssumeRole'},
        ))
        [ref] = deriver.references(deploy)
        assert ref.node.arn == ALICE

    def test_unparseable_policy(self, deriver):
        assert deriver.references(role(DEPLOY, trust_policy='{not json')) == []

    def test_no_policy(self, deriver):
        assert deriver.references(role(DEPLOY)) == []


class TestDecodePolicy:

    def test_json_string(self):
        document = trust(ALICE)
        assert decode_policy(json.dumps(document)) == document

    def test_url_encoded_string(self):
        document = trust(ALICE)
        assert decode_policy(quote(json.dumps(document))) == document

    def test_rejects_other_types(self):
        with pytest.raises(MalformedStatementError):
            decode_policy(['not', 'a', 'policy'])


class TestDescribeConditions:

    def test_sorted_operators_and_keys(self):
        text = describe_conditions({
            'StringLike': {'aws:PrincipalArn': ['arn:a', 'arn:b']},
            'Bool': {'aws:MultiFactorAuthPresent': 'true'},
        })
        assert text == 'Bool aws:MultiFactorAuthPresent=true; StringLike aws:PrincipalArn=arn:a,arn:b'

    def test_empty(self):
        assert describe_conditions(None) == ''

    def test_malformed(self):
        with pytest.raises(MalformedStatementError):
            describe_conditions({'StringEquals': 'oops'})
