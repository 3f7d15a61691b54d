"""Shared fixtures for CAPE tests."""

import pytest

from cape.graph.ledger import AccountLedger
from cape.graph.models import AccountContribution, EscalationEdge, Node, NodeType, TriState
from cape.iam.trust_policy import TrustPolicyDeriver
from cape.iam.vendors import VendorMap

ACCOUNT_A = '111111111111'
ACCOUNT_B = '222222222222'
ACCOUNT_C = '333333333333'

ALICE = f'arn:aws:iam::{ACCOUNT_A}:user/alice'
DEPLOY = f'arn:aws:iam::{ACCOUNT_B}:role/Deploy'
ADMIN = f'arn:aws:iam::{ACCOUNT_B}:role/Admin'


def trust(*principals, action='sts:AssumeRole', condition=None):
    """Trust policy allowing the given AWS principals."""
    statement = {
        'Effect': 'Allow',
        'Principal': {'AWS': list(principals)},
        'Action': action,
    }
    if condition:
        statement['Condition'] = condition
    return {'Version': '2012-10-17', 'Statement': [statement]}


def role(arn, trust_policy=None, is_admin=TriState.UNKNOWN, can_privesc=TriState.UNKNOWN):
    account_id = arn.split(':')[4]
    return Node(
        arn=arn,
        type=NodeType.ROLE,
        name=arn.rsplit('/', 1)[-1],
        account_id=account_id,
        is_admin=is_admin,
        can_privesc_to_admin=can_privesc,
        trust_policy=trust_policy,
    )


def user(arn, is_admin=TriState.UNKNOWN, can_privesc=TriState.UNKNOWN):
    return Node(
        arn=arn,
        type=NodeType.USER,
        name=arn.rsplit('/', 1)[-1],
        account_id=arn.split(':')[4],
        is_admin=is_admin,
        can_privesc_to_admin=can_privesc,
    )


@pytest.fixture
def vendors():
    return VendorMap.load()


@pytest.fixture
def deriver(vendors):
    return TrustPolicyDeriver(vendors)


@pytest.fixture
def ledger():
    return AccountLedger()


@pytest.fixture
def two_accounts():
    """
    alice (A) is trusted by Deploy (B); Deploy can reach Admin (B) both by
    role assumption and by a PMapper escalation edge.
    """
    account_a = AccountContribution(
        profile='dev',
        account_id=ACCOUNT_A,
        nodes=[user(ALICE, is_admin=TriState.NO, can_privesc=TriState.NO)],
        users=[user(ALICE)],
        local_data_loaded=True,
    )
    account_b = AccountContribution(
        profile='prod',
        account_id=ACCOUNT_B,
        nodes=[
            role(DEPLOY, is_admin=TriState.NO, can_privesc=TriState.YES),
            role(ADMIN, is_admin=TriState.YES, can_privesc=TriState.NO),
        ],
        edges=[
            EscalationEdge(DEPLOY, ADMIN, 'EC2', 'Deploy can launch an EC2 instance with the Admin profile'),
        ],
        roles=[
            role(DEPLOY, trust_policy=trust(ALICE)),
            role(ADMIN, trust_policy=trust(DEPLOY)),
        ],
        local_data_loaded=True,
    )
    return [account_a, account_b]


def register(ledger, contributions, admin_only=False):
    for contribution in contributions:
        ledger.register_analyzed(contribution.account_id, contribution.profile, admin_only)
        for error in contribution.errors:
            ledger.mark_failed(contribution.account_id, error)
