"""Tests for the node model and merge."""

from cape.graph.models import (
    ANY_PRINCIPAL_ARN,
    AccountContribution,
    EscalationEdge,
    Node,
    NodeType,
    TriState,
    merge_nodes,
    merge_tristate,
)

from conftest import ADMIN, ALICE, DEPLOY, role, user


class TestTriState:

    def test_from_bool(self):
        assert TriState.from_bool(True) is TriState.YES
        assert TriState.from_bool(False) is TriState.NO
        assert TriState.from_bool(None) is TriState.UNKNOWN

    def test_yes_beats_no_beats_unknown(self):
        assert merge_tristate([TriState.UNKNOWN, TriState.NO]) is TriState.NO
        assert merge_tristate([TriState.NO, TriState.YES, TriState.UNKNOWN]) is TriState.YES
        assert merge_tristate([]) is TriState.UNKNOWN


class TestNode:

    def test_any_principal(self):
        assert Node(arn=ANY_PRINCIPAL_ARN).is_any_principal
        assert not Node(arn=ALICE).is_any_principal

    def test_vendor_flag(self):
        assert Node(arn='x', vendor_name='Datadog').is_vendor
        assert not Node(arn='x').is_vendor

    def test_to_dict_uses_enum_values(self):
        data = user(ALICE, is_admin=TriState.NO).to_dict()
        assert data['type'] == 'User'
        assert data['is_admin'] == 'No'
        assert data['can_privesc_to_admin'] == 'Unknown'

    def test_edge_pair(self):
        assert EscalationEdge(ALICE, DEPLOY, 'sts:AssumeRole').pair == (ALICE, DEPLOY)


class TestMergeNodes:

    def test_one_node_per_arn(self):
        nodes = [
            user(ALICE),
            user(ALICE, is_admin=TriState.NO),
            role(DEPLOY),
            role(DEPLOY, is_admin=TriState.NO),
            role(ADMIN),
        ]
        merged = merge_nodes(nodes)
        assert [n.arn for n in merged] == sorted({ADMIN, ALICE, DEPLOY})

    def test_order_independent(self):
        nodes = [
            Node(arn=DEPLOY, type=NodeType.UNKNOWN, name=''),
            role(DEPLOY, trust_policy={'Statement': []}, is_admin=TriState.NO),
            Node(arn=DEPLOY, can_privesc_to_admin=TriState.YES),
            user(ALICE),
        ]
        assert merge_nodes(nodes) == merge_nodes(list(reversed(nodes)))

    def test_conflict_policy(self):
        nodes = [
            Node(arn=DEPLOY),
            Node(arn=DEPLOY, type=NodeType.ROLE, name='Deploy', is_admin=TriState.NO),
            Node(arn=DEPLOY, account_id='222222222222', is_admin=TriState.YES,
                 can_privesc_to_admin=TriState.NO),
        ]
        [merged] = merge_nodes(nodes)
        assert merged.type is NodeType.ROLE
        assert merged.name == 'Deploy'
        assert merged.account_id == '222222222222'
        assert merged.is_admin is TriState.YES
        assert merged.can_privesc_to_admin is TriState.NO

    def test_keeps_trust_policy(self):
        policy = {'Statement': []}
        [merged] = merge_nodes([Node(arn=DEPLOY), role(DEPLOY, trust_policy=policy)])
        assert merged.trust_policy == policy


class TestAccountContribution:

    def test_succeeded_requires_account_and_no_errors(self):
        contribution = AccountContribution(profile='dev')
        assert not contribution.succeeded
        contribution.account_id = '111111111111'
        assert contribution.succeeded
        contribution.add_error(RuntimeError('boom'))
        assert not contribution.succeeded
        assert contribution.errors == ['boom']
