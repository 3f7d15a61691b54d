"""Tests for the account ledger."""

from cape.graph.ledger import SOURCE_DISCOVERED, SOURCE_USER, AccountRecord
from cape.graph.models import Node, TriState

from conftest import ACCOUNT_A, ACCOUNT_B, ACCOUNT_C, ALICE, role, user


class TestRegistration:

    def test_register_analyzed(self, ledger):
        record = ledger.register_analyzed(ACCOUNT_A, 'dev', admin_only=True)
        assert record.source == SOURCE_USER
        assert record.analyzed_successfully
        assert record.admin_only_analysis
        assert ledger.is_analyzed(ACCOUNT_A)

    def test_discovered_is_noop_when_known(self, ledger):
        ledger.register_analyzed(ACCOUNT_A, 'dev')
        assert ledger.register_discovered(ACCOUNT_A) is None
        assert ledger.get(ACCOUNT_A).source == SOURCE_USER
        assert len(ledger) == 1

    def test_discovered_then_supplied(self, ledger):
        ledger.register_discovered(ACCOUNT_C)
        assert not ledger.is_analyzed(ACCOUNT_C)
        ledger.register_analyzed(ACCOUNT_C, 'sandbox')
        record = ledger.get(ACCOUNT_C)
        assert record.source == SOURCE_USER
        assert record.profile == 'sandbox'
        assert record.analyzed_successfully

    def test_empty_account_ignored(self, ledger):
        assert ledger.register_discovered('') is None
        assert len(ledger) == 0


class TestMarkFailed:

    def test_keeps_other_fields(self, ledger):
        ledger.register_analyzed(ACCOUNT_B, 'prod', admin_only=True)
        ledger.mark_failed(ACCOUNT_B, 'AccessDenied on ListRoles')
        record = ledger.get(ACCOUNT_B)
        assert record.profile == 'prod'
        assert record.source == SOURCE_USER
        assert record.admin_only_analysis
        assert not record.analyzed_successfully
        assert record.errors == ['AccessDenied on ListRoles']

    def test_unknown_account_created(self, ledger):
        ledger.mark_failed(ACCOUNT_C)
        assert ledger.contains(ACCOUNT_C)
        assert ledger.get(ACCOUNT_C).source == SOURCE_DISCOVERED


class TestSnapshots:

    def test_records_sorted_and_stamped(self, ledger):
        ledger.register_analyzed(ACCOUNT_B, 'prod')
        ledger.register_discovered(ACCOUNT_C)
        ledger.register_analyzed(ACCOUNT_A, 'dev')
        records = ledger.records(admin_only=True)
        assert [r.account_id for r in records] == [ACCOUNT_A, ACCOUNT_B, ACCOUNT_C]
        assert all(r.admin_only_analysis for r in records)
        assert not ledger.get(ACCOUNT_A).admin_only_analysis

    def test_unanalyzed(self, ledger):
        ledger.register_analyzed(ACCOUNT_A, 'dev')
        ledger.register_discovered(ACCOUNT_C)
        assert [r.account_id for r in ledger.unanalyzed()] == [ACCOUNT_C]

    def test_record_dict_round_trip(self):
        record = AccountRecord(ACCOUNT_A, 'dev', True, False, SOURCE_USER, ['x'])
        assert AccountRecord.from_dict(record.to_dict()) == record


class TestMaskUnknown:

    def test_analyzed_account_untouched(self, ledger):
        ledger.register_analyzed(ACCOUNT_A, 'dev')
        alice = user(ALICE, is_admin=TriState.NO, can_privesc=TriState.NO)
        assert ledger.mask_unknown(alice) is alice

    def test_no_becomes_unknown(self, ledger):
        ledger.register_analyzed(ACCOUNT_A, 'dev')
        ledger.mark_failed(ACCOUNT_A, 'no PMapper data')
        masked = ledger.mask_unknown(user(ALICE, is_admin=TriState.NO, can_privesc=TriState.NO))
        assert masked.is_admin is TriState.UNKNOWN
        assert masked.can_privesc_to_admin is TriState.UNKNOWN

    def test_yes_is_kept(self, ledger):
        arn = f'arn:aws:iam::{ACCOUNT_C}:role/Admin'
        masked = ledger.mask_unknown(role(arn, is_admin=TriState.YES, can_privesc=TriState.NO))
        assert masked.is_admin is TriState.YES
        assert masked.can_privesc_to_admin is TriState.UNKNOWN

    def test_vendor_and_accountless_nodes_untouched(self, ledger):
        vendor = Node(arn='arn:aws:iam::464622532012:root', account_id='464622532012',
                      vendor_name='Datadog', is_admin=TriState.NO)
        anyone = Node(arn='*', is_admin=TriState.NO)
        assert ledger.mask_unknown(vendor) is vendor
        assert ledger.mask_unknown(anyone) is anyone
