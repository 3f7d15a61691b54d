"""Tests for ARN helpers."""

from cape.graph.models import NodeType
from cape.iam.arn_utils import (
    account_root_arn,
    extract_account_id,
    is_account_root,
    normalize_principal,
    principal_name,
    principal_type,
)


class TestAccountIds:

    def test_extract(self):
        assert extract_account_id('arn:aws:iam::123456789012:role/MyRole') == '123456789012'
        assert extract_account_id('123456789012') == '123456789012'
        assert extract_account_id('arn:aws:s3:::my-bucket') is None
        assert extract_account_id('*') is None
        assert extract_account_id('') is None


class TestPrincipals:

    def test_roots(self):
        assert account_root_arn('123456789012') == 'arn:aws:iam::123456789012:root'
        assert is_account_root('arn:aws:iam::123456789012:root')
        assert is_account_root('123456789012')
        assert not is_account_root('arn:aws:iam::123456789012:user/root')
        assert normalize_principal(' 123456789012 ') == 'arn:aws:iam::123456789012:root'

    def test_type_and_name(self):
        assert principal_type('arn:aws:iam::123456789012:role/path/Admin') is NodeType.ROLE
        assert principal_type('arn:aws:iam::123456789012:user/alice') is NodeType.USER
        assert principal_type('arn:aws:iam::123456789012:root') is NodeType.EXTERNAL_ACCOUNT
        assert principal_type('arn:aws:sts::123456789012:assumed-role/R/s') is NodeType.UNKNOWN
        assert principal_name('arn:aws:iam::123456789012:role/path/Admin') == 'Admin'
        assert principal_name('arn:aws:iam::123456789012:root') == '123456789012'
