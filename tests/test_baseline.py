"""Tests for the ARN ignore list."""

import pytest

from cape.baseline import parse_arn_ignore_list, read_arn_ignore_list
from cape.errors import IgnoreListError


class TestIgnoreList:

    def test_comments_and_blanks_skipped(self):
        content = """
# break-glass roles
arn:aws:iam::111111111111:role/BreakGlass   # reviewed 2024-05

arn:aws:iam::111111111111:role/BreakGlass
arn:aws:iam::222222222222:user/ci
"""
        assert parse_arn_ignore_list(content) == [
            'arn:aws:iam::111111111111:role/BreakGlass',
            'arn:aws:iam::222222222222:user/ci',
        ]

    def test_read_file(self, tmp_path):
        path = tmp_path / 'ignore.txt'
        path.write_text('arn:aws:iam::111111111111:user/alice\n')
        assert read_arn_ignore_list(str(path)) == ['arn:aws:iam::111111111111:user/alice']

    def test_unreadable(self, tmp_path):
        with pytest.raises(IgnoreListError):
            read_arn_ignore_list(str(tmp_path / 'missing.txt'))
