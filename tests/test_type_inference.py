# tests/test_type_inference.py
import math

import numpy as np
import pytest

from data_task_orchestrator.analysis.type_inference import (
    infer_column_type, is_boolean, is_email, is_null, is_numeric, is_url, is_valid_date
)
from data_task_orchestrator.models import ColumnType

class TestValuePredicates:

    @pytest.mark.parametrize("value", [None, '', float('nan')])
    def test_null_values(self, value):
        assert is_null(value)

    @pytest.mark.parametrize("value", [0, 'x', ' ', False])
    def test_non_null_values(self, value):
        assert not is_null(value)

    def test_numeric_excludes_booleans_and_nan(self):
        assert is_numeric(3)
        assert is_numeric(2.5)
        assert is_numeric(np.int64(7))
        assert not is_numeric(True)
        assert not is_numeric(np.bool_(False))
        assert not is_numeric(math.nan)
        assert not is_numeric('42')

    def test_boolean(self):
        assert is_boolean(True)
        assert not is_boolean(1)

    def test_dates_need_seven_characters(self):
        assert is_valid_date('2023-01-15')
        assert not is_valid_date('2020')
        assert not is_valid_date('not a date at all')

    def test_email_and_url(self):
        assert is_email('alice@example.com')
        assert not is_email('alice at example.com')
        assert is_url('https://example.com/path')
        assert is_url('http://example.org')
        assert not is_url('ftp://example.com')

class TestInferColumnType:

    def test_empty_column_is_unknown(self):
        assert infer_column_type([]) == ColumnType.UNKNOWN

    def test_numbers(self):
        assert infer_column_type([1, 2, 3.5, 4]) == ColumnType.NUMBER

    def test_booleans(self):
        assert infer_column_type([True, False, True]) == ColumnType.BOOLEAN

    def test_dates(self):
        assert infer_column_type(['2023-01-01', '2023-02-15', '2023-03-31']) == ColumnType.DATE

    def test_emails(self):
        values = ['alice@example.com', 'bob@example.org', 'carol@example.net']
        assert infer_column_type(values) == ColumnType.EMAIL

    def test_urls(self):
        values = ['https://example.com/a', 'https://example.com/b', 'http://example.org']
        assert infer_column_type(values) == ColumnType.URL

    def test_plain_strings(self):
        assert infer_column_type(['apple', 'pear', 'plum']) == ColumnType.STRING

    def test_threshold_is_inclusive(self):
        # 4 of 5 numeric is exactly 80%
        assert infer_column_type([1, 2, 3, 4, 'word']) == ColumnType.NUMBER

    def test_below_threshold_with_leading_string_is_string(self):
        assert infer_column_type(['word', 1, 2, True, 'other']) == ColumnType.STRING

    def test_below_threshold_with_leading_non_string_is_mixed(self):
        assert infer_column_type([1, 'word', True, 'other', 2.5]) == ColumnType.MIXED

    def test_only_the_sample_prefix_is_inspected(self):
        values = ['word'] * 100 + list(range(500))
        assert infer_column_type(values) == ColumnType.STRING
        assert infer_column_type(values, sample_size=1000) == ColumnType.NUMBER

    def test_custom_threshold(self):
        values = [1, 2, 'a', 'b']
        assert infer_column_type(values, threshold=0.5) == ColumnType.NUMBER
        assert infer_column_type(values) == ColumnType.MIXED
