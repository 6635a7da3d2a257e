# data_task_orchestrator/analysis/type_inference.py
import math
import numbers
import re
import warnings
from typing import Any, List, Sequence

import numpy as np
import pandas as pd

from data_task_orchestrator.models import ColumnType

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
URL_PATTERN = re.compile(r'^https?://.+')

# Shorter strings such as "2020" or "12.5" parse as dates but are not date columns
MIN_DATE_LENGTH = 7

def is_null(value: Any) -> bool:
    """Missing cell: None, empty string or NaN"""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ''
    if isinstance(value, float):
        return math.isnan(value)
    return False

def is_numeric(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, numbers.Real):
        return False
    return not math.isnan(float(value))

def is_boolean(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))

def is_valid_date(text: str) -> bool:
    if len(text) < MIN_DATE_LENGTH:
        return False
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        try:
            parsed = pd.to_datetime(text, errors='coerce')
        except (ValueError, TypeError, OverflowError):
            return False
    return not pd.isna(parsed)

def is_email(text: str) -> bool:
    return bool(EMAIL_PATTERN.fullmatch(text))

def is_url(text: str) -> bool:
    return bool(URL_PATTERN.match(text))

def infer_column_type(values: Sequence[Any],
                      sample_size: int = 100,
                      threshold: float = 0.8) -> ColumnType:
    """
    Infer the dominant type of a column from the first ``sample_size`` non-null values.

    Only the sample prefix is inspected, so reordering rows can change the result.

    Args:
        values: Non-null values of the column in table order
        sample_size: Maximum number of leading values to inspect
        threshold: Fraction of the sample a type needs to win

    Returns:
        The inferred ColumnType
    """
    if len(values) == 0:
        return ColumnType.UNKNOWN

    sample: List[Any] = list(values[:min(sample_size, len(values))])

    counts = {
        ColumnType.NUMBER: 0,
        ColumnType.BOOLEAN: 0,
        ColumnType.DATE: 0,
        ColumnType.EMAIL: 0,
        ColumnType.URL: 0,
    }

    for value in sample:
        if is_numeric(value):
            counts[ColumnType.NUMBER] += 1
        elif is_boolean(value):
            counts[ColumnType.BOOLEAN] += 1
        elif isinstance(value, str):
            text = value.strip()
            if is_valid_date(text):
                counts[ColumnType.DATE] += 1
            elif is_email(text):
                counts[ColumnType.EMAIL] += 1
            elif is_url(text):
                counts[ColumnType.URL] += 1

    required = len(sample) * threshold

    # dict preserves priority order: number, boolean, date, email, url
    for column_type, count in counts.items():
        if count >= required:
            return column_type

    if isinstance(sample[0], str):
        return ColumnType.STRING

    return ColumnType.MIXED
