# data_task_orchestrator/analysis/statistics.py
import math
import re
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from data_task_orchestrator.models import NumericStatistics, Quartiles, StringStatistics, ValueCount

PATTERN_TAGS = [
    ('numeric', re.compile(r'^\d+$')),
    ('uppercase', re.compile(r'^[A-Z]+$')),
    ('lowercase', re.compile(r'^[a-z]+$')),
    ('date-iso', re.compile(r'^\d{4}-\d{2}-\d{2}$')),
]

def positional_quantile(sorted_values: np.ndarray, p: float) -> float:
    """Value at index floor(n * p) of an ascending array, no interpolation"""
    index = min(int(math.floor(len(sorted_values) * p)), len(sorted_values) - 1)
    return float(sorted_values[index])

def median_of_sorted(sorted_values: np.ndarray) -> float:
    n = len(sorted_values)
    if n % 2 == 0:
        return float((sorted_values[n // 2 - 1] + sorted_values[n // 2]) / 2)
    return float(sorted_values[n // 2])

def iqr_bounds(q1: float, q3: float, multiplier: float = 1.5) -> Tuple[float, float]:
    iqr = q3 - q1
    return q1 - multiplier * iqr, q3 + multiplier * iqr

def calculate_numeric_statistics(values: Sequence[float], iqr_multiplier: float = 1.5) -> NumericStatistics:
    """
    Summary statistics for the numeric values of one column.

    Quartiles use positional indexing on the sorted values, the standard
    deviation is the population one, and outliers fall strictly outside the
    IQR fences. Outliers keep the order of ``values`` and are not deduplicated.

    Args:
        values: Non-empty numeric values in table order
        iqr_multiplier: Fence width in IQRs

    Returns:
        NumericStatistics for the column
    """
    if len(values) == 0:
        raise ValueError("Numeric statistics require at least one value")

    array = np.asarray(values, dtype=float)
    sorted_values = np.sort(array)

    median = median_of_sorted(sorted_values)
    q1 = positional_quantile(sorted_values, 0.25)
    q3 = positional_quantile(sorted_values, 0.75)

    lower_bound, upper_bound = iqr_bounds(q1, q3, iqr_multiplier)
    outliers = [value for value in values if value < lower_bound or value > upper_bound]

    return NumericStatistics(
        min=float(sorted_values[0]),
        max=float(sorted_values[-1]),
        mean=float(np.mean(array)),
        median=median,
        std_dev=float(np.std(array)),  # ddof=0: population
        quartiles=Quartiles(q1=q1, q2=median, q3=q3),
        outliers=outliers
    )

def cell_text(value: Any) -> str:
    """Text form of a typed cell: true, false, 2, 2.5"""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)

def detect_patterns(sample_value: str) -> List[str]:
    """Shape tags for one representative value"""
    return [tag for tag, pattern in PATTERN_TAGS if pattern.fullmatch(sample_value)]

def calculate_string_statistics(values: Sequence[Any], top_values_limit: int = 10) -> StringStatistics:
    """Length statistics, frequency table and pattern tags of a text column"""
    if len(values) == 0:
        raise ValueError("String statistics require at least one value")

    texts = [cell_text(value) for value in values]
    lengths = [len(text) for text in texts]

    # dict keeps first-seen order, and sorted() is stable, so ties keep that order
    value_counts: Dict[str, int] = {}
    for text in texts:
        value_counts[text] = value_counts.get(text, 0) + 1

    top_values = sorted(value_counts.items(), key=lambda item: item[1], reverse=True)[:top_values_limit]

    return StringStatistics(
        min_length=min(lengths),
        max_length=max(lengths),
        avg_length=sum(lengths) / len(lengths),
        patterns=detect_patterns(texts[0]),
        top_values=[ValueCount(value=value, count=count) for value, count in top_values]
    )
