# data_task_orchestrator/analysis/correlation.py
from itertools import combinations
from typing import List, Sequence

import numpy as np

from data_task_orchestrator.models import ColumnProfile, ColumnRelationship, ColumnType, Table
from data_task_orchestrator.analysis.type_inference import is_numeric

def pearson_correlation(x: Sequence, y: Sequence) -> float:
    """Pearson r over the positions where both values are numeric; 0 when undefined"""
    pairs = [(a, b) for a, b in zip(x, y) if is_numeric(a) and is_numeric(b)]
    if len(pairs) < 2:
        return 0.0

    values = np.asarray(pairs, dtype=float)
    xs, ys = values[:, 0], values[:, 1]

    x_dev = xs - xs.mean()
    y_dev = ys - ys.mean()
    denominator = np.sqrt((x_dev ** 2).sum() * (y_dev ** 2).sum())
    if denominator == 0:
        return 0.0

    return float((x_dev * y_dev).sum() / denominator)

def find_relationships(table: Table,
                       profiles: Sequence[ColumnProfile],
                       threshold: float = 0.7) -> List[ColumnRelationship]:
    """Correlation relationships between number columns with |r| >= threshold"""
    numeric_columns = [profile.name for profile in profiles if profile.type == ColumnType.NUMBER]
    relationships = []

    for first, second in combinations(numeric_columns, 2):
        r = pearson_correlation(table.column_values(first), table.column_values(second))
        if abs(r) < threshold:
            continue

        direction = 'positive' if r > 0 else 'negative'
        relationships.append(ColumnRelationship(
            column1=first,
            column2=second,
            type='correlation',
            strength=round(abs(r), 4),
            description=f"Strong {direction} correlation (r = {r:.2f}) between '{first}' and '{second}'"
        ))

    return relationships
