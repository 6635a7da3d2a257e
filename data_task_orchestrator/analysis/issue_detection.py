# data_task_orchestrator/analysis/issue_detection.py
import json
import logging
import math
from typing import Any, List, Optional, Sequence, Set

import numpy as np

from data_task_orchestrator.config import ProfilingConfig, get_config
from data_task_orchestrator.models import DataIssue, IssueSeverity, IssueType, NumericStatistics, Table
from data_task_orchestrator.analysis.type_inference import is_null
from data_task_orchestrator.utils.ids import IdFactory, SequentialIdFactory
from data_task_orchestrator.utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)

class IssueDetector:
    """Emits missing-value, outlier and duplicate-row issues"""

    def __init__(self, config: Optional[ProfilingConfig] = None, id_factory: Optional[IdFactory] = None):
        self.config = config or get_config().profiling
        self.id_factory = id_factory or SequentialIdFactory()

    def detect_missing_values(self, column: str, values: Sequence[Any]) -> Optional[DataIssue]:
        """Issue for a column whose null share exceeds the missing values threshold"""
        if len(values) == 0:
            return None

        affected_rows = [idx for idx, value in enumerate(values) if is_null(value)]
        null_percentage = len(affected_rows) / len(values) * 100

        if null_percentage <= self.config.MISSING_VALUES_THRESHOLD:
            return None

        severity = (IssueSeverity.CRITICAL
                    if null_percentage > self.config.CRITICAL_MISSING_THRESHOLD
                    else IssueSeverity.HIGH)

        logger.debug(f"Column '{column}' has {null_percentage:.1f}% missing values")

        return DataIssue(
            id=self.id_factory(f"{column}-null"),
            type=IssueType.MISSING_VALUES,
            severity=severity,
            column=column,
            description=f"Column has {null_percentage:.1f}% missing values",
            affected_rows=affected_rows,
            suggested_fix="Consider imputation, removal, or data collection improvement",
            auto_fixable=False
        )

    def detect_outliers(self, column: str, statistics: NumericStatistics, value_count: int) -> Optional[DataIssue]:
        """
        Issue for a numeric column with values outside the IQR fences.

        Row indices are not tracked for outliers, so ``affected_rows`` stays empty;
        the description carries the count and share instead.
        """
        outlier_count = len(statistics.outliers)
        if outlier_count == 0 or value_count == 0:
            return None

        severity = (IssueSeverity.HIGH
                    if outlier_count > value_count * self.config.HIGH_OUTLIER_RATIO
                    else IssueSeverity.MEDIUM)
        percentage = outlier_count / value_count * 100

        return DataIssue(
            id=self.id_factory(f"{column}-outliers"),
            type=IssueType.OUTLIERS,
            severity=severity,
            column=column,
            description=f"Found {outlier_count} outliers ({percentage:.1f}%)",
            affected_rows=[],
            suggested_fix="Review outliers for data quality issues or legitimate extreme values",
            auto_fixable=False
        )

    @log_execution_time
    def detect_duplicates(self, table: Table) -> Optional[DataIssue]:
        """Issue listing every row that repeats an earlier row exactly"""
        duplicate_indices = find_duplicate_rows(table)

        if not duplicate_indices:
            return None

        duplicate_count = len(duplicate_indices)
        severity = (IssueSeverity.HIGH
                    if duplicate_count > table.row_count * self.config.HIGH_DUPLICATE_RATIO
                    else IssueSeverity.MEDIUM)

        logger.info(f"Found {duplicate_count} duplicate rows in {table.row_count} rows")

        return DataIssue(
            id=self.id_factory("duplicates"),
            type=IssueType.DUPLICATES,
            severity=severity,
            description=(f"Found {duplicate_count} duplicate rows "
                         f"({duplicate_count / table.row_count * 100:.1f}%)"),
            affected_rows=duplicate_indices,
            suggested_fix="Remove duplicate rows or identify primary key columns",
            auto_fixable=True
        )

def canonical_cell(value: Any) -> Any:
    """Collapse equal numbers to one form: 1, 1.0 and numpy scalars of them compare as one cell"""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return int(value)
    return value

def serialize_row(row: dict, headers: Sequence[str]) -> str:
    """Canonical text form of a row, values in header order"""
    cells = [canonical_cell(row.get(header)) for header in headers]
    return json.dumps(cells, default=str, ensure_ascii=False)

def find_duplicate_rows(table: Table) -> List[int]:
    """Indices of rows identical to an earlier row, ascending"""
    seen: Set[str] = set()
    duplicates: List[int] = []

    for idx, row in enumerate(table.rows):
        key = serialize_row(row, table.headers)
        if key in seen:
            duplicates.append(idx)
        else:
            seen.add(key)

    return duplicates

def drop_duplicate_rows(table: Table) -> Table:
    """Copy of the table keeping the first occurrence of each distinct row"""
    duplicates = set(find_duplicate_rows(table))
    rows = [row for idx, row in enumerate(table.rows) if idx not in duplicates]
    return Table(headers=list(table.headers), rows=rows, file_name=table.file_name, file_size=table.file_size)
