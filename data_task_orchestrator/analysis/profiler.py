# data_task_orchestrator/analysis/profiler.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from data_task_orchestrator.config import ProfilingConfig, get_config
from data_task_orchestrator.models import ColumnProfile, ColumnType, DataIssue, Table
from data_task_orchestrator.analysis.issue_detection import IssueDetector
from data_task_orchestrator.analysis.statistics import calculate_numeric_statistics, calculate_string_statistics
from data_task_orchestrator.analysis.type_inference import infer_column_type, is_null, is_numeric

logger = logging.getLogger(__name__)

def _distinct_key(value: Any) -> Any:
    # bools must not collapse into 1/0, and unhashable cells are keyed by repr
    if isinstance(value, bool):
        return ('bool', value)
    try:
        hash(value)
    except TypeError:
        return ('repr', repr(value))
    return value

def distinct_values(values: List[Any]) -> List[Any]:
    """Distinct values in order of first occurrence"""
    seen: Dict[Any, Any] = {}
    for value in values:
        key = _distinct_key(value)
        if key not in seen:
            seen[key] = value
    return list(seen.values())

class ColumnProfiler:
    """Builds the profile of one column and the issues found while doing so"""

    def __init__(self, config: Optional[ProfilingConfig] = None, detector: Optional[IssueDetector] = None):
        self.config = config or get_config().profiling
        self.detector = detector or IssueDetector(self.config)

    def profile(self, table: Table, column: str) -> Tuple[ColumnProfile, List[DataIssue]]:
        """
        Profile ``column`` of ``table``.

        Returns:
            The column profile and its issues, missing values before outliers
        """
        values = table.column_values(column)
        non_null_values = [value for value in values if not is_null(value)]

        null_count = len(values) - len(non_null_values)
        null_percentage = null_count / len(values) * 100 if values else 0.0

        unique_values = distinct_values(non_null_values)
        unique_count = len(unique_values)
        unique_percentage = unique_count / len(non_null_values) * 100 if non_null_values else 0.0

        column_type = infer_column_type(
            non_null_values,
            sample_size=self.config.TYPE_SAMPLE_SIZE,
            threshold=self.config.TYPE_THRESHOLD
        )

        issues: List[DataIssue] = []

        missing_issue = self.detector.detect_missing_values(column, values)
        if missing_issue is not None:
            issues.append(missing_issue)

        statistics = None
        if column_type == ColumnType.NUMBER:
            numeric_values = [value for value in non_null_values if is_numeric(value)]
            statistics = calculate_numeric_statistics(numeric_values, self.config.IQR_MULTIPLIER)
            outlier_issue = self.detector.detect_outliers(column, statistics, len(numeric_values))
            if outlier_issue is not None:
                issues.append(outlier_issue)
        elif column_type == ColumnType.STRING:
            statistics = calculate_string_statistics(non_null_values, self.config.TOP_VALUES_LIMIT)

        logger.debug(f"Profiled column '{column}' as {column_type.value} with {len(issues)} issues")

        profile = ColumnProfile(
            name=column,
            type=column_type,
            null_count=null_count,
            null_percentage=null_percentage,
            unique_count=unique_count,
            unique_percentage=unique_percentage,
            sample_values=unique_values[:self.config.MAX_SAMPLE_VALUES],
            statistics=statistics,
            issues=issues
        )
        return profile, issues
