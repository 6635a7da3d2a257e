# data_task_orchestrator/analysis/quality_score.py
import math
from typing import Dict, Iterable, List, Sequence

from data_task_orchestrator.models import (
    ColumnProfile, ColumnType, DataIssue, DataQualityScore, IssueSeverity, IssueType
)

VALIDITY_DEDUCTIONS: Dict[IssueSeverity, int] = {
    IssueSeverity.CRITICAL: 20,
    IssueSeverity.HIGH: 10,
    IssueSeverity.MEDIUM: 5,
    IssueSeverity.LOW: 2,
}

ACCURACY_DEDUCTIONS: Dict[IssueSeverity, int] = {
    IssueSeverity.CRITICAL: 15,
    IssueSeverity.HIGH: 8,
    IssueSeverity.MEDIUM: 4,
    IssueSeverity.LOW: 1,
}

VALIDITY_ISSUE_TYPES = {IssueType.TYPE_MISMATCH, IssueType.INVALID_VALUES}
ACCURACY_ISSUE_TYPES = {IssueType.OUTLIERS, IssueType.DATA_QUALITY, IssueType.INCONSISTENT_FORMAT}

# Flat penalty applied whenever duplicates exist, regardless of how many
DUPLICATE_PENALTY = 25

def round_score(value: float) -> float:
    """Round half up to one decimal"""
    return math.floor(value * 10 + 0.5) / 10

def _deduct(issues: Iterable[DataIssue], issue_types: set, deductions: Dict[IssueSeverity, int]) -> float:
    deduction = sum(deductions[issue.severity] for issue in issues if issue.type in issue_types)
    return max(0.0, 100.0 - deduction)

def calculate_completeness(profiles: Sequence[ColumnProfile]) -> float:
    if not profiles:
        return 100.0
    return sum(100 - profile.null_percentage for profile in profiles) / len(profiles)

def calculate_validity(issues: Sequence[DataIssue]) -> float:
    return _deduct(issues, VALIDITY_ISSUE_TYPES, VALIDITY_DEDUCTIONS)

def calculate_consistency(profiles: Sequence[ColumnProfile]) -> float:
    if not profiles:
        return 100.0
    mixed = sum(1 for profile in profiles if profile.type == ColumnType.MIXED)
    inconsistency_percentage = mixed / len(profiles) * 100
    return max(0.0, 100.0 - inconsistency_percentage * 2)

def calculate_accuracy(issues: Sequence[DataIssue]) -> float:
    return _deduct(issues, ACCURACY_ISSUE_TYPES, ACCURACY_DEDUCTIONS)

def calculate_uniqueness(issues: Sequence[DataIssue]) -> float:
    if any(issue.type == IssueType.DUPLICATES for issue in issues):
        return 100.0 - DUPLICATE_PENALTY
    return 100.0

def calculate_quality_score(profiles: Sequence[ColumnProfile], issues: Sequence[DataIssue]) -> DataQualityScore:
    """
    Five-dimension quality score plus their unweighted mean.

    Pure function of the profiles and issues; the table is not re-scanned.
    """
    completeness = calculate_completeness(profiles)
    validity = calculate_validity(issues)
    consistency = calculate_consistency(profiles)
    accuracy = calculate_accuracy(issues)
    uniqueness = calculate_uniqueness(issues)

    overall = (completeness + validity + consistency + accuracy + uniqueness) / 5

    return DataQualityScore(
        overall=round_score(overall),
        completeness=round_score(completeness),
        validity=round_score(validity),
        consistency=round_score(consistency),
        accuracy=round_score(accuracy),
        uniqueness=round_score(uniqueness)
    )

def score_label(score: float) -> str:
    if score >= 90:
        return 'Excellent'
    if score >= 75:
        return 'Good'
    if score >= 60:
        return 'Fair'
    if score >= 40:
        return 'Poor'
    return 'Critical'

def generate_recommendations(score: DataQualityScore, issues: Sequence[DataIssue]) -> List[str]:
    """Short next-step recommendations derived from the score and issues"""
    recommendations = []

    if score.completeness < 80:
        recommendations.append('Improve data completeness by addressing missing values in critical columns')

    if score.uniqueness < 80:
        recommendations.append('Remove duplicate records to ensure data uniqueness')

    if score.validity < 80:
        recommendations.append('Implement data validation rules to ensure format correctness')

    critical_issues = [issue for issue in issues if issue.severity == IssueSeverity.CRITICAL]
    if critical_issues:
        recommendations.append(f'Address {len(critical_issues)} critical data quality issues immediately')

    if score.overall >= 90:
        recommendations.append('Excellent data quality! Focus on maintaining current standards')

    return recommendations
