# tests/test_exporter.py
import io
import json
from datetime import datetime, timezone

import pandas as pd
import pytest

from data_task_orchestrator.agents.task_agent import TaskPlanningAgent
from data_task_orchestrator.analysis.quality_score import calculate_quality_score
from data_task_orchestrator.models import (
    AnalysisResult, ColumnProfile, ColumnType, DataIssue, ExportOptions, IssueSeverity, IssueType,
    NumericStatistics, Quartiles, StringStatistics
)
from data_task_orchestrator.services.exporter import TaskExporter, describe_statistics, summarize_result
from data_task_orchestrator.utils.ids import SequentialIdFactory

class TestTaskExporter:

    @pytest.fixture
    def profiles(self):
        return [
            ColumnProfile(name='age', type=ColumnType.NUMBER, null_count=6, null_percentage=60.0,
                          unique_count=4, unique_percentage=100.0),
            ColumnProfile(name='email', type=ColumnType.EMAIL, null_count=0, null_percentage=0.0,
                          unique_count=10, unique_percentage=100.0),
        ]

    @pytest.fixture
    def issues(self):
        return [
            DataIssue(id='age-null-1', type=IssueType.MISSING_VALUES, severity=IssueSeverity.HIGH,
                      column='age', description='Column has 60.0% missing values', affected_rows=[0, 1, 2]),
            DataIssue(id='duplicates-2', type=IssueType.DUPLICATES, severity=IssueSeverity.MEDIUM,
                      description='Found 1 duplicate rows (10.0%)', affected_rows=[9], auto_fixable=True),
        ]

    @pytest.fixture
    def tasks(self, issues, profiles):
        return TaskPlanningAgent(SequentialIdFactory()).generate_tasks(issues, profiles)

    @pytest.fixture
    def exporter(self):
        return TaskExporter(generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_json_round_trip_preserves_task_identity(self, exporter, tasks):
        records = json.loads(exporter.to_json(tasks))

        exported = {(record['title'], record['severity'], record['category']) for record in records}
        expected = {(task.title, task.severity.value, task.category.value) for task in tasks}
        assert exported == expected

    def test_json_uses_camel_case_and_honours_flags(self, exporter, tasks):
        options = ExportOptions(include_code_snippets=False, include_dependencies=True,
                                include_validation_rules=False)
        records = json.loads(exporter.to_json(tasks, options))

        assert 'estimatedEffort' in records[0]
        assert 'codeSnippets' not in records[0]
        assert 'validationRules' not in records[0]
        assert records[-1]['dependencies'] == ['task-missing-values-1']

    def test_markdown_report(self, exporter, tasks):
        report = exporter.to_markdown(tasks)

        assert report.startswith('# Data Engineering Tasks')
        assert 'Generated: 2024-01-01T00:00:00+00:00' in report
        assert f'Total Tasks: {len(tasks)}' in report
        assert '- **High**: 2' in report
        assert '- **Critical**: 0' in report
        assert '### 1. Handle Missing Values' in report
        assert '```python' in report
        assert '**Validation Rules**:' in report

    def test_markdown_without_code_snippets(self, exporter, tasks):
        report = exporter.to_markdown(tasks, ExportOptions(format='markdown', include_code_snippets=False))
        assert '```' not in report

    def test_github_issues(self, exporter, tasks):
        issues = exporter.to_github_issues(tasks)

        assert '## Issue 1' in issues
        assert '**Title**: [High] Handle Missing Values' in issues
        assert '**Labels**: high, data_cleaning' in issues
        assert '- [ ] Verify all duplicates are removed' in issues

    def test_csv_export(self, exporter, tasks):
        frame = pd.read_csv(io.StringIO(exporter.to_csv(tasks)))

        assert list(frame['title']) == [task.title for task in tasks]
        assert 'code_snippets' in frame.columns
        assert frame.loc[frame['title'] == 'Implement Data Validation Rules', 'dependencies'].iloc[0] == \
            'task-missing-values-1'

    def test_csv_export_without_optional_columns(self, exporter, tasks):
        options = ExportOptions(format='csv', include_code_snippets=False, include_dependencies=False,
                                include_validation_rules=False)
        frame = pd.read_csv(io.StringIO(exporter.to_csv(tasks, options)))

        assert list(frame.columns) == ['id', 'title', 'severity', 'category', 'estimated_effort',
                                       'description', 'tools']

    @pytest.mark.parametrize("fmt, method", [
        ('json', 'to_json'), ('csv', 'to_csv'), ('markdown', 'to_markdown'), ('github-issues', 'to_github_issues')
    ])
    def test_export_dispatches_on_format(self, exporter, tasks, fmt, method):
        options = ExportOptions(format=fmt)
        assert exporter.export(tasks, options) == getattr(exporter, method)(tasks, options)

class TestSummaries:

    def test_describe_numeric_statistics(self):
        stats = NumericStatistics(min=1, max=100, mean=19.1667, median=3.5, std_dev=36.1,
                                  quartiles=Quartiles(q1=2, q2=3.5, q3=5), outliers=[100])
        assert describe_statistics(stats) == 'range 1..100, mean 19.17, 1 outliers'

    def test_describe_string_statistics(self):
        stats = StringStatistics(min_length=3, max_length=8, avg_length=5.0, patterns=['lowercase'])
        assert describe_statistics(stats) == 'length 3..8, patterns: lowercase'

    def test_describe_missing_statistics(self):
        assert describe_statistics(None) == 'no statistics'

    def test_summarize_result(self):
        profiles = [ColumnProfile(name='a', type=ColumnType.UNKNOWN, null_count=2, null_percentage=100.0,
                                  unique_count=0, unique_percentage=0.0)]
        result = AnalysisResult(
            file_name='a.csv', row_count=2, column_count=1, column_profiles=profiles, issues=[], tasks=[],
            quality_score=calculate_quality_score(profiles, [])
        )
        summary = summarize_result(result)

        assert 'File: a.csv' in summary
        assert 'Quality score: 80.0 (Good)' in summary
        assert '- a [unknown] nulls 100.0%, no statistics' in summary
