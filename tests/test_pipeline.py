# tests/test_pipeline.py
import logging
from unittest import mock

import pytest

from data_task_orchestrator.config import get_config
from data_task_orchestrator.exceptions import AnalysisError, IngestionError
from data_task_orchestrator.models import ColumnType, IssueType, Table, TaskCategory
from data_task_orchestrator.pipeline import DataAnalysisPipeline

class TestDataAnalysisPipeline:

    @pytest.fixture
    def pipeline(self):
        return DataAnalysisPipeline(get_config())

    @pytest.fixture
    def duplicated_table(self):
        return Table(
            headers=['id', 'email', 'age'],
            rows=[
                {'id': 1, 'email': 'a@x.com', 'age': 30},
                {'id': 2, 'email': None, 'age': 30},
                {'id': 2, 'email': None, 'age': 30},
            ],
            file_name='people.csv'
        )

    @pytest.fixture
    def clean_table(self):
        rows = [
            {'id': i, 'email': f"user{i}@example.com", 'score': 50 + i, 'score_x2': 100 + 2 * i}
            for i in range(20)
        ]
        return Table(headers=['id', 'email', 'score', 'score_x2'], rows=rows, file_name='clean.csv')

    @pytest.mark.asyncio
    async def test_progress_is_strictly_increasing(self, pipeline, duplicated_table):
        updates = []
        await pipeline.analyze(duplicated_table, progress_callback=lambda p, m: updates.append((p, m)))

        percentages = [progress for progress, _ in updates]
        assert all(later > earlier for earlier, later in zip(percentages, percentages[1:]))
        assert updates[0] == (5.0, 'Starting data analysis...')
        assert updates[-1] == (100.0, 'Analysis complete!')

        messages = [message for _, message in updates]
        assert messages[1:4] == ['Analyzing column: id...', 'Analyzing column: email...', 'Analyzing column: age...']
        assert messages[4:-1] == [
            'Detecting duplicates...',
            'Analyzing relationships...',
            'Calculating quality score...',
            'Generating tasks...',
        ]

    @pytest.mark.asyncio
    async def test_column_profiling_is_logged_per_column(self, pipeline, duplicated_table, caplog):
        with caplog.at_level(logging.INFO, logger="data_task_orchestrator.agents.profiling_agent"):
            await pipeline.analyze(duplicated_table)

        assert "[profile_columns] id: number, 0 issues" in caplog.messages
        assert "[profile_columns] email: email, 1 issues" in caplog.messages

    @pytest.mark.asyncio
    async def test_duplicate_scenario(self, pipeline, duplicated_table):
        result = await pipeline.analyze(duplicated_table)

        assert result.file_name == 'people.csv'
        assert result.row_count == 3
        assert [profile.name for profile in result.column_profiles] == ['id', 'email', 'age']

        duplicates = [issue for issue in result.issues if issue.type == IssueType.DUPLICATES]
        assert len(duplicates) == 1
        assert duplicates[0].affected_rows == [2]
        # duplicates are appended after every column issue
        assert result.issues[-1].type == IssueType.DUPLICATES
        assert result.quality_score.uniqueness == 75.0

    @pytest.mark.asyncio
    async def test_single_empty_email_is_below_missing_threshold(self, pipeline):
        table = Table(
            headers=['id', 'email', 'age'],
            rows=[
                {'id': 1, 'email': 'a@x.com', 'age': 30},
                {'id': 2, 'email': None, 'age': 30},
                {'id': 3, 'email': 'c@x.com', 'age': 31},
            ]
        )
        result = await pipeline.analyze(table)

        assert not [issue for issue in result.issues if issue.type == IssueType.MISSING_VALUES]

    @pytest.mark.asyncio
    async def test_clean_table(self, pipeline, clean_table):
        result = await pipeline.analyze(clean_table)

        assert result.issues == []
        assert result.quality_score.overall == 100.0
        assert [profile.type for profile in result.column_profiles] == [
            ColumnType.NUMBER, ColumnType.EMAIL, ColumnType.NUMBER, ColumnType.NUMBER
        ]
        assert [task.category for task in result.tasks] == [TaskCategory.VALIDATION, TaskCategory.STANDARDIZATION]
        assert ('score', 'score_x2') in [(rel.column1, rel.column2) for rel in result.relationships]
        assert 'Excellent data quality! Focus on maintaining current standards' in result.recommendations

    @pytest.mark.asyncio
    async def test_ids_are_deterministic_per_run(self, pipeline, duplicated_table):
        first = await pipeline.analyze(duplicated_table)
        second = await pipeline.analyze(duplicated_table)

        assert [issue.id for issue in first.issues] == [issue.id for issue in second.issues]
        assert [task.id for task in first.tasks] == [task.id for task in second.tasks]

    @pytest.mark.asyncio
    async def test_node_failure_raises_analysis_error(self, pipeline, duplicated_table):
        with mock.patch('data_task_orchestrator.agents.profiling_agent.ColumnProfiler.profile',
                        side_effect=RuntimeError("profiling exploded")):
            with pytest.raises(AnalysisError) as excinfo:
                await pipeline.analyze(duplicated_table)

        assert 'profiling exploded' in str(excinfo.value)
        assert len(excinfo.value.errors) == 1

    @pytest.mark.asyncio
    async def test_stream_analysis(self, pipeline, duplicated_table):
        events = [event async for event in pipeline.stream_analysis(duplicated_table)]

        assert [event.type for event in events[:-1]] == ['progress'] * (len(events) - 1)
        assert events[-1].type == 'result'
        assert events[-1].result.row_count == 3
        assert events[-2].progress == 100.0

    @pytest.mark.asyncio
    async def test_stream_analysis_reports_errors(self, pipeline, duplicated_table):
        with mock.patch('data_task_orchestrator.agents.profiling_agent.ColumnProfiler.profile',
                        side_effect=RuntimeError("profiling exploded")):
            events = [event async for event in pipeline.stream_analysis(duplicated_table)]

        assert events[-1].type == 'error'
        assert 'profiling exploded' in events[-1].error
        assert sum(1 for event in events if event.type in ('result', 'error')) == 1

    @pytest.mark.asyncio
    async def test_analyze_file(self, pipeline, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("order_id,amount\n1,10.5\n2,12.0\n3,\n", encoding="utf-8")

        result = await pipeline.analyze_file(path)

        assert result.file_name == 'orders.csv'
        assert result.column_profiles[1].null_count == 1

    @pytest.mark.asyncio
    async def test_analyze_file_rejects_unsupported_source(self, pipeline, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(IngestionError):
            await pipeline.analyze_file(path)
