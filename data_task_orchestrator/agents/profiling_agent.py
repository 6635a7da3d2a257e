# data_task_orchestrator/agents/profiling_agent.py
import asyncio
import logging
from typing import List, Optional

from langchain_core.runnables import RunnableConfig

from data_task_orchestrator.analysis.correlation import find_relationships
from data_task_orchestrator.analysis.issue_detection import IssueDetector
from data_task_orchestrator.analysis.profiler import ColumnProfiler
from data_task_orchestrator.config import ProfilingConfig, get_config
from data_task_orchestrator.models import ColumnProfile, DataIssue
from data_task_orchestrator.utils.ids import IdFactory, SequentialIdFactory, id_factory_from_config
from data_task_orchestrator.utils.logging_config import PipelineLogger
from data_task_orchestrator.utils.progress import reporter_from_config

logger = logging.getLogger(__name__)

# Column profiling spans this share of the progress bar, starting at COLUMN_PROGRESS_START
COLUMN_PROGRESS_START = 10
COLUMN_PROGRESS_SPAN = 70

class ColumnProfilingAgent:
    """Agent responsible for column profiles, per-column issues, duplicates and relationships"""

    def __init__(self, config: Optional[ProfilingConfig] = None, id_factory: Optional[IdFactory] = None):
        self.config = config or get_config().profiling
        self.id_factory = id_factory or SequentialIdFactory()

    async def profile_columns(self, state: dict, config: RunnableConfig = None) -> dict:
        """Profile every column in header order, collecting issues as they are found"""
        logger.info("Starting column profiling")
        reporter = reporter_from_config(config)

        try:
            table = state['table']
            detector = IssueDetector(self.config, id_factory_from_config(config, self.id_factory))
            profiler = ColumnProfiler(self.config, detector)

            profiles: List[ColumnProfile] = []
            issues: List[DataIssue] = []
            total_columns = len(table.headers)

            with PipelineLogger("profile_columns", logger) as step:
                for idx, column in enumerate(table.headers):
                    reporter.report(
                        COLUMN_PROGRESS_START + (idx / total_columns) * COLUMN_PROGRESS_SPAN,
                        f"Analyzing column: {column}..."
                    )
                    profile, column_issues = await asyncio.to_thread(profiler.profile, table, column)
                    profiles.append(profile)
                    issues.extend(column_issues)
                    step.log_progress(f"{column}: {profile.type.value}, {len(column_issues)} issues")

                step.log_metric("columns", len(profiles))
                step.log_metric("column_issues", len(issues))

            state.update({
                'column_profiles': profiles,
                'issues': issues,
                'current_step': 'profile_columns',
                'next_action': 'detect_duplicates'
            })

            state['execution_log'].append(
                f"Profiled {len(profiles)} columns, found {len(issues)} column issues"
            )

            return state

        except Exception as e:
            logger.error(f"Column profiling failed: {str(e)}")
            state['errors'].append(f"Column profiling error: {str(e)}")
            state['next_action'] = 'error'
            return state

    async def detect_duplicates(self, state: dict, config: RunnableConfig = None) -> dict:
        """Whole-table duplicate scan, appended after all column issues"""
        reporter_from_config(config).report(85, "Detecting duplicates...")

        try:
            detector = IssueDetector(self.config, id_factory_from_config(config, self.id_factory))
            duplicate_issue = await asyncio.to_thread(detector.detect_duplicates, state['table'])

            issues = list(state['issues'])
            if duplicate_issue is not None:
                issues.append(duplicate_issue)
                state['execution_log'].append(duplicate_issue.description)

            state.update({
                'issues': issues,
                'current_step': 'detect_duplicates',
                'next_action': 'analyze_relationships'
            })

            return state

        except Exception as e:
            logger.error(f"Duplicate detection failed: {str(e)}")
            state['errors'].append(f"Duplicate detection error: {str(e)}")
            state['next_action'] = 'error'
            return state

    async def analyze_relationships(self, state: dict, config: RunnableConfig = None) -> dict:
        """Correlations between numeric columns"""
        reporter_from_config(config).report(90, "Analyzing relationships...")

        try:
            relationships = await asyncio.to_thread(
                find_relationships,
                state['table'],
                state['column_profiles'],
                self.config.CORRELATION_THRESHOLD
            )

            state.update({
                'relationships': relationships,
                'current_step': 'analyze_relationships',
                'next_action': 'score_quality'
            })

            state['execution_log'].append(f"Found {len(relationships)} column relationships")

            return state

        except Exception as e:
            logger.error(f"Relationship analysis failed: {str(e)}")
            state['errors'].append(f"Relationship analysis error: {str(e)}")
            state['next_action'] = 'error'
            return state
