# data_task_orchestrator/pipeline.py
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, List, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph

from data_task_orchestrator.config import Config, get_config
from data_task_orchestrator.exceptions import AnalysisError
from data_task_orchestrator.models import (
    AnalysisResult, ColumnProfile, ColumnRelationship, DataIssue, DataQualityScore, DataTask,
    PipelineEvent, Table
)
from data_task_orchestrator.utils.ids import IdFactory, SequentialIdFactory
from data_task_orchestrator.utils.logging_config import log_async_execution_time
from data_task_orchestrator.utils.progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)

class PipelineState(TypedDict, total=False):
    """State shared across all agents"""
    # Input
    table: Table

    # Profiling
    column_profiles: List[ColumnProfile]
    issues: List[DataIssue]
    relationships: List[ColumnRelationship]

    # Planning
    quality_score: Optional[DataQualityScore]
    recommendations: List[str]
    tasks: List[DataTask]

    # Workflow
    current_step: str
    next_action: str
    errors: List[str]
    execution_log: List[str]

# Node order; each node hands over to the next unless it recorded an error
NODE_SEQUENCE = [
    "profile_columns",
    "detect_duplicates",
    "analyze_relationships",
    "score_quality",
    "generate_tasks",
]

class DataAnalysisPipeline:
    def __init__(self, config: Optional[Config] = None):
        """Initialize the analysis pipeline"""
        self.config = config or get_config()

        # Build the graph
        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.info("Data analysis pipeline initialized successfully")

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow"""
        from data_task_orchestrator.agents.profiling_agent import ColumnProfilingAgent
        from data_task_orchestrator.agents.task_agent import TaskPlanningAgent

        # Initialize agents
        profiling_agent = ColumnProfilingAgent(self.config.profiling)
        task_agent = TaskPlanningAgent()

        # Create the graph
        workflow = StateGraph(PipelineState)

        # Add nodes
        workflow.add_node("profile_columns", profiling_agent.profile_columns)
        workflow.add_node("detect_duplicates", profiling_agent.detect_duplicates)
        workflow.add_node("analyze_relationships", profiling_agent.analyze_relationships)
        workflow.add_node("score_quality", task_agent.score_quality)
        workflow.add_node("generate_tasks", task_agent.plan_tasks)

        workflow.set_entry_point(NODE_SEQUENCE[0])

        # Sequential flow, any node may bail out to the end
        for current, following in zip(NODE_SEQUENCE, NODE_SEQUENCE[1:]):
            workflow.add_conditional_edges(
                current,
                self._route_after_step,
                {"proceed": following, "error": END}
            )

        workflow.add_edge(NODE_SEQUENCE[-1], END)

        return workflow

    @staticmethod
    def _route_after_step(state: PipelineState) -> str:
        """Stop as soon as a node has recorded a fault"""
        if state.get("next_action") == "error" or state.get("errors"):
            return "error"
        return "proceed"

    @log_async_execution_time
    async def analyze(self,
                      table: Table,
                      progress_callback: Optional[ProgressCallback] = None,
                      id_factory: Optional[IdFactory] = None) -> AnalysisResult:
        """
        Run the full analysis of a parsed table.

        Args:
            table: Parsed dataset
            progress_callback: Receives (percentage, message) updates, strictly increasing
            id_factory: Id source for issues and tasks, a fresh sequential one per run by default

        Returns:
            The assembled analysis result

        Raises:
            AnalysisError: When a node recorded an unrecoverable fault
        """
        reporter = ProgressReporter(progress_callback)
        reporter.report(5, "Starting data analysis...")

        initial_state = PipelineState(
            table=table,
            column_profiles=[],
            issues=[],
            relationships=[],
            quality_score=None,
            recommendations=[],
            tasks=[],
            current_step="initialization",
            next_action=NODE_SEQUENCE[0],
            errors=[],
            execution_log=[f"Analysis of '{table.file_name}' started at {datetime.now()}"]
        )

        logger.info(f"Starting analysis: {table.row_count} rows, {table.column_count} columns")

        run_config = {
            "configurable": {
                "progress_reporter": reporter,
                "id_factory": id_factory or SequentialIdFactory(),
            }
        }
        final_state = await self.compiled_graph.ainvoke(initial_state, config=run_config)

        if final_state.get("errors"):
            logger.error(f"Analysis failed at {final_state.get('current_step')}: {final_state['errors']}")
            raise AnalysisError(final_state["errors"][0], final_state["errors"])

        final_state["execution_log"].append(f"Analysis completed at {datetime.now()}")
        reporter.report(100, "Analysis complete!")

        return AnalysisResult(
            file_name=table.file_name,
            row_count=table.row_count,
            column_count=table.column_count,
            column_profiles=final_state["column_profiles"],
            issues=final_state["issues"],
            tasks=final_state["tasks"],
            quality_score=final_state["quality_score"],
            relationships=final_state.get("relationships", []),
            recommendations=final_state.get("recommendations", [])
        )

    async def analyze_file(self,
                           data_path: Union[str, Path],
                           progress_callback: Optional[ProgressCallback] = None,
                           id_factory: Optional[IdFactory] = None) -> AnalysisResult:
        """Load a delimited file from disk and analyze it"""
        from data_task_orchestrator.agents.data_agent import DataIngestionAgent

        table = DataIngestionAgent(self.config.ingestion).load_table(data_path)
        return await self.analyze(table, progress_callback=progress_callback, id_factory=id_factory)

    async def stream_analysis(self,
                              table: Table,
                              id_factory: Optional[IdFactory] = None) -> AsyncIterator[PipelineEvent]:
        """Yield progress events, then exactly one result or error event"""
        queue: asyncio.Queue = asyncio.Queue()

        def on_progress(progress: float, message: str):
            queue.put_nowait(PipelineEvent(type="progress", progress=progress, message=message))

        run = asyncio.create_task(
            self.analyze(table, progress_callback=on_progress, id_factory=id_factory)
        )
        # sentinel queued after every progress event of the run
        run.add_done_callback(lambda _: queue.put_nowait(None))

        while True:
            event = await queue.get()
            if event is None:
                break
            yield event

        try:
            result = run.result()
        except Exception as e:
            logger.error(f"Streamed analysis failed: {str(e)}")
            yield PipelineEvent(type="error", error=str(e))
        else:
            yield PipelineEvent(type="result", progress=100, result=result)
