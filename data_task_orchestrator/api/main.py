from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from typing import List, Optional
import asyncio
import logging
import uvicorn
from datetime import datetime

from data_task_orchestrator import __version__
from data_task_orchestrator.agents.data_agent import DataIngestionAgent
from data_task_orchestrator.config import get_config
from data_task_orchestrator.exceptions import AnalysisError, IngestionError
from data_task_orchestrator.models import (
    AnalysisResult, CamelModel, ColumnProfile, DataIssue, DataTask, ExportOptions, IssueExplanation, Table
)
from data_task_orchestrator.pipeline import DataAnalysisPipeline
from data_task_orchestrator.services.explainer import IssueExplainer
from data_task_orchestrator.services.exporter import EXPORT_FILENAMES, EXPORT_MEDIA_TYPES, TaskExporter
from data_task_orchestrator.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Data Task Orchestrator API",
    description="Profile tabular data and turn quality issues into remediation tasks",
    version=__version__
)

if get_config().api.ENABLE_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Global pipeline instance, built on first use
pipeline: Optional[DataAnalysisPipeline] = None

class ExplainRequest(CamelModel):
    issue: DataIssue
    column_profile: Optional[ColumnProfile] = None
    total_rows: Optional[int] = None

class ExportRequest(CamelModel):
    tasks: List[DataTask]
    options: ExportOptions = ExportOptions()

def get_pipeline() -> DataAnalysisPipeline:
    global pipeline
    if pipeline is None:
        pipeline = DataAnalysisPipeline(get_config())
        logger.info("Pipeline initialized successfully")
    return pipeline

@app.exception_handler(IngestionError)
async def ingestion_error_handler(request: Request, exc: IngestionError):
    logger.warning(f"Rejected upload on {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})

async def _load_upload(file: UploadFile) -> Table:
    content = await file.read()
    ingestion = DataIngestionAgent(get_config().ingestion)
    # pandas parsing blocks, keep it off the event loop
    return await asyncio.to_thread(ingestion.load_table_from_bytes, content, file.filename or "upload.csv")

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}

@app.post("/analyze", response_model=AnalysisResult)
async def analyze(file: UploadFile = File(...)):
    """Analyze an uploaded CSV and return profiles, issues, score and tasks"""
    table = await _load_upload(file)

    try:
        return await get_pipeline().analyze(table)
    except AnalysisError as e:
        logger.error(f"Analysis failed for {table.file_name}: {str(e)}")
        raise HTTPException(status_code=500, detail={"message": str(e), "errors": e.errors})

@app.post("/analyze/stream")
async def analyze_stream(file: UploadFile = File(...)):
    """Analyze an uploaded CSV, streaming progress events as newline-delimited JSON"""
    table = await _load_upload(file)

    async def event_lines():
        async for event in get_pipeline().stream_analysis(table):
            yield event.model_dump_json(by_alias=True, exclude_none=True) + "\n"

    return StreamingResponse(event_lines(), media_type="application/x-ndjson")

@app.post("/explain", response_model=IssueExplanation)
def explain_issue(request: ExplainRequest):
    """Explain a detected issue in plain language"""
    explainer = IssueExplainer(get_config().explainer)
    return explainer.explain(request.issue, request.column_profile, request.total_rows)

@app.post("/export")
async def export_tasks(request: ExportRequest):
    """Render tasks in the requested export format"""
    fmt = request.options.format
    content = TaskExporter().export(request.tasks, request.options)

    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAMES[fmt]}"'}
    )

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Data Task Orchestrator API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }

if __name__ == "__main__":
    config = get_config()
    setup_logging(log_level=config.logging_level)
    uvicorn.run(
        "data_task_orchestrator.api.main:app",
        host=config.api.HOST,
        port=config.api.PORT,
        reload=config.debug_mode,
        log_level=config.logging_level.lower()
    )
