import asyncio
import argparse
import sys
from pathlib import Path
from data_task_orchestrator.pipeline import DataAnalysisPipeline
from data_task_orchestrator.exceptions import AnalysisError, IngestionError
from data_task_orchestrator.models import ExportOptions
from data_task_orchestrator.services.exporter import EXPORT_FILENAMES, TaskExporter, summarize_result
from data_task_orchestrator.services.explainer import IssueExplainer
from data_task_orchestrator.utils.logging_config import setup_logging
from data_task_orchestrator.config import get_config

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Data Task Orchestrator")
    parser.add_argument("--data-path", required=True, help="Path to the CSV dataset")
    parser.add_argument("--format", default="json", choices=sorted(EXPORT_FILENAMES),
                        help="Export format for the generated tasks")
    parser.add_argument("--output", help="Where to write the export (defaults to the output directory)")
    parser.add_argument("--no-code-snippets", action="store_true", help="Leave code snippets out of the export")
    parser.add_argument("--no-dependencies", action="store_true", help="Leave task dependencies out of the export")
    parser.add_argument("--no-validation-rules", action="store_true",
                        help="Leave validation rules out of the export")
    parser.add_argument("--explain", action="store_true", help="Print a plain-language explanation per issue")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", default=None, help="Logging level")
    return parser

def main(argv=None):
    """Main entry point for the Data Task Orchestrator"""
    args = build_parser().parse_args(argv)

    # Load configuration
    config = get_config(args.config)

    # Setup logging
    setup_logging(log_level=args.log_level or config.logging_level, log_dir=str(config.paths.LOGS_DIR))

    # Validate data path exists
    if not Path(args.data_path).exists():
        print(f"Error: Data file not found at {args.data_path}")
        sys.exit(1)

    def show_progress(progress: float, message: str):
        print(f"[{progress:5.1f}%] {message}")

    async def run_analysis():
        """Run the analysis and return its result"""
        pipeline = DataAnalysisPipeline(config)
        return await pipeline.analyze_file(args.data_path, progress_callback=show_progress)

    try:
        result = asyncio.run(run_analysis())
    except (IngestionError, AnalysisError) as e:
        print(f"❌ Analysis failed: {str(e)}")
        sys.exit(1)

    print()
    print(summarize_result(result))

    if args.explain and result.issues:
        explainer = IssueExplainer(config.explainer)
        profiles = {profile.name: profile for profile in result.column_profiles}
        print()
        print("Explanations:")
        for issue in result.issues:
            explanation = explainer.explain(issue, profiles.get(issue.column), result.row_count)
            print(f"  * {issue.description}")
            print(f"    {explanation.what_is_this}")
            print(f"    Why: {explanation.why_problem}")
            for step in explanation.how_to_fix:
                print(f"      - {step}")
            print(f"    Priority: {explanation.priority}")

    options = ExportOptions(
        format=args.format,
        include_code_snippets=not args.no_code_snippets,
        include_dependencies=not args.no_dependencies,
        include_validation_rules=not args.no_validation_rules
    )
    content = TaskExporter().export(result.tasks, options)

    output_path = Path(args.output) if args.output else config.paths.OUTPUT_DIR / EXPORT_FILENAMES[args.format]
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")

    print()
    print(f"🎉 Exported {len(result.tasks)} tasks to {output_path}")

if __name__ == "__main__":
    main()
