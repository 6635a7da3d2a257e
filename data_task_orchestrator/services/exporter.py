# data_task_orchestrator/services/exporter.py
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from jinja2 import Template

from data_task_orchestrator.analysis.quality_score import score_label
from data_task_orchestrator.models import (
    AnalysisResult, ColumnStatistics, DataTask, ExportOptions, IssueSeverity, NumericStatistics,
    StringStatistics
)

logger = logging.getLogger(__name__)

EXPORT_FILENAMES = {
    'json': 'data-engineering-tasks.json',
    'csv': 'data-engineering-tasks.csv',
    'markdown': 'data-engineering-tasks.md',
    'github-issues': 'github-issues.md',
}

EXPORT_MEDIA_TYPES = {
    'json': 'application/json',
    'csv': 'text/csv',
    'markdown': 'text/markdown',
    'github-issues': 'text/markdown',
}

MARKDOWN_TEMPLATE = Template("""\
# Data Engineering Tasks

Generated: {{ generated_at }}
Total Tasks: {{ tasks | length }}

## Task Summary

{% for severity, count in by_severity %}
- **{{ severity }}**: {{ count }}
{% endfor %}

## Tasks

{% for task in tasks %}
### {{ loop.index }}. {{ task.title }}

**Severity**: {{ task.severity.value }} | **Category**: {{ task.category.value }} | **Effort**: {{ task.estimated_effort }}

{{ task.description }}

{% if task.tools %}
**Tools**: {{ task.tools | join(', ') }}

{% endif %}
{% if options.include_dependencies and task.dependencies %}
**Depends on**: {{ task.dependencies | join(', ') }}

{% endif %}
{% if options.include_code_snippets and task.code_snippets %}
**Code Snippets**:

{% for snippet in task.code_snippets %}
```{{ snippet.language }}
{{ snippet.code }}
```

{% endfor %}
{% endif %}
{% if options.include_validation_rules and task.validation_rules %}
**Validation Rules**:

{% for rule in task.validation_rules %}
- {{ rule }}
{% endfor %}

{% endif %}
---

{% endfor %}
""", trim_blocks=True, lstrip_blocks=True)

GITHUB_ISSUES_TEMPLATE = Template("""\
{% for task in tasks %}
## Issue {{ loop.index }}

**Title**: [{{ task.severity.value }}] {{ task.title }}

{{ task.description }}

**Category**: {{ task.category.value }}
**Estimated Effort**: {{ task.estimated_effort }}
**Tools**: {{ task.tools | join(', ') }}
**Labels**: {{ task.severity.value | lower }}, {{ task.category.value }}

{% if options.include_dependencies and task.dependencies %}
**Blocked by**: {{ task.dependencies | join(', ') }}

{% endif %}
{% if options.include_code_snippets and task.code_snippets %}
### Code Snippets

{% for snippet in task.code_snippets %}
#### {{ snippet.language }}
```{{ snippet.language }}
{{ snippet.code }}
```

{% endfor %}
{% endif %}
{% if options.include_validation_rules and task.validation_rules %}
### Acceptance Criteria

{% for rule in task.validation_rules %}
- [ ] {{ rule }}
{% endfor %}

{% endif %}
---

{% endfor %}
""", trim_blocks=True, lstrip_blocks=True)

class TaskExporter:
    """Renders generated tasks as JSON, CSV, a markdown report or issue-tracker drafts"""

    def __init__(self, generated_at: Optional[datetime] = None):
        self.generated_at = generated_at

    def export(self, tasks: Sequence[DataTask], options: Optional[ExportOptions] = None) -> str:
        """Render tasks in the format named by the options"""
        options = options or ExportOptions()
        logger.info(f"Exporting {len(tasks)} tasks as {options.format}")

        match options.format:
            case 'json':
                return self.to_json(tasks, options)
            case 'csv':
                return self.to_csv(tasks, options)
            case 'markdown':
                return self.to_markdown(tasks, options)
            case 'github-issues':
                return self.to_github_issues(tasks, options)
            case _:
                raise ValueError(f"Unsupported export format: {options.format}")

    def to_records(self, tasks: Sequence[DataTask], options: ExportOptions) -> List[Dict[str, Any]]:
        """Task dicts with camelCase keys, optional sections included per the flags"""
        records = []
        for task in tasks:
            data = task.to_dict()
            record = {
                'id': data['id'],
                'title': data['title'],
                'description': data['description'],
                'severity': data['severity'],
                'category': data['category'],
                'estimatedEffort': data['estimatedEffort'],
                'tools': data['tools'],
            }
            if options.include_code_snippets:
                record['codeSnippets'] = data['codeSnippets']
            if options.include_dependencies:
                record['dependencies'] = data['dependencies']
            if options.include_validation_rules:
                record['validationRules'] = data['validationRules']
            records.append(record)
        return records

    def to_json(self, tasks: Sequence[DataTask], options: Optional[ExportOptions] = None) -> str:
        return json.dumps(self.to_records(tasks, options or ExportOptions()), indent=2)

    def to_csv(self, tasks: Sequence[DataTask], options: Optional[ExportOptions] = None) -> str:
        """One row per task; list fields are joined with '; '"""
        options = options or ExportOptions()

        rows = []
        for task in tasks:
            row = {
                'id': task.id,
                'title': task.title,
                'severity': task.severity.value,
                'category': task.category.value,
                'estimated_effort': task.estimated_effort,
                'description': task.description,
                'tools': '; '.join(task.tools),
            }
            if options.include_dependencies:
                row['dependencies'] = '; '.join(task.dependencies)
            if options.include_validation_rules:
                row['validation_rules'] = '; '.join(task.validation_rules or [])
            if options.include_code_snippets:
                row['code_snippets'] = '\n\n'.join(
                    f"# {snippet.language}\n{snippet.code}" for snippet in task.code_snippets
                )
            rows.append(row)

        frame = pd.DataFrame(rows, columns=self._csv_columns(options))
        return frame.to_csv(index=False)

    @staticmethod
    def _csv_columns(options: ExportOptions) -> List[str]:
        columns = ['id', 'title', 'severity', 'category', 'estimated_effort', 'description', 'tools']
        if options.include_dependencies:
            columns.append('dependencies')
        if options.include_validation_rules:
            columns.append('validation_rules')
        if options.include_code_snippets:
            columns.append('code_snippets')
        return columns

    def to_markdown(self, tasks: Sequence[DataTask], options: Optional[ExportOptions] = None) -> str:
        by_severity = [
            (severity.value, sum(1 for task in tasks if task.severity == severity))
            for severity in IssueSeverity
        ]
        generated_at = self.generated_at or datetime.now(timezone.utc)

        return MARKDOWN_TEMPLATE.render(
            tasks=tasks,
            by_severity=by_severity,
            options=options or ExportOptions(),
            generated_at=generated_at.isoformat()
        )

    def to_github_issues(self, tasks: Sequence[DataTask], options: Optional[ExportOptions] = None) -> str:
        return GITHUB_ISSUES_TEMPLATE.render(tasks=tasks, options=options or ExportOptions())

def describe_statistics(statistics: Optional[ColumnStatistics]) -> str:
    """One-line summary of a column's statistics"""
    match statistics:
        case NumericStatistics(min=low, max=high, mean=mean, outliers=outliers):
            return f"range {low:g}..{high:g}, mean {mean:.2f}, {len(outliers)} outliers"
        case StringStatistics(min_length=shortest, max_length=longest, patterns=patterns):
            summary = f"length {shortest}..{longest}"
            if patterns:
                summary += f", patterns: {', '.join(patterns)}"
            return summary
        case _:
            return "no statistics"

def summarize_result(result: AnalysisResult) -> str:
    """Plain-text overview of an analysis, for terminals and logs"""
    score = result.quality_score
    lines = [
        f"File: {result.file_name or '<memory>'}",
        f"Rows: {result.row_count}  Columns: {result.column_count}",
        f"Quality score: {score.overall} ({score_label(score.overall)})",
        f"  completeness {score.completeness}, validity {score.validity}, consistency {score.consistency}, "
        f"accuracy {score.accuracy}, uniqueness {score.uniqueness}",
        "",
        "Columns:",
    ]

    for profile in result.column_profiles:
        lines.append(
            f"  - {profile.name} [{profile.type.value}] nulls {profile.null_percentage:.1f}%, "
            f"{describe_statistics(profile.statistics)}"
        )

    lines.append("")
    lines.append(f"Issues: {len(result.issues)}")
    for issue in result.issues:
        lines.append(f"  - [{issue.severity.value}] {issue.description}")

    if result.relationships:
        lines.append("")
        lines.append("Relationships:")
        for relationship in result.relationships:
            lines.append(f"  - {relationship.description}")

    lines.append("")
    lines.append(f"Tasks: {len(result.tasks)}")
    for task in result.tasks:
        lines.append(f"  - {task.id}: {task.title} ({task.severity.value})")

    if result.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  - {recommendation}" for recommendation in result.recommendations)

    return "\n".join(lines)
