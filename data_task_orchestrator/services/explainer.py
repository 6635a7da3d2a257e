# data_task_orchestrator/services/explainer.py
import json
import re
import logging
from typing import Dict, Optional

import requests
from pydantic import ValidationError

from data_task_orchestrator.config import ExplainerConfig, get_config
from data_task_orchestrator.models import ColumnProfile, DataIssue, IssueExplanation, IssueType

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')

PROMPT_TEMPLATE = """You are a data quality expert. Analyze this data issue and provide a clear, actionable explanation.

Issue Type: {issue_type}
Severity: {severity}
Description: {description}
{column_line}
{null_line}
{rows_line}
Affected Rows: {affected_rows}

Provide a JSON response with this exact structure:
{{
  "whatIsThis": "A simple 1-sentence explanation of what this issue is",
  "whyProblem": "2-3 sentences explaining why this is a problem and its business impact",
  "howToFix": ["Fix strategy 1", "Fix strategy 2", "Fix strategy 3"],
  "impact": "Describe the positive impact of fixing this (e.g., 'Improves data completeness by X%')",
  "priority": "high" | "medium" | "low"
}}

Be concise, practical, and business-focused. No markdown, just valid JSON."""

class IssueExplainer:
    """Plain-language issue explanations from a chat-completions endpoint, with rule-based fallbacks"""

    def __init__(self, config: Optional[ExplainerConfig] = None):
        self.config = config or get_config().explainer

    def explain(self,
                issue: DataIssue,
                column_profile: Optional[ColumnProfile] = None,
                total_rows: Optional[int] = None) -> IssueExplanation:
        """
        Explain a detected issue.

        Never raises for remote faults: any request, parsing or validation
        failure returns the built-in explanation for the issue type.
        """
        if not self.config.ENABLED or not self.config.API_KEY:
            logger.debug("Remote explanations disabled, using built-in explanation")
            return fallback_explanation(issue, column_profile)

        try:
            content = self._request_completion(build_prompt(issue, column_profile, total_rows))
            return parse_explanation(content)
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            # pydantic's ValidationError and json's JSONDecodeError are ValueErrors
            logger.warning(f"Remote explanation failed for issue {issue.id}: {str(e)}")
            return fallback_explanation(issue, column_profile)

    def _request_completion(self, prompt: str) -> str:
        response = requests.post(
            self.config.API_URL,
            headers={
                'Content-Type': 'application/json',
                'Authorization': f"Bearer {self.config.API_KEY}",
                'X-Title': 'AI Data Engineering Task Orchestrator',
            },
            json={
                'model': self.config.MODEL,
                'messages': [{'role': 'user', 'content': prompt}],
                'temperature': self.config.TEMPERATURE,
                'max_tokens': self.config.MAX_TOKENS,
            },
            timeout=self.config.TIMEOUT
        )
        response.raise_for_status()

        data = response.json()
        return data['choices'][0]['message']['content']

def build_prompt(issue: DataIssue,
                 column_profile: Optional[ColumnProfile] = None,
                 total_rows: Optional[int] = None) -> str:
    return PROMPT_TEMPLATE.format(
        issue_type=issue.type.value,
        severity=issue.severity.value,
        description=issue.description,
        column_line=(f"Column: {column_profile.name} (Type: {column_profile.type.value})"
                     if column_profile else ''),
        null_line=(f"Null Percentage: {column_profile.null_percentage:.1f}%"
                   if column_profile else ''),
        rows_line=f"Total Rows: {total_rows}" if total_rows else '',
        affected_rows=len(issue.affected_rows),
    )

def parse_explanation(content: str) -> IssueExplanation:
    """Validate the first JSON object embedded in a model reply"""
    match = JSON_OBJECT_PATTERN.search(content or '')
    if not match:
        raise ValueError("Invalid JSON response from model")

    try:
        return IssueExplanation.model_validate(json.loads(match.group(0)))
    except ValidationError as e:
        raise ValueError(f"Explanation does not match the expected shape: {e.error_count()} errors") from e

def fallback_explanation(issue: DataIssue, column_profile: Optional[ColumnProfile] = None) -> IssueExplanation:
    """Rule-based explanation keyed by issue type"""
    affected = len(issue.affected_rows)
    null_percentage = column_profile.null_percentage if column_profile else None

    explanations: Dict[IssueType, dict] = {
        IssueType.MISSING_VALUES: {
            'what_is_this': f"{affected} rows have missing values in this column",
            'why_problem': ("Missing data can skew analysis results, prevent accurate reporting, and indicate "
                            "data collection problems. It may also cause issues in downstream processes that "
                            "expect complete data."),
            'how_to_fix': [
                'Contact data sources to fill missing values',
                'Use statistical imputation (mean/median for numbers, mode for categories)',
                'Drop rows if missing data is not critical',
                'Implement validation at data entry point',
            ],
            'impact': (f"Fixing this will improve data completeness by {null_percentage:.1f}%"
                       if null_percentage is not None else "Fixing this will improve data completeness"),
            'priority': 'high' if null_percentage is not None and null_percentage > 50 else 'medium',
        },
        IssueType.DUPLICATES: {
            'what_is_this': f"{affected} duplicate records found in the dataset",
            'why_problem': ("Duplicates can inflate metrics, cause double-counting in analyses, waste storage "
                            "space, and lead to incorrect business decisions. They often indicate problems in "
                            "data collection or integration processes."),
            'how_to_fix': [
                'Define primary key columns to identify true duplicates',
                'Keep first/last occurrence based on business logic',
                'Merge duplicate records if they contain complementary information',
                'Implement uniqueness constraints at database level',
            ],
            'impact': "Removing duplicates will reduce dataset size and improve accuracy",
            'priority': 'high',
        },
        IssueType.OUTLIERS: {
            'what_is_this': f"{affected} statistical outliers detected in numeric data",
            'why_problem': ("Outliers can be data entry errors, measurement errors, or legitimate extreme "
                            "values. They can significantly skew statistical analyses like mean and standard "
                            "deviation, leading to incorrect conclusions."),
            'how_to_fix': [
                'Manually review outliers to determine if they are errors or valid extremes',
                'Cap outliers at reasonable bounds (e.g., IQR method)',
                'Apply winsorization to limit extreme values',
                'Document and keep outliers if they are legitimate business cases',
            ],
            'impact': "Addressing outliers will improve statistical accuracy and model performance",
            'priority': 'medium',
        },
        IssueType.INCONSISTENT_FORMAT: {
            'what_is_this': "Data values follow different formats or patterns",
            'why_problem': ("Inconsistent formats make data hard to query, analyze, and integrate. They can "
                            "cause errors in automated processes and make reporting unreliable. "
                            "Standardization is essential for data quality."),
            'how_to_fix': [
                'Define and enforce a standard format for this field',
                'Use regex patterns to validate and transform data',
                'Implement data validation rules at entry point',
                'Create data transformation pipelines for existing data',
            ],
            'impact': "Standardizing formats will improve data consistency and usability",
            'priority': 'medium',
        },
        IssueType.TYPE_MISMATCH: {
            'what_is_this': "Column contains mixed data types instead of uniform type",
            'why_problem': ("Mixed types prevent proper data typing, cause errors in calculations, and make "
                            "the data unreliable for analysis. This often indicates poor data validation or "
                            "integration issues."),
            'how_to_fix': [
                'Convert all values to the correct data type',
                'Identify and fix the source of incorrect types',
                'Implement strict type validation at data entry',
                'Use data quality checks in ETL pipelines',
            ],
            'impact': "Fixing type mismatches enables proper data processing and analysis",
            'priority': 'high',
        },
        IssueType.INVALID_VALUES: {
            'what_is_this': "Column contains values that violate business rules or constraints",
            'why_problem': ("Invalid values indicate data quality issues, can break business logic, and "
                            "reduce trust in the data. They may represent system errors or incorrect user "
                            "input."),
            'how_to_fix': [
                'Define clear validation rules based on business requirements',
                'Replace invalid values with correct ones or nulls',
                'Implement validation at data entry and ETL stages',
                'Set up monitoring to catch future invalid entries',
            ],
            'impact': "Removing invalid values will increase data reliability and trustworthiness",
            'priority': 'high',
        },
        IssueType.DATA_QUALITY: {
            'what_is_this': "General data quality issue detected",
            'why_problem': ("Data quality issues reduce confidence in analytics, lead to poor decisions, and "
                            "can cause operational problems. High-quality data is essential for business "
                            "success."),
            'how_to_fix': [
                'Investigate root cause of quality issues',
                'Implement data quality monitoring',
                'Establish data governance processes',
                'Regular data audits and cleansing',
            ],
            'impact': "Improving data quality will enhance overall data reliability",
            'priority': 'medium',
        },
        IssueType.SCHEMA_ISSUE: {
            'what_is_this': "Schema structure or definition problem detected",
            'why_problem': ("Schema issues can prevent data loading, cause application errors, and make data "
                            "integration difficult. Proper schema design is fundamental for data systems."),
            'how_to_fix': [
                'Review and update schema definitions',
                'Align schema with business requirements',
                'Document schema changes properly',
                'Use schema versioning and migration tools',
            ],
            'impact': "Fixing schema issues will improve system stability and data integration",
            'priority': 'high',
        },
    }

    default = {
        'what_is_this': issue.description,
        'why_problem': "This issue may affect data quality and analysis accuracy.",
        'how_to_fix': ['Review the issue manually', 'Consult with data team', 'Implement appropriate fixes'],
        'impact': "Fixing this will improve overall data quality",
        'priority': 'medium',
    }

    return IssueExplanation(**explanations.get(issue.type, default))
