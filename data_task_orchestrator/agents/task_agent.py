# data_task_orchestrator/agents/task_agent.py
import re
import logging
from typing import Dict, List, Optional, Sequence

from jinja2 import Template
from langchain_core.runnables import RunnableConfig

from data_task_orchestrator.analysis.quality_score import calculate_quality_score, generate_recommendations
from data_task_orchestrator.models import (
    CodeSnippet, ColumnProfile, ColumnType, DataIssue, DataTask, IssueSeverity, IssueType, TaskCategory
)
from data_task_orchestrator.utils.ids import IdFactory, SequentialIdFactory, id_factory_from_config
from data_task_orchestrator.utils.progress import reporter_from_config

logger = logging.getLogger(__name__)

# Column types that get a dedicated validator in the generated validation script
VALIDATED_TYPES = (ColumnType.EMAIL, ColumnType.URL, ColumnType.DATE)

PANDAS_DTYPES = {
    ColumnType.NUMBER: 'float64',
    ColumnType.DATE: 'datetime64',
    ColumnType.BOOLEAN: 'bool',
}

class TaskPlanningAgent:
    """Agent responsible for scoring the dataset and turning issues into remediation tasks"""

    def __init__(self, id_factory: Optional[IdFactory] = None):
        self.id_factory = id_factory or SequentialIdFactory()

    async def score_quality(self, state: dict, config: RunnableConfig = None) -> dict:
        """Compute the quality score and recommendations"""
        logger.info("Starting quality scoring")
        reporter_from_config(config).report(95, "Calculating quality score...")

        try:
            profiles = state['column_profiles']
            issues = state['issues']

            quality_score = calculate_quality_score(profiles, issues)
            recommendations = generate_recommendations(quality_score, issues)

            state.update({
                'quality_score': quality_score,
                'recommendations': recommendations,
                'current_step': 'score_quality',
                'next_action': 'generate_tasks'
            })

            state['execution_log'].append(f"Quality score computed: overall {quality_score.overall}")

            return state

        except Exception as e:
            logger.error(f"Quality scoring failed: {str(e)}")
            state['errors'].append(f"Quality scoring error: {str(e)}")
            state['next_action'] = 'error'
            return state

    async def plan_tasks(self, state: dict, config: RunnableConfig = None) -> dict:
        """Synthesize remediation tasks from the detected issues"""
        logger.info("Starting task generation")
        reporter_from_config(config).report(98, "Generating tasks...")

        try:
            tasks = self.generate_tasks(
                state['issues'],
                state['column_profiles'],
                id_factory=id_factory_from_config(config, self.id_factory)
            )

            state.update({
                'tasks': tasks,
                'current_step': 'generate_tasks',
                'next_action': 'completed'
            })

            state['execution_log'].append(f"Generated {len(tasks)} remediation tasks")

            return state

        except Exception as e:
            logger.error(f"Task generation failed: {str(e)}")
            state['errors'].append(f"Task generation error: {str(e)}")
            state['next_action'] = 'error'
            return state

    def generate_tasks(self,
                       issues: Sequence[DataIssue],
                       profiles: Sequence[ColumnProfile],
                       id_factory: Optional[IdFactory] = None) -> List[DataTask]:
        """
        Build one task per populated issue group plus the validation and schema tasks.

        Args:
            issues: Detected issues, in detection order
            profiles: Column profiles of the analyzed table
            id_factory: Id source for this run, defaults to the agent's own

        Returns:
            Tasks with dependencies assigned
        """
        new_id = id_factory or self.id_factory

        issues_by_type: Dict[IssueType, List[DataIssue]] = {}
        for issue in issues:
            issues_by_type.setdefault(issue.type, []).append(issue)

        tasks = []

        missing_value_issues = issues_by_type.get(IssueType.MISSING_VALUES, [])
        if missing_value_issues:
            tasks.append(self._create_missing_value_task(missing_value_issues, new_id))

        duplicate_issues = issues_by_type.get(IssueType.DUPLICATES, [])
        if duplicate_issues:
            tasks.append(self._create_duplicate_task(duplicate_issues, new_id))

        outlier_issues = issues_by_type.get(IssueType.OUTLIERS, [])
        if outlier_issues:
            tasks.append(self._create_outlier_task(outlier_issues, new_id))

        tasks.append(self._create_validation_task(profiles, new_id))
        tasks.append(self._create_schema_task(profiles, new_id))

        self._assign_dependencies(tasks)

        logger.info(f"Generated {len(tasks)} tasks from {len(issues)} issues")
        return tasks

    def _create_missing_value_task(self, issues: List[DataIssue], new_id: IdFactory) -> DataTask:
        critical_issues = [issue for issue in issues if issue.severity == IssueSeverity.CRITICAL]
        severity = IssueSeverity.CRITICAL if critical_issues else IssueSeverity.HIGH
        affected_columns = [issue.column for issue in issues if issue.column]

        python_template = Template("""
import pandas as pd

# Load data
df = pd.read_csv('your_data.csv')

# Option 1: Drop rows with missing values in critical columns
critical_cols = {{ columns | tojson }}
df_dropped = df.dropna(subset=critical_cols)
print(f"Dropping would remove {len(df) - len(df_dropped)} rows with missing values")

# Option 2: Impute missing values
# For numeric columns - use median
numeric_cols = df.select_dtypes(include=['number']).columns
df[numeric_cols] = df[numeric_cols].fillna(df[numeric_cols].median())

# For categorical columns - use mode
categorical_cols = df.select_dtypes(include=['object']).columns
for col in categorical_cols:
    mode = df[col].mode()
    if not mode.empty:
        df[col] = df[col].fillna(mode.iloc[0])

# Save cleaned data
df.to_csv('cleaned_data.csv', index=False)
""")

        sql_template = Template("""
-- Check missing value counts
SELECT
{% for col in columns %}
    SUM(CASE WHEN "{{ col }}" IS NULL THEN 1 ELSE 0 END) AS "{{ col }}_nulls"{{ "," if not loop.last }}
{% endfor %}
FROM your_table;

-- Remove rows with critical missing values
DELETE FROM your_table
WHERE {% for col in columns %}"{{ col }}" IS NULL{{ " OR " if not loop.last }}{% endfor %};
""", trim_blocks=True, lstrip_blocks=True)

        description = f"Address missing values in {len(affected_columns)} columns."
        if critical_issues:
            description += f" {len(critical_issues)} columns have critical levels (>80% missing)."

        return DataTask(
            id=new_id("task-missing-values"),
            title="Handle Missing Values",
            description=description,
            category=TaskCategory.DATA_CLEANING,
            severity=severity,
            estimated_effort="2-4 hours",
            related_issues=[issue.id for issue in issues],
            tools=['pandas', 'SQL', 'data imputation libraries'],
            code_snippets=[
                CodeSnippet(
                    language='python',
                    code=python_template.render(columns=affected_columns).strip(),
                    description='Handle missing values with multiple strategies'
                ),
                CodeSnippet(
                    language='sql',
                    code=sql_template.render(columns=affected_columns).strip(),
                    description='Check and remove rows with missing values'
                ),
            ],
            validation_rules=[
                'Verify no critical columns have >5% missing values after processing',
                'Document imputation strategy for audit trail',
                'Compare before/after statistics',
            ]
        )

    def _create_duplicate_task(self, issues: List[DataIssue], new_id: IdFactory) -> DataTask:
        total_duplicates = sum(len(issue.affected_rows) for issue in issues)

        python_code = """
import pandas as pd

# Load data
df = pd.read_csv('your_data.csv')

# Check for duplicates
duplicates = df[df.duplicated(keep=False)]
print(f"Found {len(duplicates)} duplicate rows")

# Option 1: Remove all duplicates, keep first occurrence
df_deduped = df.drop_duplicates(keep='first')

# Option 2: Remove duplicates based on specific columns
key_columns = ['column1', 'column2']  # Define your key columns
df_deduped = df.drop_duplicates(subset=key_columns, keep='first')

# Option 3: Identify and review duplicates before removal
duplicate_groups = df[df.duplicated(subset=key_columns, keep=False)]
duplicate_groups.to_csv('duplicates_review.csv', index=False)

# Save deduplicated data
df_deduped.to_csv('deduplicated_data.csv', index=False)
print(f"Removed {len(df) - len(df_deduped)} duplicate rows")
""".strip()

        sql_code = """
-- Find duplicate rows
WITH duplicates AS (
    SELECT *,
           ROW_NUMBER() OVER (PARTITION BY column1, column2 ORDER BY id) AS rn
    FROM your_table
)
SELECT * FROM duplicates WHERE rn > 1;

-- Remove duplicates, keep first occurrence
DELETE FROM your_table
WHERE id NOT IN (
    SELECT MIN(id)
    FROM your_table
    GROUP BY column1, column2
);
""".strip()

        return DataTask(
            id=new_id("task-duplicates"),
            title="Remove Duplicate Records",
            description=(f"Remove {total_duplicates} duplicate rows from the dataset. "
                         "Define primary key columns to prevent future duplicates."),
            category=TaskCategory.DEDUPLICATION,
            severity=IssueSeverity.HIGH if total_duplicates > 100 else IssueSeverity.MEDIUM,
            estimated_effort="1-2 hours",
            related_issues=[issue.id for issue in issues],
            tools=['pandas', 'SQL', 'data deduplication tools'],
            code_snippets=[
                CodeSnippet(language='python', code=python_code,
                            description='Identify and remove duplicate rows'),
                CodeSnippet(language='sql', code=sql_code,
                            description='Find and delete duplicate records'),
            ],
            validation_rules=[
                'Verify all duplicates are removed',
                'Ensure no data loss of unique records',
                'Document deduplication strategy',
            ]
        )

    def _create_outlier_task(self, issues: List[DataIssue], new_id: IdFactory) -> DataTask:
        affected_columns = [issue.column for issue in issues if issue.column]

        python_template = Template("""
import pandas as pd
import numpy as np
from scipy import stats

# Load data
df = pd.read_csv('your_data.csv')

numeric_cols = {{ columns | tojson }}

# Method 1: IQR method for outlier detection
def remove_outliers_iqr(df, columns):
    df_clean = df.copy()
    for col in columns:
        Q1 = df_clean[col].quantile(0.25)
        Q3 = df_clean[col].quantile(0.75)
        IQR = Q3 - Q1
        lower_bound = Q1 - 1.5 * IQR
        upper_bound = Q3 + 1.5 * IQR

        # Flag outliers
        outliers = (df_clean[col] < lower_bound) | (df_clean[col] > upper_bound)
        print(f"{col}: {outliers.sum()} outliers detected")

        # Option 1: Remove outliers
        df_clean = df_clean[~outliers]

        # Option 2: Cap outliers at bounds
        # df_clean[col] = df_clean[col].clip(lower_bound, upper_bound)

    return df_clean

# Method 2: Z-score method (assuming normal distribution)
def remove_outliers_zscore(df, columns, threshold=3):
    df_clean = df.copy()
    for col in columns:
        z_scores = np.abs(stats.zscore(df_clean[col], nan_policy='omit'))
        df_clean = df_clean[~(z_scores > threshold)]
    return df_clean

df_cleaned = remove_outliers_iqr(df, numeric_cols)
df_cleaned.to_csv('cleaned_data.csv', index=False)
""")

        return DataTask(
            id=new_id("task-outliers"),
            title="Handle Outliers in Numeric Columns",
            description=(f"Detect and handle outliers in {len(affected_columns)} numeric columns. "
                         "Determine if outliers are data errors or legitimate extreme values."),
            category=TaskCategory.DATA_CLEANING,
            severity=IssueSeverity.MEDIUM,
            estimated_effort="2-3 hours",
            related_issues=[issue.id for issue in issues],
            tools=['pandas', 'scipy', 'numpy', 'statistical analysis tools'],
            code_snippets=[
                CodeSnippet(
                    language='python',
                    code=python_template.render(columns=affected_columns).strip(),
                    description='Detect and handle outliers using IQR and Z-score methods'
                ),
            ],
            validation_rules=[
                'Review outliers manually before removal',
                'Document outlier treatment strategy',
                'Verify data distribution after treatment',
            ]
        )

    def _create_validation_task(self, profiles: Sequence[ColumnProfile], new_id: IdFactory) -> DataTask:
        validation_rules = [self._validation_rule(profile) for profile in profiles]
        validated_columns = [profile for profile in profiles if profile.type in VALIDATED_TYPES]

        python_template = Template(r"""
import re
import pandas as pd

# Load data
df = pd.read_csv('your_data.csv')

# Define validation functions
def validate_email(email):
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, str(email)))

def validate_url(url):
    pattern = r'^https?://[^\s/$.?#].[^\s]*$'
    return bool(re.match(pattern, str(url)))

def validate_date(date_str):
    return not pd.isna(pd.to_datetime(date_str, errors='coerce'))

# Apply validations
validation_results = {}
{% for profile in profiles %}

# Validate {{ profile.name }}
if {{ profile.name | tojson }} in df.columns:
    validation_results[{{ profile.name | tojson }}] = df[{{ profile.name | tojson }}].apply(validate_{{ profile.type.value }})
    invalid_count = (~validation_results[{{ profile.name | tojson }}]).sum()
    print(f"{{ profile.name }}: {invalid_count} invalid entries")
{% endfor %}

# Export validation report
validation_df = pd.DataFrame(validation_results)
validation_df.to_csv('validation_report.csv', index=False)
""", trim_blocks=True, lstrip_blocks=True)

        return DataTask(
            id=new_id("task-validation"),
            title="Implement Data Validation Rules",
            description=(f"Create and apply validation rules for all {len(profiles)} columns "
                         "to ensure data quality."),
            category=TaskCategory.VALIDATION,
            severity=IssueSeverity.HIGH,
            estimated_effort="3-4 hours",
            tools=['pandas', 'Great Expectations', 'Pydantic'],
            code_snippets=[
                CodeSnippet(
                    language='python',
                    code=python_template.render(profiles=validated_columns).strip(),
                    description='Implement validation rules for different data types'
                ),
            ],
            validation_rules=validation_rules
        )

    @staticmethod
    def _validation_rule(profile: ColumnProfile) -> str:
        if profile.type == ColumnType.EMAIL:
            return f'"{profile.name}" must be a valid email address'
        if profile.type == ColumnType.URL:
            return f'"{profile.name}" must be a valid URL'
        if profile.type == ColumnType.NUMBER:
            return f'"{profile.name}" must be numeric'
        if profile.type == ColumnType.DATE:
            return f'"{profile.name}" must be a valid date'
        return f'"{profile.name}" must not be null'

    def _create_schema_task(self, profiles: Sequence[ColumnProfile], new_id: IdFactory) -> DataTask:
        type_conversions = [
            (re.sub(r'[^a-z0-9_]', '_', profile.name.lower()), PANDAS_DTYPES.get(profile.type, 'string'))
            for profile in profiles
        ]

        python_template = Template("""
import pandas as pd

# Load data
df = pd.read_csv('your_data.csv')

# Standardize column names (lowercase, snake_case)
df.columns = df.columns.str.lower().str.replace(r'[^a-z0-9_]', '_', regex=True)

# Convert data types
type_conversions = {
{% for column, dtype in conversions %}
    {{ column | tojson }}: '{{ dtype }}'{{ "," if not loop.last }}
{% endfor %}
}

for col, dtype in type_conversions.items():
    if col in df.columns:
        try:
            if dtype == 'datetime64':
                df[col] = pd.to_datetime(df[col], errors='coerce')
            else:
                df[col] = df[col].astype(dtype)
        except (ValueError, TypeError) as e:
            print(f"Error converting {col} to {dtype}: {e}")

# Standardize string formats
string_cols = df.select_dtypes(include=['object', 'string']).columns
for col in string_cols:
    df[col] = df[col].str.strip()  # Remove whitespace
    df[col] = df[col].str.title()  # Standardize capitalization

df.to_csv('standardized_data.csv', index=False)
print("Schema standardization complete")
""", trim_blocks=True, lstrip_blocks=True)

        return DataTask(
            id=new_id("task-schema"),
            title="Standardize Data Schema",
            description=("Standardize column names, data types, and formats across the dataset. "
                         "Ensure consistency for downstream processing."),
            category=TaskCategory.STANDARDIZATION,
            severity=IssueSeverity.MEDIUM,
            estimated_effort="2-3 hours",
            tools=['pandas', 'schema validation libraries'],
            code_snippets=[
                CodeSnippet(
                    language='python',
                    code=python_template.render(conversions=type_conversions).strip(),
                    description='Standardize schema, column names, and data types'
                ),
            ],
            validation_rules=[
                'All column names follow naming convention',
                'All data types are correctly assigned',
                'String formats are consistent',
            ]
        )

    @staticmethod
    def _assign_dependencies(tasks: List[DataTask]):
        """Validation and standardization both wait for every cleaning task"""
        cleaning_ids = [task.id for task in tasks if task.category == TaskCategory.DATA_CLEANING]

        for task in tasks:
            if task.category in (TaskCategory.VALIDATION, TaskCategory.STANDARDIZATION):
                task.dependencies = list(cleaning_ids)
