# data_task_orchestrator/models.py
"""Domain models shared by the agents, services and API.

Models serialize with camelCase aliases (``nullPercentage``, ``affectedRows``)
so exported documents keep the field names consumers already know.
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dict using camelCase keys"""
        return self.model_dump(by_alias=True, mode="json")


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    EMAIL = "email"
    URL = "url"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class IssueType(str, Enum):
    MISSING_VALUES = "missing_values"
    DUPLICATES = "duplicates"
    OUTLIERS = "outliers"
    INCONSISTENT_FORMAT = "inconsistent_format"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_VALUES = "invalid_values"
    DATA_QUALITY = "data_quality"
    SCHEMA_ISSUE = "schema_issue"


class IssueSeverity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskCategory(str, Enum):
    DATA_CLEANING = "data_cleaning"
    VALIDATION = "validation"
    TRANSFORMATION = "transformation"
    STANDARDIZATION = "standardization"
    DEDUPLICATION = "deduplication"
    ENRICHMENT = "enrichment"
    AUTOMATION = "automation"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class Table(CamelModel):
    """A parsed dataset: ordered unique headers and rows keyed by header"""
    headers: List[str]
    rows: List[Dict[str, Any]]
    file_name: str = ""
    file_size: int = 0
    row_count: int = 0
    column_count: int = 0

    @model_validator(mode="after")
    def _derive_counts(self) -> "Table":
        if len(set(self.headers)) != len(self.headers):
            raise ValueError("Column names must be unique")
        self.row_count = len(self.rows)
        self.column_count = len(self.headers)
        return self

    def column_values(self, column: str) -> List[Any]:
        return [row.get(column) for row in self.rows]


class Quartiles(FrozenCamelModel):
    q1: float
    q2: float
    q3: float


class NumericStatistics(FrozenCamelModel):
    kind: Literal["numeric"] = "numeric"
    min: float
    max: float
    mean: float
    median: float
    std_dev: float
    quartiles: Quartiles
    outliers: List[float] = Field(default_factory=list)


class ValueCount(FrozenCamelModel):
    value: str
    count: int


class StringStatistics(FrozenCamelModel):
    kind: Literal["string"] = "string"
    min_length: int
    max_length: int
    avg_length: float
    patterns: List[str] = Field(default_factory=list)
    top_values: List[ValueCount] = Field(default_factory=list)


ColumnStatistics = Annotated[Union[NumericStatistics, StringStatistics], Field(discriminator="kind")]


class DataIssue(FrozenCamelModel):
    id: str
    type: IssueType
    severity: IssueSeverity
    column: Optional[str] = None
    description: str
    affected_rows: List[int] = Field(default_factory=list)
    suggested_fix: Optional[str] = None
    auto_fixable: bool = False


class ColumnProfile(FrozenCamelModel):
    name: str
    type: ColumnType
    null_count: int
    null_percentage: float
    unique_count: int
    unique_percentage: float
    sample_values: List[Any] = Field(default_factory=list)
    statistics: Optional[ColumnStatistics] = None
    issues: List[DataIssue] = Field(default_factory=list)


class DataQualityScore(CamelModel):
    overall: float = Field(ge=0, le=100)
    completeness: float = Field(ge=0, le=100)
    validity: float = Field(ge=0, le=100)
    consistency: float = Field(ge=0, le=100)
    accuracy: float = Field(ge=0, le=100)
    uniqueness: float = Field(ge=0, le=100)


class CodeSnippet(CamelModel):
    language: Literal["python", "sql", "javascript"]
    code: str
    description: str


class DataTask(CamelModel):
    id: str
    title: str
    description: str
    category: TaskCategory
    severity: IssueSeverity
    estimated_effort: str
    status: TaskStatus = TaskStatus.PENDING
    related_issues: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    code_snippets: List[CodeSnippet] = Field(default_factory=list)
    validation_rules: Optional[List[str]] = None


class ColumnRelationship(FrozenCamelModel):
    column1: str
    column2: str
    type: Literal["correlation", "dependency", "hierarchy"]
    strength: float
    description: str


class AnalysisResult(CamelModel):
    file_name: str = ""
    row_count: int
    column_count: int
    column_profiles: List[ColumnProfile]
    issues: List[DataIssue]
    tasks: List[DataTask]
    quality_score: DataQualityScore
    relationships: List[ColumnRelationship] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class IssueExplanation(CamelModel):
    what_is_this: str
    why_problem: str
    how_to_fix: List[str]
    impact: str
    priority: Literal["high", "medium", "low"]


class ExportOptions(CamelModel):
    format: Literal["json", "csv", "markdown", "github-issues"] = "json"
    include_code_snippets: bool = True
    include_dependencies: bool = True
    include_validation_rules: bool = True


class PipelineEvent(CamelModel):
    """One message on the progress channel"""
    type: Literal["progress", "result", "error"]
    progress: Optional[float] = None
    message: Optional[str] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
