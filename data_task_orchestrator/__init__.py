"""Data Task Orchestrator.

Profiles a tabular dataset, detects data-quality issues, scores the dataset
and turns the findings into dependency-ordered remediation tasks.
"""

__version__ = "1.0.0"
