# data_task_orchestrator/exceptions.py

class IngestionError(ValueError):
    """Raised when a source is rejected before analysis (bad type, too large, unparseable)"""

class AnalysisError(RuntimeError):
    """Raised when the analysis graph recorded an unrecoverable fault"""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])
