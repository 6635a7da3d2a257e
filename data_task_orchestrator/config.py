# data_task_orchestrator/config.py
import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
import json
import logging

import yaml

logger = logging.getLogger(__name__)

@dataclass
class PathConfig:
    """Configuration for project paths"""
    PROJECT_ROOT: Path
    LOGS_DIR: Path
    OUTPUT_DIR: Path

@dataclass
class IngestionConfig:
    """Configuration for file ingestion"""
    MAX_FILE_SIZE_MB: int
    SUPPORTED_FILE_FORMATS: List[str]
    ENCODINGS: List[str]
    SEPARATORS: List[str]

@dataclass
class ProfilingConfig:
    """Thresholds used by type inference, statistics and issue detection"""
    TYPE_SAMPLE_SIZE: int
    TYPE_THRESHOLD: float
    MAX_SAMPLE_VALUES: int
    TOP_VALUES_LIMIT: int
    IQR_MULTIPLIER: float
    MISSING_VALUES_THRESHOLD: float  # percent
    CRITICAL_MISSING_THRESHOLD: float  # percent
    HIGH_OUTLIER_RATIO: float
    HIGH_DUPLICATE_RATIO: float
    CORRELATION_THRESHOLD: float

@dataclass
class ExplainerConfig:
    """Configuration for the remote issue explainer"""
    API_URL: str
    API_KEY: Optional[str]
    MODEL: str
    TEMPERATURE: float
    MAX_TOKENS: int
    TIMEOUT: int  # seconds
    ENABLED: bool

@dataclass
class APIConfig:
    """Configuration for the HTTP API"""
    HOST: str
    PORT: int
    ENABLE_CORS: bool

class Config:
    """Central configuration manager for the analysis pipeline"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to a JSON or YAML file overriding defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        project_root = Path(__file__).parent.parent
        self.paths = PathConfig(
            PROJECT_ROOT=project_root,
            LOGS_DIR=project_root / "logs",
            OUTPUT_DIR=project_root / "output"
        )

        self.ingestion = IngestionConfig(
            MAX_FILE_SIZE_MB=100,
            SUPPORTED_FILE_FORMATS=['.csv', '.txt'],
            ENCODINGS=['utf-8', 'latin-1', 'cp1252'],
            SEPARATORS=[',', ';', '\t']
        )

        self.profiling = ProfilingConfig(
            TYPE_SAMPLE_SIZE=100,
            TYPE_THRESHOLD=0.8,
            MAX_SAMPLE_VALUES=10,
            TOP_VALUES_LIMIT=10,
            IQR_MULTIPLIER=1.5,
            MISSING_VALUES_THRESHOLD=50.0,
            CRITICAL_MISSING_THRESHOLD=80.0,
            HIGH_OUTLIER_RATIO=0.1,
            HIGH_DUPLICATE_RATIO=0.1,
            CORRELATION_THRESHOLD=0.7
        )

        self.explainer = ExplainerConfig(
            API_URL="https://openrouter.ai/api/v1/chat/completions",
            API_KEY=None,
            MODEL="x-ai/grok-2-1212",
            TEMPERATURE=0.3,
            MAX_TOKENS=500,
            TIMEOUT=30,
            ENABLED=True
        )

        self.api = APIConfig(
            HOST="0.0.0.0",
            PORT=8000,
            ENABLE_CORS=True
        )

        # Additional settings
        self.logging_level = "INFO"
        self.debug_mode = False

    def _load_config_file(self, config_file: str):
        """Load configuration from a JSON or YAML file"""
        try:
            with open(config_file, 'r') as f:
                if Path(config_file).suffix.lower() in ('.yaml', '.yml'):
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)

            # Update configurations with values from file
            for section, values in config_data.items():
                if not hasattr(self, section):
                    continue
                config_obj = getattr(self, section)
                if isinstance(values, dict):
                    for key, value in values.items():
                        if hasattr(config_obj, key):
                            setattr(config_obj, key, value)
                else:
                    setattr(self, section, values)

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")

    def _load_environment_variables(self):
        """Load configuration from environment variables"""

        # Explainer settings
        if os.getenv("OPENROUTER_API_KEY"):
            self.explainer.API_KEY = os.getenv("OPENROUTER_API_KEY")

        if os.getenv("OPENROUTER_MODEL"):
            self.explainer.MODEL = os.getenv("OPENROUTER_MODEL")

        if os.getenv("EXPLAINER_TIMEOUT"):
            self.explainer.TIMEOUT = int(os.getenv("EXPLAINER_TIMEOUT"))

        # Ingestion settings
        if os.getenv("MAX_FILE_SIZE_MB"):
            self.ingestion.MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB"))

        # API settings
        if os.getenv("API_PORT"):
            self.api.PORT = int(os.getenv("API_PORT"))

        if os.getenv("API_HOST"):
            self.api.HOST = os.getenv("API_HOST")

        # General settings
        if os.getenv("LOG_LEVEL"):
            self.logging_level = os.getenv("LOG_LEVEL")

        if os.getenv("DEBUG_MODE"):
            self.debug_mode = os.getenv("DEBUG_MODE").lower() == 'true'

    def save_config(self, config_file: str):
        """Save current configuration to a JSON file (the API key is never written)"""
        config_dict: Dict[str, Any] = {}

        for section in ('paths', 'ingestion', 'profiling', 'explainer', 'api'):
            values = asdict(getattr(self, section))
            config_dict[section] = {
                key: str(value) if isinstance(value, Path) else value
                for key, value in values.items()
                if key != 'API_KEY'
            }

        config_dict['logging_level'] = self.logging_level
        config_dict['debug_mode'] = self.debug_mode

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if self.ingestion.MAX_FILE_SIZE_MB <= 0:
            issues.append(f"Invalid max file size: {self.ingestion.MAX_FILE_SIZE_MB}")

        if not self.ingestion.SUPPORTED_FILE_FORMATS:
            issues.append("At least one supported file format is required")

        if self.profiling.TYPE_SAMPLE_SIZE <= 0:
            issues.append(f"Invalid type sample size: {self.profiling.TYPE_SAMPLE_SIZE}")

        if not 0 < self.profiling.TYPE_THRESHOLD <= 1:
            issues.append(f"Invalid type threshold: {self.profiling.TYPE_THRESHOLD}")

        if self.profiling.CRITICAL_MISSING_THRESHOLD < self.profiling.MISSING_VALUES_THRESHOLD:
            issues.append("Critical missing threshold must not be below the missing values threshold")

        if not 0 <= self.profiling.CORRELATION_THRESHOLD <= 1:
            issues.append(f"Invalid correlation threshold: {self.profiling.CORRELATION_THRESHOLD}")

        if self.explainer.TIMEOUT <= 0:
            issues.append(f"Invalid explainer timeout: {self.explainer.TIMEOUT}")

        return issues

    def __str__(self) -> str:
        """String representation of configuration"""
        return f"Config(project_root={self.paths.PROJECT_ROOT}, debug={self.debug_mode})"

# Global configuration instance
_config = None

def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config

def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config

# Example configuration file template
CONFIG_TEMPLATE = {
    "ingestion": {
        "MAX_FILE_SIZE_MB": 100
    },
    "profiling": {
        "MISSING_VALUES_THRESHOLD": 50.0,
        "CRITICAL_MISSING_THRESHOLD": 80.0,
        "CORRELATION_THRESHOLD": 0.7
    },
    "explainer": {
        "MODEL": "x-ai/grok-2-1212",
        "TIMEOUT": 30
    },
    "api": {
        "PORT": 8080
    }
}

def create_config_template(output_file: str):
    """Create a configuration template file"""
    with open(output_file, 'w') as f:
        if Path(output_file).suffix.lower() in ('.yaml', '.yml'):
            yaml.safe_dump(CONFIG_TEMPLATE, f, sort_keys=False)
        else:
            json.dump(CONFIG_TEMPLATE, f, indent=2)
    logger.info(f"Configuration template created: {output_file}")
