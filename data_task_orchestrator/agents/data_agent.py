# data_task_orchestrator/agents/data_agent.py
import io
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from data_task_orchestrator.config import IngestionConfig, get_config
from data_task_orchestrator.exceptions import IngestionError
from data_task_orchestrator.models import Table

logger = logging.getLogger(__name__)

NUMBER_PATTERN = re.compile(r'^\s*-?(\d+\.?|\.\d+|\d+\.\d+)([eE][-+]?\d+)?\s*$')
INTEGER_PATTERN = re.compile(r'^\s*-?\d+\s*$')
MAX_SAFE_INTEGER = 2 ** 53

def coerce_cell(text: Any) -> Any:
    """
    Type one raw cell: empty -> None, true/false -> bool, numeric text -> int/float.

    Numbers outside the safe range of ±2**53 stay text, so identifiers keep every
    digit and overflowing exponents never become inf.
    """
    if not isinstance(text, str):
        return text
    if text == '':
        return None
    if text in ('true', 'TRUE'):
        return True
    if text in ('false', 'FALSE'):
        return False
    if NUMBER_PATTERN.match(text):
        value = int(text) if INTEGER_PATTERN.match(text) else float(text)
        return value if abs(value) < MAX_SAFE_INTEGER else text
    return text

class DataIngestionAgent:
    """Agent responsible for validating and parsing delimited-text sources into a Table"""

    def __init__(self, config: Optional[IngestionConfig] = None):
        self.config = config or get_config().ingestion
        self.supported_formats = [fmt.lower() for fmt in self.config.SUPPORTED_FILE_FORMATS]
        self.max_file_size_mb = self.config.MAX_FILE_SIZE_MB

    def validate_source(self, file_name: str, size_bytes: int):
        """Reject unsupported extensions and oversized sources before parsing"""
        extension = Path(file_name).suffix.lower()
        if extension not in self.supported_formats:
            raise IngestionError(f"Unsupported file format: {extension or file_name}")

        file_size_mb = size_bytes / (1024 * 1024)
        if file_size_mb > self.max_file_size_mb:
            raise IngestionError(f"File too large: {file_size_mb:.1f}MB > {self.max_file_size_mb}MB")

    def load_table(self, data_path: Union[str, Path]) -> Table:
        """Load a delimited text file from disk"""
        path = Path(data_path)

        if not path.exists():
            raise IngestionError(f"Data file not found: {data_path}")

        self.validate_source(path.name, path.stat().st_size)
        logger.info(f"Starting data ingestion for: {path}")

        return self._parse(path.read_bytes(), path.name)

    def load_table_from_bytes(self, content: bytes, file_name: str) -> Table:
        """Load an uploaded delimited text payload"""
        self.validate_source(file_name, len(content))
        logger.info(f"Starting data ingestion for upload: {file_name}")

        return self._parse(content, file_name)

    def _parse(self, content: bytes, file_name: str) -> Table:
        frame = self._read_frame(content)

        headers = [str(column) for column in frame.columns]
        rows: List[Dict[str, Any]] = [
            {header: coerce_cell(value) for header, value in zip(headers, record)}
            for record in frame.itertuples(index=False, name=None)
        ]

        table = Table(headers=headers, rows=rows, file_name=file_name, file_size=len(content))
        logger.info(f"Data loaded successfully: {table.row_count} rows, {table.column_count} columns")
        return table

    def _read_frame(self, content: bytes) -> pd.DataFrame:
        """Parse with the first encoding/separator combination that yields several columns"""
        if not content.strip():
            raise IngestionError("File is empty")

        errors = []

        for encoding in self.config.ENCODINGS:
            fallback = None
            tokenizing_error = None

            for sep in self.config.SEPARATORS:
                try:
                    frame = pd.read_csv(
                        io.BytesIO(content),
                        encoding=encoding,
                        sep=sep,
                        dtype=str,
                        keep_default_na=False,
                        skip_blank_lines=True
                    )
                except pd.errors.ParserError as e:
                    errors.append(f"{encoding}/{sep!r}: {e}")
                    tokenizing_error = tokenizing_error or e
                    continue
                except (UnicodeDecodeError, pd.errors.EmptyDataError) as e:
                    errors.append(f"{encoding}/{sep!r}: {e}")
                    continue

                if frame.shape[1] > 1:
                    return frame
                if fallback is None:
                    fallback = frame

            if tokenizing_error is not None:
                # a ragged row under one separator is not a single-column file under another
                logger.error(f"Malformed source: {tokenizing_error}")
                raise IngestionError(f"Malformed source: {tokenizing_error}")
            if fallback is not None:
                # decoding worked, the file simply has a single column
                return fallback

        logger.error(f"Could not parse source: {errors}")
        raise IngestionError("Could not parse file with any encoding/separator combination")
