"""
Record writers

Generated records leave the tool in one of three formats:
- JSON (one array per file)
- JSONL (one record per line)
- CSV (nested objects flattened with pandas.json_normalize)

The validation issues of a run are written next to the records as a JSON report.
"""

import os
import json
import math
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from config_manager.config_manager import OutputConfig


def clean_for_json(value: Any) -> Any:
    """Replace non-finite floats with None so the output stays valid JSON"""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: clean_for_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clean_for_json(item) for item in value]
    return value


class JSONStrategy:
    """JSON strategy - standard JSON array format"""

    extension = "json"

    def write_impl(self, records: List[Any], file_handle, config: OutputConfig) -> int:
        content = json.dumps(
            clean_for_json(records),
            ensure_ascii=config.json_ensure_ascii,
            indent=config.json_indent,
            default=str
        )
        file_handle.write(content)
        file_handle.write('\n')
        return len(content) + 1


class JSONLStrategy:
    """JSONL strategy - line-by-line JSON"""

    extension = "jsonl"

    def write_impl(self, records: List[Any], file_handle, config: OutputConfig) -> int:
        content_length = 0
        for record in records:
            line = json.dumps(clean_for_json(record), ensure_ascii=config.json_ensure_ascii, default=str) + '\n'
            file_handle.write(line)
            content_length += len(line)
        return content_length


class CSVStrategy:
    """CSV strategy - nested objects become dotted columns, arrays are JSON-encoded cells"""

    extension = "csv"

    def write_impl(self, records: List[Any], file_handle, config: OutputConfig) -> int:
        df = self.to_dataframe(records)
        content = df.to_csv(index=False, sep=config.delimiter, lineterminator='\n')
        file_handle.write(content)
        return len(content)

    @staticmethod
    def to_dataframe(records: List[Any]) -> pd.DataFrame:
        rows = [record if isinstance(record, dict) else {"value": record} for record in records]
        df = pd.json_normalize(rows) if rows else pd.DataFrame()
        for column in df.columns:
            if df[column].map(lambda cell: isinstance(cell, (list, dict))).any():
                df[column] = df[column].map(
                    lambda cell: json.dumps(cell, default=str) if isinstance(cell, (list, dict)) else cell
                )
        return df


class Writer:
    """Writes a full record set through a format strategy"""

    def __init__(self, file_path: str, config: OutputConfig, strategy, logger: logging.Logger = None):
        self.file_path = file_path
        self.config = config
        self.strategy = strategy
        self.logger = logger or logging.getLogger(__name__)

    def write(self, records: List[Any]) -> str:
        os.makedirs(os.path.dirname(self.file_path) or '.', exist_ok=True)
        try:
            with open(self.file_path, 'w', encoding=self.config.encoding, newline='') as file_handle:
                bytes_written = self.strategy.write_impl(records, file_handle, self.config)
        except Exception as e:
            self.logger.error(f"Failed to write {self.file_path}: {e}")
            raise

        self.logger.info(f"💾 {self.strategy.__class__.__name__} wrote {len(records):,} records "
                         f"({bytes_written:,} chars) to {self.file_path}")
        return self.file_path


class WriterFactory:
    """Creates writers for the supported output formats"""

    strategies = {
        'json': JSONStrategy,
        'jsonl': JSONLStrategy,
        'csv': CSVStrategy,
    }

    @classmethod
    def create(cls, format_name: str):
        strategy_class = cls.strategies.get((format_name or '').lower())
        if strategy_class is None:
            raise ValueError(f"Unsupported output format '{format_name}'. "
                             f"Supported formats: {', '.join(cls.list_supported_formats())}")
        return strategy_class()

    @classmethod
    def create_writer(cls, table_name: Optional[str], config: OutputConfig,
                      logger: logging.Logger = None) -> Writer:
        logger = logger or logging.getLogger(__name__)
        strategy = cls.create(config.format)
        file_path = config.get_output_path(table_name)
        logger.debug(f"Created {strategy.__class__.__name__} writer for {table_name or 'records'}")
        return Writer(file_path, config, strategy, logger)

    @classmethod
    def list_supported_formats(cls) -> List[str]:
        return list(cls.strategies.keys())


def write_issues_report(issues: List[Any], config: OutputConfig, logger: logging.Logger = None) -> str:
    """Dump validation issues (objects with to_dict, or plain dicts) as a JSON array"""
    logger = logger or logging.getLogger(__name__)
    path = config.get_issues_path()
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)

    payload: List[Dict[str, Any]] = [issue.to_dict() if hasattr(issue, 'to_dict') else issue for issue in issues]
    with open(path, 'w', encoding=config.encoding) as file_handle:
        json.dump(payload, file_handle, ensure_ascii=config.json_ensure_ascii, indent=config.json_indent, default=str)

    logger.info(f"📋 Wrote {len(payload)} validation issues to {path}")
    return path
