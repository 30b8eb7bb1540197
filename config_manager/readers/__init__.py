import logging
from typing import Any, Union

from .base_reader import InputMode, SchemaReadResult
from .json_reader import JSONSchemaReader
from .ddl_reader import DDLSchemaReader, ColumnDefinition, ColumnCheck
from .manual_reader import ManualField, ManualSchemaReader
from .sample_reader import SampleSchemaInferrer


class SchemaReader:
    """Dispatches a payload to the reader of its input mode"""

    def __init__(self, max_examples: int = 5, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self._readers = {
            InputMode.JSON_SCHEMA: self._read_json_schema,
            InputMode.CREATE_TABLE: DDLSchemaReader(self.logger).parse,
            InputMode.MANUAL: ManualSchemaReader(self.logger).build,
            InputMode.SAMPLE: self._read_sample,
        }
        self._json_reader = JSONSchemaReader(self.logger)
        self._sample_inferrer = SampleSchemaInferrer(max_examples, self.logger)

    def read(self, mode: Union[InputMode, str], payload: Any) -> SchemaReadResult:
        input_mode = InputMode(mode)
        self.logger.debug(f"Reading {input_mode.value} payload")
        return self._readers[input_mode](payload)

    def _read_json_schema(self, payload: Any) -> SchemaReadResult:
        if isinstance(payload, (str, bytes)):
            return self._json_reader.parse(payload)
        return self._json_reader.parse_document(payload)

    def _read_sample(self, payload: Any) -> SchemaReadResult:
        if isinstance(payload, (str, bytes)):
            return self._sample_inferrer.infer_text(payload)
        return SchemaReadResult(model=self._sample_inferrer.infer(payload))


__all__ = [
    'SchemaReader', 'InputMode', 'SchemaReadResult', 'JSONSchemaReader', 'DDLSchemaReader',
    'ColumnDefinition', 'ColumnCheck', 'ManualField', 'ManualSchemaReader', 'SampleSchemaInferrer',
]
