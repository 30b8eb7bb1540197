import json
import logging
from typing import Any, Dict

from jsonschema.exceptions import SchemaError
from jsonschema.validators import Draft201909Validator, validator_for

from constraint_manager.constraint_model import ConstraintNode
from validators.source_map import SourceMap
from .base_reader import SchemaReadResult


class JSONSchemaReader:
    """Reads JSON Schema document text into a constraint model plus a source map of the text"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def parse(self, text: str) -> SchemaReadResult:
        try:
            document = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            self.logger.warning(f"Invalid JSON Schema text: {e}")
            return SchemaReadResult.failure(f"Invalid JSON Schema: {e}")

        return self.parse_document(document, text)

    def parse_document(self, document: Any, text: str = None) -> SchemaReadResult:
        """Build the model from an already parsed document; text (if given) feeds the source map"""
        if not isinstance(document, dict):
            self.logger.warning(f"JSON Schema root is a {type(document).__name__}, expected an object")
            return SchemaReadResult.failure("Invalid JSON Schema: the root must be a JSON object.")

        error = self._check_document(document)
        if error:
            return SchemaReadResult.failure(error)

        model = ConstraintNode.from_schema(document)
        source_map = SourceMap.from_text(text, self.logger) if text is not None else None

        title = document.get('title')
        self.logger.info(f"📐 Loaded JSON Schema{' ' + repr(title) if title else ''} "
                         f"with {len(model.properties)} top-level properties")
        return SchemaReadResult(model=model, source_map=source_map,
                                table_name=title if isinstance(title, str) else None)

    def _check_document(self, document: Dict[str, Any]):
        validator_class = validator_for(document, default=Draft201909Validator)
        try:
            validator_class.check_schema(document)
        except SchemaError as e:
            location = '/'.join(str(part) for part in e.absolute_path)
            self.logger.warning(f"Schema rejected by the {validator_class.__name__} meta-schema at '{location}'")
            return f"Invalid JSON Schema: {e.message}" + (f" (at {location})" if location else "")
        return None
