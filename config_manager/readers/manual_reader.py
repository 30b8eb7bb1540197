import re
import logging
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, List, Optional

from constraint_manager.constraint_model import ConstraintNode
from .base_reader import SchemaReadResult


MANUAL_FIELD_TYPES = ('string', 'number', 'integer', 'boolean', 'date')

UNNAMED_FIELDS_WARNING = "Unnamed fields were ignored."


@dataclass
class ManualField:
    """One user-entered field descriptor"""
    name: str = ""
    type: str = "string"
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    enum_values: Optional[str] = None

    _aliases = {
        'minLength': 'min_length',
        'maxLength': 'max_length',
        'enumValues': 'enum_values',
        'enum': 'enum_values',
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManualField':
        """Accepts snake_case keys as well as the camelCase keys of the field editor"""
        known = {f.name for f in dataclass_fields(cls)}
        kwargs = {}
        for key, value in data.items():
            attribute = cls._aliases.get(key, key)
            if attribute in known:
                kwargs[attribute] = value
        if isinstance(kwargs.get('enum_values'), list):
            kwargs['enum_values'] = ','.join(str(value) for value in kwargs['enum_values'])
        return cls(**kwargs)


class ManualSchemaReader:
    """Converts an ordered list of manual fields into an object model, one property per field"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def build(self, fields: List[Any]) -> SchemaReadResult:
        manual_fields = [field if isinstance(field, ManualField) else ManualField.from_dict(field)
                         for field in fields or []]

        warnings = []
        errors = []
        model = ConstraintNode(types=['object'], additional_properties=False, required=[])

        for field in manual_fields:
            name = (field.name or "").strip()
            if not name:
                if UNNAMED_FIELDS_WARNING not in warnings:
                    warnings.append(UNNAMED_FIELDS_WARNING)
                continue
            if name in model.properties:
                self.logger.warning(f"Duplicate manual field '{name}', the later definition wins")

            try:
                model.properties[name] = self._build_property(field)
            except ValueError as e:
                errors.append(f"Field '{name}': {e}")
                continue
            if field.required and name not in model.required:
                model.required.append(name)

        if not model.properties and not errors:
            errors.append("At least one named field is required.")

        if errors:
            for error in errors:
                self.logger.warning(f"Manual field rejected: {error}")
            result = SchemaReadResult.failure(*errors)
            result.warnings = warnings
            return result

        for warning in warnings:
            self.logger.warning(warning)
        self.logger.info(f"✏️ Built model from {len(model.properties)} manual fields "
                         f"({len(model.required)} required)")
        return SchemaReadResult(model=model, warnings=warnings)

    def _build_property(self, field: ManualField) -> ConstraintNode:
        field_type = (field.type or "string").strip().lower()
        if field_type not in MANUAL_FIELD_TYPES:
            raise ValueError(f"unknown type '{field.type}', expected one of {', '.join(MANUAL_FIELD_TYPES)}")

        if field_type == 'date':
            node = ConstraintNode(types=['string'], format='date-time')
        else:
            node = ConstraintNode(types=[field_type])

        if field.min_length is not None:
            node.min_length = int(field.min_length)
        if field.max_length is not None:
            node.max_length = int(field.max_length)
        if field.pattern:
            try:
                re.compile(field.pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern '{field.pattern}': {e}")
            node.pattern = field.pattern
        if field.minimum is not None:
            node.minimum = field.minimum
        if field.maximum is not None:
            node.maximum = field.maximum

        if field.enum_values:
            tokens = [token.strip() for token in str(field.enum_values).split(',')]
            tokens = [token for token in tokens if token]
            if tokens:
                node.enum = [self._coerce_token(token, field_type) for token in tokens]
        return node

    @staticmethod
    def _coerce_token(token: str, field_type: str) -> Any:
        if field_type == 'integer':
            try:
                return int(token)
            except ValueError:
                raise ValueError(f"enum value '{token}' is not an integer")
        if field_type == 'number':
            try:
                value = float(token)
            except ValueError:
                raise ValueError(f"enum value '{token}' is not a number")
            return int(value) if value.is_integer() else value
        if field_type == 'boolean':
            lowered = token.lower()
            if lowered not in ('true', 'false'):
                raise ValueError(f"enum value '{token}' is not a boolean")
            return lowered == 'true'
        return token
