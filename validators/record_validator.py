import re
import json
import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional

from jsonschema.exceptions import ValidationError, relevance
from jsonschema.validators import Draft201909Validator, validator_for

from constraint_manager.constraint_model import ConstraintNode
from .source_map import SourceMap, pointer_from_path


ROOT_DISPLAY = "root"
ENUM_PREVIEW_SIZE = 5


@dataclass(frozen=True)
class ValidationIssue:
    """One failed assertion in one record"""
    record_number: int
    instance_path: str
    display_path: str
    keyword: str
    message: str
    suggestion: str
    schema_path: str
    line: Optional[int] = None
    column: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_instance_path(path) -> str:
    """`a.b[2].c` for the path segments, or the root literal for an empty path"""
    formatted = ""
    for segment in path:
        text = str(segment)
        if isinstance(segment, int) or text.isdigit():
            formatted += f"[{text}]"
        elif not formatted:
            formatted = text
        else:
            formatted += f".{text}"
    return formatted or ROOT_DISPLAY


def _as_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class RecordValidator:
    """
    Re-checks generated records against the constraint model with jsonschema.

    Every failed assertion becomes a ValidationIssue with a human-readable location, the raw
    message and a suggestion keyed by the failing keyword. Issues of a record are ordered by
    jsonschema's relevance heuristic, most relevant first. Records are never modified.
    """

    _required_pattern = re.compile(r"^(.+?) is a required property$")
    _dependency_pattern = re.compile(r"^(.+?) is a dependency of (.+)$")

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

        self.suggestion_builders: Dict[str, Callable[[ValidationError], str]] = {
            'required': self._suggest_required,
            'type': self._suggest_type,
            'minLength': lambda e: f"Lengthen the value to at least {e.validator_value} characters.",
            'maxLength': lambda e: f"Shorten the value to at most {e.validator_value} characters.",
            'pattern': lambda e: f"Reformat the value to match '{e.validator_value}'.",
            'format': lambda e: f"Convert the value to a valid {e.validator_value}.",
            'minimum': lambda e: f"Increase the value so that it is >= {e.validator_value}.",
            'exclusiveMinimum': lambda e: f"Increase the value so that it is > {e.validator_value}.",
            'maximum': lambda e: f"Decrease the value so that it is <= {e.validator_value}.",
            'exclusiveMaximum': lambda e: f"Decrease the value so that it is < {e.validator_value}.",
            'multipleOf': lambda e: f"Adjust the value to a multiple of {e.validator_value}.",
            'minItems': lambda e: f"Add items until the array holds at least {e.validator_value}.",
            'maxItems': lambda e: f"Remove items until the array holds at most {e.validator_value}.",
            'uniqueItems': lambda e: "Remove repeated values so every array item is unique.",
            'minProperties': lambda e: f"Add fields until the object has at least {e.validator_value}.",
            'maxProperties': lambda e: f"Remove fields until the object has at most {e.validator_value}.",
            'additionalProperties': self._suggest_additional_properties,
            'const': lambda e: f"Set the value to {_as_json(e.validator_value)}.",
            'enum': self._suggest_enum,
            'dependentRequired': self._suggest_dependency,
            'dependencies': self._suggest_dependency,
        }

    # ===================== PUBLIC API =====================

    def validate(self, model: ConstraintNode, records: List[Any],
                 source_map: Optional[SourceMap] = None) -> List[ValidationIssue]:
        schema = model.normalized(self.logger).to_schema()
        validator_class = validator_for(schema, default=Draft201909Validator)
        validator = validator_class(schema, format_checker=validator_class.FORMAT_CHECKER)

        issues = []
        for index, record in enumerate(records):
            issues.extend(self.validate_record(validator, record, index + 1, source_map))

        failing = len({issue.record_number for issue in issues})
        self.logger.info(f"🔍 Validated {len(records)} records: {len(issues)} issues in {failing} records")
        return issues

    def validate_record(self, validator, record: Any, record_number: int,
                        source_map: Optional[SourceMap] = None) -> List[ValidationIssue]:
        try:
            errors = sorted(validator.iter_errors(record), key=relevance, reverse=True)
        except Exception as e:
            self.logger.error(f"❌ Validation of record {record_number} failed: {e}")
            return [ValidationIssue(
                record_number=record_number, instance_path="", display_path=ROOT_DISPLAY,
                keyword="schema", message=f"Schema could not be evaluated: {e}",
                suggestion="Check the schema for unsupported or invalid keywords.", schema_path="#",
            )]
        return [self.to_issue(error, record_number, source_map) for error in errors]

    def to_issue(self, error: ValidationError, record_number: int,
                 source_map: Optional[SourceMap] = None) -> ValidationIssue:
        instance_path = pointer_from_path(error.absolute_path)
        schema_pointer = pointer_from_path(error.absolute_schema_path)
        display_path = format_instance_path(error.absolute_path)
        message = error.message if display_path == ROOT_DISPLAY else f"{display_path}: {error.message}"

        line = column = None
        if source_map is not None:
            position = source_map.resolve([instance_path, schema_pointer])
            if position is not None:
                line, column = position

        return ValidationIssue(
            record_number=record_number,
            instance_path=instance_path,
            display_path=display_path,
            keyword=str(error.validator),
            message=message,
            suggestion=self.build_suggestion(error),
            schema_path="#" + schema_pointer,
            line=line,
            column=column,
        )

    # ===================== SUGGESTIONS =====================

    def build_suggestion(self, error: ValidationError) -> str:
        builder = self.suggestion_builders.get(str(error.validator))
        if builder is None:
            return "Update the value so that it satisfies the schema rules."
        return builder(error)

    def _suggest_required(self, error: ValidationError) -> str:
        missing = self._required_pattern.match(error.message)
        if missing:
            return f"Add the field {missing.group(1)} and fill it in as the schema requires."
        return "Add the missing field and provide the required information."

    @staticmethod
    def _suggest_type(error: ValidationError) -> str:
        expected = error.validator_value
        if isinstance(expected, list):
            expected = " or ".join(str(item) for item in expected)
        return f"Convert the value to {expected} or change the schema to allow its current type."

    @staticmethod
    def _suggest_additional_properties(error: ValidationError) -> str:
        schema = error.schema if isinstance(error.schema, dict) else {}
        declared = schema.get('properties', {}) or {}
        patterns = list((schema.get('patternProperties', {}) or {}).keys())
        extras = []
        if isinstance(error.instance, dict):
            for key in error.instance:
                if key in declared:
                    continue
                if any(RecordValidator._safe_search(pattern, key) for pattern in patterns):
                    continue
                extras.append(key)
        if extras:
            names = ", ".join(f'"{key}"' for key in extras)
            return f"Remove {names} or add it to the properties the schema allows."
        return "Remove the fields the schema does not define."

    @staticmethod
    def _safe_search(pattern: str, key: str) -> bool:
        try:
            return re.search(pattern, key) is not None
        except re.error:
            return False

    @staticmethod
    def _suggest_enum(error: ValidationError) -> str:
        allowed = error.validator_value if isinstance(error.validator_value, list) else []
        if not allowed:
            return "Replace the value with one of the options the schema lists."
        preview = ", ".join(_as_json(value) for value in allowed[:ENUM_PREVIEW_SIZE])
        more = ", ..." if len(allowed) > ENUM_PREVIEW_SIZE else ""
        return f"Replace the value with one of the allowed options: {preview}{more}."

    def _suggest_dependency(self, error: ValidationError) -> str:
        match = self._dependency_pattern.match(error.message)
        if match:
            return f"When {match.group(2)} is present, add {match.group(1)} as well."
        return "Make sure dependent fields are provided together."
