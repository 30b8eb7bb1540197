import re
import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constraint_manager.constraint_model import ConstraintNode
from .base_reader import SchemaReadResult


@dataclass
class ColumnCheck:
    """A single constraint lifted out of a CHECK clause"""
    kind: str  # min | max | min_exclusive | max_exclusive | pattern | enum
    value: Any


@dataclass
class ColumnDefinition:
    """One parsed column, consumed once to build a property node"""
    name: str
    sql_type: str
    length: Optional[int] = None
    scale: Optional[int] = None
    not_null: bool = False
    primary_key: bool = False
    checks: List[ColumnCheck] = field(default_factory=list)


class DDLSchemaReader:
    """Turns a CREATE TABLE script into a constraint model"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

        self._sql_datatype_mapping = {
            'int': {'type': 'integer'},
            'integer': {'type': 'integer'},
            'smallint': {'type': 'integer'},
            'tinyint': {'type': 'integer'},
            'mediumint': {'type': 'integer'},
            'bigint': {'type': 'integer'},
            'serial': {'type': 'integer'},
            'bigserial': {'type': 'integer'},
            'year': {'type': 'integer'},
            'real': {'type': 'number'},
            'double': {'type': 'number'},
            'float': {'type': 'number'},
            'decimal': {'type': 'number'},
            'numeric': {'type': 'number'},
            'money': {'type': 'number'},
            'boolean': {'type': 'boolean'},
            'bool': {'type': 'boolean'},
            'bit': {'type': 'boolean'},
            'text': {'type': 'string'},
            'varchar': {'type': 'string'},
            'char': {'type': 'string'},
            'character': {'type': 'string'},
            'nchar': {'type': 'string'},
            'nvarchar': {'type': 'string'},
            'ntext': {'type': 'string'},
            'clob': {'type': 'string'},
            'longtext': {'type': 'string'},
            'mediumtext': {'type': 'string'},
            'tinytext': {'type': 'string'},
            'date': {'type': 'string', 'format': 'date'},
            'datetime': {'type': 'string', 'format': 'date-time'},
            'timestamp': {'type': 'string', 'format': 'date-time'},
            'timestamptz': {'type': 'string', 'format': 'date-time'},
            'time': {'type': 'string', 'format': 'time'},
            'uuid': {'type': 'string', 'format': 'uuid'},
        }

        self._table_clause_pattern = re.compile(
            r'^(?:PRIMARY\s+KEY|CONSTRAINT|FOREIGN\s+KEY|UNIQUE|INDEX|KEY|CHECK)\b', re.IGNORECASE
        )

        identifier = r'(?:"[^"]+"|`[^`]+`|\[[^\]]+\]|[\w$]+)'
        self._create_table_pattern = re.compile(
            r'CREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?'
            rf'({identifier}(?:\s*\.\s*{identifier})*)\s*\(',
            re.IGNORECASE
        )
        self._column_pattern = re.compile(
            rf'^({identifier})\s+([A-Za-z_]\w*)(?:\s*\(\s*(\d+)(?:\s*,\s*(\d+))?\s*\))?',
        )
        self._primary_key_pattern = re.compile(r'PRIMARY\s+KEY\s*\(([^)]*)\)', re.IGNORECASE)
        self._check_start_pattern = re.compile(r'CHECK\s*\(', re.IGNORECASE)

        number = r"'?(-?\d+(?:\.\d+)?)'?"
        self._between_pattern = re.compile(
            rf'({identifier})\s+BETWEEN\s+{number}\s+AND\s+{number}', re.IGNORECASE)
        self._comparison_pattern = re.compile(rf'({identifier})\s*(<=|>=|<|>)\s*{number}')
        self._reversed_comparison_pattern = re.compile(rf'{number}\s*(<=|>=|<|>)\s*({identifier})')
        self._length_pattern = re.compile(
            rf'(?:CHAR_LENGTH|CHARACTER_LENGTH|LENGTH|LEN)\s*\(\s*({identifier})\s*\)\s*(<=|>=|<|>)\s*(\d+)',
            re.IGNORECASE)
        self._in_pattern = re.compile(rf'({identifier})\s+IN\s*\(([^)]*)\)', re.IGNORECASE)
        self._regex_pattern = re.compile(rf"({identifier})\s*(?:~\*?|\bREGEXP\b|\bRLIKE\b)\s*'([^']*)'",
                                         re.IGNORECASE)

    # ===================== PUBLIC API =====================

    def parse(self, script: str) -> SchemaReadResult:
        """Parse the first CREATE TABLE statement of a script"""
        cleaned = self._strip_comments(script or "")
        match = self._create_table_pattern.search(cleaned)
        if not match:
            self.logger.warning("No CREATE TABLE statement found in DDL input")
            return SchemaReadResult.failure("Could not parse the CREATE TABLE statement.")

        table_name = '.'.join(self.normalise_identifier(part) for part in match.group(1).split('.'))
        columns_section = self._extract_balanced(cleaned, match.end())
        if columns_section is None:
            self.logger.warning(f"Unbalanced parentheses in CREATE TABLE {table_name}")
            return SchemaReadResult.failure("Could not parse the CREATE TABLE statement.", table_name=table_name)

        segments = self.split_column_definitions(columns_section)
        columns = []
        table_checks = []
        primary_keys = set()
        for segment in segments:
            column = self.parse_column_definition(segment)
            if column is not None:
                columns.append(column)
                continue
            pk_match = self._primary_key_pattern.search(segment)
            if pk_match:
                primary_keys.update(self.normalise_identifier(name)
                                    for name in pk_match.group(1).split(',') if name.strip())
            table_checks.extend(self._extract_check_bodies(segment))

        if not columns:
            self.logger.warning(f"CREATE TABLE {table_name} has no parsable columns")
            return SchemaReadResult.failure("No table columns were found.", table_name=table_name)

        for column in columns:
            if column.name in primary_keys:
                column.primary_key = True
            for body in table_checks:
                column.checks.extend(self._parse_check_body(body, column.name))

        model = ConstraintNode(types=['object'], additional_properties=False, required=[])
        for column in columns:
            model.properties[column.name] = self._build_property(column)
            if column.not_null or column.primary_key:
                model.required.append(column.name)

        self.logger.info(f"🧱 Parsed table '{table_name}' with {len(columns)} columns "
                         f"({len(model.required)} required)")
        return SchemaReadResult(model=model, table_name=table_name)

    # ===================== TOKENIZING =====================

    @staticmethod
    def normalise_identifier(value: str) -> str:
        trimmed = value.strip()
        if len(trimmed) >= 2 and (trimmed[0], trimmed[-1]) in (('"', '"'), ('`', '`'), ('[', ']')):
            return trimmed[1:-1]
        return trimmed

    @staticmethod
    def _strip_comments(script: str) -> str:
        without_blocks = re.sub(r'/\*.*?\*/', ' ', script, flags=re.DOTALL)
        return re.sub(r'--[^\n]*', ' ', without_blocks)

    @staticmethod
    def _extract_balanced(text: str, start: int) -> Optional[str]:
        """Text from start up to the parenthesis closing the one just before start"""
        depth = 1
        quote = None
        for index in range(start, len(text)):
            char = text[index]
            if quote:
                if char == quote:
                    quote = None
                continue
            if char == "'":
                quote = char
            elif char == '(':
                depth += 1
            elif char == ')':
                depth -= 1
                if depth == 0:
                    return text[start:index]
        return None

    @staticmethod
    def split_column_definitions(columns_section: str) -> List[str]:
        """Split on commas that are not nested in parentheses or string literals"""
        result = []
        depth = 0
        quote = None
        current = []
        for char in columns_section:
            if quote:
                if char == quote:
                    quote = None
            elif char == "'":
                quote = char
            elif char == '(':
                depth += 1
            elif char == ')':
                depth = max(0, depth - 1)
            elif char == ',' and depth == 0:
                result.append(''.join(current).strip())
                current = []
                continue
            current.append(char)
        if ''.join(current).strip():
            result.append(''.join(current).strip())
        return [segment for segment in result if segment]

    def parse_column_definition(self, definition: str) -> Optional[ColumnDefinition]:
        """Parse `name type(optional-length) [NOT NULL] [CHECK(...)]`; table clauses return None"""
        trimmed = definition.strip()
        if not trimmed:
            return None
        upper = trimmed.upper()
        if self._table_clause_pattern.match(trimmed):
            return None

        match = self._column_pattern.match(trimmed)
        if not match:
            return None

        name = self.normalise_identifier(match.group(1))
        column = ColumnDefinition(
            name=name,
            sql_type=match.group(2).lower(),
            length=int(match.group(3)) if match.group(3) else None,
            scale=int(match.group(4)) if match.group(4) else None,
            not_null=bool(re.search(r'\bNOT\s+NULL\b', upper)),
            primary_key=bool(re.search(r'\bPRIMARY\s+KEY\b', upper)),
        )
        for body in self._extract_check_bodies(trimmed):
            column.checks.extend(self._parse_check_body(body, name))
        return column

    def _extract_check_bodies(self, text: str) -> List[str]:
        bodies = []
        for match in self._check_start_pattern.finditer(text):
            body = self._extract_balanced(text, match.end())
            if body is not None:
                bodies.append(body)
        return bodies

    # ===================== CHECK CLAUSES =====================

    def _parse_check_body(self, body: str, column_name: str) -> List[ColumnCheck]:
        """Lift comparisons on column_name out of a CHECK body; other columns are ignored"""
        checks = []

        def same_column(token: str) -> bool:
            return self.normalise_identifier(token) == column_name

        for match in self._between_pattern.finditer(body):
            if same_column(match.group(1)):
                checks.append(ColumnCheck('min', self._to_number(match.group(2))))
                checks.append(ColumnCheck('max', self._to_number(match.group(3))))
        remaining = self._between_pattern.sub(' ', body)

        for match in self._length_pattern.finditer(remaining):
            if same_column(match.group(1)):
                checks.extend(self._comparison_checks(match.group(2), self._to_number(match.group(3))))
        remaining = self._length_pattern.sub(' ', remaining)

        for match in self._comparison_pattern.finditer(remaining):
            if same_column(match.group(1)):
                checks.extend(self._comparison_checks(match.group(2), self._to_number(match.group(3))))

        flipped = {'<': '>', '>': '<', '<=': '>=', '>=': '<='}
        for match in self._reversed_comparison_pattern.finditer(remaining):
            if same_column(match.group(3)):
                checks.extend(self._comparison_checks(flipped[match.group(2)], self._to_number(match.group(1))))

        for match in self._in_pattern.finditer(remaining):
            if same_column(match.group(1)):
                values = self._parse_value_list(match.group(2))
                if values:
                    checks.append(ColumnCheck('enum', values))

        for match in self._regex_pattern.finditer(remaining):
            if same_column(match.group(1)):
                checks.append(ColumnCheck('pattern', match.group(2)))
        return checks

    @staticmethod
    def _comparison_checks(operator: str, value: float) -> List[ColumnCheck]:
        if operator == '>=':
            return [ColumnCheck('min', value)]
        if operator == '>':
            return [ColumnCheck('min_exclusive', value)]
        if operator == '<=':
            return [ColumnCheck('max', value)]
        if operator == '<':
            return [ColumnCheck('max_exclusive', value)]
        return []

    @staticmethod
    def _to_number(token: str):
        value = float(token)
        return int(value) if value.is_integer() else value

    def _parse_value_list(self, text: str) -> List[Any]:
        values = []
        for token in re.findall(r"'((?:[^']|'')*)'|(-?\d+(?:\.\d+)?)", text):
            quoted, numeric = token
            if numeric:
                values.append(self._to_number(numeric))
            else:
                values.append(quoted.replace("''", "'"))
        return values

    # ===================== MODEL BUILDING =====================

    def resolve_type(self, sql_type: str) -> Dict[str, str]:
        """Map a SQL base type onto a JSON type (and format), falling back on keyword heuristics"""
        base_type = sql_type.lower()
        mapping = self._sql_datatype_mapping.get(base_type)
        if mapping:
            return mapping
        if 'int' in base_type:
            return {'type': 'integer'}
        if any(keyword in base_type for keyword in ['char', 'text', 'string', 'clob']):
            return {'type': 'string'}
        if any(keyword in base_type for keyword in ['float', 'double', 'decimal', 'numeric']):
            return {'type': 'number'}
        if 'bool' in base_type:
            return {'type': 'boolean'}
        if 'timestamp' in base_type or 'datetime' in base_type:
            return {'type': 'string', 'format': 'date-time'}
        if 'date' in base_type:
            return {'type': 'string', 'format': 'date'}
        self.logger.debug(f"Unknown SQL type '{sql_type}', treating as string")
        return {'type': 'string'}

    def _build_property(self, column: ColumnDefinition) -> ConstraintNode:
        mapping = self.resolve_type(column.sql_type)
        json_type = mapping['type']
        node = ConstraintNode(types=[json_type], format=mapping.get('format'))
        is_string = json_type == 'string'

        if column.length is not None and is_string:
            node.max_length = column.length

        for check in column.checks:
            kind, value = check.kind, check.value
            # strict bounds are shifted by one and become inclusive
            if kind == 'min_exclusive':
                kind, value = 'min', (value + 1 if json_type == 'number' else math.floor(value) + 1)
            elif kind == 'max_exclusive':
                kind, value = 'max', (value - 1 if json_type == 'number' else math.ceil(value) - 1)

            if kind == 'min':
                if is_string:
                    node.min_length = max(node.min_length or 0, int(max(0, value)))
                else:
                    node.minimum = value if node.minimum is None else max(node.minimum, value)
            elif kind == 'max':
                if is_string:
                    limit = int(max(0, value))
                    node.max_length = limit if node.max_length is None else min(node.max_length, limit)
                else:
                    node.maximum = value if node.maximum is None else min(node.maximum, value)
            elif check.kind == 'pattern' and is_string:
                node.pattern = check.value
            elif check.kind == 'enum':
                node.enum = self._coerce_enum(check.value, json_type)
        return node

    @staticmethod
    def _coerce_enum(values: List[Any], json_type: str) -> List[Any]:
        if json_type == 'string':
            return [str(value) for value in values]
        if json_type in ('integer', 'number'):
            return [value for value in values if isinstance(value, (int, float))]
        return list(values)
