import copy
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


DRAFT_07_URI = "http://json-schema.org/draft-07/schema#"


class NodeKind(Enum):
    """Primitive kinds a constraint node can describe"""
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


KNOWN_TYPES = [kind.value for kind in NodeKind]
NUMERIC_TYPES = ("integer", "number")

# JSON Schema keyword -> attribute, for keywords copied verbatim
_SCALAR_KEYWORDS = {
    "minItems": "min_items",
    "maxItems": "max_items",
    "uniqueItems": "unique_items",
    "minProperties": "min_properties",
    "maxProperties": "max_properties",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "format": "format",
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
    "multipleOf": "multiple_of",
}

_STRUCTURAL_KEYWORDS = {
    "type", "properties", "patternProperties", "additionalProperties", "required",
    "items", "enum", "const", "allOf", "anyOf", "examples",
}


def kind_of_value(value: Any) -> str:
    """Map a plain Python value onto its JSON type name"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def _first(a: Any, b: Any) -> Any:
    return a if a is not None else b


def _max_opt(a, b):
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _min_opt(a, b):
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _step_above(value: float, integer: bool) -> float:
    if integer:
        return math.floor(value) + 1
    return math.nextafter(value, math.inf)


def _step_below(value: float, integer: bool) -> float:
    if integer:
        return math.ceil(value) - 1
    return math.nextafter(value, -math.inf)


@dataclass
class ConstraintNode:
    """Canonical, recursive schema unit shared by every reader, the generator and the validator"""
    types: List[str] = field(default_factory=list)
    properties: Dict[str, 'ConstraintNode'] = field(default_factory=dict)
    pattern_properties: Dict[str, 'ConstraintNode'] = field(default_factory=dict)
    additional_properties: Union[bool, 'ConstraintNode', None] = None
    required: Optional[List[str]] = None
    items: Union['ConstraintNode', List['ConstraintNode'], None] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: Optional[bool] = None
    min_properties: Optional[int] = None
    max_properties: Optional[int] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None
    enum: Optional[List[Any]] = None
    const: Any = None
    has_const: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Union[float, bool, None] = None
    exclusive_maximum: Union[float, bool, None] = None
    multiple_of: Optional[float] = None
    all_of: List['ConstraintNode'] = field(default_factory=list)
    any_of: List['ConstraintNode'] = field(default_factory=list)
    examples: Optional[List[Any]] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    # ===================== CONVERSION =====================

    @classmethod
    def from_schema(cls, schema: Union[Dict[str, Any], bool]) -> 'ConstraintNode':
        """Build a node tree from a JSON Schema dictionary"""
        if schema is True:
            return cls()
        if schema is False:
            return cls(extras={"not": {}})
        if not isinstance(schema, dict):
            raise ValueError(f"Schema must be an object or boolean, got {type(schema).__name__}")

        node = cls()
        declared = schema.get("type")
        if isinstance(declared, str):
            node.types = [declared]
        elif isinstance(declared, list):
            node.types = [t for t in declared if isinstance(t, str)]

        if isinstance(schema.get("properties"), dict):
            node.properties = {k: cls.from_schema(v) for k, v in schema["properties"].items()}
        if isinstance(schema.get("patternProperties"), dict):
            node.pattern_properties = {k: cls.from_schema(v) for k, v in schema["patternProperties"].items()}

        additional = schema.get("additionalProperties")
        if isinstance(additional, bool):
            node.additional_properties = additional
        elif isinstance(additional, dict):
            node.additional_properties = cls.from_schema(additional)

        if isinstance(schema.get("required"), list):
            node.required = list(schema["required"])

        items = schema.get("items")
        if isinstance(items, list):
            node.items = [cls.from_schema(item) for item in items]
        elif isinstance(items, (dict, bool)):
            node.items = cls.from_schema(items)

        for keyword, attribute in _SCALAR_KEYWORDS.items():
            if keyword in schema:
                setattr(node, attribute, schema[keyword])

        if isinstance(schema.get("enum"), list):
            node.enum = copy.deepcopy(schema["enum"])
        if "const" in schema:
            node.const = copy.deepcopy(schema["const"])
            node.has_const = True
        if isinstance(schema.get("allOf"), list):
            node.all_of = [cls.from_schema(part) for part in schema["allOf"]]
        if isinstance(schema.get("anyOf"), list):
            node.any_of = [cls.from_schema(part) for part in schema["anyOf"]]
        if isinstance(schema.get("examples"), list):
            node.examples = copy.deepcopy(schema["examples"])

        node.extras = {
            key: copy.deepcopy(value)
            for key, value in schema.items()
            if key not in _STRUCTURAL_KEYWORDS and key not in _SCALAR_KEYWORDS
        }
        return node

    def to_schema(self) -> Dict[str, Any]:
        """Serialize back to a JSON Schema dictionary with the original key structure"""
        schema: Dict[str, Any] = {}
        for key, value in self.extras.items():
            if key.startswith("$"):
                schema[key] = copy.deepcopy(value)

        if self.types:
            schema["type"] = self.types[0] if len(self.types) == 1 else list(self.types)
        if self.properties:
            schema["properties"] = {k: v.to_schema() for k, v in self.properties.items()}
        if self.pattern_properties:
            schema["patternProperties"] = {k: v.to_schema() for k, v in self.pattern_properties.items()}
        if isinstance(self.additional_properties, ConstraintNode):
            schema["additionalProperties"] = self.additional_properties.to_schema()
        elif self.additional_properties is not None:
            schema["additionalProperties"] = self.additional_properties
        if self.required:
            schema["required"] = list(self.required)

        if isinstance(self.items, list):
            schema["items"] = [item.to_schema() for item in self.items]
        elif self.items is not None:
            schema["items"] = self.items.to_schema()

        for keyword, attribute in _SCALAR_KEYWORDS.items():
            value = getattr(self, attribute)
            if value is not None:
                schema[keyword] = value

        if self.enum is not None:
            schema["enum"] = copy.deepcopy(self.enum)
        if self.has_const:
            schema["const"] = copy.deepcopy(self.const)
        if self.all_of:
            schema["allOf"] = [part.to_schema() for part in self.all_of]
        if self.any_of:
            schema["anyOf"] = [part.to_schema() for part in self.any_of]
        if self.examples is not None:
            schema["examples"] = copy.deepcopy(self.examples)

        for key, value in self.extras.items():
            if not key.startswith("$"):
                schema[key] = copy.deepcopy(value)
        return schema

    def clone(self) -> 'ConstraintNode':
        return copy.deepcopy(self)

    # ===================== KIND RESOLUTION =====================

    def effective_types(self) -> List[str]:
        """Declared types, or the types implied by the keywords present"""
        if self.types:
            return [t for t in self.types if t in KNOWN_TYPES]
        if (self.properties or self.pattern_properties or self.required
                or isinstance(self.additional_properties, ConstraintNode)
                or self.min_properties is not None or self.max_properties is not None):
            return ["object"]
        if self.items is not None or self.min_items is not None or self.max_items is not None:
            return ["array"]
        if (self.pattern is not None or self.format is not None
                or self.min_length is not None or self.max_length is not None):
            return ["string"]
        if any(value is not None for value in (self.minimum, self.maximum, self.exclusive_minimum,
                                               self.exclusive_maximum, self.multiple_of)):
            return ["number"]
        values = list(self.enum or [])
        if self.has_const:
            values.append(self.const)
        kinds = []
        for value in values:
            kind = kind_of_value(value)
            if kind not in kinds:
                kinds.append(kind)
        return kinds

    def primary_kind(self) -> Optional[NodeKind]:
        """The kind a generator should produce: first non-null effective type"""
        types = self.effective_types()
        for type_name in types:
            if type_name != "null":
                return NodeKind(type_name)
        return NodeKind.NULL if types else None

    def is_integer_only(self) -> bool:
        types = self.effective_types()
        return "integer" in types and "number" not in types

    def has_value_constraint(self) -> bool:
        return self.enum is not None or self.has_const

    # ===================== NAVIGATION =====================

    def resolve_property(self, key: str) -> Optional['ConstraintNode']:
        """Schema for an object key: properties, then first matching patternProperties, then additionalProperties"""
        if key in self.properties:
            return self.properties[key]
        for pattern, node in self.pattern_properties.items():
            try:
                if re.search(pattern, key):
                    return node
            except re.error:
                continue
        if isinstance(self.additional_properties, ConstraintNode):
            return self.additional_properties
        return None

    def property_constraints(self, key: str) -> Optional['ConstraintNode']:
        """Every schema that applies to an object key, intersected into one node"""
        matches = []
        if key in self.properties:
            matches.append(self.properties[key])
        for pattern, node in self.pattern_properties.items():
            try:
                if re.search(pattern, key):
                    matches.append(node)
            except re.error:
                continue
        if not matches:
            return self.additional_properties if isinstance(self.additional_properties, ConstraintNode) else None
        combined = matches[0]
        for node in matches[1:]:
            combined = intersect(combined, node)
        return combined

    def item_node(self, index: int) -> Optional['ConstraintNode']:
        if isinstance(self.items, list):
            if not self.items:
                return None
            return self.items[index] if index < len(self.items) else self.items[-1]
        return self.items

    # ===================== BOUNDS =====================

    def numeric_bounds(self, integer: bool = False) -> Tuple[Optional[float], Optional[float]]:
        """Inclusive [low, high] after folding exclusive bounds in; inverted ranges collapse to the midpoint"""
        low, high = self.minimum, self.maximum

        if isinstance(self.exclusive_minimum, bool):
            if self.exclusive_minimum and low is not None:
                low = _step_above(low, integer)
        elif self.exclusive_minimum is not None:
            low = _max_opt(low, _step_above(self.exclusive_minimum, integer))

        if isinstance(self.exclusive_maximum, bool):
            if self.exclusive_maximum and high is not None:
                high = _step_below(high, integer)
        elif self.exclusive_maximum is not None:
            high = _min_opt(high, _step_below(self.exclusive_maximum, integer))

        if integer:
            low = math.ceil(low) if low is not None else None
            high = math.floor(high) if high is not None else None

        if low is not None and high is not None and low > high:
            midpoint = (low + high) / 2
            if integer:
                midpoint = math.floor(midpoint)
            low = high = midpoint
        return low, high

    # ===================== INTERSECTION / HEALING =====================

    def resolved(self) -> 'ConstraintNode':
        """Fold allOf parts into a single node"""
        if not self.all_of:
            return self
        base = copy.deepcopy(self)
        parts = base.all_of
        base.all_of = []
        for part in parts:
            base = intersect(base, part.resolved())
        return base

    def normalized(self, logger: logging.Logger = None) -> 'ConstraintNode':
        """Deep copy with unsatisfiable ranges collapsed to their midpoint"""
        logger = logger or logging.getLogger(__name__)
        healed = copy.deepcopy(self)
        _heal(healed, "#", logger)
        return healed

    def children(self) -> List[Tuple[str, 'ConstraintNode']]:
        """Direct child nodes paired with their JSON pointer suffix"""
        result = []
        for key, node in self.properties.items():
            result.append((f"/properties/{key}", node))
        for key, node in self.pattern_properties.items():
            result.append((f"/patternProperties/{key}", node))
        if isinstance(self.additional_properties, ConstraintNode):
            result.append(("/additionalProperties", self.additional_properties))
        if isinstance(self.items, list):
            result.extend((f"/items/{index}", node) for index, node in enumerate(self.items))
        elif self.items is not None:
            result.append(("/items", self.items))
        result.extend((f"/allOf/{index}", node) for index, node in enumerate(self.all_of))
        result.extend((f"/anyOf/{index}", node) for index, node in enumerate(self.any_of))
        return result


def _intersect_types(a: List[str], b: List[str]) -> List[str]:
    if not a:
        return list(b)
    if not b:
        return list(a)
    shared = []
    for type_name in a:
        if type_name in b:
            candidate = type_name
        elif type_name in NUMERIC_TYPES and any(t in NUMERIC_TYPES for t in b):
            candidate = "integer"
        else:
            continue
        if candidate not in shared:
            shared.append(candidate)
    return shared or list(a)


def intersect(a: ConstraintNode, b: ConstraintNode) -> ConstraintNode:
    """Combine two nodes so the result satisfies both, as far as the supported subset allows"""
    result = copy.deepcopy(a)
    other = copy.deepcopy(b)

    result.types = _intersect_types(a.types, b.types)

    for key, node in other.properties.items():
        result.properties[key] = intersect(result.properties[key], node) if key in result.properties else node
    for key, node in other.pattern_properties.items():
        result.pattern_properties.setdefault(key, node)

    if result.additional_properties is False or other.additional_properties is False:
        result.additional_properties = False
    else:
        result.additional_properties = _first(result.additional_properties, other.additional_properties)

    if other.required is not None:
        merged = list(result.required or [])
        merged.extend(name for name in other.required if name not in merged)
        result.required = merged

    if isinstance(result.items, ConstraintNode) and isinstance(other.items, ConstraintNode):
        result.items = intersect(result.items, other.items)
    else:
        result.items = _first(result.items, other.items)

    result.min_items = _max_opt(a.min_items, b.min_items)
    result.max_items = _min_opt(a.max_items, b.max_items)
    result.unique_items = _first(a.unique_items, b.unique_items)
    result.min_properties = _max_opt(a.min_properties, b.min_properties)
    result.max_properties = _min_opt(a.max_properties, b.max_properties)
    result.min_length = _max_opt(a.min_length, b.min_length)
    result.max_length = _min_opt(a.max_length, b.max_length)
    result.pattern = _first(a.pattern, b.pattern)
    result.format = _first(a.format, b.format)
    result.minimum = _max_opt(a.minimum, b.minimum)
    result.maximum = _min_opt(a.maximum, b.maximum)

    if isinstance(a.exclusive_minimum, bool) or isinstance(b.exclusive_minimum, bool):
        result.exclusive_minimum = _first(a.exclusive_minimum, b.exclusive_minimum)
    else:
        result.exclusive_minimum = _max_opt(a.exclusive_minimum, b.exclusive_minimum)
    if isinstance(a.exclusive_maximum, bool) or isinstance(b.exclusive_maximum, bool):
        result.exclusive_maximum = _first(a.exclusive_maximum, b.exclusive_maximum)
    else:
        result.exclusive_maximum = _min_opt(a.exclusive_maximum, b.exclusive_maximum)
    result.multiple_of = _first(a.multiple_of, b.multiple_of)

    if a.enum is not None and b.enum is not None:
        shared = [value for value in a.enum if value in b.enum]
        result.enum = shared or copy.deepcopy(a.enum)
    else:
        result.enum = copy.deepcopy(_first(a.enum, b.enum))
    if not a.has_const and b.has_const:
        result.const = other.const
        result.has_const = True

    result.any_of = result.any_of or other.any_of
    result.all_of = result.all_of + other.all_of
    result.examples = _first(result.examples, other.examples)
    for key, value in other.extras.items():
        result.extras.setdefault(key, value)
    return result


def _heal(node: ConstraintNode, pointer: str, logger: logging.Logger):
    if node.minimum is not None and node.maximum is not None and node.minimum > node.maximum:
        midpoint = (node.minimum + node.maximum) / 2
        if node.is_integer_only():
            midpoint = math.floor(midpoint)
        logger.warning(f"⚠️ {pointer}: minimum {node.minimum} > maximum {node.maximum}, "
                       f"collapsing both to midpoint {midpoint}")
        node.minimum = node.maximum = midpoint

    for low_attr, high_attr in (("min_length", "max_length"), ("min_items", "max_items"),
                                ("min_properties", "max_properties")):
        low, high = getattr(node, low_attr), getattr(node, high_attr)
        if low is not None and high is not None and low > high:
            midpoint = (low + high) // 2
            logger.warning(f"⚠️ {pointer}: {low_attr} {low} > {high_attr} {high}, "
                           f"collapsing both to midpoint {midpoint}")
            setattr(node, low_attr, midpoint)
            setattr(node, high_attr, midpoint)

    for suffix, child in node.children():
        _heal(child, pointer + suffix, logger)
