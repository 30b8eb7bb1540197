import re
import copy
import json
import math
import logging
from datetime import timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from jsonschema.validators import Draft201909Validator, validator_for

from constraint_manager.constraint_model import ConstraintNode, NodeKind, intersect
from processors.pattern_processor import expand_pattern
from processors.semantic_processor import tokenize_name, random_in_range
from .backend import FakeDataBackend


_MISSING = object()


class ValueGenerator:
    """Schema-conformant base values for constraint nodes, backed by Faker"""

    DEFAULT_SPAN = 1000
    DEFAULT_MAX_ITEMS = 3
    UNIQUE_ATTEMPTS = 10
    FORMAT_ATTEMPTS = 5
    FORMAT_PATTERN_ATTEMPTS = 20
    VALIDATOR_CACHE_LIMIT = 512

    def __init__(self, backend: FakeDataBackend, logger: logging.Logger = None,
                 pattern_max_length: int = 16, pattern_max_attempts: int = 5):
        self.backend = backend
        self.faker = backend.faker
        self.random = backend.random
        self.logger = logger or logging.getLogger(__name__)
        self.pattern_max_length = pattern_max_length
        self.pattern_max_attempts = pattern_max_attempts

        self._example_validators: Dict[int, Tuple[ConstraintNode, Any]] = {}

        self.kind_generators: Dict[NodeKind, Callable[[ConstraintNode, Optional[str]], Any]] = {
            NodeKind.NULL: lambda node, name: None,
            NodeKind.BOOLEAN: lambda node, name: self.random.choice([True, False]),
            NodeKind.INTEGER: self._generate_integer,
            NodeKind.NUMBER: self._generate_number,
            NodeKind.STRING: self._generate_string,
            NodeKind.ARRAY: self._generate_array,
            NodeKind.OBJECT: self._generate_object,
        }

        self.format_generators = {
            "email": lambda: self.faker.email(),
            "idn-email": lambda: self.faker.email(),
            "uri": lambda: self.faker.url(),
            "iri": lambda: self.faker.url(),
            "uri-reference": lambda: self.faker.url(),
            "date": lambda: self.faker.date(),
            "date-time": lambda: self.faker.date_time(tzinfo=timezone.utc).isoformat(),
            "time": lambda: self.faker.time() + "Z",
            "uuid": lambda: self.faker.uuid4(),
            "ipv4": lambda: self.faker.ipv4(),
            "ipv6": lambda: self.faker.ipv6(),
            "hostname": lambda: self.faker.hostname(),
            "regex": lambda: "^[a-z]+$",
            "json-pointer": lambda: "/" + self.faker.word(),
            "duration": lambda: f"P{self.random.randint(1, 30)}D",
        }

        # first matching token set wins
        self.name_hints = [
            ({"email", "mail"}, lambda: self.faker.email()),
            ({"id", "uuid", "guid"}, lambda: self.faker.uuid4()),
            ({"username", "user", "login"}, lambda: self.faker.user_name()),
            ({"first", "firstname", "forename"}, lambda: self.faker.first_name()),
            ({"last", "lastname", "surname"}, lambda: self.faker.last_name()),
            ({"name", "fullname"}, lambda: self.faker.name()),
            ({"phone", "mobile", "tel", "telephone"}, lambda: self.faker.phone_number()),
            ({"city", "town"}, lambda: self.faker.city()),
            ({"country"}, lambda: self.faker.country()),
            ({"address", "street"}, lambda: self.faker.street_address()),
            ({"company", "organisation", "organization", "employer"}, lambda: self.faker.company()),
            ({"url", "website", "homepage", "link"}, lambda: self.faker.url()),
            ({"description", "comment", "comments", "notes", "bio", "summary"}, lambda: self.faker.sentence()),
            ({"title", "subject"}, lambda: self.faker.sentence(nb_words=3).rstrip(".")),
            ({"color", "colour"}, lambda: self.faker.color_name()),
        ]

    # ===================== ENTRY POINT =====================

    def generate(self, node: Optional[ConstraintNode], name: Optional[str] = None) -> Any:
        """One value satisfying node; name is the property the value is generated for"""
        if node is None:
            return self.faker.word()

        node = node.resolved()
        if node.any_of:
            branch = self.random.choice(node.any_of).resolved()
            base = node.clone()
            base.any_of = []
            node = intersect(base, branch)

        if node.has_const:
            return copy.deepcopy(node.const)
        if node.enum:
            return copy.deepcopy(self.random.choice(node.enum))

        example = self._pick_example(node)
        if example is not _MISSING:
            return example

        types = node.effective_types()
        if not types:
            return self.faker.word()
        concrete = [t for t in types if t != "null"] or types
        kind = NodeKind(concrete[0] if len(concrete) == 1 else self.random.choice(concrete))
        return self.kind_generators[kind](node, name)

    # ===================== EXAMPLES =====================

    def _pick_example(self, node: ConstraintNode) -> Any:
        """A random listed example that still satisfies the node"""
        if not node.examples:
            return _MISSING
        fitting = [example for example in node.examples if self._satisfies(node, example)]
        if not fitting:
            return _MISSING
        return copy.deepcopy(self.random.choice(fitting))

    def _satisfies(self, node: ConstraintNode, value: Any) -> bool:
        cached = self._example_validators.get(id(node))
        if cached is None or cached[0] is not node:
            if len(self._example_validators) >= self.VALIDATOR_CACHE_LIMIT:
                self._example_validators.clear()
            schema = node.to_schema()
            validator_class = validator_for(schema, default=Draft201909Validator)
            cached = (node, validator_class(schema, format_checker=validator_class.FORMAT_CHECKER))
            self._example_validators[id(node)] = cached
        return cached[1].is_valid(value)

    # ===================== NUMBERS =====================

    def _complete_range(self, low: Optional[float], high: Optional[float]) -> Tuple[float, float]:
        if low is None and high is None:
            return 0, self.DEFAULT_SPAN
        if low is None:
            return high - self.DEFAULT_SPAN, high
        if high is None:
            return low, low + self.DEFAULT_SPAN
        return low, high

    def _generate_integer(self, node: ConstraintNode, name: Optional[str]) -> int:
        low, high = self._complete_range(*node.numeric_bounds(integer=True))
        if node.multiple_of:
            return self._pick_multiple(low, high, node.multiple_of, integer=True)
        return random_in_range(self.random, low, high, integer=True)

    def _generate_number(self, node: ConstraintNode, name: Optional[str]) -> float:
        low, high = self._complete_range(*node.numeric_bounds(integer=False))
        if node.multiple_of:
            return self._pick_multiple(low, high, node.multiple_of, integer=False)
        return random_in_range(self.random, low, high, integer=False, decimals=2)

    @staticmethod
    def _is_multiple(value: float, factor: float) -> bool:
        # mirrors how jsonschema checks multipleOf for float and int factors
        if isinstance(factor, float):
            quotient = value / factor
            return int(quotient) == quotient
        return value % factor == 0

    @staticmethod
    def _decimals(factor: float) -> int:
        text = repr(float(factor))
        if "e" in text or "." not in text:
            return 10
        return len(text.split(".")[1])

    def _pick_multiple(self, low: float, high: float, factor: float, integer: bool) -> float:
        k_low, k_high = math.ceil(low / factor), math.floor(high / factor)
        if k_low > k_high:
            self.logger.debug(f"No multiple of {factor} in [{low}, {high}], using {low}")
            return int(low) if integer else low

        decimals = self._decimals(factor)
        for _ in range(20):
            k = self.random.randint(k_low, k_high)
            for candidate in (round(k * factor, decimals), k * factor):
                if integer and not float(candidate).is_integer():
                    continue
                if integer:
                    candidate = int(candidate)
                if low <= candidate <= high and self._is_multiple(candidate, factor):
                    return candidate
        fallback = k_low * factor
        return int(fallback) if integer and float(fallback).is_integer() else fallback

    # ===================== STRINGS =====================

    def _generate_string(self, node: ConstraintNode, name: Optional[str]) -> str:
        min_length, max_length = node.min_length or 0, node.max_length

        format_generator = self.format_generators.get(node.format) if node.format else None
        if format_generator is not None:
            matcher = self._compile(node.pattern)
            attempts = self.FORMAT_PATTERN_ATTEMPTS if matcher else self.FORMAT_ATTEMPTS
            value = format_generator()
            for _ in range(attempts):
                fits = min_length <= len(value) and (max_length is None or len(value) <= max_length)
                if fits and (matcher is None or matcher.search(value)):
                    return value
                value = format_generator()
            if matcher is None:
                return self._fit_length(value, min_length, max_length)
            self.logger.debug(f"No {node.format} value matched '{node.pattern}', expanding the pattern")

        if node.pattern:
            expanded = expand_pattern(node.pattern, self.random, node.min_length, node.max_length,
                                      self.pattern_max_attempts, self.pattern_max_length)
            if expanded is not None:
                return expanded

        value = self._hinted_string(name) if name else None
        if value is None:
            value = self.faker.word()
        return self._fit_length(value, min_length, max_length)

    @staticmethod
    def _compile(pattern: Optional[str]):
        if not pattern:
            return None
        try:
            return re.compile(pattern)
        except re.error:
            return None

    def _hinted_string(self, name: str) -> Optional[str]:
        tokens = set(tokenize_name(name))
        for hint_tokens, generator in self.name_hints:
            if tokens & hint_tokens:
                return generator()
        return None

    def _fit_length(self, value: str, min_length: int, max_length: Optional[int]) -> str:
        if len(value) < min_length:
            value += self.faker.lexify("?" * (min_length - len(value)))
        if max_length is not None and len(value) > max_length:
            value = value[:max_length]
        return value

    # ===================== ARRAYS =====================

    def _generate_array(self, node: ConstraintNode, name: Optional[str]) -> List[Any]:
        upper = node.max_items
        lower = node.min_items if node.min_items is not None else (0 if upper == 0 else 1)
        if upper is None:
            upper = max(lower, self.DEFAULT_MAX_ITEMS)
        count = self.random.randint(lower, max(lower, upper))

        items = []
        seen = set()
        for index in range(count):
            item_node = node.item_node(index)
            value = self.generate(item_node, name)
            if node.unique_items:
                fingerprint = self._fingerprint(value)
                attempts = 0
                while fingerprint in seen and attempts < self.UNIQUE_ATTEMPTS:
                    value = self.generate(item_node, name)
                    fingerprint = self._fingerprint(value)
                    attempts += 1
                if fingerprint in seen:
                    continue
                seen.add(fingerprint)
            items.append(value)
        return items

    @staticmethod
    def _fingerprint(value: Any) -> str:
        return json.dumps(value, sort_keys=True, default=str)

    # ===================== OBJECTS =====================

    def _generate_object(self, node: ConstraintNode, name: Optional[str]) -> Dict[str, Any]:
        result = {}
        for key in node.properties:
            result[key] = self.generate(node.property_constraints(key), key)
        for key in node.required or []:
            if key not in result:
                result[key] = self.generate(node.property_constraints(key), key)

        for keyword in ("dependentRequired", "dependencies"):
            dependencies = node.extras.get(keyword)
            if not isinstance(dependencies, dict):
                continue
            for key, dependents in dependencies.items():
                if key in result and isinstance(dependents, list):
                    for dependent in dependents:
                        if dependent not in result:
                            result[dependent] = self.generate(node.property_constraints(dependent), dependent)

        if node.min_properties:
            attempts = 0
            while len(result) < node.min_properties and attempts < 50:
                attempts += 1
                key = self._extra_key(node, result)
                if key is None:
                    if not node.pattern_properties:
                        break
                    continue
                if key not in result:
                    result[key] = self.generate(node.property_constraints(key), key)

        if node.max_properties is not None and len(result) > node.max_properties:
            required = set(node.required or [])
            for key in reversed(list(result)):
                if len(result) <= node.max_properties:
                    break
                if key not in required:
                    del result[key]
        return result

    def _extra_key(self, node: ConstraintNode, existing: Dict[str, Any]) -> Optional[str]:
        """A key not yet in existing, drawn from patternProperties first, else a free word when allowed"""
        if node.pattern_properties:
            pattern = self.random.choice(list(node.pattern_properties))
            key = expand_pattern(pattern, self.random, 1, None, self.pattern_max_attempts, self.pattern_max_length)
            if key is not None and key not in existing:
                return key
            matcher = self._compile(pattern)
            if key is not None and matcher is not None:
                # literal patterns expand to one key; suffixes keep unanchored ones matching
                varied = key + self.faker.lexify("????").lower()
                if varied not in existing and matcher.search(varied):
                    return varied
        if node.additional_properties is False:
            return None
        return self.faker.word()
