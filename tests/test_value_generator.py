import re
import uuid
import logging
import unittest
from datetime import date

from jsonschema import Draft201909Validator

from constraint_manager.constraint_model import ConstraintNode
from data_generator.backend import FakeDataBackend
from data_generator.value_generator import ValueGenerator


class TestValueGenerator(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("test.value_generator")
        self.generator = ValueGenerator(FakeDataBackend("en_GB", seed=42), self.logger)

    def _draw(self, schema, times=30, name=None):
        node = ConstraintNode.from_schema(schema)
        return [self.generator.generate(node, name) for _ in range(times)]

    def _assert_all_valid(self, schema, values):
        validator = Draft201909Validator(schema, format_checker=Draft201909Validator.FORMAT_CHECKER)
        for value in values:
            self.assertTrue(validator.is_valid(value), f"{value!r} does not satisfy {schema}")

    def test_integer_bounds(self):
        values = self._draw({"type": "integer", "minimum": 5, "maximum": 9})
        for value in values:
            self.assertIsInstance(value, int)
            self.assertTrue(5 <= value <= 9)

    def test_exclusive_number_bounds(self):
        schema = {"type": "number", "exclusiveMinimum": 0, "exclusiveMaximum": 1}
        self._assert_all_valid(schema, self._draw(schema))

    def test_multiple_of(self):
        for schema in ({"type": "integer", "minimum": 1, "maximum": 50, "multipleOf": 5},
                       {"type": "number", "minimum": 0, "maximum": 10, "multipleOf": 0.5}):
            self._assert_all_valid(schema, self._draw(schema))

    def test_string_lengths(self):
        for value in self._draw({"type": "string", "minLength": 3, "maxLength": 5}):
            self.assertTrue(3 <= len(value) <= 5)

    def test_formats(self):
        for value in self._draw({"type": "string", "format": "email"}, times=5):
            self.assertIn("@", value)
        for value in self._draw({"type": "string", "format": "date"}, times=5):
            date.fromisoformat(value)
        for value in self._draw({"type": "string", "format": "uuid"}, times=5):
            uuid.UUID(value)

    def test_pattern(self):
        for value in self._draw({"type": "string", "pattern": "^SKU-[0-9]{5}$", "maxLength": 9}):
            self.assertRegex(value, r"^SKU-[0-9]{5}$")

    def test_enum_and_const(self):
        for value in self._draw({"enum": ["red", "green", 3]}):
            self.assertIn(value, ["red", "green", 3])
        self.assertEqual(self._draw({"const": {"a": 1}}, times=1), [{"a": 1}])

    def test_examples_are_used_only_when_valid(self):
        self.assertEqual(set(self._draw({"type": "string", "examples": ["alpha"]}, times=5)), {"alpha"})
        for value in self._draw({"type": "string", "maxLength": 3, "examples": ["far too long"]}):
            self.assertLessEqual(len(value), 3)

    def test_arrays(self):
        schema = {"type": "array", "minItems": 2, "maxItems": 4, "uniqueItems": True,
                  "items": {"type": "integer", "minimum": 0, "maximum": 1000}}
        values = self._draw(schema)
        self._assert_all_valid(schema, values)

    def test_objects(self):
        schema = {
            "type": "object",
            "properties": {
                "id": {"type": "integer", "minimum": 1},
                "email": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string", "maxLength": 8}},
            },
            "required": ["id", "email", "nickname"],
            "additionalProperties": False,
        }
        schema["properties"]["nickname"] = {"type": "string", "minLength": 2}
        values = self._draw(schema)
        self._assert_all_valid(schema, values)
        for value in values:
            self.assertIn("@", value["email"])

    def test_min_properties_from_pattern_properties(self):
        schema = {"type": "object", "patternProperties": {"^x_[a-z]{3}$": {"type": "integer"}},
                  "minProperties": 2, "additionalProperties": False}
        values = self._draw(schema, times=10)
        self._assert_all_valid(schema, values)

    def test_dependent_required(self):
        schema = {"type": "object", "properties": {"card": {"type": "string"}},
                  "dependentRequired": {"card": ["billing"]}}
        for value in self._draw(schema, times=5):
            self.assertIn("billing", value)

    def test_any_of_and_all_of(self):
        any_of = {"anyOf": [{"type": "integer", "minimum": 0, "maximum": 5}, {"type": "string", "maxLength": 4}]}
        self._assert_all_valid(any_of, self._draw(any_of))
        all_of = {"allOf": [{"type": "integer", "minimum": 10}, {"maximum": 12}]}
        self._assert_all_valid(all_of, self._draw(all_of))

    def test_nullable_types_prefer_values(self):
        for value in self._draw({"type": ["null", "integer"]}):
            self.assertIsInstance(value, int)

    def test_same_seed_same_values(self):
        other = ValueGenerator(FakeDataBackend("en_GB", seed=42), self.logger)
        node = ConstraintNode.from_schema({"type": "object", "properties": {
            "name": {"type": "string"}, "score": {"type": "number"}, "code": {"type": "string", "format": "uuid"},
        }})
        self.assertEqual([self.generator.generate(node) for _ in range(5)],
                         [other.generate(node) for _ in range(5)])

    def test_name_hints(self):
        for value in self._draw({"type": "string"}, times=5, name="contactEmail"):
            self.assertTrue(re.search("@", value))


if __name__ == '__main__':
    unittest.main()
