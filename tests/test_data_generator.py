import math
import logging
import unittest

from config_manager.config_manager import GenerationConfig
from config_manager.readers import SchemaReader
from constraint_manager.constraint_model import ConstraintNode
from data_generator.data_generator import DataGenerator, edge_case_target
from data_generator.edge_case_generator import EdgeCaseGenerator
from validators.record_validator import RecordValidator


USERS_TABLE = """CREATE TABLE users (
    id INT PRIMARY KEY,
    name VARCHAR(50) NOT NULL,
    age INT CHECK (age >= 18),
    status VARCHAR(10) CHECK (status IN ('active', 'inactive'))
)"""

ORDER_SCHEMA = {
    "type": "object",
    "properties": {
        "orderId": {"type": "string", "format": "uuid"},
        "total": {"type": "number", "minimum": 0, "maximum": 500},
        "quantity": {"type": "integer", "minimum": 1, "maximum": 20},
        "placedAt": {"type": "string", "format": "date-time"},
        "lines": {
            "type": "array", "minItems": 1, "maxItems": 3,
            "items": {
                "type": "object",
                "properties": {
                    "sku": {"type": "string", "pattern": "^SKU-[0-9]{5}$", "maxLength": 9},
                    "percent": {"type": "number", "exclusiveMaximum": 100},
                },
                "required": ["sku"],
            },
        },
        "status": {"enum": ["new", "paid", "shipped"]},
        "notes": {"type": ["string", "null"], "maxLength": 40},
    },
    "required": ["orderId", "total", "lines"],
    "additionalProperties": False,
}


class TestEdgeCaseTarget(unittest.TestCase):
    def test_rounding(self):
        self.assertEqual(edge_case_target(10, 0), 0)
        self.assertEqual(edge_case_target(10, 25), 3)
        self.assertEqual(edge_case_target(7, 50), 4)
        self.assertEqual(edge_case_target(3, 100), 3)
        self.assertEqual(edge_case_target(4, 10), 0)

    def test_ratio_is_clamped(self):
        self.assertEqual(edge_case_target(10, 150), 10)
        self.assertEqual(edge_case_target(10, -5), 0)


class TestEdgeCaseGenerator(unittest.TestCase):
    def setUp(self):
        self.generator = EdgeCaseGenerator(logging.getLogger("test.edge_cases"))

    def _value(self, schema):
        return self.generator.value(ConstraintNode.from_schema(schema))

    def test_string_edges(self):
        self.assertEqual(self._value({"type": "string", "minLength": 3, "maxLength": 5}), "aa")
        self.assertEqual(self._value({"type": "string", "maxLength": 5}), "aaaaaa")
        self.assertEqual(self._value({"type": "string", "enum": ["a"]}), "unexpected-value")
        self.assertEqual(self._value({"type": "string", "pattern": "^x$"}), "pattern-mismatch")
        self.assertEqual(self._value({"type": "string"}), "")

    def test_numeric_edges(self):
        self.assertEqual(self._value({"type": "integer", "minimum": 18, "maximum": 99}), 17)
        self.assertEqual(self._value({"type": "number", "exclusiveMinimum": 0}), 0)
        self.assertEqual(self._value({"type": "integer", "maximum": 100}), 101)
        self.assertEqual(self._value({"type": "number", "exclusiveMaximum": 1}), 1)
        self.assertTrue(math.isnan(self._value({"type": "number"})))

    def test_other_kinds(self):
        self.assertIsNone(self._value({"type": "boolean"}))
        self.assertIsNone(self._value({"type": "null"}))
        self.assertEqual(self._value({"type": "array", "minItems": 2}), [])
        self.assertEqual(self._value({"type": "array"}), [{}])
        self.assertEqual(self._value({"type": "object", "properties": {"n": {"maximum": 3}}}), {"n": 4})

    def test_record_shapes(self):
        array_root = ConstraintNode.from_schema({"type": "array", "items": {"type": "integer", "minimum": 5}})
        self.assertEqual(self.generator.record(array_root), [4])
        scalar_root = ConstraintNode.from_schema({"type": "string", "minLength": 2})
        self.assertEqual(self.generator.record(scalar_root), "a")


class TestDataGenerator(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("test.data_generator")
        self.config = GenerationConfig(seed=1234)
        self.generator = DataGenerator(self.config, self.logger)
        self.validator = RecordValidator(self.logger)
        self.reader = SchemaReader(logger=self.logger)

    def test_exact_record_count(self):
        model = ConstraintNode.from_schema(ORDER_SCHEMA)
        for count in (1, 7, 20):
            for ratio in (0, 33, 50, 100):
                self.assertEqual(len(self.generator.generate(model, count, ratio)), count)

    def test_no_records_for_non_positive_count(self):
        self.assertEqual(self.generator.generate(ConstraintNode.from_schema(ORDER_SCHEMA), 0), [])

    def test_ratio_zero_yields_no_issues(self):
        models = [
            ConstraintNode.from_schema(ORDER_SCHEMA),
            self.reader.read("create_table", USERS_TABLE).model,
            self.reader.read("sample", '[{"id": 1, "name": "Ada", "email": "ada@example.com"}]').model,
            self.reader.read("manual", [
                {"name": "code", "type": "string", "pattern": "^[A-Z]{2}[0-9]{2}$", "required": True},
                {"name": "age", "type": "integer", "minimum": 21, "maximum": 30},
                {"name": "joined", "type": "date"},
            ]).model,
        ]
        for model in models:
            records = self.generator.generate(model, 25, 0)
            self.assertEqual(self.validator.validate(model, records), [])

    def test_ratio_zero_with_formats_patterns_and_key_patterns(self):
        schemas = [
            self.reader.read("create_table",
                             "CREATE TABLE shifts (starts_at TIME NOT NULL, ends_on DATE, logged TIMESTAMP)").model,
            ConstraintNode.from_schema({
                "type": "object",
                "properties": {
                    "issued": {"type": "string", "format": "date", "pattern": "^20"},
                    "contact": {"type": "string", "pattern": r"^[a-z]+@[a-z]+\.com$"},
                    "code": {"type": "string", "pattern": "^[A-Z]+$", "minLength": 20},
                    "age": {"type": "number", "minimum": 0.5, "maximum": 0.7},
                },
                "required": ["issued", "contact", "code", "age"],
            }),
            ConstraintNode.from_schema({
                "type": "object",
                "patternProperties": {"^x_": {"type": "integer"}},
                "minProperties": 2,
                "additionalProperties": False,
            }),
        ]
        for model in schemas:
            records = self.generator.generate(model, 25, 0)
            self.assertEqual(self.validator.validate(model, records), [])

    def test_fractional_age_range_is_respected(self):
        model = ConstraintNode.from_schema({
            "type": "object",
            "properties": {"age": {"type": "number", "minimum": 0.5, "maximum": 0.7}},
            "required": ["age"],
        })
        for record in self.generator.generate(model, 20):
            self.assertGreaterEqual(record["age"], 0.5)
            self.assertLessEqual(record["age"], 0.7)

    def test_single_key_pattern_reaches_min_properties(self):
        model = ConstraintNode.from_schema({
            "type": "object",
            "patternProperties": {"^x_": {"type": "integer"}},
            "minProperties": 3,
            "additionalProperties": False,
        })
        for record in self.generator.generate(model, 10):
            self.assertGreaterEqual(len(record), 3)
            self.assertTrue(all(key.startswith("x_") for key in record))

    def test_sku_pattern_always_matches(self):
        model = self.reader.read("json_schema", {
            "type": "object",
            "properties": {"sku": {"type": "string", "pattern": "^SKU-[0-9]{5}$", "maxLength": 9}},
            "required": ["sku"],
        }).model
        for record in self.generator.generate(model, 50):
            self.assertRegex(record["sku"], r"^SKU-[0-9]{5}$")

    def test_users_table_ages(self):
        model = self.reader.read("create_table", USERS_TABLE).model
        for record in self.generator.generate(model, 30):
            self.assertGreaterEqual(record["age"], 18)
            self.assertIn(record["status"], ["active", "inactive"])

    def test_full_edge_case_ratio_breaks_the_maximum(self):
        model = ConstraintNode.from_schema({"type": "object", "properties": {"score": {"type": "integer", "maximum": 100}}})
        records = self.generator.generate(model, 10, 100)
        for record in records:
            self.assertGreater(record["score"], 100)
        issues = self.validator.validate(model, records)
        self.assertEqual(len({issue.record_number for issue in issues}), 10)
        self.assertTrue(all(issue.keyword == "maximum" for issue in issues))

    def test_edge_cases_are_mixed_in(self):
        model = ConstraintNode.from_schema({"type": "object", "properties": {"score": {"type": "integer", "maximum": 100}}})
        records = self.generator.generate(model, 20, 25)
        self.assertEqual(sum(1 for record in records if record["score"] > 100), 5)

    def test_same_seed_same_records(self):
        schema = dict(ORDER_SCHEMA, properties={key: value for key, value in ORDER_SCHEMA["properties"].items()
                                                if key != "placedAt"})
        model = ConstraintNode.from_schema(schema)
        other = DataGenerator(GenerationConfig(seed=1234), self.logger)
        self.assertEqual(self.generator.generate(model, 5, 40), other.generate(model, 5, 40))

    def test_model_is_not_modified(self):
        model = ConstraintNode.from_schema({"type": "object", "properties": {"n": {"type": "integer", "minimum": 9, "maximum": 1}}})
        before = model.to_schema()
        records = self.generator.generate(model, 5)
        self.assertEqual(model.to_schema(), before)
        for record in records:
            self.assertEqual(record["n"], 5)


if __name__ == '__main__':
    unittest.main()
