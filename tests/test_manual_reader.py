import logging
import unittest

from config_manager.readers.manual_reader import ManualField, ManualSchemaReader, UNNAMED_FIELDS_WARNING


class TestManualSchemaReader(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("test.manual_reader")
        self.reader = ManualSchemaReader(self.logger)

    def test_fields_become_properties_in_order(self):
        result = self.reader.build([
            {"name": "email", "type": "string", "required": True, "pattern": "^.+@.+$"},
            {"name": "age", "type": "integer", "minimum": 18, "maximum": 99},
            {"name": "active", "type": "boolean"},
        ])

        self.assertTrue(result.ok)
        model = result.model
        self.assertEqual(list(model.properties), ["email", "age", "active"])
        self.assertEqual(model.required, ["email"])
        self.assertIs(model.additional_properties, False)
        self.assertEqual(model.properties["email"].pattern, "^.+@.+$")
        self.assertEqual((model.properties["age"].minimum, model.properties["age"].maximum), (18, 99))

    def test_unnamed_fields_are_skipped_with_a_warning(self):
        result = self.reader.build([
            {"name": "", "type": "string"},
            {"name": "  ", "type": "integer"},
            {"name": "code", "type": "string"},
        ])
        self.assertTrue(result.ok)
        self.assertEqual(result.warnings, [UNNAMED_FIELDS_WARNING])
        self.assertEqual(list(result.model.properties), ["code"])

    def test_camel_case_keys_and_enum_values(self):
        result = self.reader.build([
            {"name": "code", "type": "string", "minLength": 2, "maxLength": 4, "enumValues": "AB, CD ,"},
            {"name": "level", "type": "integer", "enumValues": "1,2,3"},
            {"name": "ratio", "type": "number", "enum": [0.5, 2]},
            {"name": "flag", "type": "boolean", "enumValues": "true"},
        ])
        properties = result.model.properties
        self.assertEqual((properties["code"].min_length, properties["code"].max_length), (2, 4))
        self.assertEqual(properties["code"].enum, ["AB", "CD"])
        self.assertEqual(properties["level"].enum, [1, 2, 3])
        self.assertEqual(properties["ratio"].enum, [0.5, 2])
        self.assertEqual(properties["flag"].enum, [True])

    def test_date_fields_are_date_time_strings(self):
        node = self.reader.build([{"name": "joined", "type": "date"}]).model.properties["joined"]
        self.assertEqual(node.types, ["string"])
        self.assertEqual(node.format, "date-time")

    def test_invalid_fields_are_reported(self):
        result = self.reader.build([
            {"name": "a", "type": "decimal"},
            {"name": "b", "type": "string", "pattern": "([a-z"},
            {"name": "c", "type": "integer", "enumValues": "1,x"},
        ])
        self.assertFalse(result.ok)
        self.assertIsNone(result.model)
        self.assertEqual(len(result.errors), 3)
        self.assertTrue(result.errors[0].startswith("Field 'a': unknown type"))
        self.assertTrue(result.errors[1].startswith("Field 'b': invalid pattern"))
        self.assertEqual(result.errors[2], "Field 'c': enum value 'x' is not an integer")

    def test_at_least_one_named_field(self):
        self.assertEqual(self.reader.build([]).errors, ["At least one named field is required."])

        result = self.reader.build([{"name": "", "type": "string"}])
        self.assertEqual(result.errors, ["At least one named field is required."])
        self.assertEqual(result.warnings, [UNNAMED_FIELDS_WARNING])

    def test_building_is_deterministic(self):
        fields = [
            {"name": "code", "type": "string", "pattern": "^[A-Z]{3}$", "required": True},
            {"name": "level", "type": "integer", "minimum": 1, "maximum": 5, "enumValues": "1, 3, 5"},
            {"name": "joined", "type": "date"},
            {"name": "", "type": "string"},
        ]
        first, second = self.reader.build(fields), self.reader.build(fields)
        self.assertEqual(first.model.to_schema(), second.model.to_schema())
        self.assertEqual(first.warnings, second.warnings)

    def test_accepts_manual_field_instances(self):
        result = self.reader.build([ManualField(name="id", type="integer", required=True)])
        self.assertEqual(result.model.required, ["id"])
        self.assertEqual(result.model.properties["id"].types, ["integer"])


if __name__ == '__main__':
    unittest.main()
