import json
import logging
import unittest

from config_manager.readers import SchemaReader, InputMode
from config_manager.readers.json_reader import JSONSchemaReader


PERSON_SCHEMA_TEXT = """{
  "title": "person",
  "type": "object",
  "properties": {
    "age": {
      "type": "integer",
      "minimum": 18
    }
  },
  "required": ["age"]
}"""


class TestJSONSchemaReader(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("test.json_reader")
        self.reader = JSONSchemaReader(self.logger)

    def test_parse_builds_model_and_source_map(self):
        result = self.reader.parse(PERSON_SCHEMA_TEXT)

        self.assertTrue(result.ok)
        self.assertEqual(result.table_name, "person")
        self.assertEqual(result.model.properties["age"].minimum, 18)
        self.assertEqual(result.model.required, ["age"])
        self.assertIn("/properties/age/minimum", result.source_map)
        self.assertEqual(result.source_map.locate("/properties/age/minimum")[0], 7)

    def test_invalid_json_text(self):
        result = self.reader.parse('{"type": ')
        self.assertFalse(result.ok)
        self.assertTrue(result.errors[0].startswith("Invalid JSON Schema:"))

    def test_root_must_be_an_object(self):
        result = self.reader.parse("[1, 2]")
        self.assertEqual(result.errors, ["Invalid JSON Schema: the root must be a JSON object."])

    def test_meta_schema_violations(self):
        result = self.reader.parse(json.dumps({"type": 12}))
        self.assertFalse(result.ok)
        self.assertTrue(result.errors[0].startswith("Invalid JSON Schema:"))

    def test_parse_document_without_text(self):
        result = self.reader.parse_document({"type": "string", "maxLength": 3})
        self.assertTrue(result.ok)
        self.assertIsNone(result.source_map)
        self.assertEqual(result.model.max_length, 3)


class TestSchemaReaderDispatch(unittest.TestCase):
    def setUp(self):
        self.reader = SchemaReader(logger=logging.getLogger("test.schema_reader"))

    def test_each_mode_reaches_its_reader(self):
        self.assertTrue(self.reader.read(InputMode.JSON_SCHEMA, PERSON_SCHEMA_TEXT).ok)
        self.assertTrue(self.reader.read("json_schema", {"type": "integer"}).ok)
        self.assertEqual(self.reader.read("create_table", "CREATE TABLE t (x INT)").table_name, "t")
        self.assertTrue(self.reader.read("manual", [{"name": "x", "type": "string"}]).ok)
        self.assertEqual(self.reader.read("sample", '{"a": 1}').model.types, ["object"])
        self.assertEqual(self.reader.read("sample", [1, 2]).model.types, ["array"])

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            self.reader.read("spreadsheet", "")


if __name__ == '__main__':
    unittest.main()
