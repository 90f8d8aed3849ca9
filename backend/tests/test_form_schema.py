import json
import unittest

from tenantforms.schemas.form import FIELD_TYPES, FormDefinition, FormField, FormMetadata
from tenantforms.services import form_schema


class FormSchemaTests(unittest.TestCase):
    def test_empty_source_gets_defaults(self):
        definition = form_schema.from_db({})
        self.assertEqual(definition.fields, [])
        self.assertEqual(len(definition.steps), 1)
        self.assertEqual(definition.steps[0].id, "step-1")
        self.assertTrue(definition.settings.require_login)
        self.assertEqual(definition.theme.primary_color, "#1e293b")
        self.assertEqual(definition.access_control.visibility, "public")
        self.assertEqual(definition.metadata.total_steps, 1)

    def test_json_text_is_decoded(self):
        stored = {
            "fields": json.dumps([{"id": "q1", "type": "rating", "label": "Score", "max_rating": 10}]),
            "settings": json.dumps({"allow_multiple_submissions": True}),
            "metadata": json.dumps({"response_count": 4}),
        }
        definition = form_schema.from_db(stored)
        self.assertEqual(definition.fields[0].model_extra["max_rating"], 10)
        self.assertTrue(definition.settings.allow_multiple_submissions)
        self.assertEqual(definition.metadata.response_count, 4)

    def test_unparseable_json_is_treated_as_missing(self):
        definition = form_schema.from_db({"fields": "{not json", "metadata": "[]"})
        self.assertEqual(definition.fields, [])
        self.assertEqual(definition.metadata.total_fields, 0)

    def test_type_specific_properties_survive_a_save(self):
        field = FormField.model_validate({
            "id": "price",
            "type": "currency",
            "label": "Budget",
            "currency_symbol": "€",
            "options": None,
        })
        encoded = form_schema.to_db(FormDefinition(fields=[field]))
        self.assertEqual(encoded["fields"][0]["currency_symbol"], "€")
        self.assertIn("form_metadata", encoded)

        decoded = form_schema.from_db(encoded)
        self.assertEqual(decoded.fields[0].model_extra["currency_symbol"], "€")

    def test_compute_metadata_keeps_response_counts(self):
        existing = FormMetadata(response_count=12, total_fields=1)
        fields = [form_schema.create_default_field("short_text", 0), form_schema.create_default_field("email", 1)]
        metadata = form_schema.compute_metadata(fields, [], existing)
        self.assertEqual(metadata.total_fields, 2)
        self.assertEqual(metadata.total_steps, 1)
        self.assertEqual(metadata.response_count, 12)
        self.assertEqual(existing.total_fields, 1)

    def test_default_fields(self):
        dropdown = form_schema.create_default_field("dropdown", 3)
        self.assertEqual(dropdown.label, "Dropdown Field")
        self.assertEqual(dropdown.order, 3)
        self.assertEqual([o.value for o in dropdown.options], ["option_1", "option_2"])
        self.assertTrue(dropdown.id.startswith("field-"))

        rating = form_schema.create_default_field("rating", 0)
        self.assertEqual(rating.model_extra["max_rating"], 5)

        multi = form_schema.create_default_field("multi_select", 0)
        self.assertTrue(multi.model_extra["multiple_select"])

        self.assertNotEqual(
            form_schema.create_default_field("short_text", 0).id,
            form_schema.create_default_field("short_text", 0).id,
        )

    def test_every_type_has_a_default(self):
        for field_type in FIELD_TYPES:
            field = form_schema.create_default_field(field_type, 0)
            self.assertEqual(field.type, field_type)
        self.assertFalse(form_schema.create_default_field("divider", 0).is_input)

    def test_type_label(self):
        self.assertEqual(form_schema.type_label("multi_select"), "Multi Select")


if __name__ == "__main__":
    unittest.main()
