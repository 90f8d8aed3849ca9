import unittest

from tests.base import ApiTestCase, SAMPLE_FIELDS
from tenantforms.models.audit import AuditEvent
from tenantforms.models.company import CompanyStatus
from tenantforms.models.form import Form, FormStatus, FormSubmission
from tenantforms.models.user import MemberRole


class FormsApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.company = self.create_owner_with_company()
        self.editor = self.add_member(self.company, MemberRole.EDITOR, "editor@acme.io")
        self.viewer = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        self.base = f"/api/org/{self.company.id}/forms"

    def create(self, user=None, **overrides):
        payload = {"name": "Event Signup", "description": "Summer party", "fields": SAMPLE_FIELDS}
        payload.update(overrides)
        return self.client.post(self.base, json=payload, headers=self.auth(user or self.editor))

    def test_create_form(self):
        response = self.create()
        self.assertEqual(response.status_code, 200, response.text)
        form = response.json()
        self.assertEqual(form["status"], "draft")
        self.assertEqual(form["version"], 1)
        self.assertEqual(len(form["fields"]), 4)
        self.assertEqual(form["steps"][0]["id"], "step-1")
        self.assertEqual(form["metadata"]["total_fields"], 4)
        self.assertEqual(form["created_by_id"], self.editor.id)
        self.assertTrue(form["settings"]["require_login"])

    def test_viewer_cannot_create(self):
        response = self.create(user=self.viewer)
        self.assertEqual(response.status_code, 403)

    def test_company_must_be_active(self):
        owner, pending = self.create_owner_with_company("boss@pending.io", status=CompanyStatus.PENDING)
        response = self.client.post(
            f"/api/org/{pending.id}/forms",
            json={"name": "Too early"},
            headers=self.auth(owner),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Your company must be active to create forms")

    def test_list_and_filter(self):
        self.create(name="First")
        second = self.create(name="Second").json()
        self.client.post(f"{self.base}/{second['id']}/publish", headers=self.auth(self.editor))

        response = self.client.get(self.base, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)

        response = self.client.get(self.base, params={"status": "published"}, headers=self.auth(self.viewer))
        self.assertEqual([f["name"] for f in response.json()], ["Second"])

    def test_forms_are_scoped_to_company(self):
        form_id = self.create().json()["id"]
        other_owner, other = self.create_owner_with_company("boss@globex.io", name="Globex")

        response = self.client.get(f"/api/org/{other.id}/forms/{form_id}", headers=self.auth(other_owner))
        self.assertEqual(response.status_code, 404)

        response = self.client.get(f"{self.base}/{form_id}", headers=self.auth(other_owner))
        self.assertEqual(response.status_code, 403)

    def test_update_keeps_untouched_parts(self):
        form_id = self.create(theme={"primary_color": "#ff0000"}).json()["id"]
        response = self.client.put(
            f"{self.base}/{form_id}",
            json={
                "name": "Renamed",
                "fields": SAMPLE_FIELDS[:2],
                "settings": {"require_login": False, "allow_multiple_submissions": True},
            },
            headers=self.auth(self.editor),
        )
        self.assertEqual(response.status_code, 200, response.text)
        form = response.json()
        self.assertEqual(form["name"], "Renamed")
        self.assertEqual(len(form["fields"]), 2)
        self.assertEqual(form["metadata"]["total_fields"], 2)
        self.assertFalse(form["settings"]["require_login"])
        self.assertEqual(form["theme"]["primary_color"], "#ff0000")
        self.assertEqual(form["description"], "Summer party")

    def test_publish_check_and_publish(self):
        form_id = self.create(fields=[]).json()["id"]

        response = self.client.get(f"{self.base}/{form_id}/publish-check", headers=self.auth(self.viewer))
        self.assertEqual(response.json(), {"is_valid": False, "errors": ["Form must have at least one field"]})

        response = self.client.post(f"{self.base}/{form_id}/publish", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Form must have at least one field")

        self.client.put(f"{self.base}/{form_id}", json={"fields": SAMPLE_FIELDS}, headers=self.auth(self.editor))
        response = self.client.post(f"{self.base}/{form_id}/publish", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 200)
        form = response.json()
        self.assertEqual(form["status"], "published")
        self.assertEqual(form["version"], 1)
        self.assertIsNotNone(form["published_at"])

        response = self.client.post(f"{self.base}/{form_id}/publish", headers=self.auth(self.editor))
        self.assertEqual(response.json()["version"], 2)

    def test_archive(self):
        form_id = self.create().json()["id"]
        response = self.client.post(f"{self.base}/{form_id}/archive", headers=self.auth(self.editor))
        self.assertEqual(response.json()["status"], "archived")

        response = self.client.post(f"{self.base}/{form_id}/archive", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Form is already archived")

    def test_clone(self):
        form = self.create_form(self.company, self.owner, name="Feedback")
        self.create_submission(form, {"full_name": "Ada"})

        response = self.client.post(f"{self.base}/{form.id}/clone", json={}, headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 200)
        clone = response.json()
        self.assertEqual(clone["name"], "Feedback (Copy)")
        self.assertEqual(clone["status"], "draft")
        self.assertEqual(clone["version"], 1)
        self.assertEqual(clone["metadata"]["response_count"], 0)
        self.assertEqual([f["id"] for f in clone["fields"]], [f["id"] for f in SAMPLE_FIELDS])

        response = self.client.post(
            f"{self.base}/{form.id}/clone", json={"name": "Feedback 2025"}, headers=self.auth(self.editor)
        )
        self.assertEqual(response.json()["name"], "Feedback 2025")

    def test_delete_needs_manager_and_removes_submissions(self):
        form = self.create_form(self.company, self.owner)
        form_id = form.id
        self.create_submission(form, {"full_name": "Ada"})

        response = self.client.delete(f"{self.base}/{form.id}", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"{self.base}/{form.id}", headers=self.auth(self.owner))
        self.assertEqual(response.status_code, 200)

        self.db.expire_all()
        self.assertIsNone(self.db.get(Form, form_id))
        self.assertEqual(self.db.query(FormSubmission).count(), 0)
        event = self.db.query(AuditEvent).filter(AuditEvent.action == "form_deleted").one()
        self.assertEqual(event.details["submissions"], 1)

    def test_new_field_defaults(self):
        response = self.client.get(f"{self.base}/field-types/rating", params={"order": 2}, headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 200)
        field = response.json()
        self.assertEqual(field["type"], "rating")
        self.assertEqual(field["order"], 2)
        self.assertEqual(field["max_rating"], 5)

        response = self.client.get(f"{self.base}/field-types/hologram", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 400)

    def test_preview_applies_answers(self):
        rules = [{
            "id": "r1",
            "conditions": [{"field_id": "plan", "operator": "equals", "value": "pro"}],
            "action": "show",
            "target_field_id": "seats",
        }]
        form = self.create_form(self.company, self.owner, status=FormStatus.DRAFT, conditional_logic=rules)

        response = self.client.post(f"{self.base}/{form.id}/preview", json={}, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        ids = [f["id"] for f in response.json()["steps"][0]["fields"]]
        self.assertNotIn("seats", ids)

        response = self.client.post(
            f"{self.base}/{form.id}/preview", json={"plan": "pro"}, headers=self.auth(self.viewer)
        )
        ids = [f["id"] for f in response.json()["steps"][0]["fields"]]
        self.assertIn("seats", ids)
        self.assertEqual(response.json()["status"], "draft")

    def test_availability(self):
        form = self.create_form(self.company, self.owner, access_control={"max_submissions": 1})
        response = self.client.get(f"{self.base}/{form.id}/availability", headers=self.auth(self.viewer))
        self.assertEqual(response.json()["can_accept"], True)
        self.assertEqual(response.json()["expiry_status"], {"has_expiry": False, "is_expired": False})

        self.create_submission(form, {"full_name": "Ada"})
        response = self.client.get(f"{self.base}/{form.id}/availability", headers=self.auth(self.viewer))
        self.assertEqual(response.json()["can_accept"], False)
        self.assertEqual(response.json()["reason"], "This form has reached its maximum limit of 1 submissions.")

    def test_audit_trail(self):
        form_id = self.create().json()["id"]
        self.client.post(f"{self.base}/{form_id}/publish", headers=self.auth(self.editor))
        actions = [e.action for e in self.db.query(AuditEvent).order_by(AuditEvent.id).all()]
        self.assertEqual(actions, ["form_created", "form_published"])


if __name__ == "__main__":
    unittest.main()
