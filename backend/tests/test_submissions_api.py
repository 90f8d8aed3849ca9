import unittest
from datetime import datetime

from tests.base import ApiTestCase
from tenantforms.models.audit import AuditEvent
from tenantforms.models.form import FormStatus, FormSubmission, SubmissionStatus, SubmissionVersion
from tenantforms.models.user import MemberRole

ANSWERS = {"full_name": "Ada Lovelace", "email": "ada@example.com", "plan": "pro", "seats": 3}


class PublicSubmissionTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.company = self.create_owner_with_company()

    def submit(self, form, data=None, headers=None, **extra):
        payload = {"data": ANSWERS if data is None else data}
        payload.update(extra)
        return self.client.post(f"/api/public/forms/{form.id}/submissions", json=payload, headers=headers)

    def test_render_published_form(self):
        form = self.create_form(self.company, self.owner)
        response = self.client.get(f"/api/public/forms/{form.id}")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["name"], "Customer Survey")
        self.assertFalse(body["requires_password"])
        self.assertTrue(body["availability"]["can_accept"])
        self.assertEqual([f["id"] for f in body["steps"][0]["fields"]], ["full_name", "email", "plan", "seats"])

    def test_drafts_are_hidden_and_archived_forms_closed(self):
        draft = self.create_form(self.company, self.owner, status=FormStatus.DRAFT)
        self.assertEqual(self.client.get(f"/api/public/forms/{draft.id}").status_code, 404)
        self.assertEqual(self.submit(draft).status_code, 404)

        archived = self.create_form(self.company, self.owner, status=FormStatus.ARCHIVED)
        response = self.client.get(f"/api/public/forms/{archived.id}")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["availability"]["can_accept"])

        response = self.submit(archived)
        self.assertEqual(response.status_code, 400)
        self.assertIn("currently archived", response.json()["detail"])

    def test_anonymous_submission(self):
        form = self.create_form(self.company, self.owner)
        response = self.submit(form, email="ada@example.com")
        self.assertEqual(response.status_code, 200, response.text)
        submission = response.json()
        self.assertEqual(submission["status"], "completed")
        self.assertTrue(submission["is_anonymous"])
        self.assertEqual(submission["submitted_by_email"], "ada@example.com")
        self.assertIsNotNone(submission["submitted_at"])

        metadata = self.reload(form).form_metadata
        self.assertEqual(metadata["response_count"], 1)
        self.assertIsNotNone(metadata["last_submitted_at"])

    def test_sign_in_required(self):
        form = self.create_form(self.company, self.owner, settings={"require_login": True})
        response = self.submit(form)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Please sign in to submit this form")

        respondent = self.create_user("someone@example.com")
        response = self.submit(form, headers=self.auth(respondent))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["submitted_by_id"], respondent.id)
        self.assertFalse(response.json()["is_anonymous"])

    def test_validation_errors(self):
        form = self.create_form(self.company, self.owner)
        response = self.submit(form, data={"email": "not-an-email", "plan": "enterprise", "seats": 0})
        self.assertEqual(response.status_code, 400)
        errors = response.json()["detail"]["errors"]
        self.assertEqual(errors, {
            "full_name": "Full Name is required",
            "email": "Please enter a valid email address",
            "plan": "Plan has an invalid option",
            "seats": "Seats must be at least 1",
        })
        self.assertEqual(self.db.query(FormSubmission).count(), 0)

    def test_conditional_fields_are_not_validated_when_hidden(self):
        rules = [{
            "id": "r1",
            "conditions": [{"field_id": "plan", "operator": "equals", "value": "pro"}],
            "action": "show",
            "target_field_id": "seats",
        }]
        fields = [
            {"id": "plan", "type": "radio", "label": "Plan", "options": [
                {"id": "b", "label": "Basic", "value": "basic"},
                {"id": "p", "label": "Pro", "value": "pro"},
            ]},
            {"id": "seats", "type": "number", "label": "Seats", "required": True},
        ]
        form = self.create_form(self.company, self.owner, fields=fields, conditional_logic=rules)

        self.assertEqual(self.submit(form, data={"plan": "basic"}).status_code, 200)
        response = self.submit(form, data={"plan": "pro"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["errors"], {"seats": "Seats is required"})

    def test_submission_limit(self):
        form = self.create_form(self.company, self.owner, access_control={"max_submissions": 1})
        self.create_submission(form, ANSWERS)
        response = self.submit(form)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "This form has reached its maximum limit of 1 submissions.")

    def test_expired_form(self):
        form = self.create_form(
            self.company,
            self.owner,
            access_control={"expires_at": datetime(2020, 1, 1, 8, 0).isoformat()},
        )
        response = self.submit(form)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["detail"],
            "This form expired on 2020-01-01 08:00. It is no longer accepting submissions.",
        )

    def test_password(self):
        form = self.create_form(self.company, self.owner, access_control={"password": "s3cret"})
        self.assertTrue(self.client.get(f"/api/public/forms/{form.id}").json()["requires_password"])

        response = self.submit(form, password="guess")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Incorrect form password")

        self.assertEqual(self.submit(form, password="s3cret").status_code, 200)

    def test_allowed_domains(self):
        form = self.create_form(self.company, self.owner, access_control={"allowed_domains": ["@Example.com"]})
        self.assertEqual(self.submit(form, email="ada@gmail.com").status_code, 403)
        self.assertEqual(self.submit(form).status_code, 403)
        self.assertEqual(self.submit(form, email="ada@example.com").status_code, 200)

    def test_one_submission_per_user(self):
        form = self.create_form(self.company, self.owner)
        respondent = self.create_user("someone@example.com")
        headers = self.auth(respondent)

        self.assertEqual(self.submit(form, headers=headers).status_code, 200)
        response = self.submit(form, headers=headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "You have already submitted this form")

        repeatable = self.create_form(self.company, self.owner, settings={"allow_multiple_submissions": True})
        self.assertEqual(self.submit(repeatable, headers=headers).status_code, 200)
        self.assertEqual(self.submit(repeatable, headers=headers).status_code, 200)

    def test_save_draft_and_continue(self):
        form = self.create_form(self.company, self.owner)
        response = self.submit(form, data={"full_name": "Ada"}, status="draft")
        self.assertEqual(response.status_code, 200)
        draft = response.json()
        self.assertEqual(draft["status"], "draft")
        self.assertIsNone(draft["submitted_at"])
        self.assertEqual(self.reload(form).form_metadata["response_count"], 0)
        token = draft["resume_token"]

        url = f"/api/public/forms/{form.id}/submissions/{draft['id']}"
        response = self.client.put(url, json={"data": {"plan": "nope"}, "status": "completed", "resume_token": token})
        self.assertEqual(response.status_code, 400)

        response = self.client.put(
            url, json={"data": {"plan": "basic", "seats": 2}, "status": "completed", "resume_token": token}
        )
        self.assertEqual(response.status_code, 200)
        submission = response.json()
        self.assertEqual(submission["status"], "completed")
        self.assertEqual(submission["data"]["full_name"], "Ada")
        self.assertEqual(submission["data"]["plan"], "basic")

        response = self.client.put(url, json={"data": {"seats": 5}, "resume_token": token})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Only draft submissions can be continued")

    def test_drafts_belong_to_their_author(self):
        form = self.create_form(self.company, self.owner)
        author = self.create_user("author@example.com")
        stranger = self.create_user("stranger@example.com")
        draft_id = self.submit(form, data={}, status="draft", headers=self.auth(author)).json()["id"]

        url = f"/api/public/forms/{form.id}/submissions/{draft_id}"
        response = self.client.put(url, json={"data": {"full_name": "Eve"}}, headers=self.auth(stranger))
        self.assertEqual(response.status_code, 403)

        response = self.client.put(url, json={"data": {"full_name": "Ann"}}, headers=self.auth(author))
        self.assertEqual(response.status_code, 200)

    def test_anonymous_drafts_need_their_resume_token(self):
        form = self.create_form(self.company, self.owner)
        draft = self.submit(form, data={"full_name": "Ada"}, status="draft").json()
        self.assertTrue(draft["resume_token"])
        self.assertIsNone(self.submit(form, headers=self.auth(self.owner)).json()["resume_token"])

        url = f"/api/public/forms/{form.id}/submissions/{draft['id']}"
        response = self.client.put(url, json={"data": {"full_name": "Eve"}})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Unauthorized to update this submission")

        response = self.client.put(url, json={"data": {"full_name": "Eve"}, "resume_token": "guessed"})
        self.assertEqual(response.status_code, 403)

        stranger = self.create_user("stranger@example.com")
        response = self.client.put(url, json={"data": {"full_name": "Eve"}}, headers=self.auth(stranger))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.get(FormSubmission, draft["id"]).data, {"full_name": "Ada"})

        response = self.client.put(url, json={"data": {"seats": 4}, "resume_token": draft["resume_token"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], {"full_name": "Ada", "seats": 4})

    def test_completing_a_second_draft_is_refused(self):
        form = self.create_form(self.company, self.owner)
        respondent = self.create_user("someone@example.com")
        headers = self.auth(respondent)
        first = self.submit(form, data={"full_name": "Ada"}, status="draft", headers=headers).json()
        second = self.submit(form, data={"full_name": "Ada"}, status="draft", headers=headers).json()

        base = f"/api/public/forms/{form.id}/submissions"
        response = self.client.put(f"{base}/{first['id']}", json={"data": ANSWERS, "status": "completed"}, headers=headers)
        self.assertEqual(response.status_code, 200)

        response = self.client.put(f"{base}/{second['id']}", json={"data": ANSWERS, "status": "completed"}, headers=headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "You have already submitted this form")
        self.assertEqual(self.reload(form).form_metadata["response_count"], 1)

        # Saving more answers on the remaining draft is still allowed
        response = self.client.put(f"{base}/{second['id']}", json={"data": {"seats": 2}}, headers=headers)
        self.assertEqual(response.status_code, 200)

    def test_team_visibility(self):
        form = self.create_form(self.company, self.owner, access_control={"visibility": "team"})
        response = self.client.get(f"/api/public/forms/{form.id}")
        self.assertEqual(response.status_code, 401)

        outsider, _ = self.create_owner_with_company("boss@globex.io", name="Globex")
        response = self.client.get(f"/api/public/forms/{form.id}", headers=self.auth(outsider))
        self.assertEqual(response.status_code, 403)

        viewer = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        response = self.client.get(f"/api/public/forms/{form.id}", headers=self.auth(viewer))
        self.assertEqual(response.status_code, 200)

    def test_private_visibility(self):
        form = self.create_form(self.company, self.owner, access_control={"visibility": "private"})
        viewer = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        editor = self.add_member(self.company, MemberRole.EDITOR, "editor@acme.io")

        self.assertEqual(self.client.get(f"/api/public/forms/{form.id}", headers=self.auth(viewer)).status_code, 403)
        self.assertEqual(self.client.get(f"/api/public/forms/{form.id}", headers=self.auth(editor)).status_code, 200)


class CompanySubmissionTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.company = self.create_owner_with_company()
        self.editor = self.add_member(self.company, MemberRole.EDITOR, "editor@acme.io")
        self.viewer = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        self.form = self.create_form(self.company, self.owner)
        self.base = f"/api/org/{self.company.id}/forms/{self.form.id}/submissions"

        self.ada = self.create_submission(
            self.form, {"full_name": "Ada", "plan": "pro", "seats": 10}, email="ada@example.com",
            started_at=datetime(2024, 5, 1, 9, 0),
        )
        self.bob = self.create_submission(
            self.form, {"full_name": "Bob", "plan": "basic", "seats": 2},
            started_at=datetime(2024, 5, 2, 9, 0),
        )
        self.cy = self.create_submission(
            self.form, {"full_name": "Cy", "plan": "pro"}, status=SubmissionStatus.DRAFT,
            started_at=datetime(2024, 5, 3, 9, 0),
        )

    def test_list_newest_first(self):
        response = self.client.get(self.base, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual([s["id"] for s in body["items"]], [self.cy.id, self.bob.id, self.ada.id])

        response = self.client.get(self.base, params={"status": "draft"}, headers=self.auth(self.viewer))
        self.assertEqual([s["id"] for s in response.json()["items"]], [self.cy.id])

        response = self.client.get(self.base, params={"limit": 1, "offset": 1}, headers=self.auth(self.viewer))
        self.assertEqual(response.json()["total"], 3)
        self.assertEqual([s["id"] for s in response.json()["items"]], [self.bob.id])

    def test_query_filters_and_sort(self):
        response = self.client.post(f"{self.base}/query", json={
            "filters": [{"logic": "AND", "conditions": [{"field_id": "plan", "operator": "equals", "value": "PRO"}]}],
            "sort": [{"field_id": "full_name", "direction": "asc"}],
        }, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s["data"]["full_name"] for s in response.json()["items"]], ["Ada", "Cy"])

        response = self.client.post(f"{self.base}/query", json={
            "filters": [{"logic": "OR", "conditions": [
                {"field_id": "seats", "operator": "greater_than", "value": 5},
                {"field_id": "seats", "operator": "is_null"},
            ]}],
            "sort": [{"field_id": "seats", "direction": "desc"}],
        }, headers=self.auth(self.viewer))
        self.assertEqual([s["id"] for s in response.json()["items"]], [self.ada.id, self.cy.id])

        response = self.client.post(f"{self.base}/query", json={
            "status": "completed",
            "date_from": "2024-05-02T00:00:00",
        }, headers=self.auth(self.viewer))
        self.assertEqual([s["id"] for s in response.json()["items"]], [self.bob.id])

        response = self.client.post(f"{self.base}/query", json={
            "filters": [{"conditions": [
                {"field_id": "seats", "operator": "between", "value": 1, "value2": 5},
            ]}],
        }, headers=self.auth(self.viewer))
        self.assertEqual([s["id"] for s in response.json()["items"]], [self.bob.id])

    def test_get_submission_from_other_form(self):
        other_form = self.create_form(self.company, self.owner, name="Other")
        response = self.client.get(
            f"/api/org/{self.company.id}/forms/{other_form.id}/submissions/{self.ada.id}",
            headers=self.auth(self.viewer),
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.get(f"{self.base}/{self.ada.id}", headers=self.auth(self.viewer))
        self.assertEqual(response.json()["data"]["full_name"], "Ada")

    def test_editor_updates_answers(self):
        response = self.client.put(f"{self.base}/{self.cy.id}", json={"data": {"seats": 4}, "status": "completed"},
                                   headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 403)

        response = self.client.put(f"{self.base}/{self.cy.id}", json={"data": {"seats": 4}, "status": "completed"},
                                   headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["data"], {"full_name": "Cy", "plan": "pro", "seats": 4})
        self.assertEqual(body["status"], "completed")
        self.assertEqual(self.reload(self.form).form_metadata["response_count"], 3)

    def test_delete_needs_manager(self):
        response = self.client.delete(f"{self.base}/{self.ada.id}", headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"{self.base}/{self.ada.id}", headers=self.auth(self.owner))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.reload(self.ada))
        self.assertEqual(self.reload(self.form).form_metadata["response_count"], 1)

    def test_bulk_delete(self):
        other_form = self.create_form(self.company, self.owner, name="Other")
        stray = self.create_submission(other_form, {"full_name": "Stray"})
        deleted_ids = [self.ada.id, self.bob.id]

        response = self.client.post(
            f"{self.base}/bulk-delete",
            json={"submission_ids": deleted_ids + [stray.id]},
            headers=self.auth(self.owner),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"deleted": 2})
        self.assertIsNotNone(self.reload(stray))
        for submission_id in deleted_ids:
            self.assertIsNone(self.db.get(FormSubmission, submission_id))

        event = self.db.query(AuditEvent).filter(AuditEvent.action == "submissions_bulk_deleted").one()
        self.assertEqual(sorted(event.details["submission_ids"]), deleted_ids)

    def test_edits_keep_a_version_history(self):
        editor = self.auth(self.editor)
        self.client.put(f"{self.base}/{self.ada.id}", json={"data": {"seats": 12}}, headers=editor)
        self.client.put(f"{self.base}/{self.ada.id}", json={"data": {"plan": "basic"}}, headers=editor)

        response = self.client.get(f"{self.base}/{self.ada.id}/versions", headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        versions = response.json()
        self.assertEqual([v["version"] for v in versions], [2, 1])
        self.assertEqual(versions[1]["data"], {"full_name": "Ada", "plan": "pro", "seats": 10})
        self.assertEqual(versions[0]["data"]["seats"], 12)
        self.assertEqual(versions[0]["changed_by_id"], self.editor.id)

        response = self.client.get(f"{self.base}/{self.ada.id}/versions/1", headers=self.auth(self.viewer))
        self.assertEqual(response.json()["data"]["plan"], "pro")
        response = self.client.get(f"{self.base}/{self.ada.id}/versions/9", headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 404)

        restore = f"{self.base}/{self.ada.id}/versions/1/restore"
        self.assertEqual(self.client.post(restore, headers=self.auth(self.viewer)).status_code, 403)
        response = self.client.post(restore, headers=editor)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], {"full_name": "Ada", "plan": "pro", "seats": 10})

        versions = self.client.get(f"{self.base}/{self.ada.id}/versions", headers=editor).json()
        self.assertEqual(versions[0]["version"], 3)
        self.assertEqual(versions[0]["data"]["plan"], "basic")

    def test_history_is_removed_with_the_submission(self):
        self.client.put(f"{self.base}/{self.bob.id}", json={"data": {"seats": 3}}, headers=self.auth(self.editor))
        self.assertEqual(self.db.query(SubmissionVersion).count(), 1)

        response = self.client.delete(f"{self.base}/{self.bob.id}", headers=self.auth(self.owner))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.query(SubmissionVersion).count(), 0)

    def test_bulk_status_update(self):
        other_form = self.create_form(self.company, self.owner, name="Other")
        stray = self.create_submission(other_form, {"full_name": "Stray"}, status=SubmissionStatus.DRAFT)
        url = f"{self.base}/bulk-status"
        payload = {"submission_ids": [self.cy.id, self.ada.id, stray.id], "status": "completed"}

        self.assertEqual(self.client.post(url, json=payload, headers=self.auth(self.viewer)).status_code, 403)

        response = self.client.post(url, json=payload, headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": 1})
        cy = self.reload(self.cy)
        self.assertEqual(cy.status, SubmissionStatus.COMPLETED)
        self.assertIsNotNone(cy.submitted_at)
        self.assertEqual(self.reload(stray).status, SubmissionStatus.DRAFT)
        self.assertEqual(self.reload(self.form).form_metadata["response_count"], 3)

        response = self.client.post(
            url, json={"submission_ids": [self.bob.id], "status": "draft"}, headers=self.auth(self.editor)
        )
        self.assertEqual(response.json(), {"updated": 1})
        bob = self.reload(self.bob)
        self.assertEqual(bob.status, SubmissionStatus.DRAFT)
        self.assertIsNone(bob.submitted_at)
        self.assertEqual(self.reload(self.form).form_metadata["response_count"], 2)

        response = self.client.post(url, json={"submission_ids": [], "status": "draft"}, headers=self.auth(self.editor))
        self.assertEqual(response.status_code, 422)

    def test_other_company_cannot_read(self):
        outsider, _ = self.create_owner_with_company("boss@globex.io", name="Globex")
        response = self.client.get(self.base, headers=self.auth(outsider))
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
