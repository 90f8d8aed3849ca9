import csv
import io
import json
import unittest
from urllib.parse import quote
from datetime import datetime, timedelta

from openpyxl import load_workbook

from tests.base import ApiTestCase
from tenantforms.models.form import Form, FormSubmission, SubmissionStatus
from tenantforms.models.user import MemberRole
from tenantforms.schemas.form import FormField
from tenantforms.services.analytics import (
    AnalyticsService,
    field_analytics,
    form_analytics,
    submissions_per_day,
)
from tenantforms.services.export import (
    export_csv,
    export_docx,
    export_json,
    export_xlsx,
    format_field_value,
    sanitize_column_name,
)

NOW = datetime(2024, 6, 10, 15, 0)


def submission(data, status=SubmissionStatus.COMPLETED, started_at=NOW, minutes=2, **kwargs):
    return FormSubmission(
        id=kwargs.pop("id", None),
        data=data,
        status=status,
        started_at=started_at,
        submitted_at=started_at + timedelta(minutes=minutes) if status == SubmissionStatus.COMPLETED else None,
        **kwargs
    )


class AnalyticsTests(unittest.TestCase):
    def test_empty_form(self):
        result = form_analytics([], now=NOW)
        self.assertEqual(result["total_submissions"], 0)
        self.assertEqual(result["conversion_rate"], 0.0)
        self.assertIsNone(result["average_completion_time"])
        self.assertEqual(len(result["submissions_per_day"]), 30)

    def test_counts_and_completion_time(self):
        submissions = [
            submission({}, minutes=1),
            submission({}, minutes=3),
            submission({}, status=SubmissionStatus.DRAFT),
        ]
        result = form_analytics(submissions, now=NOW)
        self.assertEqual(result["completed_submissions"], 2)
        self.assertEqual(result["draft_submissions"], 1)
        self.assertEqual(result["conversion_rate"], 66.67)
        self.assertEqual(result["average_completion_time"], 120.0)

    def test_timeline_is_zero_filled(self):
        submissions = [
            submission({}, started_at=NOW),
            submission({}, started_at=NOW - timedelta(hours=20)),
            submission({}, started_at=NOW - timedelta(days=3)),
            submission({}, started_at=NOW - timedelta(days=45)),
        ]
        timeline = submissions_per_day(submissions, days=7, now=NOW)
        self.assertEqual(timeline[0]["date"], "2024-06-04")
        self.assertEqual(timeline[-1], {"date": "2024-06-10", "count": 1})
        self.assertEqual(timeline[-2], {"date": "2024-06-09", "count": 1})
        self.assertEqual(timeline[-4], {"date": "2024-06-07", "count": 1})
        self.assertEqual(sum(day["count"] for day in timeline), 3)

    def test_choice_distribution(self):
        field = FormField.model_validate({
            "id": "colors",
            "type": "checkbox",
            "label": "Colors",
            "options": [
                {"id": "r", "label": "Red", "value": "red"},
                {"id": "g", "label": "Green", "value": "green"},
            ],
        })
        submissions = [
            submission({"colors": ["red", "green"]}),
            submission({"colors": ["red"]}),
            submission({"colors": []}),
            submission({"colors": ["green"]}, status=SubmissionStatus.DRAFT),
        ]
        result = field_analytics(field, submissions)
        self.assertEqual(result["response_count"], 2)
        self.assertEqual(result["most_common"], "red")
        self.assertEqual(result["distribution"], [
            {"value": "red", "label": "Red", "count": 2},
            {"value": "green", "label": "Green", "count": 1},
        ])

    def test_numeric_stats(self):
        field = FormField(id="score", type="rating", label="Score")
        submissions = [submission({"score": v}) for v in (5, "3", 4, "n/a")]
        stats = field_analytics(field, submissions)["stats"]
        self.assertEqual(stats, {"min": 3.0, "max": 5.0, "avg": 4.0, "median": 4.0})

        self.assertIsNone(field_analytics(field, [])["stats"])


class ExportFormattingTests(unittest.TestCase):
    def test_sanitize_column_name(self):
        self.assertEqual(sanitize_column_name("What's your e-mail?"), "Whats_your_email")
        self.assertEqual(len(sanitize_column_name("word " * 20)), 31)

    def test_format_field_value(self):
        self.assertEqual(format_field_value(None, "short_text"), "—")
        self.assertEqual(format_field_value("2024-03-05T10:20:00Z", "date"), "2024-03-05")
        self.assertEqual(format_field_value("2024-03-05T10:20:00", "datetime"), "2024-03-05 10:20")
        self.assertEqual(format_field_value("soon", "date"), "soon")
        self.assertEqual(format_field_value(["a", "b"], "multi_select"), "a, b")
        self.assertEqual(format_field_value([{"id": 1}, {"id": 2}], "file_upload"), "2 file(s)")
        self.assertEqual(format_field_value(4, "rating"), "4 ⭐")
        self.assertEqual(format_field_value("12.5", "currency"), "$12.50")
        self.assertEqual(format_field_value(True, "checkbox"), "Yes")
        self.assertEqual(format_field_value({"city": "Paris"}, "address"), "city: Paris")


class ExportContentTests(unittest.TestCase):
    def setUp(self):
        self.form = Form(
            id=7,
            name="Event Signup",
            version=2,
            fields=[
                {"id": "name", "type": "short_text", "label": "Name"},
                {"id": "intro", "type": "section_header", "label": "About you"},
                {"id": "name2", "type": "short_text", "label": "Name"},
                {"id": "when", "type": "date", "label": "Date"},
            ],
        )
        self.submissions = [
            submission({"name": "Ada", "name2": "Lovelace", "when": "2024-06-01"}, id=1, submitted_by_email="ada@example.com"),
            submission({"name": "Bob"}, id=2, status=SubmissionStatus.DRAFT),
        ]

    def test_csv(self):
        rows = list(csv.reader(io.StringIO(export_csv(self.form, self.submissions))))
        self.assertEqual(rows[0], ["ID", "Status", "Submitted At", "Submitted By", "Name", "Name_2", "Date"])
        self.assertEqual(rows[1][:2], ["1", "completed"])
        self.assertEqual(rows[1][3:], ["ada@example.com", "Ada", "Lovelace", "2024-06-01"])
        self.assertEqual(rows[2][2:], ["—", "Anonymous", "Bob", "—", "—"])

    def test_json(self):
        payload = json.loads(export_json(self.form, self.submissions))
        self.assertEqual(payload["form"]["version"], 2)
        self.assertEqual([f["id"] for f in payload["fields"]], ["name", "name2", "when"])
        self.assertEqual(payload["submissions"][1]["data"], {"name": "Bob"})

    def test_docx(self):
        content = export_docx(self.form, self.submissions)
        self.assertTrue(content.startswith(b"PK"))

    def test_xlsx(self):
        sheet = load_workbook(io.BytesIO(export_xlsx(self.form, self.submissions))).active
        self.assertEqual(sheet.title, "Submissions")
        rows = [[cell.value for cell in row] for row in sheet.iter_rows()]
        self.assertEqual(rows[0], ["ID", "Status", "Submitted At", "Submitted By", "Name", "Name_2", "Date"])
        self.assertEqual(rows[1][3:], ["ada@example.com", "Ada", "Lovelace", "2024-06-01"])
        self.assertEqual(sheet.freeze_panes, "A2")
        self.assertTrue(sheet["A1"].font.bold)

    def test_selected_fields_and_metadata(self):
        rows = list(csv.reader(io.StringIO(
            export_csv(self.form, self.submissions, field_ids=["when", "missing"], include_metadata=True)
        )))
        self.assertEqual(rows[0], ["ID", "Status", "Submitted At", "Submitted By", "Date", "Started At", "Last Saved"])
        self.assertEqual(rows[1][4:6], ["2024-06-01", NOW.isoformat()])

        payload = json.loads(export_json(self.form, self.submissions, field_ids=["name"]))
        self.assertEqual([f["id"] for f in payload["fields"]], ["name"])
        self.assertEqual(payload["submissions"][0]["data"], {"name": "Ada"})


class AnalyticsApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.company = self.create_owner_with_company()
        self.viewer = self.add_member(self.company, MemberRole.VIEWER, "viewer@acme.io")
        self.form = self.create_form(self.company, self.owner, name="Event Signup!")

    def test_form_analytics(self):
        self.create_submission(self.form, {"full_name": "Ada", "plan": "pro", "seats": 4})
        self.create_submission(self.form, {"full_name": "Bob", "plan": "pro", "seats": 2})
        self.create_submission(self.form, {"plan": "basic"}, status=SubmissionStatus.DRAFT)

        response = self.client.get(
            f"/api/org/{self.company.id}/forms/{self.form.id}/analytics",
            headers=self.auth(self.viewer),
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total_submissions"], 3)
        self.assertEqual(body["conversion_rate"], 66.67)
        plan = next(f for f in body["fields"] if f["field_id"] == "plan")
        self.assertEqual(plan["distribution"], [{"value": "pro", "label": "Pro", "count": 2}])
        seats = next(f for f in body["fields"] if f["field_id"] == "seats")
        self.assertEqual(seats["stats"]["avg"], 3.0)

    def test_company_analytics_by_month(self):
        now = datetime(2024, 6, 10, 12, 0)
        self.create_submission(self.form, {}, started_at=datetime(2024, 6, 2))
        self.create_submission(self.form, {}, started_at=datetime(2024, 5, 20))
        self.create_submission(self.form, {}, started_at=datetime(2024, 5, 1), status=SubmissionStatus.DRAFT)
        self.create_submission(self.form, {}, started_at=datetime(2024, 3, 1))

        result = AnalyticsService.get_company_analytics(self.db, self.company.id, now=now)
        self.assertEqual(result, {
            "total_forms": 1,
            "total_submissions": 4,
            "completed_submissions": 3,
            "draft_submissions": 1,
            "submissions_this_month": 1,
            "submissions_last_month": 2,
        })

    def test_export_download(self):
        self.create_submission(self.form, {"full_name": "Ada"}, email="ada@example.com")
        url = f"/api/org/{self.company.id}/forms/{self.form.id}/export"

        response = self.client.get(url, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertEqual(
            response.headers["content-disposition"],
            "attachment; filename=\"Event_Signup_submissions.csv\"; filename*=UTF-8''Event_Signup_submissions.csv",
        )
        self.assertIn("Ada", response.text)

        response = self.client.get(url, params={"format": "docx"}, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b"PK"))

        response = self.client.get(url, params={"format": "pdf"}, headers=self.auth(self.viewer))
        self.assertEqual(response.status_code, 422)

    def test_export_name_outside_latin1(self):
        form = self.create_form(self.company, self.owner, name="客户调查")
        self.create_submission(form, {"full_name": "李雷"})

        response = self.client.get(
            f"/api/org/{self.company.id}/forms/{form.id}/export", headers=self.auth(self.viewer)
        )
        self.assertEqual(response.status_code, 200)
        disposition = response.headers["content-disposition"]
        self.assertIn(f'filename="form_{form.id}_submissions.csv"', disposition)
        self.assertIn("filename*=UTF-8''" + quote("客户调查_submissions.csv"), disposition)
        self.assertIn("李雷", response.content.decode("utf-8"))

        form.name = "Café Menu"
        self.db.commit()
        response = self.client.get(
            f"/api/org/{self.company.id}/forms/{form.id}/export", headers=self.auth(self.viewer)
        )
        self.assertIn('filename="Cafe_Menu_submissions.csv"', response.headers["content-disposition"])

    def test_excel_download_with_selected_fields(self):
        self.create_submission(self.form, {"full_name": "Ada", "plan": "pro", "seats": 4}, email="ada@example.com")
        url = f"/api/org/{self.company.id}/forms/{self.form.id}/export"

        response = self.client.get(
            url,
            params={"format": "xlsx", "fields": ["plan", "seats"], "include_metadata": "true"},
            headers=self.auth(self.viewer),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.headers["content-type"],
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        self.assertIn('filename="Event_Signup_submissions.xlsx"', response.headers["content-disposition"])
        sheet = load_workbook(io.BytesIO(response.content)).active
        header = [cell.value for cell in sheet[1]]
        self.assertEqual(header, [
            "ID", "Status", "Submitted At", "Submitted By", "Plan", "Seats", "Started At", "Last Saved",
        ])
        self.assertEqual([cell.value for cell in sheet[2]][3:6], ["ada@example.com", "pro", "4"])

    def test_filtered_export(self):
        self.create_submission(self.form, {"full_name": "Ada", "plan": "pro"})
        self.create_submission(self.form, {"full_name": "Bob", "plan": "basic"})
        self.create_submission(self.form, {"full_name": "Cy", "plan": "pro"}, status=SubmissionStatus.DRAFT)

        response = self.client.post(
            f"/api/org/{self.company.id}/forms/{self.form.id}/export",
            json={
                "format": "json",
                "status": "completed",
                "filters": [{"conditions": [{"field_id": "plan", "operator": "equals", "value": "pro"}]}],
            },
            headers=self.auth(self.viewer),
        )
        self.assertEqual(response.status_code, 200)
        names = [s["data"]["full_name"] for s in response.json()["submissions"]]
        self.assertEqual(names, ["Ada"])


if __name__ == "__main__":
    unittest.main()
