import unittest
from datetime import datetime, timedelta, timezone

from tenantforms.models.form import Form, FormStatus
from tenantforms.schemas.form import FormField
from tenantforms.services.form_validation import (
    can_accept_submissions,
    get_expiry_status,
    is_form_expired,
    validate_form_for_publishing,
    validate_submission_data,
)

NOW = datetime(2024, 6, 10, 12, 0)


def make_form(status=FormStatus.PUBLISHED, expires_at=None, max_submissions=None, fields=None, name="Survey"):
    access_control = {"visibility": "public"}
    if expires_at is not None:
        access_control["expires_at"] = expires_at.isoformat()
    if max_submissions is not None:
        access_control["max_submissions"] = max_submissions
    return Form(
        name=name,
        status=status,
        fields=fields if fields is not None else [{"id": "q1", "type": "short_text", "label": "Question"}],
        steps=[],
        access_control=access_control,
    )


def field(**kwargs):
    return FormField.model_validate(kwargs)


class AvailabilityTests(unittest.TestCase):
    def test_published_form_accepts(self):
        self.assertEqual(can_accept_submissions(make_form(), 0, now=NOW), (True, None))

    def test_draft_and_archived_forms_refuse(self):
        can_accept, reason = can_accept_submissions(make_form(status=FormStatus.DRAFT), now=NOW)
        self.assertFalse(can_accept)
        self.assertEqual(reason, "This form is currently draft. Only published forms can accept submissions.")

        can_accept, reason = can_accept_submissions(make_form(status=FormStatus.ARCHIVED), now=NOW)
        self.assertIn("currently archived", reason)

    def test_expired_form_refuses(self):
        form = make_form(expires_at=datetime(2024, 6, 1, 9, 30))
        self.assertTrue(is_form_expired(form, now=NOW))
        self.assertEqual(
            can_accept_submissions(form, 0, now=NOW),
            (False, "This form expired on 2024-06-01 09:30. It is no longer accepting submissions."),
        )

    def test_expiry_with_utc_offset(self):
        plus_five = timezone(timedelta(hours=5))
        # 16:30 at +05:00 is 11:30 UTC, half an hour before NOW
        form = make_form(expires_at=datetime(2024, 6, 10, 16, 30, tzinfo=plus_five))
        self.assertTrue(is_form_expired(form, now=NOW))
        self.assertEqual(
            can_accept_submissions(form, 0, now=NOW),
            (False, "This form expired on 2024-06-10 11:30. It is no longer accepting submissions."),
        )

        later = make_form(expires_at=datetime(2024, 6, 10, 17, 30, tzinfo=plus_five))
        self.assertFalse(is_form_expired(later, now=NOW))
        status = get_expiry_status(later, now=NOW)
        self.assertEqual(status["expiry_date"], datetime(2024, 6, 10, 12, 30))
        self.assertEqual(status["message"], "Expires today")

    def test_submission_limit(self):
        form = make_form(max_submissions=3)
        self.assertTrue(can_accept_submissions(form, 2, now=NOW)[0])
        self.assertEqual(
            can_accept_submissions(form, 3, now=NOW),
            (False, "This form has reached its maximum limit of 3 submissions."),
        )


class ExpiryStatusTests(unittest.TestCase):
    def message(self, expires_at):
        return get_expiry_status(make_form(expires_at=expires_at), now=NOW)["message"]

    def test_without_expiry(self):
        self.assertEqual(get_expiry_status(make_form(), now=NOW), {"has_expiry": False, "is_expired": False})

    def test_messages(self):
        self.assertEqual(self.message(NOW + timedelta(hours=3)), "Expires today")
        self.assertEqual(self.message(NOW + timedelta(days=1)), "Expires tomorrow")
        self.assertEqual(self.message(NOW + timedelta(days=5)), "Expires in 5 days")
        self.assertEqual(self.message(NOW + timedelta(days=7)), "Expires in 7 days")
        self.assertEqual(self.message(NOW + timedelta(days=10)), "Expires in 2 weeks")
        self.assertEqual(self.message(NOW + timedelta(days=30)), "Expires in 5 weeks")
        self.assertEqual(self.message(NOW + timedelta(days=45)), "Expires on 2024-07-25")

    def test_days_are_counted_by_calendar_date(self):
        late_evening = datetime(2024, 6, 10, 23, 0)
        soon = make_form(expires_at=datetime(2024, 6, 11, 0, 30))
        self.assertEqual(get_expiry_status(soon, now=late_evening)["message"], "Expires tomorrow")

        early_morning = datetime(2024, 6, 10, 1, 0)
        tonight = make_form(expires_at=datetime(2024, 6, 10, 23, 0))
        self.assertEqual(get_expiry_status(tonight, now=early_morning)["message"], "Expires today")

    def test_expired(self):
        status = get_expiry_status(make_form(expires_at=NOW - timedelta(days=2)), now=NOW)
        self.assertTrue(status["is_expired"])
        self.assertEqual(status["message"], "Expired on 2024-06-08")


class PublishValidationTests(unittest.TestCase):
    def test_valid_form(self):
        self.assertEqual(validate_form_for_publishing(make_form()), (True, []))

    def test_errors_are_collected(self):
        form = make_form(fields=[], name="  ")
        is_valid, errors = validate_form_for_publishing(form)
        self.assertFalse(is_valid)
        self.assertEqual(errors, ["Form must have at least one field", "Form must have a name"])

    def test_missing_labels(self):
        form = make_form(fields=[
            {"id": "a", "type": "short_text", "label": ""},
            {"id": "b", "type": "email", "label": " "},
            {"id": "c", "type": "email", "label": "Email"},
        ])
        self.assertEqual(validate_form_for_publishing(form), (False, ["2 field(s) are missing labels"]))


class SubmissionDataTests(unittest.TestCase):
    def test_required_fields(self):
        fields = [
            field(id="name", type="short_text", label="Name", required=True),
            field(id="tags", type="multi_select", label="Tags", required=True),
            field(id="heading", type="section_header", label="Heading", required=True),
        ]
        errors = validate_submission_data(fields, {"name": "   ", "tags": []})
        self.assertEqual(errors, {"name": "Name is required", "tags": "Tags is required"})

    def test_hidden_fields_are_skipped(self):
        fields = [field(id="name", type="short_text", label="Name", required=True)]
        self.assertEqual(validate_submission_data(fields, {}, visible=set(), required={"name"}), {})

    def test_conditional_required(self):
        fields = [field(id="phone", type="phone", label="Phone")]
        errors = validate_submission_data(fields, {}, visible={"phone"}, required={"phone"})
        self.assertEqual(errors, {"phone": "Phone is required"})

    def test_length_and_range_rules(self):
        fields = [
            field(id="bio", type="long_text", label="Bio", validation=[
                {"type": "min_length", "value": 5},
                {"type": "max_length", "value": 10, "message": "Keep it short"},
            ]),
            field(id="age", type="number", label="Age", validation=[
                {"type": "min_value", "value": 18},
                {"type": "max_value", "value": 99},
            ]),
        ]
        self.assertEqual(
            validate_submission_data(fields, {"bio": "hi", "age": 12}),
            {"bio": "Bio must be at least 5 characters", "age": "Age must be at least 18"},
        )
        self.assertEqual(
            validate_submission_data(fields, {"bio": "far too long text", "age": "abc"}),
            {"bio": "Keep it short", "age": "Age must be a number"},
        )
        self.assertEqual(validate_submission_data(fields, {"bio": "just ok", "age": "42"}), {})

    def test_format_rules(self):
        fields = [
            field(id="email", type="email", label="Email", validation=[{"type": "email_format"}]),
            field(id="phone", type="phone", label="Phone", validation=[{"type": "phone_format"}]),
            field(id="site", type="url", label="Site", validation=[{"type": "url_format"}]),
            field(id="code", type="short_text", label="Code", validation=[{"type": "regex", "value": "^[A-Z]{3}$"}]),
        ]
        errors = validate_submission_data(fields, {
            "email": "nope",
            "phone": "call me",
            "site": "ftp://files",
            "code": "ab1",
        })
        self.assertEqual(errors["email"], "Please enter a valid email address")
        self.assertEqual(errors["phone"], "Please enter a valid phone number")
        self.assertEqual(errors["site"], "Please enter a valid URL")
        self.assertEqual(errors["code"], "Code is not in the expected format")

        self.assertEqual(validate_submission_data(fields, {
            "email": "ada@example.com",
            "phone": "+44 (20) 7946-0958",
            "site": "https://example.com/path",
            "code": "ABC",
        }), {})

    def test_invalid_regex_is_ignored(self):
        fields = [field(id="code", type="short_text", label="Code", validation=[{"type": "regex", "value": "(["}])]
        self.assertEqual(validate_submission_data(fields, {"code": "anything"}), {})

    def test_options(self):
        options = [{"id": "a", "label": "A", "value": "a"}, {"id": "b", "label": "B", "value": "b"}]
        fields = [
            field(id="single", type="dropdown", label="Single", options=options),
            field(id="many", type="checkbox", label="Many", options=options),
            field(id="open", type="radio", label="Open", options=options, allow_other=True),
        ]
        errors = validate_submission_data(fields, {"single": "c", "many": ["a", "z"], "open": "other"})
        self.assertEqual(errors, {
            "single": "Single has an invalid option",
            "many": "Many has an invalid option",
        })


if __name__ == "__main__":
    unittest.main()
