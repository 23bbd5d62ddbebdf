#!/usr/bin/env python3
"""
Unit Tests for the asana_rest package

Covers the error hierarchy, configuration, alerts, record decoding and
request descriptor serialization without making real API calls.
"""

import json
import os
import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qsl

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from asana_rest import (
    # Errors
    AsanaClientError,
    AsanaValidationError,
    AsanaTransportError,
    AsanaHTTPError,
    AsanaBadRequestError,
    AsanaAuthenticationError,
    AsanaNotFoundError,
    AsanaRateLimitError,
    AsanaServerError,
    AsanaDecodeError,
    ResourceNotFoundError,
    # Infrastructure
    AsanaClientConfig,
    DEFAULT_BASE_URL,
    get_config,
    get_client,
    reset_client,
    raise_alert,
    with_api_error_handling,
    # Records
    AssigneeStatus,
    CustomField,
    CustomFieldSettings,
    DueDate,
    Tag,
    Task,
    User,
    Workspace,
    # Requests
    CreateCustomFieldRequest,
    CreateStoryRequest,
    CreateTagRequest,
    EnumOptionRequest,
    SearchRequest,
    TaskRequest,
)
from asana_rest.infrastructure import (
    encode_query,
    format_opt_fields,
    require_gid,
    to_wire_dict,
    unwrap_single,
)


class TestErrors(unittest.TestCase):
    """Test exception classes."""

    def test_base_exception(self):
        """Every client error derives from AsanaClientError."""
        for cls in (
            AsanaValidationError,
            AsanaTransportError,
            AsanaHTTPError,
            AsanaDecodeError,
            ResourceNotFoundError,
        ):
            self.assertTrue(issubclass(cls, AsanaClientError))

    def test_http_status_subclasses(self):
        for cls in (
            AsanaBadRequestError,
            AsanaAuthenticationError,
            AsanaNotFoundError,
            AsanaRateLimitError,
            AsanaServerError,
        ):
            self.assertTrue(issubclass(cls, AsanaHTTPError))

    def test_validation_error_is_value_error(self):
        self.assertTrue(issubclass(AsanaValidationError, ValueError))

    def test_http_error_message(self):
        error = AsanaHTTPError(418, "teapot", b"{}")
        self.assertEqual(str(error), "HTTP 418: teapot")
        self.assertEqual(error.status_code, 418)
        self.assertEqual(error.body, b"{}")

    def test_rate_limit_error_retry_after(self):
        error = AsanaRateLimitError(429, "Rate limited", retry_after=60)
        self.assertEqual(error.retry_after, 60)
        self.assertIn("Rate limited", str(error))

    def test_rate_limit_error_no_retry_after(self):
        error = AsanaRateLimitError(429, "Rate limited")
        self.assertIsNone(error.retry_after)

    def test_resource_not_found_message(self):
        self.assertEqual(str(ResourceNotFoundError("task", "123")), "no task found for ID 123")
        self.assertEqual(str(ResourceNotFoundError("tag")), "no tag was received")

    def test_decode_error_partial_items(self):
        error = AsanaDecodeError("bad", partial_items=[1, 2])
        self.assertEqual(error.partial_items, [1, 2])
        self.assertEqual(AsanaDecodeError("bad").partial_items, [])


class TestConfig(unittest.TestCase):
    """Test client configuration."""

    def tearDown(self):
        get_config().reload()
        reset_client()

    def test_config_singleton(self):
        self.assertIs(get_config(), get_config())
        self.assertIsInstance(get_config(), AsanaClientConfig)

    def test_reload_from_environment(self):
        env = {
            "ASANA_ACCESS_TOKEN": "env_token",
            "ASANA_BASE_URL": "https://example.test/api/1.0/",
            "ASANA_REQUEST_TIMEOUT": "5",
        }
        with patch.dict(os.environ, env):
            config = get_config()
            config.reload()
            self.assertEqual(config.access_token, "env_token")
            self.assertEqual(config.base_url, "https://example.test/api/1.0")
            self.assertEqual(config.timeout, 5.0)

    def test_invalid_timeout_falls_back(self):
        with patch.dict(os.environ, {"ASANA_REQUEST_TIMEOUT": "soon"}):
            config = get_config()
            config.reload()
            self.assertEqual(config.timeout, 30.0)

    def test_default_base_url(self):
        with patch.dict(os.environ, {}, clear=True):
            config = get_config()
            config.reload()
            self.assertEqual(config.base_url, DEFAULT_BASE_URL)
            self.assertIsNone(config.access_token)

    def test_get_client_without_token_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            get_config().reload()
            reset_client()
            with self.assertRaises(AsanaValidationError) as ctx:
                get_client()
            self.assertIn("No Asana token provided", str(ctx.exception))

    def test_get_client_is_shared(self):
        with patch.dict(os.environ, {"ASANA_ACCESS_TOKEN": "tok", "ASANA_BASE_URL": DEFAULT_BASE_URL}):
            get_config().reload()
            reset_client()
            client = get_client()
            self.assertIs(client, get_client())
            self.assertEqual(client.base_url, DEFAULT_BASE_URL)


class TestAlerts(unittest.TestCase):
    """Test the alert hook."""

    def tearDown(self):
        get_config()._alert_callback = None

    def test_alert_callback_invoked(self):
        callback = MagicMock()
        get_config().set_alert_callback(callback)

        raise_alert("critical", "auth_failed", "Token rejected", {"http_status": 401})

        callback.assert_called_once_with(
            "critical", "auth_failed", "Token rejected", {"http_status": 401}
        )

    def test_alert_falls_back_to_logging(self):
        with self.assertLogs("asana_rest.infrastructure", level="ERROR") as logs:
            raise_alert("urgent", "rate_limit_hit", "Slow down")
        self.assertIn("[ALERT-URGENT] rate_limit_hit: Slow down", logs.output[0])

    def test_failing_callback_falls_back_to_logging(self):
        get_config().set_alert_callback(MagicMock(side_effect=RuntimeError("boom")))
        with self.assertLogs("asana_rest.infrastructure", level="WARNING") as logs:
            raise_alert("warning", "api_server_error", "500")
        self.assertTrue(any("Alert callback failed" in line for line in logs.output))


class TestErrorHandlingDecorator(unittest.TestCase):
    """Test with_api_error_handling."""

    def test_tags_operation_and_reraises(self):
        @with_api_error_handling("fetching thing {thing_gid}")
        def fetch(thing_gid):
            raise AsanaNotFoundError(404, "missing")

        with self.assertLogs("asana_rest.infrastructure", level="WARNING"):
            with self.assertRaises(AsanaNotFoundError) as ctx:
                fetch("42")
        self.assertEqual(ctx.exception.operation, "fetching thing 42")

    def test_validation_errors_pass_through_silently(self):
        @with_api_error_handling("fetching thing {thing_gid}")
        def fetch(thing_gid):
            raise AsanaValidationError("expecting a non-empty thingID")

        with self.assertRaises(AsanaValidationError) as ctx:
            fetch("")
        self.assertIsNone(ctx.exception.operation)

    def test_other_exceptions_untouched(self):
        @with_api_error_handling("doing {missing.attr}")
        def fail(value):
            raise KeyError("x")

        with self.assertRaises(KeyError):
            fail(1)


class TestDueDate(unittest.TestCase):
    """Test DueDate parsing and formatting."""

    def test_round_trip_is_zero_padded(self):
        due = DueDate.parse("2012-03-26")
        self.assertEqual((due.year, due.month, due.day), (2012, 3, 26))
        self.assertEqual(str(due), "2012-03-26")
        self.assertEqual(due.to_wire(), "2012-03-26")

    def test_pads_single_digits(self):
        self.assertEqual(DueDate(2020, 1, 5).text, "2020-01-05")

    def test_too_few_parts(self):
        with self.assertRaises(ValueError):
            DueDate.parse("2012-03")

    def test_non_numeric(self):
        with self.assertRaises(ValueError):
            DueDate.parse("2012-March-26")

    def test_equality_ignores_text(self):
        self.assertEqual(DueDate.parse("2012-03-26"), DueDate(2012, 3, 26))


class TestAssigneeStatus(unittest.TestCase):
    def test_defaults_to_inbox(self):
        self.assertEqual(AssigneeStatus.from_value(None), AssigneeStatus.INBOX)
        self.assertEqual(AssigneeStatus.from_value(""), AssigneeStatus.INBOX)

    def test_known_values(self):
        self.assertEqual(AssigneeStatus.from_value("today"), AssigneeStatus.TODAY)
        self.assertEqual(str(AssigneeStatus.UPCOMING), "upcoming")

    def test_unknown_value_kept_as_string(self):
        self.assertEqual(AssigneeStatus.from_value("new"), "new")

    def test_task_with_unknown_assignee_status(self):
        task = Task.from_dict({"gid": "1", "assignee_status": "new"})
        self.assertEqual(task.assignee_status, "new")
        self.assertNotIsInstance(task.assignee_status, AssigneeStatus)


class TestRecords(unittest.TestCase):
    """Test decoding of resource records."""

    def test_task_from_dict(self):
        task = Task.from_dict({
            "gid": "111",
            "name": "Write report",
            "assignee": {"gid": "9", "name": "Ada"},
            "assignee_status": "later",
            "completed": False,
            "created_at": "2017-05-01T10:00:00.000Z",
            "due_on": "2017-05-09",
            "num_hearts": 3,
            "tags": [{"gid": "5", "name": "urgent", "color": "dark-red"}],
            "projects": [{"gid": "7", "name": "Reports"}],
            "followers": [{"gid": "9", "name": "Ada", "email": "ada@example.com"}],
            "parent": {"gid": "100", "name": "Quarter close"},
            "custom_fields": [None, {"gid": "cf1", "name": "Priority", "resource_subtype": "enum"}],
        })

        self.assertEqual(task.gid, "111")
        self.assertEqual(task.assignee.name, "Ada")
        self.assertEqual(task.assignee_status, AssigneeStatus.LATER)
        self.assertEqual(task.created_at, datetime(2017, 5, 1, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(task.due_on, DueDate(2017, 5, 9))
        self.assertEqual(task.num_hearts, 3)
        self.assertEqual(task.tags[0].color, "dark-red")
        self.assertEqual(task.projects[0].name, "Reports")
        self.assertEqual(task.followers[0].email, "ada@example.com")
        self.assertEqual(task.parent.gid, "100")
        self.assertEqual(len(task.custom_fields), 1)

    def test_records_are_immutable(self):
        tag = Tag.from_dict({"gid": "1", "name": "x"})
        with self.assertRaises(Exception):
            tag.name = "y"

    def test_legacy_numeric_id(self):
        self.assertEqual(Workspace.from_dict({"id": 1234, "name": "Acme"}).gid, "1234")

    def test_user_workspaces(self):
        user = User.from_dict({"gid": "9", "workspaces": [{"gid": "1", "name": "Acme"}]})
        self.assertEqual(user.workspaces[0].name, "Acme")

    def test_custom_field_workspace_as_string(self):
        field = CustomField.from_dict({"gid": "cf", "workspace": "1"})
        self.assertEqual(field.workspace.gid, "1")

    def test_custom_field_settings(self):
        settings = CustomFieldSettings.from_dict({
            "gid": "s1",
            "resource_type": "custom_field_setting",
            "is_important": True,
            "custom_field": {"gid": "cf", "name": "Priority", "resource_subtype": "enum"},
            "parent": {"gid": "7", "name": "Reports"},
        })
        self.assertEqual(settings.custom_field.name, "Priority")
        self.assertTrue(settings.is_important)
        self.assertEqual(settings.parent.gid, "7")
        self.assertEqual(CustomFieldSettings.from_dict({"gid": "s2"}).custom_field, None)


class TestSerialization(unittest.TestCase):
    """Test request descriptor serialization."""

    def test_read_only_fields_are_stripped(self):
        wire = to_wire_dict(TaskRequest(name="t", workspace="1", num_hearts=4))
        self.assertNotIn("num_hearts", wire)
        self.assertEqual(wire, {"name": "t", "workspace": "1"})

    def test_unset_fields_omitted(self):
        self.assertEqual(to_wire_dict(TaskRequest()), {})

    def test_task_query(self):
        request = TaskRequest(
            workspace="1",
            assignee_status=AssigneeStatus.TODAY,
            due_on=DueDate(2017, 5, 9),
            completed=True,
            limit=50,
        )
        query = dict(parse_qsl(request.to_query()))
        self.assertEqual(query["workspace"], "1")
        self.assertEqual(query["assignee_status"], "today")
        self.assertEqual(query["due_on"], "2017-05-09")
        self.assertEqual(query["completed"], "true")
        self.assertEqual(query["limit"], "50")

    def test_create_body_drops_query_only_fields(self):
        request = TaskRequest(name="t", projects=["7"], limit=10, offset="abc", num_hearts=2)
        payload = json.loads(request.to_create_body())
        self.assertEqual(payload, {"data": {"name": "t", "projects": ["7"]}})

    def test_with_defaults_fills_limit(self):
        self.assertEqual(TaskRequest().with_defaults().limit, 20)
        self.assertEqual(TaskRequest(limit=5).with_defaults().limit, 5)

    def test_tag_form_encoding(self):
        form = encode_query(to_wire_dict(CreateTagRequest(name="urgent", color="dark-red", workspace="1")))
        self.assertEqual(form, "name=urgent&color=dark-red&workspace=1")

    def test_story_task_id_not_sent(self):
        wire = to_wire_dict(CreateStoryRequest(task_id="42", text="Done"))
        self.assertEqual(wire, {"text": "Done"})

    def test_nested_enum_options(self):
        request = CreateCustomFieldRequest(
            name="Priority",
            resource_subtype="enum",
            workspace="1",
            enum_options=[EnumOptionRequest(name="High", color="red")],
        )
        wire = to_wire_dict(request)
        self.assertEqual(wire["enum_options"], [{"name": "High", "color": "red", "enabled": True}])
        self.assertNotIn("precision", wire)

    def test_format_opt_fields(self):
        self.assertEqual(format_opt_fields(["name", "workspace.name"]), "this.name,this.workspace.name")

    def test_require_gid(self):
        self.assertEqual(require_gid("  12 ", "taskID"), "12")
        with self.assertRaises(AsanaValidationError) as ctx:
            require_gid("   ", "taskID")
        self.assertEqual(str(ctx.exception), "expecting a non-empty taskID")
        with self.assertRaises(AsanaValidationError):
            require_gid(None, "taskID")


class TestUnwrapSingle(unittest.TestCase):
    def test_unwraps_data(self):
        tag = unwrap_single(b'{"data": {"gid": "5", "name": "x"}}', Tag.from_dict, "tag", "5")
        self.assertEqual(tag, Tag(gid="5", name="x"))

    def test_null_data_is_domain_error(self):
        with self.assertRaises(ResourceNotFoundError) as ctx:
            unwrap_single(b'{"data": null}', Tag.from_dict, "tag", "5")
        self.assertEqual(str(ctx.exception), "no tag found for ID 5")

    def test_malformed_json_is_decode_error(self):
        with self.assertRaises(AsanaDecodeError):
            unwrap_single(b"{not json", Tag.from_dict, "tag", "5")

    def test_non_object_data_is_decode_error(self):
        with self.assertRaises(AsanaDecodeError):
            unwrap_single(b'{"data": [1, 2]}', Tag.from_dict, "tag", "5")


class TestSearchRequest(unittest.TestCase):
    """Test the search filter builder."""

    def test_empty(self):
        self.assertEqual(SearchRequest().to_query(), "")

    def test_chained_filters_in_order(self):
        search = (SearchRequest()
            .with_field("text", "invoice")
            .with_custom_field_is_set("12", True)
            .with_custom_field_greater("34", 10)
            .with_custom_field_less("34", 2.5))

        self.assertEqual(list(search.fields.items()), [
            ("text", "invoice"),
            ("custom_fields.12.is_set", "true"),
            ("custom_fields.34.greater_than", "10.000000"),
            ("custom_fields.34.less_than", "2.500000"),
        ])

    def test_later_value_overrides(self):
        search = SearchRequest().with_field("text", "a").with_field("text", "b")
        self.assertEqual(search.to_query(), "text=b")

    def test_is_set_false(self):
        search = SearchRequest().with_custom_field_is_set("12", False)
        self.assertEqual(search.fields["custom_fields.12.is_set"], "false")


if __name__ == "__main__":
    unittest.main()
