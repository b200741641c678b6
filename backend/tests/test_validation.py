"""
DevConnect Backend: Schema Registry & Validator Tests
=======================================================

What we test:
    ✅ Registration rules (identical re-register, conflicting document, frozen)
    ✅ Validation outcomes: errors mapped per field path, defaults applied
    ✅ Messages never echo the rejected value
    ✅ Query coercion of numeric strings
    ✅ Every registered default schema is a valid Draft 7 document
"""

import pytest
from jsonschema.exceptions import SchemaError

from devconnect.schemas.json_schemas import DEFAULT_SCHEMAS
from devconnect.validation import (
    SchemaRegistrationError,
    SchemaRegistry,
    UnknownSchemaError,
    build_default_registry,
    coerce_query,
    coerce_query_value,
)

SIMPLE = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 2},
        "size": {"type": "integer", "default": 3},
    },
}


class TestRegistration:

    def test_identical_document_can_be_registered_twice(self):
        registry = SchemaRegistry()
        registry.register_schema("Simple", SIMPLE)
        registry.register_schema("Simple", dict(SIMPLE))
        assert registry.names() == ["Simple"]

    def test_conflicting_document_is_rejected(self):
        registry = SchemaRegistry({"Simple": SIMPLE})
        with pytest.raises(SchemaRegistrationError):
            registry.register_schema("Simple", {"type": "string"})

    def test_frozen_registry_rejects_registration(self):
        registry = SchemaRegistry({"Simple": SIMPLE}).freeze()
        assert registry.frozen
        with pytest.raises(SchemaRegistrationError):
            registry.register_schema("Other", {"type": "string"})

    def test_malformed_schema_fails_fast(self):
        with pytest.raises(SchemaError):
            SchemaRegistry({"Broken": {"type": "no-such-type"}})

    def test_registered_document_is_copied(self):
        document = {"type": "object", "properties": {"a": {"type": "string"}}}
        registry = SchemaRegistry({"Doc": document})
        document["properties"]["a"]["type"] = "integer"
        assert registry.validate("Doc", {"a": "text"}).is_valid

    def test_unknown_schema_name(self):
        with pytest.raises(UnknownSchemaError):
            SchemaRegistry().validate("Missing", {})


class TestValidate:

    def setup_method(self):
        self.registry = SchemaRegistry({"Simple": SIMPLE})

    def test_valid_data_gets_defaults(self):
        outcome = self.registry.validate("Simple", {"name": "ok"})
        assert outcome.is_valid
        assert outcome.errors == ()
        assert outcome.data == {"name": "ok", "size": 3}

    def test_missing_required_property_uses_its_name_as_path(self):
        outcome = self.registry.validate("Simple", {})
        assert not outcome.is_valid
        assert outcome.error_map() == {"name": "must have required property 'name'"}

    def test_invalid_outcome_has_errors_and_no_data(self):
        outcome = self.registry.validate("Simple", {"name": "x", "size": "big"})
        assert not outcome.is_valid
        assert outcome.data is None
        errors = outcome.error_map()
        assert errors["name"] == "must NOT have fewer than 2 characters"
        assert errors["size"] == "must be integer"

    def test_nested_paths_are_dot_joined(self):
        registry = SchemaRegistry({
            "Nested": {
                "type": "object",
                "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
            }
        })
        outcome = registry.validate("Nested", {"tags": ["ok", 5]})
        assert outcome.error_map() == {"tags.1": "must be string"}


class TestDefaultSchemas:

    def setup_method(self):
        self.registry = build_default_registry()

    def test_registry_is_frozen_and_complete(self):
        assert self.registry.frozen
        for name in (
            "AuthRegister", "AuthLogin", "AuthRefresh", "PaginationQuery",
            "ProjectListQuery", "CommentListQuery", "RepliesQuery", "IdParam",
            "UserIdParam", "ProjectIdParam", "CommentIdParam", "ProjectCreate",
            "ProjectUpdate", "CommentCreate", "ProfileUpdate",
        ):
            assert name in self.registry

    def test_every_default_schema_is_registered(self):
        assert set(self.registry.names()) == set(DEFAULT_SCHEMAS)

    def test_short_password_message_does_not_echo_value(self):
        outcome = self.registry.validate("AuthRegister", {
            "full_name": "Ada Lovelace",
            "username": "ada",
            "email": "ada@example.com",
            "password": "short",
        })
        assert not outcome.is_valid
        message = outcome.error_map()["password"]
        assert message == "must NOT have fewer than 8 characters"
        assert "short" not in message

    def test_email_format_is_checked(self):
        outcome = self.registry.validate("AuthLogin", {"email": "not-an-email", "password": "x"})
        assert outcome.error_map() == {"email": 'must match format "email"'}

    def test_username_pattern(self):
        outcome = self.registry.validate("AuthRegister", {
            "full_name": "Ada Lovelace",
            "username": "ada lovelace",
            "email": "ada@example.com",
            "password": "longenough",
        })
        assert "username" in outcome.error_map()

    def test_project_create_rejects_unknown_fields(self):
        outcome = self.registry.validate("ProjectCreate", {
            "title": "My project",
            "description": "A description long enough",
            "tech_stack": ["Python"],
            "owner": "me",
        })
        assert outcome.error_map() == {"owner": "must NOT have additional properties"}

    def test_project_update_needs_one_field(self):
        assert not self.registry.validate("ProjectUpdate", {}).is_valid
        assert self.registry.validate("ProjectUpdate", {"title": "New title"}).is_valid

    def test_whitespace_comment_is_invalid(self):
        outcome = self.registry.validate("CommentCreate", {"content": "   "})
        assert "content" in outcome.error_map()

    def test_comment_length_limit(self):
        assert self.registry.validate("CommentCreate", {"content": "x" * 2000}).is_valid
        assert not self.registry.validate("CommentCreate", {"content": "x" * 2001}).is_valid

    def test_id_param_requires_uuid(self):
        good = self.registry.validate("IdParam", {"id": "3f2b8c1e-4a5d-4e6f-8a9b-0c1d2e3f4a5b"})
        bad = self.registry.validate("IdParam", {"id": "not-a-uuid"})
        assert good.is_valid
        assert "id" in bad.error_map()

    def test_comment_query_defaults(self):
        outcome = self.registry.validate("CommentListQuery", {})
        assert outcome.data == {"page": 1, "limit": 10, "sort": "newest"}

    def test_limit_above_maximum_is_accepted_for_clamping(self):
        assert self.registry.validate("PaginationQuery", {"limit": 200}).is_valid

    def test_sort_enum(self):
        outcome = self.registry.validate("CommentListQuery", {"sort": "random"})
        assert "sort" in outcome.error_map()


class TestQueryCoercion:

    @pytest.mark.parametrize("raw,expected", [
        ("2", 2),
        ("-1", -1),
        ("2.5", 2.5),
        ("abc", "abc"),
        ("", ""),
        ("inf", "inf"),
        ("nan", "nan"),
        ("1_0", "1_0"),
        (" 12 ", " 12 "),
        ("12\n", "12\n"),
        ("1e3", 1000.0),
        ("+5", 5),
        (".5", 0.5),
    ])
    def test_coerce_value(self, raw, expected):
        assert coerce_query_value(raw) == expected

    def test_coerce_mapping(self):
        assert coerce_query({"page": "2", "search": "react"}) == {"page": 2, "search": "react"}
