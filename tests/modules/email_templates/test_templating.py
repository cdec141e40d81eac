"""
Unit tests for template placeholder handling.
"""

import pytest

from vulcan.modules.email_templates.templating import (
    TemplateRenderError,
    extract_variables,
    render,
    sample_variables,
    substitute,
    validate_content,
)


class TestExtractVariables:
    def test_both_placeholder_forms(self):
        assert extract_variables("Hi %<first_name>s, see %{link}") == ["first_name", "link"]

    def test_angle_form_without_trailing_s(self):
        assert extract_variables("Code: %<voucher_code>") == ["voucher_code"]

    def test_duplicates_removed_in_order(self):
        text = "%{a} %<b>s %{a} %<c>s %<b>s"
        assert extract_variables(text) == ["a", "b", "c"]

    def test_empty_text(self):
        assert extract_variables(None) == []
        assert extract_variables("") == []


class TestSubstitute:
    def test_replaces_known_and_keeps_unknown(self):
        result = substitute("Dear %<name>s, %{unknown}", {"name": "Ada"})
        assert result == "Dear Ada, %{unknown}"

    def test_none_becomes_empty(self):
        assert substitute("[%{note}]", {"note": None}) == "[]"

    def test_non_string_values(self):
        assert substitute("%<count>s days", {"count": 7}) == "7 days"


class TestRender:
    def test_renders_subject_and_body(self):
        subject, body = render(
            "welcome",
            "Hello %<name>s",
            "Your code is %{code}",
            ["name", "code"],
            {"name": "Ada", "code": "ABC"},
        )
        assert subject == "Hello Ada"
        assert body == "Your code is ABC"

    def test_missing_required_variable_raises(self):
        with pytest.raises(TemplateRenderError) as exc_info:
            render("welcome", "Hi", "%{code}", ["code", "name"], {"code": "ABC"})
        assert "welcome" in str(exc_info.value)
        assert "name" in str(exc_info.value)

    def test_required_variable_set_to_none_raises(self):
        with pytest.raises(TemplateRenderError):
            render("welcome", "Hi", "%{code}", ["code"], {"code": None})


class TestValidateContent:
    def test_valid_content(self):
        errors = validate_content("Hi %<name>s", "Code %{code}", ["code"], ["name"])
        assert errors == []

    def test_unauthorized_variable_in_subject(self):
        errors = validate_content("Hi %<secret>s", "Code %{code}", ["code"], [])
        assert len(errors) == 1
        assert errors[0].startswith("Subject contains unauthorized variables: secret")

    def test_required_variable_must_be_in_body(self):
        errors = validate_content("Code %{code}", "Hello", ["code"], [])
        assert errors == ["Body is missing required variables: code"]


def test_sample_variables():
    assert sample_variables(["voucher_code"]) == {"voucher_code": "Sample Voucher Code"}
