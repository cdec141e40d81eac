"""
Template placeholder handling.

Bodies and subjects use printf-style named placeholders, either
`%<name>s` or `%{name}`. Only variables declared on the template may be
used, and every required variable must appear in the body.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

# %{name} or %<name>s (the trailing "s" is optional on the angle form)
PLACEHOLDER_PATTERN = re.compile(r"%\{(\w+)\}|%<(\w+)>s?")


def _placeholder_name(match: re.Match) -> str:
    return match.group(1) or match.group(2)


class TemplateRenderError(ValueError):
    """Raised when a template cannot be rendered with the given variables."""


def extract_variables(text: str | None) -> list[str]:
    """Placeholder names in order of first appearance, without duplicates."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        seen.setdefault(_placeholder_name(match), None)
    return list(seen)


def substitute(text: str, variables: Mapping[str, Any]) -> str:
    """Replace known placeholders; unknown ones are left untouched."""

    def replace(match: re.Match) -> str:
        name = _placeholder_name(match)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def render(
    name: str,
    subject: str,
    body: str,
    required: Iterable[str],
    variables: Mapping[str, Any],
) -> tuple[str, str]:
    """
    Render a subject and body.

    Raises:
        TemplateRenderError: If a required variable is missing or None
    """
    missing = [var for var in required if variables.get(var) is None]
    if missing:
        raise TemplateRenderError(
            f"Missing required variables for template '{name}': {', '.join(missing)}"
        )
    return substitute(subject, variables), substitute(body, variables)


def validate_content(
    subject: str,
    body: str,
    required: Iterable[str],
    optional: Iterable[str],
) -> list[str]:
    """
    Check placeholders against the declared variables.

    Returns:
        A list of error messages, empty when the content is valid
    """
    required = list(required)
    allowed = required + [var for var in optional if var not in required]
    errors = []

    for field_name, text in (("Subject", subject), ("Body", body)):
        unauthorized = [var for var in extract_variables(text) if var not in allowed]
        if unauthorized:
            errors.append(
                f"{field_name} contains unauthorized variables: {', '.join(unauthorized)}. "
                f"Only use: {', '.join(allowed) or '(none)'}"
            )

    used_in_body = set(extract_variables(body))
    missing = [var for var in required if var not in used_in_body]
    if missing:
        errors.append(f"Body is missing required variables: {', '.join(missing)}")

    return errors


def sample_variables(names: Iterable[str]) -> dict[str, str]:
    """Placeholder values for previews and test sends."""
    return {name: f"Sample {name.replace('_', ' ').title()}" for name in names}
