"""Rendering of the incident message posted to Slack and Datadog."""

from __future__ import annotations

import re
from typing import Dict, Mapping

# Modal block id -> template placeholder name.
FIELD_PLACEHOLDERS: Dict[str, str] = {
    "input_severity": "severity",
    "input_domains_affected": "domains_affected",
    "input_incident_description": "description",
}

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def placeholder_values(fields: Mapping[str, str], username: str) -> Dict[str, str]:
    """Map submitted modal fields onto template placeholder names."""

    values = {
        placeholder: fields[key] for key, placeholder in FIELD_PLACEHOLDERS.items() if key in fields
    }
    values["username"] = username
    return values


def render_message(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown ones are left as written."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, template)


def render_incident_message(template: str, fields: Mapping[str, str], username: str) -> str:
    return render_message(template, placeholder_values(fields, username))
