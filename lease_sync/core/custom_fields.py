"""Custom field shape adapters.

The two CRM API generations disagree on the custom field shape: generation 1
uses a nested {field_id: value} object (``customField``), generation 2 an
array of {"id", "value"} entries (``customFields``). Internally custom fields
are always a map; these adapters convert at the client boundary.
"""

from typing import Any

CustomFieldSet = dict[str, Any] | list[dict[str, Any]]


def to_remote_array(fields: CustomFieldSet | None) -> list[dict[str, Any]]:
    """Convert custom fields to the array-of-{id, value} shape.

    Arrays are passed through unchanged; anything that is neither a map nor
    an array becomes an empty array.
    """
    if isinstance(fields, list):
        return fields
    if isinstance(fields, dict):
        return [{"id": field_id, "value": value} for field_id, value in fields.items()]
    return []


def from_remote_array(fields: CustomFieldSet | None) -> dict[str, Any]:
    """Convert custom fields in either shape to a {field_id: value} map."""
    if isinstance(fields, dict):
        return dict(fields)
    if not isinstance(fields, list):
        return {}
    result: dict[str, Any] = {}
    for entry in fields:
        if not isinstance(entry, dict):
            continue
        field_id = entry.get("id") or entry.get("key")
        if not field_id:
            continue
        if "value" in entry:
            result[field_id] = entry["value"]
        else:
            result[field_id] = entry.get("field_value")
    return result
