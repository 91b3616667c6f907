from __future__ import annotations

import re
from collections import Counter
from collections.abc import Hashable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from jsonschema import Draft7Validator, FormatChecker

from .channel_maps import CHANNEL_MAP_KEY, ELECTRODE_GROUPS_KEY, orphaned_channel_maps
from .channel_map_editor import as_channel
from .schema import load_schema

# Checks the whole document against the shared JSON Schema and against
# cross-field rules the schema cannot express. Nothing here raises for an
# invalid document; every problem becomes an Issue.


@dataclass(frozen=True)
class Issue:
    path: str
    code: str
    message: str
    severity: str = "error"
    instance_path: str = ""
    schema_path: str = ""


format_checker = FormatChecker()

_DATETIME_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}T")


@format_checker.checks("date-time", raises=ValueError)
def _is_datetime(instance: Any) -> bool:
    # Unlike the quick check, calendar values are enforced here
    if not isinstance(instance, str):
        return True
    if not _DATETIME_SHAPE.match(instance):
        return False
    datetime.fromisoformat(instance)
    return True


_validator: Optional[Draft7Validator] = None


def get_validator() -> Draft7Validator:
    global _validator
    if _validator is None:
        _validator = Draft7Validator(load_schema(), format_checker=format_checker)
    return _validator


def normalize_path(parts: Iterable[Any]) -> str:
    """Render a path as ``subject.weight`` / ``cameras[0].id``."""
    out = ""
    for part in parts:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _json_pointer(parts: Iterable[Any]) -> str:
    return "".join(f"/{p}" for p in parts)


def _sanitize_message(error, instance_path: str) -> str:
    if not error.message:
        return "Validation error"
    if error.validator == "pattern" and "\\S" in str(error.validator_value):
        field_name = normalize_path(error.absolute_path)
        return f"{field_name} cannot be empty or contain only whitespace"
    if instance_path == "/subject/date_of_birth":
        return "Date of birth needs to comply with ISO 8601 format"
    return error.message


def _missing_property(error) -> Optional[str]:
    missing = [p for p in error.validator_value if isinstance(error.instance, dict) and p not in error.instance]
    return next((p for p in missing if error.message.startswith(repr(p))), None)


def schema_validation(document: Any) -> List[Issue]:
    """Validate against the JSON Schema, collecting every error."""
    issues: List[Issue] = []
    for error in get_validator().iter_errors(document):
        parts = list(error.absolute_path)
        instance_path = _json_pointer(parts)
        if error.validator == "required":
            missing = _missing_property(error)
            if missing is not None:
                parts.append(missing)
        issues.append(
            Issue(
                path=normalize_path(parts),
                code=str(error.validator),
                message=_sanitize_message(error, instance_path),
                instance_path=instance_path,
                schema_path=_json_pointer(error.absolute_schema_path),
            )
        )
    return issues


def _has_camera_ids(items: Any, many: bool) -> bool:
    if not isinstance(items, list):
        return False
    for item in items:
        if not isinstance(item, dict):
            continue
        camera_id = item.get("camera_id")
        if many and isinstance(camera_id, list) and camera_id:
            return True
        if not many and camera_id not in (None, "", []):
            return True
    return False


def rules_validation(document: Any) -> List[Issue]:
    """Cross-field rules:

    - tasks and associated video files may only reference cameras when
      cameras are defined
    - optogenetics needs all of excitation source, fiber and injection, or none
    - a channel map must not use a logical channel twice
    - channel maps must reference an existing electrode group
    - electrode group ids must be unique
    """
    if not isinstance(document, dict):
        return []

    issues: List[Issue] = []

    if not document.get("cameras"):
        if _has_camera_ids(document.get("tasks"), many=True):
            issues.append(Issue("tasks", "missing_camera", "Tasks have camera_ids, but no cameras are defined"))
        if _has_camera_ids(document.get("associated_video_files"), many=False):
            issues.append(
                Issue(
                    "associated_video_files",
                    "missing_camera",
                    "Associated video files have camera_ids, but no cameras are defined",
                )
            )

    opto = {
        "opto_excitation_source": bool(document.get("opto_excitation_source")),
        "optical_fiber": bool(document.get("optical_fiber")),
        "virus_injection": bool(document.get("virus_injection")),
    }
    if 0 < sum(opto.values()) < len(opto):
        status = ", ".join(f"{k}{' ✓' if present else ' ✗'}" for k, present in opto.items())
        issues.append(
            Issue(
                "optogenetics",
                "partial_configuration",
                f"Partial optogenetics configuration detected. All fields required: {status}",
            )
        )

    channel_maps = document.get(CHANNEL_MAP_KEY)
    for index, ntrode in enumerate(channel_maps if isinstance(channel_maps, list) else []):
        if not isinstance(ntrode, dict) or not isinstance(ntrode.get("map"), dict):
            continue
        values = []
        for v in ntrode["map"].values():
            try:
                channel = as_channel(v)
            except (TypeError, ValueError):
                continue
            if channel is not None:
                values.append(channel)
        duplicated = sorted(v for v, n in Counter(values).items() if n > 1)
        if duplicated:
            issues.append(
                Issue(
                    f"{CHANNEL_MAP_KEY}[{index}].map",
                    "duplicate_channels",
                    f"Ntrode {ntrode.get('ntrode_id')} has duplicate channel mappings. "
                    f"Channel(s) {', '.join(str(d) for d in duplicated)} are mapped "
                    f"to multiple physical channels.",
                )
            )

    groups = document.get(ELECTRODE_GROUPS_KEY)
    if isinstance(groups, list) and isinstance(document.get(CHANNEL_MAP_KEY), list):
        orphans = [id(m) for m in orphaned_channel_maps(document)]
        for index, ntrode in enumerate(document[CHANNEL_MAP_KEY]):
            if id(ntrode) not in orphans:
                continue
            issues.append(
                Issue(
                    f"{CHANNEL_MAP_KEY}[{index}].electrode_group_id",
                    "orphaned_channel_map",
                    f"Ntrode {ntrode.get('ntrode_id')} references electrode group "
                    f"{ntrode.get('electrode_group_id')}, which does not exist",
                )
            )

    if isinstance(groups, list):
        ids = Counter(g.get("id") for g in groups if isinstance(g, dict) and isinstance(g.get("id"), Hashable))
        for group_id, count in ids.items():
            if count > 1:
                issues.append(
                    Issue(
                        ELECTRODE_GROUPS_KEY,
                        "duplicate_id",
                        f"Electrode group id {group_id} is used by {count} groups",
                    )
                )

    return issues


def validate(document: Any) -> List[Issue]:
    """Schema and rule issues together, sorted by path then code."""
    issues = schema_validation(document) + rules_validation(document)
    return sorted(issues, key=lambda i: (i.path, i.code))


def validate_field(document: Any, field_path: str) -> List[Issue]:
    """Issues at ``field_path`` or anywhere below it."""
    return [
        issue
        for issue in validate(document)
        if issue.path == field_path
        or issue.path.startswith(field_path + ".")
        or issue.path.startswith(field_path + "[")
    ]


def summarize_issues(issues: List[Issue]) -> Dict[str, Any]:
    """Return a dict with:
    - ok: bool
    - count: int
    - by_code: dict code->count
    - paths: every offending path, in order
    """
    return {
        "ok": not issues,
        "count": len(issues),
        "by_code": dict(Counter(i.code for i in issues)),
        "paths": [i.path for i in issues],
    }
