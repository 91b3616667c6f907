"""Import and export of whole metadata documents.

Import never hands back a half-parsed document: a YAML syntax error yields
no document at all. A document that parses but fails validation is imported
field by field, leaving out the top-level fields that have issues. Export is
blocked while any issue remains and reports every offending path.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .channel_map_editor import UNASSIGNED, as_channel
from .channel_maps import CHANNEL_MAP_KEY
from .errors import YamlParseError
from .schema import EMPTY_DOCUMENT, GENDERS
from .validation import Issue, validate
from .yaml_io import decode, encode, format_filename

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    total_fields: int
    imported_fields: List[str]
    excluded_fields: List[Dict[str, str]] = field(default_factory=list)

    @property
    def has_exclusions(self) -> bool:
        return bool(self.excluded_fields)


@dataclass
class ImportResult:
    success: bool
    error: Optional[str] = None
    document: Optional[Dict[str, Any]] = None
    summary: Optional[ImportSummary] = None
    issues: List[Issue] = field(default_factory=list)


@dataclass
class ExportResult:
    success: bool
    yaml: Optional[str] = None
    filename: Optional[str] = None
    issues: List[Issue] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        return None if self.success else "Validation failed"


def _top_level(path: str) -> str:
    return path.split("[")[0].split(".")[0]


def _same_kind(expected: Any, actual: Any) -> bool:
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool)
    if isinstance(expected, (int, float)):
        return isinstance(actual, (int, float))
    return isinstance(actual, type(expected))


def _clear_legacy_channels(content: Dict[str, Any]) -> int:
    """Rewrite legacy unassigned channel values (``-1``, ``"-1"``, ``""``) as null, in place."""
    cleared = 0
    maps = content.get(CHANNEL_MAP_KEY)
    for entry in maps if isinstance(maps, list) else []:
        if not isinstance(entry, dict) or not isinstance(entry.get("map"), dict):
            continue
        for key, value in entry["map"].items():
            if value is UNASSIGNED:
                continue
            try:
                channel = as_channel(value)
            except (TypeError, ValueError):
                continue
            if channel is UNASSIGNED:
                entry["map"][key] = UNASSIGNED
                cleared += 1
    return cleared


def import_metadata(text: str) -> ImportResult:
    try:
        content = decode(text)
    except YamlParseError as e:
        logger.warning(f"Rejected YAML import: {e}")
        return ImportResult(success=False, error=f"Invalid YAML file: {e}")

    if not isinstance(content, dict):
        logger.warning(f"Rejected YAML import: top level is {type(content).__name__}, not a mapping")
        return ImportResult(success=False, error="Invalid YAML file: the document must be a mapping of fields")

    cleared = _clear_legacy_channels(content)
    if cleared:
        logger.info(f"Read {cleared} legacy unassigned channel value(s) as null")

    form_keys = list(EMPTY_DOCUMENT.keys())
    issues = validate(content)

    if not issues:
        document = copy.deepcopy(content)
        for key in form_keys:
            if key not in document:
                document[key] = copy.deepcopy(EMPTY_DOCUMENT[key])
        summary = ImportSummary(
            total_fields=sum(1 for k in form_keys if k in content),
            imported_fields=[k for k in form_keys if k in content and content[k] != EMPTY_DOCUMENT[k]],
        )
        return ImportResult(success=True, document=document, summary=summary)

    error_fields = list(dict.fromkeys(_top_level(issue.path) for issue in issues))
    document = copy.deepcopy(EMPTY_DOCUMENT)
    for key in form_keys:
        if key in error_fields or key not in content:
            continue
        if _same_kind(EMPTY_DOCUMENT[key], content[key]):
            document[key] = copy.deepcopy(content[key])

    if not isinstance(document.get("subject"), dict):
        document["subject"] = copy.deepcopy(EMPTY_DOCUMENT["subject"])
    if document["subject"].get("sex") not in GENDERS:
        document["subject"]["sex"] = "U"

    excluded = [
        {
            "field": name,
            "reason": next((i.message for i in issues if _top_level(i.path) == name), "Validation error"),
        }
        for name in error_fields
    ]
    summary = ImportSummary(
        total_fields=sum(1 for k in form_keys if k in content),
        imported_fields=[k for k in form_keys if k not in error_fields and k in content],
        excluded_fields=excluded,
    )
    logger.warning(f"Partial import: excluded {', '.join(error_fields)}")
    return ImportResult(success=True, document=document, summary=summary, issues=issues)


def export_metadata(document: Dict[str, Any]) -> ExportResult:
    form = copy.deepcopy(document)
    issues = validate(form)
    if issues:
        logger.info(f"Export blocked by {len(issues)} validation issue(s)")
        return ExportResult(success=False, issues=issues)
    return ExportResult(success=True, yaml=encode(form), filename=format_filename(form))
