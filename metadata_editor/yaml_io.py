"""YAML encoding and decoding for metadata documents.

Output is deterministic: the same document always produces the same bytes,
and text produced by :func:`encode` survives ``encode(decode(text))``
unchanged. Guarantees:

- keys keep insertion order (the order they were read or authored in)
- block style, two-space indents, no tabs, ``\\n`` line endings
- empty mappings and sequences are written as ``{}`` and ``[]``
- ``None`` is written as ``null``; keys holding :data:`MISSING` are dropped
- numerals stored as strings are quoted so they read back as strings
- date and time strings stay strings (they are quoted on output and the
  loader does not turn them into ``datetime`` objects)
"""

from __future__ import annotations

from typing import Any, Dict

import yaml

from .errors import YamlParseError

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _Missing:
    """Marker for "no value", distinct from an explicit ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class MetadataDumper(yaml.SafeDumper):
    def ignore_aliases(self, data):
        return True


class MetadataLoader(yaml.SafeLoader):
    pass


# Dates must come back as the strings they were written from
MetadataLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _prune(value: Any) -> Any:
    """Copy ``value`` without MISSING entries, as plain dicts and lists."""
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not MISSING}
    if isinstance(value, (list, tuple)):
        return [_prune(v) for v in value if v is not MISSING]
    if isinstance(value, (set, frozenset)):
        return sorted(_prune(v) for v in value)
    return value


def encode(document: Any) -> str:
    """Serialize a document to YAML text."""
    if document is None or document is MISSING:
        document = {}
    return yaml.dump(
        _prune(document),
        Dumper=MetadataDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        indent=2,
        width=float("inf"),
        line_break="\n",
    )


def decode(text: str) -> Any:
    """Parse YAML text. Raises :class:`YamlParseError` on malformed input."""
    try:
        return yaml.load(text, Loader=MetadataLoader)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        problem = e.problem or e.context or "invalid YAML"
        if mark is None:
            raise YamlParseError(problem) from e
        raise YamlParseError(problem, mark.line + 1, mark.column + 1) from e
    except yaml.YAMLError as e:
        raise YamlParseError(str(e)) from e


def format_filename(document: Dict[str, Any]) -> str:
    """Return ``<mmddYYYY>_<subject id>_metadata.yml`` as trodes_to_nwb expects."""
    experiment_date = document.get("EXPERIMENT_DATE_in_format_mmddYYYY") or "{EXPERIMENT_DATE_in_format_mmddYYYY}"
    subject_id = str((document.get("subject") or {}).get("subject_id") or "").lower()
    return f"{experiment_date}_{subject_id}_metadata.yml"
