"""Single-user editing session with rollback to the last good document."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Optional

from .errors import EditFailed
from .import_export import ExportResult, ImportResult, export_metadata, import_metadata
from .schema import new_document

logger = logging.getLogger(__name__)


class EditSession:
    """Holds the working document and a snapshot of the last good state.

    Edits are functions ``edit(document, *args) -> document``. A failing edit
    restores the snapshot, so whatever the front-end renders next is the
    state before the failure.
    """

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.document: Dict[str, Any] = copy.deepcopy(document) if document is not None else new_document()
        self._snapshot = copy.deepcopy(self.document)

    @property
    def last_good(self) -> Dict[str, Any]:
        return copy.deepcopy(self._snapshot)

    def commit(self) -> None:
        self._snapshot = copy.deepcopy(self.document)

    def rollback(self) -> None:
        self.document = copy.deepcopy(self._snapshot)

    def apply(self, edit: Callable[..., Optional[Dict[str, Any]]], *args, **kwargs) -> Dict[str, Any]:
        """Run ``edit`` on a copy of the document and commit its result.

        Edits that mutate in place may return ``None``.
        """
        working = copy.deepcopy(self.document)
        try:
            result = edit(working, *args, **kwargs)
        except Exception as e:
            logger.exception(f"Edit {getattr(edit, '__name__', edit)!r} failed; restoring last good document")
            self.rollback()
            raise EditFailed(str(e)) from e
        self.document = result if result is not None else working
        self.commit()
        return self.document

    def load_yaml(self, text: str) -> ImportResult:
        """Replace the document with an imported one; a failed import changes nothing."""
        result = import_metadata(text)
        if result.success and result.document is not None:
            self.document = result.document
            self.commit()
        return result

    def export(self) -> ExportResult:
        return export_metadata(self.document)

    def reset(self, defaults: bool = True) -> None:
        self.document = new_document(defaults)
        self.commit()
