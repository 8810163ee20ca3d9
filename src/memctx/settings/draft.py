"""Working-draft management for the context settings editor.

The controller owns the draft exclusively. Each mutation builds a new
read-only mapping, so listeners (the preview coordinator, renderers) can
detect changes by identity instead of diffing.

A new external configuration always replaces the draft outright. Unsaved
edits are discarded when that happens; that is the expected behaviour
after the host reloads or re-saves settings.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from . import codec
from .schema import FieldType, get_field_by_key

logger = logging.getLogger(__name__)

Draft = Mapping[str, str]
DraftCallback = Callable[[Draft], None]
CommitHandler = Callable[[Draft], None]


def _freeze(values: Mapping[str, str]) -> Draft:
    return MappingProxyType(dict(values))


class DraftStateController:
    """Holds the working copy of a configuration between saves.

    Example:
        ctrl = DraftStateController(on_commit=host.save)
        ctrl.initialize({"CLAUDE_MEM_CONTEXT_OBSERVATIONS": "50"})
        ctrl.set_field("CLAUDE_MEM_CONTEXT_OBSERVATIONS", "75")
        ctrl.commit()  # hands the draft to host.save
    """

    def __init__(self, on_commit: Optional[CommitHandler] = None):
        self._on_commit = on_commit
        self._source: Optional[Mapping[str, str]] = None
        self._seed: Draft = _freeze({})
        self._draft: Draft = self._seed
        self._callbacks: List[DraftCallback] = []

    # -- seeding --------------------------------------------------------------

    def initialize(self, config: Mapping[str, str]) -> Draft:
        """Replace the draft with a copy of ``config``.

        Unconditional: any unsaved edits are dropped.
        """
        self._source = config
        self._seed = _freeze(config)
        if self._draft != self._seed:
            logger.debug("Draft reset from external configuration (%d keys)", len(self._seed))
        self._replace(self._seed)
        return self._draft

    def sync(self, config: Mapping[str, str]) -> Draft:
        """Re-seed only if ``config`` is a different object than the last seed."""
        if config is self._source:
            return self._draft
        return self.initialize(config)

    # -- read -----------------------------------------------------------------

    @property
    def draft(self) -> Draft:
        return self._draft

    def get_draft(self) -> Draft:
        """Current working copy, for rendering and as the commit payload."""
        return self._draft

    @property
    def is_dirty(self) -> bool:
        """Whether the draft differs from the configuration it was seeded from."""
        return self._draft != self._seed

    def changed_keys(self) -> List[str]:
        """Keys whose draft value differs from the seed, in draft order."""
        keys = [k for k, v in self._draft.items() if self._seed.get(k) != v]
        keys.extend(k for k in self._seed if k not in self._draft)
        return keys

    # -- write ----------------------------------------------------------------

    def set_field(self, key: str, raw_value: str) -> Draft:
        """Store ``raw_value`` verbatim under ``key``.

        No validation happens here; decoding degrades malformed values to
        defaults on read.
        """
        if self._draft.get(key) == raw_value:
            return self._draft
        updated: Dict[str, str] = dict(self._draft)
        updated[key] = raw_value
        return self._replace(_freeze(updated))

    def toggle_boolean_field(self, key: str) -> Draft:
        """Flip a boolean field. Anything but ``"true"`` flips to ``"true"``."""
        current = codec.decode_boolean(self._draft, key)
        return self.set_field(key, codec.encode_boolean(not current))

    def toggle_multi_set_field(self, key: str, member: str) -> Draft:
        """Add ``member`` if absent, remove it if present."""
        toggled = codec.toggle_multi_set_member(self._draft, key, member)
        return self._store_multi_set(key, toggled.get(key, ""))

    def select_all(self, key: str) -> Draft:
        """Select every option of a multi-select field.

        Keys that are not known multi-select fields are left untouched.
        """
        setting_field = get_field_by_key(key)
        if setting_field is None or setting_field.type != FieldType.MULTI_SELECT:
            logger.warning("select_all ignored for non multi-select key %s", key)
            return self._draft
        return self.set_field(key, codec.encode_multi_set(setting_field.options))

    def select_none(self, key: str) -> Draft:
        """Clear every option of a multi-select field."""
        return self._store_multi_set(key, "")

    def _store_multi_set(self, key: str, encoded: str) -> Draft:
        # An empty selection on a key the seed lacks is the same as no key.
        if encoded or key in self._seed:
            return self.set_field(key, encoded)
        if key not in self._draft:
            return self._draft
        updated: Dict[str, str] = dict(self._draft)
        del updated[key]
        return self._replace(_freeze(updated))

    # -- lifecycle ------------------------------------------------------------

    def commit(self) -> None:
        """Hand the current draft to the save handler.

        Does not wait for the outcome and does not touch the draft: the
        authoritative configuration arrives later through ``sync``.
        """
        if self._on_commit is None:
            logger.warning("commit() called without a save handler; draft kept")
            return
        logger.info("Committing draft (%d changed keys)", len(self.changed_keys()))
        self._on_commit(self._draft)

    # -- events ---------------------------------------------------------------

    def on_change(self, callback: DraftCallback) -> None:
        """Register a callback receiving each new draft."""
        self._callbacks.append(callback)

    def remove_change_callback(self, callback: DraftCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _replace(self, draft: Draft) -> Draft:
        self._draft = draft
        for callback in list(self._callbacks):
            try:
                callback(draft)
            except Exception as e:
                logger.error(f"Draft change callback error: {e}")
        return draft
