from __future__ import annotations

import logging
from typing import Dict, Optional


class ResultCache:
    """
    Session-lifetime map of image identity to translated text.

    Unbounded and never evicted. `put` overwrites: callers keep at most one
    translation per identity in flight, so overwrites only happen if that
    guarantee is relaxed, and then the last writer wins.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}
        self.logger = logging.getLogger(__name__)

    def has(self, identity: str) -> bool:
        return identity in self._entries

    def get(self, identity: str) -> Optional[str]:
        return self._entries.get(identity)

    def put(self, identity: str, text: str) -> None:
        if identity in self._entries:
            self.logger.debug("Overwriting cached translation for %s", identity)
        self._entries[identity] = text

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)
