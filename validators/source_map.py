import logging
from typing import Dict, Iterable, List, Optional, Tuple

from json_source_map import calculate


def escape_pointer_token(token) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def pointer_from_path(path: Iterable) -> str:
    """Build a JSON pointer from a sequence of keys / indexes"""
    return "".join("/" + escape_pointer_token(part) for part in path)


def pointer_prefixes(pointer: str) -> List[str]:
    """The pointer followed by every shorter prefix, ending at the root"""
    if not pointer:
        return [""]
    parts = pointer.split("/")[1:]
    return ["".join("/" + part for part in parts[:length]) for length in range(len(parts), -1, -1)]


class SourceMap:
    """Line/column positions of every JSON pointer in a document text (1-based)"""

    def __init__(self, entries: Dict, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self._entries = entries

    @classmethod
    def from_text(cls, text: str, logger: logging.Logger = None) -> Optional['SourceMap']:
        """Build a map for the text; returns None when the text cannot be mapped"""
        logger = logger or logging.getLogger(__name__)
        try:
            entries = calculate(text)
        except Exception as e:
            logger.warning(f"⚠️ Could not build source map, issues will carry no line numbers: {e}")
            return None
        logger.debug(f"Source map built with {len(entries)} pointers")
        return cls(entries, logger)

    def __contains__(self, pointer: str) -> bool:
        return pointer in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def locate(self, pointer: str) -> Optional[Tuple[int, int]]:
        """Position of the key (or of the value for array items and the root)"""
        entry = self._entries.get(pointer)
        if entry is None:
            return None
        location = entry.key_start if entry.key_start is not None else entry.value_start
        return location.line + 1, location.column + 1

    def resolve(self, candidates: Iterable[str]) -> Optional[Tuple[int, int]]:
        """First position found among the candidates and their shorter prefixes, else the root"""
        candidates = [candidate for candidate in candidates if candidate is not None]

        # exact candidates first, then shorter prefixes, root last
        ordered = [candidate for candidate in candidates if candidate]
        for candidate in candidates:
            for prefix in pointer_prefixes(candidate):
                if prefix and prefix not in ordered:
                    ordered.append(prefix)
        ordered.append("")

        for pointer in ordered:
            position = self.locate(pointer)
            if position is not None:
                return position
        return None
