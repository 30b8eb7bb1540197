import re
import math
import random
from typing import Any, Optional

import rstr

from constraint_manager.constraint_model import ConstraintNode
from .base_processor import BaseDataProcessor


class BoundedXeger(rstr.Xeger):
    """rstr.Xeger whose ranged repeats (*, +, {n,}, {n,m}) draw between repeat_floor and repeat_limit"""

    def __init__(self, _random: random.Random, repeat_limit: int = 16, repeat_floor: int = 0):
        super().__init__(_random)
        self.repeat_limit = repeat_limit
        self.repeat_floor = repeat_floor
        self.ranged_repeats = 0

    def xeger(self, string_or_regex) -> str:
        self.ranged_repeats = 0
        return super().xeger(string_or_regex)

    def _handle_repeat(self, start_range: int, end_range: int, value) -> str:
        if end_range > start_range:
            self.ranged_repeats += 1
            start_range = min(end_range, max(start_range, self.repeat_floor))
            end_range = min(end_range, max(start_range, self.repeat_limit))
        return super()._handle_repeat(start_range, end_range, value)


def expand_pattern(pattern: str, rng: random.Random, min_length: Optional[int] = None,
                   max_length: Optional[int] = None, max_attempts: int = 5,
                   default_cap: int = 16) -> Optional[str]:
    """
    Generate a string matching pattern within the length bounds, or None after max_attempts.

    Each ranged repeat draws at most max_length (or default_cap) times. Only an explicit
    max_length limits the total length. When a candidate falls short of min_length the
    remaining attempts raise the repeat floor so the missing length is spread over the repeats.
    """
    try:
        compiled = re.compile(pattern)
    except re.error:
        return None

    low = min_length or 0
    limit = max_length if max_length is not None else default_cap
    xeger = BoundedXeger(rng, max(limit, 1))

    for _ in range(max_attempts):
        try:
            candidate = xeger.xeger(pattern)
        except Exception:
            # constructs rstr cannot expand (lookarounds, backrefs) fail every attempt
            return None
        fits = low <= len(candidate) and (max_length is None or len(candidate) <= max_length)
        if fits and compiled.search(candidate):
            return candidate
        if len(candidate) < low and xeger.ranged_repeats:
            xeger.repeat_floor = max(xeger.repeat_floor + 1, math.ceil(low / xeger.ranged_repeats))
    return None


class PatternProcessor(BaseDataProcessor):
    """Rewrites string leaves so they match the node's pattern"""

    def __init__(self, config, logger, backend_handle):
        super().__init__(config, logger)
        self.backend_handle = backend_handle
        self.rewritten = 0

    def _is_enabled(self) -> bool:
        return True

    def get_processor_name(self) -> str:
        return "Pattern Enforcement"

    def process_leaf(self, value: Any, node: ConstraintNode, name: Optional[str]) -> Any:
        if not node.pattern or not isinstance(value, str):
            return value

        try:
            compiled = re.compile(node.pattern)
        except re.error as e:
            self.logger.debug(f"Skipping invalid pattern '{node.pattern}' on {name or 'root'}: {e}")
            return value

        if node.enum is not None:
            for candidate in node.enum:
                if isinstance(candidate, str) and compiled.search(candidate):
                    return candidate
            return value
        if node.has_const:
            return value

        if compiled.search(value) and self._fits_length(value, node):
            return value

        expanded = expand_pattern(
            node.pattern,
            self.backend_handle.get().random,
            min_length=node.min_length,
            max_length=node.max_length,
            max_attempts=self.config.max_attempts,
            default_cap=self.config.max_length,
        )
        if expanded is not None:
            self.rewritten += 1
            return expanded

        self.logger.debug(f"Pattern '{node.pattern}' could not be expanded for {name or 'root'}, "
                          f"keeping '{value}'")
        return value

    @staticmethod
    def _fits_length(value: str, node: ConstraintNode) -> bool:
        if node.min_length is not None and len(value) < node.min_length:
            return False
        if node.max_length is not None and len(value) > node.max_length:
            return False
        return True
