import re
import math
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from constraint_manager.constraint_model import ConstraintNode
from .base_processor import BaseDataProcessor


def tokenize_name(name: str) -> List[str]:
    """Lowercase word tokens of a camelCase / snake_case / kebab-case name"""
    spaced = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
    spaced = re.sub(r'[^a-z0-9]+', '_', spaced, flags=re.IGNORECASE)
    return [token for token in spaced.lower().split('_') if token]


def round_within(value: float, low: Optional[float], high: Optional[float], decimals: int) -> float:
    """Round to decimals without leaving [low, high]; unrounded when the range is too narrow"""
    factor = 10 ** decimals
    rounded = round(value, decimals)
    if low is not None and rounded < low:
        rounded = math.ceil(low * factor) / factor
    if high is not None and rounded > high:
        rounded = math.floor(high * factor) / factor
    if (low is not None and rounded < low) or (high is not None and rounded > high):
        return value
    return rounded


def random_in_range(rng: random.Random, low: float, high: float, integer: bool,
                    decimals: Optional[int] = None) -> float:
    if integer:
        int_low, int_high = math.ceil(low), math.floor(high)
        if int_low > int_high:
            return math.floor((low + high) / 2)
        return rng.randint(int_low, int_high)
    if low == high:
        return low
    value = rng.uniform(low, high)
    return round_within(value, low, high, decimals if decimals is not None else 6)


class SemanticProcessor(BaseDataProcessor):
    """Moves numeric values of well-known field names (age, year, money, percent, count) into plausible ranges"""

    AGE_TOKENS = {'age', 'ages', 'yas', 'yasi', 'yaslar'}
    YEAR_TOKENS = {'year', 'yil'}
    BIRTH_TOKENS = {'birth', 'dob', 'dogum', 'dogumyili'}
    MONEY_TOKENS = {'price', 'cost', 'amount', 'total', 'salary', 'revenue', 'budget', 'fee', 'balance'}
    PERCENT_TOKENS = {'percent', 'percentage', 'ratio', 'rate'}
    COUNT_TOKENS = {'count', 'quantity', 'qty', 'adet', 'items'}

    def __init__(self, config, logger, backend_handle):
        super().__init__(config, logger)
        self.backend_handle = backend_handle
        self.adjusted = 0

    def _is_enabled(self) -> bool:
        return True

    def get_processor_name(self) -> str:
        return "Semantic Ranges"

    def category_options(self, name: str, node: Optional[ConstraintNode]) -> Optional[Dict[str, Any]]:
        """Range options for the first category the name's tokens fall into"""
        tokens = set(tokenize_name(name))
        if not tokens:
            return None
        maximum = node.maximum if node is not None else None
        integer_typed = node is not None and 'integer' in node.effective_types()
        current_year = datetime.now().year

        if tokens & self.AGE_TOKENS:
            return {'default_min': 0, 'default_max': 120, 'integer': True}
        if tokens & self.YEAR_TOKENS:
            if tokens & self.BIRTH_TOKENS:
                return {'default_min': current_year - 100, 'default_max': current_year - 10, 'integer': True}
            return {'default_min': 1970, 'default_max': current_year + 1, 'integer': True}
        if tokens & self.MONEY_TOKENS:
            return {'default_min': 0, 'default_max': maximum if maximum is not None else 10000,
                    'integer': integer_typed, 'decimals': None if integer_typed else 2,
                    'prefer_positive': True}
        if tokens & self.PERCENT_TOKENS:
            return {'default_min': 0, 'default_max': 100, 'integer': integer_typed,
                    'decimals': None if integer_typed else 2}
        if tokens & self.COUNT_TOKENS:
            return {'default_min': 0, 'default_max': maximum if maximum is not None else 1000, 'integer': True}
        return None

    def process_entry(self, key: str, value: Any, node: Optional[ConstraintNode]) -> Any:
        if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        if node is not None:
            node = node.resolved()
            if node.has_value_constraint() or node.multiple_of is not None:
                return value
            types = node.effective_types()
            if types and not any(t in ('integer', 'number') for t in types):
                return value

        options = self.category_options(key, node)
        if options is None:
            return value

        adjusted = self.ensure_number_in_range(value, node, **options)
        if adjusted != value:
            self.adjusted += 1
            self.logger.debug(f"Semantic range for '{key}': {value} -> {adjusted}")
        return adjusted

    def ensure_number_in_range(self, value: float, node: Optional[ConstraintNode], default_min: float,
                               default_max: float, integer: bool = False, decimals: Optional[int] = None,
                               prefer_positive: bool = False) -> float:
        """Keep value if it sits inside the resolved range, otherwise draw a new one from it"""
        if integer and node is not None and not node.is_integer_only():
            exact_low, exact_high = node.numeric_bounds(integer=False)
            # number nodes whose explicit range holds no whole number keep fractional values
            if exact_low is not None and exact_high is not None and math.ceil(exact_low) > math.floor(exact_high):
                integer = False
        low, high = node.numeric_bounds(integer) if node is not None else (None, None)

        # explicit bounds win; defaults only fill the missing side
        if low is None:
            low = default_min if high is None else min(default_min, high)
        if high is None:
            high = max(default_max, low)
        if prefer_positive and low < 0 <= high:
            low = 0
        if low > high:
            midpoint = (low + high) / 2
            low = high = math.floor(midpoint) if integer else midpoint

        if math.isfinite(value) and low <= value <= high:
            if integer:
                return int(round(value))
            if decimals is not None:
                return round_within(value, low, high, decimals)
            return value

        return random_in_range(self.backend_handle.get().random, low, high, integer, decimals)
