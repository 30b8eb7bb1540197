import re
import json
import math
import logging
from typing import Any, List, Optional

from constraint_manager.constraint_model import ConstraintNode, DRAFT_07_URI, NUMERIC_TYPES
from .base_reader import SchemaReadResult


class SampleSchemaInferrer:
    """
    Derives a constraint model from example JSON values.

    Every key of an observed object is required; merging two object schemas keeps only the keys
    required on both sides, so a key missing from any sample ends up optional. Structurally
    different samples are never coerced: they become anyOf branches.
    """

    FORMAT_PATTERNS = [
        ('email', re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$', re.IGNORECASE)),
        ('uri', re.compile(r'^https?://', re.IGNORECASE)),
        ('date-time', re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?$')),
        ('date', re.compile(r'^\d{4}-\d{2}-\d{2}$')),
        ('time', re.compile(r'^\d{2}:\d{2}:\d{2}$')),
    ]

    def __init__(self, max_examples: int = 5, logger: logging.Logger = None):
        self.max_examples = max_examples
        self.logger = logger or logging.getLogger(__name__)

    # ===================== PUBLIC API =====================

    def infer_text(self, text: str) -> SchemaReadResult:
        try:
            sample = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            self.logger.warning(f"Malformed sample JSON: {e}")
            return SchemaReadResult.failure(f"Invalid sample JSON: {e}")
        return SchemaReadResult(model=self.infer(sample))

    def infer(self, sample: Any) -> ConstraintNode:
        """Model of the sample, wrapped in the draft-07 document envelope"""
        model = self._infer_value(sample)
        model.extras = {'$schema': DRAFT_07_URI, **model.extras}
        count = len(sample) if isinstance(sample, list) else 1
        self.logger.info(f"🔎 Inferred {'/'.join(model.effective_types()) or 'untyped'} model "
                         f"from {count} sample value(s)")
        return model

    def detect_format(self, value: str) -> Optional[str]:
        for name, pattern in self.FORMAT_PATTERNS:
            if pattern.search(value):
                return name
        return None

    # ===================== INFERENCE =====================

    def _infer_value(self, sample: Any) -> ConstraintNode:
        if sample is None:
            return ConstraintNode(types=['null'])

        if isinstance(sample, (list, tuple)):
            if not sample:
                return ConstraintNode(types=['array'], items=ConstraintNode())
            merged = None
            for element in sample:
                merged = self.merge(merged, self._infer_value(element))
            return ConstraintNode(types=['array'], items=merged)

        if isinstance(sample, dict):
            properties = {str(key): self._infer_value(value) for key, value in sample.items()}
            return ConstraintNode(types=['object'], properties=properties,
                                  required=list(properties), additional_properties=False)

        if isinstance(sample, str):
            return ConstraintNode(types=['string'], examples=[sample], format=self.detect_format(sample))

        if isinstance(sample, bool):
            return ConstraintNode(types=['boolean'], examples=[sample])

        if isinstance(sample, (int, float)):
            if isinstance(sample, float) and not math.isfinite(sample):
                return ConstraintNode(types=['number'])
            if isinstance(sample, float) and sample.is_integer():
                sample = int(sample)
            kind = 'integer' if isinstance(sample, int) else 'number'
            return ConstraintNode(types=[kind], minimum=sample, maximum=sample, examples=[sample])

        self.logger.debug(f"No inference rule for {type(sample).__name__}, leaving it unconstrained")
        return ConstraintNode()

    # ===================== MERGING =====================

    def merge(self, a: Optional[ConstraintNode], b: Optional[ConstraintNode]) -> Optional[ConstraintNode]:
        if a is None:
            return b.clone() if b is not None else None
        if b is None:
            return a.clone()

        if not a.types and a.any_of:
            return self._merge_into_branches(a, b)
        if not b.types and b.any_of:
            result = a.clone()
            for branch in b.any_of:
                result = self.merge(result, branch)
            return result

        shared = self._shared_type(a.types, b.types)
        if shared is None:
            return ConstraintNode(any_of=[a.clone(), b.clone()])

        result = a.clone()
        result.types = [shared]

        if shared == 'object':
            self._merge_objects(result, a, b)
        elif shared == 'array':
            result.items = self.merge(a.items if isinstance(a.items, ConstraintNode) else None,
                                      b.items if isinstance(b.items, ConstraintNode) else None) or ConstraintNode()
        elif shared == 'string':
            result.examples = self._union_examples(a.examples, b.examples)
            result.format = a.format if a.format is not None and a.format == b.format else None
        elif shared in NUMERIC_TYPES:
            examples = self._union_examples(a.examples, b.examples)
            result.examples = examples or None
            minima = [value for value in (a.minimum, b.minimum) if value is not None]
            maxima = [value for value in (a.maximum, b.maximum) if value is not None]
            result.minimum = min(minima) if minima else None
            result.maximum = max(maxima) if maxima else None
        elif shared == 'boolean':
            result.examples = self._union_examples(a.examples, b.examples)
        elif shared == 'null':
            return ConstraintNode(types=['null'])
        return result

    @staticmethod
    def _shared_type(a_types: List[str], b_types: List[str]) -> Optional[str]:
        for type_name in a_types:
            if type_name in b_types:
                return type_name
        if any(t in NUMERIC_TYPES for t in a_types) and any(t in NUMERIC_TYPES for t in b_types):
            return 'number'
        return None

    def _merge_into_branches(self, union: ConstraintNode, addition: ConstraintNode) -> ConstraintNode:
        """Fold a sample into the first anyOf branch sharing its type, else add it as a new branch"""
        result = union.clone()
        for index, branch in enumerate(result.any_of):
            if self._shared_type(branch.types, addition.types) is not None:
                result.any_of[index] = self.merge(branch, addition)
                return result
        result.any_of.append(addition.clone())
        return result

    def _merge_objects(self, result: ConstraintNode, a: ConstraintNode, b: ConstraintNode):
        keys = list(a.properties)
        keys.extend(key for key in b.properties if key not in a.properties)
        result.properties = {key: self.merge(a.properties.get(key), b.properties.get(key)) for key in keys}

        a_required = a.required if a.required is not None else list(a.properties)
        b_required = b.required if b.required is not None else list(b.properties)
        result.required = [key for key in a_required if key in b_required]

        if isinstance(b.additional_properties, bool):
            result.additional_properties = b.additional_properties
        elif a.additional_properties is None:
            result.additional_properties = False

    def _union_examples(self, a: Optional[List[Any]], b: Optional[List[Any]]) -> List[Any]:
        union = []
        for value in (a or []) + (b or []):
            if value is not None and value not in union:
                union.append(value)
        return union[:self.max_examples]
