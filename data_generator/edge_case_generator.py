import logging
from typing import Any, Optional

from constraint_manager.constraint_model import ConstraintNode, NodeKind


class EdgeCaseGenerator:
    """Builds values that deliberately break one constraint of their node"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self.kind_handlers = {
            NodeKind.STRING: self._string_edge,
            NodeKind.INTEGER: self._numeric_edge,
            NodeKind.NUMBER: self._numeric_edge,
            NodeKind.BOOLEAN: lambda node: None,
            NodeKind.ARRAY: self._array_edge,
            NodeKind.OBJECT: self._object_edge,
            NodeKind.NULL: lambda node: None,
        }

    def record(self, model: ConstraintNode) -> Any:
        """Edge-case record for a root model: array roots get a one-item array, scalar roots the bare value"""
        model = self._concrete(model)
        types = model.effective_types()
        if "array" in types:
            return [self.value(model.item_node(0))]
        if types and "object" not in types:
            return self.value(model)
        return self._object_edge(model)

    def value(self, node: Optional[ConstraintNode]) -> Any:
        if node is None:
            return None
        node = self._concrete(node)
        kind = node.primary_kind()
        handler = self.kind_handlers.get(kind)
        return handler(node) if handler else None

    @staticmethod
    def _concrete(node: ConstraintNode) -> ConstraintNode:
        node = node.resolved()
        if node.any_of and not node.types:
            return node.any_of[0].resolved()
        return node

    def _string_edge(self, node: ConstraintNode) -> str:
        if node.min_length is not None and node.min_length > 0:
            return "a" * (node.min_length - 1)
        if node.max_length is not None:
            return "a" * (node.max_length + 1)
        if node.enum is not None:
            return "unexpected-value"
        if node.pattern:
            return "pattern-mismatch"
        return ""

    def _numeric_edge(self, node: ConstraintNode) -> float:
        if node.minimum is not None:
            return node.minimum - 1
        if node.exclusive_minimum is not None and not isinstance(node.exclusive_minimum, bool):
            return node.exclusive_minimum
        if node.maximum is not None:
            return node.maximum + 1
        if node.exclusive_maximum is not None and not isinstance(node.exclusive_maximum, bool):
            return node.exclusive_maximum
        return float("nan")

    def _array_edge(self, node: ConstraintNode) -> list:
        if node.min_items:
            return []
        return [{}]

    def _object_edge(self, node: ConstraintNode) -> dict:
        return {key: self.value(child) for key, child in node.properties.items()}
