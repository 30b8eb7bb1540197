from abc import ABC, abstractmethod
from typing import Any, Optional

from constraint_manager.constraint_model import ConstraintNode, intersect, kind_of_value


class BaseDataProcessor(ABC):
    """Base class for record post-processors: walks a value alongside its constraint node"""

    def __init__(self, config, logger):
        self.config = config
        self.logger = logger
        self.enabled = self._is_enabled()

    @abstractmethod
    def _is_enabled(self) -> bool:
        """Check if this processor is enabled"""
        pass

    @abstractmethod
    def get_processor_name(self) -> str:
        """Get processor name for logging"""
        pass

    def process(self, record: Any, model: ConstraintNode) -> Any:
        """Return the processed record; the input record is not modified"""
        return self._walk(record, model, None)

    def process_leaf(self, value: Any, node: ConstraintNode, name: Optional[str]) -> Any:
        return value

    def process_entry(self, key: str, value: Any, node: Optional[ConstraintNode]) -> Any:
        """Hook for object members after their subtree has been processed"""
        return value

    def _walk(self, value: Any, node: Optional[ConstraintNode], name: Optional[str]) -> Any:
        if node is None or value is None:
            return value

        node = self._select_branch(node.resolved(), value)

        if isinstance(value, dict):
            result = dict(value)
            for key in list(result):
                child = node.property_constraints(key)
                result[key] = self.process_entry(key, self._walk(result[key], child, key), child)
            return result

        if isinstance(value, list):
            return [self._walk(item, node.item_node(index), name) for index, item in enumerate(value)]

        return self.process_leaf(value, node, name)

    @staticmethod
    def _select_branch(node: ConstraintNode, value: Any) -> ConstraintNode:
        """For anyOf nodes, the first branch whose types admit the value"""
        if not node.any_of:
            return node
        kind = kind_of_value(value)
        for branch in node.any_of:
            branch = branch.resolved()
            types = branch.effective_types()
            if not types or kind in types or (kind == "integer" and "number" in types):
                base = node.clone()
                base.any_of = []
                return intersect(base, branch)
        return node
