from .constraint_model import ConstraintNode, NodeKind, DRAFT_07_URI, intersect, kind_of_value


__all__ = ['ConstraintNode', 'NodeKind', 'DRAFT_07_URI', 'intersect', 'kind_of_value']
