from .backend import FakeDataBackend, BackendHandle
from .value_generator import ValueGenerator
from .edge_case_generator import EdgeCaseGenerator
from .data_generator import DataGenerator, edge_case_target


__all__ = [
    'FakeDataBackend', 'BackendHandle', 'ValueGenerator', 'EdgeCaseGenerator', 'DataGenerator',
    'edge_case_target',
]
