from .source_map import SourceMap, pointer_from_path, pointer_prefixes
from .record_validator import RecordValidator, ValidationIssue, format_instance_path, ROOT_DISPLAY


__all__ = [
    'SourceMap', 'pointer_from_path', 'pointer_prefixes', 'RecordValidator', 'ValidationIssue',
    'format_instance_path', 'ROOT_DISPLAY',
]
