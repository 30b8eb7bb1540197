from .base_processor import BaseDataProcessor
from .pattern_processor import PatternProcessor, BoundedXeger, expand_pattern
from .semantic_processor import SemanticProcessor, tokenize_name, round_within, random_in_range
from .processor_pipeline import ProcessorPipeline


__all__ = [
    'BaseDataProcessor', 'PatternProcessor', 'BoundedXeger', 'expand_pattern', 'SemanticProcessor',
    'tokenize_name', 'round_within', 'random_in_range', 'ProcessorPipeline',
]
