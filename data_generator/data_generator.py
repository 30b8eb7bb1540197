import math
import logging
from typing import Any, List, Optional

from config_manager.config_manager import GenerationConfig
from constraint_manager.constraint_model import ConstraintNode
from processors.processor_pipeline import ProcessorPipeline
from .backend import BackendHandle
from .edge_case_generator import EdgeCaseGenerator
from .value_generator import ValueGenerator


def edge_case_target(count: int, edge_case_ratio: float) -> int:
    """round(count * ratio / 100), halves rounded up, never more than count"""
    ratio = min(100, max(0, edge_case_ratio))
    return min(count, int(math.floor(count * ratio / 100 + 0.5)))


class DataGenerator:
    """Generation engine: base records, pattern/semantic post-processing and edge-case injection"""

    def __init__(self, config: GenerationConfig = None, logger: logging.Logger = None,
                 backend_handle: BackendHandle = None):
        self.config = config or GenerationConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.backend_handle = backend_handle or BackendHandle(self.config.locale, self.config.seed, self.logger)

        self.pipeline = ProcessorPipeline(self.config, self.logger, self.backend_handle)
        self.edge_case_generator = EdgeCaseGenerator(self.logger)
        self._value_generator: Optional[ValueGenerator] = None

    @property
    def value_generator(self) -> ValueGenerator:
        if self._value_generator is None:
            self._value_generator = ValueGenerator(
                self.backend_handle.get(),
                self.logger,
                pattern_max_length=self.config.pattern.max_length,
                pattern_max_attempts=self.config.pattern.max_attempts,
            )
        return self._value_generator

    def generate(self, model: ConstraintNode, count: int, edge_case_ratio: float = 0) -> List[Any]:
        """Exactly count records; round(count * ratio / 100) of them are edge cases at random positions"""
        if count < 1:
            return []

        model = model.normalized(self.logger)
        target_edge_cases = edge_case_target(count, edge_case_ratio)
        rng = self.backend_handle.get().random

        records = [self.generate_base_record(model, index + 1) for index in range(count - target_edge_cases)]

        for _ in range(target_edge_cases):
            records.insert(rng.randint(0, len(records)), self.edge_case_generator.record(model))

        while len(records) < count:
            records.append(self.generate_base_record(model, len(records) + 1))

        self.logger.info(f"🏭 Generated {len(records)} records ({target_edge_cases} edge cases)")
        return records

    def generate_base_record(self, model: ConstraintNode, record_number: int = 0) -> Any:
        record = self.value_generator.generate(model)
        record = self.pipeline.process_record(record, model, record_number)
        self.logger.debug(f"Record {record_number}: {record}")
        return record
