from typing import Any, Dict

from constraint_manager.constraint_model import ConstraintNode
from .pattern_processor import PatternProcessor
from .semantic_processor import SemanticProcessor


class ProcessorPipeline:
    """Runs each generated record through the enabled post-processors in order"""

    def __init__(self, config, logger, backend_handle):
        self.config = config
        self.logger = logger

        self.processors = [
            PatternProcessor(config.pattern, logger, backend_handle),
            SemanticProcessor(config, logger, backend_handle),
        ]

        self.enabled_processors = [p for p in self.processors if p.enabled]
        for processor_name in config.disabled_processors:
            if not self.disable_processor(processor_name):
                self.logger.warning(f"⚠️ Unknown or already disabled processor: {processor_name}")

        if self.enabled_processors:
            processor_names = [p.get_processor_name() for p in self.enabled_processors]
            self.logger.debug(f"Enabled processors: {', '.join(processor_names)}")
        else:
            self.logger.warning("No processors are enabled in the pipeline")

        self._processor_metrics = {}

    def process_record(self, record: Any, model: ConstraintNode, record_number: int = 0) -> Any:
        """Process one record; a failing processor is logged and the record continues unchanged"""
        current = record
        for processor in self.enabled_processors:
            processor_name = processor.get_processor_name()
            try:
                current = processor.process(current, model)
                self._update_processor_metrics(processor_name, True)
            except Exception as e:
                self._update_processor_metrics(processor_name, False)
                self.logger.error(f"Processor '{processor_name}' failed for record {record_number}: {e}")
        return current

    def _update_processor_metrics(self, processor_name: str, success: bool):
        metrics = self._processor_metrics.setdefault(processor_name, {
            'total_executions': 0,
            'successful_executions': 0,
            'failed_executions': 0,
        })
        metrics['total_executions'] += 1
        if success:
            metrics['successful_executions'] += 1
        else:
            metrics['failed_executions'] += 1

    def get_pipeline_summary(self) -> Dict[str, Any]:
        return {
            'enabled_processors': [p.get_processor_name() for p in self.enabled_processors],
            'processor_metrics': {name: dict(metrics) for name, metrics in self._processor_metrics.items()},
        }

    def get_processor_by_name(self, processor_name: str):
        for processor in self.processors:
            if processor.get_processor_name() == processor_name:
                return processor
        return None

    def disable_processor(self, processor_name: str) -> bool:
        """Remove a processor from the enabled list; False when it is unknown or already disabled"""
        processor = self.get_processor_by_name(processor_name)
        if processor and processor in self.enabled_processors:
            self.enabled_processors.remove(processor)
            self.logger.info(f"Disabled processor: {processor_name}")
            return True
        return False
