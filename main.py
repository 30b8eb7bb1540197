import os
import sys
import json
import logging
import argparse
from datetime import datetime
from dataclasses import dataclass, field
from traceback import print_exc
from typing import Any, Dict, List, Optional

from config_manager.config_manager import (
    ConfigurationManager, GenerationConfig, clamp_record_count, clamp_edge_case_ratio
)
from config_manager.readers import SchemaReader, InputMode
from constraint_manager.constraint_model import ConstraintNode
from data_generator.backend import BackendHandle
from data_generator.data_generator import DataGenerator
from validators.record_validator import RecordValidator, ValidationIssue
from writers.writer import WriterFactory, write_issues_report


class AdapterError(Exception):
    """An input adapter rejected its payload; carries the adapter's error messages"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass
class GenerationOutcome:
    records: List[Any]
    issues: List[ValidationIssue]
    table_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    model: Optional[ConstraintNode] = None

    @property
    def failing_records(self) -> int:
        return len({issue.record_number for issue in self.issues})


class MockDataOrchestrator:
    """
    Runs one request end to end: adapter -> constraint model -> generation -> validation

    The backend handle is created here and shared by everything that needs random data, so
    Faker is initialised at most once per orchestrator however many runs it serves.
    """

    def __init__(self, config: GenerationConfig = None, logger: logging.Logger = None):
        self.config = config or GenerationConfig()
        self.logger = logger or logging.getLogger(__name__)

        self.schema_reader = SchemaReader(self.config.inference.max_examples, self.logger)
        self.backend_handle = BackendHandle(self.config.locale, self.config.seed, self.logger)
        self.data_generator = DataGenerator(self.config, self.logger, self.backend_handle)
        self.validator = RecordValidator(self.logger)

    def run(self, mode=None, payload: Any = None, record_count: Optional[int] = None,
            edge_case_ratio: Optional[float] = None) -> GenerationOutcome:
        input_mode = InputMode(mode or self.config.input_mode)
        result = self.schema_reader.read(input_mode, payload)

        for warning in result.warnings:
            self.logger.warning(f"⚠️ {warning}")
        if not result.ok:
            errors = result.errors or ["The input did not produce a constraint model."]
            self.logger.warning(f"❌ {input_mode.value} input rejected: {'; '.join(errors)}")
            raise AdapterError(errors)

        count = self.config.record_count if record_count is None else clamp_record_count(record_count)
        ratio = self.config.edge_case_ratio if edge_case_ratio is None else clamp_edge_case_ratio(edge_case_ratio)

        model = result.model.normalized(self.logger)
        records = self.data_generator.generate(model, count, ratio)
        issues = self.validator.validate(model, records, result.source_map)

        outcome = GenerationOutcome(records, issues, result.table_name, list(result.warnings), model)
        self.logger.info(f"✅ {input_mode.value}: {len(records)} records, {len(issues)} issues "
                         f"in {outcome.failing_records} records")
        return outcome

    def save(self, outcome: GenerationOutcome) -> Dict[str, str]:
        """Write records and the issues report to the configured output directory"""
        writer = WriterFactory.create_writer(outcome.table_name, self.config.output, self.logger)
        return {
            'records': writer.write(outcome.records),
            'issues': write_issues_report(outcome.issues, self.config.output, self.logger),
        }


def load_payload(mode: InputMode, text: str) -> Any:
    """Manual field lists arrive as JSON text; every other mode consumes the raw text"""
    if mode is not InputMode.MANUAL:
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AdapterError([f"Invalid manual field list: {e}"])


def read_input(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    with open(path, encoding='utf-8') as input_file:
        return input_file.read()


def main(config: GenerationConfig, input_path: str, logger: logging.Logger = None) -> GenerationOutcome:
    logger = logger or logging.getLogger(__name__)
    mode = InputMode(config.input_mode)
    payload = load_payload(mode, read_input(input_path))

    orchestrator = MockDataOrchestrator(config, logger)
    outcome = orchestrator.run(mode, payload)
    paths = orchestrator.save(outcome)
    logger.info(f"📁 Records saved to {paths['records']}, issues to {paths['issues']}")
    return outcome


def setup_logging(config: GenerationConfig) -> logging.Logger:
    """Setup logging based on configuration"""
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)
    log_format = config.logging.format

    if config.logging.enhanced_format:
        log_format = "%(asctime)s | %(levelname)-8s | %(name)-10s | %(message)s"

    handlers = []
    if config.logging.console_output:
        handlers.append(logging.StreamHandler(sys.stdout))

    if config.logging.file_path:
        log_dir = os.path.dirname(config.logging.file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(config.logging.file_path)
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True
    )

    logging.getLogger('faker').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def parse_arguments(argv: List[str] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Mock data generator for JSON Schema, CREATE TABLE, manual field lists and JSON samples',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Records from a JSON Schema document
  python main.py --mode json_schema --input schema.json --rows 20

  # CREATE TABLE from stdin, a quarter of the records are edge cases
  cat users.sql | python main.py --mode create_table --input - --edge-case-ratio 25

  # Infer the schema from a sample and write CSV
  python main.py --mode sample --input sample.json --format csv --seed 42
        """
    )

    parser.add_argument('--mode', '-m', choices=[mode.value for mode in InputMode],
                        help='Input mode (defaults to the configured input_mode)')
    parser.add_argument('--input', '-i', default='-',
                        help="Input file, or '-' for stdin")
    parser.add_argument('--config', '-c',
                        help='Path to configuration file (JSON)')
    parser.add_argument('--rows', '-r', type=int,
                        help='Number of records to generate (1-1000)')
    parser.add_argument('--edge-case-ratio', '-e', type=float, dest='edge_case_ratio',
                        help='Share of records that deliberately break a constraint (0-100)')
    parser.add_argument('--format', '-f', choices=WriterFactory.list_supported_formats(),
                        help='Output file format')
    parser.add_argument('--output-dir', '-o', dest='output_dir',
                        help='Output directory for generated files')
    parser.add_argument('--seed', '-s', type=int,
                        help='Seed for reproducible output')
    parser.add_argument('--locale', '-l',
                        help='Faker locale')
    parser.add_argument('--log-level', dest='log_level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--disable-processor', action='append', dest='disabled_processors',
                        choices=['Pattern Enforcement', 'Semantic Ranges'],
                        help='Skip a post-processor (repeatable)')
    parser.add_argument('--save-config', dest='save_config',
                        help='Write the effective configuration to this JSON file')

    return parser.parse_args(argv)


def apply_command_line_overrides(args) -> Dict[str, Any]:
    """Map parsed arguments onto ConfigurationManager override names"""
    return {
        'input_mode': args.mode,
        'rows': args.rows,
        'edge_case_ratio': args.edge_case_ratio,
        'output_format': args.format,
        'output_dir': args.output_dir,
        'seed': args.seed,
        'locale': args.locale,
        'log_level': args.log_level,
        'disabled_processors': args.disabled_processors,
    }


if __name__ == "__main__":
    start_time = datetime.now()

    try:
        args = parse_arguments()
        configuration_manager = ConfigurationManager()
        config = configuration_manager.load_configuration(args.config, **apply_command_line_overrides(args))
        logger = setup_logging(config)
        if args.save_config:
            configuration_manager.save_configuration(config, args.save_config)

        logger.info("📋 Configuration Summary:")
        logger.info(f"   Input mode: {config.input_mode}")
        logger.info(f"   Records: {config.record_count:,}")
        logger.info(f"   Edge case ratio: {config.edge_case_ratio}%")
        logger.info(f"   Output format: {config.output.format}")

        outcome = main(config, args.input, logger)

        total_duration = (datetime.now() - start_time).total_seconds()
        print("=" * 80)
        print("🎉 MOCK DATA GENERATION COMPLETED")
        print("=" * 80)
        print(f"✅ Generated {len(outcome.records)} records")
        print(f"🔍 {len(outcome.issues)} validation issues in {outcome.failing_records} records")
        print(f"📁 Files saved to: {config.output.directory}")
        print(f"⏱️ Completed in: {total_duration:.2f} seconds")

    except AdapterError as e:
        print("❌ The input could not be turned into a schema:")
        for error in e.errors:
            print(f"   • {error}")
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n⚠️ Data generation interrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        print_exc()
        sys.exit(1)
