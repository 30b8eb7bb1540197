import os
import re
import json
import logging
from typing import Dict, Any, List, Optional
from pathlib import Path
from dataclasses import dataclass, asdict, field

from .readers import InputMode


_logger = logging.getLogger(__name__)

MIN_RECORD_COUNT = 1
MAX_RECORD_COUNT = 1000
MIN_EDGE_CASE_RATIO = 0
MAX_EDGE_CASE_RATIO = 100


@dataclass
class PatternConfig:
    """Bounded regex expansion used when a generated string has to match a pattern"""
    max_length: int = 16
    max_attempts: int = 5

    def __post_init__(self):
        if self.max_length < 1:
            self.max_length = 1
        if self.max_attempts < 1:
            self.max_attempts = 1


@dataclass
class InferenceConfig:
    """Sample inference settings"""
    max_examples: int = 5

    def __post_init__(self):
        if self.max_examples < 1:
            self.max_examples = 1


@dataclass
class OutputConfig:
    """Output configuration"""
    format: str = "json"
    directory: str = "./output"
    filename_template: str = "{table_name}"
    issues_file: str = "issues.json"
    encoding: str = "utf-8"
    json_indent: Optional[int] = 2
    json_ensure_ascii: bool = False
    delimiter: str = ","

    def __post_init__(self):
        valid_formats = ["json", "jsonl", "csv"]
        if self.format not in valid_formats:
            _logger.warning(f"Invalid output format '{self.format}', defaulting to 'json'")
            self.format = "json"

    def get_output_path(self, table_name: str) -> str:
        safe_name = re.sub(r"[^\w.-]+", "_", table_name or "records")
        filename = self.filename_template.format(table_name=safe_name)
        return os.path.join(self.directory, f"{filename}.{self.format}")

    def get_issues_path(self) -> str:
        return os.path.join(self.directory, self.issues_file)


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    enhanced_format: bool = False
    console_output: bool = True

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            _logger.warning(f"Invalid log level '{self.level}', defaulting to 'INFO'")
            self.level = "INFO"
        self.level = self.level.upper()

        if self.file_path:
            log_dir = os.path.dirname(self.file_path)
            if log_dir and not os.path.exists(log_dir):
                try:
                    os.makedirs(log_dir, exist_ok=True)
                except OSError as e:
                    _logger.warning(f"Could not create log directory {log_dir}: {e}")


@dataclass
class GenerationConfig:
    """Main configuration: input mode, record count and edge-case share plus nested settings"""
    input_mode: str = InputMode.JSON_SCHEMA.value
    record_count: int = 5
    edge_case_ratio: float = 0
    locale: str = "en_GB"
    seed: Optional[int] = None
    disabled_processors: List[str] = field(default_factory=list)

    pattern: PatternConfig = field(default_factory=PatternConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if self.pattern is None:
            self.pattern = PatternConfig()
        if self.inference is None:
            self.inference = InferenceConfig()
        if self.output is None:
            self.output = OutputConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

        valid_modes = [mode.value for mode in InputMode]
        if self.input_mode not in valid_modes:
            raise ValueError(f"Invalid input mode '{self.input_mode}'. Valid modes: {valid_modes}")

        self.record_count = clamp_record_count(self.record_count)
        self.edge_case_ratio = clamp_edge_case_ratio(self.edge_case_ratio)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'GenerationConfig':
        """Create GenerationConfig from dictionary with proper nested object creation"""
        config_dict = dict(config_dict)
        pattern_data = config_dict.pop('pattern', {}) or {}
        inference_data = config_dict.pop('inference', {}) or {}
        output_data = config_dict.pop('output', {}) or {}
        logging_data = config_dict.pop('logging', {}) or {}

        return cls(
            pattern=PatternConfig(**pattern_data),
            inference=InferenceConfig(**inference_data),
            output=OutputConfig(**output_data),
            logging=LoggingConfig(**logging_data),
            **config_dict
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clamp_record_count(value: Any) -> int:
    count = int(value)
    if count < MIN_RECORD_COUNT or count > MAX_RECORD_COUNT:
        clamped = max(MIN_RECORD_COUNT, min(MAX_RECORD_COUNT, count))
        _logger.warning(f"⚠️ record_count {count} outside {MIN_RECORD_COUNT}..{MAX_RECORD_COUNT}, using {clamped}")
        return clamped
    return count


def clamp_edge_case_ratio(value: Any) -> float:
    ratio = float(value)
    if ratio != ratio:
        _logger.warning("⚠️ edge_case_ratio is NaN, using 0")
        return 0
    if ratio < MIN_EDGE_CASE_RATIO or ratio > MAX_EDGE_CASE_RATIO:
        clamped = float(max(MIN_EDGE_CASE_RATIO, min(MAX_EDGE_CASE_RATIO, ratio)))
        _logger.warning(f"⚠️ edge_case_ratio {ratio} outside "
                        f"{MIN_EDGE_CASE_RATIO}..{MAX_EDGE_CASE_RATIO}, using {clamped}")
        ratio = clamped
    return int(ratio) if ratio.is_integer() else ratio


class ConfigurationManager:
    """Loads GenerationConfig from an optional JSON file and applies command-line overrides"""

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(__name__)

    # ===================== CONFIGURATION LOADING =====================

    def load_configuration(self, config_path: Optional[str] = None, **overrides) -> GenerationConfig:
        """
        Build the configuration

        Args:
            config_path: Optional path to a JSON configuration file
            **overrides: Command-line values; None means "not given"
        """
        raw_config = {}
        if config_path:
            config_path = Path(config_path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            raw_config = self._load_config(config_path)

        raw_config = self._apply_argument_overrides(raw_config, **overrides)
        config = self._parse_config_dict(raw_config)
        self.logger.debug(f"Configuration loaded: {self.get_config_summary(config)}")
        return config

    def _load_config(self, config_path: Path) -> Dict[str, Any]:
        """Load JSON configuration file"""
        try:
            with open(config_path, encoding='utf-8') as config_file:
                config = json.load(config_file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON configuration: {e}")
        if not isinstance(config, dict):
            raise ValueError(f"Invalid configuration structure: expected an object, got {type(config).__name__}")
        return config

    def _apply_argument_overrides(self, raw_config: Dict[str, Any], **overrides) -> Dict[str, Any]:
        """Apply command-line argument overrides"""
        config = json.loads(json.dumps(raw_config))
        applied_overrides = self._apply_basic_overrides(config, overrides)

        if applied_overrides:
            self.logger.info("🔧 Applied command-line overrides:")
            for override in applied_overrides:
                self.logger.info(f"  - {override}")
        return config

    def _apply_basic_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> List[str]:
        applied = []
        top_level = {
            'input_mode': 'input_mode',
            'record_count': 'record_count',
            'rows': 'record_count',
            'edge_case_ratio': 'edge_case_ratio',
            'locale': 'locale',
            'seed': 'seed',
            'disabled_processors': 'disabled_processors',
        }
        for argument, key in top_level.items():
            if overrides.get(argument) is not None:
                config[key] = overrides[argument]
                applied.append(f"{key}: {overrides[argument]}")

        nested = {
            'output_format': ('output', 'format'),
            'output_dir': ('output', 'directory'),
            'log_level': ('logging', 'level'),
            'log_file': ('logging', 'file_path'),
        }
        for argument, (section, key) in nested.items():
            if overrides.get(argument) is not None:
                config.setdefault(section, {})[key] = overrides[argument]
                applied.append(f"{section}.{key}: {overrides[argument]}")
        return applied

    def _parse_config_dict(self, config_dict: Dict[str, Any]) -> GenerationConfig:
        """Parse configuration dictionary into GenerationConfig object"""
        try:
            return GenerationConfig.from_dict(config_dict)
        except TypeError as e:
            self.logger.error(f"❌ Configuration parsing error: {e}")
            self.logger.error(f"Config dict keys: {list(config_dict.keys())}")
            raise ValueError(f"Invalid configuration structure: {e}")

    # ===================== CONFIGURATION UTILITIES =====================

    def save_configuration(self, config: GenerationConfig, output_path: str):
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
        self.logger.info(f"💾 Configuration saved to: {output_path}")

    def get_config_summary(self, config: GenerationConfig) -> Dict[str, Any]:
        return {
            'input_mode': config.input_mode,
            'record_count': config.record_count,
            'edge_case_ratio': config.edge_case_ratio,
            'locale': config.locale,
            'seed': config.seed,
            'output_format': config.output.format,
            'output_directory': config.output.directory,
        }
