from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from constraint_manager.constraint_model import ConstraintNode
from validators.source_map import SourceMap


class InputMode(Enum):
    """Supported input payloads"""
    JSON_SCHEMA = "json_schema"
    CREATE_TABLE = "create_table"
    MANUAL = "manual"
    SAMPLE = "sample"


@dataclass
class SchemaReadResult:
    """Outcome of one reader: either a model or the errors that stop the pipeline"""
    model: Optional[ConstraintNode] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    table_name: Optional[str] = None
    source_map: Optional[SourceMap] = None

    @property
    def ok(self) -> bool:
        return not self.errors and self.model is not None

    @classmethod
    def failure(cls, *errors: str, table_name: Optional[str] = None) -> 'SchemaReadResult':
        return cls(model=None, errors=list(errors), table_name=table_name)
