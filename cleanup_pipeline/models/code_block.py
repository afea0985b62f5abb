"""
CodeBlock Model - Represents one extracted syntactic unit

A CodeBlock is created once per function, lambda binding or class found
while scanning a source file. It carries the verbatim source span, the
normalized content hash used for exact-duplicate detection, and a
cyclomatic complexity score. Blocks are immutable and live only for the
duration of one analysis.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator


class BlockKind(str, Enum):
    """Kind of syntactic unit a block was extracted from"""
    FUNCTION = "function"
    CLASS = "class"
    COMPONENT = "component"
    BLOCK = "block"
    IMPORT = "import"


class CodeBlock(BaseModel):
    """
    Represents a code block extracted from a parsed source file

    Each CodeBlock contains:
    - Location information (project-relative file, 1-indexed lines)
    - Verbatim source and its normalized hash
    - Complexity score (starts at 1, +1 per branching construct)
    - Declared name and coarse signature for similarity partitioning
    """

    file: str = Field(..., description="Project-relative POSIX path of the source file")
    start_line: int = Field(..., ge=1, description="Starting line number (1-indexed)")
    end_line: int = Field(..., ge=1, description="Ending line number (1-indexed, inclusive)")

    raw_content: str = Field(..., description="Verbatim source span")
    normalized_hash: str = Field(..., description="Hash of whitespace/quote-normalized content")
    complexity_score: int = Field(1, ge=1, description="Cyclomatic complexity")
    kind: BlockKind = Field(..., description="Kind of syntactic unit")

    name: Optional[str] = Field(None, description="Declared name, if the unit has one")
    signature: str = Field('', description="Coarse parameter-shape key")

    model_config = {
        'frozen': True,
        'json_schema_extra': {
            'example': {
                'file': 'src/utils/format.py',
                'start_line': 12,
                'end_line': 21,
                'raw_content': 'def format_amount(value):\n    ...',
                'normalized_hash': '9f2c1a7be04d31aa',
                'complexity_score': 3,
                'kind': 'function',
                'name': 'format_amount',
                'signature': 'pos=1',
            }
        }
    }

    @field_validator('end_line')
    @classmethod
    def validate_line_range(cls, v, info):
        """Ensure end_line >= start_line"""
        if 'start_line' in info.data and v < info.data['start_line']:
            raise ValueError('end_line must be >= start_line')
        return v

    @computed_field
    @property
    def line_count(self) -> int:
        """Number of lines spanned by the block"""
        return self.end_line - self.start_line + 1

    @computed_field
    @property
    def byte_count(self) -> int:
        """Size of the raw content in UTF-8 bytes"""
        return len(self.raw_content.encode('utf-8'))

    @property
    def location(self) -> str:
        return f"{self.file}:{self.start_line}-{self.end_line}"

    @property
    def block_key(self) -> str:
        """Stable identity of the block within one scan"""
        return f"{self.file}:{self.start_line}"

    def __str__(self) -> str:
        label = self.name or self.kind.value
        return f"{label} ({self.location})"
