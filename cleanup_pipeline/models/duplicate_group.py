"""
DuplicateGroup Model - Represents a group of duplicated code blocks

Groups together CodeBlocks that are identical after normalization (exact
duplicates) or that share enough tokens to be near duplicates, together
with the estimated savings of keeping only one copy and the assessed
removal risk.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, computed_field, model_validator

from ..constants import SimilarityBounds
from .code_block import CodeBlock


class SimilarityMethod(str, Enum):
    """Method used to determine similarity"""
    EXACT_MATCH = "exact_match"        # Identical normalized hash
    NEAR_DUPLICATE = "near_duplicate"  # Token overlap above threshold


class RiskLevel(str, Enum):
    """Risk of removing a finding, ordered low < medium < high"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]

    def __le__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank


_RISK_RANKS = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class EstimatedSavings(BaseModel):
    """What removing all but one copy (or the dead code) would save"""
    lines: int = Field(0, ge=0, description="Lines removed")
    bytes: int = Field(0, ge=0, description="Bytes removed")
    complexity: float = Field(0.0, ge=0, description="Complexity points removed")

    model_config = {'frozen': True}


class DuplicateGroup(BaseModel):
    """
    Group of duplicated code blocks

    Exact-duplicate groups always carry similarity_percent == 100.
    Near-duplicate groups carry a score in [70, 100). Groups are never
    mutated after creation.
    """

    group_key: str = Field(..., description="Normalized hash (exact) or unordered pair key (near)")
    members: List[CodeBlock] = Field(..., min_length=2, description="Blocks in this group")

    similarity_percent: int = Field(..., ge=0, le=100, description="Similarity 0-100")
    similarity_method: SimilarityMethod = Field(..., description="How similarity was established")

    estimated_savings: EstimatedSavings = Field(..., description="Savings of keeping only one copy")
    risk: RiskLevel = Field(..., description="Removal risk")
    recommendation: str = Field(..., description="Human-readable guidance")

    model_config = {
        'frozen': True,
        'json_schema_extra': {
            'example': {
                'group_key': '9f2c1a7be04d31aa',
                'similarity_percent': 100,
                'similarity_method': 'exact_match',
                'estimated_savings': {'lines': 10, 'bytes': 240, 'complexity': 2.0},
                'risk': 'low',
                'recommendation': 'Extract to shared utility function',
            }
        }
    }

    @model_validator(mode='after')
    def validate_similarity_for_method(self):
        """Exact groups are 100%, near groups fall in [70, 100)"""
        if self.similarity_method == SimilarityMethod.EXACT_MATCH:
            if self.similarity_percent != SimilarityBounds.EXACT:
                raise ValueError('exact duplicate groups must have similarity_percent == 100')
        else:
            if not (SimilarityBounds.NEAR_MIN_EXCLUSIVE <= self.similarity_percent < SimilarityBounds.NEAR_MAX_EXCLUSIVE):
                raise ValueError('near duplicate groups must have 70 <= similarity_percent < 100')
        return self

    @computed_field
    @property
    def occurrence_count(self) -> int:
        return len(self.members)

    @computed_field
    @property
    def total_lines(self) -> int:
        return sum(b.line_count for b in self.members)

    @computed_field
    @property
    def affected_files(self) -> List[str]:
        """Files containing members, in member order without repeats"""
        seen = []
        for block in self.members:
            if block.file not in seen:
                seen.append(block.file)
        return seen

    @property
    def average_complexity(self) -> float:
        return sum(b.complexity_score for b in self.members) / len(self.members)

    @property
    def is_exact(self) -> bool:
        return self.similarity_method == SimilarityMethod.EXACT_MATCH

    def __hash__(self) -> int:
        """Enable use in sets and as dict keys"""
        return hash(self.group_key)

    def __eq__(self, other: object) -> bool:
        """Compare groups by key"""
        if not isinstance(other, DuplicateGroup):
            return NotImplemented
        return self.group_key == other.group_key
