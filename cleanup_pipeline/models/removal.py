"""
Removal Models - Candidates for removal and their terminal results

A RemovalCandidate is one atomic, independently committable removal
action. The candidate kind is a closed tagged union: every kind carries
its own payload shape, and raw payloads are validated at the boundary
between the orchestrator and the safe remover with parse_candidate().
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, computed_field, field_validator, model_validator

from .duplicate_group import EstimatedSavings, RiskLevel
from .metrics import MetricsSnapshot


class CandidateKind(str, Enum):
    """Kinds of removal actions"""
    DUPLICATE = "duplicate"
    DEAD_CODE = "dead-code"
    UNUSED_IMPORT = "unused-import"
    UNUSED_COMPONENT = "unused-component"


LineRange = Tuple[int, int]


class _CandidateBase(BaseModel):
    """Fields shared by every candidate kind"""

    id: str = Field(..., min_length=1, description="Deterministic candidate identifier")
    files: List[str] = Field(..., min_length=1, description="Project-relative files the action touches")
    risk: RiskLevel = Field(..., description="Assessed removal risk")
    estimated_savings: EstimatedSavings = Field(
        default_factory=EstimatedSavings,
        description="Expected savings if the removal is committed"
    )
    line_ranges: List[LineRange] = Field(
        default_factory=list,
        description="1-indexed inclusive (start, end) per file, for ranged kinds"
    )
    description: str = Field('', description="One-line human summary")

    model_config = {'frozen': True}

    @field_validator('files')
    @classmethod
    def validate_unique_files(cls, v):
        """A file may only appear once per candidate"""
        if len(set(v)) != len(v):
            raise ValueError('files must not contain duplicates')
        return v

    @field_validator('line_ranges')
    @classmethod
    def validate_ranges(cls, v):
        for start, end in v:
            if start < 1 or end < start:
                raise ValueError(f'invalid line range ({start}, {end})')
        return v

    @property
    def branch_name(self) -> str:
        """Isolated branch the candidate is applied on"""
        return f"cleanup/{self.kind}/{self.id}"


class _RangedCandidate(_CandidateBase):
    """Candidate that deletes one line range per listed file"""

    @model_validator(mode='after')
    def validate_range_per_file(self):
        if len(self.line_ranges) != len(self.files):
            raise ValueError('exactly one line range is required per file')
        return self

    def ranges_by_file(self) -> Dict[str, LineRange]:
        return dict(zip(self.files, self.line_ranges))


class DuplicateCandidate(_RangedCandidate):
    """
    Exact duplicate definition present in several files

    The first listed file is canonical and keeps its copy; the definition
    is deleted from every other file and re-exported from the canonical
    module in its place.
    """

    kind: Literal['duplicate'] = 'duplicate'
    symbol: str = Field(..., min_length=1, description="Name of the duplicated definition")
    group_key: str = Field('', description="Normalized hash of the duplicate group")

    @field_validator('files')
    @classmethod
    def validate_multiple_files(cls, v):
        if len(v) < 2:
            raise ValueError('a duplicate candidate needs at least two files')
        return v

    @property
    def canonical_file(self) -> str:
        return self.files[0]


class DeadCodeCandidate(_RangedCandidate):
    """Unreferenced definition deleted from every listed file"""

    kind: Literal['dead-code'] = 'dead-code'
    symbol: Optional[str] = Field(None, description="Name of the unreferenced definition")


class UnusedImportCandidate(_CandidateBase):
    """Imports bound but never used, removed with the lint autofix tool"""

    kind: Literal['unused-import'] = 'unused-import'
    unused_names: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="File -> names imported but never used"
    )


class UnusedComponentCandidate(_CandidateBase):
    """Module that nothing imports; deleted with its companion files"""

    kind: Literal['unused-component'] = 'unused-component'


RemovalCandidate = Annotated[
    Union[DuplicateCandidate, DeadCodeCandidate, UnusedImportCandidate, UnusedComponentCandidate],
    Field(discriminator='kind'),
]

_candidate_adapter = TypeAdapter(RemovalCandidate)


def parse_candidate(payload: Any) -> RemovalCandidate:
    """
    Validate a raw candidate payload into its typed variant.

    Raises:
        pydantic.ValidationError: If the payload does not match any kind
    """
    if isinstance(payload, _CandidateBase):
        payload = payload.model_dump()
    return _candidate_adapter.validate_python(payload)


class RemovalResult(BaseModel):
    """
    Terminal record of one candidate's processing

    rollback_reference is the committed revision and is only present on
    success; issues are only present on failure.
    """

    candidate: RemovalCandidate = Field(..., description="The candidate that was processed")
    success: bool = Field(..., description="True when the removal was validated and committed")

    metrics_before: Optional[MetricsSnapshot] = Field(None, description="Metrics captured before removal")
    metrics_after: Optional[MetricsSnapshot] = Field(None, description="Metrics captured after removal")

    rollback_reference: Optional[str] = Field(None, description="Commit that can be reverted")
    issues: Optional[List[str]] = Field(None, description="Why the candidate failed")

    branch: Optional[str] = Field(None, description="Branch the candidate was applied on")
    backup_id: Optional[str] = Field(None, description="Backup written before mutation")

    @model_validator(mode='after')
    def validate_outcome_fields(self):
        if self.success:
            if self.issues:
                raise ValueError('a successful result cannot carry issues')
        else:
            if self.rollback_reference is not None:
                raise ValueError('a failed result cannot carry a rollback reference')
            if not self.issues:
                raise ValueError('a failed result must record at least one issue')
        return self

    @computed_field
    @property
    def lines_saved(self) -> int:
        """Lines actually removed (0 unless committed)"""
        return self.candidate.estimated_savings.lines if self.success else 0
