"""
Scan Report Models - Analysis output and pipeline run results

AnalysisResult is the combined output of the analysis phase (duplicate
groups, dead code, redundant imports, unused components and summary
metrics). PipelineRunResult is what one invocation of the pipeline
returns: the analysis summary, the candidates, one RemovalResult per
attempted candidate, and the baseline/current performance snapshots.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from .code_block import CodeBlock
from .duplicate_group import DuplicateGroup, RiskLevel
from .metrics import PerformanceMetrics
from .removal import CandidateKind, RemovalCandidate, RemovalResult


class PipelinePhase(str, Enum):
    """Phases of one pipeline run, in execution order"""
    SETUP = "setup"
    ANALYSIS = "analysis"
    TEST_PREPARATION = "test_preparation"
    PERFORMANCE_BASELINE = "performance_baseline"
    SAFE_REMOVAL = "safe_removal"
    POST_REMOVAL_VALIDATION = "post_removal_validation"
    REPORTING = "reporting"
    COMPLETE = "complete"


class AnalysisMetrics(BaseModel):
    """Statistical metrics from the analysis phase"""
    total_files: int = Field(0, ge=0, description="Source files scanned")
    total_lines: int = Field(0, ge=0, description="Lines of code scanned")
    total_blocks: int = Field(0, ge=0, description="Code blocks extracted")
    parse_failures: int = Field(0, ge=0, description="Files skipped because they did not parse")

    exact_duplicate_groups: int = Field(0, ge=0, description="Groups with 100% similarity")
    near_duplicate_groups: int = Field(0, ge=0, description="Groups with token-overlap similarity")
    duplicate_lines: int = Field(0, ge=0, description="Removable lines across exact duplicate groups")
    dead_code_lines: int = Field(0, ge=0, description="Lines in unreferenced definitions")
    average_complexity: float = Field(0.0, ge=0, description="Mean complexity over all blocks")

    @computed_field
    @property
    def estimated_savings_lines(self) -> int:
        return self.duplicate_lines + self.dead_code_lines

    @computed_field
    @property
    def estimated_savings_percentage(self) -> float:
        """Share of scanned lines that removal would save"""
        if self.total_lines == 0:
            return 0.0
        return round(self.estimated_savings_lines / self.total_lines * 100, 2)


class AnalysisResult(BaseModel):
    """Combined output of extractor, analyzer, scanners and risk classifier"""
    duplicates: List[DuplicateGroup] = Field(default_factory=list, description="Exact and near duplicate groups")
    dead_code: List[CodeBlock] = Field(default_factory=list, description="Unreferenced definitions")
    dead_code_risk: Dict[str, RiskLevel] = Field(
        default_factory=dict,
        description="Block key -> assessed risk of removing the dead definition"
    )
    redundant_imports: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="File -> imported names never used in that file"
    )
    unused_components: List[str] = Field(default_factory=list, description="Modules nothing imports")
    metrics: AnalysisMetrics = Field(default_factory=AnalysisMetrics, description="Summary metrics")

    @property
    def exact_duplicates(self) -> List[DuplicateGroup]:
        return [g for g in self.duplicates if g.is_exact]

    @property
    def near_duplicates(self) -> List[DuplicateGroup]:
        return [g for g in self.duplicates if not g.is_exact]

    @property
    def redundant_import_count(self) -> int:
        return sum(len(names) for names in self.redundant_imports.values())


class PipelineOptions(BaseModel):
    """Operator choices for one pipeline run"""
    dry_run: bool = Field(False, description="Analyze and list candidates without mutating anything")
    max_risk: RiskLevel = Field(RiskLevel.LOW, description="Highest risk level to attempt")
    kinds: List[CandidateKind] = Field(
        default_factory=lambda: list(CandidateKind),
        description="Candidate kinds to attempt"
    )
    interactive: bool = Field(False, description="Ask the selector to choose candidates")


class PipelineRunResult(BaseModel):
    """
    Complete result of one pipeline invocation

    Holds every RemovalResult in the order candidates were attempted. In
    dry-run mode results is empty and dry_run_listing describes what
    would have been removed.
    """

    options: PipelineOptions = Field(..., description="Options the run was started with")
    phase: PipelinePhase = Field(PipelinePhase.SETUP, description="Last phase reached")
    started_at: datetime = Field(default_factory=datetime.now, description="Run start")
    finished_at: Optional[datetime] = Field(None, description="Run end")

    analysis: AnalysisResult = Field(default_factory=AnalysisResult, description="Analysis phase output")
    candidates: List[RemovalCandidate] = Field(default_factory=list, description="Candidates after filtering")
    results: List[RemovalResult] = Field(default_factory=list, description="One result per attempted candidate")

    baseline_metrics: Optional[PerformanceMetrics] = Field(None, description="Phase 4 measurements")
    current_metrics: Optional[PerformanceMetrics] = Field(None, description="Phase 6 measurements")

    warnings: List[str] = Field(default_factory=list, description="Non-fatal problems")
    dry_run_listing: List[str] = Field(default_factory=list, description="What would be removed")
    stopped_early: bool = Field(False, description="True when a stop was requested between candidates")
    report_files: Dict[str, str] = Field(default_factory=dict, description="Format -> written report path")
    timings: Dict[str, dict] = Field(default_factory=dict, description="Phase name -> timing summary")

    @computed_field
    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @computed_field
    @property
    def success_rate(self) -> float:
        """Percentage of attempted candidates that were committed"""
        if not self.results:
            return 0.0
        return round(self.successful / len(self.results) * 100, 1)

    @computed_field
    @property
    def total_lines_saved(self) -> int:
        return sum(r.lines_saved for r in self.results)
