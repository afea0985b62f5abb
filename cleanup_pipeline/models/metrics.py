"""
Metrics Models - Test, coverage, performance and code-size measurements

These records are captured before and after every removal attempt and
compared by the removal validator. They are also the baseline/current
snapshots reported at the end of a pipeline run.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class CoverageSummary(BaseModel):
    """Per-metric coverage percentages; zero when no summary is available"""
    statements: float = Field(0.0, ge=0.0, le=100.0, description="Statement coverage %")
    branches: float = Field(0.0, ge=0.0, le=100.0, description="Branch coverage %")
    functions: float = Field(0.0, ge=0.0, le=100.0, description="Function coverage %")
    lines: float = Field(0.0, ge=0.0, le=100.0, description="Line coverage %")


class TestRunResult(BaseModel):
    """Outcome of one run of the project's test suite"""
    __test__ = False  # not a pytest test class

    passed: bool = Field(..., description="True when the suite exited with status 0")
    coverage: CoverageSummary = Field(default_factory=CoverageSummary, description="Coverage after the run")
    duration_ms: float = Field(0.0, ge=0, description="Wall-clock duration of the run")
    failure_messages: List[str] = Field(default_factory=list, description="Captured failure output")


class PerformanceMetrics(BaseModel):
    """Runtime and build measurements of the project"""
    load_time_ms: float = Field(0.0, ge=0, description="Duration of the load probe command")
    memory_bytes: int = Field(0, ge=0, description="Peak resident memory of the load probe")
    bundle_size_bytes: int = Field(0, ge=0, description="Total size of the build output directory")
    build_time_ms: float = Field(0.0, ge=0, description="Duration of the build command")
    build_succeeded: bool = Field(True, description="False when the build command failed")
    test_duration_ms: float = Field(0.0, ge=0, description="Duration of the last test run")
    captured_at: datetime = Field(default_factory=datetime.now, description="Capture timestamp")

    @property
    def memory_mb(self) -> float:
        return self.memory_bytes / (1024 * 1024)

    @property
    def bundle_size_kb(self) -> float:
        return self.bundle_size_bytes / 1024


class CodeMetrics(BaseModel):
    """Size of the scanned source tree"""
    files: int = Field(0, ge=0, description="Source files counted")
    lines: int = Field(0, ge=0, description="Total source lines")
    bytes: int = Field(0, ge=0, description="Total source bytes")


class MetricsSnapshot(BaseModel):
    """Everything the validator compares for one side of a removal"""
    tests: Optional[TestRunResult] = Field(None, description="Test outcome at capture time")
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics, description="Performance measurements")
    code: CodeMetrics = Field(default_factory=CodeMetrics, description="Source tree size")

    @computed_field
    @property
    def line_coverage(self) -> float:
        """Line coverage of the captured test run (0 when no tests were run)"""
        if self.tests is None:
            return 0.0
        return self.tests.coverage.lines
