"""
Pydantic Models for the Code Cleanup Pipeline

This package contains the data models that flow between the extractor,
analyzer, risk classifier, safe remover and report generator.

Models:
- CodeBlock: One extracted function/class/component
- DuplicateGroup: Group of exact or near duplicate blocks
- RemovalCandidate: Tagged union of removal actions
- RemovalResult: Terminal record of one candidate
- MetricsSnapshot: Tests, performance and code size at one point in time
- AnalysisResult / PipelineRunResult: Phase and run outputs
"""

from .code_block import (
    BlockKind,
    CodeBlock,
)

from .duplicate_group import (
    DuplicateGroup,
    EstimatedSavings,
    RiskLevel,
    SimilarityMethod,
)

from .metrics import (
    CodeMetrics,
    CoverageSummary,
    MetricsSnapshot,
    PerformanceMetrics,
    TestRunResult,
)

from .removal import (
    CandidateKind,
    DeadCodeCandidate,
    DuplicateCandidate,
    RemovalCandidate,
    RemovalResult,
    UnusedComponentCandidate,
    UnusedImportCandidate,
    parse_candidate,
)

from .scan_report import (
    AnalysisMetrics,
    AnalysisResult,
    PipelineOptions,
    PipelinePhase,
    PipelineRunResult,
)

__all__ = [
    # code_block
    'BlockKind',
    'CodeBlock',

    # duplicate_group
    'DuplicateGroup',
    'EstimatedSavings',
    'RiskLevel',
    'SimilarityMethod',

    # metrics
    'CodeMetrics',
    'CoverageSummary',
    'MetricsSnapshot',
    'PerformanceMetrics',
    'TestRunResult',

    # removal
    'CandidateKind',
    'DeadCodeCandidate',
    'DuplicateCandidate',
    'RemovalCandidate',
    'RemovalResult',
    'UnusedComponentCandidate',
    'UnusedImportCandidate',
    'parse_candidate',

    # scan_report
    'AnalysisMetrics',
    'AnalysisResult',
    'PipelineOptions',
    'PipelinePhase',
    'PipelineRunResult',
]
