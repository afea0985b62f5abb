"""
Analysis phase: Extractor -> Analyzer -> Risk Classifier.

Produces the AnalysisResult the orchestrator turns into removal
candidates: exact and near duplicate groups, unreferenced definitions
with their removal risk, redundant imports and unused modules.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..annotators.risk_classifier import RiskClassifier
from ..extractors.extract_blocks import BlockExtractor
from ..models.scan_report import AnalysisMetrics, AnalysisResult
from ..scanners.dead_code import scan_references
from ..similarity.grouping import group_by_similarity


def analyze_project(
    project_root: Path,
    extractor: Optional[BlockExtractor] = None,
    classifier: Optional[RiskClassifier] = None,
) -> AnalysisResult:
    """
    Run the full analysis over a project.

    Args:
        project_root: Project to scan
        extractor: Block extractor (defaults to the Python extractor)
        classifier: Risk classifier (defaults to config thresholds)

    Returns:
        AnalysisResult with summary metrics filled in
    """
    project_root = Path(project_root)
    extractor = extractor or BlockExtractor(project_root)
    classifier = classifier or RiskClassifier(project_root)

    extraction = extractor.scan()
    blocks = extraction.blocks

    groups = group_by_similarity(blocks, classifier)
    references = scan_references(blocks, extraction.trees, extraction.sources)

    dead_code_risk = {
        block.block_key: classifier.assess_risk([block])
        for block in references.dead_code
    }

    exact = [g for g in groups if g.is_exact]
    near = [g for g in groups if not g.is_exact]
    metrics = AnalysisMetrics(
        total_files=len(extraction.files),
        total_lines=extraction.total_lines,
        total_blocks=len(blocks),
        parse_failures=extraction.parse_failures,
        exact_duplicate_groups=len(exact),
        near_duplicate_groups=len(near),
        duplicate_lines=sum(g.estimated_savings.lines for g in exact),
        dead_code_lines=sum(b.line_count for b in references.dead_code),
        average_complexity=(
            round(sum(b.complexity_score for b in blocks) / len(blocks), 2) if blocks else 0.0
        ),
    )

    return AnalysisResult(
        duplicates=groups,
        dead_code=references.dead_code,
        dead_code_risk=dead_code_risk,
        redundant_imports=references.redundant_imports,
        unused_components=references.unused_components,
        metrics=metrics,
    )
