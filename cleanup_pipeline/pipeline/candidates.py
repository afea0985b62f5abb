"""
Candidate building - analysis findings to RemovalCandidates

Each candidate is one atomic removal action with a deterministic id, so
re-running the analysis on an unchanged tree yields the same branch
names. Near-duplicate groups are reported only and never become
candidates.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..annotators.risk_classifier import RiskClassifier
from ..models.code_block import CodeBlock
from ..models.duplicate_group import DuplicateGroup, EstimatedSavings, RiskLevel
from ..models.removal import (
    CandidateKind,
    DeadCodeCandidate,
    DuplicateCandidate,
    RemovalCandidate,
    UnusedComponentCandidate,
    UnusedImportCandidate,
)
from ..models.scan_report import AnalysisResult
from ..similarity.grouping import calculate_savings

_ID_PREFIXES = {
    CandidateKind.DUPLICATE: 'dup',
    CandidateKind.DEAD_CODE: 'dead',
    CandidateKind.UNUSED_IMPORT: 'imports',
    CandidateKind.UNUSED_COMPONENT: 'module',
}


def candidate_id(kind: CandidateKind, *parts: str) -> str:
    """Stable id from the kind and the identifying parts of the finding."""
    digest = hashlib.sha256('|'.join(parts).encode('utf-8')).hexdigest()[:10]
    return f"{_ID_PREFIXES[kind]}-{digest}"


def _one_per_file(blocks: Sequence[CodeBlock]) -> List[CodeBlock]:
    seen, kept = set(), []
    for block in blocks:
        if block.file not in seen:
            seen.add(block.file)
            kept.append(block)
    return kept


def duplicate_candidate(group: DuplicateGroup) -> Optional[DuplicateCandidate]:
    """
    Candidate for an exact duplicate group, or None when it cannot be removed.

    Only the first copy per file is considered; the first file keeps its
    copy and every other file re-exports it.
    """
    if not group.is_exact:
        return None
    members = _one_per_file(group.members)
    symbol = members[0].name
    if len(members) < 2 or not symbol:
        return None
    return DuplicateCandidate(
        id=candidate_id(CandidateKind.DUPLICATE, group.group_key, *[m.file for m in members]),
        files=[m.file for m in members],
        line_ranges=[(m.start_line, m.end_line) for m in members],
        symbol=symbol,
        group_key=group.group_key,
        risk=group.risk,
        estimated_savings=calculate_savings(members),
        description=f"Duplicate {symbol} in {len(members)} files (keep {members[0].file})",
    )


def dead_code_candidate(block: CodeBlock, risk: RiskLevel) -> DeadCodeCandidate:
    return DeadCodeCandidate(
        id=candidate_id(CandidateKind.DEAD_CODE, block.block_key, block.normalized_hash),
        files=[block.file],
        line_ranges=[(block.start_line, block.end_line)],
        symbol=block.name,
        risk=risk,
        estimated_savings=EstimatedSavings(
            lines=block.line_count,
            bytes=block.byte_count,
            complexity=block.complexity_score,
        ),
        description=f"Unreferenced {block.kind.value} {block.name or '<anonymous>'} in {block.file}",
    )


def unused_import_candidate(file: str, names: List[str], risk: RiskLevel) -> UnusedImportCandidate:
    return UnusedImportCandidate(
        id=candidate_id(CandidateKind.UNUSED_IMPORT, file, *sorted(names)),
        files=[file],
        unused_names={file: sorted(names)},
        risk=risk,
        estimated_savings=EstimatedSavings(lines=len(names)),
        description=f"Unused imports {', '.join(sorted(names))} in {file}",
    )


def unused_component_candidate(project_root: Path, file: str, risk: RiskLevel) -> UnusedComponentCandidate:
    try:
        data = (Path(project_root) / file).read_bytes()
    except OSError:
        data = b''
    return UnusedComponentCandidate(
        id=candidate_id(CandidateKind.UNUSED_COMPONENT, file),
        files=[file],
        risk=risk,
        estimated_savings=EstimatedSavings(
            lines=len(data.decode('utf-8', errors='replace').splitlines()),
            bytes=len(data),
        ),
        description=f"Unused module {file}",
    )


def build_candidates(analysis: AnalysisResult, classifier: RiskClassifier) -> List[RemovalCandidate]:
    """Every removable finding as a candidate, in analysis order."""
    candidates: List[RemovalCandidate] = []

    for group in analysis.exact_duplicates:
        candidate = duplicate_candidate(group)
        if candidate is not None:
            candidates.append(candidate)

    for block in analysis.dead_code:
        risk = analysis.dead_code_risk.get(block.block_key) or classifier.assess_risk([block])
        candidates.append(dead_code_candidate(block, risk))

    for file, names in sorted(analysis.redundant_imports.items()):
        candidates.append(unused_import_candidate(file, names, classifier.assess_files([file], [])))

    for file in analysis.unused_components:
        risk = classifier.assess_files([file], [])
        candidates.append(unused_component_candidate(classifier.project_root, file, risk))

    return candidates


def filter_candidates(
    candidates: Iterable[RemovalCandidate],
    max_risk: RiskLevel,
    kinds: Iterable[CandidateKind],
) -> List[RemovalCandidate]:
    """Candidates at or below max_risk whose kind was requested."""
    wanted = {CandidateKind(k).value for k in kinds}
    return [c for c in candidates if c.risk <= max_risk and c.kind in wanted]
