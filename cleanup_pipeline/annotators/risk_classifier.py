"""
Risk Classifier - Assigns removal risk and recommendations

Risk is decided by three explainable signals, in priority order:
- Sensitive path: any member under an auth/payment/core-like path -> high
- Complexity: average complexity above the threshold -> medium
- Test co-location: no member has a test file next to it -> medium
Everything else is low.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from ..config import config
from ..constants import RiskDefaults
from ..models.code_block import BlockKind
from ..models.duplicate_group import RiskLevel

if TYPE_CHECKING:
    from ..models.code_block import CodeBlock


# Recommendation texts, in priority order
RECOMMEND_IMPORTS = 'Consolidate duplicate imports'
RECOMMEND_UTILITY = 'Extract to shared utility function'
RECOMMEND_COMPONENT = 'Create reusable component'
RECOMMEND_REVIEW = 'Review and consolidate duplicate logic'


def near_duplicate_recommendation(similarity_percent: int) -> str:
    return f"Consider merging these similar functions ({similarity_percent}% similar)"


def is_test_file(file: str) -> bool:
    """True for test modules (test_*.py, *_test.py, *.test.*, *.spec.*, files under tests/)."""
    path = Path(file)
    name = path.name
    if name.startswith('test_') or path.stem.endswith('_test') or name == 'conftest.py':
        return True
    if '.test.' in name or '.spec.' in name:
        return True
    return 'tests' in path.parts[:-1]


class RiskClassifier:
    """
    Classifies how risky it is to remove a set of blocks.

    Args:
        project_root: Root used to look for co-located test files
        sensitive_paths: Case-insensitive path substrings that force high risk
        complexity_threshold: Average complexity above which risk is medium
    """

    def __init__(
        self,
        project_root: Path,
        sensitive_paths: Optional[Sequence[str]] = None,
        complexity_threshold: Optional[float] = None,
    ) -> None:
        self.project_root = Path(project_root)
        paths = config.SENSITIVE_PATHS if sensitive_paths is None else sensitive_paths
        self.sensitive_paths = tuple(p.lower() for p in paths if p)
        self.complexity_threshold = (
            config.COMPLEXITY_THRESHOLD if complexity_threshold is None else complexity_threshold
        )

    def is_sensitive(self, file: str) -> bool:
        lowered = file.lower()
        return any(marker in lowered for marker in self.sensitive_paths)

    def test_file_candidates(self, file: str) -> List[Path]:
        """Paths where a test for this file would live by naming convention."""
        path = Path(file)
        stem, ext = path.stem, path.suffix
        parent = self.project_root / path.parent
        return [
            parent / f"test_{stem}.py",
            parent / f"{stem}_test.py",
            parent / 'tests' / f"test_{stem}.py",
            self.project_root / 'tests' / f"test_{stem}.py",
            parent / f"{stem}.test{ext}",
            parent / f"{stem}.spec{ext}",
        ]

    def has_test_file(self, file: str) -> bool:
        if is_test_file(file):
            return True
        return any(candidate.exists() for candidate in self.test_file_candidates(file))

    def assess_files(self, files: Iterable[str], complexities: Iterable[float]) -> RiskLevel:
        """Risk for removing code from the given files with the given complexities."""
        files = list(files)
        complexities = list(complexities)

        if any(self.is_sensitive(f) for f in files):
            return RiskLevel.HIGH

        avg_complexity = sum(complexities) / len(complexities) if complexities else 0.0
        if avg_complexity > self.complexity_threshold:
            return RiskLevel.MEDIUM
        if not any(self.has_test_file(f) for f in files):
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def assess_risk(self, blocks: Sequence[CodeBlock]) -> RiskLevel:
        return self.assess_files(
            [b.file for b in blocks],
            [b.complexity_score for b in blocks],
        )

    def generate_recommendation(self, blocks: Sequence[CodeBlock]) -> str:
        if blocks and all(b.kind == BlockKind.IMPORT for b in blocks):
            return RECOMMEND_IMPORTS
        if blocks and all(
            b.kind == BlockKind.FUNCTION and b.complexity_score < RiskDefaults.LOW_COMPLEXITY_MAX
            for b in blocks
        ):
            return RECOMMEND_UTILITY
        if any(b.kind == BlockKind.COMPONENT for b in blocks):
            return RECOMMEND_COMPONENT
        return RECOMMEND_REVIEW
