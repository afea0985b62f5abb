"""
Duplicate Grouping

Two layers:
- Layer 1: Exact matching (identical normalized hash, any block kind)
- Layer 2: Near duplicates (token overlap between function blocks that
  share a parameter-shape signature)

Every group gets its estimated savings, removal risk and recommendation
at creation time; groups are immutable afterwards.
"""

from __future__ import annotations

import sys
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from ..annotators.risk_classifier import RiskClassifier, near_duplicate_recommendation
from ..config import config
from ..constants import SimilarityBounds
from ..models.code_block import BlockKind, CodeBlock
from ..models.duplicate_group import DuplicateGroup, EstimatedSavings, SimilarityMethod
from .structural import calculate_token_similarity, pair_key


def calculate_savings(blocks: Sequence[CodeBlock]) -> EstimatedSavings:
    """
    Savings of keeping only the first block and deleting the rest.

    lines/bytes are the totals across members minus the first member's
    own size; complexity is the average complexity times (members - 1).
    """
    if not blocks:
        return EstimatedSavings()
    first = blocks[0]
    total_lines = sum(b.line_count for b in blocks)
    total_bytes = sum(b.byte_count for b in blocks)
    avg_complexity = sum(b.complexity_score for b in blocks) / len(blocks)
    return EstimatedSavings(
        lines=total_lines - first.line_count,
        bytes=total_bytes - first.byte_count,
        complexity=round(avg_complexity * (len(blocks) - 1), 2),
    )


def find_exact_duplicates(blocks: Sequence[CodeBlock], classifier: RiskClassifier) -> List[DuplicateGroup]:
    """Group blocks by normalized hash; every hash with 2+ members is a group."""
    by_hash: Dict[str, List[CodeBlock]] = defaultdict(list)
    for block in blocks:
        by_hash[block.normalized_hash].append(block)

    groups = []
    for normalized_hash, members in by_hash.items():
        if len(members) < 2:
            continue
        groups.append(DuplicateGroup(
            group_key=normalized_hash,
            members=members,
            similarity_percent=SimilarityBounds.EXACT,
            similarity_method=SimilarityMethod.EXACT_MATCH,
            estimated_savings=calculate_savings(members),
            risk=classifier.assess_risk(members),
            recommendation=classifier.generate_recommendation(members),
        ))

    if config.DEBUG:
        print(f"DEBUG: Layer 1 found {len(groups)} exact duplicate groups", file=sys.stderr)
    return groups


def find_near_duplicates(
    blocks: Sequence[CodeBlock],
    classifier: RiskClassifier,
    near_min: Optional[int] = None,
) -> List[DuplicateGroup]:
    """
    Pairwise token-overlap comparison within each signature partition.

    A pair becomes a group when near_min < similarity < 100. Pairs with an
    identical normalized hash belong to the exact layer and are skipped.
    Each unordered pair is scored once.
    """
    threshold = max(
        config.NEAR_DUPLICATE_MIN if near_min is None else near_min,
        SimilarityBounds.NEAR_MIN_EXCLUSIVE,
    )

    partitions: Dict[str, List[CodeBlock]] = defaultdict(list)
    for block in blocks:
        if block.kind == BlockKind.FUNCTION:
            partitions[block.signature].append(block)

    processed = set()
    groups = []
    for members in partitions.values():
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                first, second = members[i], members[j]
                key = pair_key(first.block_key, second.block_key)
                if key in processed:
                    continue
                processed.add(key)

                if first.normalized_hash == second.normalized_hash:
                    continue

                similarity = calculate_token_similarity(first.raw_content, second.raw_content)
                if not (threshold < similarity < SimilarityBounds.NEAR_MAX_EXCLUSIVE):
                    continue

                pair = [first, second]
                groups.append(DuplicateGroup(
                    group_key=key,
                    members=pair,
                    similarity_percent=similarity,
                    similarity_method=SimilarityMethod.NEAR_DUPLICATE,
                    estimated_savings=calculate_savings(pair),
                    risk=classifier.assess_risk(pair),
                    recommendation=near_duplicate_recommendation(similarity),
                ))

    if config.DEBUG:
        print(
            f"DEBUG: Layer 2 compared {len(processed)} pairs, {len(groups)} near duplicates",
            file=sys.stderr,
        )
    return groups


def group_by_similarity(
    blocks: Sequence[CodeBlock],
    classifier: RiskClassifier,
    near_min: Optional[int] = None,
) -> List[DuplicateGroup]:
    """Exact groups followed by near-duplicate groups."""
    exact = find_exact_duplicates(blocks, classifier)
    near = find_near_duplicates(blocks, classifier, near_min)
    print(
        f"Grouping: {len(exact)} exact, {len(near)} near duplicate groups from {len(blocks)} blocks",
        file=sys.stderr,
    )
    return exact + near
