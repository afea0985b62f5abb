"""
Candidate selection for interactive runs.

The orchestrator only depends on the CandidateSelector protocol; the CLI
supplies the terminal prompt.
"""

from __future__ import annotations

import sys
from typing import Callable, List, Protocol, TextIO

from ..models.removal import RemovalCandidate


class CandidateSelector(Protocol):
    def select_subset(self, candidates: List[RemovalCandidate]) -> List[RemovalCandidate]:
        ...


class SelectAll:
    """Selects every candidate unchanged."""

    def select_subset(self, candidates: List[RemovalCandidate]) -> List[RemovalCandidate]:
        return list(candidates)


class PromptSelector:
    """Asks y/N for every candidate; anything but yes excludes it."""

    def __init__(self, ask: Callable[[str], str] = input, out: TextIO = sys.stderr) -> None:
        self.ask = ask
        self.out = out

    def select_subset(self, candidates: List[RemovalCandidate]) -> List[RemovalCandidate]:
        selected = []
        print(f"{len(candidates)} candidate(s) eligible for removal:", file=self.out)
        for candidate in candidates:
            summary = candidate.description or ', '.join(candidate.files)
            try:
                answer = self.ask(f"  Remove [{candidate.risk.value}] {summary}? [y/N] ")
            except EOFError:
                break
            if answer.strip().lower() in ('y', 'yes'):
                selected.append(candidate)
        print(f"Selected {len(selected)} of {len(candidates)} candidate(s)", file=self.out)
        return selected
