"""
Tests for candidate building, selection and the seven-phase orchestrator.

The orchestrator runs end-to-end on a temporary project with a scripted
FakeRunner standing in for git and the test suite.

Run with: python -m pytest cleanup_pipeline/pipeline/test_pipeline.py -v
"""

import json
from pathlib import Path

import pytest

from cleanup_pipeline.annotators.risk_classifier import RiskClassifier
from cleanup_pipeline.config import ToolCommands
from cleanup_pipeline.models import (
    AnalysisResult,
    BlockKind,
    CandidateKind,
    CodeBlock,
    DeadCodeCandidate,
    DuplicateGroup,
    EstimatedSavings,
    PipelineOptions,
    PipelinePhase,
    RiskLevel,
    SimilarityMethod,
)
from cleanup_pipeline.pipeline.candidates import build_candidates, candidate_id, filter_candidates
from cleanup_pipeline.pipeline.orchestrator import CleanupOrchestrator, PipelineAbortedError
from cleanup_pipeline.pipeline.selection import PromptSelector, SelectAll
from cleanup_pipeline.utils.fake_runner import FakeRunner
from cleanup_pipeline.utils.process import ProcessResult


COVERAGE_FILE = 'coverage/coverage-summary.json'
REVISION = 'feedfacecafebeef0000000000000000deadbeef'

FOO = (
    'def foo(values):\n'
    '    total = 0\n'
    '    for value in values:\n'
    '        if value > 0:\n'
    '            total += value\n'
    '        else:\n'
    '            total -= value\n'
    '    result = total * 2\n'
    '    result = result + 1\n'
    '    return result\n'
)


def _block(file, start=1, end=10, name='foo', content=FOO, kind=BlockKind.FUNCTION):
    return CodeBlock(
        file=file,
        start_line=start,
        end_line=end,
        raw_content=content,
        normalized_hash='abc123',
        complexity_score=3,
        kind=kind,
        name=name,
    )


def _exact_group(*blocks):
    return DuplicateGroup(
        group_key='abc123',
        members=list(blocks),
        similarity_percent=100,
        similarity_method=SimilarityMethod.EXACT_MATCH,
        estimated_savings=EstimatedSavings(lines=10),
        risk=RiskLevel.LOW,
        recommendation='Extract to shared utility',
    )


# ---------------------------------------------------------------------------
# Candidate building
# ---------------------------------------------------------------------------

class TestBuildCandidates:
    """Tests for build_candidates() and filter_candidates()."""

    def test_exact_group_becomes_duplicate_candidate(self, tmp_path):
        analysis = AnalysisResult(duplicates=[_exact_group(_block('pkg/a.py'), _block('pkg/b.py'))])

        [candidate] = build_candidates(analysis, RiskClassifier(tmp_path))

        assert candidate.kind == 'duplicate'
        assert candidate.files == ['pkg/a.py', 'pkg/b.py']
        assert candidate.line_ranges == [(1, 10), (1, 10)]
        assert candidate.symbol == 'foo'
        assert candidate.estimated_savings.lines == 10
        assert candidate.branch_name == f"cleanup/duplicate/{candidate.id}"

    def test_copies_in_one_file_are_not_a_candidate(self, tmp_path):
        analysis = AnalysisResult(duplicates=[_exact_group(_block('pkg/a.py'), _block('pkg/a.py', 12, 21))])
        assert build_candidates(analysis, RiskClassifier(tmp_path)) == []

    def test_ids_are_deterministic(self):
        assert candidate_id(CandidateKind.DEAD_CODE, 'a.py:3') == candidate_id(CandidateKind.DEAD_CODE, 'a.py:3')
        assert candidate_id(CandidateKind.DEAD_CODE, 'a.py:3').startswith('dead-')
        assert candidate_id(CandidateKind.DEAD_CODE, 'a.py:3') != candidate_id(CandidateKind.DEAD_CODE, 'a.py:4')

    def test_every_finding_kind_is_converted(self, tmp_path):
        (tmp_path / 'legacy.py').write_text('OLD = 1\nNEW = 2\n')
        dead = _block('app/x.py', 3, 4, name='helper', content='def helper():\n    pass\n')
        analysis = AnalysisResult(
            dead_code=[dead],
            dead_code_risk={dead.block_key: RiskLevel.MEDIUM},
            redundant_imports={'app/x.py': ['sys', 'os']},
            unused_components=['legacy.py'],
        )

        candidates = build_candidates(analysis, RiskClassifier(tmp_path))

        assert [c.kind for c in candidates] == ['dead-code', 'unused-import', 'unused-component']
        assert candidates[0].risk == RiskLevel.MEDIUM
        assert candidates[0].line_ranges == [(3, 4)]
        assert candidates[1].unused_names == {'app/x.py': ['os', 'sys']}
        assert candidates[2].estimated_savings.lines == 2

    def test_filter_by_risk_and_kind(self):
        def dead(id, risk):
            return DeadCodeCandidate(id=id, files=['a.py'], line_ranges=[(1, 2)], risk=risk)

        candidates = [dead('l', RiskLevel.LOW), dead('m', RiskLevel.MEDIUM), dead('h', RiskLevel.HIGH)]

        assert [c.id for c in filter_candidates(candidates, RiskLevel.MEDIUM, list(CandidateKind))] == ['l', 'm']
        assert filter_candidates(candidates, RiskLevel.HIGH, [CandidateKind.DUPLICATE]) == []


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def test_select_all_keeps_everything():
    candidates = [DeadCodeCandidate(id='a', files=['a.py'], line_ranges=[(1, 1)], risk=RiskLevel.LOW)]
    assert SelectAll().select_subset(candidates) == candidates


def test_prompt_selector_keeps_confirmed(capsys):
    candidates = [
        DeadCodeCandidate(id=str(i), files=['a.py'], line_ranges=[(1, 1)], risk=RiskLevel.LOW)
        for i in range(3)
    ]
    answers = iter(['y', 'n', 'YES'])
    selected = PromptSelector(ask=lambda prompt: next(answers)).select_subset(candidates)
    assert [c.id for c in selected] == ['0', '2']


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def _suite(pct=90.0, fail=False):
    def effect(args, cwd):
        path = cwd / COVERAGE_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({'total': {'lines': {'pct': pct}}}))
        if fail:
            return ProcessResult(args=args, returncode=1, stdout='FAILED tests/test_a.py::test_foo')
        return None
    return effect


def _git(runner, status='', branch='main'):
    return (
        runner
        .on('git', 'status', stdout=status)
        .on('git', 'rev-parse', '--abbrev-ref', 'HEAD', stdout=branch + '\n')
        .on('git', 'rev-parse', 'HEAD', stdout=REVISION + '\n')
    )


@pytest.fixture
def project(tmp_path):
    (tmp_path / 'pkg').mkdir()
    (tmp_path / 'pkg' / '__init__.py').write_text('')
    (tmp_path / 'pkg' / 'a.py').write_text(FOO)
    (tmp_path / 'pkg' / 'b.py').write_text(FOO)
    (tmp_path / 'tests').mkdir()
    (tmp_path / 'tests' / 'test_a.py').write_text(
        'from pkg.a import foo\n\n\ndef test_foo():\n    assert foo([1]) == 3\n'
    )
    (tmp_path / 'tests' / 'test_b.py').write_text(
        'from pkg.b import foo\n\n\ndef test_foo_negative():\n    assert foo([-2]) == 5\n'
    )
    return tmp_path


def _orchestrator(project, runner, selector=None):
    commands = ToolCommands(test=['pytest'], tests_dir='tests', coverage_file=COVERAGE_FILE)
    return CleanupOrchestrator(project, runner, commands, selector=selector, main_branch='main')


DUPLICATES_ONLY = PipelineOptions(max_risk=RiskLevel.LOW, kinds=[CandidateKind.DUPLICATE])


class TestOrchestrator:
    """End-to-end runs of CleanupOrchestrator.run()."""

    def test_identical_functions_are_deduplicated(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite()))

        run = _orchestrator(project, runner).run(DUPLICATES_ONLY)

        assert run.phase == PipelinePhase.COMPLETE
        [group] = run.analysis.exact_duplicates
        assert group.similarity_percent == 100
        assert group.estimated_savings.lines == 10
        assert group.risk == RiskLevel.LOW

        [result] = run.results
        assert result.success
        assert result.rollback_reference == REVISION
        assert run.total_lines_saved == 10
        assert (project / 'pkg' / 'a.py').read_text() == FOO
        assert (project / 'pkg' / 'b.py').read_text() == 'from pkg.a import foo\n'
        assert Path(run.report_files['markdown']).exists()
        assert Path(run.report_files['json']).exists()

    def test_failing_baseline_aborts_before_any_branch(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite(fail=True)))

        with pytest.raises(PipelineAbortedError) as excinfo:
            _orchestrator(project, runner).run(DUPLICATES_ONLY)

        assert excinfo.value.phase == PipelinePhase.TEST_PREPARATION
        assert 'Baseline tests failing' in excinfo.value.reason
        assert runner.calls_to('git', 'checkout') == []
        assert (project / 'pkg' / 'b.py').read_text() == FOO

    def test_dirty_tree_aborts_setup(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite()), status=' M pkg/a.py\n')

        with pytest.raises(PipelineAbortedError) as excinfo:
            _orchestrator(project, runner).run(DUPLICATES_ONLY)

        assert excinfo.value.phase == PipelinePhase.SETUP
        assert not runner.calls_to('pytest')

    def test_working_dirs_do_not_make_the_tree_dirty(self, project):
        runner = _git(
            FakeRunner().on('pytest', effect=_suite()),
            status='?? .cleanup-backups/\n?? cleanup-reports/\n',
        )
        run = _orchestrator(project, runner).run(PipelineOptions(dry_run=True))
        assert run.phase == PipelinePhase.COMPLETE

    def test_other_branch_only_warns(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite()), branch='feature/x')

        run = _orchestrator(project, runner).run(PipelineOptions(dry_run=True))

        assert run.warnings == ['Not on main (current branch: feature/x)']

    def test_dry_run_lists_without_mutating(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite()))

        run = _orchestrator(project, runner).run(DUPLICATES_ONLY.model_copy(update={'dry_run': True}))

        assert run.results == []
        assert len(run.dry_run_listing) == 1
        assert run.dry_run_listing[0].startswith('[low] duplicate: Duplicate foo in 2 files')
        assert not runner.calls_to('git', 'checkout')
        assert (project / 'pkg' / 'b.py').read_text() == FOO
        assert '## Would Be Removed' in Path(run.report_files['markdown']).read_text()

    def test_interactive_run_uses_selector(self, project):
        class RejectAll:
            def select_subset(self, candidates):
                return []

        runner = _git(FakeRunner().on('pytest', effect=_suite()))
        options = DUPLICATES_ONLY.model_copy(update={'interactive': True})

        run = _orchestrator(project, runner, selector=RejectAll()).run(options)

        assert run.candidates == []
        assert run.results == []
        assert not runner.calls_to('git', 'checkout', '-b')

    def test_stop_before_removal_attempts_nothing(self, project):
        runner = _git(FakeRunner().on('pytest', effect=_suite()))
        orchestrator = _orchestrator(project, runner)
        orchestrator.request_stop()

        run = orchestrator.run(DUPLICATES_ONLY)

        assert run.stopped_early
        assert run.results[0].issues == ['Not attempted: stop requested']
        assert (project / 'pkg' / 'b.py').read_text() == FOO
