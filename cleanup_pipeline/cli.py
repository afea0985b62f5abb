"""
Command-line entry point.

Usage:
    code-cleanup [PROJECT_ROOT] [--dry-run] [--max-risk low|medium|high]
                 [--kind KIND ...] [--interactive] [--print-config]

Exit status: 0 on completion, 1 when the run is aborted, 130 when
interrupted before the run could finish.
"""

import argparse
import signal
import sys
from pathlib import Path

from .config import CleanupConfig
from .models import CandidateKind, PipelineOptions, RiskLevel
from .pipeline.orchestrator import CleanupOrchestrator, PipelineAbortedError
from .pipeline.selection import PromptSelector


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='code-cleanup',
        description='Find duplicate and dead code and remove it behind tests, with automatic rollback',
    )
    parser.add_argument('project_root', nargs='?', default='.', help='Git working tree to clean up')
    parser.add_argument('--dry-run', action='store_true', help='List what would be removed without changing anything')
    parser.add_argument(
        '--max-risk',
        choices=[r.value for r in RiskLevel],
        default=RiskLevel.LOW.value,
        help='Highest risk level to attempt (default: low)',
    )
    parser.add_argument(
        '--kind',
        action='append',
        choices=[k.value for k in CandidateKind],
        dest='kinds',
        help='Candidate kind to attempt (repeatable; default: all)',
    )
    parser.add_argument('--interactive', action='store_true', help='Confirm each candidate before removal')
    parser.add_argument('--print-config', action='store_true', help='Print the effective configuration and exit')
    return parser


def _print_summary(run) -> None:
    print(f"\n{'='*60}")
    print("Code Cleanup Summary")
    print(f"{'='*60}")
    if run.options.dry_run:
        print(f"Dry run: {len(run.dry_run_listing)} candidate(s) would be removed")
    else:
        print(f"Removals: {run.successful} committed, {run.failed} failed ({run.success_rate:g}% success)")
        print(f"Lines saved: {run.total_lines_saved}")
    for warning in run.warnings:
        print(f"Warning: {warning}")
    if run.report_files:
        print(f"Report: {run.report_files.get('markdown')}")
    print(f"{'='*60}\n")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.print_config:
        CleanupConfig.print_config()
        return 0

    options = PipelineOptions(
        dry_run=args.dry_run,
        max_risk=RiskLevel(args.max_risk),
        kinds=[CandidateKind(k) for k in args.kinds] if args.kinds else list(CandidateKind),
        interactive=args.interactive,
    )
    orchestrator = CleanupOrchestrator(Path(args.project_root), selector=PromptSelector())

    def on_interrupt(signum, frame):
        # A second Ctrl-C falls through to KeyboardInterrupt.
        signal.signal(signal.SIGINT, signal.default_int_handler)
        print('\nStop requested; finishing the current candidate', file=sys.stderr)
        orchestrator.request_stop()

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)
    try:
        run = orchestrator.run(options)
    except PipelineAbortedError as e:
        print(f"Fatal: {e.reason}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print('Fatal: interrupted', file=sys.stderr)
        return 130
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    _print_summary(run)
    return 130 if run.stopped_early else 0


if __name__ == '__main__':
    sys.exit(main())
