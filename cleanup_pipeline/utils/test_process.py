"""
Tests for SubprocessRunner and the phase timers.

These start real (tiny) Python child processes.

Run with: python -m pytest cleanup_pipeline/utils/test_process.py -v
"""

import sys

import pytest

from cleanup_pipeline.utils.process import CommandFailedError, SubprocessRunner, tail
from cleanup_pipeline.utils.timing import Stopwatch, TimingLog


def test_output_and_duration_are_captured(tmp_path):
    result = SubprocessRunner().run(
        [sys.executable, '-c', 'import time; time.sleep(0.05); print("done")'],
        cwd=tmp_path,
    )

    assert result.ok
    assert result.stdout.strip() == 'done'
    assert result.duration_ms >= 50


def test_memory_is_sampled_when_tracked(tmp_path):
    result = SubprocessRunner(sample_interval=0.01).run(
        [sys.executable, '-c', 'import time; data = bytearray(10_000_000); time.sleep(0.2)'],
        cwd=tmp_path,
        track_memory=True,
    )

    assert result.ok
    assert result.peak_memory_bytes > 0


def test_non_zero_exit_raises_only_when_checked(tmp_path):
    args = [sys.executable, '-c', 'import sys; sys.stderr.write("boom\\n"); sys.exit(3)']

    assert SubprocessRunner().run(args, cwd=tmp_path).returncode == 3
    with pytest.raises(CommandFailedError) as excinfo:
        SubprocessRunner().run(args, cwd=tmp_path, check=True)
    assert excinfo.value.returncode == 3
    assert str(excinfo.value).endswith('exited with 3: boom')


def test_missing_executable(tmp_path):
    with pytest.raises(CommandFailedError) as excinfo:
        SubprocessRunner().run(['definitely-not-a-real-tool-xyz'], cwd=tmp_path)
    assert excinfo.value.returncode == 127


def test_tail_skips_blank_lines():
    assert tail('a\n\nb\n  \nc\n', lines=2) == ['b', 'c']


def test_stopwatch_records_into_timing_log():
    log = TimingLog()
    for _ in range(2):
        with Stopwatch(log.get('analysis')):
            pass

    timing = log.to_dict()['analysis']
    assert timing['count'] == 2
    assert timing['total_ms'] >= timing['max_ms'] >= 0
