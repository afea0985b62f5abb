"""
Cleanup Pipeline Configuration

Centralized configuration for thresholds, working directories and the
external commands the pipeline drives. Values are read from the
environment once at import so they can be tuned without modifying code.
"""

from __future__ import annotations

import json
import os
import shlex
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .constants import (
    ExtractionDefaults,
    RiskDefaults,
    SimilarityBounds,
    ValidationThresholds,
    WorkingDirs,
)


def _env_flag(name: str, default: str = '') -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: tuple) -> tuple:
    raw = os.environ.get(name)
    if raw is None:
        return tuple(default)
    return tuple(part.strip() for part in raw.split(',') if part.strip())


def _env_command(name: str, default: Optional[str]) -> Optional[List[str]]:
    raw = os.environ.get(name, default)
    if not raw:
        return None
    return shlex.split(raw)


class CleanupConfig:
    """Configuration for the cleanup pipeline."""

    # Debug mode - set PIPELINE_DEBUG=1 to enable verbose output
    DEBUG = _env_flag('PIPELINE_DEBUG')

    # Risk classification
    COMPLEXITY_THRESHOLD = float(os.getenv('CLEANUP_COMPLEXITY_THRESHOLD', str(RiskDefaults.COMPLEXITY_THRESHOLD)))
    SENSITIVE_PATHS = _env_list('CLEANUP_SENSITIVE_PATHS', RiskDefaults.SENSITIVE_PATHS)

    # Near-duplicate detection
    NEAR_DUPLICATE_MIN = int(os.getenv('CLEANUP_NEAR_DUPLICATE_MIN', str(SimilarityBounds.NEAR_MIN_EXCLUSIVE)))

    # Test & coverage gate
    COVERAGE_THRESHOLD = float(os.getenv('CLEANUP_COVERAGE_THRESHOLD', str(ValidationThresholds.COVERAGE_SAFETY_NET)))

    # Removal validation
    MAX_COVERAGE_DROP = float(os.getenv('CLEANUP_MAX_COVERAGE_DROP', str(ValidationThresholds.MAX_COVERAGE_DROP)))
    MAX_PERF_REGRESSION = float(os.getenv('CLEANUP_MAX_PERF_REGRESSION', str(ValidationThresholds.MAX_PERFORMANCE_REGRESSION)))

    # Version control
    MAIN_BRANCH = os.getenv('CLEANUP_MAIN_BRANCH', 'main')
    OPEN_REVIEW_REQUESTS = _env_flag('CLEANUP_OPEN_REVIEW_REQUESTS', '1')

    # Working directories (relative to the project root)
    BACKUP_DIR = os.getenv('CLEANUP_BACKUP_DIR', WorkingDirs.BACKUPS)
    REPORTS_DIR = os.getenv('CLEANUP_REPORTS_DIR', WorkingDirs.REPORTS)
    COVERAGE_DIR = os.getenv('CLEANUP_COVERAGE_DIR', WorkingDirs.COVERAGE)

    # Locations inside the project
    TESTS_DIR = os.getenv('CLEANUP_TESTS_DIR', 'tests')
    BUNDLE_DIR = os.getenv('CLEANUP_BUNDLE_DIR', 'dist')
    COVERAGE_FILE = os.getenv('CLEANUP_COVERAGE_FILE', f'{COVERAGE_DIR}/coverage-summary.json')
    EXCLUDE_GLOBS = _env_list('CLEANUP_EXCLUDE', ())
    SOURCE_EXTENSIONS = _env_list('CLEANUP_SOURCE_EXTENSIONS', ExtractionDefaults.SOURCE_EXTENSIONS)

    # External commands (shlex-split; placeholders filled per invocation)
    TEST_COMMAND = _env_command(
        'CLEANUP_TEST_COMMAND',
        f'python -m pytest -q --cov --cov-report=json:{COVERAGE_FILE}',
    )
    BUILD_COMMAND = _env_command('CLEANUP_BUILD_COMMAND', 'python -m build --wheel --outdir dist')
    TYPECHECK_COMMAND = _env_command('CLEANUP_TYPECHECK_COMMAND', 'python -m compileall -q .')
    LINT_FIX_COMMAND = _env_command('CLEANUP_LINT_FIX_COMMAND', 'ruff check --fix --select F401 {file}')
    LOAD_PROBE_COMMAND = _env_command('CLEANUP_LOAD_PROBE_COMMAND', None)
    INSTALL_COMMAND = _env_command('CLEANUP_INSTALL_COMMAND', None)
    REVIEW_COMMAND = _env_command(
        'CLEANUP_REVIEW_COMMAND',
        'gh pr create --title {title} --body {body} --base {base} --head {head}',
    )

    @classmethod
    def to_dict(cls) -> dict:
        """Export configuration as dictionary."""
        return {
            'risk': {
                'complexity_threshold': cls.COMPLEXITY_THRESHOLD,
                'sensitive_paths': list(cls.SENSITIVE_PATHS),
            },
            'similarity': {
                'near_duplicate_min': cls.NEAR_DUPLICATE_MIN,
            },
            'gate': {
                'coverage_threshold': cls.COVERAGE_THRESHOLD,
                'coverage_file': cls.COVERAGE_FILE,
                'tests_dir': cls.TESTS_DIR,
            },
            'validation': {
                'max_coverage_drop': cls.MAX_COVERAGE_DROP,
                'max_perf_regression': cls.MAX_PERF_REGRESSION,
            },
            'vcs': {
                'main_branch': cls.MAIN_BRANCH,
                'open_review_requests': cls.OPEN_REVIEW_REQUESTS,
            },
            'directories': {
                'backups': cls.BACKUP_DIR,
                'reports': cls.REPORTS_DIR,
                'coverage': cls.COVERAGE_DIR,
                'bundle': cls.BUNDLE_DIR,
            },
            'commands': {
                'test': cls.TEST_COMMAND,
                'build': cls.BUILD_COMMAND,
                'typecheck': cls.TYPECHECK_COMMAND,
                'lint_fix': cls.LINT_FIX_COMMAND,
                'load_probe': cls.LOAD_PROBE_COMMAND,
                'install': cls.INSTALL_COMMAND,
                'review': cls.REVIEW_COMMAND,
            },
            'debug': cls.DEBUG,
        }

    @classmethod
    def print_config(cls):
        """Print current configuration."""
        print("=== Cleanup Pipeline Configuration ===")
        print(json.dumps(cls.to_dict(), indent=2))
        print("=" * 38)


class ToolCommands(BaseModel):
    """External commands and project locations used by one pipeline run."""

    test: Optional[List[str]] = Field(None, description="Runs the test suite and writes a coverage summary")
    build: Optional[List[str]] = Field(None, description="Builds the distributable bundle")
    typecheck: Optional[List[str]] = Field(None, description="Static type/compile check")
    lint_fix: Optional[List[str]] = Field(None, description="Unused-import autofix; '{file}' is replaced per file")
    load_probe: Optional[List[str]] = Field(None, description="Command whose duration is recorded as load time")
    install: Optional[List[str]] = Field(None, description="Dependency installation run during setup")
    review: Optional[List[str]] = Field(None, description="Opens a review request for a committed branch")

    tests_dir: str = Field('tests', description="Directory for synthesized safety-net tests")
    bundle_dir: str = Field('dist', description="Directory whose total size is the bundle size")
    coverage_file: str = Field('coverage/coverage-summary.json', description="Coverage summary written by the test command")

    @classmethod
    def from_config(cls) -> 'ToolCommands':
        """Build commands from the environment-driven CleanupConfig."""
        return cls(
            test=CleanupConfig.TEST_COMMAND,
            build=CleanupConfig.BUILD_COMMAND,
            typecheck=CleanupConfig.TYPECHECK_COMMAND,
            lint_fix=CleanupConfig.LINT_FIX_COMMAND,
            load_probe=CleanupConfig.LOAD_PROBE_COMMAND,
            install=CleanupConfig.INSTALL_COMMAND,
            review=CleanupConfig.REVIEW_COMMAND if CleanupConfig.OPEN_REVIEW_REQUESTS else None,
            tests_dir=CleanupConfig.TESTS_DIR,
            bundle_dir=CleanupConfig.BUNDLE_DIR,
            coverage_file=CleanupConfig.COVERAGE_FILE,
        )


def fill_command(command: List[str], values: Dict[str, str]) -> List[str]:
    """Substitute {placeholders} in each argument of a split command."""
    filled = []
    for arg in command:
        for key, value in values.items():
            arg = arg.replace('{' + key + '}', value)
        filled.append(arg)
    return filled


# Global config instance
config = CleanupConfig()
