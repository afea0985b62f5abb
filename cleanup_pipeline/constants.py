"""
Centralized constants for the cleanup pipeline.

Values that are tunable per project live in config.CleanupConfig; the
namespace classes below hold fixed thresholds and defaults used across
extractors, similarity, gates, removal, and reporting.
"""


class SimilarityBounds:
    EXACT = 100
    NEAR_MIN_EXCLUSIVE = 70
    NEAR_MAX_EXCLUSIVE = 100


class RiskDefaults:
    COMPLEXITY_THRESHOLD = 10.0
    SENSITIVE_PATHS = ('auth', 'payment', 'core')
    LOW_COMPLEXITY_MAX = 3


class ValidationThresholds:
    MAX_COVERAGE_DROP = 5.0
    MAX_PERFORMANCE_REGRESSION = 0.10
    COVERAGE_SAFETY_NET = 80.0


class ExtractionDefaults:
    SOURCE_EXTENSIONS = ('.py',)
    HASH_LENGTH = 16
    SKIPPED_DIRS = (
        'node_modules',
        '__pycache__',
        'venv',
        '.venv',
        'env',
        'build',
        'dist',
        'site-packages',
    )


class WorkingDirs:
    BACKUPS = '.cleanup-backups'
    REPORTS = 'cleanup-reports'
    COVERAGE = 'coverage'


class ReportDefaults:
    DEAD_CODE_SECTION_LIMIT = 25
    HIGH_DUPLICATE_COUNT = 10
    HIGH_UNUSED_COMPONENTS = 5
    HIGH_REDUNDANT_IMPORTS = 20
    HIGH_FAILURE_RATE_PCT = 20


class ProcessDefaults:
    MEMORY_SAMPLE_INTERVAL_S = 0.05
    MISSING_EXECUTABLE_RETURNCODE = 127
