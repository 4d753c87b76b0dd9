"""Pipeline execution defaults: retries, supervision and graph assembly knobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_bool, env_float, env_int
from .errors import ConfigurationError

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE_SECONDS = 2.0
DEFAULT_BACKOFF_MAX_SECONDS = 300.0
DEFAULT_WATCHDOG_POLL_SECONDS = 15.0
DEFAULT_STUCK_MINUTES = 20.0
DEFAULT_MAX_AUTO_RESUMES = 1
DEFAULT_ORPHAN_GRACE_SECONDS = 3600.0
DEFAULT_QUARANTINE_CONFIDENCE = 0.7
DEFAULT_MIN_VERB_CONFIDENCE = 0.0
DEFAULT_LITERACY_THRESHOLD = 70.0
DEFAULT_RIGHTS_COVERAGE_THRESHOLD = 0.8


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS
    watchdog_poll_seconds: float = DEFAULT_WATCHDOG_POLL_SECONDS
    stuck_minutes: float = DEFAULT_STUCK_MINUTES
    max_auto_resumes: int = DEFAULT_MAX_AUTO_RESUMES
    orphan_grace_seconds: float = DEFAULT_ORPHAN_GRACE_SECONDS
    quarantine_confidence: float = DEFAULT_QUARANTINE_CONFIDENCE
    min_verb_confidence: float = DEFAULT_MIN_VERB_CONFIDENCE
    literacy_threshold: float = DEFAULT_LITERACY_THRESHOLD
    rights_coverage_threshold: float = DEFAULT_RIGHTS_COVERAGE_THRESHOLD
    block_on_integrity_violations: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.backoff_base_seconds < 0 or self.backoff_max_seconds < 0:
            raise ConfigurationError("Backoff durations must be non-negative")
        if not 0.0 <= self.min_verb_confidence <= 1.0:
            raise ConfigurationError("min_verb_confidence must lie within [0, 1]")
        if not 0.0 <= self.quarantine_confidence <= 1.0:
            raise ConfigurationError("quarantine_confidence must lie within [0, 1]")

    @property
    def stuck_threshold(self) -> timedelta:
        return timedelta(minutes=self.stuck_minutes)

    @property
    def orphan_grace(self) -> timedelta:
        return timedelta(seconds=self.orphan_grace_seconds)

    def backoff_delay(self, retry_count: int) -> timedelta:
        """Exponential delay before the ``retry_count``-th retry becomes claimable."""

        if retry_count <= 0 or self.backoff_base_seconds == 0:
            return timedelta(0)
        seconds = self.backoff_base_seconds * (2 ** (retry_count - 1))
        return timedelta(seconds=min(seconds, self.backoff_max_seconds))

    @classmethod
    def from_environment(cls) -> PipelineConfig:
        return cls(
            max_retries=env_int("GRAPHWRIGHT_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            backoff_base_seconds=env_float(
                "GRAPHWRIGHT_BACKOFF_BASE_SECONDS", DEFAULT_BACKOFF_BASE_SECONDS
            ),
            backoff_max_seconds=env_float(
                "GRAPHWRIGHT_BACKOFF_MAX_SECONDS", DEFAULT_BACKOFF_MAX_SECONDS
            ),
            watchdog_poll_seconds=env_float(
                "GRAPHWRIGHT_WATCHDOG_POLL_SECONDS", DEFAULT_WATCHDOG_POLL_SECONDS
            ),
            stuck_minutes=env_float("GRAPHWRIGHT_STUCK_MINUTES", DEFAULT_STUCK_MINUTES),
            max_auto_resumes=env_int("GRAPHWRIGHT_MAX_AUTO_RESUMES", DEFAULT_MAX_AUTO_RESUMES),
            orphan_grace_seconds=env_float(
                "GRAPHWRIGHT_ORPHAN_GRACE_SECONDS", DEFAULT_ORPHAN_GRACE_SECONDS
            ),
            quarantine_confidence=env_float(
                "GRAPHWRIGHT_QUARANTINE_CONFIDENCE", DEFAULT_QUARANTINE_CONFIDENCE
            ),
            min_verb_confidence=env_float(
                "GRAPHWRIGHT_MIN_VERB_CONFIDENCE", DEFAULT_MIN_VERB_CONFIDENCE
            ),
            literacy_threshold=env_float(
                "GRAPHWRIGHT_LITERACY_THRESHOLD", DEFAULT_LITERACY_THRESHOLD
            ),
            rights_coverage_threshold=env_float(
                "GRAPHWRIGHT_RIGHTS_COVERAGE_THRESHOLD", DEFAULT_RIGHTS_COVERAGE_THRESHOLD
            ),
            block_on_integrity_violations=env_bool("GRAPHWRIGHT_BLOCK_ON_INTEGRITY", True),
        )
