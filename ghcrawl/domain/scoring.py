"""
Repository activity score
--------------------------
Turns a RepositorySnapshot plus its InnerSource listing into one integer,
following the InnerSource Commons "repository activity score" pattern
(https://patterns.innersourcecommons.org/p/repository-activity-score):

  - start from 50 so quiet but active repos are not zeroed
  - forks and watchers weigh most, then stars, then open issues
  - multiply by a recency factor (updated within the last 100 days)
  - add a boost of up to 1000 for recently updated, recently created repos
  - +50 for a meaningful description, +100 for contribution guidelines
  - compress logarithmically above 3000
  - subtract the initial 50 again and round

Two modes exist. LEGACY reproduces the historical integer arithmetic bit
for bit, truncating after every stage. REAL keeps every stage real-valued
and rounds once at the end. See ScoreEngine._score_legacy for where the
two disagree.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from enum import Enum

from .entities import InnerSourceMetadata, RepositorySnapshot
from .errors import InvalidTimestampError, MissingFieldError

log = logging.getLogger(__name__)

BASE_SCORE             = 50
FORK_WEIGHT            = 5
STAR_DIVISOR           = 3
ISSUE_DIVISOR          = 5
RECENCY_WINDOW_DAYS    = 100
BOOST_MAX              = 1000
BOOST_WINDOW_DAYS      = 365
BOOST_DECAY_PER_DAY    = 2.74
DESCRIPTION_MIN_LENGTH = 30
DESCRIPTION_BONUS      = 50
GUIDELINES_BONUS       = 100
LOG_THRESHOLD          = 3000
LOG_FACTOR             = 100

SECONDS_PER_DAY = 86400

REQUIRED_FIELDS = (
    "forks_count",
    "subscribers_count",
    "stargazers_count",
    "open_issues_count",
    "description",
)


class ScoreMode(str, Enum):
    LEGACY = "legacy"
    REAL   = "real"


def _days_since(moment: datetime | None, now: datetime) -> float:
    """Fractional days from `moment` to `now`. An unknown moment is infinitely old."""
    if moment is None:
        return math.inf
    return (now - moment).total_seconds() / SECONDS_PER_DAY


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero (// floors)."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def _round_half_away(value: float) -> int:
    whole = math.trunc(value)
    if abs(value - whole) >= 0.5:
        whole += int(math.copysign(1, value))
    return whole


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


class ScoreEngine:
    """
    Stateless scorer. Holds only its configuration, so one engine can be
    shared by every repository of a crawl run.

    compute() reads the snapshot, metadata.motivation and
    metadata.guidelines, and writes metadata.score. Callers that share one
    metadata record between threads must serialize the calls themselves.
    """

    def __init__(self, mode: ScoreMode = ScoreMode.LEGACY, validate_timestamps: bool = False) -> None:
        self._mode = ScoreMode(mode)
        self._validate_timestamps = validate_timestamps

    @property
    def mode(self) -> ScoreMode:
        return self._mode

    def compute(self, snapshot: RepositorySnapshot, metadata: InnerSourceMetadata, now: datetime) -> int:
        """
        Score one repository as of `now` and record the result on `metadata`.

        Raises MissingFieldError before anything is written when a counter
        or the description is unset.
        """
        self._check(snapshot)

        if self._mode is ScoreMode.LEGACY:
            score = self._score_legacy(snapshot, metadata, now)
        else:
            score = self._score_real(snapshot, metadata, now)

        metadata.score = score
        log.debug("Scored %s: %d (%s)", snapshot.name_with_owner, score, self._mode.value)
        return score

    def _check(self, snapshot: RepositorySnapshot) -> None:
        for name in REQUIRED_FIELDS:
            if getattr(snapshot, name) is None:
                raise MissingFieldError(name)

        if (
            self._validate_timestamps
            and snapshot.created_at is not None
            and snapshot.updated_at is not None
            and snapshot.created_at > snapshot.updated_at
        ):
            raise InvalidTimestampError(
                f"{snapshot.name_with_owner}: created_at {snapshot.created_at.isoformat()} "
                f"is after updated_at {snapshot.updated_at.isoformat()}"
            )

    @staticmethod
    def _score_legacy(snapshot: RepositorySnapshot, metadata: InnerSourceMetadata, now: datetime) -> int:
        score = BASE_SCORE
        score += snapshot.forks_count * FORK_WEIGHT
        score += snapshot.subscribers_count
        score += _trunc_div(snapshot.stargazers_count, STAR_DIVISOR)
        score += _trunc_div(snapshot.open_issues_count, ISSUE_DIVISOR)

        # (1 + (100 - min(days, 100))) / 100 reads like a 0..1 freshness
        # factor, but truncating it leaves 1 for days <= 1 and 0 after that.
        days_since_update = _days_since(snapshot.updated_at, now)
        recency = (1 + (RECENCY_WINDOW_DAYS - min(days_since_update, RECENCY_WINDOW_DAYS))) / RECENCY_WINDOW_DAYS
        score *= math.trunc(recency)

        boost = math.trunc(BOOST_MAX - min(days_since_update, BOOST_WINDOW_DAYS) * BOOST_DECAY_PER_DAY)

        # Same story: (365 - min(days, 365)) / 365 truncates to 0 for any
        # repository older than the evaluation instant.
        days_since_creation = _days_since(snapshot.created_at, now)
        creation = (BOOST_WINDOW_DAYS - min(days_since_creation, BOOST_WINDOW_DAYS)) / BOOST_WINDOW_DAYS
        boost *= math.trunc(creation)

        score += boost

        if (
            _byte_length(snapshot.description) > DESCRIPTION_MIN_LENGTH
            or _byte_length(metadata.motivation or "") > DESCRIPTION_MIN_LENGTH
        ):
            score += DESCRIPTION_BONUS

        if metadata.guidelines:
            score += GUIDELINES_BONUS

        if score > LOG_THRESHOLD:
            score = math.trunc(LOG_THRESHOLD + math.log(score) * LOG_FACTOR)

        return _round_half_away(score - BASE_SCORE)

    @staticmethod
    def _score_real(snapshot: RepositorySnapshot, metadata: InnerSourceMetadata, now: datetime) -> int:
        score = float(BASE_SCORE)
        score += snapshot.forks_count * FORK_WEIGHT
        score += snapshot.subscribers_count
        score += snapshot.stargazers_count / STAR_DIVISOR
        score += snapshot.open_issues_count / ISSUE_DIVISOR

        days_since_update = _days_since(snapshot.updated_at, now)
        score *= (1 + (RECENCY_WINDOW_DAYS - min(days_since_update, RECENCY_WINDOW_DAYS))) / RECENCY_WINDOW_DAYS

        boost = BOOST_MAX - min(days_since_update, BOOST_WINDOW_DAYS) * BOOST_DECAY_PER_DAY
        days_since_creation = _days_since(snapshot.created_at, now)
        boost *= (BOOST_WINDOW_DAYS - min(days_since_creation, BOOST_WINDOW_DAYS)) / BOOST_WINDOW_DAYS

        score += boost

        if len(snapshot.description) > DESCRIPTION_MIN_LENGTH or len(metadata.motivation or "") > DESCRIPTION_MIN_LENGTH:
            score += DESCRIPTION_BONUS

        if metadata.guidelines:
            score += GUIDELINES_BONUS

        if score > LOG_THRESHOLD:
            score = LOG_THRESHOLD + math.log(score) * LOG_FACTOR

        return _round_half_away(score - BASE_SCORE)


_default_engine = ScoreEngine()


def compute(snapshot: RepositorySnapshot, metadata: InnerSourceMetadata, now: datetime) -> int:
    """Score with the default (legacy) engine."""
    return _default_engine.compute(snapshot, metadata, now)
