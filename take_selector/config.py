"""Configuration defaults, scoring weight presets, and .env loading.

WHY: Every number the selector uses (criterion weights, thresholds,
paddings, the ideal duration range) has been tuned against real
recordings and will be tuned again. Keeping them in one validated
config object means no threshold hides inside the algorithm code and a
bad value is caught before any scoring runs.

HOW: python-dotenv loads the .env file on import. The handful of values
users tune most often can be overridden through environment variables;
everything else is a SelectionConfig field. SelectionConfig.validate()
rejects malformed configurations with ConfigError. load_config() reads
JSON overrides from disk on top of the defaults.

RULES:
- Weights are per mode (script / no script) and each set must sum to 1
- The no-script weight set must give coverage a weight of 0
- Similarity thresholds and ratios live in [0, 1]
- Invalid values raise ConfigError, never silently clamped
- Python 3.9 compatible: no match/case, no slots=True
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


class ConfigError(ValueError):
    """Raised when a selection configuration is malformed."""


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError("{} must be a number, got {!r}".format(name, raw))


# ---------------------------------------------------------------------------
# Environment-overridable defaults
# ---------------------------------------------------------------------------

DEFAULT_MIN_SCORE = _env_float("TAKE_SELECTOR_MIN_SCORE", 50.0)
DEFAULT_IDEAL_MIN_MS = _env_float("TAKE_SELECTOR_IDEAL_MIN_MS", 2000.0)
DEFAULT_IDEAL_MAX_MS = _env_float("TAKE_SELECTOR_IDEAL_MAX_MS", 15000.0)
DEFAULT_PHRASE_THRESHOLD = _env_float("TAKE_SELECTOR_PHRASE_THRESHOLD", 0.75)
DEFAULT_TIE_BAND = _env_float("TAKE_SELECTOR_TIE_BAND", 3.0)

WEIGHT_TOLERANCE = 1e-9
"""Allowed deviation of a weight set's sum from 1.0."""


# ---------------------------------------------------------------------------
# Scoring weights
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each scoring criterion.

    RULES:
    - All weights are non-negative and sum to 1.0 (within 1e-9)
    - Field names match the ScoreBreakdown sub-scores one to one
    """

    coverage: float
    confidence: float
    take_order: float
    completeness: float
    duration: float

    def total(self) -> float:
        return math.fsum(getattr(self, f.name) for f in fields(self))

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


SCRIPT_WEIGHTS = ScoringWeights(
    coverage=0.30,
    confidence=0.25,
    take_order=0.20,
    completeness=0.15,
    duration=0.10,
)
"""Default weights when a script is available."""

NO_SCRIPT_WEIGHTS = ScoringWeights(
    coverage=0.0,
    confidence=0.30,
    take_order=0.35,
    completeness=0.20,
    duration=0.15,
)
"""Default weights without a script: coverage weight moved to the rest."""


# ---------------------------------------------------------------------------
# Selection configuration
# ---------------------------------------------------------------------------

_UNIT_INTERVAL_FIELDS = (
    "anchor_similarity",
    "aligned_word_similarity",
    "alignment_emit_similarity",
    "min_aligned_ratio",
    "min_avg_similarity",
    "coverage_word_similarity",
    "phrase_similarity_threshold",
    "false_start_coverage_ratio",
)

_NON_NEGATIVE_FIELDS = (
    "take_start_padding_ms",
    "take_end_padding_ms",
    "min_phrase_length",
    "window_extra_tokens",
    "duration_floor_ms",
    "tie_band",
)

_INTEGER_FIELDS = ("min_phrase_length", "window_extra_tokens")

_STRUCTURED_FIELDS = (
    "script_weights",
    "no_script_weights",
    "script_take_order_tiers",
    "no_script_take_order_tiers",
    "merge_gap_ms",
)


def _require_number(label: str, value: Any, integer: bool = False) -> None:
    """Raise ConfigError unless value is a finite number (bools excluded)."""
    kinds = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ConfigError("{} must be {}, got {!r}".format(
            label, "an integer" if integer else "a number", value
        ))
    if not math.isfinite(value):
        raise ConfigError("{} must be finite, got {}".format(label, value))


@dataclass
class SelectionConfig:
    """Every tunable of the alignment, scoring, and selection stages.

    WHY: Callers supply one object and get identical behaviour across
    runs. Defaults are documented starting points, not fixed law.

    HOW: Plain dataclass with per-mode weight sets and recency tiers.
    weights_for() / take_order_tiers_for() resolve the set for the
    grouping mode of the current run.

    RULES:
    - Call validate() (or use load_config()) before scoring
    - take_order tiers are listed from the most recent take backwards;
      the last tier applies to every older take
    """

    min_score: float = DEFAULT_MIN_SCORE
    script_weights: ScoringWeights = field(default_factory=lambda: SCRIPT_WEIGHTS)
    no_script_weights: ScoringWeights = field(default_factory=lambda: NO_SCRIPT_WEIGHTS)
    script_take_order_tiers: Tuple[float, ...] = (100.0, 70.0, 40.0)
    no_script_take_order_tiers: Tuple[float, ...] = (100.0, 60.0, 30.0)

    # Duration fit
    ideal_min_ms: float = DEFAULT_IDEAL_MIN_MS
    ideal_max_ms: float = DEFAULT_IDEAL_MAX_MS
    duration_floor_ms: float = 1000.0

    # Selection
    ambiguous_low: float = 40.0
    ambiguous_high: float = 60.0
    tie_band: float = DEFAULT_TIE_BAND

    # Take detection
    anchor_similarity: float = 0.6
    aligned_word_similarity: float = 0.6
    alignment_emit_similarity: float = 0.3
    min_aligned_ratio: float = 0.6
    min_avg_similarity: float = 0.5
    coverage_word_similarity: float = 0.8
    take_start_padding_ms: float = 100.0
    take_end_padding_ms: float = 150.0
    window_scale: float = 1.5
    window_extra_tokens: int = 4
    false_start_coverage_ratio: float = 0.6

    # Phrase grouping (no script)
    phrase_similarity_threshold: float = DEFAULT_PHRASE_THRESHOLD
    min_phrase_length: int = 10
    merge_gap_ms: Optional[float] = None

    def weights_for(self, has_script: bool) -> ScoringWeights:
        return self.script_weights if has_script else self.no_script_weights

    def take_order_tiers_for(self, has_script: bool) -> Tuple[float, ...]:
        return self.script_take_order_tiers if has_script else self.no_script_take_order_tiers

    def validate(self) -> "SelectionConfig":
        """Check every field and raise ConfigError on the first problem.

        Returns:
            self, so callers can write ``config = SelectionConfig().validate()``.

        Raises:
            ConfigError: If any value is out of range or inconsistent.
        """
        for f in fields(self):
            if f.name not in _STRUCTURED_FIELDS:
                _require_number(f.name, getattr(self, f.name), integer=f.name in _INTEGER_FIELDS)

        for label, weights in (("script_weights", self.script_weights),
                               ("no_script_weights", self.no_script_weights)):
            for f in fields(weights):
                _require_number("{}.{}".format(label, f.name), getattr(weights, f.name))
                if getattr(weights, f.name) < 0:
                    raise ConfigError("{}.{} must not be negative".format(label, f.name))
            total = weights.total()
            if abs(total - 1.0) > WEIGHT_TOLERANCE:
                raise ConfigError(
                    "{} must sum to 1.0, got {:.6f}".format(label, total)
                )
        if self.no_script_weights.coverage != 0:
            raise ConfigError("no_script_weights.coverage must be 0 (no script to match)")

        if not 0 <= self.min_score <= 100:
            raise ConfigError("min_score must be within [0, 100], got {}".format(self.min_score))

        for label in ("script_take_order_tiers", "no_script_take_order_tiers"):
            tiers = getattr(self, label)
            if not tiers:
                raise ConfigError("{} must not be empty".format(label))
            for value in tiers:
                _require_number(label, value)
            if any(t < 0 or t > 100 for t in tiers):
                raise ConfigError("{} values must be within [0, 100]".format(label))
            if any(later > earlier for earlier, later in zip(tiers, tiers[1:])):
                raise ConfigError("{} must be non-increasing (most recent take first)".format(label))

        for name in _NON_NEGATIVE_FIELDS:
            if getattr(self, name) < 0:
                raise ConfigError("{} must not be negative".format(name))
        if self.merge_gap_ms is not None:
            _require_number("merge_gap_ms", self.merge_gap_ms)
            if self.merge_gap_ms < 0:
                raise ConfigError("merge_gap_ms must not be negative")

        for name in _UNIT_INTERVAL_FIELDS:
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigError("{} must be within [0, 1], got {}".format(name, value))

        if self.ideal_min_ms <= 0 or self.ideal_min_ms > self.ideal_max_ms:
            raise ConfigError(
                "ideal duration range is invalid: {}–{} ms".format(self.ideal_min_ms, self.ideal_max_ms)
            )
        if self.duration_floor_ms > self.ideal_min_ms:
            raise ConfigError("duration_floor_ms must not exceed ideal_min_ms")

        if not 0 <= self.ambiguous_low <= self.ambiguous_high <= 100:
            raise ConfigError(
                "ambiguous band is invalid: {}–{}".format(self.ambiguous_low, self.ambiguous_high)
            )

        if self.window_scale < 1:
            raise ConfigError("window_scale must be at least 1")

        return self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("script_take_order_tiers", "no_script_take_order_tiers"):
            data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectionConfig":
        """Build a config from a (partial) dict of overrides.

        RULES:
        - Unknown keys raise ConfigError (typos must not be ignored)
        - Weight sets may be partial; missing criteria keep their default
        - Weights and tiers must be JSON numbers (ConfigError otherwise)
        - The result is NOT validated; call validate()
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys: {}".format(", ".join(unknown)))

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in ("script_weights", "no_script_weights"):
                kwargs[key] = _weights_from_dict(
                    value, SCRIPT_WEIGHTS if key == "script_weights" else NO_SCRIPT_WEIGHTS, key
                )
            elif key in ("script_take_order_tiers", "no_script_take_order_tiers"):
                if not isinstance(value, list):
                    raise ConfigError("{} must be a list of numbers".format(key))
                for v in value:
                    _require_number(key, v)
                kwargs[key] = tuple(float(v) for v in value)
            else:
                kwargs[key] = value
        return cls(**kwargs)


def _weights_from_dict(
    data: Dict[str, Any],
    base: ScoringWeights,
    label: str,
) -> ScoringWeights:
    if not isinstance(data, dict):
        raise ConfigError("{} must be an object".format(label))
    merged = base.as_dict()
    for key, value in data.items():
        if key not in merged:
            raise ConfigError("Unknown criterion in {}: {}".format(label, key))
        _require_number("{}.{}".format(label, key), value)
        merged[key] = float(value)
    return ScoringWeights(**merged)


def load_config(path: str | Path | None = None) -> SelectionConfig:
    """Load a validated SelectionConfig, optionally with JSON overrides.

    WHY: Weights and thresholds are tuned per channel or per speaker. A
    small JSON file next to the recordings keeps those overrides out of
    code.

    HOW: Start from the defaults, apply the JSON object's keys with
    SelectionConfig.from_dict(), then validate.

    Args:
        path: Path to a JSON file, or None for the defaults.

    Returns:
        A validated SelectionConfig.

    Raises:
        ConfigError: If the file is not a JSON object or any value is invalid.
    """
    if path is None:
        return SelectionConfig().validate()

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError("Config file {} is not valid JSON: {}".format(path, e))
    if not isinstance(data, dict):
        raise ConfigError("Config file {} must contain a JSON object".format(path))
    return SelectionConfig.from_dict(data).validate()
