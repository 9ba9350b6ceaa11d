"""Load, validate, and hot-reload the metric catalogue.

The catalogue lives in ``metrics_config.yaml`` alongside this module.  At
startup it is loaded once and cached.  Call ``reload_metrics_config()`` to
re-read from disk.

Usage::

    from healthsync.aggregation.config_loader import get_metrics_config

    config = get_metrics_config()
    steps = config.metric(MetricKind.STEPS)
    steps.reduction        # ReductionMode.SUM
    steps.record_type      # "Steps"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from healthsync.aggregation.base import MetricKind, ReductionMode

logger = logging.getLogger("healthsync.aggregation.config")

_CONFIG_PATH = Path(__file__).parent / "metrics_config.yaml"

# Reduction semantics are part of the contract, not a tuning knob.
_FIXED_REDUCTIONS: dict[MetricKind, ReductionMode] = {
    MetricKind.STEPS: ReductionMode.SUM,
    MetricKind.HEART_RATE: ReductionMode.AVERAGE,
    MetricKind.CALORIES: ReductionMode.SUM,
    MetricKind.SLEEP: ReductionMode.SESSION_MINUTES,
    MetricKind.WEIGHT: ReductionMode.LAST,
}

_OUTPUT_FIELDS = {"steps", "heart_rate", "calories", "sleep_minutes", "weight_kg"}
_PRECISIONS = {"integer", "source"}


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class MetricDefinition:
    """How one metric kind is read from the source and reduced.

    Attributes:
        kind:         Metric kind.
        record_type:  Record type name on the source (e.g. "Steps").
        value_paths:  Dotted paths tried in order; the first numeric hit wins.
        reduction:    Reduction mode for same-day values.
        precision:    "integer" (round half-up) or "source" (kept as read).
        output_field: UnifiedDailyRecord attribute this metric fills.
        sample_list:  Key of a nested list of samples, each a separate reading.
        time_fields:  Keys tried in order for the record's start instant.
    """

    kind: MetricKind
    record_type: str
    value_paths: list[str]
    reduction: ReductionMode
    precision: str
    output_field: str
    sample_list: str | None = None
    time_fields: list[str] = field(default_factory=lambda: ["startTime"])

    @property
    def rounds_to_integer(self) -> bool:
        return self.precision == "integer"


@dataclass
class MetricsConfig:
    """Complete, validated metric catalogue."""

    version: str
    metrics: dict[MetricKind, MetricDefinition]
    _raw: dict = field(default_factory=dict, repr=False)

    def metric(self, kind: MetricKind) -> MetricDefinition:
        return self.metrics[kind]

    def kind_for_record_type(self, record_type: str) -> MetricKind | None:
        """Return the metric kind whose source record type is ``record_type``."""
        for definition in self.metrics.values():
            if definition.record_type == record_type:
                return definition.kind
        return None


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when metrics_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Metrics config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> MetricsConfig:
    """Validate the raw YAML dict and construct a MetricsConfig.

    Raises:
        ConfigValidationError: If required fields are missing or invalid.
    """
    errors: list[str] = []
    version = str(raw.get("version", "1.0"))

    metrics_raw = raw.get("metrics") or {}
    if not isinstance(metrics_raw, dict):
        raise ConfigValidationError("'metrics' must be a mapping of kind → definition")

    metrics: dict[MetricKind, MetricDefinition] = {}
    for name, cfg in metrics_raw.items():
        try:
            kind = MetricKind(name)
        except ValueError:
            errors.append(f"metrics.{name} is not a supported metric kind")
            continue
        if not isinstance(cfg, dict):
            errors.append(f"metrics.{name} must be a mapping")
            continue

        record_type = cfg.get("record_type")
        if not record_type:
            errors.append(f"Missing required key 'record_type' in section 'metrics.{name}'")

        try:
            reduction = ReductionMode(cfg.get("reduction"))
        except ValueError:
            errors.append(f"metrics.{name}.reduction {cfg.get('reduction')!r} is not a known mode")
            continue
        if reduction is not _FIXED_REDUCTIONS[kind]:
            errors.append(
                f"metrics.{name}.reduction must be '{_FIXED_REDUCTIONS[kind].value}', "
                f"got '{reduction.value}'"
            )

        value_paths = cfg.get("value_paths") or []
        if not isinstance(value_paths, list):
            errors.append(f"metrics.{name}.value_paths must be a list")
            value_paths = []
        if not value_paths and reduction is not ReductionMode.SESSION_MINUTES:
            errors.append(f"metrics.{name}.value_paths must not be empty")

        precision = cfg.get("precision", "integer")
        if precision not in _PRECISIONS:
            errors.append(f"metrics.{name}.precision must be one of {sorted(_PRECISIONS)}")

        output_field = cfg.get("output_field")
        if output_field not in _OUTPUT_FIELDS:
            errors.append(f"metrics.{name}.output_field {output_field!r} is not a record field")

        metrics[kind] = MetricDefinition(
            kind=kind,
            record_type=str(record_type or ""),
            value_paths=[str(p) for p in value_paths],
            reduction=reduction,
            precision=precision,
            output_field=str(output_field),
            sample_list=cfg.get("sample_list"),
            time_fields=list(cfg.get("time_fields") or ["startTime"]),
        )

    missing = [k.value for k in MetricKind if k not in metrics]
    if missing:
        errors.append(f"metrics section is missing kinds: {', '.join(missing)}")

    if errors:
        raise ConfigValidationError(
            f"metrics_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return MetricsConfig(version=version, metrics=metrics, _raw=raw)


def load_metrics_config(path: Path | None = None) -> MetricsConfig:
    """Load and validate the metric catalogue from disk.

    Args:
        path: Override path to YAML. Uses the bundled metrics_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded metrics config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: MetricsConfig | None = None
_config_lock = threading.Lock()


def get_metrics_config() -> MetricsConfig:
    """Return the global MetricsConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_metrics_config()
    return _config


def reload_metrics_config(path: Path | None = None) -> MetricsConfig:
    """Reload the catalogue from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_metrics_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded metrics config: %s → %s", old_version, new_config.version)
    return new_config
