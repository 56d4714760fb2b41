from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional, Set, Tuple

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

_METRICS_LABEL_CARD_MAX = int(os.getenv("METRICS_LABEL_CARD_MAX", "100") or "100")
_METRICS_LABEL_OVERFLOW = os.getenv("METRICS_LABEL_OVERFLOW", "__overflow__")

_seen_families: Set[str] = set()

_log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Metrics must never raise into the request path; failures are logged at DEBUG.
# -----------------------------------------------------------------------------
def _best_effort(msg: str, fn: Callable[[], Any]) -> None:
    try:
        fn()
    except Exception as e:  # pragma: no cover
        _log.debug("%s: %s", msg, e)


def _safe_label(val: Optional[str], cache: Set[str]) -> str:
    if not val:
        return "unknown"
    if val in cache:
        return val
    if len(cache) < _METRICS_LABEL_CARD_MAX:
        cache.add(val)
        return val
    return _METRICS_LABEL_OVERFLOW


def _existing(reg: CollectorRegistry, name: str) -> Any:
    names_map = getattr(reg, "_names_to_collectors", None)
    if isinstance(names_map, dict):
        return names_map.get(name)
    return None


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Tuple[str, ...] = (),
    registry: Optional[CollectorRegistry] = None,
) -> Counter:
    reg = registry or REGISTRY
    found = _existing(reg, name)
    if isinstance(found, Counter):
        return found
    try:
        return Counter(name, doc, labelnames=labelnames, registry=reg)
    except ValueError:
        # Registered under its sample name (e.g. "<name>_total") by a reload.
        found = _existing(reg, name) or _existing(reg, f"{name}_total")
        if isinstance(found, Counter):
            return found
        return Counter(name, doc, labelnames=labelnames, registry=None)


def _get_or_create_histogram(
    name: str,
    doc: str,
    buckets: Tuple[float, ...],
    registry: Optional[CollectorRegistry] = None,
) -> Histogram:
    reg = registry or REGISTRY
    found = _existing(reg, name)
    if isinstance(found, Histogram):
        return found
    try:
        return Histogram(name, doc, buckets=buckets, registry=reg)
    except ValueError:
        found = _existing(reg, f"{name}_bucket")
        if isinstance(found, Histogram):
            return found
        return Histogram(name, doc, buckets=buckets, registry=None)


# --- Decision service metrics --------------------------------------------------

botgate_verdicts_total = _get_or_create_counter(
    "botgate_verdicts_total",
    "Verdicts applied to inspected requests",
    ("verdict",),
)
botgate_decision_failures_total = _get_or_create_counter(
    "botgate_decision_failures_total",
    "Decision-service calls that failed open",
    ("reason",),
)
botgate_bot_detections_total = _get_or_create_counter(
    "botgate_bot_detections_total",
    "Blocked requests the decision service flagged as bots",
    ("family",),
)
botgate_decision_latency_seconds = _get_or_create_histogram(
    "botgate_decision_latency_seconds",
    "Round-trip latency of decision-service calls that answered in time",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.2, 0.35, 0.5, 0.75, 1.0),
)


def verdict_report(verdict: str) -> None:
    _best_effort(
        "inc verdict metric",
        lambda: botgate_verdicts_total.labels(verdict=verdict).inc(),
    )


def decision_failure_report(reason: str) -> None:
    _best_effort(
        "inc decision failure metric",
        lambda: botgate_decision_failures_total.labels(reason=reason or "unknown").inc(),
    )


def bot_detection_report(family: Optional[str]) -> None:
    fam = _safe_label(family, _seen_families)
    _best_effort(
        "inc bot detection metric",
        lambda: botgate_bot_detections_total.labels(family=fam).inc(),
    )


def decision_latency_observe(elapsed_ms: int) -> None:
    _best_effort(
        "observe decision latency",
        lambda: botgate_decision_latency_seconds.observe(max(0, elapsed_ms) / 1000.0),
    )
