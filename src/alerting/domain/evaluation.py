"""
Alert Evaluation
================

Deterministic threshold evaluation of catalog definitions against a
metrics snapshot. Missing or mismatched metrics never raise: they simply
do not trigger.
"""

import logging
import math
import operator
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence

from config import Comparator
from alerting.domain.entities import MetricsSnapshot, TriggeredAlert
from alerting.domain.value_objects import AlertDefinition, is_numeric

logger = logging.getLogger(__name__)

_MISSING = object()

_NUMERIC_OPERATORS = {
    Comparator.GT: operator.gt,
    Comparator.GTE: operator.ge,
    Comparator.LT: operator.lt,
    Comparator.LTE: operator.le,
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
}


class _TemplateValues(dict):
    """Leaves unknown placeholders in the rendered message untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class AlertEvaluator:
    """
    Pure functions for alert evaluation.

    Stateless utility class: the same snapshot and catalog always yield
    the same ordered list of triggered alerts.
    """

    @staticmethod
    def resolve_metric(metrics: Mapping, path: str) -> Any:
        """
        Resolve a dotted metric path.

        A literal flat key wins over a nested walk, so both
        ``{"ocr.failure_rate": x}`` and ``{"ocr": {"failure_rate": x}}``
        resolve ``ocr.failure_rate``.

        Returns:
            The value, or the ``_MISSING`` sentinel when absent or None
        """
        if path in metrics:
            value = metrics[path]
            return _MISSING if value is None else value

        current: Any = metrics
        for part in path.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return _MISSING
            current = current[part]

        return _MISSING if current is None else current

    @staticmethod
    def compare(value: Any, comparator: str, threshold: Any) -> bool:
        """
        Apply a comparator.

        Numbers compare as floats. Any other pairing supports only equality
        checks between values of the same kind; everything else is false.
        """
        op = _NUMERIC_OPERATORS.get(comparator)
        if op is None:
            return False

        if is_numeric(value) and is_numeric(threshold):
            left, right = float(value), float(threshold)
            if math.isnan(left) or math.isnan(right):
                return False
            return op(left, right)

        if comparator not in (Comparator.EQ, Comparator.NE):
            return False

        if is_numeric(value) or is_numeric(threshold):
            return False
        if type(value) is not type(threshold):
            return False

        return op(value, threshold)

    @staticmethod
    def render_message(
        definition: AlertDefinition,
        snapshot: MetricsSnapshot,
        value: Any
    ) -> str:
        """Render the definition's message template; never raises."""
        values = _TemplateValues(
            {k: v for k, v in snapshot.metrics.items() if isinstance(k, str)}
        )
        values.update(
            value=value,
            threshold=definition.threshold,
            metric=definition.metric_path,
            title=definition.title,
            organization_id=snapshot.organization_id,
        )
        try:
            return definition.message_template.format_map(values)
        except (ValueError, IndexError, AttributeError, KeyError, TypeError):
            logger.warning(
                "Malformed alert message template",
                extra={"definition_id": definition.id}
            )
            return definition.message_template

    @staticmethod
    def evaluate_definition(
        snapshot: MetricsSnapshot,
        definition: AlertDefinition
    ) -> Optional[TriggeredAlert]:
        """Evaluate one definition, returning the triggered alert if it holds."""
        value = AlertEvaluator.resolve_metric(snapshot.metrics, definition.metric_path)
        if value is _MISSING:
            logger.debug(
                "Metric not measurable, skipping definition",
                extra={
                    "definition_id": definition.id,
                    "metric_path": definition.metric_path,
                    "organization_id": snapshot.organization_id,
                }
            )
            return None

        if not AlertEvaluator.compare(value, definition.comparator, definition.threshold):
            return None

        return TriggeredAlert(
            definition_id=definition.id,
            title=definition.title,
            severity=definition.severity,
            message=AlertEvaluator.render_message(definition, snapshot, value),
            metric_path=definition.metric_path,
            context_value=value,
            comparator=definition.comparator,
            threshold=definition.threshold,
        )

    @staticmethod
    def evaluate(
        snapshot: MetricsSnapshot,
        definitions: Sequence[AlertDefinition]
    ) -> List[TriggeredAlert]:
        """
        Evaluate definitions in catalog order.

        Args:
            snapshot: Metrics snapshot for one organization
            definitions: Catalog definitions, in catalog order

        Returns:
            Triggered alerts in the same order as ``definitions``
        """
        triggered = []
        for definition in definitions:
            alert = AlertEvaluator.evaluate_definition(snapshot, definition)
            if alert is not None:
                triggered.append(alert)
        return triggered
