"""
Window Resolution
=================

Turns a loose time-range request (named window token and/or explicit
``from``/``to`` strings) into a canonical, validated ``TimeWindow``.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from config import settings, WindowToken, VALID_WINDOW_TOKENS, WINDOW_TOKEN_DAYS
from core import InvalidWindowException
from alerting.domain.value_objects import TimeWindow, ensure_utc


def start_of_day(value: datetime) -> datetime:
    """UTC midnight of the day containing ``value``."""
    value = ensure_utc(value)
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def parse_window_bound(raw: str, name: str) -> datetime:
    """
    Parse an ISO date or timestamp.

    Date-only values resolve to UTC midnight; naive timestamps are UTC.

    Raises:
        InvalidWindowException: If the value is not ISO 8601
    """
    text = raw.strip()
    try:
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise InvalidWindowException(
            f"Unparsable '{name}' date: {raw!r}",
            {"field": name, "value": raw}
        ) from e


class WindowResolver:
    """
    Pure window resolution.

    Named windows are trailing windows that end at the start of the next
    UTC day, so the current day is always included.
    """

    @staticmethod
    def resolve(
        window: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        now: Optional[datetime] = None,
        default_days: Optional[int] = None,
    ) -> TimeWindow:
        """
        Resolve a window request.

        Args:
            window: Named token (day, week, month, quarter, custom)
            from_: Explicit ISO start, takes precedence over the token
            to: Explicit ISO end, takes precedence over the token
            now: Reference time, defaults to the current UTC time
            default_days: Length used when nothing is requested

        Returns:
            TimeWindow with ``from_ < to``

        Raises:
            InvalidWindowException: Unknown token, unparsable date,
                ``custom`` without bounds, or ``from >= to``
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        default_days = default_days or settings.default_window_days
        token = window.strip().lower() if window else None
        from_ = from_ or None
        to = to or None

        if token is not None and token not in VALID_WINDOW_TOKENS:
            raise InvalidWindowException(
                f"Unknown window '{window}'",
                {"window": window, "allowed": VALID_WINDOW_TOKENS}
            )

        day_end = start_of_day(now) + timedelta(days=1)

        if from_ is not None or to is not None:
            end = parse_window_bound(to, "to") if to is not None else day_end
            if from_ is not None:
                start = parse_window_bound(from_, "from")
            else:
                start = end - timedelta(days=default_days)
        elif token == WindowToken.CUSTOM:
            raise InvalidWindowException(
                "Custom window requires 'from' and/or 'to'",
                {"window": window}
            )
        else:
            days = WINDOW_TOKEN_DAYS.get(token, default_days)
            end = day_end
            start = end - timedelta(days=days)

        if start >= end:
            raise InvalidWindowException(
                "Window start must be before window end",
                {"from": start.isoformat(), "to": end.isoformat()}
            )

        return TimeWindow(from_=start, to=end)
