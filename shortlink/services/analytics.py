"""
Click Analytics

Pure aggregation over click events. Nothing here touches the store or the
clock; the same events always produce the same output.

Events missing derived browser/OS/device fields (rows recorded before
those columns existed) are classified from their raw User-Agent on read.
"""

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from typing import Optional

from shortlink.core.clock import ensure_utc
from shortlink.db.models import ClickEvent
from shortlink.services.user_agent_classifier import UNKNOWN, classify_user_agent

DIRECT = "direct"


def _visitor_ip(event: ClickEvent) -> Optional[str]:
    if not event.ip_address or event.ip_address == "unknown":
        return None
    return event.ip_address


def _day(event: ClickEvent) -> str:
    return ensure_utc(event.timestamp).date().isoformat()


def _count_by(events: Iterable[ClickEvent], key: Callable[[ClickEvent], str]) -> dict[str, int]:
    return dict(Counter(key(event) for event in events))


def _or_unknown(value: Optional[str]) -> str:
    return value or UNKNOWN


def _browser(event: ClickEvent) -> str:
    if event.browser:
        return event.browser
    return classify_user_agent(event.user_agent).browser


def _os(event: ClickEvent) -> str:
    if event.os:
        return event.os
    return classify_user_agent(event.user_agent).os


def _device(event: ClickEvent) -> str:
    if event.device_class:
        return event.device_class
    return classify_user_agent(event.user_agent).device


def calculate_unique_visitors(events: Iterable[ClickEvent]) -> int:
    """Distinct source IPs, ignoring missing and "unknown" addresses."""
    return len({ip for ip in map(_visitor_ip, events) if ip is not None})


def calculate_clicks_by_day(events: Iterable[ClickEvent]) -> dict[str, int]:
    """Clicks per UTC calendar day (YYYY-MM-DD), in day order."""
    return dict(sorted(_count_by(events, _day).items()))


def calculate_visits_and_visitors_by_day(events: Iterable[ClickEvent]) -> dict[str, dict[str, int]]:
    """Per UTC day: {"visits": n, "visitors": distinct IPs}, in day order."""
    visits: Counter = Counter()
    visitors: dict[str, set] = {}
    for event in events:
        day = _day(event)
        visits[day] += 1
        ip = _visitor_ip(event)
        visitors.setdefault(day, set())
        if ip is not None:
            visitors[day].add(ip)

    return {
        day: {"visits": visits[day], "visitors": len(visitors[day])}
        for day in sorted(visits)
    }


def calculate_clicks_by_referer(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, lambda event: event.referer or DIRECT)


def calculate_clicks_by_browser(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, _browser)


def calculate_clicks_by_os(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, _os)


def calculate_clicks_by_device(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, _device)


def calculate_clicks_by_country(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, lambda event: _or_unknown(event.country))


def calculate_clicks_by_region(events: Iterable[ClickEvent]) -> dict[str, int]:
    return _count_by(events, lambda event: _or_unknown(event.region))


def summarize_clicks(events: Sequence[ClickEvent]) -> dict:
    """Every per-link breakdown in one pass over the caller's event list."""
    return {
        "unique_visitors": calculate_unique_visitors(events),
        "clicks_by_day": calculate_clicks_by_day(events),
        "clicks_by_referer": calculate_clicks_by_referer(events),
        "clicks_by_browser": calculate_clicks_by_browser(events),
        "clicks_by_os": calculate_clicks_by_os(events),
        "clicks_by_device": calculate_clicks_by_device(events),
        "clicks_by_country": calculate_clicks_by_country(events),
        "clicks_by_region": calculate_clicks_by_region(events),
        "visits_and_visitors_by_day": calculate_visits_and_visitors_by_day(events),
    }
