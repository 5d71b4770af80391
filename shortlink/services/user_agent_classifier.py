"""
User Agent Classifier

Derives browser, OS and device attributes from a raw User-Agent header.
Parsing is delegated to the `user_agents` library; when it cannot decide
the device class, a keyword heuristic on the raw string takes over.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from user_agents import parse as parse_user_agent

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

DEVICE_MOBILE = "Mobile"
DEVICE_TABLET = "Tablet"
DEVICE_DESKTOP = "Desktop"

MOBILE_KEYWORDS = ("mobile", "android", "iphone", "ipod", "ios")
TABLET_KEYWORDS = ("tablet", "ipad")


@dataclass(frozen=True)
class UserAgentInfo:
    browser: str = UNKNOWN
    os: str = UNKNOWN
    device: str = UNKNOWN
    browser_version: Optional[str] = None
    os_version: Optional[str] = None
    device_model: Optional[str] = None


def _family(value: Optional[str]) -> str:
    if not value or value == "Other":
        return UNKNOWN
    return value


def _version(value: Optional[str]) -> Optional[str]:
    return value or None


def classify_device_heuristic(raw: str) -> str:
    """Keyword fallback: tablet markers win over mobile markers."""
    lowered = raw.lower()
    if any(keyword in lowered for keyword in TABLET_KEYWORDS):
        return DEVICE_TABLET
    if any(keyword in lowered for keyword in MOBILE_KEYWORDS):
        return DEVICE_MOBILE
    return DEVICE_DESKTOP


def classify_user_agent(raw: Optional[str]) -> UserAgentInfo:
    """
    Classify a User-Agent string.

    Never raises. Missing, empty or "unknown" input yields "Unknown" for
    every categorical field and None for the optional ones.

    Example:
        >>> classify_user_agent("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) ...").device
        'Mobile'
    """
    if not isinstance(raw, str) or not raw.strip() or raw.strip().lower() == "unknown":
        return UserAgentInfo()

    try:
        parsed = parse_user_agent(raw)
    except Exception as e:
        logger.warning(f"Could not parse user agent {raw!r}: {e}")
        return UserAgentInfo(device=classify_device_heuristic(raw))

    if parsed.is_tablet:
        device = DEVICE_TABLET
    elif parsed.is_mobile:
        device = DEVICE_MOBILE
    elif parsed.is_pc:
        device = DEVICE_DESKTOP
    else:
        device = classify_device_heuristic(raw)

    model_parts = [
        part for part in (parsed.device.brand, parsed.device.model)
        if part and part != "Other"
    ]

    return UserAgentInfo(
        browser=_family(parsed.browser.family),
        os=_family(parsed.os.family),
        device=device,
        browser_version=_version(parsed.browser.version_string),
        os_version=_version(parsed.os.version_string),
        device_model=" ".join(model_parts) or None,
    )
