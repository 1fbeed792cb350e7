from __future__ import annotations

UNKNOWN = "Unknown"


def browser_from_user_agent(ua: str | None) -> str:
    ua = ua or ""
    if "Firefox" in ua:
        return "Firefox"
    if "Chrome" in ua and "Edg" not in ua:
        return "Chrome"
    if "Safari" in ua and "Chrome" not in ua:
        return "Safari"
    if "Edg" in ua:
        return "Edge"
    return UNKNOWN


def os_from_user_agent(ua: str | None) -> str:
    ua = ua or ""
    if "Win" in ua:
        return "Windows"
    if "Mac" in ua:
        return "MacOS"
    if "Linux" in ua:
        return "Linux"
    if "Android" in ua:
        return "Android"
    if "iOS" in ua:
        return "iOS"
    return UNKNOWN


def classify_user_agent(ua: str | None) -> tuple[str, str]:
    """Return ``(browser, os)`` using the same coarse rules as the web client."""

    return browser_from_user_agent(ua), os_from_user_agent(ua)
