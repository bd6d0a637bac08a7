"""
User-Agent classification with fixed rule tables.

User-Agent strings routinely match several patterns (Edge also says Chrome
and Safari, Android also says Linux), so every table is checked in order and
the first match wins.
"""

from typing import NamedTuple, Optional, Sequence, Tuple

from snaplink.analytics.models import UNKNOWN

Rules = Sequence[Tuple[str, Tuple[str, ...]]]

DEVICE_RULES: Rules = (
    ("Mobile", ("Android", "iPhone", "iPad", "iPod", "Mobile")),
    ("Desktop", ("Windows", "Macintosh", "X11", "Linux", "CrOS")),
)

OS_RULES: Rules = (
    ("Windows", ("Windows",)),
    ("Android", ("Android",)),
    ("iOS", ("iPhone", "iPad", "iPod")),
    ("MacOS", ("Macintosh", "Mac OS X")),
    ("Linux", ("Linux", "X11")),
)

BROWSER_RULES: Rules = (
    ("Edge", ("Edg/", "Edge/", "EdgA/", "EdgiOS/")),
    ("Opera", ("OPR/", "Opera")),
    ("Firefox", ("Firefox/", "FxiOS/")),
    ("Chrome", ("Chrome/", "CriOS/")),
    ("Safari", ("Safari/",)),
    ("Internet Explorer", ("MSIE ", "Trident/")),
)


class UserAgentInfo(NamedTuple):
    device: str
    os: str
    browser: str


def _match(user_agent: str, rules: Rules) -> str:
    for label, markers in rules:
        if any(marker in user_agent for marker in markers):
            return label
    return UNKNOWN


def classify_user_agent(user_agent: Optional[str]) -> UserAgentInfo:
    """Classify a raw User-Agent header into device class, OS and browser"""
    if not user_agent:
        return UserAgentInfo(UNKNOWN, UNKNOWN, UNKNOWN)
    return UserAgentInfo(
        device=_match(user_agent, DEVICE_RULES),
        os=_match(user_agent, OS_RULES),
        browser=_match(user_agent, BROWSER_RULES),
    )
