from __future__ import annotations

import re
from typing import Dict, Tuple

# Accepted visible-text phrases per logical action. Arabic first, then Latin.
# Add a phrase here to teach the runner a new site wording.
PHRASES: Dict[str, Tuple[str, ...]] = {
    "login": (r"دخول", r"login", r"sign\s*in"),
    "save": (r"حفظ", r"save", r"submit"),
    "subject_role": (r"طالب",),
}

# CSS selectors for the controls the runner looks for.
RADIO = 'input[type="radio"]'
ROLE_SELECT = "select"
ROLE_OPTION = "option"
IDENTIFIER_INPUT = 'input[type="text"], input[name*="id"]'
ACTION_CONTROL = 'input[type="submit"], button'
SAVE_FALLBACK = 'input[id*="Submit"], input[id*="Save"], button[class*="save"]'

_compiled: Dict[str, re.Pattern] = {}


def label_pattern(action: str) -> re.Pattern:
    """
    Case-insensitive regex matching any accepted phrase for `action`.

    Raises KeyError for an unknown action so typos fail loudly.
    """
    if action not in _compiled:
        phrases = PHRASES[action]
        _compiled[action] = re.compile("|".join(phrases), re.IGNORECASE)
    return _compiled[action]


def matches(action: str, text: str) -> bool:
    return bool(text) and label_pattern(action).search(text) is not None


def radio_group_selector(name: str) -> str:
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'{RADIO}[name="{escaped}"]'
