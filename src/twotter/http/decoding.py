"""
=============================================================================
QUERY VALUE DECODING
=============================================================================

Form values arrive percent-escaped in the request target:

    /makeaprofile?username=bob&...&name=Bob+Smith&description=Hi%21

The site never decoded them with a general URL decoder. Each call site
applies a fixed table of escapes and treats "+" in its own way, and
changing that would change what gets stored. So there is one routine,
decode(), and each call site names the PROFILE it decodes with:

    ┌──────────────┬──────────────────────────┬──────────────────────────┐
    │  Profile     │  Used for                │  "+" handling            │
    ├──────────────┼──────────────────────────┼──────────────────────────┤
    │  RAW         │  follow / unfollow /     │  kept                    │
    │              │  follower-list usernames │  (no escapes either)     │
    │  CREDENTIALS │  username, password,     │  kept                    │
    │              │  email, image            │                          │
    │  SIGNUP_TEXT │  name, description at    │  → space BEFORE escapes  │
    │              │  signup                  │  (%2B survives as "+")   │
    │  EDIT_TEXT   │  name, description on    │  → space AFTER escapes   │
    │              │  the edit-profile form   │  (%2B becomes a space)   │
    │  POST_BODY   │  new post text           │  → space AFTER escapes   │
    │  SEARCH_TERM │  account search          │  → space AFTER escapes   │
    └──────────────┴──────────────────────────┴──────────────────────────┘

Only the escapes in ESCAPES are understood. Notably %20, %25 and %3D are
left untouched. Escapes are matched upper-case only, the way browsers
emit them.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


ESCAPES: Mapping[str, str] = {
    "%21": "!",
    "%22": "\"",
    "%23": "#",
    "%24": "$",
    "%26": "&",
    "%27": "'",
    "%28": "(",
    "%29": ")",
    "%2A": "*",
    "%2B": "+",
    "%2C": ",",
    "%2D": "-",
    "%2E": ".",
    "%2F": "/",
    "%3A": ":",
    "%3F": "?",
    "%40": "@",
    "%5B": "[",
    "%5C": "\\",
    "%5D": "]",
    "%5E": "^",
    "%5F": "_",
    "%60": "`",
    "%7B": "{",
    "%7C": "|",
    "%7D": "}",
    "%7E": "~",
}


class PlusMode(Enum):
    """When (if ever) a literal "+" is turned into a space."""
    KEEP = "keep"
    BEFORE_ESCAPES = "before"
    AFTER_ESCAPES = "after"


@dataclass(frozen=True)
class DecodeProfile:
    """
    How one call site decodes its values.

    Attributes:
        escapes: Escape sequence → character, applied in mapping order.
        plus: When "+" becomes a space.
    """
    escapes: Mapping[str, str]
    plus: PlusMode = PlusMode.KEEP


RAW = DecodeProfile(escapes={})
CREDENTIALS = DecodeProfile(escapes=ESCAPES)
SIGNUP_TEXT = DecodeProfile(escapes=ESCAPES, plus=PlusMode.BEFORE_ESCAPES)
EDIT_TEXT = DecodeProfile(escapes=ESCAPES, plus=PlusMode.AFTER_ESCAPES)
POST_BODY = DecodeProfile(escapes=ESCAPES, plus=PlusMode.AFTER_ESCAPES)
SEARCH_TERM = DecodeProfile(escapes=ESCAPES, plus=PlusMode.AFTER_ESCAPES)


def decode(value: str, profile: DecodeProfile = CREDENTIALS) -> str:
    """
    Decode a query value with the given profile.

    Args:
        value: Value exactly as it appeared in the request target
        profile: Escape table and "+" handling for this call site

    Returns:
        The decoded value

    Examples:
        >>> decode("bob%40mail.com")
        'bob@mail.com'

        >>> decode("Hello%2BWorld", POST_BODY)
        'Hello World'

        >>> decode("C%2B%2B+fan", SIGNUP_TEXT)
        'C++ fan'
    """
    if profile.plus is PlusMode.BEFORE_ESCAPES:
        value = value.replace("+", " ")

    for escape, char in profile.escapes.items():
        value = value.replace(escape, char)

    if profile.plus is PlusMode.AFTER_ESCAPES:
        value = value.replace("+", " ")

    return value
