"""
Shell-style tokenization of raw command strings.
"""

import shlex
from typing import List

from ..core.exceptions import ParseError

# Reason reported for an opened but never closed quote
UNTERMINATED_QUOTE = "unterminated quote"


def tokenize(raw: str) -> List[str]:
    """Split ``raw`` into word tokens using POSIX quoting rules.

    Quoted whitespace and quoted ``|`` characters stay literal. Blank input
    yields an empty list; deciding what that means is left to the caller.

    Raises:
        ParseError: If a quote is opened and never closed.
    """
    if not raw or not raw.strip():
        return []

    try:
        return shlex.split(raw, comments=False, posix=True)
    except ValueError as e:
        reason = str(e)
        if reason == "No closing quotation":
            reason = UNTERMINATED_QUOTE
        raise ParseError(raw, reason.lower()) from e
