"""Parse the text after the command prefix into an :class:`Invocation`.

Two forms are accepted, tried in order::

    embed[Title|Body|red]     bracket form, args may span lines
    say hello world           space form
"""

from __future__ import annotations

import re

from deepcode_charm.charms.models import Invocation

BRACKET_FORM = re.compile(r"^(\w+)\[(.*)\]\Z", re.DOTALL)
SPACE_FORM = re.compile(r"^(\w+)(?:\s+(.*))?\Z", re.DOTALL)


def parse_invocation(content: str) -> Invocation | None:
    """Parse ``content`` (prefix already removed).

    Returns:
        The invocation, or None when the text is empty or does not start
        with a word token.
    """
    text = content.rstrip()
    for pattern in (BRACKET_FORM, SPACE_FORM):
        match = pattern.match(text)
        if match:
            name, args = match.group(1), match.group(2) or ""
            return Invocation(name=name.lower(), args=args.strip(), raw=content)
    return None
