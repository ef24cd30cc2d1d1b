"""
Node filter templates.

A filter template selects the node names a runner owns from `ls -q` output,
e.g. "runner-abc123-auto-%s". Grammar:

    %s   one token of non-whitespace characters
    %d   one optionally signed decimal integer
    %%   a literal percent sign
    any other character (including "%" before another letter) is literal

A line matches only when the whole line matches the template and the template
has exactly one placeholder. Templates with no placeholder, or with two or
more, select nothing.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

_PLACEHOLDERS = {
    "s": r"(\S+)",
    "d": r"([+-]?\d+)",
}


def _compile(template: str) -> tuple[re.Pattern[str], int]:
    parts: list[str] = []
    captures = 0
    i = 0
    while i < len(template):
        ch = template[i]
        if ch == "%" and i + 1 < len(template):
            verb = template[i + 1]
            if verb == "%":
                parts.append(re.escape("%"))
                i += 2
                continue
            if verb in _PLACEHOLDERS:
                parts.append(_PLACEHOLDERS[verb])
                captures += 1
                i += 2
                continue
        parts.append(re.escape(ch))
        i += 1
    return re.compile("".join(parts)), captures


@dataclass(frozen=True)
class NodeFilter:
    template: str
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)
    _captures: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        pattern, captures = _compile(self.template)
        object.__setattr__(self, "_pattern", pattern)
        object.__setattr__(self, "_captures", captures)

    @property
    def captures(self) -> int:
        return self._captures

    def extract(self, line: str) -> Optional[str]:
        """Return the single captured token, or None if the line is not selected."""
        if self._captures != 1:
            return None
        m = self._pattern.fullmatch(line)
        if m is None:
            return None
        return m.group(1)

    def matches(self, line: str) -> bool:
        return self.extract(line) is not None

    def select(self, lines: Iterable[str]) -> list[str]:
        return [line for line in lines if self.matches(line)]
