"""
Column and table name matching policies.

Reference and target tables frequently disagree on the case of their
identifiers (``FIRSTNAME`` on one side, ``firstname`` on the other) and on
whether a name was written quoted. A NamePolicy decides when two names
denote the same object.
"""

from typing import Protocol

# Opening quote -> closing quote for the quoting styles we understand
QUOTE_PAIRS = {
    '"': '"',
    "[": "]",
    "`": "`",
}


def strip_quotes(name: str) -> str:
    """
    Remove one level of identifier quoting.

    Args:
        name: Identifier, possibly written as "x", [x] or `x`

    Returns:
        The identifier without surrounding quotes
    """
    name = name.strip()
    if len(name) >= 2:
        closing = QUOTE_PAIRS.get(name[0])
        if closing is not None and name[-1] == closing:
            inner = name[1:-1]
            if closing == '"':
                inner = inner.replace('""', '"')
            elif closing == "]":
                inner = inner.replace("]]", "]")
            return inner
    return name


def is_quoted(name: str) -> bool:
    """Return True when the name is wrapped in identifier quotes."""
    name = name.strip()
    return len(name) >= 2 and QUOTE_PAIRS.get(name[0]) == name[-1]


class NamePolicy(Protocol):
    """Decides whether two identifiers refer to the same column or table."""

    def normalize(self, name: str) -> str:
        """Return the lookup key for a name."""
        ...

    def equals(self, first: str, second: str) -> bool:
        """Return True when both names denote the same object."""
        ...


class CaseInsensitiveNames:
    """
    Quote-insensitive and case-insensitive matching.

    ``"FirstName"``, ``[firstname]`` and ``FIRSTNAME`` are all the same
    column. This is the default policy for data comparisons.
    """

    def normalize(self, name: str) -> str:
        return strip_quotes(name).casefold()

    def equals(self, first: str, second: str) -> bool:
        return self.normalize(first) == self.normalize(second)

    def __eq__(self, other):
        return type(other) is type(self)

    def __hash__(self):
        return hash(type(self))

    def __repr__(self):
        return "CaseInsensitiveNames()"


class CaseSensitiveNames:
    """
    Quote-insensitive but case-sensitive matching.

    Suitable when both sides come from databases that preserve identifier
    case exactly and tables legitimately contain columns differing only in
    case.
    """

    def normalize(self, name: str) -> str:
        return strip_quotes(name)

    def equals(self, first: str, second: str) -> bool:
        return self.normalize(first) == self.normalize(second)

    def __eq__(self, other):
        return type(other) is type(self)

    def __hash__(self):
        return hash(type(self))

    def __repr__(self):
        return "CaseSensitiveNames()"


DEFAULT_NAME_POLICY = CaseInsensitiveNames()


def get_name_policy(name: str) -> NamePolicy:
    """
    Look up a policy by its configuration name.

    Args:
        name: "insensitive" or "sensitive"

    Returns:
        NamePolicy instance

    Raises:
        ValueError: If the name is unknown
    """
    policies = {
        "insensitive": CaseInsensitiveNames,
        "sensitive": CaseSensitiveNames,
    }
    try:
        return policies[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown name policy: {name!r}. Must be one of {sorted(policies)}"
        ) from None
