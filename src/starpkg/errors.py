"""Root of the starpkg exception hierarchy.

Every component defines its own closed set of errors (name sanitation,
identifier parsing, package loading, script resolution, ...). They all derive
from StarpkgError so the command line can report any of them uniformly.
"""

from __future__ import annotations


class StarpkgError(Exception):
    """Base class for all errors raised by starpkg."""

    pass


def _next_cause(error: BaseException) -> BaseException | None:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__suppress_context__:
        return None
    return error.__context__


def cause_chain(error: BaseException) -> list[BaseException]:
    """Return the chain of causes below `error`, nearest first."""
    chain = []
    seen = {id(error)}
    current = _next_cause(error)
    while current is not None and id(current) not in seen:
        chain.append(current)
        seen.add(id(current))
        current = _next_cause(current)
    return chain
