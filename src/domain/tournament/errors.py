"""Exceptions raised by the bracket engine.

Every error is a local precondition violation raised at the offending call.
Nothing here is transient, so callers should surface these instead of retrying.
"""

from __future__ import annotations


class TournamentError(Exception):
    """Base class for all bracket engine errors."""


class InvalidStateError(TournamentError):
    """Operation attempted against a match or bracket in the wrong state."""


class InvalidResultError(TournamentError, ValueError):
    """A reported game result is malformed (unknown winner, empty payload)."""


class PropagationLockedError(TournamentError):
    """Undo blocked because a downstream match already consumed the winner."""


class BracketClosedError(TournamentError):
    """The bracket is finished and no longer accepts result edits."""


class IncompleteRoundError(TournamentError):
    """The current swiss round still has matches that are not final."""


class UnpairableError(TournamentError):
    """Rematch avoidance leaves no valid swiss pairing for a score group."""


class SourceBracketNotFinishedError(TournamentError):
    """Teams cannot be advanced out of a bracket that is still running."""


class TournamentNotFinishedError(TournamentError):
    """Finalize called while at least one bracket is still running."""


class TournamentConfigError(TournamentError, ValueError):
    """A tournament definition is inconsistent."""


__all__ = [
    "BracketClosedError",
    "IncompleteRoundError",
    "InvalidResultError",
    "InvalidStateError",
    "PropagationLockedError",
    "SourceBracketNotFinishedError",
    "TournamentConfigError",
    "TournamentError",
    "TournamentNotFinishedError",
    "UnpairableError",
]
