"""Bracket, standings and summary engine."""

from domain.tournament.bracket import Bracket, BracketSource
from domain.tournament.common import (
    BracketFormat,
    BracketSide,
    GameParticipant,
    GameResult,
    MatchStatus,
    SlotRef,
    Team,
)
from domain.tournament.errors import (
    BracketClosedError,
    IncompleteRoundError,
    InvalidResultError,
    InvalidStateError,
    PropagationLockedError,
    SourceBracketNotFinishedError,
    TournamentConfigError,
    TournamentError,
    TournamentNotFinishedError,
    UnpairableError,
)
from domain.tournament.match import Match
from domain.tournament.standings import BracketSnapshot, Standing, StandingStats, StandingsCalculator
from domain.tournament.summarizer import (
    MapResultDelta,
    PlayerResultDelta,
    SkillDelta,
    Summarizer,
    TournamentResult,
    TournamentSummary,
)
from domain.tournament.swiss import SwissPairingEngine
from domain.tournament.tournament import DropOut, StoredResult, Tournament, placements_in, top_placements

__all__ = [
    "Bracket",
    "BracketClosedError",
    "BracketFormat",
    "BracketSide",
    "BracketSnapshot",
    "BracketSource",
    "DropOut",
    "GameParticipant",
    "GameResult",
    "IncompleteRoundError",
    "InvalidResultError",
    "InvalidStateError",
    "MapResultDelta",
    "Match",
    "MatchStatus",
    "PlayerResultDelta",
    "PropagationLockedError",
    "SkillDelta",
    "SlotRef",
    "SourceBracketNotFinishedError",
    "Standing",
    "StandingStats",
    "StandingsCalculator",
    "StoredResult",
    "Summarizer",
    "SwissPairingEngine",
    "Team",
    "Tournament",
    "TournamentConfigError",
    "TournamentError",
    "TournamentNotFinishedError",
    "TournamentResult",
    "TournamentSummary",
    "UnpairableError",
    "placements_in",
    "top_placements",
]
