"""Load tournament definitions and stored results from TOML files."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any
import tomllib

from domain.tournament.bracket import Bracket, BracketSource
from domain.tournament.common import BracketFormat, GameParticipant, GameResult, Team
from domain.tournament.errors import TournamentConfigError
from domain.tournament.summarizer import Summarizer
from domain.tournament.tournament import DropOut, StoredResult, Tournament


@dataclass(frozen=True)
class BracketDefinition:
    name: str
    format: BracketFormat
    best_of: int
    swiss_round_count: int | None
    group_count: int
    groups: tuple[tuple[int, ...], ...]
    team_ids: tuple[int, ...] | None
    sources: tuple[BracketSource, ...]


@dataclass(frozen=True)
class TournamentConfig:
    """Parsed tournament file. ``build`` creates fresh mutable state each call."""

    file_path: Path
    tournament_id: int
    name: str
    teams: tuple[Team, ...]
    brackets: tuple[BracketDefinition, ...]
    results: tuple[StoredResult, ...]
    drop_outs: tuple[DropOut, ...]

    def build(self, *, replay: bool = True, summarizer: Summarizer | None = None) -> Tournament:
        brackets = [
            Bracket(
                idx,
                definition.format,
                name=definition.name,
                best_of=definition.best_of,
                swiss_round_count=definition.swiss_round_count,
                group_count=definition.group_count,
                groups={
                    team_id: group_id
                    for group_id, members in enumerate(definition.groups, start=1)
                    for team_id in members
                },
                team_ids=definition.team_ids,
                sources=definition.sources,
            )
            for idx, definition in enumerate(self.brackets)
        ]
        tournament = Tournament(
            self.tournament_id,
            [dataclasses.replace(team) for team in self.teams],
            brackets,
            name=self.name,
            summarizer=summarizer,
        )
        if replay:
            tournament.replay(self.results, self.drop_outs)
        return tournament


def load_tournament_config(file_path: Path) -> TournamentConfig:
    """Load and validate one tournament TOML file."""
    if not file_path.exists():
        raise FileNotFoundError(f"Tournament file not found: {file_path}")
    if file_path.is_dir():
        raise IsADirectoryError(f"Tournament path is a directory: {file_path}")

    with file_path.open("rb") as file:
        raw = tomllib.load(file)

    tournament_raw = raw.get("tournament", {})
    if "id" not in tournament_raw:
        raise TournamentConfigError(f"{file_path}: [tournament].id is required")
    tournament_id = int(tournament_raw["id"])
    name = str(tournament_raw.get("name", "")).strip()

    teams = tuple(_parse_team(item, file_path=file_path, index=index) for index, item in enumerate(raw.get("teams", [])))
    if not teams:
        raise TournamentConfigError(f"{file_path}: at least one [[teams]] entry is required")
    team_ids = [team.id for team in teams]
    if len(team_ids) != len(set(team_ids)):
        raise TournamentConfigError(f"{file_path}: duplicate team ids found: {team_ids}")

    brackets = tuple(
        _parse_bracket(item, file_path=file_path, index=index) for index, item in enumerate(raw.get("brackets", []))
    )
    if not brackets:
        raise TournamentConfigError(f"{file_path}: at least one [[brackets]] entry is required")

    known = set(team_ids)
    for index, bracket in enumerate(brackets):
        referenced = list(bracket.team_ids or ()) + [team_id for group in bracket.groups for team_id in group]
        unknown = sorted(set(referenced) - known)
        if unknown:
            raise TournamentConfigError(f"{file_path}: [[brackets]][{index}] references unknown teams {unknown}")

    results = tuple(
        _parse_result(item, file_path=file_path, index=index) for index, item in enumerate(raw.get("results", []))
    )
    drop_outs = tuple(
        DropOut(
            team_id=_require_int(item, "team_id", file_path=file_path, section=f"[[drop_outs]][{index}]"),
            bracket_idx=int(item.get("bracket_idx", 0)),
            round_number=None if item.get("round") is None else int(item["round"]),
        )
        for index, item in enumerate(raw.get("drop_outs", []))
    )

    return TournamentConfig(
        file_path=file_path,
        tournament_id=tournament_id,
        name=name,
        teams=teams,
        brackets=brackets,
        results=results,
        drop_outs=drop_outs,
    )


def _require_int(raw: dict[str, Any], key: str, *, file_path: Path, section: str) -> int:
    if key not in raw:
        raise TournamentConfigError(f"{file_path}: {section}.{key} is required")
    return int(raw[key])


def _parse_team(raw: dict[str, Any], *, file_path: Path, index: int) -> Team:
    section = f"[[teams]][{index}]"
    team_id = _require_int(raw, "id", file_path=file_path, section=section)
    seed = raw.get("seed")
    if seed is not None and int(seed) < 1:
        raise TournamentConfigError(f"{file_path}: {section}.seed must be >= 1")
    return Team(
        id=team_id,
        name=str(raw.get("name", f"Team {team_id}")),
        member_user_ids=tuple(int(user_id) for user_id in raw.get("members", [])),
        seed=None if seed is None else int(seed),
        starting_bracket_idx=int(raw.get("starting_bracket", 0)),
    )


def _parse_bracket(raw: dict[str, Any], *, file_path: Path, index: int) -> BracketDefinition:
    section = f"[[brackets]][{index}]"
    format_raw = str(raw.get("format", "")).strip().lower()
    try:
        bracket_format = BracketFormat(format_raw)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in BracketFormat)
        raise TournamentConfigError(f"{file_path}: {section}.format must be one of {allowed}") from exc

    best_of = int(raw.get("best_of", 3))
    if best_of < 1 or best_of % 2 == 0:
        raise TournamentConfigError(f"{file_path}: {section}.best_of must be a positive odd number")

    swiss_round_count = raw.get("swiss_round_count")
    if swiss_round_count is not None and int(swiss_round_count) < 1:
        raise TournamentConfigError(f"{file_path}: {section}.swiss_round_count must be > 0")

    group_count = int(raw.get("group_count", 1))
    if group_count < 1:
        raise TournamentConfigError(f"{file_path}: {section}.group_count must be > 0")

    groups = tuple(tuple(int(team_id) for team_id in group) for group in raw.get("groups", []))
    grouped = [team_id for group in groups for team_id in group]
    if len(grouped) != len(set(grouped)):
        raise TournamentConfigError(f"{file_path}: {section}.groups lists a team more than once")

    sources = tuple(
        BracketSource(
            bracket_idx=_require_int(source, "bracket_idx", file_path=file_path, section=f"{section}.sources"),
            placements=tuple(int(placement) for placement in source.get("placements", [])),
        )
        for source in raw.get("sources", [])
    )
    for source in sources:
        if source.bracket_idx >= index:
            raise TournamentConfigError(f"{file_path}: {section}.sources must reference an earlier bracket")
        if not source.placements:
            raise TournamentConfigError(f"{file_path}: {section}.sources.placements must not be empty")

    team_ids_raw = raw.get("team_ids")
    return BracketDefinition(
        name=str(raw.get("name", f"Bracket {index}")),
        format=bracket_format,
        best_of=best_of,
        swiss_round_count=None if swiss_round_count is None else int(swiss_round_count),
        group_count=group_count,
        groups=groups,
        team_ids=None if team_ids_raw is None else tuple(int(team_id) for team_id in team_ids_raw),
        sources=sources,
    )


def _parse_result(raw: dict[str, Any], *, file_path: Path, index: int) -> StoredResult:
    section = f"[[results]][{index}]"
    games_raw = raw.get("games", [])
    if not games_raw:
        raise TournamentConfigError(f"{file_path}: {section}.games must not be empty")
    games = tuple(
        GameResult(
            winner_id=_require_int(game, "winner_id", file_path=file_path, section=f"{section}.games"),
            mode=str(game.get("mode", "SZ")),
            stage_id=int(game.get("stage_id", 0)),
            participants=tuple(
                GameParticipant(user_id=int(participant["user_id"]), team_id=int(participant["team_id"]))
                for participant in game.get("participants", [])
            ),
        )
        for game in games_raw
    )
    return StoredResult(
        bracket_idx=int(raw.get("bracket_idx", 0)),
        match_id=_require_int(raw, "match_id", file_path=file_path, section=section),
        games=games,
    )


__all__ = ["BracketDefinition", "TournamentConfig", "load_tournament_config"]
