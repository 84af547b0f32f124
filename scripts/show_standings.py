#!/usr/bin/env python3
"""Show current standings of every bracket in a tournament file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from domain.tournament.config import load_tournament_config
from domain.tournament.errors import TournamentError

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Tournament standings.",
)


@app.command()
def show_standings(
    tournament_file: Annotated[
        Path,
        typer.Argument(help="Tournament TOML file with teams, brackets and stored results."),
    ],
    bracket_idx: Annotated[
        int | None,
        typer.Option("--bracket-idx", help="Only show one bracket."),
    ] = None,
    live: Annotated[
        bool,
        typer.Option("--live", help="Count games of sets that are still in progress."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log engine activity to stderr."),
    ] = False,
) -> None:
    """Replay stored results and print standings per bracket."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        tournament = load_tournament_config(tournament_file).build()
    except TournamentError as exc:
        typer.echo(f"replay_failed file={tournament_file} error={exc}", err=True)
        raise typer.Exit(code=1) from exc

    if bracket_idx is not None and not 0 <= bracket_idx < len(tournament.brackets):
        raise typer.BadParameter(
            f"tournament has {len(tournament.brackets)} brackets",
            param_hint="--bracket-idx",
        )
    brackets = tournament.brackets if bracket_idx is None else [tournament.bracket_by_idx(bracket_idx)]

    typer.echo(f"tournament_id={tournament.id} name={tournament.name!r} finished={tournament.is_finished()}")
    for bracket in brackets:
        typer.echo(
            f"bracket_idx={bracket.idx} name={bracket.name!r} format={bracket.format.value} "
            f"started={bracket.is_started} finished={bracket.is_finished()}"
        )
        if not bracket.is_started:
            continue
        for standing in bracket.current_standings(include_in_progress=live):
            stats = standing.stats
            group = "-" if standing.group_id is None else str(standing.group_id)
            extra = "" if stats.buchholz is None else f" buchholz={stats.buchholz}"
            dropped = " dropped_out" if standing.dropped_out else ""
            typer.echo(
                f"{standing.placement:3d}. {standing.team.name:<20} group={group} "
                f"sets={stats.set_wins}-{stats.set_losses} maps={stats.map_wins}-{stats.map_losses}"
                f"{extra}{dropped}"
            )


if __name__ == "__main__":
    app()
