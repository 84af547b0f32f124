"""Load OpenSkill rating parameters from a TOML file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import tomllib

from domain.ratings.openskill.calculator import OpenSkillParameters


@dataclass(frozen=True)
class OpenSkillSystemConfig:
    """Rating parameters used when summarizing tournaments."""

    file_path: Path
    name: str
    description: str | None
    parameters: OpenSkillParameters


def load_openskill_system_config(file_path: Path) -> OpenSkillSystemConfig:
    """Load and validate one OpenSkill TOML config file."""
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    if file_path.is_dir():
        raise IsADirectoryError(f"Config path is a directory: {file_path}")

    with file_path.open("rb") as file:
        raw = tomllib.load(file)

    system_raw = raw.get("system", {})
    openskill_raw = raw.get("openskill", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    parameters = OpenSkillParameters(
        initial_mu=float(openskill_raw.get("initial_mu", 25.0)),
        initial_sigma=float(openskill_raw.get("initial_sigma", 25.0 / 3.0)),
        beta=float(openskill_raw.get("beta", 25.0 / 6.0)),
        kappa=float(openskill_raw.get("kappa", 0.0001)),
        tau=float(openskill_raw.get("tau", 25.0 / 300.0)),
        limit_sigma=_parse_bool(openskill_raw.get("limit_sigma", False), file_path=file_path, key="limit_sigma"),
        balance=_parse_bool(openskill_raw.get("balance", False), file_path=file_path, key="balance"),
        ordinal_z=float(openskill_raw.get("ordinal_z", 3.0)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    return OpenSkillSystemConfig(
        file_path=file_path,
        name=name,
        description=description,
        parameters=parameters,
    )


def _parse_bool(value: Any, *, file_path: Path, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes", "on"):
            return True
        if normalized in ("false", "0", "no", "off"):
            return False
    raise ValueError(f"{file_path}: [openskill].{key} must be a boolean")


def _validate_parameters(*, file_path: Path, parameters: OpenSkillParameters) -> None:
    for key in ("initial_mu", "initial_sigma", "beta", "kappa", "tau", "ordinal_z"):
        if getattr(parameters, key) <= 0.0:
            raise ValueError(f"{file_path}: [openskill].{key} must be > 0")


__all__ = ["OpenSkillSystemConfig", "load_openskill_system_config"]
