# config_loader.py
from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from tbcsim.agents import parse_agent_type
from tbcsim.errors import SimConfigError
from tbcsim.options import Buffs, Consumes, Encounter, Options, RaceBonus, Talents, Totems
from tbcsim.stats import Stat, parse_stat

from tbcdata.items import DEFAULT_GEAR

logger = logging.getLogger(__name__)

# old spellings found in saved configs
_ALIASES = {
    "lightninoverload": "lightning_overload",
    "blackendbasilisk": "blackened_basilisk",
    "rseed": "seed",
    "iter": "iterations",
}


@dataclass(frozen=True)
class SimRequest:
    options: Options = field(default_factory=Options)
    gear: List[str] = field(default_factory=lambda: list(DEFAULT_GEAR))
    iterations: int = 10000
    seed: Optional[int] = None
    workers: int = 1
    include_logs: bool = False

    def __post_init__(self) -> None:
        if self.iterations <= 0:
            raise SimConfigError("iterations must be > 0")
        if self.workers <= 0:
            raise SimConfigError("workers must be > 0")


def _norm(key: str) -> str:
    k = str(key).replace("_", "").replace("-", "").lower()
    return _ALIASES.get(k, k).replace("_", "")


def _coerce(default: Any, value: Any, where: str) -> Any:
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError):
        raise SimConfigError(f"{where}: bad value {value!r}") from None
    return value


def _build(cls, data: Mapping[str, Any], where: str, special: Optional[Dict[str, Any]] = None):
    """Fill a frozen options dataclass from a loosely spelled dict."""
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise SimConfigError(f"{where} must be an object")

    defaults = cls()
    by_norm = {f.name.replace("_", ""): f.name for f in dataclasses.fields(cls)}
    kwargs: Dict[str, Any] = {}
    for raw_key, value in data.items():
        name = by_norm.get(_norm(raw_key))
        if name is None:
            logger.warning("ignoring unknown key %s.%s", where, raw_key)
            continue
        if special and name in special:
            kwargs[name] = special[name](value)
            continue
        kwargs[name] = _coerce(getattr(defaults, name), value, f"{where}.{raw_key}")
    return cls(**kwargs)


def _parse_race(value: Any) -> RaceBonus:
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return RaceBonus(value)
        except ValueError:
            raise SimConfigError(f"unknown race: {value!r}") from None
    try:
        return RaceBonus[str(value).strip().upper()]
    except KeyError:
        raise SimConfigError(f"unknown race: {value!r}") from None


def _parse_custom(value: Any) -> Dict[Stat, float]:
    if not isinstance(value, Mapping):
        raise SimConfigError("buffs.custom must be an object of stat -> value")
    out: Dict[Stat, float] = {}
    for k, v in value.items():
        try:
            out[parse_stat(k)] = float(v)
        except ValueError as e:
            raise SimConfigError(f"buffs.custom: {e}") from None
    return out


def options_from_dict(data: Optional[Mapping[str, Any]]) -> Options:
    """
    Options from JSON; keys match case-insensitively and with or without
    underscores ("NumBloodlust", "num_bloodlust", "numbloodlust").
    """
    return _build(Options, data or {}, "options", special={
        "agent_type": parse_agent_type,
        "encounter": lambda v: _build(Encounter, v, "options.encounter"),
        "buffs": lambda v: _build(Buffs, v, "options.buffs", special={
            "race": _parse_race,
            "custom": _parse_custom,
        }),
        "consumes": lambda v: _build(Consumes, v, "options.consumes"),
        "talents": lambda v: _build(Talents, v, "options.talents"),
        "totems": lambda v: _build(Totems, v, "options.totems"),
    })


def _gear_names(value: Any) -> List[str]:
    if not isinstance(value, list):
        raise SimConfigError("gear must be a list")
    names = []
    for g in value:
        if isinstance(g, Mapping):
            # {"NameOrId": "..."} item specs
            g = g.get("NameOrId", g.get("name"))
        if not g:
            raise SimConfigError(f"bad gear entry: {g!r}")
        names.append(str(g))
    return names


def request_from_dict(data: Mapping[str, Any]) -> SimRequest:
    if not isinstance(data, Mapping):
        raise SimConfigError("sim request must be an object")

    kwargs: Dict[str, Any] = {}
    for raw_key, value in data.items():
        k = _norm(raw_key)
        if k == "options":
            kwargs["options"] = options_from_dict(value)
        elif k == "gear":
            kwargs["gear"] = _gear_names(value)
        elif k == "iterations":
            kwargs["iterations"] = _coerce(0, value, "iterations")
        elif k == "seed":
            kwargs["seed"] = None if value is None else _coerce(0, value, "seed")
        elif k == "workers":
            kwargs["workers"] = _coerce(0, value, "workers")
        elif k == "includelogs":
            kwargs["include_logs"] = _coerce(False, value, "includeLogs")
        else:
            logger.warning("ignoring unknown key %s", raw_key)
    return SimRequest(**kwargs)


def load_request(json_path: str) -> SimRequest:
    try:
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SimConfigError(f"failed to open config file({json_path}): {e}") from None
    except json.JSONDecodeError as e:
        raise SimConfigError(f"bad JSON in {json_path}: {e}") from None
    return request_from_dict(data)
