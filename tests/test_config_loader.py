import json
import logging

import pytest

from tbcsim.agents import AgentType
from tbcsim.errors import SimConfigError
from tbcsim.options import RaceBonus
from tbcsim.stats import Stat

from tbcdata.config_loader import SimRequest, load_request, options_from_dict, request_from_dict
from tbcdata.items import DEFAULT_GEAR


def test_defaults():
    req = request_from_dict({})
    assert req.iterations == 10000
    assert req.gear == list(DEFAULT_GEAR)
    assert req.options.agent_type == AgentType.ADAPTIVE
    assert req.options.encounter.duration == 300.0


def test_web_ui_style_keys():
    opts = options_from_dict({
        "AgentType": "CLOnCC",
        "NumBloodlust": 2,
        "NumDrums": "1",
        "Encounter": {"Duration": 120},
        "Buffs": {"ArcaneInt": True, "Race": "troll10", "Custom": {"SpellDmg": 40}},
        "Consumes": {"BlackendBasilisk": "true", "SuperManaPotion": 1},
        "Talents": {"LightninOverload": 5, "ElementalMastery": True, "Convection": 5},
    })
    assert opts.agent_type == AgentType.CL_ON_CLEARCAST
    assert opts.num_bloodlust == 2
    assert opts.num_drums == 1
    assert opts.encounter.duration == 120.0
    assert opts.buffs.arcane_int
    assert opts.buffs.race == RaceBonus.TROLL10
    assert opts.buffs.custom == {Stat.SPELL_DMG: 40.0}
    assert opts.consumes.blackened_basilisk
    assert opts.consumes.super_mana_potion
    assert opts.talents.lightning_overload == 5
    assert opts.talents.elemental_mastery
    assert opts.talents.convection == 5


def test_snake_case_keys_and_race_by_number():
    opts = options_from_dict({"agent_type": 0, "buffs": {"race": 4}})
    assert opts.buffs.race == RaceBonus.ORC


def test_unknown_keys_are_ignored_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="tbcdata.config_loader"):
        req = request_from_dict({"iter": 20, "Options": {"Bogus": 1, "Buffs": {"Nope": True}}, "extra": 1})
    assert req.iterations == 20
    messages = [r.getMessage() for r in caplog.records]
    assert any("options.Bogus" in m for m in messages)
    assert any("options.buffs.Nope" in m for m in messages)
    assert any("extra" in m for m in messages)


@pytest.mark.parametrize("data", [
    {"Options": {"AgentType": "2LB1CL"}},
    {"Options": {"Buffs": {"Race": "gnome"}}},
    {"Options": {"NumDrums": 9}},
    {"Options": {"Talents": {"Convection": 6}}},
    {"Options": {"Encounter": {"Duration": "soon"}}},
    {"Options": {"Buffs": {"Custom": {"luck": 3}}}},
    {"Iterations": 0},
    {"Gear": "Spellstrike Hood"},
    {"Gear": [{}]},
])
def test_invalid_requests(data):
    with pytest.raises(SimConfigError):
        request_from_dict(data)


def test_gear_item_specs():
    req = request_from_dict({"Gear": ["Spellstrike Hood", {"NameOrId": "Spellstrike Pants"}], "rseed": 7})
    assert req.gear == ["Spellstrike Hood", "Spellstrike Pants"]
    assert req.seed == 7


def test_load_request(tmp_path):
    path = tmp_path / "sim.json"
    path.write_text(json.dumps({"Iterations": 50, "Workers": 2, "Options": {"AgentType": "LB"}}), encoding="utf-8")
    req = load_request(str(path))
    assert req == SimRequest(options=req.options, iterations=50, workers=2)
    assert req.options.agent_type == AgentType.FIXED_LB_ONLY


def test_load_missing_file(tmp_path):
    with pytest.raises(SimConfigError, match="failed to open"):
        load_request(str(tmp_path / "missing.json"))


def test_load_malformed_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SimConfigError, match="bad JSON"):
        load_request(str(path))
