from __future__ import annotations

from enum import IntEnum


class MagicID(IntEnum):
    """Every spell, effect and item that can go on cooldown or carry an aura."""

    UNKNOWN = 0

    # spells
    LB12 = 1
    CL6 = 2
    TLC_LB = 3

    # auras
    LO_TALENT = 10
    JOW = 11
    ELE_FOCUS = 12
    ELE_MASTERY = 13
    BLESSING_SILVER_CRESCENT = 15
    QUAGS_EYE = 16
    FUNGAL_FRENZY = 17
    BLOODLUST = 18
    SKYCALL = 19
    ENERGIZED = 20
    NAC = 21
    CHAOTIC_SKYFIRE = 22
    INSIGHTFUL_EARTHSTORM = 23
    MYSTIC_SKYFIRE = 24
    MYSTIC_FOCUS = 25
    SPELL_POWER = 27
    RUBY_SERPENT = 28
    CALL_OF_THE_NEXUS = 29
    NEXUS_HORN = 30
    DCC = 31
    DCC_BONUS = 32
    DRUMS = 33
    SPELLSTRIKE = 34
    SPELLSTRIKE_INFUSION = 35
    MANA_ETCHED = 36
    MANA_ETCHED_INSIGHT = 37
    TLC = 38
    SKULL_GULDAN = 39
    ORC_BLOOD_FURY = 40
    TROLL_BERSERKING = 41
    DESTRUCTION_POTION = 42
    SCRYER_BLOODGEM = 43
    XIRI_INFUSION = 44
    DESTRUCTION_POTION_CRIT = 45

    # item / consumable cooldowns
    ISC_TRINK = 60
    NAC_TRINK = 61
    POTION = 62
    RUNE = 63
    ALL_TRINKET = 64
    SCRYER_TRINK = 65
    RUBY_SERPENT_TRINK = 66
    XIRI_TRINK = 67
    SKULL_GULDAN_TRINK = 68
    DRUM1 = 70
    DRUM2 = 71
    DRUM3 = 72
    DRUM4 = 73


_NAMES = {
    MagicID.UNKNOWN: "Unknown",
    MagicID.LB12: "LB12",
    MagicID.CL6: "CL6",
    MagicID.TLC_LB: "TLC-LB",
    MagicID.LO_TALENT: "Lightning Overload Talent",
    MagicID.JOW: "Judgement Of Wisdom Aura",
    MagicID.ELE_FOCUS: "Elemental Focus",
    MagicID.ELE_MASTERY: "Elemental Mastery",
    MagicID.BLESSING_SILVER_CRESCENT: "Blessing of the Silver Crescent",
    MagicID.QUAGS_EYE: "Quags Eye",
    MagicID.FUNGAL_FRENZY: "Fungal Frenzy",
    MagicID.BLOODLUST: "Bloodlust",
    MagicID.SKYCALL: "Skycall",
    MagicID.ENERGIZED: "Energized",
    MagicID.NAC: "Nature Alignment Crystal",
    MagicID.CHAOTIC_SKYFIRE: "Chaotic Skyfire",
    MagicID.INSIGHTFUL_EARTHSTORM: "Insightful Earthstorm",
    MagicID.MYSTIC_SKYFIRE: "Mystic Skyfire",
    MagicID.MYSTIC_FOCUS: "Mystic Focus",
    MagicID.SPELL_POWER: "SpellPower",
    MagicID.RUBY_SERPENT: "RubySerpent",
    MagicID.CALL_OF_THE_NEXUS: "CallOfTheNexus",
    MagicID.NEXUS_HORN: "Horn of the Nexus",
    MagicID.DCC: "Darkmoon Card Crusade",
    MagicID.DCC_BONUS: "Aura of the Crusade",
    MagicID.DRUMS: "Drums of Battle",
    MagicID.SPELLSTRIKE: "Spellstrike Set",
    MagicID.SPELLSTRIKE_INFUSION: "Spellstrike Infusion",
    MagicID.MANA_ETCHED: "Mana-Etched Set",
    MagicID.MANA_ETCHED_INSIGHT: "Mana-EtchedInsight",
    MagicID.TLC: "The Lightning Capacitor",
    MagicID.SKULL_GULDAN: "Skull of Gul'dan",
    MagicID.ORC_BLOOD_FURY: "Blood Fury",
    MagicID.TROLL_BERSERKING: "Berserking",
    MagicID.DESTRUCTION_POTION: "Destruction Potion",
    MagicID.SCRYER_BLOODGEM: "Scryer's Bloodgem",
    MagicID.XIRI_INFUSION: "Xiri's Gift",
    MagicID.DESTRUCTION_POTION_CRIT: "Destruction Potion (crit)",
    MagicID.ISC_TRINK: "Trink",
    MagicID.NAC_TRINK: "NACTrink",
    MagicID.POTION: "Potion",
    MagicID.RUNE: "Rune",
    MagicID.ALL_TRINKET: "AllTrinket",
    MagicID.SCRYER_TRINK: "Scryer Trinket",
    MagicID.RUBY_SERPENT_TRINK: "Ruby Serpent Trinket",
    MagicID.XIRI_TRINK: "Xiri Trinket",
    MagicID.SKULL_GULDAN_TRINK: "Skull Trinket",
    MagicID.DRUM1: "Drum #1",
    MagicID.DRUM2: "Drum #2",
    MagicID.DRUM3: "Drum #3",
    MagicID.DRUM4: "Drum #4",
}


def aura_name(magic_id: int) -> str:
    try:
        return _NAMES[MagicID(magic_id)]
    except (ValueError, KeyError):
        return f"<unnamed {int(magic_id)}>"
