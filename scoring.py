# scoring.py
# Подсчёт очков карты: статы → модификаторы события → веса состязания → бонусы.

from __future__ import annotations
from typing import Dict, Any, Optional, Tuple

import content
from content import EventEffect

STATS = ("vocal", "dance", "visual")

# первичный ×2, вторичный ×1.5, третичный ×1
WEIGHT_ORDER: Dict[str, Tuple[str, str, str]] = {
    "vocal": ("vocal", "dance", "visual"),
    "dance": ("dance", "visual", "vocal"),
    "visual": ("visual", "vocal", "dance"),
}
WEIGHTS = (2.0, 1.5, 1.0)


def base_score(stats: Dict[str, int], competition: str) -> float:
    if competition not in WEIGHT_ORDER:
        # особое состязание: без множителей
        return float(sum(int(stats.get(k, 0)) for k in STATS))
    order = WEIGHT_ORDER[competition]
    raw = sum(w * int(stats.get(k, 0)) for w, k in zip(WEIGHTS, order))
    return round(raw, 1)

def event_modifiers(event: Optional[Dict[str, Any]], card: Dict[str, Any]) -> Dict[str, Any]:
    """Что событие делает именно с этой картой."""
    if not event:
        return {}
    eff = event.get("effect")
    mods: Dict[str, Any] = {}
    bonus = event.get("scoreBonus", content.DEFAULT_BONUS.get(eff, 0))
    if eff == EventEffect.STAT_MINUS_2:
        mods["stat_minus"] = 2
    elif eff == EventEffect.MAX_STAT_ZERO:
        mods["max_stat_zero"] = True
    elif eff == EventEffect.SPECIAL_BATTLE:
        mods["special_battle"] = True
    elif eff == EventEffect.TYPE_BUFF:
        if card.get("type") == event.get("type"):
            mods["type_bonus"] = bonus
    elif eff == EventEffect.RARITY_BUFF:
        if card.get("rarity") in (event.get("rarity") or []):
            mods["rarity_bonus"] = bonus
    elif eff == EventEffect.GROUP_BUFF:
        if card.get("group") == event.get("group"):
            mods["group_bonus"] = bonus
    elif eff == EventEffect.SAPPHIRE_R:
        if card.get("character") == event.get("character", "Kohane"):
            mods["character_bonus"] = bonus
    # draw_3 / heal_1 / shrimp_curse / reveal_cards на очки не влияют
    return mods

def scoring_stats(card: Dict[str, Any], stat_mods: Optional[Dict[str, int]] = None) -> Dict[str, int]:
    # копия статов для подсчёта; сама карта не меняется
    stats = {k: int(card.get(k, 0)) for k in STATS}
    for k, delta in (stat_mods or {}).items():
        if delta:
            stats[k] = max(1, stats[k] + int(delta))
    return stats

def score_card(
    card: Optional[Dict[str, Any]],
    competition: str,
    event: Optional[Dict[str, Any]],
    stat_mods: Optional[Dict[str, int]] = None,
) -> float:
    if not card:
        return 0.0
    stats = scoring_stats(card, stat_mods)
    mods = event_modifiers(event, card)

    if mods.get("stat_minus"):
        for k in STATS:
            stats[k] = max(1, stats[k] - mods["stat_minus"])

    if mods.get("max_stat_zero"):
        top = max(stats.values())
        for k in STATS:
            if stats[k] == top:
                stats[k] = 0

    if mods.get("special_battle"):
        score = base_score(stats, content.SPECIAL_COMPETITION)
    else:
        score = base_score(stats, competition)

    bonus = sum(mods.get(k, 0) for k in ("type_bonus", "rarity_bonus", "group_bonus", "character_bonus"))
    return score + bonus
