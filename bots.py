# bots.py
# Боты: видят то же, что игрок, и решают через те же ворота фаз (game.play_card / game.choose_action).

from __future__ import annotations
from typing import Dict, Any, List, Optional, Tuple
import random

import content
import scoring
from content import Action, Skill, EventEffect

RUNNER_UP_MARGIN = 8
RUNNER_UP_CHANCE = 0.25


def thinking_delay(rng: random.Random, kind: str) -> float:
    lo, hi = content.BOT_CARD_DELAY if kind == "card" else content.BOT_ACTION_DELAY
    return rng.uniform(lo, hi)

def _active_opponents(room: Dict[str, Any], bot: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        p for p in room["players"]
        if p["player_id"] != bot["player_id"] and p["heart"] > 0 and p["hand"] and not p["is_dead"]
    ]

def _event_effect(room: Dict[str, Any]) -> Optional[EventEffect]:
    ev = room.get("event")
    return ev.get("effect") if ev else None

def is_hostile_event(event: Optional[Dict[str, Any]]) -> bool:
    return bool(event) and event.get("effect") in content.HOSTILE_EFFECTS

def rarity_weight(rarity: str) -> int:
    if rarity == "festival":
        return 8
    if rarity == "limited":
        return 4
    return 0

def estimate(card: Optional[Dict[str, Any]], room: Dict[str, Any]) -> float:
    return scoring.score_card(card, room.get("competition") or "vocal", room.get("event"))

def skill_preference(card: Dict[str, Any], bot: Dict[str, Any], room: Dict[str, Any]) -> int:
    skill = card.get("skill")
    if not skill or skill == Skill.SALT:
        return 0
    comp = room.get("competition")
    low_heart = bot["heart"] <= 2
    if skill == Skill.LEEK_SHIELD:
        return 35 if low_heart else 18
    if skill == Skill.NEVER_GIVE_UP:
        return 25 if bot["heart"] < content.MAX_HEART else 10
    if skill == Skill.DIVINE_CARD:
        return 40 if low_heart else 12
    if skill == Skill.GACHA_GOD:
        return 22 if len(bot["hand"]) <= 3 else 8
    if skill == Skill.GOLDEN_MICROPHONE:
        return 24 if comp == "vocal" else 10
    if skill == Skill.FEET_OF_FIRE:
        return 24 if comp == "dance" else 10
    if skill == Skill.MAKEUP_SHOP_VISIT:
        return 24 if comp == "visual" else 10
    if skill in (Skill.MIC_POWER_CUT, Skill.FREEZE_SPELL, Skill.BANANA_SLIP):
        return 12
    if skill == Skill.FATE_CONTROL:
        return 28 if is_hostile_event(room.get("event")) else 6
    if skill == Skill.HIDDEN_SKILL:
        return 16
    return 5

def choose_card(room: Dict[str, Any], bot: Dict[str, Any], rng: random.Random) -> Tuple[Optional[Dict[str, Any]], float]:
    """Вернёт (карта, ожидаемые очки). Карта None: пропуск."""
    if not bot["hand"]:
        return None, 0.0
    evals = []
    for card in bot["hand"]:
        base = estimate(card, room)
        weight = base + skill_preference(card, bot, room) + rarity_weight(card.get("rarity", ""))
        evals.append((weight, base, card))
    evals.sort(key=lambda e: e[0], reverse=True)
    pick = evals[0]
    # иногда второй по весу, если он рядом
    if len(evals) > 1 and pick[0] - evals[1][0] <= RUNNER_UP_MARGIN and rng.random() < RUNNER_UP_CHANCE:
        pick = evals[1]
    return pick[2], pick[1]

def should_use_skill(room: Dict[str, Any], bot: Dict[str, Any], projected: float, rng: random.Random) -> bool:
    card = bot.get("played_card")
    if not card or not card.get("skill") or card["skill"] == Skill.SALT:
        return False
    if bot["action_cooldown"] > 0:
        return False
    skill = card["skill"]
    heart = bot["heart"]
    low_heart = heart <= 2
    mid_heart = heart <= 4
    comp = room.get("competition")
    opponents = _active_opponents(room, bot)

    if skill == Skill.LEEK_SHIELD:
        return mid_heart
    if skill == Skill.NEVER_GIVE_UP:
        return heart < content.MAX_HEART and (mid_heart or room["turn"] >= 5)
    if skill == Skill.DIVINE_CARD:
        return low_heart or (heart <= 3 and room["turn"] >= 4)
    if skill == Skill.GACHA_GOD:
        return len(bot["hand"]) <= 3 or projected < 45
    if skill == Skill.GOLDEN_MICROPHONE:
        return comp == "vocal" or projected < 55
    if skill == Skill.FEET_OF_FIRE:
        return comp == "dance" or projected < 55
    if skill == Skill.MAKEUP_SHOP_VISIT:
        return comp == "visual" or projected < 55
    if skill in (Skill.MIC_POWER_CUT, Skill.FREEZE_SPELL, Skill.BANANA_SLIP):
        return len(opponents) >= 2
    if skill == Skill.FATE_CONTROL:
        return is_hostile_event(room.get("event"))
    if skill == Skill.HIDDEN_SKILL:
        return len(opponents) >= 2 and rng.random() < 0.6
    return False

def should_flee(room: Dict[str, Any], bot: Dict[str, Any], projected: float) -> bool:
    if bot["heart"] <= 1:
        return False
    if len(_active_opponents(room, bot)) < 2:
        return False
    if projected < 20 and room["turn"] >= 4:
        return True
    if _event_effect(room) == EventEffect.SHRIMP_CURSE and projected < 25:
        return True
    return False

def should_gacha(room: Dict[str, Any], bot: Dict[str, Any], projected: float) -> bool:
    if len(bot["hand"]) <= 2:
        return True
    if projected <= 35 and bot["heart"] > 2 and room["turn"] <= 8:
        return True
    if _event_effect(room) == EventEffect.SPECIAL_BATTLE and projected < 60:
        return True
    return False

def decide_action(room: Dict[str, Any], bot: Dict[str, Any], projected: Optional[float], rng: random.Random) -> Action:
    if projected is None:
        projected = estimate(bot.get("played_card"), room)
    if should_use_skill(room, bot, projected, rng):
        return Action.SKILL
    if should_flee(room, bot, projected):
        return Action.FLEE
    if should_gacha(room, bot, projected):
        return Action.GACHA
    return Action.COMPETE
