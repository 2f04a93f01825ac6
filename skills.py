# skills.py
# Навыки карт (13 штук). Срабатывают только при действии «Навык».
# Состояние хода (щиты, блоки, модификаторы статов) живёт в scope и выбрасывается после разрешения.

from __future__ import annotations
from typing import Dict, Any, List, Callable, Set
import random

import content
import deck
from content import Skill


def new_turn_scope() -> Dict[str, Any]:
    return {
        "protected": set(),     # player_id под «щитом из лука»
        "blockers": set(),      # кто активировал hidden skill
        "stat_mods": {},        # player_id -> {stat: delta}
        "reports": [],
        "gacha_god": [],        # player_id, кому положено 2 карты после показа
    }

def _add_mod(scope: Dict[str, Any], pid: str, stat: str, delta: int) -> None:
    mods = scope["stat_mods"].setdefault(pid, {})
    mods[stat] = mods.get(stat, 0) + delta

def find_blockers(players: List[Dict[str, Any]]) -> Set[str]:
    out = set()
    for p in players:
        card = p.get("played_card")
        if p.get("action") == content.Action.SKILL and card and card.get("skill") == Skill.HIDDEN_SKILL:
            out.add(p["player_id"])
    return out

def is_blocked(scope: Dict[str, Any], pid: str) -> bool:
    # свой hidden skill себя не блокирует
    return any(b != pid for b in scope["blockers"])

# ---- обработчики ----

def _salt(room, scope, p, contenders, report, rng):
    report["effects"].append("Ничего не произошло")

def _leek_shield(room, scope, p, contenders, report, rng):
    scope["protected"].add(p["player_id"])
    report["effects"].append("Защита от потери сердца в этом ходу")

def _never_give_up(room, scope, p, contenders, report, rng):
    old = p["heart"]
    p["heart"] = min(content.MAX_HEART, p["heart"] + 2)
    report["effects"].append(f"Восстановлено {p['heart'] - old} сердец ({old} → {p['heart']})")

def _self_buff(stat: str, label: str) -> Callable:
    def handler(room, scope, p, contenders, report, rng):
        _add_mod(scope, p["player_id"], stat, content.STAT_SKILL_BONUS)
        report["modifiers"].setdefault(p["player_id"], {})[stat] = content.STAT_SKILL_BONUS
        report["effects"].append(f"+{content.STAT_SKILL_BONUS} {label}")
    return handler

def _debuff_others(stat: str, label: str) -> Callable:
    def handler(room, scope, p, contenders, report, rng):
        for other in contenders:
            if other["player_id"] == p["player_id"] or not other.get("played_card"):
                continue
            _add_mod(scope, other["player_id"], stat, -content.STAT_SKILL_BONUS)
            report["modifiers"].setdefault(other["player_id"], {})[stat] = -content.STAT_SKILL_BONUS
            report["effects"].append(f"−{content.STAT_SKILL_BONUS} {label}: {other['name']}")
    return handler

def _fate_control(room, scope, p, contenders, report, rng):
    current = room.get("event")
    cur_name = current["name"] if current else "—"
    if current and current.get("effect") in content.UNCHANGEABLE_EFFECTS:
        report["effects"].append(f"Событие «{cur_name}» изменить нельзя")
        return
    room["event"] = deck.next_event(room["events"], rng)
    report["event_change"] = {"old": current, "new": room["event"], "player": p["name"]}
    report["effects"].append(f"Событие изменено: «{cur_name}» → «{room['event']['name']}»")

def _hidden_skill(room, scope, p, contenders, report, rng):
    scope["blockers"].add(p["player_id"])
    report["effects"].append("Навыки соперников в этом ходу заблокированы")

def _gacha_god(room, scope, p, contenders, report, rng):
    scope["gacha_god"].append(p["player_id"])
    report["effects"].append(f"После показа результата: +{content.GACHA_GOD_DRAW} карты")

def _divine_card(room, scope, p, contenders, report, rng):
    room["divine"][p["player_id"]] = room["turn"]
    report["effects"].append("Божественная карта: воскрешение в начале следующего хода, если сердец 0")


SKILL_HANDLERS: Dict[Skill, Callable] = {
    Skill.SALT: _salt,
    Skill.LEEK_SHIELD: _leek_shield,
    Skill.NEVER_GIVE_UP: _never_give_up,
    Skill.GOLDEN_MICROPHONE: _self_buff("vocal", "к вокалу"),
    Skill.FEET_OF_FIRE: _self_buff("dance", "к танцу"),
    Skill.MAKEUP_SHOP_VISIT: _self_buff("visual", "к визуалу"),
    Skill.MIC_POWER_CUT: _debuff_others("vocal", "к вокалу"),
    Skill.FREEZE_SPELL: _debuff_others("dance", "к танцу"),
    Skill.BANANA_SLIP: _debuff_others("visual", "к визуалу"),
    Skill.FATE_CONTROL: _fate_control,
    Skill.HIDDEN_SKILL: _hidden_skill,
    Skill.GACHA_GOD: _gacha_god,
    Skill.DIVINE_CARD: _divine_card,
}


def activate_skill(
    room: Dict[str, Any],
    scope: Dict[str, Any],
    p: Dict[str, Any],
    contenders: List[Dict[str, Any]],
    rng: random.Random,
) -> Dict[str, Any]:
    """Применить навык сыгранной карты игрока. Возвращает отчёт для показа."""
    card = p["played_card"]
    skill = card.get("skill")
    report: Dict[str, Any] = {
        "player_id": p["player_id"],
        "player": p["name"],
        "skill": skill,
        "blocked": False,
        "effects": [],
        "modifiers": {},
    }
    if skill is None:
        report["effects"].append("У карты нет навыка")
    elif is_blocked(scope, p["player_id"]):
        report["blocked"] = True
        report["effects"].append("Навык заблокирован скрытым навыком")
    else:
        SKILL_HANDLERS[skill](room, scope, p, contenders, report, rng)
    scope["reports"].append(report)
    return report
