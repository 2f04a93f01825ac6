# deck.py
# Колода комнаты (перерабатываемая) и цикл событий без повторов.

from __future__ import annotations
from typing import Dict, Any, List
import random

import content


class PileOverdraw(RuntimeError):
    """Запрошено больше карт, чем вообще существует в колоде. Ошибка программы, не игрока."""


# ---- колода ----

def new_pile(rng: random.Random) -> Dict[str, Any]:
    available = [content.card_instance(c["id"]) for c in content.CARDS]
    rng.shuffle(available)
    return {
        "available": available,
        "used": [],
        "total": len(available),
    }

def _recycle(pile: Dict[str, Any], rng: random.Random) -> None:
    # сыгранные карты возвращаются в игру одной стопкой
    pile["available"] = pile["used"]
    pile["used"] = []
    rng.shuffle(pile["available"])

def draw(pile: Dict[str, Any], n: int, rng: random.Random) -> List[Dict[str, Any]]:
    """Взять до n карт. Пустой запас пополняется перетасованным сбросом."""
    if n > pile["total"]:
        raise PileOverdraw(f"requested {n} cards from a pile of {pile['total']}")
    out: List[Dict[str, Any]] = []
    for _ in range(n):
        if not pile["available"]:
            if not pile["used"]:
                # всё на руках у игроков
                break
            _recycle(pile, rng)
        out.append(pile["available"].pop())
    return out

def give_back(pile: Dict[str, Any], cards: List[Dict[str, Any]]) -> None:
    pile["used"].extend(cards)

def pile_counts(pile: Dict[str, Any]) -> Dict[str, int]:
    return {
        "available": len(pile["available"]),
        "used": len(pile["used"]),
        "total": pile["total"],
    }

# ---- события ----

def new_event_cycle(rng: random.Random) -> Dict[str, Any]:
    order = [e["id"] for e in content.EVENTS]
    rng.shuffle(order)
    return {"order": order, "pos": 0, "cycles": 0}

def next_event(cycle: Dict[str, Any], rng: random.Random) -> Dict[str, Any]:
    if cycle["pos"] >= len(cycle["order"]):
        rng.shuffle(cycle["order"])
        cycle["pos"] = 0
        cycle["cycles"] += 1
    eid = cycle["order"][cycle["pos"]]
    cycle["pos"] += 1
    return content.get_event_def(eid)
