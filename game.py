# game.py
# Сердце игры: комната, фазы хода, разрешение хода, конец матча, лобби.
# Время приходит снаружи (now), поэтому всё детерминировано при заданном seed.

from __future__ import annotations
from typing import Dict, Any, List, Optional
import uuid, random

import content
import deck
import scoring
import skills
import bots
from content import Action, EventEffect

OUTBOX_LIMIT = 500


class GameError(Exception):
    """Нарушение протокола: действие отклонено, состояние не меняется."""


# ---- утилиты ----

def make_uid(prefix="p") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"

def log(room: Dict[str, Any], msg: str):
    room.setdefault("log", [])
    room["log"].append(msg)
    room["log"] = room["log"][-80:]  # ограничим историю

def emit(room: Dict[str, Any], kind: str, payload: Dict[str, Any], to: Optional[str] = None) -> None:
    room["seq"] += 1
    room["outbox"].append({"seq": room["seq"], "type": kind, "to": to, "data": payload})
    if len(room["outbox"]) > OUTBOX_LIMIT:
        room["outbox"] = room["outbox"][-OUTBOX_LIMIT:]

def events_since(room: Dict[str, Any], since: int, player_id: Optional[str] = None) -> List[Dict[str, Any]]:
    return [
        e for e in room["outbox"]
        if e["seq"] > since and (e["to"] is None or e["to"] == player_id)
    ]

def room_rng(room: Dict[str, Any]) -> random.Random:
    return room["_rng"]

# ---- комната/игроки ----

def new_room(code: str, rng_seed: Optional[int] = None) -> Dict[str, Any]:
    rng = random.Random(rng_seed)
    return {
        "code": code,
        "phase": "lobby",
        "turn": 0,
        "started": False,
        "host": None,
        "players": [],
        "pile": deck.new_pile(rng),
        "events": deck.new_event_cycle(rng),
        "event": None,
        "competition": None,
        "divine": {},           # player_id -> ход, в котором выдан флаг
        "deferred_draws": [],   # [{player_id, count, reason}] после показа результата
        "turn_alive": [],
        "last_results": [],
        "game_over": None,
        "deadline": None,
        "bot_plans": {},
        "bot_memory": {},
        "idle_turns": 0,
        "outbox": [],
        "seq": 0,
        "log": [],
        "_rng": rng,
    }

def new_player(name: str, is_bot: bool = False, now: float = 0.0) -> Dict[str, Any]:
    return {
        "player_id": make_uid("bot" if is_bot else "p"),
        "connection_id": None if is_bot else make_uid("c"),
        "name": name,
        "heart": content.MAX_HEART,
        "hand": [],
        "played_card": None,
        "action": None,
        "action_cooldown": 0,
        "has_decided": False,
        "is_dead": False,
        "is_bot": is_bot,
        "is_disconnected": False,
        "ready": is_bot,
        "total_score": 0.0,
        "last_seen": now,
    }

def find_player(room: Dict[str, Any], player_id: Optional[str]) -> Optional[Dict[str, Any]]:
    for p in room["players"]:
        if p["player_id"] == player_id:
            return p
    return None

def require_player(room: Dict[str, Any], player_id: Optional[str]) -> Dict[str, Any]:
    p = find_player(room, player_id)
    if not p:
        raise GameError("Игрок не найден в комнате")
    return p

def touch(room: Dict[str, Any], player_id: Optional[str], now: float) -> None:
    p = find_player(room, player_id)
    if p:
        p["last_seen"] = now

def _require_lobby(room: Dict[str, Any]):
    if room["phase"] != "lobby":
        raise GameError("Игра уже идёт")

def _require_host(room: Dict[str, Any], player_id: Optional[str]):
    if room["host"] != player_id:
        raise GameError("Это может сделать только хост")

def _pass_host(room: Dict[str, Any]) -> None:
    humans = [p for p in room["players"] if not p["is_bot"] and not p["is_disconnected"]]
    room["host"] = humans[0]["player_id"] if humans else None

def lobby_update(room: Dict[str, Any]) -> None:
    emit(room, "lobby_update", {"host": room["host"], "players": players_info(room)})

def _validate_name(room: Dict[str, Any], name: Any) -> str:
    name = str(name or "").strip()
    if not name:
        raise GameError("Введите имя")
    if len(name) > content.NAME_MAX_LEN:
        raise GameError(f"Имя длиннее {content.NAME_MAX_LEN} символов")
    if any(p["name"].lower() == name.lower() for p in room["players"]):
        raise GameError("Имя уже занято")
    return name

def add_player(room: Dict[str, Any], name: Any, is_bot: bool = False, now: float = 0.0) -> Dict[str, Any]:
    _require_lobby(room)
    if len(room["players"]) >= content.MAX_PLAYERS:
        raise GameError("Комната заполнена")
    p = new_player(_validate_name(room, name), is_bot=is_bot, now=now)
    room["players"].append(p)
    if room["host"] is None and not is_bot:
        room["host"] = p["player_id"]
    log(room, f"{p['name']} входит в комнату.")
    lobby_update(room)
    return p

def rejoin(room: Dict[str, Any], player_id: str, now: float) -> Dict[str, Any]:
    """Та же личность, новое соединение."""
    p = require_player(room, player_id)
    if p["is_bot"]:
        raise GameError("Нельзя войти за бота")
    p["connection_id"] = make_uid("c")
    p["is_disconnected"] = False
    p["last_seen"] = now
    if room["host"] is None:
        room["host"] = p["player_id"]
    log(room, f"{p['name']} вернулся.")
    lobby_update(room)
    return p

def toggle_ready(room: Dict[str, Any], player_id: str, now: float) -> bool:
    _require_lobby(room)
    p = require_player(room, player_id)
    p["ready"] = not p["ready"]
    lobby_update(room)
    if all_ready(room):
        start_game(room, None, now)
    return p["ready"]

def all_ready(room: Dict[str, Any]) -> bool:
    ps = room["players"]
    return len(ps) >= content.MIN_PLAYERS and all(p["ready"] for p in ps)

def add_bot(room: Dict[str, Any], by_player_id: str, now: float) -> Dict[str, Any]:
    _require_lobby(room)
    _require_host(room, by_player_id)
    n = 1
    taken = {p["name"].lower() for p in room["players"]}
    while f"бот {n}" in taken:
        n += 1
    return add_player(room, f"Бот {n}", is_bot=True, now=now)

def kick(room: Dict[str, Any], by_player_id: str, target_id: str) -> Dict[str, Any]:
    _require_lobby(room)
    _require_host(room, by_player_id)
    if target_id == by_player_id:
        raise GameError("Нельзя выгнать себя")
    p = require_player(room, target_id)
    room["players"].remove(p)
    emit(room, "kicked", {"player_id": p["player_id"]}, to=p["player_id"])
    log(room, f"{p['name']} выгнан из комнаты.")
    lobby_update(room)
    return p

def disconnect(room: Dict[str, Any], player_id: str, now: float) -> None:
    p = require_player(room, player_id)
    if room["phase"] == "lobby":
        room["players"].remove(p)
        emit(room, "player_left", {"player_id": p["player_id"], "name": p["name"], "in_match": False})
        log(room, f"{p['name']} покидает комнату.")
        if room["host"] == p["player_id"]:
            _pass_host(room)
        lobby_update(room)
        return

    if p["is_disconnected"]:
        return
    p["is_disconnected"] = True
    p["connection_id"] = None
    emit(room, "player_left", {"player_id": p["player_id"], "name": p["name"], "in_match": True})
    log(room, f"{p['name']} отключился: дальше решения по умолчанию.")
    if room["host"] == p["player_id"]:
        _pass_host(room)
    _force_defaults(room, p)
    _advance_if_decided(room, now)

def _force_defaults(room: Dict[str, Any], p: Dict[str, Any]) -> None:
    if p["has_decided"]:
        return
    if room["phase"] == "playCard":
        p["played_card"] = None
        p["has_decided"] = True
    elif room["phase"] == "action" and p["played_card"]:
        p["action"] = Action.COMPETE
        p["has_decided"] = True

def _advance_if_decided(room: Dict[str, Any], now: float) -> None:
    if not all(p["has_decided"] for p in room["players"]):
        return
    if room["phase"] == "playCard":
        close_play_phase(room, now)
    elif room["phase"] == "action":
        resolve_turn(room, now)

# ---- живость ----

def queued_draws(room: Dict[str, Any], player_id: str) -> int:
    return sum(d["count"] for d in room["deferred_draws"] if d["player_id"] == player_id)

def is_alive(room: Dict[str, Any], p: Dict[str, Any]) -> bool:
    if p["player_id"] in room["divine"]:
        # флаг ещё не разыгран: решится в начале следующего хода
        return True
    if p["is_dead"]:
        return False
    return p["heart"] > 0 and (bool(p["hand"]) or queued_draws(room, p["player_id"]) > 0)

def can_play(p: Dict[str, Any]) -> bool:
    return not p["is_dead"] and p["heart"] > 0 and bool(p["hand"])

def _lose_heart(room: Dict[str, Any], p: Dict[str, Any], why: str) -> int:
    if p["heart"] <= 0:
        return 0
    p["heart"] -= 1
    log(room, f"{p['name']}: −1 сердце ({why}), осталось {p['heart']}.")
    return 1

def evaluate_game_over(room: Dict[str, Any], alive_before: List[str]) -> Optional[Dict[str, Any]]:
    """Отмечает выбывших и решает, закончен ли матч."""
    alive = []
    for p in room["players"]:
        if is_alive(room, p):
            alive.append(p)
        else:
            p["is_dead"] = True

    if len(alive) == 1:
        w = alive[0]
        return {"winner": w["player_id"], "winner_name": w["name"], "is_draw": False, "draw_players": []}
    if not alive:
        fell = [pid for pid in alive_before if find_player(room, pid)]
        if len(fell) < 2:
            fell = [p["player_id"] for p in room["players"]]
        return {"winner": None, "winner_name": None, "is_draw": True, "draw_players": fell}
    if room["idle_turns"] >= content.MAX_IDLE_TURNS:
        log(room, f"{room['idle_turns']} хода подряд без карт: ничья.")
        return {"winner": None, "winner_name": None, "is_draw": True,
                "draw_players": [p["player_id"] for p in alive]}
    return None

def _end_match(room: Dict[str, Any], outcome: Dict[str, Any]) -> None:
    if outcome["is_draw"]:
        names = ", ".join(p["name"] for p in room["players"] if p["player_id"] in outcome["draw_players"])
        log(room, f"Ничья: {names}.")
    else:
        log(room, f"Победа: {outcome['winner_name']}!")
    emit(room, "game_over", dict(outcome, turn=room["turn"]))
    reset_to_lobby(room)

# ---- фазы ----

def _set_deadline(room: Dict[str, Any], now: float, delay: float, step: str) -> None:
    room["deadline"] = {"at": now + delay, "phase": room["phase"], "turn": room["turn"], "step": step}

def start_game(room: Dict[str, Any], by_player_id: Optional[str], now: float) -> None:
    _require_lobby(room)
    if by_player_id is not None:
        _require_host(room, by_player_id)
    if len(room["players"]) < content.MIN_PLAYERS:
        raise GameError(f"Нужно минимум {content.MIN_PLAYERS} игрока")

    rng = room_rng(room)
    room["pile"] = deck.new_pile(rng)
    room["events"] = deck.new_event_cycle(rng)
    room["divine"] = {}
    room["deferred_draws"] = []
    room["idle_turns"] = 0
    room["game_over"] = None
    room["last_results"] = []
    room["started"] = True
    room["turn"] = 1
    room["phase"] = "drawCards"
    for p in room["players"]:
        p["heart"] = content.MAX_HEART
        p["action_cooldown"] = 0
        p["is_dead"] = False
        p["total_score"] = 0.0
        p["played_card"] = None
        p["action"] = None
        p["has_decided"] = False
        p["hand"] = deck.draw(room["pile"], content.START_HAND, rng)
        emit(room, "initial_hand_draw", {"hand": p["hand"], "heart": p["heart"]}, to=p["player_id"])
    log(room, f"Матч начался: {len(room['players'])} игроков.")
    _set_deadline(room, now, content.START_DELAY, "event_slot")

def begin_event_slot(room: Dict[str, Any], now: float) -> None:
    room["phase"] = "eventSlot"
    room["event"] = deck.next_event(room["events"], room_rng(room))
    emit(room, "event_slot_start", {"turn": room["turn"], "spin": content.EVENT_SLOT_SPIN})
    emit(room, "event_slot_result", {"turn": room["turn"], "event": room["event"]})
    log(room, f"Ход {room['turn']}: событие «{room['event']['name']}».")
    _set_deadline(room, now, content.EVENT_SLOT_SPIN + content.SLOT_PAUSE, "competition_slot")

def begin_competition_slot(room: Dict[str, Any], now: float) -> None:
    room["phase"] = "competitionSlot"
    ev = room["event"] or {}
    skip = ev.get("effect") == EventEffect.SPECIAL_BATTLE
    if skip:
        room["competition"] = content.SPECIAL_COMPETITION
        delay = content.SLOT_PAUSE
    else:
        room["competition"] = room_rng(room).choice(content.COMPETITIONS)
        delay = content.COMPETITION_SLOT_SPIN + content.SLOT_PAUSE
    emit(room, "competition_slot_result", {"turn": room["turn"], "competition": room["competition"], "skip_slot": skip})
    log(room, f"Состязание: {room['competition']}.")
    step = "mikudayo" if ev.get("effect") == EventEffect.DRAW_3 else "play"
    _set_deadline(room, now, delay, step)

def begin_mikudayo_draw(room: Dict[str, Any], now: float) -> None:
    room["phase"] = "mikudayoDraw"
    rng = room_rng(room)
    for p in room["players"]:
        if p["is_dead"] or p["heart"] <= 0:
            continue
        cards = deck.draw(room["pile"], content.MIKUDAYO_DRAW, rng)
        p["hand"].extend(cards)
        emit(room, "card_draw", {"reason": "mikudayo", "cards": cards, "count": len(cards)}, to=p["player_id"])
    log(room, f"Микудайо дарит всем по {content.MIKUDAYO_DRAW} карты.")
    _set_deadline(room, now, content.MIKUDAYO_DELAY, "play")

def _consume_divine(room: Dict[str, Any]) -> None:
    rng = room_rng(room)
    for pid, granted in list(room["divine"].items()):
        if granted >= room["turn"]:
            continue
        del room["divine"][pid]
        p = find_player(room, pid)
        if not p:
            continue
        if p["heart"] == 0:
            p["heart"] = 1
            p["is_dead"] = False
            cards = deck.draw(room["pile"], content.REVIVE_DRAW, rng)
            p["hand"].extend(cards)
            emit(room, "card_draw", {"reason": "divine_revival", "cards": cards, "count": len(cards)}, to=pid)
            log(room, f"{p['name']} воскресает: 1 сердце и {len(cards)} карт.")
        else:
            log(room, f"Божественная карта {p['name']} сгорает без эффекта.")

def open_play_phase(room: Dict[str, Any], now: float) -> None:
    """Начало хода: эффекты начала хода, затем выбор карт."""
    room["phase"] = "playCard"
    alive_before = [p["player_id"] for p in room["players"] if is_alive(room, p)]
    for p in room["players"]:
        p["played_card"] = None
        p["action"] = None
        p["has_decided"] = False
        p["action_cooldown"] = max(0, p["action_cooldown"] - 1)

    eff = (room["event"] or {}).get("effect")
    if eff == EventEffect.HEAL_1:
        for p in room["players"]:
            if is_alive(room, p):
                p["heart"] = min(content.MAX_HEART, p["heart"] + 1)
        log(room, "Все живые игроки восстанавливают 1 сердце.")
    elif eff == EventEffect.SHRIMP_CURSE:
        for p in room["players"]:
            _lose_heart(room, p, "проклятие креветки")

    _consume_divine(room)

    outcome = evaluate_game_over(room, alive_before)
    if outcome:
        room["game_over"] = outcome
        _end_match(room, outcome)
        return

    room["turn_alive"] = [p["player_id"] for p in room["players"] if is_alive(room, p)]
    for p in room["players"]:
        if not can_play(p) or p["is_disconnected"]:
            p["has_decided"] = True

    info = players_info(room)
    for p in room["players"]:
        emit(room, "turn_start", {
            "turn": room["turn"],
            "hand": p["hand"],
            "heart": p["heart"],
            "action_cooldown": p["action_cooldown"],
            "can_play": not p["has_decided"],
            "event": room["event"],
            "competition": room["competition"],
            "players": info,
            "last_results": room["last_results"],
            "time_limit": content.PLAY_WINDOW,
        }, to=p["player_id"])
    _schedule_bots(room, "card", now)
    _set_deadline(room, now, content.PLAY_WINDOW, "close_play")
    _advance_if_decided(room, now)

def play_card(room: Dict[str, Any], player_id: str, card_id: Optional[str], now: float) -> None:
    if room["phase"] != "playCard":
        raise GameError("Сейчас нельзя выбрать карту")
    p = require_player(room, player_id)
    if not can_play(p):
        raise GameError("Вы выбыли из игры")
    if p["has_decided"]:
        raise GameError("Карта уже выбрана")

    if card_id is None:
        p["played_card"] = None
        log(room, f"{p['name']} пропускает ход.")
    else:
        card = next((c for c in p["hand"] if c["id"] == card_id), None)
        if not card:
            raise GameError("Такой карты нет в руке")
        p["hand"].remove(card)
        p["played_card"] = card
        log(room, f"{p['name']} выкладывает карту.")
    p["has_decided"] = True
    emit(room, "player_decided", {"player_id": p["player_id"], "phase": "playCard"})
    _advance_if_decided(room, now)

def close_play_phase(room: Dict[str, Any], now: float) -> None:
    if room["phase"] != "playCard":
        return
    for p in room["players"]:
        if not p["has_decided"]:
            p["played_card"] = None
            p["has_decided"] = True
            log(room, f"{p['name']}: время вышло, пропуск.")

    living = [p for p in room["players"] if can_play(p) or p["played_card"]]
    played = [p for p in room["players"] if p["played_card"]]
    if len(played) == 1 and len(living) > 1:
        for p in living:
            if not p["played_card"]:
                _lose_heart(room, p, "пропуск, когда играл только один")

    reveal = (room["event"] or {}).get("effect") == EventEffect.REVEAL_CARDS
    emit(room, "all_cards_played", {
        "turn": room["turn"],
        "revealed": reveal,
        "played": [
            {"player_id": p["player_id"], "name": p["name"], "card": p["played_card"] if reveal else None}
            for p in played
        ],
    })
    if not played:
        resolve_turn(room, now)
        return

    room["phase"] = "action"
    for p in room["players"]:
        p["has_decided"] = not p["played_card"]
        if p["played_card"] and p["is_disconnected"]:
            _force_defaults(room, p)
    emit(room, "action_phase_start", {
        "turn": room["turn"],
        "time_limit": content.ACTION_WINDOW,
        "players": [
            {"player_id": p["player_id"], "action_cooldown": p["action_cooldown"]}
            for p in played
        ],
    })
    _schedule_bots(room, "action", now)
    _set_deadline(room, now, content.ACTION_WINDOW, "action_timeout")
    _advance_if_decided(room, now)

def choose_action(room: Dict[str, Any], player_id: str, code: Any, now: float) -> Action:
    if room["phase"] != "action":
        raise GameError("Сейчас нельзя выбрать действие")
    p = require_player(room, player_id)
    if not p["played_card"]:
        raise GameError("Вы не выкладывали карту в этом ходу")
    if p["has_decided"]:
        raise GameError("Действие уже выбрано")
    act = content.parse_action(code)
    if act is None:
        raise GameError("Неизвестное действие")
    if act == Action.SKILL and p["action_cooldown"] > 0:
        emit(room, "warning", {
            "message": f"Навык на перезарядке ({p['action_cooldown']}): перезарядка вырастет на {content.SKILL_COOLDOWN_PENALTY}",
        }, to=p["player_id"])
    p["action"] = act
    p["has_decided"] = True
    log(room, f"{p['name']}: {content.ACTION_NAMES[act]}.")
    emit(room, "player_decided", {"player_id": p["player_id"], "phase": "action"})
    _advance_if_decided(room, now)
    return act

def action_timeout(room: Dict[str, Any], now: float, early: bool = False) -> None:
    """Кто не выбрал действие, тот состязается. early: сигнал клиента, ждём дедлайна."""
    if room["phase"] != "action":
        return
    d = room["deadline"]
    if early and d and d["step"] == "action_timeout" and now < d["at"]:
        raise GameError("Время на действие ещё не вышло")
    for p in room["players"]:
        if p["played_card"] and not p["has_decided"]:
            p["action"] = Action.COMPETE
            p["has_decided"] = True
            log(room, f"{p['name']}: время вышло, состязание.")
    resolve_turn(room, now)

# ---- разрешение хода ----

def resolve_turn(room: Dict[str, Any], now: float) -> None:
    if room["phase"] not in ("playCard", "action"):
        return
    room["phase"] = "resolve"
    rng = room_rng(room)
    contenders = [p for p in room["players"] if p["played_card"]]
    room["idle_turns"] = 0 if contenders else room["idle_turns"] + 1

    # 1. навыки
    scope = skills.new_turn_scope()
    scope["blockers"] = skills.find_blockers(contenders)
    for p in contenders:
        if p["action"] != Action.SKILL:
            continue
        report = skills.activate_skill(room, scope, p, contenders, rng)
        if report.get("event_change"):
            emit(room, "fate_control_event_change", report["event_change"])
        p["action_cooldown"] = (
            p["action_cooldown"] + content.SKILL_COOLDOWN_PENALTY
            if p["action_cooldown"] > 0 else content.SKILL_COOLDOWN
        )

    # 2. очки
    results: Dict[str, Dict[str, Any]] = {}
    for p in contenders:
        res = {
            "player_id": p["player_id"],
            "name": p["name"],
            "card": p["played_card"],
            "action": p["action"],
            "score": 0.0,
            "heart_lost": 0,
            "protected": p["player_id"] in scope["protected"],
        }
        if p["action"] == Action.FLEE:
            p["hand"].append(p["played_card"])
            res["heart_lost"] = _lose_heart(room, p, "побег")
        else:
            score = scoring.score_card(
                p["played_card"], room["competition"], room["event"], scope["stat_mods"].get(p["player_id"]),
            )
            if p["action"] == Action.GACHA:
                score = max(0.0, score - content.GACHA_PENALTY)
            res["score"] = score
            p["total_score"] += score
        results[p["player_id"]] = res

    # 3. потеря сердец
    fighters = [p for p in contenders if p["action"] != Action.FLEE]
    top_ids: List[str] = []
    if fighters:
        top = max(results[p["player_id"]]["score"] for p in fighters)
        top_ids = [p["player_id"] for p in fighters if results[p["player_id"]]["score"] == top]
        if len(top_ids) < len(fighters):
            for p in fighters:
                if p["player_id"] in top_ids:
                    continue
                if p["player_id"] in scope["protected"]:
                    log(room, f"{p['name']} под щитом из лука.")
                    continue
                results[p["player_id"]]["heart_lost"] = _lose_heart(room, p, "проигрыш в состязании")
        else:
            log(room, "Все набрали поровну: сердца никто не теряет.")

    # 4. карты обратно в колоду, отложенные добор
    deck.give_back(room["pile"], [p["played_card"] for p in fighters])
    for p in fighters:
        if p["action"] == Action.GACHA:
            room["deferred_draws"].append({"player_id": p["player_id"], "count": content.GACHA_DRAW, "reason": "gacha"})
    for pid in scope["gacha_god"]:
        room["deferred_draws"].append({"player_id": pid, "count": content.GACHA_GOD_DRAW, "reason": "gacha_god"})

    # 5. эффекты события уже учтены в начале хода и в очках

    # 6. божественная карта + щит из лука: сердце остаётся 1, карты сразу после показа
    for pid in list(room["divine"]):
        p = find_player(room, pid)
        if p and pid in scope["protected"] and p["heart"] == 1:
            del room["divine"][pid]
            room["deferred_draws"].append({"player_id": pid, "count": content.REVIVE_DRAW, "reason": "divine_revival"})
            log(room, f"{p['name']}: божественная карта под щитом.")

    # 7. scope хода больше не нужен; флаги divine живут до следующего хода
    reports = scope["reports"]

    # 8. итог
    outcome = evaluate_game_over(room, room["turn_alive"])
    room["game_over"] = outcome
    ordered = [results[p["player_id"]] for p in contenders]
    for res in ordered:
        res["heart"] = find_player(room, res["player_id"])["heart"]
    room["last_results"] = ordered

    if (room["event"] or {}).get("effect") == EventEffect.REVEAL_CARDS:
        emit(room, "skill_effects_only", {"turn": room["turn"], "skill_reports": reports})
    else:
        emit(room, "reveal_cards_phase", {
            "turn": room["turn"],
            "cards": [
                {"player_id": r["player_id"], "name": r["name"], "card": r["card"]}
                for r in ordered if r["action"] != Action.FLEE
            ],
            "skill_reports": reports,
        })
    emit(room, "turn_result", {
        "turn": room["turn"],
        "event": room["event"],
        "competition": room["competition"],
        "results": ordered,
        "turn_winners": top_ids,
        "winner": outcome["winner"] if outcome else None,
        "game_over": bool(outcome),
        "is_draw": bool(outcome and outcome["is_draw"]),
        "draw_players": outcome["draw_players"] if outcome else [],
        "players": players_info(room),
    })

    room["phase"] = "result"
    reveal = content.REVEAL_DELAY_SKILLS if reports else content.REVEAL_DELAY
    _set_deadline(room, now, reveal + content.RESULT_DISPLAY, "finish")

def finish_turn(room: Dict[str, Any], now: float) -> None:
    if room["phase"] != "result":
        return
    if room["game_over"]:
        room["deferred_draws"] = []
        _end_match(room, room["game_over"])
        return
    rng = room_rng(room)
    for d in room["deferred_draws"]:
        p = find_player(room, d["player_id"])
        if not p:
            continue
        cards = deck.draw(room["pile"], d["count"], rng)
        p["hand"].extend(cards)
        emit(room, "card_draw", {"reason": d["reason"], "cards": cards, "count": len(cards)}, to=p["player_id"])
    room["deferred_draws"] = []
    _set_deadline(room, now, content.NEXT_TURN_DELAY, "next_turn")

def next_turn(room: Dict[str, Any], now: float) -> None:
    room["turn"] += 1
    begin_event_slot(room, now)

def reset_to_lobby(room: Dict[str, Any]) -> None:
    rng = room_rng(room)
    for p in [p for p in room["players"] if p["is_disconnected"]]:
        room["players"].remove(p)
    for p in room["players"]:
        p["hand"] = []
        p["heart"] = content.MAX_HEART
        p["played_card"] = None
        p["action"] = None
        p["action_cooldown"] = 0
        p["has_decided"] = False
        p["is_dead"] = False
        p["ready"] = p["is_bot"]
    if find_player(room, room["host"]) is None:
        _pass_host(room)
    room["phase"] = "lobby"
    room["started"] = False
    room["pile"] = deck.new_pile(rng)
    room["events"] = deck.new_event_cycle(rng)
    room["event"] = None
    room["competition"] = None
    room["divine"] = {}
    room["deferred_draws"] = []
    room["turn_alive"] = []
    room["deadline"] = None
    room["bot_plans"] = {}
    room["bot_memory"] = {}
    room["idle_turns"] = 0
    lobby_update(room)

# ---- таймеры и боты ----

_STEPS = {
    "event_slot": begin_event_slot,
    "competition_slot": begin_competition_slot,
    "mikudayo": begin_mikudayo_draw,
    "play": open_play_phase,
    "close_play": close_play_phase,
    "action_timeout": action_timeout,
    "finish": finish_turn,
    "next_turn": next_turn,
}

def _schedule_bots(room: Dict[str, Any], kind: str, now: float) -> None:
    rng = room_rng(room)
    for p in room["players"]:
        if not p["is_bot"] or p["has_decided"]:
            continue
        room["bot_plans"][p["player_id"]] = {
            "at": now + bots.thinking_delay(rng, kind),
            "kind": kind,
            "turn": room["turn"],
        }

def _run_bots(room: Dict[str, Any], now: float) -> None:
    rng = room_rng(room)
    for pid, plan in list(room["bot_plans"].items()):
        if plan["at"] > now or room["bot_plans"].get(pid) is not plan:
            continue
        del room["bot_plans"][pid]
        p = find_player(room, pid)
        if not p or p["has_decided"] or plan["turn"] != room["turn"]:
            continue
        if plan["kind"] == "card" and room["phase"] == "playCard":
            card, projected = bots.choose_card(room, p, rng)
            room["bot_memory"][pid] = projected
            play_card(room, pid, card["id"] if card else None, now)
        elif plan["kind"] == "action" and room["phase"] == "action" and p["played_card"]:
            act = bots.decide_action(room, p, room["bot_memory"].get(pid), rng)
            choose_action(room, pid, act.value, now)

def _check_presence(room: Dict[str, Any], now: float) -> None:
    for p in list(room["players"]):
        if p["is_bot"] or p["is_disconnected"]:
            continue
        if now - p["last_seen"] > content.PRESENCE_TIMEOUT:
            disconnect(room, p["player_id"], now)

def tick(room: Dict[str, Any], now: float) -> None:
    """Один проход таймеров комнаты: присутствие, боты, дедлайн фазы."""
    _check_presence(room, now)
    _run_bots(room, now)
    d = room["deadline"]
    if not d or now < d["at"]:
        return
    if d["phase"] != room["phase"] or d["turn"] != room["turn"]:
        # фаза уже закрыта событием
        room["deadline"] = None
        return
    room["deadline"] = None
    _STEPS[d["step"]](room, now)

# ---- view ----

def players_info(room: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {
            "player_id": p["player_id"],
            "name": p["name"],
            "heart": p["heart"],
            "hand_count": len(p["hand"]),
            "action_cooldown": p["action_cooldown"],
            "has_decided": p["has_decided"],
            "is_dead": p["is_dead"],
            "is_bot": p["is_bot"],
            "is_disconnected": p["is_disconnected"],
            "ready": p["ready"],
            "is_host": p["player_id"] == room["host"],
            "total_score": p["total_score"],
        }
        for p in room["players"]
    ]

def room_view(room: Dict[str, Any], player_id: Optional[str] = None) -> Dict[str, Any]:
    v = {
        "code": room["code"],
        "phase": room["phase"],
        "turn": room["turn"],
        "host": room["host"],
        "players": players_info(room),
        "event": room["event"],
        "competition": room["competition"],
        "deadline": room["deadline"],
        "last_results": room["last_results"],
        "game_over": room["game_over"],
        "pile": deck.pile_counts(room["pile"]),
        "log": list(room["log"]),
        "seq": room["seq"],
    }
    p = find_player(room, player_id)
    if p:
        v["you"] = {
            "player_id": p["player_id"],
            "hand": p["hand"],
            "played_card": p["played_card"],
            "action": p["action"],
            "action_cooldown": p["action_cooldown"],
        }
    return v
