# rooms.py
# Реестр комнат. Каждая команда выполняется под замком своей комнаты; комнаты друг от друга не зависят.

from __future__ import annotations
from typing import Dict, Any, List, Optional, Callable, Iterator
from contextlib import contextmanager
import logging, threading, time, uuid

import content
import game

logger = logging.getLogger(__name__)


class RoomNotFound(game.GameError):
    """Комнаты с таким кодом нет."""


class RoomStore:
    def __init__(self, clock: Callable[[], float] = time.monotonic, seed: Optional[int] = None):
        self.clock = clock
        self.seed = seed
        self._rooms: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._empty_since: Dict[str, float] = {}
        self._registry_lock = threading.Lock()
        self._created = 0

    # ---- жизненный цикл ----

    def _new_code(self) -> str:
        while True:
            code = uuid.uuid4().hex[:6].upper()
            if code not in self._rooms:
                return code

    def codes(self) -> List[str]:
        with self._registry_lock:
            return list(self._rooms)

    def get(self, code: str) -> Dict[str, Any]:
        room = self._rooms.get(str(code).upper())
        if room is None:
            raise RoomNotFound("Комната не найдена")
        return room

    def delete(self, code: str) -> None:
        with self._registry_lock:
            self._rooms.pop(code, None)
            self._locks.pop(code, None)
            self._empty_since.pop(code, None)
        logger.info("room %s deleted", code)

    @contextmanager
    def _locked(self, code: str, player_id: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        code = str(code).upper()
        with self._registry_lock:
            lock = self._locks.get(code)
        if lock is None:
            raise RoomNotFound("Комната не найдена")
        with lock:
            room = self.get(code)
            if player_id:
                game.touch(room, player_id, self.clock())
            yield room

    # ---- команды ----

    def create_room(self, name: str) -> Dict[str, Any]:
        with self._registry_lock:
            code = self._new_code()
            seed = None if self.seed is None else self.seed + self._created
            self._created += 1
            room = game.new_room(code, rng_seed=seed)
            # имя проверяем до регистрации: кривое имя не оставит пустую комнату
            player = game.add_player(room, name, now=self.clock())
            self._rooms[code] = room
            self._locks[code] = threading.RLock()
        logger.info("room %s created by %s", code, player["name"])
        return {"code": code, "player_id": player["player_id"], "room": game.room_view(room, player["player_id"])}

    def join_room(self, code: str, name: str, player_id: Optional[str] = None) -> Dict[str, Any]:
        with self._locked(code) as room:
            now = self.clock()
            if player_id and game.find_player(room, player_id):
                player = game.rejoin(room, player_id, now)
            else:
                player = game.add_player(room, name, now=now)
            return {"code": room["code"], "player_id": player["player_id"], "room": game.room_view(room, player["player_id"])}

    def toggle_ready(self, code: str, player_id: str) -> bool:
        with self._locked(code, player_id) as room:
            ready = game.toggle_ready(room, player_id, self.clock())
            if room["started"]:
                logger.info("room %s: game started (all ready)", room["code"])
            return ready

    def start_game(self, code: str, player_id: str) -> None:
        with self._locked(code, player_id) as room:
            game.start_game(room, player_id, self.clock())
            logger.info("room %s: game started by host", room["code"])

    def add_bot(self, code: str, player_id: str) -> Dict[str, Any]:
        with self._locked(code, player_id) as room:
            return game.add_bot(room, player_id, self.clock())

    def kick(self, code: str, player_id: str, target_id: str) -> None:
        with self._locked(code, player_id) as room:
            game.kick(room, player_id, target_id)

    def play_card(self, code: str, player_id: str, card_id: Optional[str]) -> None:
        with self._locked(code, player_id) as room:
            game.play_card(room, player_id, card_id, self.clock())

    def choose_action(self, code: str, player_id: str, action: Any) -> str:
        with self._locked(code, player_id) as room:
            return game.choose_action(room, player_id, action, self.clock()).value

    def action_timeout(self, code: str, player_id: str) -> None:
        with self._locked(code, player_id) as room:
            game.require_player(room, player_id)
            game.action_timeout(room, self.clock(), early=True)

    def disconnect(self, code: str, player_id: str) -> None:
        with self._locked(code) as room:
            game.disconnect(room, player_id, self.clock())

    def events(self, code: str, since: int = 0, player_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._locked(code, player_id) as room:
            return game.events_since(room, since, player_id)

    def snapshot(self, code: str, player_id: Optional[str] = None) -> Dict[str, Any]:
        with self._locked(code, player_id) as room:
            return game.room_view(room, player_id)

    # ---- таймеры ----

    def _has_humans(self, room: Dict[str, Any]) -> bool:
        return any(not p["is_bot"] and not p["is_disconnected"] for p in room["players"])

    def tick_all(self) -> None:
        """Дедлайны фаз, ходы ботов, отвалившиеся игроки, пустые комнаты."""
        for code in self.codes():
            try:
                with self._locked(code) as room:
                    now = self.clock()
                    was_started = room["started"]
                    game.tick(room, now)
                    if was_started and not room["started"]:
                        logger.info("room %s: game over %s", code, room["game_over"])
                    if self._has_humans(room):
                        self._empty_since.pop(code, None)
                        continue
                    since = self._empty_since.setdefault(code, now)
                    expired = now - since >= content.ROOM_IDLE_TIMEOUT
            except RoomNotFound:
                continue
            if expired:
                self.delete(code)
