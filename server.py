# server.py
# Лёгкий сервер (Flask): команды игроков -> RoomStore, события комнаты забираются опросом.
# Запуск: python server.py  (или flask --app server run, таймеры стартуют с первым запросом)

from __future__ import annotations
from typing import Dict, Any, Optional
import os, logging, threading, time

from flask import Flask, request, jsonify

import content
import game
import rooms

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.2

app = Flask(__name__)
store = rooms.RoomStore()


@app.errorhandler(rooms.RoomNotFound)
def room_not_found(e):
    return jsonify({"error": str(e)}), 404

@app.errorhandler(game.GameError)
def game_error(e):
    return jsonify({"error": str(e)}), 400

def _body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}

def _player_id(data: Dict[str, Any]) -> str:
    pid = data.get("player_id")
    if not pid:
        raise game.GameError("missing player_id")
    return pid

@app.post("/api/rooms")
def api_create_room():
    data = _body()
    return jsonify(store.create_room(data.get("name", "")))

@app.post("/api/rooms/<code>/join")
def api_join(code: str):
    data = _body()
    return jsonify(store.join_room(code, data.get("name", ""), data.get("player_id")))

@app.post("/api/rooms/<code>/ready")
def api_ready(code: str):
    data = _body()
    return jsonify({"ready": store.toggle_ready(code, _player_id(data))})

@app.post("/api/rooms/<code>/start")
def api_start(code: str):
    data = _body()
    store.start_game(code, _player_id(data))
    return jsonify({"ok": True})

@app.post("/api/rooms/<code>/bots")
def api_add_bot(code: str):
    data = _body()
    bot = store.add_bot(code, _player_id(data))
    return jsonify({"player_id": bot["player_id"], "name": bot["name"]})

@app.post("/api/rooms/<code>/kick")
def api_kick(code: str):
    data = _body()
    store.kick(code, _player_id(data), data.get("target_id"))
    return jsonify({"ok": True})

@app.post("/api/rooms/<code>/play")
def api_play(code: str):
    data = _body()
    # card_id = null: пропуск хода
    store.play_card(code, _player_id(data), data.get("card_id"))
    return jsonify({"ok": True})

@app.post("/api/rooms/<code>/action")
def api_action(code: str):
    data = _body()
    action = store.choose_action(code, _player_id(data), data.get("action"))
    return jsonify({"ok": True, "action": action})

@app.post("/api/rooms/<code>/action-timeout")
def api_action_timeout(code: str):
    data = _body()
    store.action_timeout(code, _player_id(data))
    return jsonify({"ok": True})

@app.post("/api/rooms/<code>/leave")
def api_leave(code: str):
    data = _body()
    store.disconnect(code, _player_id(data))
    return jsonify({"ok": True})

@app.get("/api/rooms/<code>/events")
def api_events(code: str):
    since = request.args.get("since", 0, type=int)
    pid: Optional[str] = request.args.get("player_id")
    events = store.events(code, since, pid)
    last = events[-1]["seq"] if events else since
    return jsonify({"events": events, "last": last})

@app.get("/api/rooms/<code>")
def api_room(code: str):
    return jsonify(store.snapshot(code, request.args.get("player_id")))

@app.get("/api/content")
def api_content():
    return jsonify({
        "cards": content.CARDS,
        "events": content.EVENTS,
        "skills": {s.value: content.SKILL_DESCRIPTIONS[s] for s in content.Skill},
        "actions": {a.value: content.ACTION_NAMES[a] for a in content.Action},
        "rarities": content.RARITIES,
        "card_types": content.CARD_TYPES,
        "groups": content.GROUPS,
        "competitions": content.COMPETITIONS,
        "max_heart": content.MAX_HEART,
    })

@app.get("/api/ping")
def ping():
    return jsonify({"ok": True})

def tick_once() -> None:
    try:
        store.tick_all()
    except Exception:
        # сбой одной комнаты не останавливает таймеры
        logger.exception("tick failed")

def _ticker(interval: float = TICK_INTERVAL):
    while True:
        tick_once()
        time.sleep(interval)

_ticker_thread: Optional[threading.Thread] = None
_ticker_lock = threading.Lock()

def start_ticker() -> threading.Thread:
    """Поток таймеров, один на процесс."""
    global _ticker_thread
    with _ticker_lock:
        if _ticker_thread is None:
            _ticker_thread = threading.Thread(target=_ticker, name="room-ticker", daemon=True)
            _ticker_thread.start()
        return _ticker_thread

@app.before_request
def _ensure_ticker():
    # flask run не заходит в __main__
    if not app.config.get("TESTING"):
        start_ticker()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    start_ticker()
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5173"))
    app.run(host=host, port=port, debug=False, threaded=True)
