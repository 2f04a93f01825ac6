# content.py
# Данные: карты, события, навыки и правила. Справочник неизменяем и грузится один раз.

from __future__ import annotations
from typing import Dict, List, Any, Optional
from enum import Enum

# --------------------------
# Правила и тайминги
# --------------------------

MAX_HEART = 6
START_HAND = 5
MIN_PLAYERS = 2
MAX_PLAYERS = 5
NAME_MAX_LEN = 10

SKILL_COOLDOWN = 3
SKILL_COOLDOWN_PENALTY = 3
GACHA_PENALTY = 5
GACHA_DRAW = 1
GACHA_GOD_DRAW = 2
MIKUDAYO_DRAW = 3
REVIVE_DRAW = 10
STAT_SKILL_BONUS = 5
MAX_IDLE_TURNS = 3  # ходов подряд без сыгранных карт до ничьей: отключённые игроки иначе крутят пустые ходы вечно

# секунды
PLAY_WINDOW = 30.0
ACTION_WINDOW = 30.0
START_DELAY = 6.0
EVENT_SLOT_SPIN = 5.0
SLOT_PAUSE = 1.0
COMPETITION_SLOT_SPIN = 3.0
MIKUDAYO_DELAY = 4.0
REVEAL_DELAY = 3.0
REVEAL_DELAY_SKILLS = 8.0
RESULT_DISPLAY = 2.0
CARD_ANIM = 0.7
NEXT_TURN_DELAY = 3.0
BOT_CARD_DELAY = (0.8, 2.2)
BOT_ACTION_DELAY = (0.9, 2.0)
PRESENCE_TIMEOUT = 20.0
ROOM_IDLE_TIMEOUT = 120.0

RARITIES = ["normal", "limited", "festival"]
CARD_TYPES = ["cute", "cool", "pure", "happy", "mysterious"]
GROUPS = {
    "VS": "VIRTUAL SINGER",
    "LN": "Leo/need",
    "MMJ": "MORE MORE JUMP!",
    "VBS": "Vivid BAD SQUAD",
    "WxS": "Wonderlands×Showtime",
    "N25": "25-ji, Nightcord de.",
}
COMPETITIONS = ["vocal", "dance", "visual"]
SPECIAL_COMPETITION = "special"


class Action(str, Enum):
    GACHA = "1"
    SKILL = "2"
    COMPETE = "3"
    FLEE = "4"


ACTION_NAMES = {
    Action.GACHA: "Гача",
    Action.SKILL: "Навык",
    Action.COMPETE: "Состязание",
    Action.FLEE: "Побег",
}


class Skill(str, Enum):
    SALT = "salt"
    LEEK_SHIELD = "leek shield"
    NEVER_GIVE_UP = "never give up"
    GOLDEN_MICROPHONE = "golden microphone"
    FEET_OF_FIRE = "feet of fire"
    MAKEUP_SHOP_VISIT = "makeup shop visit"
    MIC_POWER_CUT = "mic power cut"
    FREEZE_SPELL = "freeze spell"
    BANANA_SLIP = "banana slip"
    FATE_CONTROL = "fate control"
    HIDDEN_SKILL = "hidden skill"
    GACHA_GOD = "gacha god"
    DIVINE_CARD = "divine card"


SKILL_DESCRIPTIONS: Dict[Skill, str] = {
    Skill.SALT: "Ничего не происходит.",
    Skill.LEEK_SHIELD: "В этом ходу ты не теряешь сердце.",
    Skill.NEVER_GIVE_UP: "Восстанови 2 сердца (не выше 6).",
    Skill.GOLDEN_MICROPHONE: "+5 к вокалу твоей карты.",
    Skill.FEET_OF_FIRE: "+5 к танцу твоей карты.",
    Skill.MAKEUP_SHOP_VISIT: "+5 к визуалу твоей карты.",
    Skill.MIC_POWER_CUT: "−5 к вокалу карт всех соперников.",
    Skill.FREEZE_SPELL: "−5 к танцу карт всех соперников.",
    Skill.BANANA_SLIP: "−5 к визуалу карт всех соперников.",
    Skill.FATE_CONTROL: "Перебрось событие хода (кроме особых).",
    Skill.HIDDEN_SKILL: "Навыки соперников в этом ходу не срабатывают.",
    Skill.GACHA_GOD: "После показа результата возьми 2 карты.",
    Skill.DIVINE_CARD: "Если в начале следующего хода у тебя 0 сердец, вернись с 1 сердцем и 10 картами.",
}


class EventEffect(str, Enum):
    STAT_MINUS_2 = "stat_minus_2"
    MAX_STAT_ZERO = "max_stat_zero"
    SPECIAL_BATTLE = "special_battle"
    TYPE_BUFF = "type_buff"
    RARITY_BUFF = "rarity_buff"
    GROUP_BUFF = "group_buff"
    SAPPHIRE_R = "sapphire_r"
    DRAW_3 = "draw_3"
    HEAL_1 = "heal_1"
    SHRIMP_CURSE = "shrimp_curse"
    REVEAL_CARDS = "reveal_cards"


# Судьбу не переписать: эти события fate control не трогает
UNCHANGEABLE_EFFECTS = {EventEffect.REVEAL_CARDS, EventEffect.SPECIAL_BATTLE, EventEffect.DRAW_3}
HOSTILE_EFFECTS = {EventEffect.SHRIMP_CURSE, EventEffect.STAT_MINUS_2, EventEffect.MAX_STAT_ZERO}

DEFAULT_BONUS = {
    EventEffect.TYPE_BUFF: 5,
    EventEffect.RARITY_BUFF: 10,
    EventEffect.GROUP_BUFF: 5,
    EventEffect.SAPPHIRE_R: 30,
}

# --------------------------
# Карты
# --------------------------

def _card(
    cid: str,
    name: str,
    character: str,
    group: str,
    ctype: str,
    rarity: str,
    vocal: int,
    dance: int,
    visual: int,
    skill: Optional[Skill],
) -> Dict[str, Any]:
    return {
        "id": cid,
        "name": name,
        "character": character,
        "group": group,
        "type": ctype,
        "rarity": rarity,
        "vocal": vocal,
        "dance": dance,
        "visual": visual,
        "skill": skill,
    }

S = Skill

CARDS: List[Dict[str, Any]] = [
    # VIRTUAL SINGER
    _card("001", "Мику: Голубое небо", "Miku", "VS", "cute", "normal", 12, 10, 9, S.SALT),
    _card("002", "Мику: Звёздная сцена", "Miku", "VS", "happy", "festival", 20, 17, 16, S.DIVINE_CARD),
    _card("003", "Рин: Апельсиновый вихрь", "Rin", "VS", "happy", "normal", 9, 13, 10, S.FEET_OF_FIRE),
    _card("004", "Лен: Зеркальный дуэт", "Len", "VS", "cool", "normal", 10, 12, 9, S.BANANA_SLIP),
    _card("005", "Лука: Лунный вальс", "Luka", "VS", "mysterious", "limited", 15, 13, 16, S.HIDDEN_SKILL),
    _card("006", "MEIKO: Тост за сцену", "MEIKO", "VS", "pure", "normal", 13, 9, 10, S.NEVER_GIVE_UP),
    _card("007", "KAITO: Зимний концерт", "KAITO", "VS", "cool", "normal", 12, 10, 11, S.FREEZE_SPELL),
    _card("008", "Мику: Лук-порей", "Miku", "VS", "pure", "limited", 14, 15, 13, S.LEEK_SHIELD),
    # Leo/need
    _card("009", "Ичика: Первый аккорд", "Ichika", "LN", "pure", "normal", 13, 9, 10, S.GOLDEN_MICROPHONE),
    _card("010", "Ичика: Обещание", "Ichika", "LN", "cool", "festival", 19, 16, 17, S.LEEK_SHIELD),
    _card("011", "Саки: Клавиши рассвета", "Saki", "LN", "happy", "normal", 10, 11, 12, S.MAKEUP_SHOP_VISIT),
    _card("012", "Саки: Праздник в классе", "Saki", "LN", "cute", "limited", 14, 13, 16, S.GACHA_GOD),
    _card("013", "Хонами: Ритм сердца", "Honami", "LN", "pure", "normal", 11, 12, 10, S.NEVER_GIVE_UP),
    _card("014", "Хонами: Домашний пирог", "Honami", "LN", "happy", "normal", 9, 11, 12, S.SALT),
    _card("015", "Шихо: Бас в тишине", "Shiho", "LN", "cool", "normal", 12, 13, 8, S.MIC_POWER_CUT),
    _card("016", "Шихо: Одинокий волк", "Shiho", "LN", "cool", "limited", 16, 15, 12, S.FATE_CONTROL),
    # MORE MORE JUMP!
    _card("017", "Минори: Прыжок надежды", "Minori", "MMJ", "happy", "normal", 11, 12, 10, S.NEVER_GIVE_UP),
    _card("018", "Минори: Сияющая мечта", "Minori", "MMJ", "cute", "festival", 17, 18, 19, S.GACHA_GOD),
    _card("019", "Харука: Голубая звезда", "Haruka", "MMJ", "pure", "normal", 12, 9, 13, S.MAKEUP_SHOP_VISIT),
    _card("020", "Харука: Пингвиний парад", "Haruka", "MMJ", "cute", "limited", 15, 12, 16, S.BANANA_SLIP),
    _card("021", "Айри: Улыбка айдола", "Airi", "MMJ", "happy", "normal", 10, 13, 11, S.FEET_OF_FIRE),
    _card("022", "Айри: Упрямая сцена", "Airi", "MMJ", "cool", "normal", 11, 13, 9, S.SALT),
    _card("023", "Шизуку: Тихая гавань", "Shizuku", "MMJ", "pure", "normal", 12, 8, 14, S.HIDDEN_SKILL),
    _card("024", "Шизуку: Заблудившийся лебедь", "Shizuku", "MMJ", "mysterious", "limited", 14, 12, 17, S.MAKEUP_SHOP_VISIT),
    # Vivid BAD SQUAD
    _card("025", "Кохане: Шаг на улицу", "Kohane", "VBS", "cute", "normal", 12, 10, 9, S.GOLDEN_MICROPHONE),
    _card("026", "Кохане: Сапфировый голос", "Kohane", "VBS", "cool", "festival", 21, 16, 15, S.GOLDEN_MICROPHONE),
    _card("027", "Ан: Ночь в переулке", "An", "VBS", "cool", "normal", 13, 11, 9, S.MIC_POWER_CUT),
    _card("028", "Ан: Огни фестиваля", "An", "VBS", "happy", "limited", 16, 14, 13, S.LEEK_SHIELD),
    _card("029", "Акито: Уличный огонь", "Akito", "VBS", "cool", "normal", 11, 13, 10, S.FEET_OF_FIRE),
    _card("030", "Акито: Тайная репетиция", "Akito", "VBS", "mysterious", "normal", 10, 12, 11, S.SALT),
    _card("031", "Тоя: Классика в ритме", "Toya", "VBS", "pure", "normal", 12, 11, 11, S.FREEZE_SPELL),
    _card("032", "Тоя: Партнёр", "Toya", "VBS", "cool", "limited", 15, 16, 13, S.DIVINE_CARD),
    # Wonderlands×Showtime
    _card("033", "Цукаса: Звезда шоу", "Tsukasa", "WxS", "happy", "normal", 13, 10, 11, S.NEVER_GIVE_UP),
    _card("034", "Цукаса: Великий финал", "Tsukasa", "WxS", "happy", "festival", 18, 17, 18, S.FATE_CONTROL),
    _card("035", "Эму: Чудо-чудо", "Emu", "WxS", "cute", "normal", 9, 14, 10, S.FEET_OF_FIRE),
    _card("036", "Эму: Парк развлечений", "Emu", "WxS", "happy", "limited", 13, 17, 14, S.GACHA_GOD),
    _card("037", "Нене: Голос робота", "Nene", "WxS", "pure", "normal", 14, 9, 10, S.GOLDEN_MICROPHONE),
    _card("038", "Нене: За кулисами", "Nene", "WxS", "mysterious", "normal", 12, 10, 10, S.HIDDEN_SKILL),
    _card("039", "Руи: Безумный режиссёр", "Rui", "WxS", "mysterious", "normal", 11, 10, 13, S.BANANA_SLIP),
    _card("040", "Руи: Механический занавес", "Rui", "WxS", "mysterious", "limited", 14, 14, 15, S.FREEZE_SPELL),
    # 25-ji, Nightcord de.
    _card("041", "Канадэ: Мелодия в полночь", "Kanade", "N25", "mysterious", "normal", 13, 8, 11, S.SALT),
    _card("042", "Канадэ: Спасительная песня", "Kanade", "N25", "pure", "festival", 20, 15, 18, S.DIVINE_CARD),
    _card("043", "Мафую: Маска отличницы", "Mafuyu", "N25", "cool", "normal", 12, 11, 10, S.MIC_POWER_CUT),
    _card("044", "Мафую: Пустой взгляд", "Mafuyu", "N25", "mysterious", "limited", 16, 13, 14, S.HIDDEN_SKILL),
    _card("045", "Эна: Холст и краски", "Ena", "N25", "cute", "normal", 9, 10, 14, S.MAKEUP_SHOP_VISIT),
    _card("046", "Эна: Автопортрет", "Ena", "N25", "mysterious", "normal", 10, 11, 12, S.FATE_CONTROL),
    _card("047", "Мизуки: Милый секрет", "Mizuki", "N25", "cute", "normal", 10, 12, 13, S.GACHA_GOD),
    _card("048", "Мизуки: Монтаж до утра", "Mizuki", "N25", "cute", "limited", 13, 15, 16, S.LEEK_SHIELD),
]

CARD_INDEX: Dict[str, Dict[str, Any]] = {c["id"]: c for c in CARDS}

# --------------------------
# События (цикл без повторов)
# --------------------------

def _event(eid: str, name: str, effect: EventEffect, **params: Any) -> Dict[str, Any]:
    ev = {"id": eid, "name": name, "effect": effect}
    ev.update(params)
    return ev

E = EventEffect

EVENTS: List[Dict[str, Any]] = [
    _event("E01", "Страх сцены", E.STAT_MINUS_2),
    _event("E02", "Пересвет софитов", E.MAX_STAT_ZERO),
    _event("E03", "Загадочная программа", E.SPECIAL_BATTLE),
    _event("E04", "Неделя милоты", E.TYPE_BUFF, type="cute", scoreBonus=5),
    _event("E05", "Неделя крутости", E.TYPE_BUFF, type="cool", scoreBonus=5),
    _event("E06", "Неделя чистоты", E.TYPE_BUFF, type="pure", scoreBonus=5),
    _event("E07", "Неделя веселья", E.TYPE_BUFF, type="happy", scoreBonus=5),
    _event("E08", "Неделя тайн", E.TYPE_BUFF, type="mysterious", scoreBonus=5),
    _event("E09", "Лимитированный баннер", E.RARITY_BUFF, rarity=["limited", "festival"], scoreBonus=10),
    _event("E10", "Концерт виртуальных певцов", E.GROUP_BUFF, group="VS", scoreBonus=5),
    _event("E11", "Живой звук Leo/need", E.GROUP_BUFF, group="LN", scoreBonus=5),
    _event("E12", "Айдол-фест MMJ", E.GROUP_BUFF, group="MMJ", scoreBonus=5),
    _event("E13", "Уличная ночь VBS", E.GROUP_BUFF, group="VBS", scoreBonus=5),
    _event("E14", "Шоу в Фениксе", E.GROUP_BUFF, group="WxS", scoreBonus=5),
    _event("E15", "Найткорд в 25:00", E.GROUP_BUFF, group="N25", scoreBonus=5),
    _event("E16", "SapphireR", E.SAPPHIRE_R, character="Kohane", scoreBonus=30),
    _event("E17", "Подарок от Микудайо", E.DRAW_3),
    _event("E18", "Перерыв на бис", E.HEAL_1),
    _event("E19", "Проклятие креветки", E.SHRIMP_CURSE),
    _event("E20", "Открытая репетиция", E.REVEAL_CARDS),
]

EVENT_INDEX: Dict[str, Dict[str, Any]] = {e["id"]: e for e in EVENTS}

# --------------------------
# Вспомогательное
# --------------------------

def get_card_def(card_id: str) -> Dict[str, Any]:
    """Копия описания карты; справочник остаётся нетронутым."""
    return dict(CARD_INDEX[card_id])

def get_event_def(event_id: str) -> Dict[str, Any]:
    ev = dict(EVENT_INDEX[event_id])
    if "rarity" in ev:
        ev["rarity"] = list(ev["rarity"])
    return ev

def card_instance(card_id: str) -> Dict[str, Any]:
    # экземпляр в колоде комнаты: независимая копия шаблона
    return get_card_def(card_id)

def parse_action(code: Any) -> Optional[Action]:
    if isinstance(code, Action):
        return code
    try:
        return Action(str(code))
    except ValueError:
        return None
