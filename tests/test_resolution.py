import unittest

import content
import game
from content import Action


def make_card(cid, vocal, dance, visual, skill=None, **kw):
    card = {
        "id": cid, "name": f"Карта {cid}", "character": "Miku", "group": "VS",
        "type": "pure", "rarity": "normal", "skill": skill,
        "vocal": vocal, "dance": dance, "visual": visual,
    }
    card.update(kw)
    return card


def make_match(n, seed=1):
    room = game.new_room("TEST01", rng_seed=seed)
    ps = [game.add_player(room, f"Игрок {i + 1}") for i in range(n)]
    game.start_game(room, ps[0]["player_id"], 0.0)
    return room, ps


def give(p, *cards):
    # запасная карта, чтобы игрок не выбыл с пустой рукой
    p["hand"] = list(cards) + [make_card(f"R-{p['name']}", 1, 1, 1)]


def stage(room, competition="vocal", event_id=None):
    room["event"] = content.get_event_def(event_id) if event_id else None
    room["competition"] = competition
    game.open_play_phase(room, 10.0)


def events_of(room, kind):
    return [e for e in room["outbox"] if e["type"] == kind]


def by_id(room):
    return {r["player_id"]: r for r in room["last_results"]}


class ResolutionTests(unittest.TestCase):
    def play_all(self, room, picks, actions):
        for p, cid in picks:
            game.play_card(room, p["player_id"], cid, 11.0)
        for p, act in actions:
            game.choose_action(room, p["player_id"], act, 12.0)

    def test_three_way_vocal_scenario(self):
        room, (a, b, c) = make_match(3)
        give(a, make_card("A", 10, 5, 5))
        give(b, make_card("B", 5, 10, 5))
        give(c, make_card("C", 5, 5, 10))
        stage(room, "vocal")

        self.play_all(room, [(a, "A"), (b, "B"), (c, "C")],
                      [(a, "3"), (b, "3"), (c, "3")])

        res = by_id(room)
        self.assertEqual(res[a["player_id"]]["score"], 32.5)
        self.assertEqual(res[b["player_id"]]["score"], 30.0)
        self.assertEqual(res[c["player_id"]]["score"], 27.5)
        self.assertEqual((a["heart"], b["heart"], c["heart"]), (6, 5, 5))
        self.assertEqual(room["phase"], "result")
        turn_result = events_of(room, "turn_result")[-1]["data"]
        self.assertEqual(turn_result["turn_winners"], [a["player_id"]])
        self.assertFalse(turn_result["game_over"])

    def test_all_tied_nobody_loses(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 10, 10, 10))
        give(b, make_card("B", 10, 10, 10))
        stage(room)
        self.play_all(room, [(a, "A"), (b, "B")], [(a, "3"), (b, "3")])
        self.assertEqual((a["heart"], b["heart"]), (6, 6))

    def test_flee_isolation(self):
        room, (a, b) = make_match(2)
        weak = make_card("W", 1, 1, 1)
        give(a, make_card("A", 20, 20, 20))
        give(b, weak)
        stage(room)
        self.play_all(room, [(a, "A"), (b, "W")], [(a, "4"), (b, "3")])

        res = by_id(room)
        self.assertEqual(res[a["player_id"]]["score"], 0.0)
        self.assertEqual(a["heart"], 5)
        self.assertIn("A", [c["id"] for c in a["hand"]])
        # соперник один на вершине, сердце не теряет
        self.assertEqual(b["heart"], 6)
        reveal = events_of(room, "reveal_cards_phase")[-1]["data"]
        self.assertEqual([r["player_id"] for r in reveal["cards"]], [b["player_id"]])
        # карта побега не уходит в сброс
        self.assertNotIn("A", [c["id"] for c in room["pile"]["used"]])
        self.assertIn("W", [c["id"] for c in room["pile"]["used"]])

    def test_flee_does_not_break_tie_among_others(self):
        room, (a, b, c) = make_match(3)
        give(a, make_card("A", 10, 10, 10))
        give(b, make_card("B", 10, 10, 10))
        give(c, make_card("C", 30, 30, 30))
        stage(room)
        self.play_all(room, [(a, "A"), (b, "B"), (c, "C")],
                      [(a, "3"), (b, "3"), (c, "4")])
        self.assertEqual((a["heart"], b["heart"], c["heart"]), (6, 6, 5))

    def test_sole_contestant_makes_skippers_pay(self):
        room, (a, b, c) = make_match(3)
        give(a, make_card("A", 5, 5, 5))
        give(b, make_card("B", 5, 5, 5))
        give(c, make_card("C", 5, 5, 5))
        stage(room)
        game.play_card(room, a["player_id"], "A", 11.0)
        game.play_card(room, b["player_id"], None, 11.0)
        game.play_card(room, c["player_id"], None, 11.0)

        self.assertEqual(room["phase"], "action")
        self.assertEqual((b["heart"], c["heart"]), (5, 5))

        game.choose_action(room, a["player_id"], "3", 12.0)
        self.assertEqual(a["heart"], 6)

    def test_nobody_plays_resolves_without_action_phase(self):
        room, (a, b) = make_match(2)
        stage(room)
        game.play_card(room, a["player_id"], None, 11.0)
        game.play_card(room, b["player_id"], None, 11.0)
        self.assertEqual(room["phase"], "result")
        self.assertEqual((a["heart"], b["heart"]), (6, 6))
        self.assertEqual(room["idle_turns"], 1)

    def test_gacha_penalty_and_deferred_draw(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 10, 5, 5))
        give(b, make_card("B", 5, 5, 10))
        stage(room)
        hand_before = len(a["hand"])
        self.play_all(room, [(a, "A"), (b, "B")], [(a, "1"), (b, "3")])

        res = by_id(room)
        self.assertEqual(res[a["player_id"]]["score"], 27.5)
        self.assertEqual(res[b["player_id"]]["score"], 27.5)
        self.assertEqual((a["heart"], b["heart"]), (6, 6))
        # до показа результата рука не растёт
        self.assertEqual(len(a["hand"]), hand_before - 1)
        self.assertEqual(room["deferred_draws"], [{"player_id": a["player_id"], "count": 1, "reason": "gacha"}])

        game.finish_turn(room, 30.0)
        self.assertEqual(len(a["hand"]), hand_before)
        draw = [e for e in events_of(room, "card_draw") if e["to"] == a["player_id"]][-1]
        self.assertEqual(draw["data"]["reason"], "gacha")
        self.assertEqual(room["deferred_draws"], [])

    def test_gacha_score_floors_at_zero(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 1, 1, 1))
        give(b, make_card("B", 1, 1, 1))
        stage(room)
        self.play_all(room, [(a, "A"), (b, "B")], [(a, "1"), (b, "3")])
        self.assertEqual(by_id(room)[a["player_id"]]["score"], 0.0)
        self.assertEqual(a["heart"], 5)

    def test_leek_shield_prevents_heart_loss(self):
        room, (a, b) = make_match(2)
        give(a, content.card_instance("008"))
        give(b, make_card("B", 30, 30, 30))
        stage(room)
        self.play_all(room, [(a, "008"), (b, "B")], [(a, "2"), (b, "3")])
        self.assertEqual(a["heart"], 6)
        self.assertTrue(by_id(room)[a["player_id"]]["protected"])

    def test_skill_sets_cooldown(self):
        room, (a, b) = make_match(2)
        give(a, content.card_instance("001"))
        give(b, make_card("B", 30, 30, 30))
        stage(room)
        self.play_all(room, [(a, "001"), (b, "B")], [(a, "2"), (b, "3")])
        self.assertEqual(a["action_cooldown"], content.SKILL_COOLDOWN)

    def test_skill_on_cooldown_warns_and_extends(self):
        room, (a, b) = make_match(2)
        a["action_cooldown"] = 3
        give(a, content.card_instance("001"))
        give(b, make_card("B", 30, 30, 30))
        stage(room)
        self.assertEqual(a["action_cooldown"], 2)
        self.play_all(room, [(a, "001"), (b, "B")], [(a, "2"), (b, "3")])

        warnings = [e for e in events_of(room, "warning") if e["to"] == a["player_id"]]
        self.assertEqual(len(warnings), 1)
        self.assertEqual(a["action_cooldown"], 5)

    def test_blocked_skill_scores_plain_but_still_cools_down(self):
        room, (a, b) = make_match(2)
        give(a, content.card_instance("005"))
        give(b, content.card_instance("009"))
        stage(room)
        self.play_all(room, [(a, "005"), (b, "009")], [(a, "2"), (b, "2")])

        res = by_id(room)
        self.assertEqual(res[b["player_id"]]["score"], 49.5)
        self.assertEqual(res[a["player_id"]]["score"], 65.5)
        self.assertEqual(b["action_cooldown"], content.SKILL_COOLDOWN)
        reports = events_of(room, "reveal_cards_phase")[-1]["data"]["skill_reports"]
        blocked = {r["player_id"]: r["blocked"] for r in reports}
        self.assertEqual(blocked, {a["player_id"]: False, b["player_id"]: True})

    def test_debuff_changes_opponent_score(self):
        room, (a, b) = make_match(2)
        give(a, content.card_instance("015"))
        give(b, make_card("B", 10, 5, 5))
        stage(room)
        self.play_all(room, [(a, "015"), (b, "B")], [(a, "2"), (b, "3")])
        res = by_id(room)
        self.assertEqual(res[b["player_id"]]["score"], 22.5)
        self.assertEqual(res[a["player_id"]]["score"], 51.5)
        self.assertEqual(b["played_card"]["vocal"], 10)

    def test_fate_control_changes_event_before_scoring(self):
        room, (a, b) = make_match(2)
        give(a, content.card_instance("016"))
        give(b, make_card("B", 10, 10, 10, type="happy"))
        stage(room, "vocal", "E04")
        room["events"] = {"order": ["E07"], "pos": 0, "cycles": 0}
        self.play_all(room, [(a, "016"), (b, "B")], [(a, "2"), (b, "3")])

        self.assertEqual(room["event"]["id"], "E07")
        change = events_of(room, "fate_control_event_change")[-1]["data"]
        self.assertEqual((change["old"]["id"], change["new"]["id"]), ("E04", "E07"))
        # «Неделя веселья» уже считает очки карты happy
        self.assertEqual(by_id(room)[b["player_id"]]["score"], 45.0 + 5)

    def test_reveal_cards_event_shows_cards_early(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 10, 10, 10))
        give(b, make_card("B", 5, 5, 5))
        stage(room, "vocal", "E20")
        game.play_card(room, a["player_id"], "A", 11.0)
        game.play_card(room, b["player_id"], "B", 11.0)

        shown = events_of(room, "all_cards_played")[-1]["data"]
        self.assertTrue(shown["revealed"])
        self.assertEqual({p["card"]["id"] for p in shown["played"]}, {"A", "B"})

        game.choose_action(room, a["player_id"], "3", 12.0)
        game.choose_action(room, b["player_id"], "3", 12.0)
        self.assertTrue(events_of(room, "skill_effects_only"))
        self.assertFalse(events_of(room, "reveal_cards_phase"))

    def test_hidden_cards_without_reveal_event(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 10, 10, 10))
        give(b, make_card("B", 5, 5, 5))
        stage(room)
        game.play_card(room, a["player_id"], "A", 11.0)
        game.play_card(room, b["player_id"], "B", 11.0)
        shown = events_of(room, "all_cards_played")[-1]["data"]
        self.assertFalse(shown["revealed"])
        self.assertEqual([p["card"] for p in shown["played"]], [None, None])

    def test_total_score_accumulates(self):
        room, (a, b) = make_match(2)
        give(a, make_card("A", 10, 5, 5))
        give(b, make_card("B", 5, 5, 10))
        stage(room)
        self.play_all(room, [(a, "A"), (b, "B")], [(a, "3"), (b, "3")])
        self.assertEqual(a["total_score"], 32.5)


class ProtocolTests(unittest.TestCase):
    def test_card_not_in_hand_is_rejected(self):
        room, (a, b) = make_match(2)
        stage(room)
        hand = list(a["hand"])
        with self.assertRaises(game.GameError):
            game.play_card(room, a["player_id"], "nope", 11.0)
        self.assertEqual(a["hand"], hand)
        self.assertFalse(a["has_decided"])

    def test_double_play_is_rejected(self):
        room, (a, b) = make_match(2)
        stage(room)
        game.play_card(room, a["player_id"], a["hand"][0]["id"], 11.0)
        with self.assertRaises(game.GameError):
            game.play_card(room, a["player_id"], a["hand"][0]["id"], 11.0)

    def test_action_outside_action_phase_is_rejected(self):
        room, (a, b) = make_match(2)
        stage(room)
        with self.assertRaises(game.GameError):
            game.choose_action(room, a["player_id"], "3", 11.0)

    def test_unknown_action_code(self):
        room, (a, b) = make_match(2)
        stage(room)
        game.play_card(room, a["player_id"], a["hand"][0]["id"], 11.0)
        game.play_card(room, b["player_id"], b["hand"][0]["id"], 11.0)
        with self.assertRaises(game.GameError):
            game.choose_action(room, a["player_id"], "9", 12.0)
        self.assertIsNone(a["action"])

    def test_skipper_cannot_choose_action(self):
        room, (a, b, c) = make_match(3)
        stage(room)
        game.play_card(room, a["player_id"], a["hand"][0]["id"], 11.0)
        game.play_card(room, b["player_id"], b["hand"][0]["id"], 11.0)
        game.play_card(room, c["player_id"], None, 11.0)
        with self.assertRaises(game.GameError):
            game.choose_action(room, c["player_id"], "3", 12.0)

    def test_eliminated_player_cannot_play(self):
        room, (a, b, c) = make_match(3)
        c["heart"] = 0
        c["is_dead"] = True
        stage(room)
        self.assertTrue(c["has_decided"])
        with self.assertRaises(game.GameError):
            game.play_card(room, c["player_id"], c["hand"][0]["id"], 11.0)

    def test_action_enum_is_accepted(self):
        room, (a, b) = make_match(2)
        stage(room)
        game.play_card(room, a["player_id"], a["hand"][0]["id"], 11.0)
        game.play_card(room, b["player_id"], b["hand"][0]["id"], 11.0)
        self.assertEqual(game.choose_action(room, a["player_id"], Action.COMPETE, 12.0), Action.COMPETE)


if __name__ == "__main__":
    unittest.main()
