import random
import unittest

import content
import deck


class DrawPileTests(unittest.TestCase):
    def setUp(self):
        self.rng = random.Random(42)
        self.pile = deck.new_pile(self.rng)

    def test_new_pile_holds_one_copy_of_each_card(self):
        ids = [c["id"] for c in self.pile["available"]]
        self.assertEqual(len(ids), len(content.CARDS))
        self.assertEqual(set(ids), set(content.CARD_INDEX))
        self.assertEqual(self.pile["total"], len(content.CARDS))

    def test_conservation_over_random_draws_and_returns(self):
        hand = []
        total = self.pile["total"]
        for _ in range(300):
            if hand and self.rng.random() < 0.45:
                k = self.rng.randint(1, len(hand))
                back = hand[:k]
                hand = hand[k:]
                deck.give_back(self.pile, back)
            else:
                hand.extend(deck.draw(self.pile, self.rng.randint(0, 7), self.rng))
            counts = deck.pile_counts(self.pile)
            self.assertEqual(counts["available"] + counts["used"] + len(hand), total)
            # ни одна карта не раздвоилась
            self.assertEqual(len({c["id"] for c in hand}), len(hand))

    def test_overdraw_is_a_programming_error(self):
        with self.assertRaises(deck.PileOverdraw):
            deck.draw(self.pile, self.pile["total"] + 1, self.rng)

    def test_empty_available_recycles_used_cards(self):
        hand = deck.draw(self.pile, 48, self.rng)
        self.assertEqual(deck.pile_counts(self.pile)["available"], 0)
        returned = hand[:10]
        deck.give_back(self.pile, returned)

        again = deck.draw(self.pile, 5, self.rng)

        self.assertEqual(len(again), 5)
        self.assertTrue({c["id"] for c in again} <= {c["id"] for c in returned})
        self.assertEqual(deck.pile_counts(self.pile), {"available": 5, "used": 0, "total": 48})

    def test_draw_comes_up_short_when_every_card_is_in_hands(self):
        deck.draw(self.pile, 48, self.rng)
        self.assertEqual(deck.draw(self.pile, 3, self.rng), [])

    def test_returned_cards_are_not_drawn_before_available_runs_out(self):
        hand = deck.draw(self.pile, 2, self.rng)
        deck.give_back(self.pile, hand)
        rest = deck.draw(self.pile, 46, self.rng)
        self.assertFalse({c["id"] for c in rest} & {c["id"] for c in hand})

    def test_instances_are_independent_of_catalog(self):
        card = deck.draw(self.pile, 1, self.rng)[0]
        card["vocal"] += 100
        self.assertNotEqual(content.CARD_INDEX[card["id"]]["vocal"], card["vocal"])


class EventCycleTests(unittest.TestCase):
    def test_full_cycle_has_no_repeats(self):
        rng = random.Random(5)
        cycle = deck.new_event_cycle(rng)
        seen = [deck.next_event(cycle, rng)["id"] for _ in range(len(content.EVENTS))]
        self.assertEqual(len(set(seen)), len(content.EVENTS))
        self.assertEqual(cycle["cycles"], 0)

    def test_exhausted_cycle_reshuffles_and_restarts(self):
        rng = random.Random(5)
        cycle = deck.new_event_cycle(rng)
        for _ in range(len(content.EVENTS)):
            deck.next_event(cycle, rng)
        ev = deck.next_event(cycle, rng)
        self.assertIn(ev["id"], content.EVENT_INDEX)
        self.assertEqual(cycle["cycles"], 1)
        self.assertEqual(cycle["pos"], 1)

    def test_event_copy_does_not_touch_catalog(self):
        rng = random.Random(1)
        cycle = {"order": ["E09"], "pos": 0, "cycles": 0}
        ev = deck.next_event(cycle, rng)
        ev["rarity"].append("normal")
        self.assertEqual(content.EVENT_INDEX["E09"]["rarity"], ["limited", "festival"])


if __name__ == "__main__":
    unittest.main()
