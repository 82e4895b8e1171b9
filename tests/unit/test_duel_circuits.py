"""
Unit tests for the card duel circuits.
"""

import pytest

from zkarena.circuits import get_circuit
from zkarena.circuits.duel import (
    CARD_CATALOG,
    DECK_SIZE,
    HAND_SLOTS,
    MonsterPosition,
    card_stats,
)
from zkarena.crypto import commit
from zkarena.errors import ConstraintViolation, WitnessUnsatisfiable
from zkarena.witness import DuelPlayer, direct_attack_inputs

# Two copies each of cards 1-10
LEGAL_DECK = [(i % 10) + 1 for i in range(DECK_SIZE)]


def synthesize(inputs):
    return get_circuit(inputs.circuit_id).synthesize(inputs.public_inputs, inputs.private_witness)


def battle(defender_card: int, position: MonsterPosition, attack: int, attacker_lp: int = 8000, defender_lp: int = 8000):
    """Resolve an attack against a freshly summoned defender."""
    player = DuelPlayer([defender_card] * DECK_SIZE)
    synthesize(player.draw(0))
    summon = synthesize(player.summon(0, position))
    monster = summon.outputs["monster_commitment"]
    return synthesize(player.defend(monster, position, attack, attacker_lp, defender_lp, 0))


class TestDeck:
    """Tests for deck commitment."""

    def test_legal_deck(self) -> None:
        """Test that a catalog deck within copy limits commits."""
        player = DuelPlayer(LEGAL_DECK)
        result = synthesize(player.commit_deck(max_copies=2))

        assert result.outputs["deck_root"] == player.tree.root
        assert result.outputs["hand_commitment"] == player.hand_commitment

    def test_too_many_copies(self) -> None:
        """Test that the copy limit is enforced."""
        deck = [1] * 3 + LEGAL_DECK[3:]
        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(DuelPlayer(deck).commit_deck(max_copies=2))
        assert "max_copies" in exc_info.value.reason

    def test_unknown_card(self) -> None:
        """Test that cards outside the catalog are rejected."""
        deck = [99] + LEGAL_DECK[1:]
        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(DuelPlayer(deck).commit_deck(max_copies=2))
        assert "catalog_cards" in exc_info.value.reason

    def test_deck_size(self) -> None:
        """Test that a short deck cannot be committed."""
        with pytest.raises(WitnessUnsatisfiable):
            synthesize(DuelPlayer(LEGAL_DECK[:19]).commit_deck(max_copies=2))


class TestDraw:
    """Tests for drawing from a committed deck."""

    def test_draw_fills_first_slot(self) -> None:
        """Test that drawn cards fill slots in order."""
        player = DuelPlayer(LEGAL_DECK)
        first = synthesize(player.draw(4))
        second = synthesize(player.draw(7))

        assert first.outputs["hand_size"] == 1
        assert second.outputs["hand_size"] == 2
        assert player.hand[:2] == [LEGAL_DECK[4], LEGAL_DECK[7]]

    def test_draw_wrong_card(self) -> None:
        """Test that a card not at the committed position is rejected."""
        player = DuelPlayer(LEGAL_DECK)
        inputs = player.draw(0)
        inputs.private_witness["card_id"] = 8
        new_hand = [8] + [0] * (HAND_SLOTS - 1)
        inputs.private_witness["new_hand"] = new_hand
        inputs.public_inputs["new_hand_commitment"] = commit(new_hand, inputs.private_witness["new_hand_salt"])

        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(inputs)
        assert "in_deck" in exc_info.value.reason

    def test_draw_wrong_position(self) -> None:
        """Test that the path must lead to the public draw position."""
        player = DuelPlayer(LEGAL_DECK)
        inputs = player.draw(3)
        inputs.public_inputs["draw_position"] = 5

        with pytest.raises(WitnessUnsatisfiable):
            synthesize(inputs)

    def test_draw_into_full_hand(self) -> None:
        """Test that a full hand cannot draw."""
        player = DuelPlayer(LEGAL_DECK)
        for position in range(HAND_SLOTS):
            synthesize(player.draw(position))
        with pytest.raises(ValueError):
            player.draw(HAND_SLOTS)


class TestSummon:
    """Tests for summoning."""

    def test_summon_attack_reveals(self) -> None:
        """Test that face-up summons reveal stats."""
        player = DuelPlayer([8] * DECK_SIZE)
        synthesize(player.draw(0))
        result = synthesize(player.summon(0, MonsterPosition.ATTACK))

        assert result.outputs["card_id"] == 8
        assert result.outputs["attack"] == 3000
        assert result.outputs["defense"] == 2500
        assert player.hand == [0] * HAND_SLOTS

    def test_summon_set_hides(self) -> None:
        """Test that a SET summon publishes zeros."""
        player = DuelPlayer([8] * DECK_SIZE)
        synthesize(player.draw(0))
        result = synthesize(player.summon(0, MonsterPosition.SET))

        assert result.outputs["card_id"] == 0
        assert result.outputs["attack"] == 0
        assert result.outputs["monster_commitment"] in player.monsters

    def test_summon_empty_slot(self) -> None:
        """Test that an empty hand slot cannot be summoned."""
        player = DuelPlayer(LEGAL_DECK)
        synthesize(player.draw(0))
        with pytest.raises(WitnessUnsatisfiable):
            synthesize(player.summon(3, MonsterPosition.ATTACK))

    def test_card_stats(self) -> None:
        """Test catalog lookup."""
        assert card_stats(1) == (CARD_CATALOG[0].attack, CARD_CATALOG[0].defense)
        with pytest.raises(ConstraintViolation):
            card_stats(21)


class TestBattle:
    """Tests for battle resolution."""

    def test_attack_vs_attack_stronger_wins(self) -> None:
        """Test that the weaker ATTACK defender is destroyed with damage."""
        # Mage: 1500 ATK
        result = battle(2, MonsterPosition.ATTACK, attack=2000)
        assert result.outputs["defender_destroyed"] == 1
        assert result.outputs["attacker_destroyed"] == 0
        assert result.outputs["new_defender_lp"] == 7500
        assert result.outputs["new_attacker_lp"] == 8000

    def test_attack_vs_attack_weaker_loses(self) -> None:
        """Test that a weaker attacker is destroyed and takes damage."""
        result = battle(8, MonsterPosition.ATTACK, attack=2000)
        assert result.outputs["attacker_destroyed"] == 1
        assert result.outputs["defender_destroyed"] == 0
        assert result.outputs["new_attacker_lp"] == 7000

    def test_attack_vs_attack_tie(self) -> None:
        """Test that equal ATK destroys both with no damage."""
        result = battle(1, MonsterPosition.ATTACK, attack=2000)
        assert result.outputs["attacker_destroyed"] == 1
        assert result.outputs["defender_destroyed"] == 1
        assert result.outputs["new_attacker_lp"] == 8000
        assert result.outputs["new_defender_lp"] == 8000

    def test_attack_vs_defense(self) -> None:
        """Test that beating DEF destroys without damage."""
        # Warrior: 1500 DEF
        result = battle(1, MonsterPosition.DEFENSE, attack=1600)
        assert result.outputs["defender_destroyed"] == 1
        assert result.outputs["new_defender_lp"] == 8000

    def test_attack_into_face_up_wall(self) -> None:
        """Test that a face-up DEF wall deals no damage back."""
        result = battle(8, MonsterPosition.DEFENSE, attack=2000)
        assert result.outputs["attacker_destroyed"] == 1
        assert result.outputs["new_attacker_lp"] == 8000

    def test_attack_into_set_wall(self) -> None:
        """Test that a SET defender reveals itself and punishes the attacker."""
        result = battle(8, MonsterPosition.SET, attack=2000)
        assert result.outputs["defender_card_id"] == 8
        assert result.outputs["attacker_destroyed"] == 1
        assert result.outputs["new_attacker_lp"] == 7500

    def test_equal_defense_no_change(self) -> None:
        """Test that ATK equal to DEF changes nothing."""
        result = battle(1, MonsterPosition.DEFENSE, attack=1500)
        assert result.outputs["attacker_destroyed"] == 0
        assert result.outputs["defender_destroyed"] == 0

    def test_lp_clamps(self) -> None:
        """Test that battle damage clamps life points at zero."""
        result = battle(2, MonsterPosition.ATTACK, attack=3000, defender_lp=500)
        assert result.outputs["new_defender_lp"] == 0

    def test_wrong_defender_card(self) -> None:
        """Test that the defender cannot lie about the face-down card."""
        player = DuelPlayer([2] * DECK_SIZE)
        synthesize(player.draw(0))
        monster = synthesize(player.summon(0, MonsterPosition.SET)).outputs["monster_commitment"]
        inputs = player.defend(monster, MonsterPosition.SET, 2000, 8000, 8000, 0)
        inputs.private_witness["card_id"] = 8

        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(inputs)
        assert "defender" in exc_info.value.reason


class TestDirectAttack:
    """Tests for direct attacks."""

    def test_direct_attack(self) -> None:
        """Test life point loss on an open field."""
        result = synthesize(direct_attack_inputs(2000, 8000, 0, 0))
        assert result.outputs["new_defender_lp"] == 6000
        assert result.outputs["is_defeated"] == 0

    def test_direct_attack_defeats(self) -> None:
        """Test that reaching zero defeats the defender."""
        result = synthesize(direct_attack_inputs(3000, 2500, 0, 3))
        assert result.outputs["new_defender_lp"] == 0
        assert result.outputs["is_defeated"] == 1

    def test_direct_attack_blocked(self) -> None:
        """Test that monsters on the field block direct attacks."""
        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(direct_attack_inputs(2000, 8000, 1, 0))
        assert "open_field" in exc_info.value.reason
