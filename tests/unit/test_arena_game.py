"""
Unit tests for arena rules driven through the state machine.
"""

import pytest

from tests.conftest import SessionDriver
from zkarena.circuits.arena import DIRECTION_SCALE, WEAPONS, ArenaItem, ItemType, build_item_tree
from zkarena.errors import PhaseViolation, ResourceAlreadyConsumed
from zkarena.ledger import GameKind, Phase, Session
from zkarena.witness import ArenaPlayer, arena_win_inputs

# One unit square: every shot aimed with `aim` hits and every item is in reach
TINY_ARENA = {"arena_size": 1}


def aim(origin: tuple[int, int, int], target: tuple[int, int, int]) -> tuple[int, int, int]:
    """Direction straight at an adjacent target."""
    dx, dy = target[0] - origin[0], target[1] - origin[1]
    if dx == 0 and dy == 0:
        return (DIRECTION_SCALE, 0, 0)
    return (dx * DIRECTION_SCALE, dy * DIRECTION_SCALE, 0)


def away(origin: tuple[int, int, int], target: tuple[int, int, int]) -> tuple[int, int, int]:
    """Direction pointing away from the target."""
    dx, dy = target[0] - origin[0], target[1] - origin[1]
    if dx == 0 and dy == 0:
        return (DIRECTION_SCALE, 0, 0)
    return (-_sign(dx) * DIRECTION_SCALE, -_sign(dy) * DIRECTION_SCALE, 0)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


async def start_arena(
    driver: SessionDriver, params: dict[str, int] | None = None, stake: int = 0
) -> tuple[Session, list[ArenaPlayer]]:
    """Start an arena session and spawn both players."""
    session = await driver.start(GameKind.ARENA, params=params, stake=stake)
    players = [ArenaPlayer(slot=0), ArenaPlayer(slot=1)]
    for slot, player in enumerate(players):
        inputs = player.spawn(
            session.board["game_seed"], 0, session.params["arena_size"], session.params["max_health"]
        )
        session = await driver.submit(session.session_id, slot, inputs)
    return session, players


async def shoot(
    driver: SessionDriver, session: Session, players: list[ArenaPlayer], direction: tuple[int, int, int]
) -> Session:
    """Active player fires, the target resolves the shot."""
    shooter = session.active_slot
    target = session.opponent(shooter)
    weapon = WEAPONS[session.counter(shooter, "weapon")]
    inputs = players[shooter].shoot(direction, weapon, session.counter(shooter, "shots"))
    session = await driver.submit(session.session_id, shooter, inputs)
    assert session.substate == "resolve_shot"

    damage = players[target].take_shot(session.board["pending_shot"], session.params["hit_radius"])
    return await driver.submit(session.session_id, target, damage)


class TestSpawn:
    """Tests for the spawn sub-phase."""

    @pytest.mark.asyncio
    async def test_both_spawn_then_play(self, driver: SessionDriver) -> None:
        """Test that play begins once both players spawned."""
        session, _ = await start_arena(driver)

        assert session.substate == "play"
        assert all("position" in p.commitments for p in session.participants)
        assert all(session.counter(s, "ammo") == session.params["initial_ammo"] for s in (0, 1))
        assert len(session.board["items"]) == session.params["item_count"]

    @pytest.mark.asyncio
    async def test_spawn_twice(self, driver: SessionDriver) -> None:
        """Test that a player spawns once per life."""
        session = await driver.start(GameKind.ARENA)
        player = ArenaPlayer(slot=0)
        seed = session.board["game_seed"]
        await driver.submit(session.session_id, 0, player.spawn(seed, 0, 500, 100))

        with pytest.raises(PhaseViolation):
            await driver.submit(session.session_id, 0, ArenaPlayer(slot=0).spawn(seed, 0, 500, 100))

    @pytest.mark.asyncio
    async def test_spawn_for_other_slot(self, driver: SessionDriver) -> None:
        """Test that the spawn tag binds the proof to the submitting slot."""
        session = await driver.start(GameKind.ARENA)
        inputs = ArenaPlayer(slot=1).spawn(session.board["game_seed"], 0, 500, 100)

        with pytest.raises(PhaseViolation):
            await driver.submit(session.session_id, 0, inputs)


class TestTurns:
    """Tests for moving, shooting and turn order."""

    @pytest.mark.asyncio
    async def test_move_once_per_turn(self, driver: SessionDriver) -> None:
        """Test that the active player moves at most once."""
        session, players = await start_arena(driver)
        slot = session.active_slot
        params = session.params
        x, y, z = players[slot].position
        target = (x + 1 if x < params["arena_size"] else x - 1, y, z)

        session = await driver.submit(
            session.session_id,
            slot,
            players[slot].move(target, params["max_speed"], params["move_delta_ms"], params["arena_size"]),
        )
        assert session.counter(slot, "moved") == 1

        with pytest.raises(PhaseViolation):
            await driver.submit(
                session.session_id,
                slot,
                players[slot].move(players[slot].position, params["max_speed"], params["move_delta_ms"], params["arena_size"]),
            )

    @pytest.mark.asyncio
    async def test_move_with_wrong_speed(self, driver: SessionDriver) -> None:
        """Test that proofs under other movement parameters are refused."""
        session, players = await start_arena(driver)
        slot = session.active_slot
        params = session.params

        with pytest.raises(PhaseViolation):
            await driver.submit(
                session.session_id,
                slot,
                players[slot].move(players[slot].position, 100, params["move_delta_ms"], params["arena_size"]),
            )

    @pytest.mark.asyncio
    async def test_waiting_player_cannot_move(self, driver: SessionDriver) -> None:
        """Test that only the active player acts in play."""
        session, players = await start_arena(driver)
        other = session.opponent(session.active_slot)
        params = session.params

        with pytest.raises(PhaseViolation):
            await driver.submit(
                session.session_id,
                other,
                players[other].move(players[other].position, params["max_speed"], params["move_delta_ms"], params["arena_size"]),
            )
        with pytest.raises(PhaseViolation):
            await driver.act(session.session_id, other, "end_turn")

    @pytest.mark.asyncio
    async def test_shot_ends_turn(self, driver: SessionDriver) -> None:
        """Test that a resolved shot spends ammo and passes the turn."""
        session, players = await start_arena(driver)
        shooter = session.active_slot
        target = session.opponent(shooter)

        session = await shoot(driver, session, players, away(players[shooter].position, players[target].position))

        assert session.substate == "play"
        assert session.active_slot == target
        assert session.accumulators["turns"] == 1
        assert session.counter(shooter, "ammo") == session.params["initial_ammo"] - 1
        assert session.board["pending_shot"] is None
        assert session.board["last_shot"]["target"] == target

    @pytest.mark.asyncio
    async def test_hit_reveals_damage_only(self, driver: SessionDriver) -> None:
        """Test that a hit publishes the damage but not the remaining health."""
        session, players = await start_arena(driver, params=TINY_ARENA)
        shooter = session.active_slot
        target = session.opponent(shooter)

        session = await shoot(driver, session, players, aim(players[shooter].position, players[target].position))

        assert session.board["last_shot"]["hit"] == 1
        assert session.board["last_shot"]["damage_dealt"] == WEAPONS[0].damage
        assert session.board["last_shot"]["is_dead"] == 0
        assert "health" not in session.board["last_shot"]
        assert players[target].health == session.params["max_health"] - WEAPONS[0].damage

    @pytest.mark.asyncio
    async def test_shooter_waits_during_resolution(self, driver: SessionDriver) -> None:
        """Test that nothing but the damage proof is accepted while a shot is pending."""
        session, players = await start_arena(driver)
        shooter = session.active_slot
        session = await driver.submit(
            session.session_id, shooter, players[shooter].shoot((DIRECTION_SCALE, 0, 0), WEAPONS[0], 0)
        )

        with pytest.raises(PhaseViolation):
            await driver.act(session.session_id, shooter, "end_turn")
        assert driver.machine.awaiting(session) == {session.opponent(shooter)}

    @pytest.mark.asyncio
    async def test_shot_index_must_advance(self, driver: SessionDriver) -> None:
        """Test that the shot counter binds each shot proof."""
        session, players = await start_arena(driver)
        shooter = session.active_slot

        with pytest.raises(PhaseViolation):
            await driver.submit(
                session.session_id, shooter, players[shooter].shoot((DIRECTION_SCALE, 0, 0), WEAPONS[0], 3)
            )


class TestItems:
    """Tests for item collection."""

    @pytest.mark.asyncio
    async def test_item_consumed_once(self, driver: SessionDriver) -> None:
        """Test that an item is collected at most once."""
        session, players = await start_arena(driver, params=TINY_ARENA)
        slot = session.active_slot
        items = [
            ArenaItem(item_id=i["item_id"], item_type=ItemType(i["item_type"]), x=i["x"], y=i["y"], z=i["z"])
            for i in session.board["items"]
        ]
        tree = build_item_tree(items)
        params = session.params
        assert tree.root == session.board["items_root"]

        session = await driver.submit(
            session.session_id,
            slot,
            players[slot].collect(items[0], tree, params["collection_radius"], params["max_health"]),
        )
        assert "item:0" in session.consumed

        with pytest.raises(ResourceAlreadyConsumed):
            await driver.submit(
                session.session_id,
                slot,
                players[slot].collect(items[0], tree, params["collection_radius"], params["max_health"]),
            )


class TestEndings:
    """Tests for kills, respawns and the final result."""

    @pytest.mark.asyncio
    async def test_kill_and_win(self, driver: SessionDriver) -> None:
        """Test that reaching the kill limit settles with the shooter winning the escrow."""
        session, players = await start_arena(
            driver, params={**TINY_ARENA, "max_health": WEAPONS[0].damage, "kill_limit": 1}, stake=10
        )
        shooter = session.active_slot
        target = session.opponent(shooter)

        session = await shoot(driver, session, players, aim(players[shooter].position, players[target].position))
        assert session.substate == "settle"
        assert session.counter(shooter, "kills") == 1
        assert driver.machine.awaiting(session) == {0, 1}

        inputs = arena_win_inputs(
            session.counter(0, "kills"),
            session.counter(1, "kills"),
            session.params["kill_limit"],
            session.params["turn_limit"],
            session.accumulators["turns"],
        )
        session = await driver.submit(session.session_id, target, inputs)

        assert session.phase == Phase.COMPLETE
        assert session.winner_slot == shooter
        assert session.outcome == "kills"
        assert session.counter(shooter, "payout") == 20

    @pytest.mark.asyncio
    async def test_respawn(self, driver: SessionDriver) -> None:
        """Test that a killed player respawns and the turn passes to them."""
        session, players = await start_arena(
            driver, params={**TINY_ARENA, "max_health": WEAPONS[0].damage, "kill_limit": 2}
        )
        shooter = session.active_slot
        target = session.opponent(shooter)

        session = await shoot(driver, session, players, aim(players[shooter].position, players[target].position))
        assert session.substate == "respawn"
        assert "position" not in session.participants[target].commitments

        inputs = players[target].spawn(session.board["game_seed"], 1, 1, session.params["max_health"])
        session = await driver.submit(session.session_id, target, inputs)

        assert session.substate == "play"
        assert session.active_slot == target
        assert session.counter(target, "deaths") == 1

    @pytest.mark.asyncio
    async def test_turn_limit_draw(self, driver: SessionDriver) -> None:
        """Test that running out of turns without kills is a refunded draw."""
        session, _ = await start_arena(driver, params={"turn_limit": 2}, stake=7)
        session = await driver.act(session.session_id, session.active_slot, "end_turn")
        session = await driver.act(session.session_id, session.active_slot, "end_turn")
        assert session.substate == "settle"

        session = await driver.submit(session.session_id, 0, arena_win_inputs(0, 0, session.params["kill_limit"], 2, 2))

        assert session.phase == Phase.COMPLETE
        assert session.winner_slot is None
        assert session.outcome == "time"
        assert session.counter(0, "payout") == 7
        assert session.counter(1, "payout") == 7

    @pytest.mark.asyncio
    async def test_false_score(self, driver: SessionDriver) -> None:
        """Test that a result proof must use the recorded kills."""
        session, _ = await start_arena(driver, params={"turn_limit": 1})
        session = await driver.act(session.session_id, session.active_slot, "end_turn")

        with pytest.raises(PhaseViolation):
            await driver.submit(session.session_id, 0, arena_win_inputs(0, 0, session.params["kill_limit"], 1, 5))
