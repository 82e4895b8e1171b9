"""Tests for the ledger service session API."""

from collections.abc import Iterator
from typing import Any

import pytest
from httpx import AsyncClient

from zkarena.ledger.machine import get_state_machine
from zkarena.proofs import get_toolkit
from zkarena.randomness import generate_seed, hash_seed
from zkarena.witness import DrawPlayer

BASE = "/api/v1/sessions"


def as_player(participant_id: str) -> dict[str, str]:
    return {"X-Participant-Id": participant_id}


@pytest.fixture(autouse=True)
def clean_store() -> Iterator[None]:
    """Start every test with an empty session store."""
    get_state_machine().store.clear_all()
    yield
    get_state_machine().store.clear_all()


async def create(client: AsyncClient, **overrides: Any) -> dict[str, Any]:
    body = {"game": "draw", "participants": ["alice", "bob"], **overrides}
    response = await client.post(BASE, json=body)
    assert response.status_code == 201, response.text
    return response.json()


async def start_draw(client: AsyncClient) -> tuple[str, list[DrawPlayer]]:
    """Create, join, commit and reveal a Dead Man's Draw session over HTTP."""
    session_id = (await create(client))["session_id"]
    players = [DrawPlayer(), DrawPlayer()]
    seeds = [generate_seed(), generate_seed()]

    for participant in ("alice", "bob"):
        assert (await client.post(f"{BASE}/{session_id}/join", headers=as_player(participant))).status_code == 200
    for participant, player, seed in zip(("alice", "bob"), players, seeds):
        response = await client.post(
            f"{BASE}/{session_id}/seed/commit",
            json={"seed_hash": hash_seed(seed), "commitments": {"deck_seed": str(player.commitment)}},
            headers=as_player(participant),
        )
        assert response.status_code == 200, response.text
    for participant, seed in zip(("alice", "bob"), seeds):
        response = await client.post(
            f"{BASE}/{session_id}/seed/reveal", json={"seed": seed.hex()}, headers=as_player(participant)
        )
        assert response.status_code == 200, response.text
    return session_id, players


async def draw_body(session: dict[str, Any], player: DrawPlayer) -> dict[str, Any]:
    inputs = player.draw(session["board"]["table_seed"], 0, 0)
    result = await get_toolkit().prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)
    return {
        "circuit_id": inputs.circuit_id.value,
        "proof": result.proof.model_dump(),
        "public_signals": result.public_signals.signals,
    }


class TestSessionLifecycle:
    """Tests for creating and joining sessions."""

    @pytest.mark.asyncio
    async def test_health(self, ledger_client: AsyncClient) -> None:
        """Test the health endpoint."""
        response = await ledger_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "ledger"
        assert data["components"]["store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_create(self, ledger_client: AsyncClient) -> None:
        """Test that a new session waits on both participants."""
        data = await create(ledger_client, params={"win_score": 30}, stake=5)

        assert data["phase"] == "created"
        assert data["params"]["win_score"] == 30
        assert data["params"]["stake"] == 5
        assert data["awaiting"] == [0, 1]
        assert "draw_card" in data["verification_keys"]

    @pytest.mark.asyncio
    async def test_create_validation(self, ledger_client: AsyncClient) -> None:
        """Test rejected session parameters."""
        unknown_game = await ledger_client.post(BASE, json={"game": "chess", "participants": ["a", "b"]})
        unknown_param = await ledger_client.post(
            BASE, json={"game": "draw", "participants": ["a", "b"], "params": {"ante": 5}}
        )
        same_player = await ledger_client.post(BASE, json={"game": "draw", "participants": ["a", "a"]})
        unplayable = await ledger_client.post(
            BASE, json={"game": "arena", "participants": ["a", "b"], "params": {"item_count": 17}}
        )

        assert unknown_game.status_code == 422
        assert unknown_param.status_code == 400
        assert same_player.status_code == 400
        assert unplayable.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_session(self, ledger_client: AsyncClient) -> None:
        """Test 404 for a session that does not exist."""
        response = await ledger_client.get(f"{BASE}/missing")

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_join_and_awaiting(self, ledger_client: AsyncClient) -> None:
        """Test that joining moves the session along and updates who is awaited."""
        session_id = (await create(ledger_client))["session_id"]

        response = await ledger_client.post(f"{BASE}/{session_id}/join", headers=as_player("alice"))
        assert response.status_code == 200
        awaiting = (await ledger_client.get(f"{BASE}/{session_id}/awaiting")).json()
        assert awaiting["awaiting"] == ["bob"]

        response = await ledger_client.post(f"{BASE}/{session_id}/join", headers=as_player("bob"))
        assert response.json()["phase"] == "commit"

    @pytest.mark.asyncio
    async def test_join_requires_identity(self, ledger_client: AsyncClient) -> None:
        """Test that callers must identify themselves."""
        session_id = (await create(ledger_client))["session_id"]
        response = await ledger_client.post(f"{BASE}/{session_id}/join")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_sessions(self, ledger_client: AsyncClient) -> None:
        """Test paginated listing."""
        for _ in range(3):
            await create(ledger_client)

        response = await ledger_client.get(BASE, params={"page_size": 2})
        data = response.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["items"]) == 2


class TestTransitions:
    """Tests for proof-gated transitions over HTTP."""

    @pytest.mark.asyncio
    async def test_rejections_are_uniform(self, ledger_client: AsyncClient) -> None:
        """Test that every rejection answers 409 with the same message."""
        session_id, _ = await start_draw(ledger_client)
        session = (await ledger_client.get(f"{BASE}/{session_id}")).json()
        active = session["active_slot"]
        waiting = ["alice", "bob"][1 - active]

        outsider = await ledger_client.post(f"{BASE}/{session_id}/join", headers=as_player("mallory"))
        out_of_turn = await ledger_client.post(
            f"{BASE}/{session_id}/actions", json={"action": "bank"}, headers=as_player(waiting)
        )
        wrong_deck = await ledger_client.post(
            f"{BASE}/{session_id}/transitions",
            json=await draw_body(session, DrawPlayer()),
            headers=as_player(["alice", "bob"][active]),
        )

        for response in (outsider, out_of_turn, wrong_deck):
            assert response.status_code == 409
            assert response.json()["error"] == "Transition rejected"

    @pytest.mark.asyncio
    async def test_draw_bank_and_replay(self, ledger_client: AsyncClient) -> None:
        """Test an accepted draw, its replay and a bank action."""
        session_id, players = await start_draw(ledger_client)
        session = (await ledger_client.get(f"{BASE}/{session_id}")).json()
        assert session["phase"] == "in_progress"
        active = session["active_slot"]
        caller = as_player(["alice", "bob"][active])

        body = await draw_body(session, players[active])
        accepted = await ledger_client.post(f"{BASE}/{session_id}/transitions", json=body, headers=caller)
        assert accepted.status_code == 200
        assert accepted.json()["version"] == session["version"] + 1

        replayed = await ledger_client.post(f"{BASE}/{session_id}/transitions", json=body, headers=caller)
        assert replayed.status_code == 409

        banked = await ledger_client.post(f"{BASE}/{session_id}/actions", json={"action": "bank"}, headers=caller)
        assert banked.status_code == 200
        assert banked.json()["active_slot"] == 1 - active

        transcript = (await ledger_client.get(f"{BASE}/{session_id}/transcript")).json()
        assert [entry["name"] for entry in transcript[-2:]] == ["draw_card", "bank"]

    @pytest.mark.asyncio
    async def test_bad_seed_hex(self, ledger_client: AsyncClient) -> None:
        """Test that a non-hex reveal is a bad request."""
        session_id = (await create(ledger_client))["session_id"]
        response = await ledger_client.post(
            f"{BASE}/{session_id}/seed/reveal", json={"seed": "zz"}, headers=as_player("alice")
        )
        assert response.status_code == 400
