import asyncio
from types import SimpleNamespace

import asyncpg
import pytest

from phototrade.domain.errors import Conflict, NotFound, StorageError, Unauthorized, ValidationError
from phototrade.domain.trades.models import TRADE_EVENTS_STREAM
from phototrade.domain.trades.service import RESOLVE_TRADE_SQL, TradeService
from phototrade.infra.auth import AuthenticatedUser


def _actor(db, user_id):
    return AuthenticatedUser(id=str(user_id), username=db.users[user_id]["username"])


@pytest.fixture
def world(db):
    alice = db.add_user("alice")
    bob = db.add_user("bob")
    db.befriend(alice, bob)
    return SimpleNamespace(
        alice=alice,
        bob=bob,
        p1=db.add_photo(alice, "sunset.jpg", description="sunset"),
        p2=db.add_photo(bob, "mountain.jpg", description="mountain"),
    )


async def _propose(ctx, db, world):
    return await TradeService(ctx).propose(_actor(db, world.alice), world.bob, world.p1, world.p2)


@pytest.mark.asyncio
async def test_propose_inserts_pending_trade_and_notifies_recipient(ctx, db, world, notifier, emitted_events):
    notifier.join(str(world.bob), "sid-bob")

    trade = await _propose(ctx, db, world)

    assert trade.status == "pending"
    assert db.trades[trade.id]["from_photo_id"] == world.p1
    assert emitted_events("new_trade") == [
        (
            {"tradeId": str(trade.id), "fromUserId": str(world.alice), "toUserId": str(world.bob)},
            "sid-bob",
        )
    ]


@pytest.mark.asyncio
async def test_propose_broadcasts_when_recipient_offline(ctx, db, world, emitted_events):
    trade = await _propose(ctx, db, world)

    events = emitted_events("new_trade")
    assert len(events) == 1
    payload, to = events[0]
    assert to is None
    assert payload["tradeId"] == str(trade.id)


@pytest.mark.asyncio
async def test_propose_to_self_rejected(ctx, db, world):
    with pytest.raises(ValidationError) as exc:
        await TradeService(ctx).propose(_actor(db, world.alice), world.alice, world.p1, world.p1)
    assert exc.value.reason == "self_trade"


@pytest.mark.asyncio
async def test_propose_unknown_recipient(ctx, db, world):
    stranger = "00000000-0000-0000-0000-000000000001"
    with pytest.raises(NotFound) as exc:
        await TradeService(ctx).propose(_actor(db, world.alice), stranger, world.p1, world.p2)
    assert exc.value.reason == "user_not_found"


@pytest.mark.asyncio
async def test_propose_missing_photo(ctx, db, world):
    del db.photos[world.p2]
    with pytest.raises(NotFound) as exc:
        await _propose(ctx, db, world)
    assert exc.value.reason == "photo_not_found"
    assert db.trades == {}


@pytest.mark.asyncio
async def test_propose_rejects_photos_owned_by_someone_else(ctx, db, world):
    with pytest.raises(ValidationError) as exc:
        await TradeService(ctx).propose(_actor(db, world.alice), world.bob, world.p2, world.p1)
    assert exc.value.reason == "photo_owner_mismatch"
    assert db.trades == {}


@pytest.mark.asyncio
async def test_propose_requires_accepted_friendship(ctx, db, world):
    db.friends[(world.bob, world.alice)]["status"] = "pending"
    with pytest.raises(Unauthorized) as exc:
        await _propose(ctx, db, world)
    assert exc.value.reason == "not_friends"


@pytest.mark.asyncio
async def test_accept_creates_exactly_two_copies(ctx, db, world, notifier, emitted_events):
    notifier.join(str(world.alice), "sid-alice")
    notifier.join(str(world.bob), "sid-bob")
    trade = await _propose(ctx, db, world)
    originals = {pid: dict(db.photos[pid]) for pid in (world.p1, world.p2)}

    result = await TradeService(ctx).accept(trade.id, _actor(db, world.bob))

    assert result.trade.status == "accepted"
    assert db.trades[trade.id]["resolved_at"] is not None
    assert len(db.photos) == 4
    proposer_copy = db.photos[result.proposer_copy_id]
    recipient_copy = db.photos[result.recipient_copy_id]
    assert proposer_copy["user_id"] == world.alice
    assert proposer_copy["filename"] == "mountain.jpg"
    assert proposer_copy["watermarked_filename"] == "watermarked-mountain.jpg"
    assert recipient_copy["user_id"] == world.bob
    assert recipient_copy["description"] == "sunset"
    # originals stay put
    for pid, before in originals.items():
        assert db.photos[pid] == before
    assert {to for _, to in emitted_events("trade_accepted")} == {"sid-alice", "sid-bob"}


@pytest.mark.asyncio
async def test_only_recipient_can_accept(ctx, db, world):
    trade = await _propose(ctx, db, world)

    with pytest.raises(Unauthorized) as exc:
        await TradeService(ctx).accept(trade.id, _actor(db, world.alice))

    assert exc.value.reason == "not_recipient"
    assert db.trades[trade.id]["status"] == "pending"
    assert len(db.photos) == 2


@pytest.mark.asyncio
async def test_second_accept_conflicts_without_new_copies(ctx, db, world):
    trade = await _propose(ctx, db, world)
    service = TradeService(ctx)
    await service.accept(trade.id, _actor(db, world.bob))

    with pytest.raises(Conflict) as exc:
        await service.accept(trade.id, _actor(db, world.bob))

    assert exc.value.reason == "trade_not_pending"
    assert len(db.photos) == 4


@pytest.mark.asyncio
async def test_accept_unknown_trade(ctx, db, world):
    with pytest.raises(NotFound) as exc:
        await TradeService(ctx).accept("00000000-0000-0000-0000-0000000000aa", _actor(db, world.bob))
    assert exc.value.reason == "trade_not_found"


@pytest.mark.asyncio
async def test_decline_is_terminal(ctx, db, world, notifier, emitted_events):
    notifier.join(str(world.alice), "sid-alice")
    trade = await _propose(ctx, db, world)
    service = TradeService(ctx)

    declined = await service.decline(trade.id, _actor(db, world.bob))
    with pytest.raises(Conflict):
        await service.accept(trade.id, _actor(db, world.bob))

    assert declined.status == "declined"
    assert len(db.photos) == 2
    assert [to for _, to in emitted_events("trade_declined")] == ["sid-alice"]


@pytest.mark.asyncio
async def test_copy_failure_rolls_back_status_flip(ctx, db, world, emitted_events):
    trade = await _propose(ctx, db, world)
    db.fail_on("insert into photos", asyncpg.PostgresError("disk full"), skip=1)

    with pytest.raises(StorageError):
        await TradeService(ctx).accept(trade.id, _actor(db, world.bob))

    assert db.trades[trade.id]["status"] == "pending"
    assert db.trades[trade.id]["resolved_at"] is None
    assert len(db.photos) == 2
    assert emitted_events("trade_accepted") == []


@pytest.mark.asyncio
async def test_missing_photo_at_settlement_rolls_back(ctx, db, world):
    trade = await _propose(ctx, db, world)
    del db.photos[world.p1]

    with pytest.raises(StorageError) as exc:
        await TradeService(ctx).accept(trade.id, _actor(db, world.bob))

    assert exc.value.reason == "photo_missing"
    assert db.trades[trade.id]["status"] == "pending"


@pytest.mark.asyncio
async def test_concurrent_accept_and_decline_have_one_winner(ctx, db, world):
    trade = await _propose(ctx, db, world)
    service = TradeService(ctx)
    bob = _actor(db, world.bob)

    outcomes = await asyncio.gather(
        service.accept(trade.id, bob),
        service.decline(trade.id, bob),
        return_exceptions=True,
    )

    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], Conflict)
    status = db.trades[trade.id]["status"]
    assert len(db.photos) == (4 if status == "accepted" else 2)


@pytest.mark.asyncio
async def test_concurrent_double_accept_copies_once(ctx, db, world):
    trade = await _propose(ctx, db, world)
    service = TradeService(ctx)
    bob = _actor(db, world.bob)

    outcomes = await asyncio.gather(
        service.accept(trade.id, bob),
        service.accept(trade.id, bob),
        return_exceptions=True,
    )

    assert sum(1 for o in outcomes if isinstance(o, Exception)) == 1
    assert len(db.photos) == 4


@pytest.mark.asyncio
async def test_resolution_blocked_by_open_writer_then_conflicts(ctx, db, world):
    trade = await _propose(ctx, db, world)
    bob = _actor(db, world.bob)

    async with ctx.pool.acquire() as conn:
        async with conn.transaction():
            flipped = await conn.fetchrow(RESOLVE_TRADE_SQL, trade.id, world.bob, "accepted")
            pending_decline = asyncio.create_task(TradeService(ctx).decline(trade.id, bob))
            for _ in range(5):
                await asyncio.sleep(0)
            # the second writer is parked on the row lock
            assert not pending_decline.done()

    with pytest.raises(Conflict):
        await pending_decline
    assert flipped["status"] == "accepted"
    assert db.trades[trade.id]["status"] == "accepted"


@pytest.mark.asyncio
async def test_resolve_statement_carries_pending_guard(ctx, db, world):
    trade = await _propose(ctx, db, world)
    db.trades[trade.id]["status"] = "declined"

    async with ctx.pool.acquire() as conn:
        row = await conn.fetchrow(RESOLVE_TRADE_SQL, trade.id, world.bob, "accepted")

    assert row is None
    assert db.trades[trade.id]["status"] == "declined"


@pytest.mark.asyncio
async def test_list_and_get_are_enriched(ctx, db, world):
    service = TradeService(ctx)
    first = await _propose(ctx, db, world)
    second = await _propose(ctx, db, world)

    rows = await service.list_for_user(_actor(db, world.bob))
    single = await service.get(first.id, _actor(db, world.alice))

    assert [row.id for row in rows] == [second.id, first.id]
    assert rows[0].from_username == "alice"
    assert rows[0].to_username == "bob"
    assert rows[0].from_photo_filename == "watermarked-sunset.jpg"
    assert rows[0].to_photo_name == "mountain.jpg"
    assert single.id == first.id


@pytest.mark.asyncio
async def test_get_hidden_from_non_parties(ctx, db, world):
    trade = await _propose(ctx, db, world)
    carol = db.add_user("carol")
    with pytest.raises(NotFound):
        await TradeService(ctx).get(trade.id, _actor(db, carol))


@pytest.mark.asyncio
async def test_resolution_is_audited(ctx, db, world, fake_redis):
    trade = await _propose(ctx, db, world)
    await TradeService(ctx).decline(trade.id, _actor(db, world.bob))

    events = [fields["event"] for _, fields in await fake_redis.xrange(TRADE_EVENTS_STREAM)]
    assert events == ["proposed", "declined"]
