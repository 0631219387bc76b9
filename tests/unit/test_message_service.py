from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.config import settings
from marketplace_chat.services import message_service
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, FakeClock, FakeUoW, make_message

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _seed(uow: FakeUoW, count: int, **kwargs) -> list:
    return [
        uow.messages.add(make_message(created_at=T0 + timedelta(seconds=i), body=f"m{i}", **kwargs))
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_create_message_persists_trimmed_body():
    uow = FakeUoW()
    clock = FakeClock(T0)

    msg = await message_service.create_message(
        ALICE_ID, BOB_ID, "  hi there \n", None, uow, clock=clock,
    )

    assert msg.body == "hi there"
    assert msg.read is False
    assert msg.seen_at is None
    assert msg.created_at == msg.updated_at == T0
    assert await uow.messages.get_by_id(msg.id) == msg
    assert uow._committed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   ", None])
async def test_create_message_rejects_empty_body(body):
    uow = FakeUoW()

    with pytest.raises(ValidationError):
        await message_service.create_message(ALICE_ID, BOB_ID, body, None, uow)

    assert uow.messages._messages == {}
    assert uow._committed is False


@pytest.mark.asyncio
async def test_create_message_rejects_overlong_body():
    uow = FakeUoW()

    with pytest.raises(ValidationError):
        await message_service.create_message(
            ALICE_ID, BOB_ID, "x" * (settings.MESSAGE_MAX_LENGTH + 1), None, uow,
        )


@pytest.mark.asyncio
async def test_self_message_is_allowed():
    uow = FakeUoW()

    msg = await message_service.create_message(ALICE_ID, ALICE_ID, "note to self", None, uow)

    assert msg.sender_id == msg.receiver_id == ALICE_ID


@pytest.mark.asyncio
async def test_find_conversation_returns_oldest_first_in_both_directions():
    uow = FakeUoW()
    m1 = uow.messages.add(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID, created_at=T0))
    m2 = uow.messages.add(
        make_message(sender_id=BOB_ID, receiver_id=ALICE_ID, created_at=T0 + timedelta(seconds=1)),
    )
    uow.messages.add(make_message(sender_id=ALICE_ID, receiver_id=CAROL_ID, created_at=T0))

    result = await message_service.find_conversation(BOB_ID, ALICE_ID, None, 50, 0, uow)

    assert [m.id for m in result] == [m1.id, m2.id]


@pytest.mark.asyncio
async def test_find_conversation_pages_from_newest():
    uow = FakeUoW()
    msgs = _seed(uow, 5)

    page = await message_service.find_conversation(ALICE_ID, BOB_ID, None, 2, 0, uow)
    older = await message_service.find_conversation(ALICE_ID, BOB_ID, None, 2, 2, uow)

    assert [m.body for m in page] == ["m3", "m4"]
    assert [m.body for m in older] == ["m1", "m2"]
    assert msgs[0].body == "m0"


@pytest.mark.asyncio
async def test_find_conversation_scoped_to_project():
    uow = FakeUoW()
    project_id = uuid.uuid4()
    scoped = uow.messages.add(make_message(project_id=project_id))
    uow.messages.add(make_message())

    result = await message_service.find_conversation(ALICE_ID, BOB_ID, project_id, 50, 0, uow)

    assert [m.id for m in result] == [scoped.id]


@pytest.mark.asyncio
async def test_mark_all_seen_only_touches_unread_from_other_party():
    uow = FakeUoW()
    clock = FakeClock(T0)
    incoming = _seed(uow, 2, sender_id=ALICE_ID, receiver_id=BOB_ID)
    outgoing = uow.messages.add(make_message(sender_id=BOB_ID, receiver_id=ALICE_ID))
    already = uow.messages.add(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID, read=True))

    receipt = await message_service.mark_all_seen(BOB_ID, ALICE_ID, None, uow, clock=clock)

    assert set(receipt.message_ids) == {m.id for m in incoming}
    assert receipt.viewer_id == BOB_ID
    assert receipt.seen_at == T0
    for m in incoming:
        stored = await uow.messages.get_by_id(m.id)
        assert stored.read is True
        assert stored.seen_at == T0
    assert (await uow.messages.get_by_id(outgoing.id)).read is False
    assert (await uow.messages.get_by_id(already.id)).seen_at is None
    assert uow._committed is True


@pytest.mark.asyncio
async def test_mark_all_seen_twice_yields_empty_receipt():
    uow = FakeUoW()
    _seed(uow, 2)

    first = await message_service.mark_all_seen(BOB_ID, ALICE_ID, None, uow)
    commits = uow.commits
    second = await message_service.mark_all_seen(BOB_ID, ALICE_ID, None, uow)

    assert first
    assert not second
    assert second.message_ids == []
    assert uow.commits == commits


@pytest.mark.asyncio
async def test_mark_all_seen_limited_to_given_ids():
    uow = FakeUoW()
    m1, m2 = _seed(uow, 2)

    receipt = await message_service.mark_all_seen(
        BOB_ID, ALICE_ID, None, uow, message_ids=[m1.id],
    )

    assert receipt.message_ids == [m1.id]
    assert (await uow.messages.get_by_id(m2.id)).read is False


@pytest.mark.asyncio
async def test_mark_all_seen_with_empty_id_list_changes_nothing():
    uow = FakeUoW()
    _seed(uow, 1)

    receipt = await message_service.mark_all_seen(BOB_ID, ALICE_ID, None, uow, message_ids=[])

    assert not receipt
    assert await uow.messages.unread_count(BOB_ID) == 1


@pytest.mark.asyncio
async def test_update_body_changes_text_and_timestamp():
    uow = FakeUoW()
    msg = uow.messages.add(make_message(created_at=T0))
    clock = FakeClock(T0 + timedelta(minutes=5))

    updated = await message_service.update_body(msg.id, " edited ", uow, clock=clock)

    assert updated.body == "edited"
    assert updated.updated_at == T0 + timedelta(minutes=5)
    assert updated.created_at == T0


@pytest.mark.asyncio
async def test_update_body_of_missing_message_returns_none():
    uow = FakeUoW()

    assert await message_service.update_body(uuid.uuid4(), "x", uow) is None
    assert uow._committed is False


@pytest.mark.asyncio
async def test_delete_message_is_idempotent():
    uow = FakeUoW()
    msg = uow.messages.add(make_message())

    assert await message_service.delete_message(msg.id, uow) is True
    assert await message_service.delete_message(msg.id, uow) is False
    assert await uow.messages.get_by_id(msg.id) is None


@pytest.mark.asyncio
async def test_unread_count():
    uow = FakeUoW()
    _seed(uow, 3)
    uow.messages.add(make_message(read=True))

    assert await message_service.unread_count(BOB_ID, uow) == 3
    assert await message_service.unread_count(ALICE_ID, uow) == 0


@pytest.mark.asyncio
async def test_recent_conversations_one_row_per_counterpart():
    uow = FakeUoW()
    uow.messages.add(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID, created_at=T0))
    latest_bob = uow.messages.add(
        make_message(sender_id=BOB_ID, receiver_id=ALICE_ID, created_at=T0 + timedelta(seconds=2)),
    )
    carol = uow.messages.add(
        make_message(
            sender_id=ALICE_ID, receiver_id=CAROL_ID, created_at=T0 + timedelta(seconds=1),
        ),
    )

    summaries = await message_service.recent_conversations(ALICE_ID, uow)

    assert [s.other_party_id for s in summaries] == [BOB_ID, CAROL_ID]
    assert summaries[0].last_message.id == latest_bob.id
    assert summaries[0].unread is True
    assert summaries[1].last_message.id == carol.id
    assert summaries[1].unread is False


@pytest.mark.asyncio
async def test_find_conversation_is_stable_without_writes():
    uow = FakeUoW()
    _seed(uow, 3)
    # same timestamp forces the id tie-break
    _seed(uow, 3, sender_id=BOB_ID, receiver_id=ALICE_ID)

    first = await message_service.find_conversation(ALICE_ID, BOB_ID, None, 50, 0, uow)
    second = await message_service.find_conversation(ALICE_ID, BOB_ID, None, 50, 0, uow)

    assert [m.id for m in first] == [m.id for m in second]
    assert len(first) == 6
