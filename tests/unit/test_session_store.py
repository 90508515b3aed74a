import asyncio

import pytest

from bankbot.dialogue.models import ConversationContext, Phase


@pytest.mark.asyncio
async def test_store_round_trip_returns_copies(store):
    context = ConversationContext(id="conv-1", user_id="user-1")
    await store.put(context)

    loaded = await store.get("conv-1")
    loaded.phase = Phase.SLOT_FILLING
    loaded.collected_fields["amount"] = 10

    again = await store.get("conv-1")
    assert again.phase is Phase.GREETING
    assert again.collected_fields == {}
    assert list(store.iter_conversations()) == ["conv-1"]


@pytest.mark.asyncio
async def test_delete_forgets_conversation(store):
    await store.put(ConversationContext(id="conv-1", user_id="user-1"))

    await store.delete("conv-1")
    await store.delete("conv-unknown")

    assert await store.get("conv-1") is None


@pytest.mark.asyncio
async def test_lock_serialises_read_modify_write(store):
    await store.put(ConversationContext(id="conv-1", user_id="user-1"))

    async def bump():
        async with store.lock("conv-1"):
            context = await store.get("conv-1")
            count = context.task_progress.step
            await asyncio.sleep(0.01)
            context.task_progress.step = count + 1
            await store.put(context)

    await asyncio.gather(*(bump() for _ in range(5)))

    assert (await store.get("conv-1")).task_progress.step == 5


@pytest.mark.asyncio
async def test_concurrent_turns_for_one_conversation_do_not_interleave(orchestrator):
    await asyncio.gather(
        *(orchestrator.process_message("conv-race", "user-1", text) for text in ["hi", "hello", "hey"])
    )

    context = await orchestrator.get_context("conv-race")
    assert len(context.messages) == 6
    assert [message.role.value for message in context.messages] == ["user", "assistant"] * 3


@pytest.mark.asyncio
async def test_locks_are_released_once_no_turn_needs_them(store):
    async def bump():
        async with store.lock("conv-1"):
            await asyncio.sleep(0.01)

    await asyncio.gather(*(bump() for _ in range(3)))

    assert store._locks == {}
    assert store._lock_users == {}


@pytest.mark.asyncio
async def test_cleared_conversation_leaves_no_lock_behind(orchestrator, store):
    await orchestrator.process_message("conv-clear", "user-1", "hi")

    await orchestrator.clear_conversation("conv-clear")

    assert "conv-clear" not in store._locks
    assert list(store.iter_conversations()) == []
