"""Tests for the in-memory and console adapters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest
from factories import make_order

from scheduled_orders.adapters import (
    ConsoleMessenger,
    InMemoryMessenger,
    InMemoryScheduledOrderRepository,
)
from scheduled_orders.domain import ScheduledOrderStatus
from scheduled_orders.exceptions import (
    AttachmentDeliveryError,
    MessageEditError,
    OrderNotFoundError,
    OrderStateError,
)
from scheduled_orders.ports import IMessenger, IScheduledOrderRepository, MessageOptions

if TYPE_CHECKING:
    from pathlib import Path


# ============================================================================
# Tests: InMemoryScheduledOrderRepository
# ============================================================================


class TestInMemoryRepository:
    def test_satisfies_port(self) -> None:
        assert isinstance(InMemoryScheduledOrderRepository(), IScheduledOrderRepository)

    @pytest.mark.asyncio
    async def test_add_assigns_incrementing_ids(self) -> None:
        repo = InMemoryScheduledOrderRepository()

        first = await repo.add(make_order())
        second = await repo.add(make_order())

        assert (first.id, second.id) == (1, 2)
        assert repo.count == 2

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        order = await repo.add(make_order())
        assert order.id is not None

        order.failure_reason = "tampered"

        stored = await repo.get(order.id)
        assert stored is not None
        assert stored.failure_reason is None

    @pytest.mark.asyncio
    async def test_due_query_is_oldest_first_and_pending_only(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        newer = await repo.add(make_order(due_in=timedelta(minutes=-1)))
        older = await repo.add(make_order(due_in=timedelta(minutes=-5)))
        running = await repo.add(make_order(due_in=timedelta(minutes=-9)))
        await repo.add(make_order(due_in=timedelta(hours=1)))
        assert running.id is not None
        await repo.update_status(running.id, ScheduledOrderStatus.PROCESSING)

        due = await repo.get_due_scheduled_orders()

        assert [o.id for o in due] == [older.id, newer.id]

    @pytest.mark.asyncio
    async def test_due_query_accepts_reference_time(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        order = await repo.add(make_order(due_in=timedelta(hours=2)))

        later = datetime.now(timezone.utc) + timedelta(hours=3)

        assert [o.id for o in await repo.get_due_scheduled_orders(later)] == [order.id]

    @pytest.mark.asyncio
    async def test_has_any_pending_ignores_due_time(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        assert not await repo.has_any_pending()

        await repo.add(make_order(due_in=timedelta(days=3)))

        assert await repo.has_any_pending()

    @pytest.mark.asyncio
    async def test_update_status_is_visible_to_next_read(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        order = await repo.add(make_order())
        assert order.id is not None

        await repo.update_status(order.id, ScheduledOrderStatus.PROCESSING)

        assert await repo.get_due_scheduled_orders() == []
        assert not await repo.has_any_pending()

    @pytest.mark.asyncio
    async def test_update_status_unknown_id(self) -> None:
        with pytest.raises(OrderNotFoundError):
            await InMemoryScheduledOrderRepository().update_status(
                99, ScheduledOrderStatus.PROCESSING
            )

    @pytest.mark.asyncio
    async def test_update_status_rejects_illegal_transition(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        order = await repo.add(make_order())
        assert order.id is not None

        with pytest.raises(OrderStateError):
            await repo.update_status(order.id, ScheduledOrderStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_cancel_pending_refuses_running_record(self) -> None:
        repo = InMemoryScheduledOrderRepository()
        order = await repo.add(make_order())
        assert order.id is not None
        await repo.update_status(order.id, ScheduledOrderStatus.PROCESSING)

        assert not await repo.cancel_pending(order.id, order.owner_id)
        assert not await repo.cancel_pending(12345, order.owner_id)

    def test_clear(self) -> None:
        repo = InMemoryScheduledOrderRepository([make_order(), make_order()])
        assert repo.count == 2

        repo.clear()

        assert repo.count == 0


# ============================================================================
# Tests: InMemoryMessenger
# ============================================================================


class TestInMemoryMessenger:
    def test_satisfies_port(self) -> None:
        assert isinstance(InMemoryMessenger(), IMessenger)

    @pytest.mark.asyncio
    async def test_send_edit_delete(self) -> None:
        messenger = InMemoryMessenger()

        ref = await messenger.send("chat-1", "hello")
        await messenger.edit("chat-1", ref, "hello again")
        assert messenger.live_messages("chat-1")[0].history == ["hello", "hello again"]

        await messenger.delete("chat-1", ref)
        assert messenger.live_messages("chat-1") == []

    @pytest.mark.asyncio
    async def test_edit_of_deleted_message_fails(self) -> None:
        messenger = InMemoryMessenger()
        ref = await messenger.send("chat-1", "hello")
        await messenger.delete("chat-1", ref)

        with pytest.raises(MessageEditError):
            await messenger.edit("chat-1", ref, "late")

    @pytest.mark.asyncio
    async def test_attachment_content_is_captured(self, tmp_path: Path) -> None:
        messenger = InMemoryMessenger()
        path = tmp_path / "codes.txt"
        path.write_text("PIN-1\n", encoding="utf-8")

        await messenger.send_attachment("chat-1", path, filename="codes.txt", caption="c")

        assert messenger.attachments[0].content == "PIN-1\n"
        assert messenger.attachment_names("chat-1") == ["codes.txt"]

    @pytest.mark.asyncio
    async def test_failure_injection(self, tmp_path: Path) -> None:
        messenger = InMemoryMessenger()
        messenger.fail_attachments = True

        with pytest.raises(AttachmentDeliveryError):
            await messenger.send_attachment(
                "chat-1", tmp_path / "x.txt", filename="x.txt", caption=""
            )

    @pytest.mark.asyncio
    async def test_assert_sent_containing(self) -> None:
        messenger = InMemoryMessenger()
        await messenger.send("chat-1", "order started")

        messenger.assert_sent_containing("chat-1", "started")
        with pytest.raises(AssertionError):
            messenger.assert_sent_containing("chat-1", "finished")


# ============================================================================
# Tests: ConsoleMessenger
# ============================================================================


class TestConsoleMessenger:
    @pytest.mark.asyncio
    async def test_prints_messages(self, capsys: pytest.CaptureFixture[str]) -> None:
        messenger = ConsoleMessenger()

        ref = await messenger.send(
            "chat-1", "hello", MessageOptions(cancel_action="scheduled_cancel_chat-1")
        )
        await messenger.edit("chat-1", ref, "updated")

        out = capsys.readouterr().out
        assert f"MESSAGE #{ref}" in out
        assert "scheduled_cancel_chat-1" in out
        assert "updated" in out

    @pytest.mark.asyncio
    async def test_quiet_mode_logs_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        messenger = ConsoleMessenger(output_to_stdout=False)

        await messenger.send("chat-1", "hello")

        assert capsys.readouterr().out == ""
