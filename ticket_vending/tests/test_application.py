"""
Tests for the application layer: vending service, facade, command handler,
Redis mirror and the pub/sub entry point.
"""

import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisClientConnectionError

from application.api_facade import VendingMachineFacade
from application.command_handler import CommandHandler, ticket_vending_commands
from application.vending_service import VendingService, event_types_for
from core.exceptions import RedisConnectionError
from core.value_objects import VendingState
from event_system import EventConsumer, EventPublisher, EventType
from infrastructure.redis_repository import VendingStateRepository
from send_to_ws import build_notification, send_to_ws


@pytest.fixture
def fake_redis():
    """MagicMock Redis client backed by a dict."""
    store = {}

    async def _set(key, value):
        store[key] = str(value)

    async def _get(key):
        return store.get(key)

    async def _delete(key):
        store.pop(key, None)

    async def _hset(key, mapping):
        store[key] = {field: str(value) for field, value in mapping.items()}

    async def _hgetall(key):
        return dict(store.get(key, {}))

    redis = MagicMock()
    redis.set = AsyncMock(side_effect=_set)
    redis.get = AsyncMock(side_effect=_get)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.hset = AsyncMock(side_effect=_hset)
    redis.hgetall = AsyncMock(side_effect=_hgetall)
    redis.publish = AsyncMock()
    redis.store = store
    return redis


@pytest.fixture
def event_queue():
    return asyncio.Queue()


@pytest.fixture
def service(session, event_queue):
    return VendingService(session, EventPublisher(event_queue))


def drain(queue):
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


# =============================================================================
# Vending Service Tests
# =============================================================================


class TestVendingService:
    """Tests for VendingService."""

    @pytest.mark.asyncio
    async def test_select_ticket(self, service, event_queue):
        result = await service.select_ticket("Standard")

        assert result["success"] is True
        assert result["data"]["state_after"] == "awaiting_payment"
        assert result["data"]["status"]["selected_ticket"] == "Standard"
        assert [e["type"] for e in drain(event_queue)] == [EventType.TICKET_SELECTED]

    @pytest.mark.asyncio
    async def test_full_purchase_events(self, service, event_queue):
        await service.select_ticket("VIP")
        await service.insert_money("2.00")
        await service.insert_money(2)
        result = await service.dispense_ticket()
        await service.dispense_ticket()

        assert result["data"]["refund_amount"] == "1.00"
        assert result["data"]["status"]["stock"] == 99
        assert [e["type"] for e in drain(event_queue)] == [
            EventType.TICKET_SELECTED,
            EventType.PAYMENT_ACCEPTED,
            EventType.PAYMENT_COMPLETE,
            EventType.TICKET_DISPENSED,
            EventType.CHANGE_RETURNED,
            EventType.TRANSACTION_COMPLETED,
        ]
        assert service.state == VendingState.IDLE

    @pytest.mark.asyncio
    async def test_rejected_event(self, service, event_queue):
        result = await service.dispense_ticket()

        assert result["success"] is False
        assert result["data"]["reason"] == "invalid_state_transition"
        events = drain(event_queue)
        assert events[0]["type"] == EventType.ACTION_REJECTED
        assert events[0]["notice"] == result["message"]

    @pytest.mark.asyncio
    async def test_insert_unparseable_money(self, service, event_queue):
        await service.select_ticket("Standard")
        drain(event_queue)

        result = await service.insert_money("lots")

        assert result["success"] is False
        assert result["data"]["error"] == "InvalidAmountError"
        assert event_queue.empty()

    @pytest.mark.asyncio
    async def test_cancel_transaction(self, service, event_queue):
        await service.select_ticket("Student")
        await service.insert_money("1.00")
        result = await service.cancel_transaction()

        assert result["data"]["refund_amount"] == "0.25"
        types = [e["type"] for e in drain(event_queue)]
        assert types[-2:] == [EventType.TRANSACTION_CANCELED, EventType.CHANGE_RETURNED]

    @pytest.mark.asyncio
    async def test_status_and_catalog(self, service):
        status = await service.get_status()
        assert status["data"]["state"] == "idle"
        assert status["data"]["in_transaction"] is False
        assert status["data"]["stock"] == 100

        catalog = await service.get_catalog()
        assert catalog["data"]["VIP"] == "3.00"

    @pytest.mark.asyncio
    async def test_status_reports_open_transaction(self, service):
        await service.select_ticket("Standard")
        assert (await service.get_status())["data"]["in_transaction"] is True

        await service.insert_money("1.50")
        assert (await service.get_status())["data"]["in_transaction"] is True

        await service.dispense_ticket()
        assert (await service.get_status())["data"]["in_transaction"] is False

    @pytest.mark.asyncio
    async def test_concurrent_events_are_serialized(self, service):
        await service.select_ticket("Standard")
        await asyncio.gather(*(service.insert_money("0.50") for _ in range(5)))

        assert service.session.accumulated_amount == Decimal("2.50")
        assert service.state == VendingState.PAYMENT_COMPLETE
        assert service.session.check_invariants()

    @pytest.mark.asyncio
    async def test_mirror_state(self, session, event_queue, fake_redis):
        service = VendingService(
            session,
            EventPublisher(event_queue),
            VendingStateRepository(fake_redis),
        )
        await service.select_ticket("VIP")
        await service.insert_money("1")

        assert fake_redis.store["ticket_vending:state"] == "awaiting_payment"
        assert fake_redis.store["ticket_vending:selected_ticket"] == "VIP"
        assert fake_redis.store["ticket_vending:accumulated_amount"] == "1.00"
        assert fake_redis.store["ticket_vending:stock"] == "100"

    @pytest.mark.asyncio
    async def test_mirror_failure_is_not_fatal(self, session, event_queue, fake_redis):
        fake_redis.set.side_effect = RedisClientConnectionError("down")
        service = VendingService(
            session,
            EventPublisher(event_queue),
            VendingStateRepository(fake_redis),
        )

        result = await service.select_ticket("Standard")

        assert result["success"] is True
        assert service.state == VendingState.AWAITING_PAYMENT
        assert await service.mirror_state() is False

    @pytest.mark.asyncio
    async def test_mirror_without_repository(self, service):
        assert await service.mirror_state() is False


class TestEventTypesFor:
    """Tests for effect -> notification mapping."""

    def test_payment_complete_only_on_transition(self, session):
        session.select("Standard")
        assert event_types_for(session.pay("2")) == [EventType.PAYMENT_COMPLETE]
        assert event_types_for(session.pay("1")) == [EventType.PAYMENT_ACCEPTED]

    def test_acknowledge_is_transaction_completed(self, session):
        session.select("Standard")
        session.pay("1.50")
        assert event_types_for(session.dispense()) == [EventType.TICKET_DISPENSED]
        assert event_types_for(session.dispense()) == [EventType.TRANSACTION_COMPLETED]


# =============================================================================
# Event System Tests
# =============================================================================


class TestEventConsumer:
    """Tests for EventConsumer dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch_to_sync_and_async_handlers(self, event_queue):
        consumer = EventConsumer(event_queue)
        sync_handler = MagicMock()
        async_handler = AsyncMock()
        consumer.register_handler(EventType.TICKET_SELECTED, sync_handler)
        consumer.register_handler(EventType.TICKET_SELECTED, async_handler)

        await consumer.process_event({"type": EventType.TICKET_SELECTED, "notice": "x"})

        sync_handler.assert_called_once()
        async_handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self, event_queue):
        consumer = EventConsumer(event_queue)
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        consumer.register_handler(EventType.ACTION_REJECTED, failing)
        consumer.register_handler(EventType.ACTION_REJECTED, healthy)

        await consumer.process_event({"type": EventType.ACTION_REJECTED})

        healthy.assert_called_once()

    def test_unregister_handler(self, event_queue):
        consumer = EventConsumer(event_queue)
        handler = MagicMock()
        consumer.register_handler(EventType.TICKET_SELECTED, handler)
        consumer.unregister_handler(EventType.TICKET_SELECTED, handler)
        consumer.unregister_handler(EventType.TICKET_SELECTED, handler)
        assert consumer.handlers[EventType.TICKET_SELECTED] == []


# =============================================================================
# WebSocket Notification Tests
# =============================================================================


class TestSendToWs:
    """Tests for the frontend notification client."""

    def test_build_notification(self):
        frame = json.loads(build_notification(EventType.CHANGE_RETURNED, {"refund_amount": "0.50"}))
        assert frame == {"event": "changeReturned", "data": {"refund_amount": "0.50"}}

    def test_build_notification_rejects_unknown_event(self):
        with pytest.raises(ValueError):
            build_notification("billAccepted")

    @pytest.mark.asyncio
    async def test_send_writes_frame(self):
        ws = AsyncMock()
        connect = MagicMock()
        connect.return_value.__aenter__.return_value = ws

        with patch("send_to_ws.websockets.connect", connect):
            sent = await send_to_ws(EventType.TICKET_SELECTED, {"notice": "x"}, ws_url="ws://test")

        assert sent is True
        connect.assert_called_once_with("ws://test")
        assert json.loads(ws.send.await_args.args[0])["event"] == "ticketSelected"

    @pytest.mark.asyncio
    async def test_unknown_event_not_sent(self):
        connect = MagicMock()
        with patch("send_to_ws.websockets.connect", connect):
            assert await send_to_ws("billAccepted") is False
        connect.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_failure_returns_false(self):
        connect = MagicMock(side_effect=OSError("refused"))
        with patch("send_to_ws.websockets.connect", connect):
            assert await send_to_ws(EventType.ACTION_REJECTED) is False


# =============================================================================
# Facade Tests
# =============================================================================


class TestVendingMachineFacade:
    """Tests for VendingMachineFacade."""

    @pytest.mark.asyncio
    async def test_start_publishes_catalog_and_state(self, fake_redis):
        facade = VendingMachineFacade(fake_redis)
        with patch("application.api_facade.send_to_ws", new=AsyncMock(return_value=True)):
            result = await facade.start()
            try:
                assert result["success"] is True
                assert facade.is_started
                assert fake_redis.store["ticket_vending:catalog"] == {
                    "Standard": "1.50",
                    "VIP": "3.00",
                    "Student": "0.75",
                }
                assert fake_redis.store["ticket_vending:state"] == "idle"
            finally:
                await facade.shutdown()

    @pytest.mark.asyncio
    async def test_events_forwarded_to_websocket(self):
        facade = VendingMachineFacade()
        ws_mock = AsyncMock(return_value=True)
        with patch("application.api_facade.send_to_ws", new=ws_mock):
            await facade.start()
            try:
                await facade.select_ticket("Standard")
                await asyncio.wait_for(facade.event_consumer.event_queue.join(), timeout=2)
            finally:
                await facade.shutdown()

        ws_mock.assert_awaited_once()
        kwargs = ws_mock.await_args.kwargs
        assert kwargs["event"] == "ticketSelected"
        assert kwargs["data"]["state_after"] == "awaiting_payment"
        assert "type" not in kwargs["data"]

    @pytest.mark.asyncio
    async def test_stored_state_round_trip(self, fake_redis):
        facade = VendingMachineFacade(fake_redis)
        await facade.select_ticket("VIP")

        result = await facade.stored_state()

        assert result["success"] is True
        assert result["data"]["state"] == "awaiting_payment"
        assert result["data"]["selected_ticket"] == "VIP"
        assert result["data"]["stock"] == 100

    @pytest.mark.asyncio
    async def test_redis_operations_without_redis(self):
        facade = VendingMachineFacade()

        result = await facade.publish_catalog()

        assert result["success"] is False
        assert result["message"] == "Redis is not configured"

    @pytest.mark.asyncio
    async def test_publish_catalog_connection_error(self, fake_redis):
        fake_redis.delete.side_effect = RedisClientConnectionError("down")
        facade = VendingMachineFacade(fake_redis)

        result = await facade.publish_catalog()

        assert result["success"] is False
        assert result["data"]["error"] == "RedisConnectionError"


class TestRepository:
    """Tests for VendingStateRepository error mapping."""

    @pytest.mark.asyncio
    async def test_connection_error_mapped(self, fake_redis):
        fake_redis.get.side_effect = RedisClientConnectionError("down")
        repository = VendingStateRepository(fake_redis)

        with pytest.raises(RedisConnectionError):
            await repository.get_state()

    @pytest.mark.asyncio
    async def test_custom_prefix(self, fake_redis):
        repository = VendingStateRepository(fake_redis, prefix="machine_7")
        await repository.save_catalog({"Standard": "1.50"})
        assert await repository.get_catalog() == {"Standard": "1.50"}
        assert "machine_7:catalog" in fake_redis.store


# =============================================================================
# Command Handler Tests
# =============================================================================


class TestCommandHandler:
    """Tests for command routing."""

    @pytest.fixture
    def facade(self):
        return VendingMachineFacade()

    @pytest.mark.asyncio
    async def test_select_ticket_command(self, facade):
        response = await ticket_vending_commands(
            {"command": "select_ticket", "command_id": 1, "data": {"ticket_type": "Standard"}},
            facade,
        )

        assert response["command_id"] == 1
        assert response["success"] is True
        assert response["data"]["state_after"] == "awaiting_payment"

    @pytest.mark.asyncio
    async def test_purchase_through_commands(self, facade):
        handler = CommandHandler(facade)
        await handler.execute({"command": "select_ticket", "data": {"ticket_type": "VIP"}})
        await handler.execute({"command": "insert_money", "data": {"amount": "3.50"}})
        response = await handler.execute({"command": "dispense_ticket"})

        assert response["success"] is True
        assert response["data"]["refund_amount"] == "0.50"

        status = await handler.execute({"command": "status"})
        assert status["data"]["state"] == "dispensed"
        assert status["data"]["stock"] == 99

    @pytest.mark.asyncio
    async def test_unknown_command(self, facade):
        response = await ticket_vending_commands({"command": "print_receipt", "command_id": 2}, facade)
        assert response["success"] is False
        assert "Unknown command" in response["message"]

    @pytest.mark.asyncio
    async def test_missing_arguments(self, facade):
        response = await ticket_vending_commands({"command": "insert_money", "data": {}}, facade)
        assert response["success"] is False
        assert "amount" in response["message"]

    @pytest.mark.asyncio
    async def test_invalid_amount(self, facade):
        handler = CommandHandler(facade)
        await handler.execute({"command": "select_ticket", "data": {"ticket_type": "VIP"}})
        response = await handler.execute({"command": "insert_money", "data": {"amount": "abc"}})
        assert response["success"] is False
        assert response["data"]["error"] == "InvalidAmountError"

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failed_response(self, facade):
        handler = CommandHandler(facade)
        handler.register("explode", AsyncMock(side_effect=RuntimeError("boom")), [])
        response = await handler.execute({"command": "explode"})
        assert response["success"] is False
        assert "boom" in response["message"]

    def test_available_commands(self, facade):
        names = {cmd["name"] for cmd in CommandHandler(facade).get_available_commands()}
        assert names == {
            "select_ticket",
            "insert_money",
            "cancel_transaction",
            "dispense_ticket",
            "status",
            "catalog",
            "publish_catalog",
            "stored_state",
        }


# =============================================================================
# Entry Point Tests
# =============================================================================


class TestEntryPoints:
    """Tests for main.py and demo.py."""

    @pytest.mark.asyncio
    async def test_handle_message_publishes_response(self, fake_redis):
        from main import RESPONSE_CHANNEL, handle_message

        facade = VendingMachineFacade()
        raw = json.dumps({"command": "catalog", "command_id": 5})

        await handle_message(fake_redis, facade, raw)

        channel, payload = fake_redis.publish.await_args.args
        assert channel == RESPONSE_CHANNEL
        response = json.loads(payload)
        assert response["command_id"] == 5
        assert response["data"]["Standard"] == "1.50"

    @pytest.mark.asyncio
    async def test_handle_message_ignores_bad_json(self, fake_redis):
        from main import handle_message

        await handle_message(fake_redis, VendingMachineFacade(), "{not json")
        fake_redis.publish.assert_not_awaited()

    def test_demo_drains_stock(self):
        from demo import run_demo

        session = run_demo(stock=3)

        assert session.stock == 0
        assert session.state == VendingState.IDLE
