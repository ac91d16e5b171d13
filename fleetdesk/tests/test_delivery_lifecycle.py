"""
Delivery status lifecycle.
"""

from datetime import date

import pytest

from fleetdesk.app.core.exceptions import InvalidStatusTransitionError, ResourceNotFoundError
from fleetdesk.app.domain.booking.delivery_lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    ensure_transition,
)
from fleetdesk.app.models.delivery_enums import DeliveryStatus


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
def test_no_transition_out_of_terminal_states(terminal):
    for target in DeliveryStatus:
        assert not can_transition(terminal, target)


def test_no_backward_moves():
    assert not can_transition("in-progress", "pending")
    assert not can_transition("delivered", "accepted")
    with pytest.raises(InvalidStatusTransitionError):
        ensure_transition(DeliveryStatus.AWAITING_CONFIRMATION, DeliveryStatus.DELIVERED)


def test_every_live_status_can_be_cancelled():
    for current, targets in ALLOWED_TRANSITIONS.items():
        if targets:
            assert DeliveryStatus.CANCELLED in targets


def test_terminal_statuses_are_completed_and_cancelled():
    assert TERMINAL_STATUSES == {DeliveryStatus.COMPLETED, DeliveryStatus.CANCELLED}
    assert {s for s, targets in ALLOWED_TRANSITIONS.items() if not targets} == TERMINAL_STATUSES


@pytest.fixture
async def delivery(booking_service, ledger, make_truck, make_client):
    truck = await make_truck()
    acme = await make_client()
    await ledger.allocate_trucks(acme.id, [truck.id])
    return await booking_service.book_delivery(
        client_id=acme.id, truck_id=truck.id, driver_id=7, delivery_date=date(2024, 6, 1)
    )


@pytest.mark.asyncio
async def test_full_path_to_completion(booking_service, repo, delivery):
    for status in ("accepted", "in-progress", "delivered", "awaiting-confirmation"):
        await booking_service.transition_delivery(delivery.id, status)

    updated, previous = await booking_service.transition_delivery(delivery.id, DeliveryStatus.COMPLETED)

    assert previous == DeliveryStatus.AWAITING_CONFIRMATION
    assert updated.status == DeliveryStatus.COMPLETED
    assert updated.completed_at is not None
    assert repo.trucks[delivery.truck_id].total_deliveries == 1


@pytest.mark.asyncio
async def test_cancel_records_reason(booking_service, delivery):
    updated, _ = await booking_service.transition_delivery(delivery.id, "cancelled", "weather")

    assert updated.status == DeliveryStatus.CANCELLED
    assert updated.cancellation_reason == "weather"
    assert updated.cancelled_at is not None

    with pytest.raises(InvalidStatusTransitionError):
        await booking_service.transition_delivery(delivery.id, "in-progress")


@pytest.mark.asyncio
async def test_illegal_move_leaves_delivery_unchanged(booking_service, delivery):
    with pytest.raises(InvalidStatusTransitionError):
        await booking_service.transition_delivery(delivery.id, DeliveryStatus.DELIVERED)

    assert (await booking_service.get_delivery(delivery.id)).status == DeliveryStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_delivery(booking_service):
    with pytest.raises(ResourceNotFoundError):
        await booking_service.transition_delivery(999, DeliveryStatus.ACCEPTED)
