# scheduling/services/booking/status_machine.py
"""
Booking status machine.

    pending -> confirmed -> in_progress -> completed
    pending -> declined
    pending -> cancelled            (owning customer)
    confirmed -> cancelled          (system, after an external cancellation policy)

completed, cancelled and declined are terminal.
"""
from typing import Dict, List, Tuple

from scheduling.core.exceptions import InvalidStatusTransition
from scheduling.core.principal import Principal, Role
from scheduling.models.booking import Booking, BookingStatus

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.DECLINED,
})

# (from, to) -> role allowed to make the move
TRANSITIONS: Dict[Tuple[BookingStatus, BookingStatus], Role] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): Role.PROVIDER,
    (BookingStatus.PENDING, BookingStatus.DECLINED): Role.PROVIDER,
    (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS): Role.PROVIDER,
    (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED): Role.PROVIDER,
    (BookingStatus.PENDING, BookingStatus.CANCELLED): Role.CUSTOMER,
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): Role.SYSTEM,
}


def allowed_targets(current: BookingStatus) -> List[BookingStatus]:
    """Statuses reachable in one step from current, for any role"""
    current = BookingStatus(current)
    return [to for (frm, to) in TRANSITIONS if frm == current]


def check_transition(booking: Booking, principal: Principal, target: BookingStatus) -> None:
    """Raise InvalidStatusTransition unless principal may move booking to target"""
    current = BookingStatus(booking.status)
    target = BookingStatus(target)

    if current in TERMINAL_STATUSES:
        raise InvalidStatusTransition(f"Booking is already {current.value}")

    required_role = TRANSITIONS.get((current, target))
    if required_role is None:
        raise InvalidStatusTransition(
            f"Cannot move a booking from {current.value} to {target.value}"
        )

    if principal.role != required_role:
        raise InvalidStatusTransition(
            f"Only the {required_role.value} can move a booking from {current.value} to {target.value}"
        )

    if required_role == Role.PROVIDER and principal.id != booking.provider_id:
        raise InvalidStatusTransition("Only the assigned provider can update this booking")
    if required_role == Role.CUSTOMER and principal.id != booking.customer_id:
        raise InvalidStatusTransition("Only the customer who made this booking can cancel it")
