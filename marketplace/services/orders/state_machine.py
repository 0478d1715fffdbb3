from typing import Dict, FrozenSet

from marketplace.core.exceptions import BadRequestError
from marketplace.db.models.order import OrderStatus

VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}

# entering these requires a status explanation
EXPLAINED_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})

# display order for error messages
_STATUS_ORDER = list(OrderStatus)


def allowed_next_statuses(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return VALID_TRANSITIONS.get(OrderStatus(status), frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_next_statuses(status)


def validate_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise BadRequestError unless ``current -> target`` is a legal move."""
    current = OrderStatus(current)
    target = OrderStatus(target)
    allowed = allowed_next_statuses(current)

    if not allowed:
        raise BadRequestError(f"Order status {current.value} is final and cannot be changed")

    if target not in allowed:
        valid = ", ".join(s.value for s in _STATUS_ORDER if s in allowed)
        raise BadRequestError(
            f"Cannot change status from {current.value} to {target.value}. "
            f"Valid transitions: {valid}"
        )
