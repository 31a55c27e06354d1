class OrderStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# pending is the only non-terminal state
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],
    OrderStatus.FAILED: [],
    OrderStatus.CANCELLED: [],
}

TERMINAL_STATUSES = {s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt}
