"""
Status transition tables for contracts and payments.

The tables are plain data so the whole graph can be reviewed and tested
as one unit; services ask `is_valid_transition` / `is_valid_payment_transition`
instead of branching on statuses themselves.
"""

from typing import FrozenSet, Mapping

from .enums import ContractStatus, PaymentStatus, RoomStatus

CONTRACT_STATE_TRANSITIONS: Mapping[ContractStatus, FrozenSet[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.PENDING_SIGNATURE}),
    ContractStatus.PENDING_SIGNATURE: frozenset({ContractStatus.SIGNED, ContractStatus.DRAFT}),
    ContractStatus.SIGNED: frozenset({ContractStatus.ACTIVE}),
    ContractStatus.ACTIVE: frozenset({ContractStatus.EXPIRING}),
    ContractStatus.EXPIRING: frozenset({ContractStatus.RENEWED, ContractStatus.TERMINATED}),
    ContractStatus.RENEWED: frozenset(),
    ContractStatus.TERMINATED: frozenset(),
}

PAYMENT_STATUS_TRANSITIONS: Mapping[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {
            PaymentStatus.PARTIAL,
            PaymentStatus.PAID,
            PaymentStatus.OVERDUE,
            PaymentStatus.CANCELLED,
        }
    ),
    PaymentStatus.PARTIAL: frozenset(
        {PaymentStatus.PAID, PaymentStatus.OVERDUE, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.OVERDUE: frozenset({PaymentStatus.PAID, PaymentStatus.CANCELLED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

# Room status applied when a contract enters the given status
ROOM_STATUS_ON_CONTRACT_STATUS: Mapping[ContractStatus, RoomStatus] = {
    ContractStatus.ACTIVE: RoomStatus.OCCUPIED,
    ContractStatus.TERMINATED: RoomStatus.VACANT,
}


def is_valid_transition(current: ContractStatus, target: ContractStatus) -> bool:
    return ContractStatus(target) in CONTRACT_STATE_TRANSITIONS.get(ContractStatus(current), frozenset())


def allowed_transitions(current: ContractStatus) -> FrozenSet[ContractStatus]:
    return CONTRACT_STATE_TRANSITIONS.get(ContractStatus(current), frozenset())


def is_terminal(status: ContractStatus) -> bool:
    return not allowed_transitions(status)


def is_valid_payment_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return PaymentStatus(target) in PAYMENT_STATUS_TRANSITIONS.get(PaymentStatus(current), frozenset())
