"""
Status state machines for payments, referrals and applications
"""

from enum import Enum
from typing import Dict, Iterable, List, Set, Type

from intrarefer.core.exceptions import InvalidStatusTransitionException
from intrarefer.models.payment import PaymentStatus
from intrarefer.models.referral import ReferralStatus
from intrarefer.models.application import ApplicationStatus

class StateMachine:
    """
    Manages valid status transitions for one status enum
    """

    def __init__(self, status_enum: Type[Enum], transitions: Dict[Enum, Iterable[Enum]]):
        self.status_enum = status_enum
        self.transitions: Dict[Enum, Set[Enum]] = {
            state: set(targets) for state, targets in transitions.items()
        }

    def _coerce(self, value) -> Enum:
        return value if isinstance(value, self.status_enum) else self.status_enum(value)

    def can_transition(self, current_status, new_status) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        current_status = self._coerce(current_status)
        new_status = self._coerce(new_status)
        return new_status in self.transitions.get(current_status, set())

    def get_valid_transitions(self, current_status) -> List[Enum]:
        """Statuses reachable in one step"""
        return sorted(
            self.transitions.get(self._coerce(current_status), set()),
            key=lambda state: state.value
        )

    def is_terminal_state(self, status) -> bool:
        return len(self.transitions.get(self._coerce(status), set())) == 0

    def sources_of(self, new_status) -> Set[Enum]:
        """Statuses from which `new_status` is reachable"""
        new_status = self._coerce(new_status)
        return {state for state, targets in self.transitions.items() if new_status in targets}

    def transition(self, current_status, new_status) -> Enum:
        """
        Validate a transition

        Raises:
            InvalidStatusTransitionException: if the move is not allowed
        """
        current_status = self._coerce(current_status)
        new_status = self._coerce(new_status)
        if not self.can_transition(current_status, new_status):
            raise InvalidStatusTransitionException(current_status.value, new_status.value)
        return new_status

payment_state_machine = StateMachine(PaymentStatus, {
    PaymentStatus.CREATED: {
        PaymentStatus.ATTEMPTED,
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED
    },
    PaymentStatus.ATTEMPTED: {
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED
    },
    # A later capture on the same gateway order supersedes an earlier failure
    PaymentStatus.FAILED: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.CANCELLED: set(),
    PaymentStatus.REFUNDED: set()
})

referral_state_machine = StateMachine(ReferralStatus, {
    ReferralStatus.DRAFT: {ReferralStatus.ACTIVE, ReferralStatus.CLOSED},
    ReferralStatus.ACTIVE: {ReferralStatus.CLOSED, ReferralStatus.EXPIRED},
    ReferralStatus.EXPIRED: {ReferralStatus.CLOSED},
    ReferralStatus.CLOSED: set()
})

application_state_machine = StateMachine(ApplicationStatus, {
    ApplicationStatus.PENDING: {
        ApplicationStatus.REVIEWED,
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN
    },
    ApplicationStatus.REVIEWED: {
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN
    },
    ApplicationStatus.SHORTLISTED: {
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED
    },
    ApplicationStatus.ACCEPTED: set(),
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.WITHDRAWN: set()
})
