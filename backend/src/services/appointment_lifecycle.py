"""
Appointment lifecycle state machine.

All status transitions are listed in one table keyed by (current status,
action). Anything not in the table is rejected with InvalidTransition.

    scheduled --complete--> completed --finalize--> done
    scheduled --cancel----> cancelled
    scheduled --no_show---> no_show
    scheduled --reschedule-> scheduled

done, cancelled and no_show are terminal for these actions. The explicit
status update path additionally allows the manual corrections listed in
MANUAL_CORRECTIONS (re-activating a cancelled or no-show appointment).
"""

from typing import Dict, FrozenSet, Optional, Tuple

from core.constants import (
    STATUS_CANCELLED, STATUS_COMPLETED, STATUS_DONE, STATUS_NO_SHOW, STATUS_SCHEDULED
)
from core.exceptions import InvalidTransition

ACTION_CANCEL = "cancel"
ACTION_COMPLETE = "complete"
ACTION_FINALIZE = "finalize"
ACTION_NO_SHOW = "no_show"
ACTION_RESCHEDULE = "reschedule"
ACTION_REACTIVATE = "reactivate"

TRANSITIONS: Dict[Tuple[str, str], str] = {
    (STATUS_SCHEDULED, ACTION_CANCEL): STATUS_CANCELLED,
    (STATUS_SCHEDULED, ACTION_COMPLETE): STATUS_COMPLETED,
    (STATUS_SCHEDULED, ACTION_NO_SHOW): STATUS_NO_SHOW,
    (STATUS_SCHEDULED, ACTION_RESCHEDULE): STATUS_SCHEDULED,
    (STATUS_COMPLETED, ACTION_FINALIZE): STATUS_DONE,
}

# Only reachable through an explicit status update, never through cancel/delete
MANUAL_CORRECTIONS: Dict[Tuple[str, str], str] = {
    (STATUS_CANCELLED, ACTION_REACTIVATE): STATUS_SCHEDULED,
    (STATUS_NO_SHOW, ACTION_REACTIVATE): STATUS_SCHEDULED,
}

# Action requested when a caller asks for a target status
TARGET_STATUS_ACTIONS: Dict[str, str] = {
    STATUS_CANCELLED: ACTION_CANCEL,
    STATUS_COMPLETED: ACTION_COMPLETE,
    STATUS_DONE: ACTION_FINALIZE,
    STATUS_NO_SHOW: ACTION_NO_SHOW,
    STATUS_SCHEDULED: ACTION_REACTIVATE,
}

TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    {STATUS_DONE, STATUS_CANCELLED, STATUS_NO_SHOW}
)


class AppointmentLifecycle:
    """Validates status transitions against the state table."""

    @staticmethod
    def can_apply(current_status: str, action: str, allow_manual: bool = False) -> bool:
        key = (current_status, action)
        return key in TRANSITIONS or (allow_manual and key in MANUAL_CORRECTIONS)

    @staticmethod
    def next_status(current_status: str, action: str, allow_manual: bool = False) -> str:
        """
        Resolve the status an action leads to.

        Args:
            current_status: Status the appointment is in
            action: One of the ACTION_* constants
            allow_manual: Also consult MANUAL_CORRECTIONS

        Raises:
            InvalidTransition: If the table has no entry for (current_status, action)
        """
        key = (current_status, action)
        if key in TRANSITIONS:
            return TRANSITIONS[key]
        if allow_manual and key in MANUAL_CORRECTIONS:
            return MANUAL_CORRECTIONS[key]
        raise InvalidTransition(
            f"Cannot {action.replace('_', ' ')} an appointment that is {current_status.replace('_', ' ')}",
            details={"status": current_status, "action": action},
        )

    @staticmethod
    def action_for_target(current_status: str, target_status: str) -> Optional[str]:
        """
        Map a requested target status to the action that reaches it.

        Returns:
            The action name, or None when the appointment is already in the target status

        Raises:
            InvalidTransition: If the target status is unknown or unreachable from current_status
        """
        if current_status == target_status:
            return None
        action = TARGET_STATUS_ACTIONS.get(target_status)
        if action is None:
            raise InvalidTransition(
                f"Unknown target status: {target_status}",
                details={"status": current_status, "target_status": target_status},
            )
        # Validates reachability, raising InvalidTransition if not in either table
        AppointmentLifecycle.next_status(current_status, action, allow_manual=True)
        return action

    @staticmethod
    def is_terminal(status: str) -> bool:
        return status in TERMINAL_STATUSES

    @staticmethod
    def can_hard_delete(status: str, has_documentation: bool) -> bool:
        """Physical deletion is only allowed before any clinical event happened."""
        return status == STATUS_SCHEDULED and not has_documentation
