"""Wait-loop state machine using the transitions library.

    polling --approve--> approved
    polling --reject---> rejected
    polling --time_out-> timed_out

All states except polling are terminal. Only explicit triggers are allowed, so
a second decision after the first raises MachineError.
"""

import logging

from transitions import Machine

logger = logging.getLogger(__name__)


POLLING = "polling"
APPROVED = "approved"
REJECTED = "rejected"
TIMED_OUT = "timed_out"

STATES = [POLLING, APPROVED, REJECTED, TIMED_OUT]

TRANSITIONS = [
    {"trigger": "approve", "source": POLLING, "dest": APPROVED},
    {"trigger": "reject", "source": POLLING, "dest": REJECTED},
    {"trigger": "time_out", "source": POLLING, "dest": TIMED_OUT},
]


class WaitLoopFSM:
    """State holder for one wait loop run."""

    def __init__(self, name: str = "gate"):
        """
        Args:
            name: Label used in log lines (e.g. the comment id)
        """
        self.name = name
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=POLLING,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.name}: {from_state} -> {to_state} ({trigger})")
