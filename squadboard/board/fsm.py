"""Card lane state machine using transitions library.

Lanes are states; every legal lane change is a named trigger:

    fsm = LaneFSM(card)
    fsm.start_build()       # todo/plan/build/review -> build
    fsm.request_changes()   # human asked for changes -> build
    fsm.approve()           # human approved, guarded by has_pr_url -> done

`done` has no `move` trigger; only approve() reaches it. The FSM holds the
lane in memory only: the caller persists the resulting lane together with
the rest of the card patch in a single store write.
"""

import logging

from transitions import Machine

from squadboard.board.card import Card
from squadboard.lib.constants import LANES

logger = logging.getLogger(__name__)

STATES = list(LANES)

_ACTIVE = ["todo", "plan", "build", "review"]

TRANSITIONS = [
    # Un-claim or reopen
    {"trigger": "to_todo", "source": "*", "dest": "todo"},

    # Re-entrant lane starts, no ordering enforced between plan/build/review
    {"trigger": "start_plan", "source": _ACTIVE, "dest": "plan"},
    {"trigger": "start_build", "source": _ACTIVE, "dest": "build"},
    {"trigger": "start_review", "source": _ACTIVE, "dest": "review"},

    # Human review outcomes
    {"trigger": "request_changes", "source": "*", "dest": "build"},
    {"trigger": "approve", "source": _ACTIVE, "dest": "done", "conditions": "has_pr_url"},
]

# move() target lane -> trigger. done is deliberately absent.
MOVE_TRIGGERS = {
    "todo": "to_todo",
    "plan": "start_plan",
    "build": "start_build",
    "review": "start_review",
}


class LaneFSM:
    """Lane state machine for one card.

    Wraps the transitions library with card-specific logic:
    - Starts from the card's current lane
    - Guards approve() on the card having a PR URL
    - Logs all transitions
    """

    def __init__(self, card: Card):
        """Initialize FSM for a card whose lane is the initial state."""
        self.card = card

        initial = card.lane
        if initial not in STATES:
            logger.warning(f"[LANE] {card.id}: Unknown lane '{initial}', defaulting to 'todo'")
            initial = "todo"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def has_pr_url(self, event) -> bool:
        return self.card.has_pr_url

    def on_state_change(self, event) -> None:
        from_lane = event.transition.source
        to_lane = event.transition.dest
        trigger = event.event.name

        logger.info(f"[LANE] {self.card.id}: {from_lane} -> {to_lane} ({trigger})")

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
