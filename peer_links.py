"""Client-side bookkeeping of one peer link per remote connection id.

    absent --open--> negotiating --establish--> established
    negotiating/established --close--> closed --open--> negotiating

Every transition is guarded: calling it from a state it does not apply to
returns False and changes nothing, so callers never need "already exists"
checks before acting on a signal.
"""
from enum import Enum
from typing import Dict, List, Optional


class LinkState(str, Enum):
    ABSENT = "absent"
    NEGOTIATING = "negotiating"
    ESTABLISHED = "established"
    CLOSED = "closed"


_TRANSITIONS = {
    "open": ({LinkState.ABSENT, LinkState.CLOSED}, LinkState.NEGOTIATING),
    "establish": ({LinkState.NEGOTIATING}, LinkState.ESTABLISHED),
    "close": ({LinkState.NEGOTIATING, LinkState.ESTABLISHED}, LinkState.CLOSED),
}


class PeerLinkTable:
    def __init__(self):
        self._states: Dict[str, LinkState] = {}

    def state(self, peer_id: str) -> LinkState:
        return self._states.get(peer_id, LinkState.ABSENT)

    def open(self, peer_id: str) -> bool:
        return self._transition(peer_id, "open")

    def establish(self, peer_id: str) -> bool:
        return self._transition(peer_id, "establish")

    def close(self, peer_id: str) -> bool:
        return self._transition(peer_id, "close")

    def close_all(self) -> List[str]:
        """Close every live link. Returns the ids that were closed."""
        return [peer_id for peer_id in list(self._states) if self.close(peer_id)]

    def peers(self, state: Optional[LinkState] = None) -> List[str]:
        return [peer_id for peer_id, s in self._states.items() if state is None or s == state]

    def _transition(self, peer_id: str, action: str) -> bool:
        allowed, target = _TRANSITIONS[action]
        if self.state(peer_id) not in allowed:
            return False
        self._states[peer_id] = target
        return True
