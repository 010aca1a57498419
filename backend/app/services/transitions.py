"""
GameVersion status table.

Handlers ask the guard for the target status before calling the repository's
unconditional `update_status`, so every legal move is listed here and nowhere
else.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.core.errors import InvalidState
from app.models.game_version import VersionStatus as S

# Wider than draft/uploaded/qc_processing: a qc_passed build must still reach approved.
REVIEWABLE = frozenset({S.draft, S.uploaded, S.qc_processing, S.qc_passed})


@dataclass(frozen=True)
class Transition:
    sources: frozenset[S]
    target: S


TRANSITIONS: dict[str, Transition] = {
    "re_upload": Transition(
        frozenset({S.draft, S.uploaded, S.qc_processing, S.qc_passed, S.qc_failed, S.approved}),
        S.draft,
    ),
    "submit": Transition(frozenset({S.draft, S.qc_failed}), S.uploaded),
    "start_review": Transition(frozenset({S.uploaded}), S.qc_processing),
    "qc_pass": Transition(frozenset({S.uploaded, S.qc_processing}), S.qc_passed),
    "qc_fail": Transition(frozenset({S.uploaded, S.qc_processing}), S.qc_failed),
    "approve": Transition(REVIEWABLE, S.approved),
    "reject": Transition(REVIEWABLE, S.qc_failed),
    "publish": Transition(frozenset({S.approved}), S.published),
    "archive": Transition(frozenset({S.published}), S.archived),
}


class TransitionGuard:
    def __init__(self, table: dict[str, Transition] | None = None):
        self.table = table or TRANSITIONS

    def valid_actions(self, current: S) -> list[str]:
        return [action for action, t in self.table.items() if current in t.sources]

    def is_legal(self, current: S, action: str) -> bool:
        transition = self.table.get(action)
        return transition is not None and current in transition.sources

    def check(self, current: S, action: str) -> S:
        """Return the target status, or raise InvalidState naming the current one."""
        transition = self.table.get(action)
        if transition is None:
            raise InvalidState(f"Unknown action: {action}")
        if current not in transition.sources:
            raise InvalidState(self.describe_error(current, action))
        return transition.target

    def describe_error(self, current: S, action: str) -> str:
        status = S(current).value
        if action == "publish":
            return f"Cannot publish version with status: {status}. Status must be 'approved'."
        if action in ("approve", "reject"):
            return f"Cannot {action} version with status: {status}"
        if action == "submit":
            return (
                f"Cannot submit version with status: {status}. "
                "Only draft or qc_failed versions can be submitted."
            )
        if action == "re_upload":
            return f"Cannot upload new code for version with status: {status}. Use a new version number."
        valid = ", ".join(self.valid_actions(current)) or "none"
        return f"Cannot {action} from status {status}. Valid actions: {valid}"


transition_guard = TransitionGuard()
