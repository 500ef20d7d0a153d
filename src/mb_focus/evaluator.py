"""Decide whether a milestone or completion notification is due."""

from dataclasses import dataclass
from enum import StrEnum

from mb_focus.models import SessionRecord
from mb_focus.timer import elapsed_ratio, remaining


class Action(StrEnum):
    """What the caller should do after an evaluation."""

    NONE = "none"
    PROGRESS = "progress"
    COMPLETE = "complete"


@dataclass(frozen=True, slots=True)
class MilestoneWindow:
    """Half-open progress window [start, end) in which the milestone may fire."""

    start: float = 0.10
    end: float = 0.15

    def contains(self, ratio: float) -> bool:
        return self.start <= ratio < self.end


DEFAULT_WINDOW = MilestoneWindow()


@dataclass(frozen=True, slots=True)
class Evaluation:
    """Evaluator verdict and the dedup flag state the caller must persist."""

    action: Action
    dedup_flag: bool


def evaluate(
    record: SessionRecord | None, now: int, dedup_flag_exists: bool, window: MilestoneWindow = DEFAULT_WINDOW
) -> Evaluation:
    """Evaluate a session at `now`.

    Completion wins over the milestone. Paused sessions never progress or complete.
    On PROGRESS the caller must persist the dedup flag together with the dispatch; on
    COMPLETE it must delete the record so a duplicate invocation sees no session.
    """
    if record is None or record.is_paused:
        return Evaluation(Action.NONE, dedup_flag_exists)

    if remaining(record, now) <= 0:
        return Evaluation(Action.COMPLETE, dedup_flag_exists)

    if not dedup_flag_exists and window.contains(elapsed_ratio(record, now)):
        return Evaluation(Action.PROGRESS, dedup_flag=True)

    return Evaluation(Action.NONE, dedup_flag_exists)
