"""
Status codes and the result object returned by every pipeline operation.

Status values are shared with the host application and must not change.
They are bit flags so several conditions can be reported at once, e.g.
NOT_ENOUGH_DATA | LOW_SCORE == 12.
"""

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Dict, List, Optional, Tuple


class Status(IntFlag):
    OK = 0
    NO_DATASET = 1
    GENERAL_ERROR = 2
    NOT_ENOUGH_DATA = 4
    LOW_SCORE = 8


@dataclass
class Result:
    """
    Outcome of a train / classify / evaluate call.

    Attributes:
        status: Status flags, Status.OK when nothing went wrong.
        info: Human readable diagnostics, in the order they were raised.
        score: Mean weighted F1 score (evaluation only).
        predictions: {row_index: (sample_id, label)} (classification only).
    """

    status: Status = Status.OK
    info: List[str] = field(default_factory=list)
    score: Optional[float] = None
    predictions: Optional[Dict[int, Tuple[str, Any]]] = None

    def add_status(self, flag: Status, message: Optional[str] = None):
        self.status |= flag
        if message is not None:
            self.info.append(message)

    @property
    def ok(self) -> bool:
        return self.status == Status.OK
