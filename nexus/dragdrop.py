"""
Drop resolution for drag-and-drop views.

Deal board: a drag starts on one deal card and ends over either a column
(stage) or another deal card. Same column means reorder, a different column
means move. Calendar: a task card dropped on a "day:YYYY-MM-DD" cell is
re-scheduled to that day.
"""
from dataclasses import dataclass
from typing import Optional

from .deals import DealBoardStore
from .schema import DealStage
from .tasks import TaskStore

COLUMN = "column"
CARD = "card"
DAY_PREFIX = "day:"


@dataclass
class DropTarget:
    """What the pointer was over at drag end."""
    kind: str      # COLUMN or CARD
    id: str        # stage value for columns, deal id for cards


def handle_deal_drop(store: DealBoardStore, active_id: str, over: Optional[DropTarget]) -> bool:
    """Apply a finished deal drag. Returns True if the board changed."""
    if over is None or not active_id or over.id == active_id:
        return False

    state = store.state
    active_stage = state.stage_of(active_id)
    if over.kind == COLUMN:
        try:
            over_stage = DealStage(over.id)
        except ValueError:
            return False
    else:
        over_stage = state.stage_of(over.id)
    if active_stage is None or over_stage is None:
        return False

    column = state.deal_order[over_stage]
    if active_stage == over_stage:
        if over.kind == COLUMN:
            return False
        old_index = column.index(active_id)
        new_index = column.index(over.id)
        store.reorder_deal(active_stage, old_index, new_index)
        return old_index != new_index

    new_index = len(column) if over.kind == COLUMN else column.index(over.id)
    store.move_deal(active_id, active_stage, over_stage, new_index)
    return True


def handle_calendar_drop(store: TaskStore, task_id: str, target_id: Optional[str]) -> bool:
    """Re-schedule a task dropped on a day cell. Returns True if it moved."""
    if not target_id or not target_id.startswith(DAY_PREFIX):
        return False
    task = store.state.task(task_id)
    if task is None:
        return False
    due_date = target_id[len(DAY_PREFIX):]
    if task.due_date == due_date:
        return False
    try:
        store.update_task_due_date(task_id, due_date)
    except ValueError:
        return False
    return True
