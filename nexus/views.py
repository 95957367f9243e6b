"""
View models for the board, list, calendar and project pages.

Pure functions over store snapshots: nothing here mutates state. A filter
argument of None or "all" means "no filter".
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .deals import BoardState, coerce_stage, empty_order
from .schema import (
    Client,
    ClientStatus,
    Deal,
    DealStage,
    Project,
    ProjectStatus,
    Task,
    TaskPriority,
    TaskStatus,
    utc_now,
)

ALL = "all"
CALENDAR_DAYS = 42   # six weeks

STAGE_LABELS = {
    DealStage.PROSPECTING: "Prospecting",
    DealStage.QUALIFICATION: "Qualification",
    DealStage.PROPOSAL: "Proposal",
    DealStage.NEGOTIATION: "Negotiation",
    DealStage.WON: "Won",
    DealStage.LOST: "Lost",
}

STATUS_EMOJI = {
    TaskStatus.TODO: "📬",
    TaskStatus.IN_PROGRESS: "🚀",
    TaskStatus.REVIEW: "👀",
    TaskStatus.DONE: "✅",
}


def _is_all(value) -> bool:
    return value is None or value == ALL


def _matches(term: str, *values: Optional[str]) -> bool:
    return any(term in (v or "").lower() for v in values)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Deals
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class DealTotals:
    total_value: float = 0.0
    total_count: int = 0
    win_rate: float = 0.0          # percent
    average_ticket: float = 0.0
    won_count: int = 0
    lost_count: int = 0


def filter_board(
    state: BoardState,
    search_term: str = "",
    stage_filter: Union[DealStage, str, None] = None,
) -> Tuple[List[Deal], Dict[DealStage, List[str]]]:
    """
    Deals matching the search term and stage filter, plus the board order
    restricted to them. Search covers deal title, owner, client name and
    client company.
    """
    stage = None if _is_all(stage_filter) else coerce_stage(stage_filter)
    term = search_term.strip().lower()
    clients = {c.id: c for c in state.clients}

    deals = []
    for deal in state.deals:
        if stage is not None and deal.stage != stage:
            continue
        if term:
            client = clients.get(deal.client_id)
            if not _matches(term, deal.title, deal.owner,
                            client.name if client else None,
                            client.company if client else None):
                continue
        deals.append(deal)

    ids = {deal.id for deal in deals}
    order = empty_order()
    for s, column in state.deal_order.items():
        if stage is None or s == stage:
            order[s] = [i for i in column if i in ids]
    return deals, order


def calculate_totals(deals: Sequence[Deal]) -> DealTotals:
    count = len(deals)
    total = sum(deal.value for deal in deals)
    won = sum(1 for deal in deals if deal.stage == DealStage.WON)
    lost = sum(1 for deal in deals if deal.stage == DealStage.LOST)
    return DealTotals(
        total_value=total,
        total_count=count,
        win_rate=(won / count) * 100 if count else 0.0,
        average_ticket=total / count if count else 0.0,
        won_count=won,
        lost_count=lost,
    )


def client_pipeline_value(state: BoardState) -> Dict[str, float]:
    """Sum of deal values per client id."""
    totals: Dict[str, float] = {}
    for deal in state.deals:
        totals[deal.client_id] = totals.get(deal.client_id, 0) + deal.value
    return totals


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Clients
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

SORT_BY_NAME = "name"
SORT_BY_CREATED = "createdAt"


def filter_clients(
    clients: Sequence[Client],
    search: str = "",
    status: Union[ClientStatus, str, None] = None,
    sort_by: str = SORT_BY_NAME,
) -> List[Client]:
    """
    Clients matching name/company/email and status. Sorted by name, or
    newest first with sort_by="createdAt".
    """
    status = None if _is_all(status) else ClientStatus(status)
    term = search.strip().lower()
    out = [
        c for c in clients
        if (status is None or c.status == status)
        and (not term or _matches(term, c.name, c.company, c.email))
    ]
    if sort_by == SORT_BY_CREATED:
        return sorted(out, key=lambda c: c.created_at, reverse=True)
    if sort_by != SORT_BY_NAME:
        raise ValueError(f"Unknown client sort: {sort_by}")
    return sorted(out, key=lambda c: c.name.lower())


def client_stats(clients: Sequence[Client], deals: Sequence[Deal]) -> Dict[str, float]:
    """Counts per status and average pipeline value per client."""
    total = len(clients)
    return {
        "total": total,
        "active": sum(1 for c in clients if c.status == ClientStatus.ACTIVE),
        "potential": sum(1 for c in clients if c.status == ClientStatus.POTENTIAL),
        "inactive": sum(1 for c in clients if c.status == ClientStatus.INACTIVE),
        "average_revenue": sum(d.value for d in deals) / total if total else 0,
    }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tasks & projects
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def filter_tasks(
    tasks: Sequence[Task],
    owner: Optional[str] = None,
    project_id: Optional[str] = None,
    status: Union[TaskStatus, str, None] = None,
    priority: Union[TaskPriority, str, None] = None,
    search: str = "",
    projects: Sequence[Project] = (),
) -> List[Task]:
    """
    Filter tasks. owner is a case-insensitive substring match; search covers
    title, tags and the project name (when projects are given).
    """
    status = None if _is_all(status) else TaskStatus(status)
    priority = None if _is_all(priority) else TaskPriority(priority)
    owner_term = "" if _is_all(owner) else owner.strip().lower()
    term = search.strip().lower()
    names = {p.id: p.name for p in projects}

    out = []
    for task in tasks:
        if owner_term and owner_term not in task.owner.lower():
            continue
        if not _is_all(project_id) and task.project_id != project_id:
            continue
        if status is not None and task.status != status:
            continue
        if priority is not None and task.priority != priority:
            continue
        if term and not _matches(term, task.title, names.get(task.project_id), *task.tags):
            continue
        out.append(task)
    return out


def sort_by_due_date(tasks: Sequence[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: t.due_date)


def task_stats(tasks: Sequence[Task]) -> Dict[str, int]:
    return {
        "total": len(tasks),
        "completed": sum(1 for t in tasks if t.status == TaskStatus.DONE),
        "in_progress": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        "high_priority": sum(1 for t in tasks if t.priority == TaskPriority.HIGH),
    }


def project_stats(projects: Sequence[Project]) -> Dict[str, float]:
    total = len(projects)
    return {
        "total": total,
        "active": sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
        "delivered": sum(1 for p in projects if p.status == ProjectStatus.DELIVERED),
        "planning": sum(1 for p in projects if p.status == ProjectStatus.PLANNING),
        "average_progress": sum(p.progress for p in projects) / total if total else 0,
    }


def project_task_progress(tasks: Sequence[Task]) -> Dict[str, Dict[str, int]]:
    """{project_id: {"total": n, "done": m}}"""
    progress: Dict[str, Dict[str, int]] = {}
    for task in tasks:
        entry = progress.setdefault(task.project_id, {"total": 0, "done": 0})
        entry["total"] += 1
        if task.status == TaskStatus.DONE:
            entry["done"] += 1
    return progress


def filter_projects(
    projects: Sequence[Project],
    search: str = "",
    status: Union[ProjectStatus, str, None] = None,
) -> List[Project]:
    """Projects matching name/client/owner and status, soonest due date first."""
    status = None if _is_all(status) else ProjectStatus(status)
    term = search.strip().lower()
    out = [
        p for p in projects
        if (status is None or p.status == status)
        and (not term or _matches(term, p.name, p.client, p.owner))
    ]
    # Projects without a due date go last
    return sorted(out, key=lambda p: (not p.due_date, p.due_date))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Calendar
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class CalendarDay:
    day: date
    in_month: bool
    is_today: bool
    tasks: List[Task] = field(default_factory=list)

    @property
    def iso(self) -> str:
        return self.day.isoformat()

    @property
    def drop_id(self) -> str:
        """Drop-target id understood by dragdrop.handle_calendar_drop."""
        return f"day:{self.iso}"


def _sunday_on_or_before(day: date) -> date:
    # date.weekday(): Monday == 0 ... Sunday == 6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def build_month_grid(tasks: Sequence[Task], year: int, month: int,
                     today: Optional[date] = None) -> List[CalendarDay]:
    """Six Sunday-first weeks covering the month, each day with its tasks sorted by title."""
    today = today or utc_now().date()
    first = date(year, month, 1)
    start = _sunday_on_or_before(first)

    by_date: Dict[str, List[Task]] = {}
    for task in tasks:
        by_date.setdefault(task.due_date, []).append(task)

    days = []
    for offset in range(CALENDAR_DAYS):
        day = start + timedelta(days=offset)
        items = sorted(by_date.get(day.isoformat(), []), key=lambda t: t.title.lower())
        days.append(CalendarDay(
            day=day,
            in_month=(day.year, day.month) == (year, month),
            is_today=day == today,
            tasks=items,
        ))
    return days


def calendar_stats(tasks: Sequence[Task], today: Optional[date] = None) -> Dict[str, int]:
    """Overdue (due before today, not done) and due this Sunday-Saturday week."""
    today = today or utc_now().date()
    today_iso = today.isoformat()
    week_start = _sunday_on_or_before(today)
    start_iso = week_start.isoformat()
    end_iso = (week_start + timedelta(days=6)).isoformat()
    return {
        "overdue": sum(1 for t in tasks if t.due_date < today_iso and t.status != TaskStatus.DONE),
        "this_week": sum(1 for t in tasks if start_iso <= t.due_date <= end_iso),
    }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Text summaries
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def render_board(state: BoardState, order: Optional[Dict[DealStage, List[str]]] = None) -> str:
    """Format the board column by column."""
    order = state.deal_order if order is None else order
    by_id = {d.id: d for d in state.deals}
    lines = []
    for stage in DealStage:
        ids = [i for i in order.get(stage, []) if i in by_id]
        value = sum(by_id[i].value for i in ids)
        lines.append(f"▸ {STAGE_LABELS[stage]} ({len(ids)}, {value:,.2f})")
        for deal_id in ids:
            deal = by_id[deal_id]
            client = state.client(deal.client_id)
            who = f" · {client.company}" if client and client.company else ""
            lines.append(f"   {deal.id}: {deal.title}{who} - {deal.value:,.2f} ({deal.probability}%)")
    return "\n".join(lines)


def render_task(task: Task, project: Optional[Project] = None) -> str:
    """Format a task as a concise multi-line summary."""
    done = sum(1 for item in task.checklist if item.completed)
    lines = [
        f"{STATUS_EMOJI.get(task.status, '❓')} {task.id}: {task.title}",
        f"📊 Status: {task.status.value}",
        f"📅 Due: {task.due_date}",
        f"👤 Owner: {task.owner}",
    ]
    if task.priority != TaskPriority.MEDIUM:
        lines.append(f"⚡ Priority: {task.priority.value}")
    if project is not None:
        lines.append(f"📁 Project: {project.name}")
    if task.checklist:
        lines.append(f"☑️ Checklist: {done}/{len(task.checklist)}")
        for item in task.checklist:
            lines.append(f"   [{'x' if item.completed else ' '}] {item.label}")
    return "\n".join(lines)
