"""
Record schema for the deal pipeline and task tracking.

Deal pipeline:
  Prospecting → Qualification → Proposal → Negotiation → Won | Lost

Records arrive from the remote document store as loosely typed dicts.
from_dict() never rejects a record: unknown enum strings and missing fields
fall back to safe defaults so the board always has something to render.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any
import math
import re


class DealStage(Enum):
    """Pipeline stages, in board order."""
    PROSPECTING = "prospecting"
    QUALIFICATION = "qualification"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"

    @classmethod
    def from_str(cls, value: Any) -> "DealStage":
        try:
            return cls(value)
        except ValueError:
            return cls.PROSPECTING


class ClientStatus(Enum):
    ACTIVE = "active"
    POTENTIAL = "potential"
    INACTIVE = "inactive"

    @classmethod
    def from_str(cls, value: Any) -> "ClientStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.POTENTIAL


class TaskStatus(Enum):
    """Task board columns."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def from_str(cls, value: Any) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.TODO


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_str(cls, value: Any) -> "TaskPriority":
        try:
            return cls(value)
        except ValueError:
            return cls.MEDIUM


class ProjectStatus(Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    PAUSED = "paused"
    DELIVERED = "delivered"

    @classmethod
    def from_str(cls, value: Any) -> "ProjectStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.PLANNING


DEFAULT_PROJECT_COLOR = "#2563eb"

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_iso() -> str:
    """Today's date as YYYY-MM-DD (UTC)."""
    return utc_now().date().isoformat()


def parse_timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """Parse an ISO-8601 / RFC 3339 timestamp, returning default on failure."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return default
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Firestore sends nanoseconds; datetime keeps microseconds
    text = _FRACTION_RE.sub(r"\1", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def iso_date(value: Any) -> str:
    """Coerce a date, datetime or ISO string into YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return date.fromisoformat(text[:10]).isoformat()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def _as_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value]


def _unique(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CRM records
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class Deal:
    """One opportunity on the deal board."""

    id: str
    title: str
    client_id: str = ""
    value: float = 0.0
    stage: DealStage = DealStage.PROSPECTING
    owner: str = ""
    probability: int = 0           # 0-100
    tags: List[str] = field(default_factory=list)
    updated_at: datetime = field(default_factory=utc_now)
    due_date: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "clientId": self.client_id,
            "value": self.value,
            "stage": self.stage.value,
            "owner": self.owner,
            "probability": self.probability,
            "tags": list(self.tags),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.due_date:
            data["dueDate"] = self.due_date
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Any, doc_id: Optional[str] = None) -> "Deal":
        record = _as_dict(data)
        probability = int(_as_number(record.get("probability"), 0))
        return cls(
            id=doc_id or _as_str(record.get("id")),
            title=_as_str(record.get("title"), "Untitled deal"),
            client_id=_as_str(record.get("clientId")),
            value=_as_number(record.get("value"), 0.0),
            stage=DealStage.from_str(record.get("stage")),
            owner=_as_str(record.get("owner")),
            probability=max(0, min(100, probability)),
            tags=_unique(_as_str_list(record.get("tags"))),
            updated_at=parse_timestamp(record.get("updatedAt")) or utc_now(),
            due_date=_as_str(record["dueDate"]) if record.get("dueDate") else None,
            description=_as_str(record["description"]) if record.get("description") else None,
        )


@dataclass
class Client:
    """A customer account; deals reference it by id."""

    id: str
    name: str
    company: str = ""
    email: str = ""
    phone: str = ""
    status: ClientStatus = ClientStatus.POTENTIAL
    deals: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    industry: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "email": self.email,
            "phone": self.phone,
            "status": self.status.value,
            "deals": list(self.deals),
            "createdAt": self.created_at.isoformat(),
        }
        if self.industry:
            data["industry"] = self.industry
        if self.notes:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Any, doc_id: Optional[str] = None) -> "Client":
        record = _as_dict(data)
        return cls(
            id=doc_id or _as_str(record.get("id")),
            name=_as_str(record.get("name"), "Client"),
            company=_as_str(record.get("company")),
            email=_as_str(record.get("email")),
            phone=_as_str(record.get("phone")),
            status=ClientStatus.from_str(record.get("status")),
            deals=_as_str_list(record.get("deals")),
            created_at=parse_timestamp(record.get("createdAt")) or utc_now(),
            industry=_as_str(record["industry"]) if record.get("industry") else None,
            notes=_as_str(record["notes"]) if record.get("notes") else None,
        )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Task tracking records
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class ChecklistItem:
    """Checklist entry. The label is the item's identity within its task."""
    label: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "completed": self.completed}


@dataclass
class Task:
    id: str
    title: str
    description: str = ""
    project_id: str = ""
    owner: str = ""
    due_date: str = field(default_factory=today_iso)   # YYYY-MM-DD
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: List[str] = field(default_factory=list)
    checklist: List[ChecklistItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the remote document field names."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "projectId": self.project_id,
            "owner": self.owner,
            "dueDate": self.due_date,
            "status": self.status.value,
            "priority": self.priority.value,
            "tags": list(self.tags),
            "checklist": [item.to_dict() for item in self.checklist],
        }

    @classmethod
    def from_dict(cls, data: Any, doc_id: Optional[str] = None) -> "Task":
        """Normalize a task document; never raises on malformed fields."""
        record = _as_dict(data)
        checklist = []
        if isinstance(record.get("checklist"), list):
            for raw in record["checklist"]:
                item = _as_dict(raw)
                checklist.append(ChecklistItem(
                    label=_as_str(item.get("label"), "Item"),
                    completed=bool(item.get("completed")),
                ))
        return cls(
            id=doc_id or _as_str(record.get("id")),
            title=_as_str(record.get("title"), "Untitled"),
            description=_as_str(record.get("description")),
            project_id=_as_str(record.get("projectId")),
            owner=_as_str(record.get("owner"), "Team"),
            due_date=_as_str(record.get("dueDate"), today_iso()),
            status=TaskStatus.from_str(record.get("status")),
            priority=TaskPriority.from_str(record.get("priority")),
            tags=_as_str_list(record.get("tags")),
            checklist=checklist,
        )


@dataclass
class TeamMember:
    name: str
    role: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "role": self.role}


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.PLANNING
    due_date: str = ""
    progress: float = 0
    client: str = ""
    owner: str = ""
    team: List[TeamMember] = field(default_factory=list)
    color: str = DEFAULT_PROJECT_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "dueDate": self.due_date,
            "progress": self.progress,
            "client": self.client,
            "owner": self.owner,
            "team": [member.to_dict() for member in self.team],
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Any, doc_id: Optional[str] = None) -> "Project":
        record = _as_dict(data)
        team = []
        if isinstance(record.get("team"), list):
            for raw in record["team"]:
                member = _as_dict(raw)
                team.append(TeamMember(
                    name=_as_str(member.get("name"), "Member"),
                    role=_as_str(member.get("role"), "Role"),
                ))
        return cls(
            id=doc_id or _as_str(record.get("id")),
            name=_as_str(record.get("name"), "Project"),
            description=_as_str(record.get("description")),
            status=ProjectStatus.from_str(record.get("status")),
            due_date=_as_str(record.get("dueDate")),
            progress=_as_number(record.get("progress"), 0),
            client=_as_str(record.get("client")),
            owner=_as_str(record.get("owner")),
            team=team,
            color=_as_str(record.get("color"), DEFAULT_PROJECT_COLOR),
        )
