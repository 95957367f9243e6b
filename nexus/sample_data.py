"""
Built-in sample dataset.

Served whenever the remote document store is unconfigured or unreachable, so
the board always has data to render. Every call builds fresh records; callers
may mutate what they get back.
"""
from datetime import datetime, timezone
from typing import List

from .schema import (
    ChecklistItem,
    Client,
    ClientStatus,
    Deal,
    DealStage,
    Project,
    ProjectStatus,
    Task,
    TaskPriority,
    TaskStatus,
    TeamMember,
)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def sample_projects() -> List[Project]:
    return [
        Project(
            id="project-1",
            name="PixelWave Corporate Portal",
            description="Corporate site with a headless CMS, multi-language support and a client area.",
            status=ProjectStatus.ACTIVE,
            due_date="2025-02-15",
            progress=68,
            client="PixelWave Studio",
            owner="Mariana Lopes",
            color="#2563eb",
            team=[
                TeamMember("Mariana Lopes", "PM"),
                TeamMember("Lucas Nascimento", "Front-end Dev"),
                TeamMember("Carla Menezes", "UI/UX"),
            ],
        ),
        Project(
            id="project-2",
            name="Aurora Loyalty App",
            description="Mobile app with gamification, CRM integration and segmented push notifications.",
            status=ProjectStatus.PLANNING,
            due_date="2025-03-05",
            progress=32,
            client="Aurora Apps",
            owner="Gabriela Souza",
            color="#0ea5e9",
            team=[
                TeamMember("Gabriela Souza", "PM"),
                TeamMember("João Henrique", "Mobile Dev"),
                TeamMember("Paula Martins", "UX Research"),
            ],
        ),
        Project(
            id="project-3",
            name="GrowthSpark Launch",
            description="360° marketing campaign with converting landing pages and nurture automations.",
            status=ProjectStatus.ACTIVE,
            due_date="2025-01-30",
            progress=82,
            client="GrowthSpark Digital",
            owner="Bruno Lima",
            color="#f97316",
            team=[
                TeamMember("Bruno Lima", "PM"),
                TeamMember("Renata Alves", "Copywriter"),
                TeamMember("Diego Rocha", "Designer"),
            ],
        ),
        Project(
            id="project-4",
            name="UXFlow Design System",
            description="Full design system delivery with tokens, component library and guidelines.",
            status=ProjectStatus.DELIVERED,
            due_date="2024-12-12",
            progress=100,
            client="UXFlow Agency",
            owner="Camila Rocha",
            color="#10b981",
            team=[
                TeamMember("Camila Rocha", "Lead Designer"),
                TeamMember("Felipe Torres", "UI"),
                TeamMember("Larissa Prado", "Front-end Dev"),
            ],
        ),
    ]


def sample_tasks() -> List[Task]:
    return [
        Task(
            id="task-1",
            title="Refine client briefing",
            description="Collect feedback from the kick-off meeting and update the briefing.",
            project_id="project-1",
            owner="Mariana Lopes",
            due_date="2025-01-16",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.HIGH,
            tags=["Meeting", "Planning"],
            checklist=[
                ChecklistItem("Update briefing document", True),
                ChecklistItem("Validate with client", False),
            ],
        ),
        Task(
            id="task-2",
            title="Mobile prototype",
            description="Build clickable prototypes for the main app screens.",
            project_id="project-2",
            owner="Paula Martins",
            due_date="2025-01-18",
            status=TaskStatus.REVIEW,
            priority=TaskPriority.MEDIUM,
            tags=["Figma", "UX"],
            checklist=[
                ChecklistItem("Onboarding flow", True),
                ChecklistItem("Challenges screen", False),
                ChecklistItem("Rewards screen", False),
            ],
        ),
        Task(
            id="task-3",
            title="Set up Firebase environment",
            description="Create the project and configure Authentication and Firestore for the app.",
            project_id="project-2",
            owner="João Henrique",
            due_date="2025-01-19",
            status=TaskStatus.TODO,
            priority=TaskPriority.HIGH,
            tags=["Firebase", "Setup"],
            checklist=[
                ChecklistItem("Create project", True),
                ChecklistItem("Configure auth", False),
                ChecklistItem("Create initial collections", False),
            ],
        ),
        Task(
            id="task-4",
            title="Launch landing page",
            description="Responsive landing page with testimonials and a dynamic CTA.",
            project_id="project-3",
            owner="Diego Rocha",
            due_date="2025-01-14",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.HIGH,
            tags=["Next.js", "Design"],
            checklist=[
                ChecklistItem("Desktop layout", True),
                ChecklistItem("Mobile version", False),
            ],
        ),
        Task(
            id="task-5",
            title="Email nurture automation",
            description="Post-download nurture automation with conditional segmentation.",
            project_id="project-3",
            owner="Renata Alves",
            due_date="2025-01-13",
            status=TaskStatus.DONE,
            priority=TaskPriority.MEDIUM,
            tags=["Automation", "Email"],
            checklist=[
                ChecklistItem("Write emails", True),
                ChecklistItem("Configure segmentation", True),
            ],
        ),
        Task(
            id="task-6",
            title="Retrospective meeting",
            description="Review the design system deliveries and collect lessons learned.",
            project_id="project-4",
            owner="Camila Rocha",
            due_date="2025-01-10",
            status=TaskStatus.DONE,
            priority=TaskPriority.LOW,
            tags=["Retrospective"],
            checklist=[
                ChecklistItem("Prepare agenda", True),
                ChecklistItem("Document insights", True),
            ],
        ),
        Task(
            id="task-7",
            title="Analytics setup",
            description="Integrate GA4 and custom events for the corporate portal.",
            project_id="project-1",
            owner="Lucas Nascimento",
            due_date="2025-01-22",
            status=TaskStatus.TODO,
            priority=TaskPriority.MEDIUM,
            tags=["Analytics"],
            checklist=[
                ChecklistItem("Map events", False),
                ChecklistItem("Configure tag manager", False),
            ],
        ),
    ]


def sample_clients() -> List[Client]:
    return [
        Client(
            id="client-1",
            name="Ana Ribeiro",
            company="PixelWave Studio",
            email="ana@pixelwave.example",
            phone="+55 11 4000-1001",
            status=ClientStatus.ACTIVE,
            deals=["deal-1", "deal-5"],
            created_at=_ts("2024-06-03T10:00:00"),
            industry="Media",
        ),
        Client(
            id="client-2",
            name="Rafael Costa",
            company="Aurora Apps",
            email="rafael@aurora.example",
            phone="+55 21 4000-2002",
            status=ClientStatus.ACTIVE,
            deals=["deal-2", "deal-6"],
            created_at=_ts("2024-08-19T14:30:00"),
            industry="Software",
        ),
        Client(
            id="client-3",
            name="Beatriz Nunes",
            company="GrowthSpark Digital",
            email="beatriz@growthspark.example",
            phone="+55 31 4000-3003",
            status=ClientStatus.POTENTIAL,
            deals=["deal-3", "deal-7"],
            created_at=_ts("2024-10-02T09:15:00"),
            industry="Marketing",
        ),
        Client(
            id="client-4",
            name="Thiago Almeida",
            company="UXFlow Agency",
            email="thiago@uxflow.example",
            phone="+55 41 4000-4004",
            status=ClientStatus.INACTIVE,
            deals=["deal-4", "deal-8"],
            created_at=_ts("2024-03-11T16:45:00"),
            industry="Design",
            notes="Paused new work until Q3.",
        ),
    ]


def sample_deals() -> List[Deal]:
    return [
        Deal(id="deal-1", title="Portal phase 2", client_id="client-1", value=48000,
             stage=DealStage.PROSPECTING, owner="Mariana Lopes", probability=20,
             tags=["web"], updated_at=_ts("2025-01-08T12:00:00"), due_date="2025-02-28"),
        Deal(id="deal-2", title="Loyalty app MVP", client_id="client-2", value=120000,
             stage=DealStage.QUALIFICATION, owner="Gabriela Souza", probability=40,
             tags=["mobile", "crm"], updated_at=_ts("2025-01-09T09:30:00")),
        Deal(id="deal-3", title="Campaign retainer", client_id="client-3", value=36000,
             stage=DealStage.PROPOSAL, owner="Bruno Lima", probability=55,
             tags=["marketing"], updated_at=_ts("2025-01-10T15:10:00"), due_date="2025-01-31"),
        Deal(id="deal-4", title="Design system support", client_id="client-4", value=22000,
             stage=DealStage.NEGOTIATION, owner="Camila Rocha", probability=70,
             tags=["design"], updated_at=_ts("2025-01-06T11:20:00")),
        Deal(id="deal-5", title="Hosting and maintenance", client_id="client-1", value=18000,
             stage=DealStage.WON, owner="Lucas Nascimento", probability=100,
             tags=["ops"], updated_at=_ts("2024-12-20T17:00:00")),
        Deal(id="deal-6", title="Push notification module", client_id="client-2", value=15000,
             stage=DealStage.PROSPECTING, owner="João Henrique", probability=15,
             tags=["mobile"], updated_at=_ts("2025-01-11T08:45:00")),
        Deal(id="deal-7", title="Landing page bundle", client_id="client-3", value=9000,
             stage=DealStage.LOST, owner="Diego Rocha", probability=0,
             tags=["web"], updated_at=_ts("2024-12-15T10:00:00"),
             description="Client chose an in-house team."),
        Deal(id="deal-8", title="Accessibility audit", client_id="client-4", value=12000,
             stage=DealStage.QUALIFICATION, owner="Felipe Torres", probability=35,
             tags=["design", "a11y"], updated_at=_ts("2025-01-07T13:25:00")),
    ]
