"""
Admin dashboard rollups over seeded tables.
"""
from datetime import datetime, timezone

import pytest

from internhub.core import config
from internhub.core.exceptions import TransientIO
from internhub.infra.memory_store import MemoryRowStore
from internhub.services.analytics import AnalyticsService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

PROFILES = [
    {"id": "adm", "role": "admin", "full_name": "Ada Admin", "is_active": True,
     "approval_status": "approved", "created_at": "2026-06-01T00:00:00Z", "updated_at": "2026-06-01T00:00:00Z"},
    {"id": "sh1", "role": "software_house", "organization_name": "Acme Soft", "is_active": True,
     "approval_status": "approved", "created_at": "2026-09-01T00:00:00Z", "updated_at": "2026-09-02T00:00:00Z"},
    {"id": "sh2", "role": "software_house", "organization_name": "Beta Labs", "is_active": False,
     "approval_status": "pending", "created_at": "2026-10-02T00:00:00Z"},
    {"id": "st1", "role": "student", "full_name": "Sam Student", "is_active": True,
     "created_at": "2026-10-05T00:00:00Z"},
    {"id": "gu1", "role": "guest", "email": "guest@example.com", "is_active": True,
     "approval_status": "approved", "created_at": "2026-10-06T00:00:00Z", "updated_at": "2026-10-07T00:00:00Z"},
    {"id": "old", "role": "student", "is_active": False, "created_at": "2024-01-01T00:00:00Z"},
]

INTERNSHIPS = [
    {"id": "i1", "title": "Backend intern", "software_house_id": "sh1", "status": "approved",
     "created_at": "2026-09-10T00:00:00Z", "approved_at": "2026-09-10T12:00:00Z"},
    {"id": "i2", "title": "Frontend intern", "software_house_id": "sh1", "status": "approved",
     "created_at": "2026-10-01T00:00:00Z", "approved_at": "2026-10-02T12:00:00Z"},
    {"id": "i3", "title": "Data intern", "software_house_id": "sh2", "status": "pending",
     "created_at": "2026-10-10T00:00:00Z"},
]

APPLICATIONS = [
    {"id": "a1", "internship_id": "i1", "user_id": "st1", "status": "accepted",
     "applied_at": "2026-09-12T00:00:00Z", "updated_at": "2026-09-13T00:00:00Z"},
    {"id": "a2", "internship_id": "i1", "user_id": "gu1", "status": "rejected",
     "applied_at": "2026-10-01T00:00:00Z", "updated_at": "2026-10-01T12:00:00Z"},
    {"id": "a3", "internship_id": "i2", "user_id": "st1", "status": "pending",
     "applied_at": "2026-10-03T00:00:00Z"},
]

# university enrolments: st1 and gu1 at un1, an unknown student at un2
ENROLMENTS = [
    {"id": "e1", "user_id": "st1", "university_id": "un1"},
    {"id": "e2", "user_id": "gu1", "university_id": "un1"},
    {"id": "e3", "user_id": "st9", "university_id": "un2"},
]

UNIVERSITY = {"id": "un1", "role": "university", "organization_name": "North University",
              "full_name": "Registrar", "is_active": True, "created_at": "2026-10-08T00:00:00Z"}


@pytest.fixture
def analytics(store):
    store.seed(config.PROFILES_TABLE, PROFILES)
    store.seed(config.INTERNSHIPS_TABLE, INTERNSHIPS)
    store.seed(config.APPLICATIONS_TABLE, APPLICATIONS)
    store.seed(config.STUDENTS_TABLE, ENROLMENTS)
    return AnalyticsService(store, now=NOW)


@pytest.mark.asyncio
async def test_user_analytics(analytics):
    result = await analytics.user_analytics("6months")

    assert result.total_users == 5
    assert result.role_distribution == {"admin": 1, "software_house": 2, "student": 1, "guest": 1}
    assert result.status_distribution["active"] == 4
    assert result.status_distribution["inactive"] == 1
    assert result.status_distribution["pending"] == 1
    # Sep: 1, Oct: 3
    assert result.growth_trend[-1].count == 3
    assert result.growth_percentage == 200
    assert [b.count for b in result.role_growth["software_house"]][-2:] == [1, 1]
    # sh2 awaiting account approval + i3 awaiting review
    assert result.pending_approvals == 2


@pytest.mark.asyncio
async def test_user_analytics_all_time_includes_old_rows(analytics):
    result = await analytics.user_analytics("all")
    assert result.total_users == 6


@pytest.mark.asyncio
async def test_internship_analytics(analytics):
    result = await analytics.internship_analytics("6months")

    assert result.total_internships == 3
    assert result.status_counts == {"pending": 1, "approved": 2, "rejected": 0}
    assert result.approval_rate == 67
    # 12h and 36h
    assert result.avg_approval_time == 24
    assert [(t.id, t.name, t.count) for t in result.top_software_houses] == [
        ("sh1", "Acme Soft", 2),
        ("sh2", "Beta Labs", 1),
    ]


@pytest.mark.asyncio
async def test_application_analytics(analytics):
    result = await analytics.application_analytics("6months")

    assert result.total_applications == 3
    assert result.status_counts == {"pending": 1, "accepted": 1, "rejected": 1}
    assert result.acceptance_rate == 33
    assert result.role_counts == {"student": 2, "guest": 1}
    # 24h and 12h
    assert result.avg_response_time == 18
    assert result.top_internships[0].name == "Backend intern"
    assert result.top_internships[0].count == 2


@pytest.mark.asyncio
async def test_activity_prefers_activity_log(store, analytics):
    store.seed(config.ACTIVITY_LOGS_TABLE, [
        {"actor_id": "st1", "role": "student", "action": "apply", "timestamp": "2026-10-03T00:00:00Z"},
        {"actor_id": "st1", "role": "student", "action": "apply", "timestamp": "2026-10-04T00:00:00Z"},
        {"actor_id": "sh1", "role": "software_house", "action": "post", "timestamp": "2026-10-01T00:00:00Z"},
    ])
    store.seed(config.ADMIN_LOGS_TABLE, [
        {"admin_id": "adm", "action": "approve", "timestamp": "2026-10-02T00:00:00Z"},
    ])

    result = await analytics.activity_analytics("30days")

    assert result.source == config.ACTIVITY_LOGS_TABLE
    assert result.total_activities == 3
    assert result.action_counts == {"apply": 2, "post": 1}
    assert result.top_active_users[0].name == "Sam Student"


@pytest.mark.asyncio
async def test_activity_falls_back_to_admin_log(store, analytics, monkeypatch):
    store.seed(config.ADMIN_LOGS_TABLE, [
        {"admin_id": "adm", "action": "approve", "timestamp": "2026-10-02T00:00:00Z"},
        {"admin_id": "adm", "action": "reject", "timestamp": "2026-10-03T00:00:00Z"},
    ])

    result = await analytics.activity_analytics("30days")
    assert result.source == config.ADMIN_LOGS_TABLE
    assert result.role_counts == {"admin": 2}
    # newest first
    assert list(result.action_counts) == ["reject", "approve"]
    assert result.top_active_users[0].name == "Ada Admin"

    real_query = store.query_rows

    async def flaky(table, *args, **kwargs):
        if table == config.ACTIVITY_LOGS_TABLE:
            raise TransientIO("query activity")
        return await real_query(table, *args, **kwargs)

    monkeypatch.setattr(store, "query_rows", flaky)
    result = await analytics.activity_analytics("30days")
    assert result.source == config.ADMIN_LOGS_TABLE
    assert result.total_activities == 2


@pytest.mark.asyncio
async def test_performance_metrics(analytics):
    result = await analytics.performance_metrics("6months")

    # sh1 took 24h, gu1 took 24h
    assert result.avg_user_approval_time == 24
    assert result.avg_internship_approval_time == 24
    assert result.engagement_rate == 67
    assert result.conversion_rate == 50
    # 67*0.4 + 50*0.3 + (100 - 24/24)*0.3, about 71.5
    assert result.health_score in (71, 72)


@pytest.mark.asyncio
async def test_top_universities_by_enrolment(store, analytics):
    store.seed(config.PROFILES_TABLE, [UNIVERSITY])

    result = await analytics.user_analytics("6months")

    assert [(u.id, u.name, u.count) for u in result.top_universities] == [
        ("un1", "North University", 2),
        ("un2", "Unknown", 1),
    ]


@pytest.mark.asyncio
async def test_active_users_are_named_person_first(store, analytics):
    store.seed(config.PROFILES_TABLE, [UNIVERSITY])
    store.seed(config.ACTIVITY_LOGS_TABLE, [
        {"actor_id": "un1", "role": "university", "action": "upload", "timestamp": "2026-10-09T00:00:00Z"},
    ])

    result = await analytics.activity_analytics("30days")

    assert result.top_active_users[0].name == "Registrar"


@pytest.mark.asyncio
async def test_role_insights(store, analytics):
    store.seed(config.PROFILES_TABLE, [UNIVERSITY])
    store.seed(config.CV_FORMS_TABLE, [
        {"id": "cv1", "user_id": "st1", "is_complete": True},
        {"id": "cv2", "user_id": "old", "is_complete": False},
        {"id": "cv3", "user_id": "gu1", "is_complete": True},
    ])

    result = await analytics.role_insights("6months")

    assert result.student.total == 2
    assert result.student.applications_submitted == 2
    assert result.student.applications_accepted == 1
    # guests' CVs do not count
    assert result.student.cv_completion_rate == 50

    assert result.software_house.total == 2
    assert result.software_house.internships_posted == 3
    assert result.software_house.internships_approved == 2
    assert result.software_house.applications_received == 3

    assert result.university.total == 1
    assert result.university.students_registered == 2
    # 3 applications from 2 enrolled students
    assert result.university.student_application_rate == 150

    assert result.guest.total == 1
    assert result.guest.applications_submitted == 1
    assert result.guest.conversion_to_student == 1


@pytest.mark.asyncio
async def test_role_insights_on_empty_tables(change_feed):
    result = await AnalyticsService(MemoryRowStore(change_feed), now=NOW).role_insights("all")

    assert result.student.cv_completion_rate == 0
    assert result.university.student_application_rate == 0
    assert result.guest.conversion_to_student == 0
