# internhub/services/analytics.py
"""
Analytics Service.

Read-only rollups for the admin dashboard. Rows are pulled from the Row Store
(optionally bounded by a date range) and reduced with the helpers in
``aggregation``.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from internhub.core import config
from internhub.core.exceptions import TransientIO
from internhub.infra.base import RowStore
from internhub.models.analytics import (
    ActivityAnalytics,
    ApplicationAnalytics,
    GuestInsights,
    InternshipAnalytics,
    PerformanceMetrics,
    RankedItem,
    RoleInsights,
    SoftwareHouseInsights,
    StudentInsights,
    UniversityInsights,
    UserAnalytics,
)
from internhub.services.aggregation import (
    average_duration,
    date_range_start,
    distribution_by,
    growth_percentage,
    monthly_trend,
    rate,
    round_half_up,
    top_n,
)

logger = logging.getLogger(__name__)

ACTIVITY_LIMIT = 1000
APPROVABLE_ROLES = ["guest", "university", "software_house"]


ORGANIZATION_FIRST = ("organization_name", "full_name")
PERSON_FIRST = ("full_name", "organization_name", "email")


def _display_name(profile: Optional[Dict[str, Any]], fields=ORGANIZATION_FIRST) -> str:
    if not profile:
        return "Unknown"
    for field in fields:
        if profile.get(field):
            return profile[field]
    return "Unknown"


def _ranked(rows: List[Dict[str, Any]], key_field: str, name_of, n: int = 10) -> List[RankedItem]:
    counts = distribution_by(rows, lambda r: r.get(key_field))
    return [RankedItem(id=str(key), name=name_of(key), count=count) for key, count in top_n(counts, n)]


class AnalyticsService:

    def __init__(self, store: RowStore, now: Optional[datetime] = None):
        self.store = store
        self.now = now

    async def _rows(self, table: str, date_field: Optional[str] = None, range_key: str = "all", **filters):
        since = date_range_start(range_key, self.now) if date_field else None
        return await self.store.query_rows(table, filters=filters or None, since=since, date_field=date_field)

    async def _profiles_by_id(self) -> Dict[str, Dict[str, Any]]:
        return {p.get("id"): p for p in await self._rows(config.PROFILES_TABLE)}

    async def user_analytics(self, range_key: str = "6months") -> UserAnalytics:
        profiles = await self._rows(config.PROFILES_TABLE, "created_at", range_key)

        status_distribution = {"active": 0, "inactive": 0, "approved": 0, "pending": 0, "rejected": 0}
        for p in profiles:
            status_distribution["active" if p.get("is_active") else "inactive"] += 1
            if p.get("approval_status") in ("approved", "pending", "rejected"):
                status_distribution[p["approval_status"]] += 1

        role_distribution = distribution_by(profiles, lambda p: p.get("role"))
        growth_trend = monthly_trend(profiles, "created_at", now=self.now)
        role_growth = {
            role: monthly_trend([p for p in profiles if p.get("role") == role], "created_at", now=self.now)
            for role in role_distribution
        }

        pending_users = await self._rows(config.PROFILES_TABLE, role=APPROVABLE_ROLES, approval_status="pending")
        pending_internships = await self._rows(config.INTERNSHIPS_TABLE, status="pending")

        # student counts per university, over every enrolment
        students = await self._rows(config.STUDENTS_TABLE)
        everyone = await self._profiles_by_id()
        top_universities = _ranked(students, "university_id", lambda key: _display_name(everyone.get(key)))

        return UserAnalytics(
            total_users=len(profiles),
            growth_percentage=growth_percentage(growth_trend),
            role_distribution=role_distribution,
            status_distribution=status_distribution,
            growth_trend=growth_trend,
            role_growth=role_growth,
            top_universities=top_universities,
            pending_approvals=len(pending_users) + len(pending_internships),
        )

    async def internship_analytics(self, range_key: str = "6months") -> InternshipAnalytics:
        internships = await self._rows(config.INTERNSHIPS_TABLE, "created_at", range_key)
        profiles = await self._profiles_by_id()

        status_counts = {"pending": 0, "approved": 0, "rejected": 0}
        status_counts.update(distribution_by(internships, lambda i: i.get("status")))

        avg_approval = average_duration(
            (i.get("created_at"), i.get("approved_at")) for i in internships if i.get("approved_at")
        )

        return InternshipAnalytics(
            total_internships=len(internships),
            status_counts=status_counts,
            approval_rate=rate(status_counts["approved"], len(internships)),
            avg_approval_time=round_half_up(avg_approval),
            trends=monthly_trend(internships, "created_at", now=self.now),
            top_software_houses=_ranked(
                internships, "software_house_id", lambda key: _display_name(profiles.get(key)),
            ),
        )

    async def application_analytics(self, range_key: str = "6months") -> ApplicationAnalytics:
        applications = await self._rows(config.APPLICATIONS_TABLE, "applied_at", range_key)
        profiles = await self._profiles_by_id()
        internships = {i.get("id"): i for i in await self._rows(config.INTERNSHIPS_TABLE)}

        status_counts = {"pending": 0, "accepted": 0, "rejected": 0}
        status_counts.update(distribution_by(applications, lambda a: a.get("status")))

        role_counts = {"student": 0, "guest": 0}
        for a in applications:
            role = (profiles.get(a.get("user_id")) or {}).get("role")
            if role in role_counts:
                role_counts[role] += 1

        avg_response = average_duration(
            (a.get("applied_at"), a.get("updated_at")) for a in applications if a.get("status") != "pending"
        )

        return ApplicationAnalytics(
            total_applications=len(applications),
            status_counts=status_counts,
            acceptance_rate=rate(status_counts["accepted"], len(applications)),
            role_counts=role_counts,
            avg_response_time=round_half_up(avg_response),
            trends=monthly_trend(applications, "applied_at", now=self.now),
            top_internships=_ranked(
                applications, "internship_id",
                lambda key: (internships.get(key) or {}).get("title") or "Unknown",
            ),
        )

    async def activity_analytics(self, range_key: str = "6months") -> ActivityAnalytics:
        source = config.ACTIVITY_LOGS_TABLE
        try:
            activities = await self._rows(config.ACTIVITY_LOGS_TABLE, "timestamp", range_key)
        except TransientIO as e:
            logger.warning("activity log unavailable, using admin log: %s", e.message)
            activities = []

        if not activities:
            source = config.ADMIN_LOGS_TABLE
            activities = [
                {**a, "actor_id": a.get("admin_id"), "role": "admin"}
                for a in await self._rows(config.ADMIN_LOGS_TABLE, "timestamp", range_key)
            ]

        # newest first, then cap
        activities = list(reversed(activities))[:ACTIVITY_LIMIT]
        profiles = await self._profiles_by_id()

        role_of = lambda a: a.get("role") or "admin"
        role_counts = distribution_by(activities, role_of)

        return ActivityAnalytics(
            source=source,
            total_activities=len(activities),
            action_counts=distribution_by(activities, lambda a: a.get("action")),
            role_counts=role_counts,
            activity_trend=monthly_trend(activities, "timestamp", now=self.now),
            role_activity_trend={
                role: monthly_trend([a for a in activities if role_of(a) == role], "timestamp", now=self.now)
                for role in role_counts
            },
            top_active_users=_ranked(
                activities, "actor_id", lambda key: _display_name(profiles.get(key), PERSON_FIRST),
            ),
        )

    async def role_insights(self, range_key: str = "6months") -> RoleInsights:
        """
        Per-role activity. Student applications and software house postings
        honour the range; enrolments, CVs and guest figures are all-time.
        """
        ids_by_role: Dict[str, set] = {}
        for p in await self._rows(config.PROFILES_TABLE):
            ids_by_role.setdefault(p.get("role"), set()).add(p.get("id"))
        student_ids = ids_by_role.get("student", set())
        sh_ids = ids_by_role.get("software_house", set())
        uni_ids = ids_by_role.get("university", set())
        guest_ids = ids_by_role.get("guest", set())

        recent_applications = await self._rows(config.APPLICATIONS_TABLE, "applied_at", range_key)
        applications = await self._rows(config.APPLICATIONS_TABLE)
        enrolments = await self._rows(config.STUDENTS_TABLE)

        student_apps = [a for a in recent_applications if a.get("user_id") in student_ids]
        cvs = [cv for cv in await self._rows(config.CV_FORMS_TABLE) if cv.get("user_id") in student_ids]

        postings = [
            i for i in await self._rows(config.INTERNSHIPS_TABLE, "created_at", range_key)
            if i.get("software_house_id") in sh_ids
        ]
        posting_ids = {i.get("id") for i in postings}

        uni_students = [s for s in enrolments if s.get("university_id") in uni_ids]
        uni_student_users = {s.get("user_id") for s in uni_students}

        return RoleInsights(
            student=StudentInsights(
                total=len(student_ids),
                applications_submitted=len(student_apps),
                applications_accepted=sum(1 for a in student_apps if a.get("status") == "accepted"),
                cv_completion_rate=rate(sum(1 for cv in cvs if cv.get("is_complete")), len(cvs)),
            ),
            software_house=SoftwareHouseInsights(
                total=len(sh_ids),
                internships_posted=len(postings),
                internships_approved=sum(1 for i in postings if i.get("status") == "approved"),
                applications_received=sum(1 for a in applications if a.get("internship_id") in posting_ids),
            ),
            university=UniversityInsights(
                total=len(uni_ids),
                students_registered=len(uni_students),
                student_application_rate=rate(
                    sum(1 for a in applications if a.get("user_id") in uni_student_users), len(uni_students),
                ),
            ),
            guest=GuestInsights(
                total=len(guest_ids),
                applications_submitted=sum(1 for a in applications if a.get("user_id") in guest_ids),
                # guests later enrolled by a university
                conversion_to_student=len(guest_ids & {s.get("user_id") for s in enrolments}),
            ),
        )

    async def performance_metrics(self, range_key: str = "6months") -> PerformanceMetrics:
        candidates = await self._rows(config.PROFILES_TABLE, "created_at", range_key, role=APPROVABLE_ROLES)
        internships = await self._rows(config.INTERNSHIPS_TABLE, "created_at", range_key)
        everyone = await self._rows(config.PROFILES_TABLE)

        avg_user = round_half_up(average_duration(
            (p.get("created_at"), p.get("updated_at"))
            for p in candidates if p.get("approval_status") == "approved"
        ))
        avg_internship = round_half_up(average_duration(
            (i.get("created_at"), i.get("approved_at")) for i in internships if i.get("approved_at")
        ))

        total = len(everyone)
        engagement = rate(sum(1 for p in everyone if p.get("is_active")), total)
        conversion = rate(sum(1 for p in everyone if p.get("approval_status") == "approved"), total)
        health = round_half_up(
            engagement * 0.4
            + conversion * 0.3
            + max(0, 100 - avg_user / 24) * 0.3
        )

        return PerformanceMetrics(
            avg_user_approval_time=avg_user,
            avg_internship_approval_time=avg_internship,
            engagement_rate=engagement,
            conversion_rate=conversion,
            health_score=health,
        )
