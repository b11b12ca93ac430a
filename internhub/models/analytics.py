# internhub/models/analytics.py
from typing import Dict, List, Optional
from pydantic import BaseModel


class TrendBucket(BaseModel):
    month: str   # YYYY-MM
    label: str   # short month name
    count: int = 0


class RankedItem(BaseModel):
    id: Optional[str] = None
    name: str = "Unknown"
    count: int = 0


class UserAnalytics(BaseModel):
    total_users: int
    growth_percentage: int
    role_distribution: Dict[str, int]
    status_distribution: Dict[str, int]
    growth_trend: List[TrendBucket]
    role_growth: Dict[str, List[TrendBucket]]
    top_universities: List[RankedItem]
    pending_approvals: int


class InternshipAnalytics(BaseModel):
    total_internships: int
    status_counts: Dict[str, int]
    approval_rate: int
    avg_approval_time: int
    trends: List[TrendBucket]
    top_software_houses: List[RankedItem]


class ApplicationAnalytics(BaseModel):
    total_applications: int
    status_counts: Dict[str, int]
    acceptance_rate: int
    role_counts: Dict[str, int]
    avg_response_time: int
    trends: List[TrendBucket]
    top_internships: List[RankedItem]


class ActivityAnalytics(BaseModel):
    source: str
    total_activities: int
    action_counts: Dict[str, int]
    role_counts: Dict[str, int]
    activity_trend: List[TrendBucket]
    role_activity_trend: Dict[str, List[TrendBucket]]
    top_active_users: List[RankedItem]


class PerformanceMetrics(BaseModel):
    avg_user_approval_time: int
    avg_internship_approval_time: int
    engagement_rate: int
    conversion_rate: int
    health_score: int


class StudentInsights(BaseModel):
    total: int
    applications_submitted: int
    applications_accepted: int
    cv_completion_rate: int


class SoftwareHouseInsights(BaseModel):
    total: int
    internships_posted: int
    internships_approved: int
    applications_received: int


class UniversityInsights(BaseModel):
    total: int
    students_registered: int
    student_application_rate: int


class GuestInsights(BaseModel):
    total: int
    applications_submitted: int
    conversion_to_student: int


class RoleInsights(BaseModel):
    student: StudentInsights
    software_house: SoftwareHouseInsights
    university: UniversityInsights
    guest: GuestInsights
