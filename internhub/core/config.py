# internhub/core/config.py
import os

# .env is loaded by internhub.main before this module is imported

ROW_STORE_BACKEND = os.getenv("ROW_STORE_BACKEND", "azure")
AZURE_STORAGE_CONNECTION_STRING = os.getenv("AZURE_STORAGE_CONNECTION_STRING")

NOTIFICATIONS_TABLE = os.getenv("NOTIFICATIONS_TABLE", "notifications")
PROFILES_TABLE = os.getenv("PROFILES_TABLE", "profiles")
INTERNSHIPS_TABLE = os.getenv("INTERNSHIPS_TABLE", "internships")
APPLICATIONS_TABLE = os.getenv("APPLICATIONS_TABLE", "applications")
ACTIVITY_LOGS_TABLE = os.getenv("ACTIVITY_LOGS_TABLE", "activitylogs")
ADMIN_LOGS_TABLE = os.getenv("ADMIN_LOGS_TABLE", "adminlogs")
STUDENTS_TABLE = os.getenv("STUDENTS_TABLE", "students")
CV_FORMS_TABLE = os.getenv("CV_FORMS_TABLE", "cvforms")

SB_CONN_STR = os.getenv("AZURE_SERVICE_BUS_CONNECTION_STRING")
SB_QUEUE = os.getenv("AZURE_SERVICE_BUS_QUEUE_NAME", "notifications-queue")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-please-32b")
JWT_ALG = os.getenv("JWT_ALG", "HS256")

NOTIFICATION_PAGE_SIZE = int(os.getenv("NOTIFICATION_PAGE_SIZE", "100"))
NOTIFICATION_LIST_TTL = int(os.getenv("NOTIFICATION_LIST_TTL", "30"))
UNREAD_COUNT_TTL = int(os.getenv("UNREAD_COUNT_TTL", "10"))
STORE_RETRIES = int(os.getenv("STORE_RETRIES", "2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
