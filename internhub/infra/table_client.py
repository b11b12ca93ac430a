# internhub/infra/table_client.py
import json
import logging
from typing import Any, Dict, List, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableServiceClient

from internhub.core import config
from internhub.core.exceptions import TransientIO
from internhub.infra.base import RowStore
from internhub.infra.change_feed import ChangeFeed, DELETE, INSERT, UPDATE
from internhub.services.aggregation import parse_timestamp
from internhub.services.visibility import VisibilityRules

logger = logging.getLogger(__name__)

# columns the notification list actually needs; keeps payloads small
_NOTIFICATION_FIELDS = [
    "PartitionKey", "RowKey", "type", "title", "message", "metadata",
    "related_id", "related_type", "is_read", "created_at",
]


def entity_to_row(entity: Dict[str, Any]) -> Dict[str, Any]:
    """PartitionKey/RowKey entity -> notification row."""
    return {
        "id": entity["RowKey"],
        "user_id": entity["PartitionKey"],
        "type": entity.get("type"),
        "title": entity.get("title") or "",
        "message": entity.get("message"),
        "metadata": entity.get("metadata") or {},
        "related_id": entity.get("related_id"),
        "related_type": entity.get("related_type"),
        "is_read": bool(entity.get("is_read", False)),
        "created_at": entity.get("created_at"),
    }


def row_to_entity(row: Dict[str, Any]) -> Dict[str, Any]:
    metadata = row.get("metadata") or {}
    created_at = row.get("created_at")
    if hasattr(created_at, "isoformat"):
        created_at = created_at.isoformat()
    entity = {
        "PartitionKey": row["user_id"],
        "RowKey": row["id"],
        "type": row["type"],
        "title": row.get("title") or "",
        "message": row.get("message") or "",
        # Table Storage has no map type: metadata goes in as JSON, status is
        # lifted to a column so the count query can filter on it
        "metadata": json.dumps(metadata) if isinstance(metadata, dict) else metadata,
        "status": row.get("status") or (metadata.get("status") if isinstance(metadata, dict) else None),
        "is_read": bool(row.get("is_read", False)),
        "created_at": created_at,
    }
    if row.get("related_id"):
        entity["related_id"] = row["related_id"]
        entity["related_type"] = row.get("related_type")
    return {k: v for k, v in entity.items() if v is not None}


def build_filter(clauses: Dict[str, Any], params: Dict[str, Any]) -> str:
    """Equality clauses -> OData filter, values bound as @parameters."""
    parts = []
    for field, expected in clauses.items():
        if isinstance(expected, (list, tuple, set, frozenset)):
            options = []
            for value in expected:
                name = f"p{len(params)}"
                params[name] = value
                options.append(f"{field} eq @{name}")
            parts.append("(" + " or ".join(options) + ")" if options else "false")
        else:
            name = f"p{len(params)}"
            params[name] = expected
            parts.append(f"{field} eq @{name}")
    return " and ".join(parts)


def unread_filter(user_id: str, rules: VisibilityRules, params: Dict[str, Any]) -> str:
    """OData filter equivalent to ``is_visible`` + unread for one owner."""
    base = build_filter({"PartitionKey": user_id, "is_read": False}, params)
    type_parts = []
    for n_type, statuses in rules.items():
        clause = build_filter({"type": n_type}, params)
        if statuses is not None:
            clause = f"({clause} and {build_filter({'status': sorted(statuses)}, params)})"
        type_parts.append(clause)
    return f"{base} and (" + " or ".join(type_parts) + ")"


class TableRowStore(RowStore):
    """Row Store on Azure Table Storage. PartitionKey = owner, RowKey = id."""

    def __init__(self, conn_str: Optional[str] = None, changes: Optional[ChangeFeed] = None):
        super().__init__(changes, config.NOTIFICATIONS_TABLE)
        conn_str = conn_str or config.AZURE_STORAGE_CONNECTION_STRING
        if not conn_str:
            raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not configured")
        self._service = TableServiceClient.from_connection_string(conn_str=conn_str)

    def get_table_client(self, table_name: Optional[str] = None):
        return self._service.get_table_client(table_name=table_name or self.notifications_table)

    async def ensure_table(self):
        try:
            await self._service.create_table_if_not_exists(table_name=self.notifications_table)
        except AzureError as e:
            raise TransientIO("ensure_table", e)

    async def close(self):
        await self._service.close()

    async def _query(self, table_name: str, query_filter: str, params: Dict[str, Any], select=None):
        table_client = self.get_table_client(table_name)
        try:
            entities = table_client.query_entities(
                query_filter=query_filter,
                parameters=params,
                select=select,
            )
            return [dict(e) async for e in entities]
        except AzureError as e:
            raise TransientIO(f"query {table_name}", e)

    # -----------------------------
    # Notifications
    # -----------------------------
    async def query_notifications(self, user_id, type=None, is_read=None, limit=100):
        clauses: Dict[str, Any] = {"PartitionKey": user_id}
        if type is not None:
            clauses["type"] = type
        if is_read is not None:
            clauses["is_read"] = is_read
        params: Dict[str, Any] = {}
        entities = await self._query(
            self.notifications_table, build_filter(clauses, params), params, select=_NOTIFICATION_FIELDS,
        )

        rows = [entity_to_row(e) for e in entities]
        # the service orders by PartitionKey/RowKey only
        rows.sort(key=lambda r: parse_timestamp(r["created_at"]) or parse_timestamp("1970-01-01"), reverse=True)
        return rows[:limit] if limit else rows

    async def get_notification(self, notification_id):
        params: Dict[str, Any] = {}
        entities = await self._query(
            self.notifications_table, build_filter({"RowKey": notification_id}, params), params,
        )
        return entity_to_row(entities[0]) if entities else None

    async def insert_notification(self, row):
        table_client = self.get_table_client()
        try:
            await table_client.create_entity(entity=row_to_entity(row))
        except AzureError as e:
            raise TransientIO("insert notification", e)
        await self._publish(row["user_id"], INSERT, row["id"])

    async def mark_notification_read(self, notification_id, user_id):
        table_client = self.get_table_client()
        try:
            # MERGE keeps every other column untouched
            await table_client.update_entity(
                entity={"PartitionKey": user_id, "RowKey": notification_id, "is_read": True},
                mode=UpdateMode.MERGE,
            )
        except ResourceNotFoundError:
            return
        except AzureError as e:
            raise TransientIO("mark notification read", e)
        await self._publish(user_id, UPDATE, notification_id)

    async def delete_notification(self, notification_id, user_id):
        table_client = self.get_table_client()
        try:
            await table_client.delete_entity(partition_key=user_id, row_key=notification_id)
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise TransientIO("delete notification", e)
        await self._publish(user_id, DELETE, notification_id)
        return True

    async def count_unread(self, user_id, rules: VisibilityRules):
        if not rules:
            return 0
        params: Dict[str, Any] = {}
        entities = await self._query(
            self.notifications_table, unread_filter(user_id, rules, params), params, select=["RowKey"],
        )
        return len(entities)

    # -----------------------------
    # Analytics tables
    # -----------------------------
    async def query_rows(self, table, filters=None, since=None, date_field=None, limit=None):
        params: Dict[str, Any] = {}
        parts = []
        if filters:
            parts.append(build_filter(filters, params))
        if since and date_field:
            # timestamps are stored as ISO-8601 UTC strings, which sort lexically
            params["since"] = since
            parts.append(f"{date_field} ge @since")
        query_filter = " and ".join(parts) or "PartitionKey ne ''"

        rows = await self._query(table, query_filter, params)
        for row in rows:
            row.setdefault("id", row.get("RowKey"))
        if date_field:
            rows.sort(key=lambda r: parse_timestamp(r.get(date_field)) or parse_timestamp("1970-01-01"))
        return rows[:limit] if limit else rows
