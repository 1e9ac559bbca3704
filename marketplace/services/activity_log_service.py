"""Activity log sink: search and request records persisted to MongoDB"""

import asyncio
import logging
import re
from datetime import datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection

from marketplace.core.config import settings
from marketplace.core.mongo import get_mongo_db
from marketplace.schemas.activity_log import LogStats, RequestLogRecord
from marketplace.schemas.search import SearchActivityRecord

logger = logging.getLogger(__name__)

ActivityRecord = SearchActivityRecord | RequestLogRecord


class ActivityLogService:
    """
    Writes activity records and answers log queries.

    dispatch() is fire-and-forget: the write runs as a detached task and any
    failure is logged, never raised or retried.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection
        self._pending: set[asyncio.Task] = set()

    async def append(self, record: ActivityRecord) -> str:
        result = await self.collection.insert_one(record.to_document())
        return str(result.inserted_id)

    def dispatch(self, record: ActivityRecord) -> asyncio.Task:
        # Keep a strong reference so the task is not garbage collected mid-write
        task = asyncio.create_task(self._safe_append(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _safe_append(self, record: ActivityRecord) -> None:
        try:
            await self.append(record)
        except Exception as e:
            logger.error(f"Failed to log activity: {type(e).__name__}: {e}")

    async def drain(self) -> None:
        """Wait for every dispatched write to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def get_logs(
        self,
        page: int = 1,
        limit: int = 50,
        user_id: str | None = None,
        organization_id: str | None = None,
        method: str | None = None,
        status_code: int | None = None,
        route: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, Any]:
        """Paginated log listing, newest first."""
        query: dict[str, Any] = {}
        if user_id:
            query["user_id"] = user_id
        if organization_id:
            query["organization_id"] = organization_id
        if method:
            query["method"] = method
        if status_code:
            query["status_code"] = status_code
        if route:
            query["route"] = {"$regex": re.escape(route), "$options": "i"}
        if start_date or end_date:
            query["timestamp"] = {}
            if start_date:
                query["timestamp"]["$gte"] = start_date
            if end_date:
                query["timestamp"]["$lte"] = end_date

        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("timestamp", -1).skip(skip).limit(limit)
        logs = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)

        for log in logs:
            log["id"] = str(log.pop("_id"))

        return {
            "logs": logs,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": -(-total // limit),
            },
        }

    async def get_log_stats(self, organization_id: str | None = None) -> LogStats:
        base: dict[str, Any] = {"organization_id": organization_id} if organization_id else {}

        total_logs, error_logs, success_logs, search_logs = await asyncio.gather(
            self.collection.count_documents(base),
            self.collection.count_documents({**base, "status_code": {"$gte": 400}}),
            self.collection.count_documents({**base, "status_code": {"$lt": 400}}),
            self.collection.count_documents({**base, "search_query": {"$ne": None}}),
        )

        return LogStats(
            total_logs=total_logs,
            error_logs=error_logs,
            success_logs=success_logs,
            search_logs=search_logs,
            error_rate=(error_logs / total_logs) * 100 if total_logs > 0 else 0.0,
        )


_activity_log_service: ActivityLogService | None = None


def get_activity_log_service() -> ActivityLogService:
    """Shared service instance, bound to the connected database on first use"""
    global _activity_log_service
    if _activity_log_service is None:
        db = get_mongo_db()
        _activity_log_service = ActivityLogService(db[settings.LOGS_COLLECTION])
    return _activity_log_service


def reset_activity_log_service() -> None:
    global _activity_log_service
    _activity_log_service = None
