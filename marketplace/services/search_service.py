"""Natural-language search orchestration: AI interpreter first, rule-based fallback second"""

import logging
import time

from marketplace.schemas.search import SearchActivityRecord, SearchFilters, SearchOutcome
from marketplace.services.activity_log_service import ActivityLogService, get_activity_log_service
from marketplace.services.fallback_parser import fallback_parse
from marketplace.services.interpreter_gateway import InterpreterGateway, get_interpreter_gateway

logger = logging.getLogger(__name__)


class SearchService:
    """
    Turns a raw query into a SearchOutcome.

    Search Flow:
    1. Ask the interpreter gateway for structured filters
    2. If it fails for any reason, run the deterministic fallback parser
    3. Dispatch one activity record (not awaited)
    4. Return filters, interpretation and which path produced them

    search() always returns; nothing from the gateway or the log sink reaches
    the caller.
    """

    def __init__(self, gateway: InterpreterGateway, activity_log: ActivityLogService):
        self.gateway = gateway
        self.activity_log = activity_log

    async def search(
        self,
        query: str,
        user_id: str | None = None,
        organization_id: str | None = None,
    ) -> SearchOutcome:
        start = time.perf_counter()

        try:
            interpreted = await self.gateway.interpret(query)
        except Exception as e:
            logger.error(f"Interpreter gateway raised unexpectedly: {type(e).__name__}: {e}")
            interpreted = None

        if interpreted is not None:
            outcome = SearchOutcome(
                filters=interpreted.filters,
                interpretation=interpreted.interpretation,
                ai_success=True,
                fallback_used=False,
            )
        else:
            fallback = fallback_parse(query)
            outcome = SearchOutcome(
                filters=fallback.filters,
                interpretation=fallback.interpretation,
                ai_success=False,
                fallback_used=True,
            )

        latency_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            f"🔍 Search completed: query={query!r} "
            f"filters={outcome.filters.model_dump(by_alias=True, exclude_none=True)} "
            f"ai_success={outcome.ai_success} fallback_used={outcome.fallback_used} "
            f"duration={latency_ms}ms"
        )

        self._record_activity(query, outcome, latency_ms, user_id, organization_id)
        return outcome

    def _record_activity(
        self,
        query: str,
        outcome: SearchOutcome,
        latency_ms: int,
        user_id: str | None,
        organization_id: str | None,
    ) -> None:
        record = SearchActivityRecord(
            search_query=query,
            ai_filters=outcome.filters,
            ai_success=outcome.ai_success,
            fallback_applied=outcome.fallback_used,
            user_id=user_id,
            organization_id=organization_id,
            latency_ms=latency_ms,
        )
        try:
            self.activity_log.dispatch(record)
        except Exception as e:
            logger.error(f"Failed to dispatch search activity: {type(e).__name__}: {e}")

    def record_failure(
        self,
        query: str,
        latency_ms: int,
        user_id: str | None = None,
        organization_id: str | None = None,
    ) -> None:
        """Record a search whose product lookup failed after interpretation."""
        record = SearchActivityRecord(
            search_query=query,
            ai_filters=SearchFilters(),
            ai_success=False,
            fallback_applied=True,
            user_id=user_id,
            organization_id=organization_id,
            status_code=500,
            latency_ms=latency_ms,
        )
        try:
            self.activity_log.dispatch(record)
        except Exception as e:
            logger.error(f"Failed to dispatch search activity: {type(e).__name__}: {e}")


def get_search_service() -> SearchService:
    """Search service wired to the shared gateway and activity log"""
    return SearchService(
        gateway=get_interpreter_gateway(),
        activity_log=get_activity_log_service(),
    )
