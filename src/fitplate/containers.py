"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from fitplate.adapters.httpx_event_client import HttpxEventClient
from fitplate.adapters.supabase_daily_log_repository import (
    SupabaseDailyLogRepository,
)
from fitplate.adapters.supabase_food_library_repository import (
    SupabaseFoodLibraryRepository,
)
from fitplate.adapters.supabase_goal_repository import SupabaseGoalRepository
from fitplate.config import Settings
from fitplate.services.daily_logs import DailyLogService
from fitplate.services.goals import GoalSettingsService
from fitplate.services.log_store import LogStore
from fitplate.services.notifications import LoggingNotifier
from fitplate.services.reports import ReportService, ReportSessions


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    goal_service: GoalSettingsService
    log_store: LogStore
    daily_log_service: DailyLogService
    report_service: ReportService
    report_sessions: ReportSessions
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    daily_log_repository = SupabaseDailyLogRepository(supabase_client)
    goal_service = GoalSettingsService(SupabaseGoalRepository(supabase_client))

    notifier = LoggingNotifier()
    event_client: HttpxEventClient | None = None
    if resolved_settings.events_webhook_url:
        event_client = HttpxEventClient.create(resolved_settings.events_webhook_url)

    log_store = LogStore(
        repository=daily_log_repository,
        widget_exporter=event_client or notifier,
        goal_service=goal_service,
        timezone_name=resolved_settings.timezone,
    )
    daily_log_service = DailyLogService(
        repository=daily_log_repository,
        log_store=log_store,
        achievements=event_client or notifier,
        banners=notifier,
        health_sink=event_client or notifier,
        food_library=SupabaseFoodLibraryRepository(supabase_client),
        timezone_name=resolved_settings.timezone,
    )
    report_service = ReportService(
        repository=daily_log_repository,
        goal_service=goal_service,
        timezone_name=resolved_settings.timezone,
        min_report_days=resolved_settings.min_report_days,
        score_history_limit=resolved_settings.score_history_limit,
    )

    report_sessions = ReportSessions(report_service)

    async def close_resources() -> None:
        report_sessions.cancel_all()
        await log_store.close()
        if event_client is not None:
            await event_client.close()

    return AppContainer(
        settings=resolved_settings,
        goal_service=goal_service,
        log_store=log_store,
        daily_log_service=daily_log_service,
        report_service=report_service,
        report_sessions=report_sessions,
        close_resources=close_resources,
    )
