"""Report loading, meal score persistence and cancellable report sessions."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from fitplate.domain.days import day_key, parse_day_key, start_of_day
from fitplate.domain.logs import DailyAggregate, FoodItem
from fitplate.domain.reports import (
    DateValuePoint,
    MealScore,
    ReportState,
    ReportStatus,
    WellnessScore,
)
from fitplate.domain.sleep import SleepSample
from fitplate.services import analytics
from fitplate.services.goals import GoalSettingsService
from fitplate.services.log_store import DailyLogRepository, decode_document

_logger = logging.getLogger(__name__)

RECOMMENDATION_WINDOW_DAYS = 30


@dataclass
class ReportService:
    """Loads historical windows and turns them into reports."""

    repository: DailyLogRepository
    goal_service: GoalSettingsService
    timezone_name: str = "UTC"
    min_report_days: int = 1
    score_history_limit: int = 30

    async def load_window(
        self, user_id: str, start: date, end: date
    ) -> list[DailyAggregate]:
        """Return decoded daily logs for start <= day < end."""
        rows = await self.repository.list_range(user_id, start, end)
        window = []
        for row in rows:
            day = parse_day_key(str(row.get("log_date", ""))[:10])
            if day is None:
                _logger.warning("Skipping daily log row without a valid date")
                continue
            window.append(decode_document(user_id, day, row))
        return window

    async def build(
        self,
        user_id: str,
        start: date,
        end: date,
        timeframe: str,
        sleep_samples: Sequence[SleepSample] | None = None,
    ) -> ReportState:
        """Build a report state for a window, never raising on fetch errors."""
        try:
            window = await self.load_window(user_id, start, end)
            goals = await self.goal_service.get_goals(user_id)
        except Exception as exc:
            _logger.exception("Failed to load report window for %s", user_id)
            return ReportState(
                status=ReportStatus.ERROR,
                message=f"Could not load report data: {exc}",
            )

        days_logged = len(analytics.valid_days(window))
        if days_logged < self.min_report_days:
            return ReportState(
                status=ReportStatus.INSUFFICIENT_DATA,
                message=(
                    f"Log at least {self.min_report_days} day(s) to see this report; "
                    f"{days_logged} logged so far."
                ),
            )
        sleep = (
            analytics.sleep_report(sleep_samples, self.timezone_name)
            if sleep_samples
            else None
        )
        report = analytics.build_report(window, goals, timeframe, sleep=sleep)
        return ReportState(status=ReportStatus.READY, report=report)

    async def score_day(self, user_id: str, day: date) -> MealScore | None:
        """Compute the meal score for a day and store its summary."""
        target = start_of_day(day, self.timezone_name)
        document = await self.repository.fetch(user_id, target)
        aggregate = (
            decode_document(user_id, target, document)
            if document is not None
            else DailyAggregate.empty(user_id, target)
        )
        goals = await self.goal_service.get_goals(user_id)
        score = analytics.meal_score(aggregate, goals)
        if score is None:
            return None
        try:
            await self.repository.save_summary(
                user_id,
                target,
                {
                    "meal_score": score.grade,
                    "meal_overall_score": score.overall_score,
                    "calorie_score": score.calorie_score,
                    "macro_score": score.macro_score,
                    "quality_score": score.quality_score,
                },
            )
        except Exception:
            _logger.exception("Failed to save meal score for %s", day_key(target))
        return score

    async def grade_history(self, user_id: str) -> list[DateValuePoint]:
        """Return stored grades as chart points, oldest first."""
        rows = await self.repository.list_summaries(user_id, self.score_history_limit)
        points = []
        for row in rows:
            day = parse_day_key(str(row.get("summary_date", ""))[:10])
            if day is None:
                continue
            grade = row.get("meal_score")
            points.append(
                DateValuePoint(
                    day,
                    analytics.grade_value(grade if isinstance(grade, str) else None),
                )
            )
        return sorted(points, key=lambda point: point.day)

    async def recommend_foods(
        self, user_id: str, meal_name: str, today: date
    ) -> list[FoodItem]:
        """Suggest foods often logged under a meal name in the last 30 days."""
        end = today + timedelta(days=1)
        start = end - timedelta(days=RECOMMENDATION_WINDOW_DAYS + 1)
        window = await self.load_window(user_id, start, end)
        return analytics.recommend_foods(window, meal_name)

    async def wellness(  # noqa: PLR0913
        self,
        user_id: str,
        day: date,
        sleep_samples: Sequence[SleepSample] = (),
        resting_heart_rate: float | None = None,
        hrv: float | None = None,
    ) -> WellnessScore:
        """Blend the day's meal score with last night's sleep and recovery."""
        score = await self.score_day(user_id, day)
        sleep = analytics.sleep_report(sleep_samples, self.timezone_name)
        return analytics.wellness_score(
            score,
            sleep.last_night_sleep_score if sleep else None,
            resting_heart_rate=resting_heart_rate,
            hrv=hrv,
        )


@dataclass
class ReportSession:
    """Keeps the displayed report for one user and cancels superseded loads."""

    service: ReportService
    user_id: str
    state: ReportState = field(default_factory=lambda: ReportState(ReportStatus.IDLE))
    _task: asyncio.Task[ReportState] | None = field(
        default=None, init=False, repr=False
    )

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    async def request(
        self,
        start: date,
        end: date,
        timeframe: str,
        sleep_samples: Sequence[SleepSample] | None = None,
    ) -> ReportState | None:
        """Load a window, cancelling any load still in flight.

        Returns None when a newer request superseded this one; the displayed
        state is left untouched in that case.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()
        task = asyncio.ensure_future(
            self.service.build(self.user_id, start, end, timeframe, sleep_samples)
        )
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            _logger.debug("Report request for %s superseded", timeframe)
            return None
        if self._task is not task:
            return None
        self.state = result
        return result

    def cancel(self) -> None:
        """Cancel the in-flight load, keeping the displayed state."""
        if self._task is not None and not self._task.done():
            self._task.cancel()


@dataclass
class ReportSessions:
    """One report session per user; a new request cancels that user's previous one."""

    service: ReportService
    _sessions: dict[str, ReportSession] = field(
        default_factory=dict, init=False, repr=False
    )

    def for_user(self, user_id: str) -> ReportSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = ReportSession(service=self.service, user_id=user_id)
            self._sessions[user_id] = session
        return session

    def cancel_all(self) -> None:
        for session in self._sessions.values():
            session.cancel()
