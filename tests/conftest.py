"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import date

import pytest

from fitplate.config import Settings
from fitplate.containers import AppContainer
from fitplate.domain.days import day_key
from fitplate.domain.logs import FoodItem, LoggedExercise
from fitplate.domain.totals import WidgetSnapshot
from fitplate.services.daily_logs import DailyLogService, FoodLibraryRepository
from fitplate.services.goals import GoalRepository, GoalSettingsService
from fitplate.services.log_store import DailyLogRepository, LogStore, SnapshotHandler
from fitplate.services.notifications import BannerSeverity, MutationKind
from fitplate.services.reports import ReportService, ReportSessions

USER_ID = "user-1"


@dataclass
class FakeSubscription:
    """Subscription handle recording whether it was closed."""

    user_id: str
    day: date
    handler: SnapshotHandler
    closed: bool = False

    async def close(self) -> None:
        self.closed = True


@dataclass
class InMemoryDailyLogRepository(DailyLogRepository):
    """In-memory document store for tests.

    Every await yields to the event loop so concurrent callers interleave.
    """

    documents: dict[tuple[str, str], dict[str, object]] = field(default_factory=dict)
    summaries: dict[tuple[str, str], dict[str, object]] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    saved: list[dict[str, object]] = field(default_factory=list)
    journal_ops: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    fail_writes: bool = False
    fail_reads: bool = False

    async def subscribe(
        self, user_id: str, day: date, on_snapshot: SnapshotHandler
    ) -> FakeSubscription:
        subscription = FakeSubscription(user_id=user_id, day=day, handler=on_snapshot)
        self.subscriptions.append(subscription)
        await on_snapshot(self._copy(user_id, day))
        return subscription

    async def fetch(self, user_id: str, day: date) -> dict[str, object] | None:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise RuntimeError("read failed")
        return self._copy(user_id, day)

    async def save(self, document: dict[str, object]) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RuntimeError("write failed")
        key = (str(document["user_id"]), str(document["log_date"]))
        self.documents[key] = copy.deepcopy(document)
        self.saved.append(copy.deepcopy(document))

    async def append_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.journal_ops.append(("append", entry))
        document = self._document(user_id, day)
        entries = document.setdefault("journal_entries", []) or []
        if entry not in entries:
            entries.append(copy.deepcopy(entry))
        document["journal_entries"] = entries

    async def remove_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.journal_ops.append(("remove", entry))
        document = self._document(user_id, day)
        entries = document.get("journal_entries") or []
        document["journal_entries"] = [e for e in entries if e != entry]

    async def list_range(
        self, user_id: str, start: date, end: date
    ) -> list[dict[str, object]]:
        if self.fail_reads:
            raise RuntimeError("range query failed")
        lower, upper = day_key(start), day_key(end)
        return [
            copy.deepcopy(document)
            for (owner, key), document in sorted(self.documents.items())
            if owner == user_id and lower <= key < upper
        ]

    async def save_summary(
        self, user_id: str, day: date, summary: dict[str, object]
    ) -> None:
        key = (user_id, day_key(day))
        merged = {**self.summaries.get(key, {}), **summary}
        merged["summary_date"] = day_key(day)
        self.summaries[key] = merged

    async def list_summaries(self, user_id: str, limit: int) -> list[dict[str, object]]:
        rows = [row for (owner, _), row in self.summaries.items() if owner == user_id]
        rows.sort(key=lambda row: str(row["summary_date"]), reverse=True)
        return rows[:limit]

    def put(self, user_id: str, day: date, document: dict[str, object]) -> None:
        self.documents[(user_id, day_key(day))] = {
            **document,
            "user_id": user_id,
            "log_date": day_key(day),
        }

    async def push(self, subscription: FakeSubscription) -> None:
        """Deliver the stored document to a subscription, as a late snapshot."""
        await subscription.handler(self._copy(subscription.user_id, subscription.day))

    def _document(self, user_id: str, day: date) -> dict[str, object]:
        key = (user_id, day_key(day))
        if key not in self.documents:
            self.documents[key] = {"user_id": user_id, "log_date": key[1], "meals": []}
        return self.documents[key]

    def _copy(self, user_id: str, day: date) -> dict[str, object] | None:
        document = self.documents.get((user_id, day_key(day)))
        return copy.deepcopy(document) if document is not None else None


@dataclass
class InMemoryGoalRepository(GoalRepository):
    """In-memory goal settings for tests."""

    rows: dict[str, dict[str, object]] = field(default_factory=dict)

    async def get_goals(self, user_id: str) -> dict[str, object] | None:
        return self.rows.get(user_id)


@dataclass
class InMemoryFoodLibraryRepository(FoodLibraryRepository):
    """In-memory recent and custom foods for tests."""

    recent: dict[tuple[str, str], dict[str, object]] = field(default_factory=dict)
    custom: dict[tuple[str, str], dict[str, object]] = field(default_factory=dict)
    fail_writes: bool = False

    async def record_recent_food(self, user_id: str, row: dict[str, object]) -> None:
        self._check_writes()
        self.recent[(user_id, str(row["food_id"]))] = copy.deepcopy(row)

    async def list_recent_foods(
        self, user_id: str, limit: int
    ) -> list[dict[str, object]]:
        rows = [row for (owner, _), row in self.recent.items() if owner == user_id]
        rows.sort(key=lambda row: str(row["logged_at"]), reverse=True)
        return rows[:limit]

    async def save_custom_food(self, user_id: str, row: dict[str, object]) -> None:
        self._check_writes()
        self.custom[(user_id, str(row["food_id"]))] = copy.deepcopy(row)

    async def delete_custom_food(self, user_id: str, food_id: str) -> None:
        self._check_writes()
        self.custom.pop((user_id, food_id), None)

    async def list_custom_foods(self, user_id: str) -> list[dict[str, object]]:
        rows = [row for (owner, _), row in self.custom.items() if owner == user_id]
        return sorted(rows, key=lambda row: str(row["name"]))

    def _check_writes(self) -> None:
        if self.fail_writes:
            raise RuntimeError("write failed")


@dataclass
class RecordingNotifier:
    """Records every side-effect notification."""

    updates: list[tuple[str, MutationKind, date]] = field(default_factory=list)
    banners: list[tuple[str, str, BannerSeverity]] = field(default_factory=list)
    snapshots: list[WidgetSnapshot] = field(default_factory=list)
    foods: list[FoodItem] = field(default_factory=list)
    exercises: list[LoggedExercise] = field(default_factory=list)
    water: list[tuple[date, float]] = field(default_factory=list)

    async def log_updated(self, user_id: str, kind: MutationKind, day: date) -> None:
        self.updates.append((user_id, kind, day))

    async def show(self, title: str, message: str, severity: BannerSeverity) -> None:
        self.banners.append((title, message, severity))

    async def export(self, snapshot: WidgetSnapshot) -> None:
        self.snapshots.append(snapshot)

    async def save_food(self, user_id: str, item: FoodItem) -> None:
        self.foods.append(item)

    async def save_exercise(self, user_id: str, exercise: LoggedExercise) -> None:
        self.exercises.append(exercise)

    async def save_water(self, user_id: str, day: date, ounces: float) -> None:
        self.water.append((day, ounces))

    @property
    def errors(self) -> list[tuple[str, str, BannerSeverity]]:
        return [banner for banner in self.banners if banner[2] == BannerSeverity.ERROR]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def repository() -> InMemoryDailyLogRepository:
    return InMemoryDailyLogRepository()


@pytest.fixture
def goal_repository() -> InMemoryGoalRepository:
    return InMemoryGoalRepository(
        rows={USER_ID: {"calories": 2000, "protein": 150, "carbs": 200, "fats": 65}}
    )


@pytest.fixture
def goal_service(goal_repository: InMemoryGoalRepository) -> GoalSettingsService:
    return GoalSettingsService(goal_repository)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def food_library() -> InMemoryFoodLibraryRepository:
    return InMemoryFoodLibraryRepository()


@pytest.fixture
def log_store(
    repository: InMemoryDailyLogRepository,
    notifier: RecordingNotifier,
    goal_service: GoalSettingsService,
) -> LogStore:
    return LogStore(
        repository=repository, widget_exporter=notifier, goal_service=goal_service
    )


@pytest.fixture
def daily_log_service(
    repository: InMemoryDailyLogRepository,
    log_store: LogStore,
    notifier: RecordingNotifier,
    food_library: InMemoryFoodLibraryRepository,
) -> DailyLogService:
    return DailyLogService(
        repository=repository,
        log_store=log_store,
        achievements=notifier,
        banners=notifier,
        health_sink=notifier,
        food_library=food_library,
    )


@pytest.fixture
def report_service(
    repository: InMemoryDailyLogRepository, goal_service: GoalSettingsService
) -> ReportService:
    return ReportService(repository=repository, goal_service=goal_service)


@pytest.fixture
def container(
    settings: Settings,
    goal_service: GoalSettingsService,
    log_store: LogStore,
    daily_log_service: DailyLogService,
    report_service: ReportService,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        goal_service=goal_service,
        log_store=log_store,
        daily_log_service=daily_log_service,
        report_service=report_service,
        report_sessions=ReportSessions(report_service),
        close_resources=log_store.close,
    )
