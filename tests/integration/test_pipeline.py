import asyncio
from datetime import datetime, timedelta

import pytest

from slowquery_sentinel import (
    InMemoryTemplateStore,
    ManualInput,
    NotificationSettings,
    NotifyDecision,
    QueryTemplate,
    Severity,
    SlowQueryPipeline,
    SlowQueryRecord,
    TemplateAnalyzer,
    TemplateRegistry,
    TemplateStatus,
    fingerprint,
)
from slowquery_sentinel.errors import BlockingError, RetryPolicy
from slowquery_sentinel.output import NotificationOutput

T0 = datetime(2024, 6, 1, 9, 0, 0)
ORDERS_SQL = "SELECT * FROM orders WHERE customer_id = {}"


class MockNotificationOutput:
    name: str = "mock"

    def __init__(self, delay: float = 0.0) -> None:
        self.notifications = []
        self.delay = delay

    async def send(self, notification) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.notifications.append(notification)


class FailingOutput:
    name: str = "failing"

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    async def send(self, notification) -> None:
        self.calls += 1
        raise self.exc


class StubAnalyzer:
    """Raises ``error`` on the first ``failures`` calls (every call if None)."""

    def __init__(
        self, error=None, failures=None, report="add an index on orders(customer_id)"
    ) -> None:
        self.error = error
        self.failures = failures
        self.report = report
        self.calls = 0

    async def analyze(self, template: QueryTemplate) -> str:
        self.calls += 1
        if self.error is not None and (self.failures is None or self.calls <= self.failures):
            raise self.error
        return self.report


class Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


async def no_sleep(delay: float) -> None:
    return None


def record(customer_id=42, query_time=4.0, **kwargs):
    return SlowQueryRecord(sql=ORDERS_SQL.format(customer_id), query_time=query_time, **kwargs)


def build_pipeline(records, outputs, clock=None, store=None, **kwargs):
    store = store if store is not None else InMemoryTemplateStore()
    pipeline = SlowQueryPipeline(
        ManualInput(records),
        TemplateRegistry(store),
        outputs,
        settings=NotificationSettings(
            severity_threshold=3.0, cooldown_hours=1, degradation_multiplier=1.5
        ),
        retry_policy=RetryPolicy(max_retries=3, base_delay=0.0, max_jitter=0.0),
        clock=clock or Clock(T0),
        sleep=no_sleep,
        **kwargs,
    )
    return pipeline, store


@pytest.fixture(autouse=True)
def default_severity_env(monkeypatch):
    for level in ("MEDIUM", "HIGH", "CRITICAL"):
        monkeypatch.delenv(f"SENTINEL_SEVERITY_{level}", raising=False)


def test_mock_implements_protocol():
    assert isinstance(MockNotificationOutput(), NotificationOutput)


def test_stub_analyzer_implements_protocol():
    assert isinstance(StubAnalyzer(), TemplateAnalyzer)


async def test_first_contact_notifies():
    output = MockNotificationOutput()
    pipeline, store = build_pipeline([record(query_time=4.0, db_name="shop")], [output])

    assert await pipeline.run() == 1

    assert len(output.notifications) == 1
    notification = output.notifications[0]
    assert notification.reason is NotifyDecision.FIRST_CONTACT
    assert notification.severity is Severity.MEDIUM
    assert notification.template_text == "SELECT * FROM orders WHERE customer_id = ?"
    assert notification.db_name == "shop"
    assert notification.occurrence_count == 1
    assert notification.created_at == T0

    template = await store.get(notification.fingerprint)
    assert template.status is TemplateStatus.SENT
    assert template.last_notified_at == T0
    assert template.last_notified_avg_time == 4.0


async def test_repeat_within_cooldown_is_suppressed():
    output = MockNotificationOutput()
    pipeline, store = build_pipeline(
        [record(42, 4.0), record(7, 4.2), record(1001, 3.9)], [output]
    )

    assert await pipeline.run() == 1

    template = await store.get(output.notifications[0].fingerprint)
    assert template.occurrence_count == 3
    assert template.last_notified_avg_time == 4.0


async def test_degradation_escalates_inside_cooldown():
    output = MockNotificationOutput()
    pipeline, _ = build_pipeline([record(42, 4.0), record(7, 20.0)], [output])

    assert await pipeline.run() == 2

    first, second = output.notifications
    assert first.reason is NotifyDecision.FIRST_CONTACT
    assert second.reason is NotifyDecision.DEGRADED
    assert second.avg_query_time == 12.0
    assert second.severity is Severity.CRITICAL


async def test_notifies_again_after_cooldown():
    output = MockNotificationOutput()
    clock = Clock(T0)
    pipeline, _ = build_pipeline([], [output], clock=clock)

    assert await pipeline.process(record(42, 4.0)) is not None
    clock.advance(minutes=30)
    assert await pipeline.process(record(7, 4.0)) is None
    clock.advance(minutes=30)
    notification = await pipeline.process(record(8, 4.0))

    assert notification is not None
    assert notification.reason is NotifyDecision.COOLDOWN_ELAPSED
    assert len(output.notifications) == 2


async def test_below_threshold_is_not_notified():
    output = MockNotificationOutput()
    pipeline, store = build_pipeline([record(42, 1.0)], [output])

    assert await pipeline.run() == 0

    template = await store.get(fingerprint(ORDERS_SQL.format(42)).hash)
    assert template.status is TemplateStatus.SENT
    assert template.last_notified_at is None
    assert output.notifications == []


async def test_template_crossing_threshold_later_is_first_contact():
    output = MockNotificationOutput()
    pipeline, _ = build_pipeline([record(42, 1.0), record(7, 20.0)], [output])

    assert await pipeline.run() == 1
    assert output.notifications[0].reason is NotifyDecision.FIRST_CONTACT
    assert output.notifications[0].avg_query_time == 10.5


async def test_in_flight_templates_are_abandoned_on_startup():
    fp = fingerprint(ORDERS_SQL.format(1))
    stale = QueryTemplate(
        fingerprint=fp.hash,
        template_text=fp.template,
        first_seen_at=T0 - timedelta(days=1),
        last_seen_at=T0 - timedelta(days=1),
        status=TemplateStatus.WAITING,
    )
    store = InMemoryTemplateStore([stale])
    output = MockNotificationOutput()
    pipeline, _ = build_pipeline([record(42, 8.0)], [output], store=store)

    assert await pipeline.run() == 0

    assert stale.status is TemplateStatus.ABANDONED
    assert stale.occurrence_count == 1
    assert output.notifications == []


async def test_housekeeping_can_be_skipped():
    fp = fingerprint(ORDERS_SQL.format(1))
    pending = QueryTemplate(
        fingerprint=fp.hash,
        template_text=fp.template,
        first_seen_at=T0,
        last_seen_at=T0,
    )
    output = MockNotificationOutput()
    pipeline, _ = build_pipeline(
        [record(42, 8.0)], [output], store=InMemoryTemplateStore([pending])
    )

    assert await pipeline.run(housekeeping=False) == 1
    assert pending.status is TemplateStatus.SENT


async def test_blank_sql_is_skipped():
    output = MockNotificationOutput()
    pipeline, store = build_pipeline(
        [SlowQueryRecord(sql="   ", query_time=9.0), SlowQueryRecord(sql="", query_time=9.0)],
        [output],
    )

    assert await pipeline.run() == 0
    assert len(store) == 0


async def test_sample_sql_is_masked():
    output = MockNotificationOutput()
    sql = "SELECT * FROM users WHERE phone = '13812345678'"
    pipeline, _ = build_pipeline([SlowQueryRecord(sql=sql, query_time=5.0)], [output])

    await pipeline.run()

    notification = output.notifications[0]
    assert notification.sample_sql == "SELECT * FROM users WHERE phone = '138****5678'"
    assert "13812345678" not in notification.template_text
    assert notification.severity is Severity.HIGH


async def test_same_shape_different_secrets_share_a_template():
    output = MockNotificationOutput()
    pipeline, store = build_pipeline(
        [
            SlowQueryRecord(sql="SELECT * FROM users WHERE phone = 13812345678", query_time=4.0),
            SlowQueryRecord(sql="SELECT * FROM users WHERE phone = 15900001111", query_time=4.0),
        ],
        [output],
    )

    assert await pipeline.run() == 1
    assert len(store) == 1


class TestAnalysis:
    async def test_report_is_attached_and_computed_once(self):
        output = MockNotificationOutput()
        analyzer = StubAnalyzer()
        pipeline, _ = build_pipeline(
            [record(42, 4.0), record(7, 20.0)], [output], analyzer=analyzer
        )

        assert await pipeline.run() == 2

        assert analyzer.calls == 1
        assert all(
            n.analysis_report == "add an index on orders(customer_id)"
            for n in output.notifications
        )

    async def test_transient_failures_are_retried(self):
        output = MockNotificationOutput()
        analyzer = StubAnalyzer(TimeoutError("slow model"), failures=2)
        pipeline, _ = build_pipeline([record()], [output], analyzer=analyzer)

        await pipeline.run()

        assert analyzer.calls == 3
        assert output.notifications[0].analysis_report == "add an index on orders(customer_id)"

    async def test_exhausted_retries_degrade_to_no_report(self):
        output = MockNotificationOutput()
        analyzer = StubAnalyzer(ConnectionResetError("peer reset"))
        pipeline, _ = build_pipeline([record()], [output], analyzer=analyzer)

        assert await pipeline.run() == 1

        assert analyzer.calls == 4
        assert output.notifications[0].analysis_report is None

    async def test_permanent_failure_degrades_without_retry(self):
        output = MockNotificationOutput()
        analyzer = StubAnalyzer(RuntimeError("token limit exceeded for this model"))
        pipeline, _ = build_pipeline([record()], [output], analyzer=analyzer)

        assert await pipeline.run() == 1

        assert analyzer.calls == 1
        assert output.notifications[0].analysis_report is None

    async def test_blocking_failure_stops_the_run(self):
        output = MockNotificationOutput()
        analyzer = StubAnalyzer(RuntimeError("401 Unauthorized: invalid api key"))
        pipeline, _ = build_pipeline([record(), record(7)], [output], analyzer=analyzer)

        with pytest.raises(BlockingError) as excinfo:
            await pipeline.run()

        assert "check the API key" in str(excinfo.value)
        assert analyzer.calls == 1
        assert output.notifications == []


class TestDelivery:
    async def test_failing_output_does_not_block_others(self):
        failing = FailingOutput(ConnectionResetError("reset"))
        output = MockNotificationOutput()
        pipeline, _ = build_pipeline([record()], [failing, output])

        assert await pipeline.run() == 1

        assert failing.calls == 1
        assert len(output.notifications) == 1

    async def test_undelivered_notification_is_retried_on_next_sighting(self):
        failing = FailingOutput(ConnectionResetError("reset"))
        pipeline, store = build_pipeline([], [failing])

        assert await pipeline.process(record(42, 4.0)) is None

        template = await store.get(fingerprint(ORDERS_SQL.format(42)).hash)
        assert template.last_notified_at is None
        assert template.status is TemplateStatus.WAITING

        assert await pipeline.process(record(7, 4.0)) is None
        assert failing.calls == 2

    async def test_concurrent_records_for_one_template_notify_once(self):
        output = MockNotificationOutput(delay=0.01)
        pipeline, store = build_pipeline([], [output])

        results = await asyncio.gather(
            *(pipeline.process(record(i, 4.0)) for i in range(10))
        )

        assert sum(r is not None for r in results) == 1
        assert len(output.notifications) == 1
        template = await store.get(output.notifications[0].fingerprint)
        assert template.occurrence_count == 10


class FlakyStore(InMemoryTemplateStore):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error
        self.failures = 1

    async def get(self, fingerprint):
        if self.failures:
            self.failures -= 1
            raise self.error
        return await super().get(fingerprint)


async def test_record_failure_is_logged_and_skipped():
    output = MockNotificationOutput()
    store = FlakyStore(ValueError("corrupt template row"))
    pipeline, _ = build_pipeline([record(1, 4.0), record(2, 4.0)], [output], store=store)

    assert await pipeline.run() == 1
    assert output.notifications[0].occurrence_count == 1


async def test_blocking_store_failure_stops_the_run():
    store = FlakyStore(Exception(1146, "Table 'sentinel.query_templates' doesn't exist"))
    pipeline, _ = build_pipeline([record(1, 4.0), record(2, 4.0)], [], store=store)

    with pytest.raises(BlockingError):
        await pipeline.run()
