# tests/test_celery_tasks.py
import pytest
from celery import states
from kombu.exceptions import OperationalError

from habitpulse.workers import tasks
from habitpulse.workers.tasks import (
    celery_app,
    deliver_notification_task,
    enqueue_notification_delivery,
    repair_progress_task,
)


@pytest.fixture(autouse=True)
def celery_eager():
    celery_app.conf.task_always_eager = True
    yield
    celery_app.conf.task_always_eager = False


def test_deliver_notification_task_runs(monkeypatch):
    seen = []

    async def dummy_logic(notification_id, task_id=None):
        seen.append(notification_id)
        return "OK"

    monkeypatch.setattr("habitpulse.workers.tasks._run_deliver_notification_logic", dummy_logic)
    result = deliver_notification_task.delay(7)

    assert result.status == states.SUCCESS
    assert result.get() == "OK"
    assert seen == [7]


def test_repair_progress_task_runs(monkeypatch):
    async def dummy_logic(user_id, task_id=None):
        return {"user_id": user_id, "awarded": []}

    monkeypatch.setattr("habitpulse.workers.tasks._run_repair_progress_logic", dummy_logic)
    result = repair_progress_task.delay("u1")

    assert result.get() == {"user_id": "u1", "awarded": []}


def test_enqueue_notification_delivery(monkeypatch):
    queued = []
    monkeypatch.setattr(tasks.deliver_notification_task, "delay", lambda notification_id: queued.append(notification_id))

    assert enqueue_notification_delivery([1, 2, 3]) == 3
    assert queued == [1, 2, 3]


def test_enqueue_survives_unavailable_broker(monkeypatch):
    def broker_down(notification_id):
        raise OperationalError("Error 111 connecting to redis:6379. Connection refused.")

    monkeypatch.setattr(tasks.deliver_notification_task, "delay", broker_down)

    assert enqueue_notification_delivery([1, 2]) == 0
