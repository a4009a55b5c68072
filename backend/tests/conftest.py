import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "true")

import pytest

from fakes import FakeStore
from utils import cloudinary as image_store
from utils import notifications


def pytest_configure(config):
    config.addinivalue_line("markers", "real_notifications: run with the real notification hook")


class Recorder:
    def __init__(self):
        self.notifications = []
        self.image_cleanups = []

    def notify(self, event, recipient, payload):
        self.notifications.append((event, recipient, payload))

    def schedule_image_cleanup(self, public_ids):
        if public_ids:
            self.image_cleanups.append(list(public_ids))

    def events(self):
        return [e for e, _, _ in self.notifications]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture(autouse=True)
def hooks(request, monkeypatch):
    recorder = Recorder()
    if request.node.get_closest_marker("real_notifications"):
        return recorder

    monkeypatch.setattr(notifications, "notify", recorder.notify)
    monkeypatch.setattr(image_store, "schedule_image_cleanup", recorder.schedule_image_cleanup)
    return recorder
