import queue

import pytest

from mission_control.config import StationConfig
from mission_control.errors import LinkLostError
from mission_control.navigation.dispatcher import Dispatcher
from mission_control.navigation.listener import NavigationListener
from mission_control.wireless.communicator import RobotCommunicator
from mission_control.wireless.transport import Transport


class RecordingListener(NavigationListener):
    """Keeps every event as a (name, args) tuple."""

    def __init__(self):
        self.events = []

    def named(self, name):
        return [args for event, args in self.events if event == name]

    def on_status_message(self, text):
        self.events.append(("status", (text,)))

    def on_pose_changed(self, x, y, heading):
        self.events.append(("pose", (x, y, heading)))

    def on_obstacle_detected(self, x, y):
        self.events.append(("obstacle", (x, y)))

    def on_wall_detected(self, x, y, category):
        self.events.append(("wall", (x, y, category)))

    def on_uncertainty_changed(self, x, y, sdev_x, sdev_y):
        self.events.append(("uncertainty", (x, y, sdev_x, sdev_y)))

    def on_bomb_captured(self, x, y):
        self.events.append(("bomb", (x, y)))

    def on_connection_state_changed(self, state):
        self.events.append(("connection", (state,)))


class FakeTransport(Transport):
    """In-memory transport; tests push inbound bytes with push()."""

    def __init__(self, accept=True):
        super().__init__()
        self.accept = accept
        self.open = False
        self.written = []
        self.write_ok = True
        # SerialTransport also reports a failed write through the callback.
        self.report_write_failure = False
        self.disconnect_calls = 0
        self.connect_calls = []
        self.inbound = queue.Queue()

    @property
    def is_open(self):
        return self.open

    def connect(self, identifier):
        self.connect_calls.append(identifier)
        self.open = self.accept
        return self.accept

    def disconnect(self):
        self.disconnect_calls += 1
        self.open = False

    def read_bytes(self, size):
        if not self.open:
            raise LinkLostError("closed")
        try:
            return self.inbound.get(timeout=0.01)
        except queue.Empty:
            return b""

    def push(self, data):
        self.inbound.put(data)

    def write_bytes(self, record):
        self.written.append(record)
        if not self.write_ok and self.report_write_failure:
            self._report_link_lost()
        return self.write_ok


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def dispatcher(listener):
    return Dispatcher([listener])


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def config():
    return StationConfig(read_timeout=0.01)


@pytest.fixture
def communicator(fake_transport, dispatcher, config):
    comm = RobotCommunicator(fake_transport, dispatcher, config)
    yield comm
    comm.disconnect()
