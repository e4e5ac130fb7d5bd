"""
Tests for the Qt listener bridge and the GUI entry point.

Widgets are not created here; only QtCore is exercised so the tests run
without a display.
"""

import pytest

QtCore = pytest.importorskip("PyQt5.QtCore")

from mission_control.config import StationConfig  # noqa: E402
from mission_control.gui import main as gui_main  # noqa: E402
from mission_control.navigation.dispatcher import Dispatcher  # noqa: E402
from mission_control.navigation.state import ConnectionState  # noqa: E402
from mission_control.wireless.comm import Crash, PosUpdate, Wall  # noqa: E402


@pytest.fixture(scope="module")
def qt_app():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


def test_listener_reemits_events_as_signals(qt_app):
    bridge = gui_main.QtNavigationListener()
    received = []
    bridge.pose_changed.connect(lambda x, y, h: received.append(("pose", x, y, h)))
    bridge.obstacle_detected.connect(lambda x, y: received.append(("crash", x, y)))
    bridge.wall_detected.connect(lambda x, y, c: received.append(("wall", x, y, c)))
    bridge.connection_state_changed.connect(lambda s: received.append(("link", s)))

    dispatcher = Dispatcher([bridge])
    dispatcher.dispatch(PosUpdate(1.5, 2.5, 90.0).message())
    dispatcher.dispatch(Crash(3, 4).message())
    dispatcher.dispatch(Wall(5, 6, 2).message())
    dispatcher.set_connection_state(ConnectionState.CONNECTING)

    assert received == [
        ("pose", 1.5, 2.5, 90.0),
        ("crash", 3, 4),
        ("wall", 5, 6, 2),
        ("link", "CONNECTING"),
    ]


def test_status_and_capture_signals(qt_app):
    bridge = gui_main.QtNavigationListener()
    received = []
    bridge.status_message.connect(received.append)
    bridge.bomb_captured.connect(lambda x, y: received.append((x, y)))
    bridge.uncertainty_changed.connect(lambda *args: received.append(args))

    bridge.on_status_message("explore complete")
    bridge.on_bomb_captured(7, 8)
    bridge.on_uncertainty_changed(1, 2, 3, 4)

    assert received == ["explore complete", (7, 8), (1, 2, 3, 4)]


def test_build_station_wires_components():
    dispatcher, communicator, issuer = gui_main.build_station(StationConfig(baud_rate=57600))

    assert communicator.dispatcher is dispatcher
    assert issuer.communicator is communicator
    assert communicator.transport.baud_rate == 57600
    assert communicator.state == ConnectionState.DISCONNECTED


def test_list_ports_prints_and_exits(monkeypatch, capsys):
    monkeypatch.setattr(gui_main, "available_ports", lambda: ["/dev/ttyUSB0 - radio"])

    assert gui_main.main(["--list-ports"]) == 0

    assert capsys.readouterr().out.strip() == "/dev/ttyUSB0 - radio"
