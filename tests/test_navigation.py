"""
Tests for the dispatcher and the navigation state it owns.
"""

import threading

import pytest

from mission_control.navigation.dispatcher import EXPLORE_COMPLETE, Dispatcher
from mission_control.navigation.listener import LoggingListener, NavigationListener
from mission_control.navigation.state import (ConnectionState, Obstacle, Pose,
                                              UncertaintyEstimate,
                                              WallCategory, WallSegment)
from mission_control.wireless.comm import (Crash, ExploreReceived, Goto,
                                           GrabBomb, Message, MessageType,
                                           PosUpdate, StdDev, Wall)


def test_initial_state(dispatcher):
    snap = dispatcher.snapshot()
    assert snap.pose == Pose(0.0, 0.0, 0.0)
    assert snap.obstacles == ()
    assert snap.walls == ()
    assert snap.uncertainty is None
    assert not snap.bomb_captured
    assert snap.connection == ConnectionState.DISCONNECTED


def test_pos_update_replaces_pose_and_notifies_once(dispatcher, listener):
    dispatcher.dispatch(PosUpdate(12.5, -4.0, 180.0).message())

    assert dispatcher.snapshot().pose == Pose(12.5, -4.0, 180.0)
    assert listener.events == [("pose", (12.5, -4.0, 180.0))]


def test_crashes_append_in_order(dispatcher, listener):
    for n in (1, 2, 3):
        dispatcher.dispatch(Crash(n, n).message())

    assert dispatcher.snapshot().obstacles == (Obstacle(1, 1), Obstacle(2, 2), Obstacle(3, 3))
    assert listener.named("obstacle") == [(1, 1), (2, 2), (3, 3)]


def test_walls_keep_their_category(dispatcher, listener):
    dispatcher.dispatch(Wall(1, 2, 0).message())
    dispatcher.dispatch(Wall(3, 4, 2).message())

    assert dispatcher.snapshot().walls == (
        WallSegment(1, 2, WallCategory.LEFT),
        WallSegment(3, 4, WallCategory.EXPLORE),
    )
    assert listener.named("wall")[1] == (3, 4, WallCategory.EXPLORE)


def test_wall_with_unknown_category_is_dropped(dispatcher, listener):
    assert not dispatcher.dispatch(Wall(1, 2, 9).message())
    assert dispatcher.snapshot().walls == ()
    assert listener.events == []
    assert dispatcher.ignored == 1


def test_std_dev_keeps_only_latest(dispatcher, listener):
    dispatcher.dispatch(StdDev(1, 1, 5, 5).message())
    dispatcher.dispatch(StdDev(2, 3, 4, 6).message())

    assert dispatcher.snapshot().uncertainty == UncertaintyEstimate(2, 3, 4, 6)
    assert listener.named("uncertainty") == [(1, 1, 5, 5), (2, 3, 4, 6)]


def test_explore_received_is_a_status_message(dispatcher, listener):
    before = dispatcher.snapshot()
    dispatcher.dispatch(ExploreReceived().message())
    assert listener.events == [("status", (EXPLORE_COMPLETE,))]
    assert dispatcher.snapshot() == before


def test_grab_bomb_ack_marks_capture_at_current_pose(dispatcher, listener):
    dispatcher.dispatch(PosUpdate(30.4, 19.6, 0.0).message())
    dispatcher.dispatch(GrabBomb().message())

    snap = dispatcher.snapshot()
    assert snap.bomb_captured
    assert snap.bomb_position == (30, 20)
    assert listener.named("bomb") == [(30, 20)]


def test_inbound_disconnect(dispatcher, listener):
    dispatcher.set_connection_state(ConnectionState.CONNECTED)

    dispatcher.dispatch(Message(MessageType.DISCONNECT))

    assert dispatcher.connection_state == ConnectionState.DISCONNECTED
    assert listener.named("connection")[-1] == (ConnectionState.DISCONNECTED,)


@pytest.mark.parametrize("msg_type", [
    MessageType.GOTO, MessageType.STOP, MessageType.SET_POSE, MessageType.FIX_POS,
    MessageType.ECHO, MessageType.ROTATE, MessageType.TRAVEL, MessageType.ROTATE_TO,
    MessageType.SCANNER_ROTATE, MessageType.SEND_MAP, MessageType.EXPLORE,
])
def test_commands_echoed_back_are_ignored(dispatcher, listener, msg_type):
    before = dispatcher.snapshot()
    message = Message(msg_type, (1.0,) * msg_type.arity)

    assert not dispatcher.dispatch(message)

    assert dispatcher.snapshot() == before
    assert listener.events == []
    assert not msg_type.is_telemetry


def test_failing_listener_does_not_stop_dispatch(listener):
    class Broken(NavigationListener):
        def on_obstacle_detected(self, x, y):
            raise RuntimeError("boom")

    dispatcher = Dispatcher([Broken(), listener])
    dispatcher.dispatch(Crash(1, 2).message())
    dispatcher.dispatch(Crash(3, 4).message())

    assert dispatcher.snapshot().obstacles == (Obstacle(1, 2), Obstacle(3, 4))
    assert listener.named("obstacle") == [(1, 2), (3, 4)]


def test_listener_can_read_state_during_notification(dispatcher):
    seen = []

    class Reader(NavigationListener):
        def on_obstacle_detected(self, x, y):
            seen.append(dispatcher.snapshot().obstacles[-1])

    dispatcher.add_listener(Reader())
    dispatcher.dispatch(Crash(5, 6).message())

    assert seen == [Obstacle(5, 6)]


def test_snapshot_never_sees_unnotified_append(dispatcher):
    notified = []
    mismatches = []

    class Counter(NavigationListener):
        def on_obstacle_detected(self, x, y):
            notified.append((x, y))

    dispatcher.add_listener(Counter())
    done = threading.Event()

    def reader():
        while not done.is_set():
            with dispatcher._lock:
                if len(dispatcher.snapshot().obstacles) != len(notified):
                    mismatches.append(True)

    thread = threading.Thread(target=reader)
    thread.start()
    for n in range(500):
        dispatcher.dispatch(Crash(n, n).message())
    done.set()
    thread.join()

    assert mismatches == []


def test_reset_session_clears_history(dispatcher, listener):
    dispatcher.dispatch(Crash(1, 1).message())
    dispatcher.dispatch(Wall(1, 1, 1).message())
    dispatcher.dispatch(GrabBomb().message())

    dispatcher.reset_session()

    snap = dispatcher.snapshot()
    assert snap.obstacles == () and snap.walls == ()
    assert not snap.bomb_captured
    assert listener.events[-1] == ("status", ("session history cleared",))


def test_set_connection_state_only_notifies_on_change(dispatcher, listener):
    dispatcher.set_connection_state(ConnectionState.DISCONNECTED)
    dispatcher.set_connection_state(ConnectionState.CONNECTING)
    assert listener.named("connection") == [(ConnectionState.CONNECTING,)]


def test_remove_listener(dispatcher, listener):
    dispatcher.remove_listener(listener)
    dispatcher.dispatch(Goto(1.0, 1.0).message())
    dispatcher.dispatch(Crash(1, 1).message())
    assert listener.events == []


def test_logging_listener_logs_events(caplog):
    dispatcher = Dispatcher([LoggingListener()])
    with caplog.at_level("INFO", logger="mission_control.navigation.listener"):
        dispatcher.dispatch(Wall(1, 2, 1).message())
        dispatcher.dispatch(PosUpdate(1.0, 2.0, 90.0).message())
    assert "Wall (RIGHT) at (1, 2)" in caplog.text
    assert "Pose: x=1.00 y=2.00 heading=90.0" in caplog.text
