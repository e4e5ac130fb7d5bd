"""
Entry point for the operator GUI.

The window issues commands through the CommandIssuer and shows what the robot
reports. Telemetry arrives on the receiver thread; `QtNavigationListener`
re-emits each event as a Qt signal so the widgets are only touched from the
GUI thread (queued connections), and the receiver never waits on drawing.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Sequence

from PyQt5.QtCore import QObject, Qt, pyqtSignal
from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import (QApplication, QComboBox, QGridLayout, QGroupBox,
                             QHBoxLayout, QLabel, QLineEdit, QMainWindow,
                             QMessageBox, QPlainTextEdit, QPushButton,
                             QVBoxLayout, QWidget)

from mission_control.config import BAUD_RATES, StationConfig, configure_logging
from mission_control.errors import LinkError, ValidationError
from mission_control.navigation.dispatcher import Dispatcher
from mission_control.navigation.listener import LoggingListener, NavigationListener
from mission_control.navigation.state import ConnectionState, WallCategory
from mission_control.wireless.communicator import RobotCommunicator
from mission_control.wireless.sender import AmountEntry, CommandIssuer, PointEntry, PoseEntry
from mission_control.wireless.transport import SerialTransport, available_ports

CONNECTED_STYLE = "QLabel { color: green; background-color: #e8f5e8; padding: 8px; border-radius: 5px; }"
CONNECTING_STYLE = "QLabel { color: #8a6d00; background-color: #fff8e1; padding: 8px; border-radius: 5px; }"
DISCONNECTED_STYLE = "QLabel { color: red; background-color: #ffebee; padding: 8px; border-radius: 5px; }"


class QtNavigationListener(QObject, NavigationListener):
    """Forwards dispatcher events to the GUI thread as Qt signals."""

    status_message = pyqtSignal(str)
    pose_changed = pyqtSignal(float, float, float)
    obstacle_detected = pyqtSignal(int, int)
    wall_detected = pyqtSignal(int, int, int)
    uncertainty_changed = pyqtSignal(int, int, int, int)
    bomb_captured = pyqtSignal(int, int)
    connection_state_changed = pyqtSignal(str)

    def on_status_message(self, text):
        self.status_message.emit(text)

    def on_pose_changed(self, x, y, heading):
        self.pose_changed.emit(x, y, heading)

    def on_obstacle_detected(self, x, y):
        self.obstacle_detected.emit(x, y)

    def on_wall_detected(self, x, y, category):
        self.wall_detected.emit(x, y, int(category))

    def on_uncertainty_changed(self, x, y, sdev_x, sdev_y):
        self.uncertainty_changed.emit(x, y, sdev_x, sdev_y)

    def on_bomb_captured(self, x, y):
        self.bomb_captured.emit(x, y)

    def on_connection_state_changed(self, state):
        self.connection_state_changed.emit(state.value)


class MissionControlWindow(QMainWindow):
    """
    Main window: link settings, command entry and a telemetry log.

    Grid drawing is left to whatever widget subscribes to the same listener
    signals; this window only lists the events.
    """

    def __init__(self, communicator: RobotCommunicator, issuer: CommandIssuer,
                 config: Optional[StationConfig] = None):
        super().__init__()
        self.communicator = communicator
        self.issuer = issuer
        self.config = config or StationConfig()
        self.setWindowTitle("Mission Control")
        self.setGeometry(100, 100, 900, 600)

        self.listener = QtNavigationListener()
        self.listener.status_message.connect(self.set_message)
        self.listener.pose_changed.connect(self.handle_pose)
        self.listener.obstacle_detected.connect(self.handle_obstacle)
        self.listener.wall_detected.connect(self.handle_wall)
        self.listener.uncertainty_changed.connect(self.handle_uncertainty)
        self.listener.bomb_captured.connect(self.handle_bomb)
        self.listener.connection_state_changed.connect(self.update_connection_status)

        self.init_ui()
        self.scan_serial_ports()

    def init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QHBoxLayout()
        central_widget.setLayout(main_layout)

        # Left side - telemetry log
        log_layout = QVBoxLayout()
        self.telemetry_log = QPlainTextEdit()
        self.telemetry_log.setReadOnly(True)
        self.telemetry_log.setMaximumBlockCount(2000)
        log_layout.addWidget(self.telemetry_log)

        self.status_label = QLabel("Status: Ready")
        self.status_label.setFont(QFont("Arial", 11))
        self.status_label.setStyleSheet("QLabel { background-color: #e0e0e0; padding: 8px; border-radius: 5px; }")
        log_layout.addWidget(self.status_label)
        main_layout.addLayout(log_layout, 3)

        # Right side - link and commands
        controls_layout = QVBoxLayout()
        controls_layout.addWidget(self._build_link_group())

        self.connection_label = QLabel("Link: Disconnected")
        self.connection_label.setFont(QFont("Arial", 10, QFont.Bold))
        self.connection_label.setAlignment(Qt.AlignCenter)
        self.connection_label.setStyleSheet(DISCONNECTED_STYLE)
        controls_layout.addWidget(self.connection_label)

        self.pose_label = QLabel("Pose: x=0.0 y=0.0 heading=0")
        self.pose_label.setAlignment(Qt.AlignCenter)
        controls_layout.addWidget(self.pose_label)

        controls_layout.addWidget(self._build_command_group())
        controls_layout.addStretch()
        main_layout.addLayout(controls_layout, 2)

    def _build_link_group(self):
        link_group = QGroupBox("Link Settings")
        link_layout = QGridLayout()

        link_layout.addWidget(QLabel("Port:"), 0, 0)
        self.port_combo = QComboBox()
        self.port_combo.setEditable(True)
        self.port_combo.setMinimumWidth(160)
        link_layout.addWidget(self.port_combo, 0, 1)

        link_layout.addWidget(QLabel("Baud:"), 1, 0)
        self.baud_combo = QComboBox()
        self.baud_combo.addItems([str(rate) for rate in BAUD_RATES])
        self.baud_combo.setCurrentText(str(self.config.baud_rate))
        link_layout.addWidget(self.baud_combo, 1, 1)

        self.connect_btn = QPushButton("Connect")
        self.connect_btn.clicked.connect(self.connect_to_robot)
        self.connect_btn.setStyleSheet("QPushButton { background-color: #4CAF50; color: white; padding: 6px; }")
        link_layout.addWidget(self.connect_btn, 2, 0)

        self.disconnect_btn = QPushButton("Disconnect")
        self.disconnect_btn.clicked.connect(self.disconnect_from_robot)
        self.disconnect_btn.setEnabled(False)
        self.disconnect_btn.setStyleSheet("QPushButton { background-color: #f44336; color: white; padding: 6px; }")
        link_layout.addWidget(self.disconnect_btn, 2, 1)

        link_group.setLayout(link_layout)
        return link_group

    def _build_command_group(self):
        command_group = QGroupBox("Commands")
        grid = QGridLayout()

        self.x_field = QLineEdit()
        self.y_field = QLineEdit()
        grid.addWidget(QLabel("X"), 0, 0)
        grid.addWidget(self.x_field, 0, 1)
        grid.addWidget(QLabel("Y"), 0, 2)
        grid.addWidget(self.y_field, 0, 3)
        grid.addWidget(self._button("Go To", self.send_goto), 1, 0, 1, 2)
        grid.addWidget(self._button("Map Left", self.send_map_left), 1, 2)
        grid.addWidget(self._button("Map Right", self.send_map_right), 1, 3)

        self.pose_x_field = QLineEdit()
        self.pose_y_field = QLineEdit()
        self.heading_field = QLineEdit()
        grid.addWidget(QLabel("Pose X"), 2, 0)
        grid.addWidget(self.pose_x_field, 2, 1)
        grid.addWidget(QLabel("Pose Y"), 2, 2)
        grid.addWidget(self.pose_y_field, 2, 3)
        grid.addWidget(QLabel("Heading"), 3, 0)
        grid.addWidget(self.heading_field, 3, 1)
        grid.addWidget(self._button("Set Pose", self.send_set_pose), 3, 2, 1, 2)

        self.amount_field = QLineEdit()
        grid.addWidget(QLabel("Amount"), 4, 0)
        grid.addWidget(self.amount_field, 4, 1)
        grid.addWidget(self._button("Travel", self._amount_command(self.issuer.travel)), 4, 2)
        grid.addWidget(self._button("Rotate", self._amount_command(self.issuer.rotate)), 4, 3)
        grid.addWidget(self._button("Rotate To", self._amount_command(self.issuer.rotate_to)), 5, 2)
        grid.addWidget(self._button("Explore", self._amount_command(self.issuer.explore)), 5, 3)

        self.echo_field = QLineEdit()
        grid.addWidget(QLabel("Echo angle"), 6, 0)
        grid.addWidget(self.echo_field, 6, 1)
        grid.addWidget(self._button("Echo", self.send_echo), 6, 2)
        grid.addWidget(self._button("Aim Scanner", self.send_scanner_rotate), 6, 3)

        grid.addWidget(self._button("Stop", lambda: self.run_command(self.issuer.stop)), 7, 0)
        grid.addWidget(self._button("Fix Pos", lambda: self.run_command(self.issuer.fix_position)), 7, 1)
        grid.addWidget(self._button("Grab Bomb", lambda: self.run_command(self.issuer.grab_bomb)), 7, 2, 1, 2)

        command_group.setLayout(grid)
        return command_group

    def _button(self, text: str, handler: Callable[[], None]) -> QPushButton:
        button = QPushButton(text)
        button.clicked.connect(lambda _checked=False: handler())
        return button

    def _amount_command(self, action):
        return lambda: self.run_command(action, AmountEntry(self.amount_field.text()))

    def keyPressEvent(self, event):
        if event.key() == Qt.Key_Escape:
            self.run_command(self.issuer.stop)
        event.accept()

    def run_command(self, action, *args):
        """Run one issuer call and report problems in the status line."""
        try:
            action(*args)
        except ValidationError as exc:
            self.set_message(str(exc))
        except LinkError as exc:
            self.set_message(f"Not sent: {exc}")

    def send_goto(self):
        self.run_command(self.issuer.goto, PointEntry(self.x_field.text(), self.y_field.text()))

    def send_map_left(self):
        self.run_command(self.issuer.map_left, PointEntry(self.x_field.text(), self.y_field.text()))

    def send_map_right(self):
        self.run_command(self.issuer.map_right, PointEntry(self.x_field.text(), self.y_field.text()))

    def send_set_pose(self):
        entry = PoseEntry(self.pose_x_field.text(), self.pose_y_field.text(), self.heading_field.text())
        self.run_command(self.issuer.set_pose, entry)

    def send_echo(self):
        self.run_command(self.issuer.echo, AmountEntry(self.echo_field.text()))

    def send_scanner_rotate(self):
        self.run_command(self.issuer.scanner_rotate, AmountEntry(self.echo_field.text()))

    def scan_serial_ports(self):
        """Fill the port box, configured port first."""
        self.port_combo.clear()
        self.port_combo.addItem(self.config.port)
        for entry in available_ports():
            if entry.split(" - ")[0] != self.config.port:
                self.port_combo.addItem(entry)

    def connect_to_robot(self):
        port_name = self.port_combo.currentText().split(" - ")[0].strip()
        self.communicator.transport.baud_rate = int(self.baud_combo.currentText())
        try:
            connected = self.communicator.connect(port_name)
        except LinkError as exc:
            self.set_message(str(exc))
            return
        if not connected:
            QMessageBox.critical(self, "Connection Failed", f"Failed to connect to {port_name}")

    def disconnect_from_robot(self):
        self.communicator.disconnect()

    def set_message(self, text: str):
        self.status_label.setText(f"Status: {text}")
        self.log_line(text)

    def log_line(self, text: str):
        self.telemetry_log.appendPlainText(text)

    def handle_pose(self, x, y, heading):
        self.pose_label.setText(f"Pose: x={x:.1f} y={y:.1f} heading={heading:.0f}")
        self.x_field.setText(f"{x:.1f}")
        self.y_field.setText(f"{y:.1f}")
        self.log_line(f"pose {x:.1f} {y:.1f} {heading:.0f}")

    def handle_obstacle(self, x, y):
        self.log_line(f"crash at {x} {y}")

    def handle_wall(self, x, y, category):
        self.log_line(f"{WallCategory(category).name.lower()} wall at {x} {y}")

    def handle_uncertainty(self, x, y, sdev_x, sdev_y):
        self.log_line(f"std dev at {x} {y}: {sdev_x} x {sdev_y}")

    def handle_bomb(self, x, y):
        self.set_message(f"Bomb captured at {x} {y}")

    def update_connection_status(self, state):
        self.connection_label.setText(f"Link: {state.capitalize()}")
        if state == ConnectionState.CONNECTED.value:
            self.connection_label.setStyleSheet(CONNECTED_STYLE)
        elif state == ConnectionState.CONNECTING.value:
            self.connection_label.setStyleSheet(CONNECTING_STYLE)
        else:
            self.connection_label.setStyleSheet(DISCONNECTED_STYLE)

        disconnected = state == ConnectionState.DISCONNECTED.value
        self.connect_btn.setEnabled(disconnected)
        self.disconnect_btn.setEnabled(not disconnected)
        self.port_combo.setEnabled(disconnected)
        self.baud_combo.setEnabled(disconnected)

    def closeEvent(self, event):
        self.communicator.disconnect()
        event.accept()


def build_station(config: StationConfig):
    """Wire dispatcher, transport, communicator and issuer together."""
    dispatcher = Dispatcher([LoggingListener(logging.DEBUG)])
    transport = SerialTransport(config.baud_rate, config.read_timeout)
    communicator = RobotCommunicator(transport, dispatcher, config)
    return dispatcher, communicator, CommandIssuer(communicator)


def main(argv: Optional[Sequence[str]] = None):
    config = StationConfig.from_args(argv)
    configure_logging(config.log_level)

    if config.list_ports:
        for entry in available_ports() or ["No serial ports found"]:
            print(entry)
        return 0

    app = QApplication(sys.argv[:1])
    dispatcher, communicator, issuer = build_station(config)
    window = MissionControlWindow(communicator, issuer, config)
    dispatcher.add_listener(window.listener)
    window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
