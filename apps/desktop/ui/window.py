"""
Main window: renders the monitor status and hosts the commands
(check now, open in browser, set port, auto-detect port, show logs).
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Optional

from PySide6.QtCore import QObject, QUrl, Signal
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QCheckBox,
    QSpinBox,
    QFileDialog,
    QInputDialog,
    QMessageBox,
    QSystemTrayIcon,
    QStyle,
)

from packages.shared.config import AppConfig
from packages.shared.paths import log_path
from packages.shared.store import ConfigStore
from packages.core.monitor.errors import InvalidPortInput
from packages.core.monitor.port_detect import detect_port
from packages.core.monitor.process_locator import default_locator
from packages.core.monitor.save_watcher import SaveWatcher
from packages.core.monitor.scheduler import MonitorScheduler
from packages.core.monitor.types import MonitorStatus
from packages.core.status.commands import open_endpoint, parse_port_input, resolve_detected_port
from packages.core.status.notifier import Notifier, ToastNotifierWin10
from packages.core.status.presentation import build_notification, build_status_payload

from .theme import Theme
from .components import Card, PrimaryButton, SecondaryButton, StatusPill

log = logging.getLogger(__name__)


class _MonitorBridge(QObject):
    """Carries monitor callbacks from worker threads onto the GUI thread."""
    status = Signal(object)
    event = Signal(dict)
    error = Signal(str)
    detected = Signal(object)


class TrayNotifier:
    def __init__(self, parent: QWidget) -> None:
        self._tray = QSystemTrayIcon(parent.style().standardIcon(QStyle.SP_ComputerIcon), parent)
        self._tray.show()

    def notify(self, title: str, body: str) -> None:
        if QSystemTrayIcon.supportsMessages():
            self._tray.showMessage(title, body, QSystemTrayIcon.Information, 6000)


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Dev Server Monitor")
        self.resize(900, 680)
        self.setMinimumSize(720, 520)

        self.theme = Theme("dark")
        self._dark_mode_enabled = True

        self.store = ConfigStore()
        self.cfg: AppConfig = self.store.load()
        self.store.on_change(self._on_config_saved)

        self.notifier: Notifier = ToastNotifierWin10() if sys.platform == "win32" else TrayNotifier(self)

        self._bridge = _MonitorBridge()
        self._bridge.status.connect(self._render_status)
        self._bridge.event.connect(self._handle_monitor_event)
        self._bridge.error.connect(self._handle_monitor_error)
        self._bridge.detected.connect(self._handle_detected_port)

        self.monitor = MonitorScheduler(
            config=self.cfg.to_monitor_config(),
            workspace_roots=self.cfg.workspace_roots,
            locator=default_locator(self.cfg.ownership_check_enabled),
        )
        self.monitor.on_status(self._bridge.status.emit)
        self.monitor.on_event(self._bridge.event.emit)
        self.monitor.on_error(self._bridge.error.emit)

        self.save_watcher: Optional[SaveWatcher] = None

        self._build_ui()
        self._apply_theme()
        self._load_to_ui()

        self._start_save_watcher()
        self.monitor.start()
        self._append_event("Monitoring started.")

    def _apply_theme(self) -> None:
        self.setStyleSheet(self.theme.get_stylesheet())

    def _toggle_dark_mode(self, checked: bool) -> None:
        if checked != self._dark_mode_enabled:
            self.theme.toggle_mode()
            self._dark_mode_enabled = checked
            self._apply_theme()

    # UI

    def _build_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        main_layout = QVBoxLayout(root)
        main_layout.setContentsMargins(24, 24, 24, 24)
        main_layout.setSpacing(20)

        self._build_header(main_layout)
        self._build_status_bar(main_layout)
        self._build_bottom_section(main_layout)

    def _build_header(self, parent_layout: QVBoxLayout) -> None:
        header_layout = QVBoxLayout()
        header_layout.setSpacing(4)

        self.title_label = QLabel("Dev Server Monitor")
        self.title_label.setObjectName("TitleLabel")
        header_layout.addWidget(self.title_label)

        self.subtitle_label = QLabel("Knows when your dev server is building, ready, or gone.")
        self.subtitle_label.setObjectName("SubtitleLabel")
        header_layout.addWidget(self.subtitle_label)

        parent_layout.addLayout(header_layout)

    def _build_status_bar(self, parent_layout: QVBoxLayout) -> None:
        status_row = QHBoxLayout()
        status_row.setSpacing(12)

        self.status_pill = StatusPill()
        self.status_pill.on_click(self._run_click_action)
        status_row.addWidget(self.status_pill)

        self.message_label = QLabel("")
        self.message_label.setObjectName("HintLabel")
        status_row.addWidget(self.message_label)

        status_row.addStretch()

        self.btn_check = PrimaryButton("Check Now")
        self.btn_check.clicked.connect(self._check_now)
        status_row.addWidget(self.btn_check)

        self.btn_open = SecondaryButton("Open in Browser")
        self.btn_open.clicked.connect(self._open_browser)
        status_row.addWidget(self.btn_open)

        self.btn_set_port = SecondaryButton("Set Port…")
        self.btn_set_port.clicked.connect(self._set_port)
        status_row.addWidget(self.btn_set_port)

        self.btn_detect = SecondaryButton("Auto-detect")
        self.btn_detect.clicked.connect(self._auto_detect_port)
        status_row.addWidget(self.btn_detect)

        self.btn_logs = SecondaryButton("Show Logs")
        self.btn_logs.clicked.connect(self._show_logs)
        status_row.addWidget(self.btn_logs)

        parent_layout.addLayout(status_row)

    def _build_bottom_section(self, parent_layout: QVBoxLayout) -> None:
        bottom_container = QWidget()
        bottom_layout = QHBoxLayout(bottom_container)
        bottom_layout.setContentsMargins(0, 0, 0, 0)
        bottom_layout.setSpacing(20)

        settings_card = Card()
        settings_layout = settings_card.layout

        settings_label = QLabel("Settings")
        settings_label.setObjectName("SectionLabel")
        settings_layout.addWidget(settings_label)

        self.chk_dark_mode = QCheckBox("Dark mode")
        self.chk_dark_mode.setChecked(self._dark_mode_enabled)
        self.chk_dark_mode.toggled.connect(self._toggle_dark_mode)
        settings_layout.addWidget(self.chk_dark_mode)

        self.chk_notifications = QCheckBox("Notify on phase changes")
        settings_layout.addWidget(self.chk_notifications)

        self.chk_ownership = QCheckBox("Ignore dev servers started from other folders")
        settings_layout.addWidget(self.chk_ownership)

        port_row = QHBoxLayout()
        port_label = QLabel("Port (0 = none):")
        port_label.setObjectName("BodyLabel")
        port_row.addWidget(port_label)
        self.spin_port = QSpinBox()
        self.spin_port.setRange(0, 65535)
        port_row.addWidget(self.spin_port)
        port_row.addStretch()
        settings_layout.addLayout(port_row)

        timing_row = QHBoxLayout()
        timing_row.setSpacing(12)
        interval_label = QLabel("Poll interval (ms):")
        interval_label.setObjectName("BodyLabel")
        timing_row.addWidget(interval_label)
        self.spin_interval = QSpinBox()
        self.spin_interval.setRange(250, 60000)
        self.spin_interval.setSingleStep(250)
        timing_row.addWidget(self.spin_interval)

        threshold_label = QLabel("Failures before stopped:")
        threshold_label.setObjectName("BodyLabel")
        timing_row.addWidget(threshold_label)
        self.spin_threshold = QSpinBox()
        self.spin_threshold.setRange(1, 50)
        timing_row.addWidget(self.spin_threshold)
        timing_row.addStretch()
        settings_layout.addLayout(timing_row)

        roots_label = QLabel("Workspace folders")
        roots_label.setObjectName("BodyLabel")
        settings_layout.addWidget(roots_label)
        self.roots_list = QListWidget()
        self.roots_list.itemDoubleClicked.connect(self._remove_root_item)
        settings_layout.addWidget(self.roots_list)

        roots_hint = QLabel("Tip: Double-click a folder to remove it.")
        roots_hint.setObjectName("HintLabel")
        settings_layout.addWidget(roots_hint)

        buttons_row = QHBoxLayout()
        self.btn_add_root = SecondaryButton("Add Folder…")
        self.btn_add_root.clicked.connect(self._add_root)
        buttons_row.addWidget(self.btn_add_root)
        self.btn_save = SecondaryButton("Save Settings")
        self.btn_save.clicked.connect(self._save_config)
        buttons_row.addWidget(self.btn_save)
        settings_layout.addLayout(buttons_row)

        bottom_layout.addWidget(settings_card, 1)

        self.events_card = Card()
        events_layout = self.events_card.layout
        events_label = QLabel("Activity")
        events_label.setObjectName("SectionLabel")
        events_layout.addWidget(events_label)
        self.events = QListWidget()
        events_layout.addWidget(self.events, 1)
        bottom_layout.addWidget(self.events_card, 1)

        parent_layout.addWidget(bottom_container, 1)

    def _load_to_ui(self) -> None:
        self.chk_notifications.setChecked(self.cfg.notifications_enabled)
        self.chk_ownership.setChecked(self.cfg.ownership_check_enabled)
        self.spin_port.setValue(self.cfg.port or 0)
        self.spin_interval.setValue(self.cfg.poll_interval_ms)
        self.spin_threshold.setValue(self.cfg.failure_threshold)
        self._render_roots()
        self._render_status(self.monitor.get_state())

    def _render_roots(self) -> None:
        self.roots_list.clear()
        for root in self.cfg.workspace_roots:
            self.roots_list.addItem(QListWidgetItem(root))

    def _render_status(self, status: MonitorStatus) -> None:
        payload = build_status_payload(status.phase, status.message, status.port)
        self.status_pill.apply_payload(payload)
        self.message_label.setText(status.message)
        self.btn_open.setEnabled(status.port is not None)

    def _append_event(self, line: str) -> None:
        self.events.insertItem(0, QListWidgetItem(line))

    # Commands

    def _run_click_action(self, action: str) -> None:
        if action == "manual-check":
            self._check_now()
        elif action == "toggle-terminal":
            self.events_card.setVisible(not self.events_card.isVisible())

    def _check_now(self) -> None:
        self.monitor.check_now()
        self._append_event("Manual status check triggered.")

    def _open_browser(self) -> None:
        if self.cfg.port is None:
            QMessageBox.information(self, "Dev Server Monitor", "No port configured.")
            return
        open_endpoint(self.cfg.port, self.cfg.host)
        self._append_event(f"Opened browser: http://{self.cfg.host}:{self.cfg.port}")

    def _set_port(self) -> None:
        text = str(self.cfg.port or "")
        while True:
            text, ok = QInputDialog.getText(self, "Set Port", "Dev server port:", text=text)
            if not ok:
                return
            try:
                port = parse_port_input(text)
            except InvalidPortInput as e:
                QMessageBox.warning(self, "Invalid port", str(e))
                continue
            break
        self.cfg.port = port
        self.store.save(self.cfg)
        self._append_event(f"Port set to {port}.")

    def _auto_detect_port(self) -> None:
        self.btn_detect.setEnabled(False)
        self._append_event("Auto-detecting port…")
        ports = list(self.cfg.candidate_ports)
        host = self.cfg.host

        def run() -> None:
            self._bridge.detected.emit(detect_port(ports, host=host))

        threading.Thread(target=run, name="PortDetect", daemon=True).start()

    def _handle_detected_port(self, port: Optional[int]) -> None:
        self.btn_detect.setEnabled(True)
        if port is None:
            self._append_event("Auto-detect: no dev server found.")
            QMessageBox.warning(self, "Auto-detect", "No running dev server found.")
            return

        self._append_event(f"Auto-detect: server answering on port {port}.")
        if port == self.cfg.port:
            QMessageBox.information(self, "Auto-detect", f"Dev server is running on port {port}.")
            return

        def confirm(found: int) -> bool:
            answer = QMessageBox.question(
                self, "Auto-detect", f"Dev server found on port {found}. Monitor this port instead of {self.cfg.port or 'none'}?"
            )
            return answer == QMessageBox.Yes

        chosen = resolve_detected_port(self.cfg.port, port, confirm)
        if chosen != self.cfg.port:
            self.cfg.port = chosen
            self.store.save(self.cfg)
            self._append_event(f"Port set to {chosen}.")

    def _show_logs(self) -> None:
        self.events_card.setVisible(True)
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(log_path())))

    # Settings

    def _add_root(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Add workspace folder")
        if folder and folder not in self.cfg.workspace_roots:
            self.cfg.workspace_roots.append(folder)
            self._render_roots()

    def _remove_root_item(self, item: QListWidgetItem) -> None:
        self.cfg.workspace_roots = [r for r in self.cfg.workspace_roots if r != item.text()]
        self._render_roots()

    def _save_config(self) -> None:
        port = int(self.spin_port.value())
        self.cfg.port = port or None
        self.cfg.notifications_enabled = self.chk_notifications.isChecked()
        self.cfg.ownership_check_enabled = self.chk_ownership.isChecked()
        self.cfg.poll_interval_ms = int(self.spin_interval.value())
        self.cfg.failure_threshold = int(self.spin_threshold.value())
        self.store.save(self.cfg)
        self._append_event("Config saved.")

    def _on_config_saved(self, cfg: AppConfig) -> None:
        self.spin_port.setValue(cfg.port or 0)
        self.monitor.set_locator(default_locator(cfg.ownership_check_enabled))
        self.monitor.update_config(cfg.to_monitor_config(), workspace_roots=cfg.workspace_roots)
        self._start_save_watcher()

    def _start_save_watcher(self) -> None:
        if self.save_watcher is not None:
            self.save_watcher.stop()
        self.save_watcher = SaveWatcher(self.cfg.workspace_roots, self.monitor.file_saved, self.cfg.watched_extensions)
        self.save_watcher.start()

    # Monitor callbacks (GUI thread)

    def _handle_monitor_event(self, evt: dict) -> None:
        if evt.get("type") != "PHASE_CHANGED":
            return
        prev, phase, message = evt["from"], evt["to"], evt.get("message", "")
        self._append_event(f"{evt.get('at', '')} {prev.value} -> {phase.value} ({message})")
        if self.cfg.notifications_enabled:
            payload = build_notification(phase, message, evt.get("port"), self.cfg.host)
            self.notifier.notify(payload["title"], payload["body"])

    def _handle_monitor_error(self, msg: str) -> None:
        self._append_event(f"ERROR: {msg}")
        log.error("Monitor error: %s", msg)

    def closeEvent(self, event) -> None:
        if self.save_watcher is not None:
            self.save_watcher.stop()
        self.monitor.stop()
        super().closeEvent(event)
