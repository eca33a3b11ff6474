"""
Small reusable widgets for the monitor window.
"""

from __future__ import annotations

from PySide6.QtWidgets import QFrame, QLabel, QPushButton, QVBoxLayout

from packages.core.monitor.types import StatusPayload

from .theme import pill_name_for


class Card(QFrame):
    """Card container with rounded corners."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("Card")
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(16, 16, 16, 16)
        self.layout.setSpacing(12)


class PrimaryButton(QPushButton):
    def __init__(self, text: str = "", parent=None):
        super().__init__(text, parent)
        self.setObjectName("PrimaryButton")


class SecondaryButton(QPushButton):
    def __init__(self, text: str = "", parent=None):
        super().__init__(text, parent)
        self.setObjectName("SecondaryButton")


class StatusPill(QLabel):
    """Phase indicator; clicking it runs the payload's click action."""

    def __init__(self, text: str = "", parent=None):
        super().__init__(text, parent)
        self.setObjectName("StatusPill")
        self.click_action = "none"
        self._on_click = None

    def on_click(self, cb) -> None:
        self._on_click = cb

    def apply_payload(self, payload: StatusPayload) -> None:
        self.setText(payload.text)
        self.setToolTip(payload.tooltip)
        self.setObjectName(pill_name_for(payload.color))
        # object name drives the QSS rule, so re-polish after changing it
        self.style().unpolish(self)
        self.style().polish(self)
        self.click_action = payload.click_action

    def mousePressEvent(self, event) -> None:
        if self._on_click and self.click_action != "none":
            self._on_click(self.click_action)
        super().mousePressEvent(event)
