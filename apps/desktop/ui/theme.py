"""
Palette and QSS for the monitor window.

The status pill takes its colour from StatusPayload.color ("success",
"warning", "error" or None), so phase colours are defined once here.
"""

from __future__ import annotations

from typing import Literal, Optional

FONT = "Segoe UI, -apple-system, BlinkMacSystemFont, sans-serif"
MONO_FONT = "Consolas, Menlo, monospace"

ACCENT = "#007AFF"
NEUTRAL = "#8E8E93"

SEMANTIC_COLORS = {
    "success": "#34C759",
    "warning": "#FF9500",
    "error": "#FF3B30",
}

PILL_NAMES = {
    "success": "StatusPillReady",
    "warning": "StatusPillBuilding",
    "error": "StatusPillError",
}

PALETTES = {
    "light": {
        "window": "#F5F5F7",
        "card": "#FFFFFF",
        "raised": "#F9F9F9",
        "text": "#000000",
        "muted": "#6E6E73",
        "faint": "#8E8E93",
        "line": "#E5E5EA",
        "hover": "#F2F2F7",
    },
    "dark": {
        "window": "#000000",
        "card": "#1C1C1E",
        "raised": "#2C2C2E",
        "text": "#FFFFFF",
        "muted": "#98989D",
        "faint": "#636366",
        "line": "#38383A",
        "hover": "#3A3A3C",
    },
}

ThemeMode = Literal["light", "dark"]


def pill_name_for(color: Optional[str]) -> str:
    return PILL_NAMES.get(color or "", "StatusPill")


def rgba(hex_color: str, alpha: float) -> str:
    r, g, b = _rgb(hex_color)
    return f"rgba({r}, {g}, {b}, {alpha})"


def shade(hex_color: str, percent: int) -> str:
    """Lighten (positive) or darken (negative) a #RRGGBB colour."""
    factor = 1 + percent / 100
    r, g, b = (max(0, min(255, int(c * factor))) for c in _rgb(hex_color))
    return f"#{r:02x}{g:02x}{b:02x}"


def _rgb(hex_color: str) -> tuple[int, int, int]:
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _rule(selector: str, **props: str) -> str:
    body = "\n".join(f"    {name.replace('_', '-')}: {value};" for name, value in props.items())
    return f"{selector} {{\n{body}\n}}"


class Theme:
    def __init__(self, mode: ThemeMode = "light"):
        self.mode = mode

    @property
    def colors(self) -> dict:
        return PALETTES[self.mode]

    def toggle_mode(self) -> None:
        self.mode = "dark" if self.mode == "light" else "light"

    def get_stylesheet(self) -> str:
        c = self.colors
        label = dict(font_family=FONT, color=c["text"])
        button = dict(border_radius="18px", padding="6px 20px", font_family=FONT, font_size="14px", min_height="34px")

        rules = [
            _rule("QMainWindow", background_color=c["window"], color=c["text"]),
            _rule("QLabel#TitleLabel", font_size="26px", font_weight="700", **label),
            _rule("QLabel#SubtitleLabel, QLabel#HintLabel", font_family=FONT, font_size="13px", color=c["muted"]),
            _rule("QLabel#SectionLabel", font_size="17px", font_weight="600", **label),
            _rule("QLabel#BodyLabel", font_size="14px", **label),
            _rule("QFrame#Card", background_color=c["card"], border=f"1px solid {c['line']}", border_radius="14px"),
            _rule("QPushButton#PrimaryButton", background_color=ACCENT, color="#FFFFFF", border="none",
                  font_weight="600", **button),
            _rule("QPushButton#PrimaryButton:hover", background_color=shade(ACCENT, -10)),
            _rule("QPushButton#SecondaryButton", background_color=c["raised"], color=ACCENT,
                  border=f"1px solid {c['line']}", font_weight="500", **button),
            _rule("QPushButton#SecondaryButton:hover", background_color=c["hover"]),
            _rule("QPushButton#PrimaryButton:disabled, QPushButton#SecondaryButton:disabled",
                  background_color=c["line"], color=c["faint"]),
            _rule("QListWidget", background_color="transparent", border="none", outline="none"),
            _rule("QListWidget::item", color=c["text"], padding="3px 6px", font_family=MONO_FONT, font_size="12px"),
            _rule("QCheckBox", spacing="8px", font_size="14px", **label),
            _rule("QSpinBox", background_color=c["card"], color=c["text"], border=f"1px solid {c['line']}",
                  border_radius="6px", padding="3px 6px", min_height="28px"),
            self._pill("StatusPill", NEUTRAL, c["muted"]),
        ]
        rules += [self._pill(PILL_NAMES[key], accent, accent) for key, accent in SEMANTIC_COLORS.items()]
        return "\n\n".join(rules)

    @staticmethod
    def _pill(name: str, accent: str, text: str) -> str:
        return _rule(
            f"QLabel#{name}",
            background_color=rgba(accent, 0.15),
            color=text,
            border_radius="12px",
            padding="4px 12px",
            font_family=FONT,
            font_size="13px",
            font_weight="600",
        )
