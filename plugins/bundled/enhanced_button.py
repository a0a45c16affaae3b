"""Enhanced button plugin - bordered buttons with animations and tooltips.

Lays out its label with the ``textUtils`` service from base_utility.
"""

from typing import List, Optional

from rich.text import Text

from termkit.plugins.api import current_api
from termkit.widgets import BaseWidget


class EnhancedButton(BaseWidget):
    """Button with a border, optional icon, bounce animation and tooltip.

    Defaults for ``animation``, ``tooltip`` display and ``gradient`` come
    from the plugin config at creation time.
    """

    def __init__(
        self,
        text: str = "Button",
        width: int = 10,
        height: int = 3,
        enabled: bool = True,
        bg_color: str = "blue",
        text_color: str = "white",
        hover_color: str = "light_sky_blue1",
        gradient: Optional[bool] = None,
        icon: Optional[str] = None,
        animation: Optional[str] = None,
        tooltip: Optional[str] = None,
        **props,
    ):
        super().__init__(width=width, height=height, **props)
        self._api = current_api()
        config = self._api.config

        self.text = text
        self.enabled = enabled
        self.bg_color = bg_color
        self.text_color = text_color
        self.hover_color = hover_color
        self.gradient = config.get("gradientButtons", False) if gradient is None else gradient
        self.icon = icon
        self.animation = animation or config.get("defaultAnimation", "none")
        self.tooltip = tooltip if config.get("enableTooltips", True) else None

    def _background(self) -> str:
        if self.pressed:
            return "grey50"
        if self.hovered:
            return self.hover_color
        return self.bg_color

    def render(self) -> List[Text]:
        if not self.visible:
            return []

        text_utils = self._api.get_service("textUtils")
        if text_utils is None:
            raise RuntimeError("EnhancedButton requires the base_utility plugin")

        background = self._background()
        inner = max(self.width - 2, 1)
        rows = [[" "] * inner for _ in range(max(self.height - 2, 1))]

        label_lines = text_utils.format_text(self.text, inner)[: len(rows)]
        top = text_utils.calculate_center(len(rows), len(label_lines)) - 1
        for i, line in enumerate(label_lines):
            left = max(0, text_utils.calculate_center(inner, len(line)) - 1)
            for j, char in enumerate(line[:inner]):
                rows[top + i][left + j] = char
        if self.icon:
            rows[0][0] = self.icon[0]

        border = f"white on {background}"
        lines = [Text("┌" + "─" * inner + "┐", style=border)]
        for index, row in enumerate(rows):
            # vertical gradient fades the lower half to black
            fill = "black" if self.gradient and index >= len(rows) / 2 else background
            line = Text("│", style=border)
            line.append("".join(row), style=f"{self.text_color} on {fill}")
            line.append("│", style=border)
            lines.append(line)
        lines.append(Text("└" + "─" * inner + "┘", style=border))
        return lines

    def on_click(self, rel_x: int, rel_y: int) -> bool:
        if not self.enabled:
            return False
        if self.animation == "bounce":
            self._api.emit("buttonBounce", {"button": self})
        return super().on_click(rel_x, rel_y)

    def on_mouse_enter(self) -> None:
        super().on_mouse_enter()
        if self.tooltip:
            x, y = self.absolute_position()
            self._api.emit("showTooltip", {"text": self.tooltip, "x": x, "y": y - 1})

    def on_mouse_leave(self) -> None:
        super().on_mouse_leave()
        if self.tooltip:
            self._api.emit("hideTooltip", {})


def on_load(plugin):
    api = current_api()
    log = api.get_logger()
    api.on("baseUtilityLoaded", lambda data: log.info("Base utility service is now available"))
    api.on("buttonBounce", lambda data: log.info(f"Bounce animation for: {data['button'].text}"))
    log.info("Enhanced button loaded")


PLUGIN = {
    "id": "enhanced_button",
    "name": "Enhanced Button Plugin",
    "version": "2.1.0",
    "author": "termkit community",
    "description": "Provides enhanced button widgets with animations and tooltips",
    "dependencies": ["base_utility@1.0.0"],
    "widgets": {"enhancedButton": EnhancedButton},
    "on_load": on_load,
    "config": {
        "defaultAnimation": "bounce",
        "enableTooltips": True,
        "gradientButtons": False,
    },
    "config_schema": {
        "defaultAnimation": {"type": "string", "required": False},
        "enableTooltips": {"type": "boolean", "required": False},
        "gradientButtons": {"type": "boolean", "required": False},
    },
}
