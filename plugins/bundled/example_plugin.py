"""Example plugin - a gradient bar widget, the cyberpunk theme and two hooks."""

from typing import List, Optional, Sequence

from rich.text import Text

from termkit.plugins.api import current_api
from termkit.widgets import BaseWidget, center_offset

DEFAULT_COLORS = ("red", "orange1", "yellow", "green1")
EMPTY_COLOR = "grey50"


class GradientBar(BaseWidget):
    """Progress bar whose filled part runs through a colour gradient."""

    def __init__(
        self,
        value: float = 0,
        max_value: float = 100,
        colors: Optional[Sequence[str]] = None,
        direction: str = "horizontal",
        show_value: bool = True,
        width: int = 20,
        height: Optional[int] = None,
        **props,
    ):
        if height is None:
            height = 10 if direction == "vertical" else 1
        super().__init__(width=width, height=height, **props)
        self.max = 1
        self.value = 0
        self.colors = list(colors or DEFAULT_COLORS)
        self.direction = direction
        self.show_value = show_value
        self.set_max(max_value)
        self.set_value(value)

    def set_value(self, value: float) -> None:
        self.value = max(0, min(value, self.max))

    def set_max(self, maximum: float) -> None:
        self.max = max(1, maximum)
        if self.value > self.max:
            self.value = self.max

    @property
    def progress(self) -> float:
        return min(self.value / self.max, 1)

    def _segment_color(self, segment_progress: float) -> str:
        if segment_progress > self.progress:
            return EMPTY_COLOR
        index = int(segment_progress * (len(self.colors) - 1))
        return self.colors[min(index, len(self.colors) - 1)]

    def render(self) -> List[Text]:
        if not self.visible:
            return []

        if self.direction == "horizontal":
            steps = max(self.width - 1, 1)
            cells = [(" ", f"on {self._segment_color(x / steps)}") for x in range(self.width)]
            if self.show_value:
                label = str(int(self.value))[: self.width]
                start = center_offset(self.width, len(label))
                for i, char in enumerate(label):
                    cells[start + i] = (char, "bold white on black")
            line = Text()
            for char, style in cells:
                line.append(char, style=style)
            return [line]

        lines = []
        steps = max(self.height - 1, 1)
        for y in range(self.height):
            color = self._segment_color((self.height - 1 - y) / steps)
            lines.append(Text(" " * self.width, style=f"on {color}"))
        return lines


CYBERPUNK_THEME = {
    "primary": "cyan",
    "secondary": "magenta",
    "success": "green1",
    "warning": "orange1",
    "error": "red",
    "background": "black",
    "surface": "grey50",
    "text": "white",
    "text_secondary": "grey82",
    "border": "cyan",
    "button": {"background": "purple", "text": "white", "hover": "magenta", "pressed": "pink1"},
    "textbox": {"background": "black", "text": "cyan", "border": "magenta", "focus": "pink1"},
    "checkbox": {"checked": "cyan", "unchecked": "grey50", "border": "magenta"},
    "progressbar": {"filled": "cyan", "empty": "grey50", "border": "magenta"},
}


def on_widget_render(widget):
    """Focused bordered widgets get a glow style."""
    if getattr(widget, "focused", False) and getattr(widget, "border", False):
        return "bold cyan"
    return None


def on_button_click(button):
    text = getattr(button, "text", None) or "Unknown"
    current_api().get_logger().info(f"Button click: {text}")
    return text


def create_gradient_button(**props) -> GradientBar:
    props.setdefault("colors", ["blue", "light_sky_blue1", "white"])
    return GradientBar(**props)


def apply_cyberpunk_theme() -> dict:
    return dict(CYBERPUNK_THEME)


PLUGIN = {
    "id": "example_plugin",
    "name": "Example Plugin",
    "version": "1.0.0",
    "author": "termkit team",
    "description": "Demonstrates plugin capabilities with custom widgets, themes, and hooks",
    "dependencies": [],
    "widgets": {"gradientBar": GradientBar},
    "themes": {"cyberpunk": CYBERPUNK_THEME},
    "hooks": {
        "onWidgetRender": on_widget_render,
        "onButtonClick": on_button_click,
    },
    "api": {
        "createGradientButton": create_gradient_button,
        "applyCyberpunkTheme": apply_cyberpunk_theme,
    },
    "on_enable": lambda plugin: True,
}
