"""Widget capability set consumed by plugin-provided widgets.

Widgets render to a list of ``rich.text.Text`` lines, one per row of the
widget's box. Putting those lines on a terminal is left to the caller
(the REPL prints them through a rich Console).

Variants compose with :class:`BaseWidget` for geometry and hover/press
bookkeeping and implement ``render`` themselves.
"""

from typing import Any, Callable, List, Optional, Protocol, Tuple, runtime_checkable

from rich.text import Text


@runtime_checkable
class Widget(Protocol):
    """What the toolkit expects from any widget."""

    visible: bool

    def render(self) -> List[Text]:
        ...

    def on_click(self, rel_x: int, rel_y: int) -> bool:
        ...

    def on_mouse_enter(self) -> None:
        ...

    def on_mouse_leave(self) -> None:
        ...


class BaseWidget:
    """Geometry and pointer state shared by widget variants.

    Args:
        x, y: 1-based position relative to the parent
        width, height: Box size in cells
        visible: Hidden widgets render no lines
        parent: Optional containing widget
    """

    def __init__(
        self,
        x: int = 1,
        y: int = 1,
        width: int = 10,
        height: int = 1,
        visible: bool = True,
        parent: Optional["BaseWidget"] = None,
        on_click: Optional[Callable[["BaseWidget", int, int], Any]] = None,
    ):
        self.x = x
        self.y = y
        self.width = max(1, width)
        self.height = max(1, height)
        self.visible = visible
        self.parent = parent
        self.click_handler = on_click
        self.hovered = False
        self.pressed = False

    def absolute_position(self) -> Tuple[int, int]:
        x, y = self.x, self.y
        if self.parent is not None:
            px, py = self.parent.absolute_position()
            x += px - 1
            y += py - 1
        return x, y

    def contains(self, abs_x: int, abs_y: int) -> bool:
        x, y = self.absolute_position()
        return x <= abs_x < x + self.width and y <= abs_y < y + self.height

    def render(self) -> List[Text]:
        if not self.visible:
            return []
        return [Text(" " * self.width) for _ in range(self.height)]

    def on_click(self, rel_x: int, rel_y: int) -> bool:
        if not self.visible:
            return False
        self.pressed = True
        if self.click_handler is not None:
            self.click_handler(self, rel_x, rel_y)
        return True

    def on_mouse_enter(self) -> None:
        self.hovered = True

    def on_mouse_leave(self) -> None:
        self.hovered = False
        self.pressed = False


def center_offset(container: int, content: int) -> int:
    """0-based offset that centers content inside container."""
    return max(0, (container - content) // 2)
