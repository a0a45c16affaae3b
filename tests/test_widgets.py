"""Tests for the widget capability set."""

from termkit.widgets import BaseWidget, Widget, center_offset


class TestBaseWidget:
    """Tests for BaseWidget geometry and pointer state."""

    def test_absolute_position_through_parents(self):
        root = BaseWidget(x=5, y=3, width=40, height=20)
        panel = BaseWidget(x=2, y=2, width=20, height=10, parent=root)
        child = BaseWidget(x=4, y=1, parent=panel)
        assert child.absolute_position() == (9, 4)

    def test_contains(self):
        widget = BaseWidget(x=2, y=2, width=3, height=2)
        assert widget.contains(2, 2)
        assert widget.contains(4, 3)
        assert not widget.contains(5, 2)
        assert not widget.contains(2, 4)

    def test_click_handler(self):
        clicks = []
        widget = BaseWidget(on_click=lambda w, x, y: clicks.append((x, y)))
        assert widget.on_click(1, 2)
        assert clicks == [(1, 2)]
        widget.on_mouse_leave()
        assert not widget.pressed

    def test_render_blank_box(self):
        lines = BaseWidget(width=4, height=2).render()
        assert [line.plain for line in lines] == ["    ", "    "]

    def test_satisfies_widget_protocol(self):
        assert isinstance(BaseWidget(), Widget)

    def test_center_offset(self):
        assert center_offset(10, 4) == 3
        assert center_offset(3, 8) == 0
