"""Base utility plugin - text helpers other plugins build on.

Exposes the ``textUtils`` service and announces itself on the
``baseUtilityLoaded`` topic once loaded.
"""

from typing import List

from termkit.plugins.api import current_api

# Hex colours understood by parse_hex_color, mapped to rich colour names
HEX_COLORS = {
    "#FFFFFF": "white",
    "#FFA500": "orange1",
    "#FF00FF": "magenta",
    "#ADD8E6": "light_sky_blue1",
    "#FFFF00": "yellow",
    "#00FF00": "green1",
    "#FFC0CB": "pink1",
    "#808080": "grey50",
    "#D3D3D3": "grey82",
    "#00FFFF": "cyan",
    "#800080": "purple",
    "#0000FF": "blue",
    "#A52A2A": "dark_red",
    "#008000": "green",
    "#FF0000": "red",
    "#000000": "black",
}


class UtilityService:
    """Text layout helpers shared through the service registry."""

    @staticmethod
    def format_text(text: str, max_width: int) -> List[str]:
        """Greedy word wrap. Words longer than max_width get a line of their own."""
        lines = []
        current = ""
        for word in text.split():
            if current and len(current) + len(word) + 1 <= max_width:
                current = f"{current} {word}"
            elif not current and len(word) <= max_width:
                current = word
            else:
                if current:
                    lines.append(current)
                current = word
        if current:
            lines.append(current)
        return lines

    @staticmethod
    def calculate_center(container_width: int, content_width: int) -> int:
        """1-based start column that centers content in the container."""
        return (container_width - content_width) // 2 + 1

    @staticmethod
    def hex_to_color(hex_color: str) -> str:
        return HEX_COLORS.get(hex_color.upper(), "white")


def on_load(plugin):
    api = current_api()
    service = UtilityService()
    api.register_service("textUtils", service)
    api.get_logger().info("Base utility loaded, textUtils service available")
    api.emit("baseUtilityLoaded", {"plugin": plugin.id, "service": service})


def on_unload(plugin):
    # textUtils is released by the host together with the plugin
    current_api().get_logger().info("Base utility unloaded")


PLUGIN = {
    "id": "base_utility",
    "name": "Base Utility Plugin",
    "version": "1.0.0",
    "author": "termkit team",
    "description": "Provides text utility services for other plugins",
    "on_load": on_load,
    "on_unload": on_unload,
    "api": {
        "formatTextLines": UtilityService.format_text,
        "centerContent": UtilityService.calculate_center,
        "parseHexColor": UtilityService.hex_to_color,
    },
}
