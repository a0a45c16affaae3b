"""Command handler with command pattern."""

import json
from typing import Callable, Dict, List, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cli.state import REPLState
from termkit.plugins.errors import PluginError
from termkit.plugins.registry import PluginState

console = Console(
    legacy_windows=False,
    force_terminal=True,
    force_interactive=False,
    no_color=False,
    tab_size=4
)

STATE_STYLES = {
    PluginState.REGISTERED.value: "dim",
    PluginState.LOADED.value: "cyan",
    PluginState.ENABLED.value: "green",
    PluginState.DISABLED.value: "yellow",
    PluginState.UNLOADED.value: "dim",
    PluginState.ERRORED.value: "bold red",
}


def parse_value(raw: str):
    """Parse a /config value as JSON, falling back to a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class CommandHandler:
    """Dispatches /commands to handlers through a name -> handler map."""

    def __init__(self, state: REPLState):
        self.state = state
        self.commands = self._register_commands()

    def _register_commands(self) -> Dict[str, Callable[[List[str]], bool]]:
        return {
            "/q": self._cmd_quit,
            "/quit": self._cmd_quit,
            "/exit": self._cmd_quit,
            "/plugins": self._cmd_plugins,
            "/enable": self._cmd_enable,
            "/disable": self._cmd_disable,
            "/load": self._cmd_load,
            "/unload": self._cmd_unload,
            "/order": self._cmd_order,
            "/themes": self._cmd_themes,
            "/widgets": self._cmd_widgets,
            "/render": self._cmd_render,
            "/services": self._cmd_services,
            "/emit": self._cmd_emit,
            "/events": self._cmd_events,
            "/config": self._cmd_config,
            "/help": self._cmd_help,
        }

    def handle(self, cmd: str) -> bool:
        """Run one command line.

        Returns:
            Whether the REPL loop should continue
        """
        parts = cmd.split()
        handler = self.commands.get(parts[0])
        if handler is None:
            console.print(f"[red]Unknown command: {parts[0]}[/red]")
            console.print("[dim]Type /help for the command list[/dim]\n")
            return True

        try:
            return handler(parts[1:])
        except (PluginError, KeyError) as e:
            console.print(f"[red]✗ {e}[/red]\n")
            return True

    @staticmethod
    def _usage(text: str) -> bool:
        console.print(f"[red]Usage: {text}[/red]\n")
        return True

    @staticmethod
    def _result(ok: bool, plugin_id: str, action: str, error=None) -> None:
        if ok:
            console.print(f"[green]✓ {plugin_id} {action}[/green]\n")
        else:
            console.print(f"[red]✗ {plugin_id} not {action}: {error}[/red]\n")

    def _cmd_quit(self, args: List[str]) -> bool:
        console.print("[yellow]bye bye![/yellow]")
        return False

    def _cmd_plugins(self, args: List[str]) -> bool:
        plugins = self.state.host.list_plugins()
        if not plugins:
            console.print("[yellow]No plugins registered[/yellow]\n")
            return True

        table = Table(title="Plugins (load order)")
        table.add_column("ID", style="cyan")
        table.add_column("Version")
        table.add_column("State")
        table.add_column("Source", style="dim")
        table.add_column("Depends on")
        table.add_column("Error", style="red")
        for p in plugins:
            table.add_row(
                p["id"],
                p["version"],
                Text(p["state"], style=STATE_STYLES.get(p["state"], "")),
                p["source"],
                ", ".join(p["dependencies"]),
                p["error"] or "",
            )
        console.print(table)
        console.print()
        return True

    def _cmd_enable(self, args: List[str]) -> bool:
        if not args:
            return self._usage("/enable <id>")
        if self.state.host.get_plugin(args[0]) is None:
            console.print(f"[red]✗ Plugin not found: {args[0]}[/red]\n")
            return True
        instance = self.state.manager.enable_plugin(args[0])
        self._result(instance is not None, args[0], "enabled", self.state.host.get_plugin(args[0]).error)
        return True

    def _cmd_disable(self, args: List[str]) -> bool:
        ids = [a for a in args if not a.startswith("--")]
        if not ids:
            return self._usage("/disable <id> [--cascade]")
        cascade = True if "--cascade" in args else None
        instance = self.state.manager.disable_plugin(ids[0], cascade=cascade)
        if instance is None:
            console.print(f"[red]✗ Plugin not found: {ids[0]}[/red]\n")
            return True
        ok = instance.state not in (PluginState.ENABLED, PluginState.ERRORED)
        self._result(ok, ids[0], "disabled", instance.error)
        return True

    def _cmd_load(self, args: List[str]) -> bool:
        if not args:
            return self._usage("/load <id>")
        ok = self.state.host.load_plugin(args[0])
        self._result(ok, args[0], "loaded", self.state.host.get_plugin(args[0]).error)
        return True

    def _cmd_unload(self, args: List[str]) -> bool:
        ids = [a for a in args if not a.startswith("--")]
        if not ids:
            return self._usage("/unload <id> [--cascade]")
        cascade = True if "--cascade" in args else None
        ok = self.state.host.unload_plugin(ids[0], cascade=cascade)
        self._result(ok, ids[0], "unloaded", self.state.host.get_plugin(ids[0]).error)
        return True

    def _cmd_order(self, args: List[str]) -> bool:
        resolution = self.state.host.resolve()
        lines = [f"  {i}. {pid}" for i, pid in enumerate(resolution.order, 1)]
        lines += [f"  [red]✗ {pid}: {error}[/red]" for pid, error in sorted(resolution.failures.items())]
        console.print(Panel("\n".join(lines) or "(empty)", title="Load order", border_style="blue"))
        console.print()
        return True

    def _owned_table(self, title: str, rows: List[Tuple[str, str]]) -> None:
        table = Table(title=title)
        table.add_column("Name", style="cyan")
        table.add_column("Provided by")
        for name, owner in rows:
            table.add_row(name, owner or "host")
        console.print(table)
        console.print()

    def _cmd_themes(self, args: List[str]) -> bool:
        host = self.state.host
        self._owned_table("Themes", [(n, host.provider_of("theme", n)) for n in host.list_themes()])
        return True

    def _cmd_widgets(self, args: List[str]) -> bool:
        host = self.state.host
        self._owned_table("Widgets", [(n, host.provider_of("widget", n)) for n in host.list_widgets()])
        return True

    def _cmd_services(self, args: List[str]) -> bool:
        self._owned_table("Services", self.state.host.list_services())
        return True

    def _cmd_render(self, args: List[str]) -> bool:
        if not args:
            return self._usage("/render <widget> [key=value ...]")
        props = {}
        for pair in args[1:]:
            key, _, raw = pair.partition("=")
            props[key] = parse_value(raw)

        host = self.state.host
        widget = host.create_widget(args[0], **props)
        host.call_hook("onWidgetRender", widget)
        for line in widget.render():
            console.print(line)
        console.print()
        return True

    def _cmd_emit(self, args: List[str]) -> bool:
        if not args:
            return self._usage("/emit <topic> [json]")
        payload = parse_value(" ".join(args[1:])) if len(args) > 1 else None
        delivered = self.state.host.emit(args[0], payload)
        console.print(f"[green]✓ '{args[0]}' delivered to {delivered} handler(s)[/green]\n")
        return True

    def _cmd_events(self, args: List[str]) -> bool:
        events = self.state.recent_events()
        if not events:
            console.print("[yellow]No lifecycle events yet[/yellow]\n")
            return True
        table = Table(title="Lifecycle events")
        table.add_column("Time", style="dim")
        table.add_column("Topic", style="cyan")
        table.add_column("Plugin")
        table.add_column("Error", style="red")
        for event in events:
            payload = event["payload"] or {}
            table.add_row(event["at"], event["topic"], payload.get("plugin_id", ""), payload.get("error", ""))
        console.print(table)
        console.print()
        return True

    def _cmd_config(self, args: List[str]) -> bool:
        if not args:
            return self._usage("/config <id> [key=value ...]")
        plugin_id = args[0]
        values = {}
        for pair in args[1:]:
            key, sep, raw = pair.partition("=")
            if not sep:
                return self._usage("/config <id> [key=value ...]")
            values[key] = parse_value(raw)

        if values:
            config = self.state.manager.update_plugin_config(plugin_id, values)
        else:
            info = self.state.manager.get_plugin_info(plugin_id)
            if info is None:
                console.print(f"[red]✗ Plugin not found: {plugin_id}[/red]\n")
                return True
            config = info["config"]

        console.print(Panel(
            json.dumps(config, indent=2, ensure_ascii=False, default=str),
            title=f"{plugin_id} config",
            border_style="blue"
        ))
        console.print()
        return True

    def _cmd_help(self, args: List[str]) -> bool:
        help_text = """[bold]Commands:[/bold]
  /q, /quit, /exit              Quit
  /plugins                      List plugins in load order
  /enable <id>                  Enable a plugin and its dependencies
  /disable <id> [--cascade]     Disable a plugin (--cascade: dependents too)
  /load <id>                    Load a plugin without enabling it
  /unload <id> [--cascade]      Unload a plugin (--cascade: dependents too)
  /order                        Show the dependency load order
  /themes                       List contributed themes
  /widgets                      List contributed widgets
  /render <widget> [k=v ...]    Create a widget and render it
  /services                     List registered services
  /emit <topic> [json]          Publish an event
  /events                       Show recent lifecycle events
  /config <id> [k=v ...]        Show or update a plugin's config
  /help                         Show this help"""
        console.print(Panel(help_text, title="Help", border_style="blue"))
        console.print()
        return True
