"""REPL core loop."""

import logging
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.panel import Panel

from cli.command_handler import CommandHandler
from cli.state import REPLState
from termkit import __version__
from termkit.plugins.manager import PluginManager
from termkit.plugins.registry import PluginState

logger = logging.getLogger(__name__)

# Global console
console = Console(
    legacy_windows=False,
    force_terminal=True,
    force_interactive=False,
    no_color=False,
    tab_size=4
)

# Log directory
LOG_DIR = Path(__file__).parent.parent / "log"
LOG_DIR.mkdir(exist_ok=True)


class REPLRunner:
    """Interactive plugin console.

    Owns the plugin manager for the session: plugins are discovered and
    loaded on start and shut down on exit.
    """

    def __init__(self, manager: PluginManager):
        self.manager = manager
        self.state = REPLState(manager)
        self.command_handler = CommandHandler(self.state)

    def _show_welcome(self):
        host = self.manager.host
        enabled = len(host.registry.get_by_state(PluginState.ENABLED))
        errored = len(host.registry.get_by_state(PluginState.ERRORED))

        console.print(Panel.fit(
            f"[bold cyan]termkit plugin console[/bold cyan] v{__version__}\n"
            f"[green]Plugins:[/green] {host.registry.count()} registered, {enabled} enabled"
            + (f", [red]{errored} errored[/red]" if errored else "")
            + "\nType /help for commands, /q to quit",
            border_style="blue"
        ))
        console.print()

    def _build_prompt(self) -> HTML:
        enabled = len(self.manager.host.registry.get_by_state(PluginState.ENABLED))
        return HTML(f'<ansicyan>[{enabled} on]</ansicyan> <b>termkit></b> ')

    def run(self):
        """Main loop."""
        self.manager.load_all()

        # Setup command history (persistent across sessions)
        history_file = LOG_DIR / ".cli_history"
        session = PromptSession(
            history=FileHistory(str(history_file)),
            completer=WordCompleter(list(self.command_handler.commands), sentence=True),
        )

        self._show_welcome()

        try:
            while True:
                try:
                    user_input = session.prompt(self._build_prompt()).strip()
                    if not user_input:
                        continue

                    if not user_input.startswith("/"):
                        console.print("[dim]Commands start with '/', try /help[/dim]\n")
                        continue

                    if not self.command_handler.handle(user_input):
                        break

                except KeyboardInterrupt:
                    console.print("\n[yellow](use /q to quit)[/yellow]\n")
                    continue

                except EOFError:
                    console.print("\n[yellow]bye bye![/yellow]")
                    break

                except Exception as e:
                    console.print(f"[red]Error: {e}[/red]\n")
                    logger.exception("REPL error")
        finally:
            self.state.close()
            self.manager.shutdown()
