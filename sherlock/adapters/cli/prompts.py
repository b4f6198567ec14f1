"""
Rich-based user prompts
"""
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from ...core.interfaces import PromptProvider
from ...core.logging import get_stdout_console


class RichPromptProvider(PromptProvider):
    """Rich-based prompt provider"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_stdout_console()

    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input; empty input yields default (or "")"""
        if default is not None:
            formatted_message = f"{message} (default: {default})"
        else:
            formatted_message = message

        value = Prompt.ask(formatted_message, password=password, default=default, console=self.console)
        return value or ""

    def confirm(self, message: str, default: bool = False) -> bool:
        """Prompt user for confirmation"""
        return Confirm.ask(message, default=default, console=self.console)

    def info(self, message: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan] {message}")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def panel(self, content: str, title: str = "", border_style: str = "blue") -> None:
        """Display content in a panel"""
        self.console.print(Panel(content, title=title, border_style=border_style))
