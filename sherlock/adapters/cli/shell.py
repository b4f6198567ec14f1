"""
Interactive Sherlock shell

Single read-eval loop: built-ins first, then direct shell commands, then
natural-language requests handed to the agent. Commands run on the
connected remote host, or locally when there is none.
"""
import getpass
import readline  # noqa: F401  (line editing for input())
import sys
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ... import __version__
from ...core.constants import APP_DESCRIPTION, APP_NAME
from ...core.exceptions import (
    AuthenticationError,
    NoCredentialsError,
    SherlockError,
)
from ...core.interfaces import Executor
from ...core.logging import get_logger, get_stdout_console
from ...domain.agent import (
    Agent,
    extract_history_query,
    is_connection_request,
    is_history_request,
    is_hosts_request,
    is_interactive_command,
)
from ...domain.ssh import ClientConfig, HostInfo, LocalClient, RemoteClient
from ...infrastructure.state import HistoryRecord, HistoryStore
from ..config.settings import AppConfig
from .prompts import RichPromptProvider

logger = get_logger(__name__)

ClientFactory = Callable[[ClientConfig], RemoteClient]

HELP_TEXT = """\
[bold]Built-in commands[/bold]
  help                    Show this help message
  exit, quit, q           Exit Sherlock
  status                  Show current status
  hosts                   Show all saved hosts
  history [query]         Show or search login history
  disconnect              Disconnect from remote host (switch to local mode)

[bold]Connection[/bold]
  connect <host>          Connect to a host or SSH config alias
  connect <id>            Connect to a saved host by ID
  ssh user@host[:port]    Connect using SSH-like syntax
  Or describe it, e.g. "connect to server 192.168.1.100 as root"

[bold]Commands (local or remote)[/bold]
  $<command>              Execute a command directly, e.g. $ls -la
  Or describe it, e.g. "show me disk usage"

When not connected to a remote host, commands are executed locally."""


def format_history_table(records: List[HistoryRecord], title: str = "Login History") -> Table:
    """Render history records as a table"""
    table = Table(title=title, show_lines=False)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Host")
    table.add_column("Logins", justify="right")
    table.add_column("Last Login")
    table.add_column("Key", justify="center")

    for record in records:
        last_login = record.last_login
        table.add_row(
            str(record.id),
            escape(record.host_key),
            str(record.login_count),
            last_login.strftime("%Y-%m-%d %H:%M:%S") if last_login else "-",
            "[green]✓[/green]" if record.has_pub_key else "",
        )
    return table


def print_hosts(console: Console, history: Optional[HistoryStore]) -> None:
    """Print saved hosts for quick selection"""
    if history is None:
        console.print("Hosts feature is not available.")
        return

    records = history.get_records()
    if not records:
        console.print("No saved hosts found.")
        return

    console.print(format_history_table(records, title="Saved Hosts"))
    console.print("Use 'connect <id>' to connect to a saved host.")


class SherlockShell:
    """Interactive shell driving a remote or local executor"""

    def __init__(
        self,
        config: AppConfig,
        agent: Agent,
        history: Optional[HistoryStore] = None,
        prompts: Optional[RichPromptProvider] = None,
        console: Optional[Console] = None,
        local: Optional[Executor] = None,
        client_factory: ClientFactory = RemoteClient,
    ):
        self.config = config
        self.agent = agent
        self.history = history
        self.console = console or get_stdout_console()
        self.prompts = prompts or RichPromptProvider(self.console)
        self.local: Executor = local or LocalClient()
        self.client_factory = client_factory
        self.remote: Optional[RemoteClient] = None
        self.running = True

        self.agent.set_custom_shell_commands(config.shell_commands.whitelist)

    @property
    def executor(self) -> Executor:
        """Connected remote client, else the local executor"""
        if self.remote is not None and self.remote.is_connected():
            return self.remote
        return self.local

    @property
    def is_remote(self) -> bool:
        return self.remote is not None and self.remote.is_connected()

    # --------------------
    # Loop
    # --------------------
    def run(self) -> None:
        """Run the read-eval loop until exit or EOF"""
        self._print_welcome()

        try:
            while self.running:
                try:
                    line = input(f"sherlock[{self.executor.host_info_string()}]> ").strip()
                except EOFError:
                    self.console.print()
                    break
                except KeyboardInterrupt:
                    self.console.print("\nUse 'exit' to quit")
                    continue

                if not line:
                    continue

                try:
                    self.handle_input(line)
                except KeyboardInterrupt:
                    self.console.print("\nInterrupted")
                except SherlockError as e:
                    self.console.print(f"[red]Error:[/red] {escape(str(e))}")
        finally:
            self.cleanup()

        self.console.print("Goodbye!")

    def handle_input(self, line: str) -> None:
        """
        Dispatch one line of input.

        Raises:
            SherlockError: When the request fails
        """
        lower = line.lower()

        if lower == "help":
            self.console.print(HELP_TEXT)
            return
        if lower in ("exit", "quit", "q"):
            self.running = False
            return
        if lower == "status":
            self.show_status()
            return
        if lower == "hosts":
            print_hosts(self.console, self.history)
            return
        if lower == "disconnect":
            self.disconnect()
            return
        if lower == "history" or lower.startswith("history "):
            self.show_history(line[len("history"):].strip())
            return

        if lower.startswith(("connect ", "ssh ")):
            self.handle_connect(line)
            return

        if line.startswith("$"):
            command = line[1:].strip()
            if command:
                self.execute_command(command)
            return

        if self.agent.is_shell_command(line):
            self.handle_command_request(line)
            return

        if is_connection_request(line):
            self.handle_connect(line)
            return
        if is_history_request(line):
            self.show_history(extract_history_query(line))
            return
        if is_hosts_request(line):
            print_hosts(self.console, self.history)
            return

        self.handle_command_request(line)

    # --------------------
    # Connection
    # --------------------
    def handle_connect(self, line: str) -> bool:
        """
        Resolve a connection request and connect.

        Accepts "connect <id>", "connect <target>", "ssh <target>" and
        free-form requests.
        """
        words = line.split()
        if len(words) == 2 and words[0].lower() in ("connect", "ssh"):
            target = words[1]
            if target.isdigit() and self.history is not None:
                record = self.history.get_record_by_id(int(target))
                if record is not None:
                    return self.connect_to_host(HostInfo(record.host, record.port, record.user))
            return self.connect_to_host(HostInfo.parse(target))

        self.console.print("Parsing connection request...")
        info = self.agent.parse_connection_request(line)
        return self.connect_to_host(info.to_host_info())

    def _client_config(self, host_info: HostInfo, password: Optional[str] = None) -> ClientConfig:
        ssh = self.config.ssh
        return ClientConfig(
            host_info=host_info,
            password=password,
            key_path=self.config.ssh_key.private_key_path or None,
            timeout=ssh.timeout,
            strict_host_key_checking=ssh.strict_host_key_checking,
            use_ssh_config=ssh.use_ssh_config,
            known_hosts_path=ssh.known_hosts_path,
            fallback_user=_local_user(),
        )

    def _open(self, host_info: HostInfo, password: Optional[str] = None) -> RemoteClient:
        client = self.client_factory(self._client_config(host_info, password))
        try:
            client.connect()
        except BaseException:
            client.close()
            raise
        return client

    def connect_to_host(self, host_info: HostInfo) -> bool:
        """
        Connect with keys first, then fall back to a password prompt.

        After a password login the configured public key is optionally
        pushed to the remote authorized_keys.

        Returns:
            True if connected

        Raises:
            ConnectionError: On dial, host key or password auth failure
            ConfigError: On invalid connection settings
        """
        self.console.print(f"Connecting to {escape(str(host_info))}...")

        client: Optional[RemoteClient] = None
        try:
            client = self._open(host_info)
        except (AuthenticationError, NoCredentialsError) as e:
            logger.debug("Key authentication unavailable: %s", e)
            self.console.print("Key authentication failed, falling back to password...")

        if client is not None:
            self._attach(client, has_pub_key=True)
            self.prompts.success(f"Connected to {escape(client.host_info_string())} using SSH key")
            return True

        password = self.prompts.prompt("Password (or press Enter to cancel)", password=True)
        if not password:
            self.console.print("Connection cancelled.")
            return False

        client = self._open(host_info, password=password)
        self.prompts.success(f"Connected to {escape(client.host_info_string())}")

        key_added = False
        public_key = self.config.ssh_key.public_key_path
        if self.config.ssh_key.auto_add_to_remote and public_key:
            self.console.print("Adding public key to remote authorized_keys...")
            try:
                client.add_public_key_to_authorized_keys(public_key)
            except (SherlockError, OSError) as e:
                self.prompts.warning(f"Failed to add public key: {escape(str(e))}")
            else:
                key_added = True
                self.console.print("Public key added. Future connections can use key authentication.")

        self._attach(client, has_pub_key=key_added)
        return True

    def _attach(self, client: RemoteClient, has_pub_key: bool) -> None:
        if self.remote is not None:
            self.remote.close()
        self.remote = client

        if self.history is not None:
            info = client.host_info
            try:
                self.history.add_record(info.host, info.port, info.user, has_pub_key)
            except OSError as e:
                logger.warning("Failed to update login history: %s", e)

    def disconnect(self) -> None:
        if self.remote is None:
            self.console.print("Not connected to any host.")
            return
        self.remote.close()
        self.remote = None
        self.console.print("Disconnected.")

    # --------------------
    # Commands
    # --------------------
    def handle_command_request(self, line: str) -> None:
        """Translate a request into commands, confirm if needed, and run them"""
        info = self.agent.parse_command_request(line)

        self.console.print("Commands to execute:")
        for i, command in enumerate(info.commands, 1):
            self.console.print(f"  {i}. [bold]{escape(command)}[/bold]")
        if info.description:
            self.console.print(f"Description: {escape(info.description)}")

        if info.needs_confirm and not self.prompts.confirm(
            "[yellow]⚠ This operation may be dangerous. Continue?[/yellow]", default=False
        ):
            self.console.print("Operation cancelled.")
            return

        for command in info.commands:
            self.console.print(f"\n[dim]$[/dim] {escape(command)}")
            if not self.execute_command(command):
                return

    def execute_command(self, command: str) -> bool:
        """
        Run one command on the current executor and print its output.

        Returns:
            False if the command failed to run (transport error)
        """
        executor = self.executor

        if is_interactive_command(command):
            exit_code = executor.execute_interactive(command)
            if exit_code:
                self.console.print(f"(exit code: {exit_code})")
            return True

        result = executor.execute(command)
        if result.stdout:
            sys.stdout.write(result.stdout)
            if not result.stdout.endswith("\n"):
                sys.stdout.write("\n")
            sys.stdout.flush()
        if result.stderr:
            sys.stderr.write(result.stderr)
            if not result.stderr.endswith("\n"):
                sys.stderr.write("\n")
            sys.stderr.flush()

        if result.error is not None:
            self.console.print(f"[red]Error:[/red] {escape(str(result.error))}")
            return False
        if result.exit_code != 0:
            self.console.print(f"(exit code: {result.exit_code})")
        return True

    # --------------------
    # Information
    # --------------------
    def show_history(self, query: str = "") -> None:
        if self.history is None:
            self.console.print("History feature is not available.")
            return

        records = self.history.search_records(query) if query else self.history.get_records()
        if not records:
            self.console.print("No login history found.")
            return
        self.console.print(format_history_table(records))

    def show_status(self) -> None:
        table = Table(title=f"{APP_NAME} Status", show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_row("Version", __version__)
        table.add_row("LLM Provider", self.config.llm.provider)
        table.add_row("LLM Model", escape(self.config.llm.model))

        executor = self.executor
        mode = "remote" if self.is_remote else "local"
        table.add_row("Connected to", f"{escape(executor.host_info_string())} ({mode})")
        if executor.cwd:
            table.add_row("Directory", escape(executor.cwd))
        self.console.print(table)

    def _print_welcome(self) -> None:
        self.prompts.panel(
            f"[bold]{APP_NAME}[/bold] {__version__}\n{APP_DESCRIPTION}",
            title="Welcome",
        )
        self.console.print("Type 'help' for available commands or describe what you want to do.\n")

    def cleanup(self) -> None:
        if self.remote is not None:
            self.remote.close()
            self.remote = None
        self.local.close()
        self.agent.close()


def _local_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""
