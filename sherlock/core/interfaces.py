"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.ssh.models import ExecuteResult


class Executor(ABC):
    """
    Command execution target (remote host or local machine).

    Implementations keep a tracked working directory that survives
    across calls even when every call runs in a fresh process.
    """

    @abstractmethod
    def execute(self, command: str, timeout: Optional[float] = None) -> "ExecuteResult":
        """Run a command to completion and capture its output"""
        pass

    @abstractmethod
    def execute_interactive(self, command: str) -> Optional[int]:
        """Run a command attached to the local terminal"""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the executor is ready to run commands"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release resources held by the executor"""
        pass

    @abstractmethod
    def host_info_string(self) -> str:
        """Identity string shown in prompts and history"""
        pass

    @property
    @abstractmethod
    def cwd(self) -> str:
        """Tracked working directory ("" when not tracked yet)"""
        pass


class ModelClient(ABC):
    """Language model backend interface"""

    @abstractmethod
    def generate(self, system_prompt: str, user_text: str) -> str:
        """Return the model's free-text reply"""
        pass

    def close(self) -> None:
        """Release underlying HTTP resources"""
        pass


class PromptProvider(ABC):
    """User prompt interface"""

    @abstractmethod
    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input"""
        pass

    @abstractmethod
    def confirm(self, message: str, default: bool = False) -> bool:
        """Prompt user for confirmation"""
        pass
