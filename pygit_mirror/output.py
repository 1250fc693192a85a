"""Output handler implementations: console, null, buffered."""

from __future__ import annotations

import sys
from collections.abc import Callable

from colorama import Fore, Style
from tqdm import tqdm

from pygit_mirror.protocols import OutputHandler

SECTION_WIDTH = 50

Terminator = Callable[[int], object]


class ConsoleOutputHandler:
    """Console output with colors."""

    def __init__(self, verbose: bool = False, terminate: Terminator = sys.exit):
        """Create a console handler. Set verbose=True to enable debug output.

        `terminate` is called by fatal() with the exit code; it defaults to
        sys.exit and can be swapped out by callers that must not exit.
        """
        self.verbose = verbose
        self.terminate = terminate

    def info(self, message: str, indent: int = 0) -> None:
        """Print an informational message."""
        tqdm.write("  " * indent + message)

    def success(self, message: str, indent: int = 0) -> None:
        """Print a green success message."""
        tqdm.write("  " * indent + f"{Fore.GREEN}{message}{Style.RESET_ALL}")

    def warning(self, message: str, indent: int = 0) -> None:
        """Print a yellow warning message."""
        tqdm.write("  " * indent + f"{Fore.YELLOW}{message}{Style.RESET_ALL}")

    def error(self, message: str, indent: int = 0) -> None:
        """Print a red error message."""
        tqdm.write("  " * indent + f"{Fore.RED}{message}{Style.RESET_ALL}")

    def section(self, title: str) -> None:
        """Print a section header with a divider line."""
        tqdm.write("")
        tqdm.write(title)
        tqdm.write("-" * SECTION_WIDTH)

    def debug(self, message: str) -> None:
        """Print a cyan debug message (only when verbose is enabled)."""
        if self.verbose:
            tqdm.write(f"{Fore.CYAN}[DEBUG] {message}{Style.RESET_ALL}")

    def fatal(self, message: str, code: int = 1) -> None:
        """Print a red error message and terminate with the given code."""
        tqdm.write(f"{Fore.RED}[FATAL] {message}{Style.RESET_ALL}")
        self.terminate(code)


class NullOutputHandler:
    """Silent output handler for testing and JSON mode."""

    def __init__(self, terminate: Terminator = sys.exit):
        self.terminate = terminate

    def info(self, message: str, indent: int = 0) -> None:
        pass

    def success(self, message: str, indent: int = 0) -> None:
        pass

    def warning(self, message: str, indent: int = 0) -> None:
        pass

    def error(self, message: str, indent: int = 0) -> None:
        pass

    def section(self, title: str) -> None:
        pass

    def debug(self, message: str) -> None:
        pass

    def fatal(self, message: str, code: int = 1) -> None:
        """Terminate with the given code without printing."""
        self.terminate(code)


class BufferedOutputHandler:
    """Collects output for deferred printing (used in parallel mode).

    Messages keep their level so flushing replays them on the target
    handler unchanged.
    """

    def __init__(self):
        """Initialize with an empty message buffer."""
        self.messages: list[tuple[str, str, int]] = []

    def info(self, message: str, indent: int = 0) -> None:
        self.messages.append(('info', message, indent))

    def success(self, message: str, indent: int = 0) -> None:
        self.messages.append(('success', message, indent))

    def warning(self, message: str, indent: int = 0) -> None:
        self.messages.append(('warning', message, indent))

    def error(self, message: str, indent: int = 0) -> None:
        self.messages.append(('error', message, indent))

    def section(self, title: str) -> None:
        self.messages.append(('section', title, 0))

    def debug(self, message: str) -> None:
        """No-op (debug suppressed in parallel mode)."""
        pass

    def flush_to(self, target: OutputHandler) -> None:
        """Replay all buffered messages on a target handler and clear the buffer."""
        for level, message, indent in self.messages:
            if level == 'section':
                target.section(message)
            else:
                getattr(target, level)(message, indent=indent)
        self.messages.clear()
