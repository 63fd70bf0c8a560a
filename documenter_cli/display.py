"""Terminal rendering for the conversation shell (rich)."""

from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.text import Text

console = Console()

TOOL_EMOJI = {
    "read_file": "📖",
    "list_directory": "📁",
    "write_file": "✍️",
}

CAPABILITIES = (
    "Individual files, with binary detection and caching",
    "Directory structures and complete project analysis",
    "File search by name pattern, fuzzy name or content",
    "API documentation, README files and technical guides",
    "Inline documentation (docstrings, JSDoc, ...) written into source files",
)

EXAMPLES = (
    '"Document the file src/app.py"',
    '"Analyze this project structure"',
    '"Find where UserService is used"',
    '"Create a README for this project"',
    '"Add docstrings to all functions in main.py"',
)


def print_welcome(summary: Dict[str, str], out: Optional[Console] = None) -> None:
    out = out or console
    out.clear()
    lines = Text()
    lines.append("Welcome to your AI technical documentation assistant!\n\n", style="cyan")
    lines.append(f"Working directory: {summary.get('working_dir', '')}\n", style="dim")
    lines.append(f"Provider: {summary.get('provider', '')}\n", style="dim")
    if summary.get("endpoint"):
        lines.append(f"Endpoint: {summary['endpoint']}\n", style="dim")
    lines.append(f"Model: {summary.get('model', '')}\n\n", style="dim")

    lines.append("I can help you document:\n", style="white")
    for item in CAPABILITIES:
        lines.append(f"• {item}\n", style="dim")
    lines.append("\nTry:\n", style="white")
    for example in EXAMPLES:
        lines.append(f"• {example}\n", style="dim")
    lines.append('\nType "exit" to quit or "help" for assistance.', style="yellow")

    out.print(Panel(lines, title="📝 Technical Documentation Writer", border_style="blue"))
    out.print()


def print_help(out: Optional[Console] = None) -> None:
    out = out or console
    body = Text()
    body.append("General commands:\n", style="white")
    body.append('• "exit" or "quit" - Exit the application\n', style="dim")
    body.append('• "clear" - Clear the screen and reset conversation\n', style="dim")
    body.append('• "help" - Show this help message\n', style="dim")
    body.append('• "init" - Initialize documenter in current directory\n\n', style="dim")
    body.append("Documentation requests:\n", style="white")
    for example in EXAMPLES:
        body.append(f"• {example}\n", style="dim")
    body.append("\nTips:\n", style="white")
    body.append("• Be specific about which files or folders to document\n", style="dim")
    body.append("• Generated docs go to the configured output directory unless you name a path", style="dim")
    out.print(Panel(body, title="📚 HELP", border_style="green"))
    out.print()


def tool_banner(name: str) -> str:
    emoji = TOOL_EMOJI.get(name, "📄")
    return f"{emoji} {name.replace('_', ' ').upper()}"


def print_tool_banner(name: str, out: Optional[Console] = None) -> None:
    out = out or console
    out.print(Text(f"  {tool_banner(name)}  ", style="bold black on cyan"))


def print_error(message: str, out: Optional[Console] = None) -> None:
    out = out or console
    out.print(f"[red]\n❌ Error occurred:[/red] {escape(message)}", highlight=False)
    out.print("[yellow]Please try again with a different request.\n[/yellow]")


class Spinner:
    """Start/stop wrapper around rich's status spinner; stop() is idempotent."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self._status: Optional[Status] = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self, message: str) -> None:
        self.stop()
        self._status = self._console.status(f"[cyan]{message}...[/cyan]", spinner="dots")
        self._status.start()

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
