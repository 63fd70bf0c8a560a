"""
Interactive conversation shell.

Reads a line, handles the built-in commands (exit/quit, clear, help, init),
otherwise runs one agent turn with the recent history and renders the
streamed events. A failed turn is reported and the loop keeps going.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from rich.console import Console
from rich.markup import escape

from agent.errors import get_error_details, get_error_message
from agent.history import HistoryManager
from agent.runtime import AgentRuntime, StreamedRun
from agent.stream_processor import (
    TextDelta,
    ToolCallCompleted,
    ToolCallFailed,
    ToolCallStarted,
    TruncationNotice,
)
from documenter_cli import display
from documenter_cli.init_wizard import run_init_wizard
from tools.file_cache import CacheMaintenance

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")
PROMPT = "You: "


class ConversationShell:
    """
    Args:
        runtime: Agent used for every turn.
        history: Turn store; only ``get_recent()`` is sent to the model.
        summary_fn: Returns the config summary shown in the welcome panel.
        input_fn: Line reader (blocking); run in a worker thread.
        maintenance: Cache ticker started for the life of the shell.
        stream: Render incrementally (True) or print the final answer (False).
    """

    def __init__(
        self,
        runtime: AgentRuntime,
        history: HistoryManager,
        summary_fn: Callable[[], Dict[str, str]],
        input_fn: Callable[[str], str] = input,
        out: Optional[Console] = None,
        init_fn: Callable[[], bool] = run_init_wizard,
        maintenance: Optional[CacheMaintenance] = None,
        stream: bool = True,
    ):
        self.runtime = runtime
        self.history = history
        self.summary_fn = summary_fn
        self.input_fn = input_fn
        self.console = out or display.console
        self.init_fn = init_fn
        self.maintenance = maintenance
        self.stream = stream

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render_stream(self, run: StreamedRun, spinner: display.Spinner) -> str:
        """Print events as they arrive; returns the text shown to the user."""
        shown = []
        first_text = True
        async for event in run.stream_events():
            if isinstance(event, TextDelta):
                if first_text:
                    spinner.stop()
                    self.console.print("📝 ", end="", style="green")
                    first_text = False
                self.console.print(event.delta, end="", markup=False, highlight=False)
                shown.append(event.delta)
            elif isinstance(event, TruncationNotice):
                self.console.print(event.message, end="", style="dim", markup=False, highlight=False)
            elif isinstance(event, ToolCallStarted):
                if not first_text:
                    self.console.print()
                spinner.stop()
                display.print_tool_banner(event.name, self.console)
                spinner.start("Processing file operation")
            elif isinstance(event, ToolCallCompleted):
                spinner.start("Analyzing and writing documentation")
            elif isinstance(event, ToolCallFailed):
                spinner.stop()
                self.console.print(f"\n[red]Error executing tool {escape(event.name)}:[/red] {escape(event.error)}", highlight=False)
                spinner.start("Analyzing and writing documentation")
        spinner.stop()
        return "".join(shown).strip()

    async def handle_turn(self, user_input: str) -> str:
        spinner = display.Spinner(self.console)
        spinner.start("Analyzing your request")
        try:
            recent = self.history.get_recent()
            if self.stream:
                run = self.runtime.run_streamed(user_input, history=recent)
                response = await self.render_stream(run, spinner)
            else:
                result = await self.runtime.run(user_input, history=recent)
                spinner.stop()
                response = result.final_output
                self.console.print("📝 ", end="", style="green")
                self.console.print(response, markup=False, highlight=False)
        finally:
            spinner.stop()

        self.history.add("user", user_input)
        self.history.add("assistant", response)
        self.console.print("\n")
        return response

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle_command(self, line: str) -> Optional[bool]:
        """Built-in commands. Returns False to exit, True if handled, None otherwise."""
        command = line.strip().lower()
        if command in EXIT_COMMANDS:
            self.console.print("[green]\n👋 Thank you for using the Technical Documentation Writer![/green]")
            return False
        if command == "clear":
            self.history.clear()
            display.print_welcome(self.summary_fn(), self.console)
            return True
        if command == "help":
            display.print_help(self.console)
            return True
        if command == "init":
            self.init_fn()
            return True
        return None

    async def read_line(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(self.input_fn, PROMPT)
        except (EOFError, KeyboardInterrupt):
            return None

    async def run(self) -> None:
        display.print_welcome(self.summary_fn(), self.console)
        if self.maintenance is not None:
            self.maintenance.start()
        try:
            while True:
                line = await self.read_line()
                if line is None:
                    break
                handled = self.handle_command(line)
                if handled is False:
                    break
                if handled or not line.strip():
                    continue
                try:
                    await self.handle_turn(line)
                except Exception as e:
                    logger.error("Turn failed: %s", get_error_details(e))
                    display.print_error(get_error_message(e), self.console)
        finally:
            if self.maintenance is not None:
                await self.maintenance.stop()
            self.runtime.context.files.cache.destroy()
