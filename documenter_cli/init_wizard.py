"""
Interactive project setup for Documenter.

Creates ``.documenter.json`` in the working directory and, when there is
none yet, a ``.env`` holding the chosen provider settings. Does nothing if
the project is already initialised.
"""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Any, Optional

from rich.console import Console

from documenter_constants import (
    CONFIG_FILENAMES,
    DEFAULT_LMSTUDIO_ENDPOINT,
    DEFAULT_LMSTUDIO_MODEL,
    DEFAULT_MAX_HISTORY,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OUTPUT_DIR,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = CONFIG_FILENAMES[0]

InputFn = Callable[[str], str]


class InitWizard:
    """Question/answer setup. ``input_fn`` and ``out`` are injectable for tests."""

    def __init__(
        self,
        cwd: Optional[str] = None,
        input_fn: InputFn = input,
        out: Optional[Console] = None,
    ):
        self.cwd = Path(cwd or os.getcwd())
        self.input_fn = input_fn
        self.console = out or Console()

    # -- output helpers ---------------------------------------------------

    def print_header(self, title: str) -> None:
        self.console.print()
        self.console.print(f"[bold cyan]◆ {title}[/bold cyan]")

    def print_info(self, text: str) -> None:
        self.console.print(f"  {text}", style="dim", highlight=False)

    def print_success(self, text: str) -> None:
        self.console.print(f"[green]✓ {text}[/green]", highlight=False)

    def print_warning(self, text: str) -> None:
        self.console.print(f"[yellow]⚠ {text}[/yellow]", highlight=False)

    def prompt(self, question: str, default: str = "") -> str:
        display = f"{question} [{default}]: " if default else f"{question}: "
        value = self.input_fn(display)
        return (value or "").strip() or default

    # -- steps ------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        return self.cwd / CONFIG_FILENAME

    @property
    def env_path(self) -> Path:
        return self.cwd / ".env"

    def collect(self) -> Dict[str, Any]:
        self.print_info("Choose your LLM provider:")
        self.print_info(f"1. OpenAI ({DEFAULT_OPENAI_MODEL}, gpt-4o, etc.)")
        self.print_info("2. LMStudio (local models)")
        choice = self.prompt("Select provider", "1")

        config: Dict[str, Any]
        if choice == "2":
            config = {
                "provider": "lmstudio",
                "lmstudio_endpoint": self.prompt("LMStudio endpoint", DEFAULT_LMSTUDIO_ENDPOINT),
                "lmstudio_model": self.prompt("Model name", DEFAULT_LMSTUDIO_MODEL),
                "max_conversation_history": DEFAULT_MAX_HISTORY,
            }
        else:
            api_key = self.prompt("OpenAI API key (Enter to use the environment variable)")
            config = {
                "provider": "openai",
                "openai_model": self.prompt("OpenAI model", DEFAULT_OPENAI_MODEL),
                "max_conversation_history": DEFAULT_MAX_HISTORY,
            }
            if api_key:
                config["openai_api_key"] = api_key

        config["default_output_dir"] = self.prompt("Default output directory", DEFAULT_OUTPUT_DIR)
        return config

    def env_lines(self, config: Dict[str, Any]) -> Optional[str]:
        if config["provider"] == "lmstudio":
            return (
                f"LLM_PROVIDER=lmstudio\n"
                f"LMSTUDIO_ENDPOINT={config['lmstudio_endpoint']}\n"
                f"LMSTUDIO_MODEL={config['lmstudio_model']}\n"
            )
        if config.get("openai_api_key"):
            return (
                f"LLM_PROVIDER=openai\n"
                f"OPENAI_API_KEY={config['openai_api_key']}\n"
                f"OPENAI_MODEL={config['openai_model']}\n"
            )
        return None

    def run(self) -> bool:
        """Returns True when a new configuration was written."""
        self.print_header("Initializing Documenter")

        if self.config_path.exists():
            self.print_warning("Documenter is already initialized in this directory.")
            self.print_info(f"Config file exists at: {self.config_path}")
            return False

        self.console.print("Let's set up documenter for your project.\n")
        config = self.collect()

        self.config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
        logger.info("Wrote %s", self.config_path)

        env_content = self.env_lines(config)
        if env_content:
            if self.env_path.exists():
                self.print_warning(".env file already exists. Add your provider settings to it manually if needed.")
            else:
                self.env_path.write_text(env_content, encoding="utf-8")
                self.print_success("Created .env file with your configuration.")

        self.print_success("Documenter initialized successfully!")
        self.print_info(f"Config saved to: {self.config_path}")
        self.console.print('\nYou can now run "documenter" to start the documentation assistant.')
        return True


def run_init_wizard(cwd: Optional[str] = None) -> bool:
    try:
        return InitWizard(cwd).run()
    except (KeyboardInterrupt, EOFError):
        print()
        return False
