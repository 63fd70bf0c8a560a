"""
Documenter CLI - interactive shell, terminal display and project setup.

Modules:
- conversation: the REPL that drives the agent one turn at a time
- display: welcome/help panels, tool banners and the spinner (rich)
- init_wizard: interactive creation of .documenter.json and .env
"""

__version__ = "0.1.0"
