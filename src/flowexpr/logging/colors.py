"""ANSI color codes for terminal output.

All colors use the 256-color palette for better compatibility and consistency.

Usage:
    from flowexpr.logging.colors import YELLOW, RESET

    print(f"{YELLOW}Expression left unresolved{RESET}")
"""

# Basic colors
RESET = "\033[0m"

# Primary colors for level indication
RED = "\033[38;5;196m"  # Errors
YELLOW = "\033[38;5;226m"  # Warnings

# Secondary colors for information
LIGHT_BLUE = "\033[38;5;153m"  # Debug and extra fields
CYAN = "\033[38;5;51m"  # Info
MAGENTA = "\033[38;5;201m"  # Component names

LEVEL_COLORS = {
    "DEBUG": LIGHT_BLUE,
    "INFO": CYAN,
    "WARNING": YELLOW,
    "ERROR": RED,
    "CRITICAL": RED,
}

__all__ = [
    "RESET",
    "RED",
    "YELLOW",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
    "LEVEL_COLORS",
]
