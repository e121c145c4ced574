"""Console log formatters for the kubehop server.

Lines look like ``14:02:11.204 10/19 | INFO     | services.hops | ...``
with the level, component and interesting tokens (SSH endpoints, hop
positions, action names, durations) colored when the stream is a TTY.
"""

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Checked in order, so services.hops must come before any bare services entry
COMPONENT_COLORS = (
    ("kubehop.server", COLORS["bright_cyan"]),
    ("kubehop.services.hops", COLORS["bright_magenta"]),
    ("kubehop.services.orchestrator", COLORS["bright_blue"]),
    ("kubehop.services.lifecycle", COLORS["magenta"]),
    ("kubehop.bootstrap", COLORS["cyan"]),
    ("kubehop.tools", COLORS["blue"]),
    ("kubehop.middleware", COLORS["yellow"]),
    ("kubehop.config", COLORS["green"]),
)
DEFAULT_COMPONENT_COLOR = COLORS["white"]

LOG_TZ = ZoneInfo("America/New_York")

PACKAGE_PREFIX = "kubehop."
COMPONENT_WIDTH = 22

HIGHLIGHTS = (
    (re.compile(r"(\d+\.?\d*m?s)\b"), COLORS["bright_yellow"]),
    (re.compile(r"(\b[\w.\-]+@[\w.\-]+:\d+\b)"), COLORS["bright_magenta"]),
    (re.compile(r"(hop \d+)"), COLORS["magenta"]),
    (re.compile(r"(action=\w+)"), COLORS["bright_cyan"]),
)


def component_color(logger_name: str) -> str:
    """Color for the component a logger belongs to."""
    for prefix, color in COMPONENT_COLORS:
        if logger_name.startswith(prefix):
            return color
    return DEFAULT_COMPONENT_COLOR


class ColorfulFormatter(logging.Formatter):
    """Pipe-separated formatter with optional ANSI colors."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def paint(self, text: str, color: str) -> str:
        return f"{color}{text}{COLORS['reset']}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=LOG_TZ)
        stamp = f"{created:%H:%M:%S}.{int(record.msecs):03d} {created:%m/%d}"
        component = record.name.removeprefix(PACKAGE_PREFIX)

        fields = (
            self.paint(stamp, COLORS["dim"]),
            self.paint(f"{record.levelname:<8}", LEVEL_COLORS.get(record.levelname, COLORS["white"])),
            self.paint(f"{component:<{COMPONENT_WIDTH}}", component_color(record.name)),
            self.highlight(record.getMessage()),
        )
        line = f" {self.paint('|', COLORS['dim'])} ".join(fields)

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    def highlight(self, message: str) -> str:
        """Color durations, SSH endpoints, hop positions and action names."""
        if not self.use_colors:
            return message
        for pattern, color in HIGHLIGHTS:
            message = pattern.sub(f"{color}\\1{COLORS['reset']}", message)
        return message


class MCPRequestFormatter(ColorfulFormatter):
    """ColorfulFormatter that flags lifecycle events with a leading marker.

    Lines without a marker are indented so messages stay aligned.
    """

    MARKERS = (
        (("starting", "ready", "launched"), "bright_green", ">>>"),
        (("shutting down", "shutdown"), "bright_red", "<<<"),
        (("error", "failed"), "bright_red", "!! "),
        (("warning", "slow", "timed out"), "bright_yellow", "!  "),
        (("completed", "finished", "installed"), "bright_green", "OK "),
        (("connecting", "opening"), "bright_cyan", "+  "),
        (("closing", "removing", "draining"), "bright_yellow", "-  "),
    )

    def marker_for(self, message: str) -> str:
        lowered = message.lower()
        for words, color, marker in self.MARKERS:
            if any(word in lowered for word in words):
                return f"{COLORS[color]}{marker}{COLORS['reset']}"
        return "   "

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.use_colors:
            return line
        return f"{self.marker_for(record.getMessage())} {line}"
