"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "feed", "whoami", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9BF0 bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;155;240m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ██╗     ██╗██╗   ██╗███████╗██████╗ ██████╗  ██████╗ ██████╗
 ██║     ██║██║   ██║██╔════╝██╔══██╗██╔══██╗██╔═══██╗██╔══██╗
 ██║     ██║██║   ██║█████╗  ██║  ██║██████╔╝██║   ██║██████╔╝
 ██║     ██║╚██╗ ██╔╝██╔══╝  ██║  ██║██╔══██╗██║   ██║██╔═══╝
 ███████╗██║ ╚████╔╝ ███████╗██████╔╝██║  ██║╚██████╔╝██║
 ╚══════╝╚═╝  ╚═══╝  ╚══════╝╚═════╝ ╚═╝  ╚═╝ ╚═════╝ ╚═╝
{RESET}"""

WELCOME_TITLE = "LiveDrop CLI - shared upload feed"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "livedrop> "

DEFAULT_FEED_LIMIT = 20

HELP_TEXT = """Available commands:
  upload <path> [path ...]    Simulate uploading files and publish their metadata
  feed [limit]                Show the newest entries of the shared feed
  whoami                      Show the identity of this session
  clear                       Clear screen and redisplay welcome message
  help                        Show this help
  exit                        Exit REPL

Examples:
  upload report.pdf photo.png
  feed 5"""
