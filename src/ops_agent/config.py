"""
Configuration and Logging Setup

Provides centralized engine configuration and logging for the operations agent.
Values are read from environment variables (a .env file is honoured).

Modules log through logging.getLogger(__name__); the CLI calls
configure_logging() once at startup.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

_NOISY_LOGGERS = ("playwright", "asyncio", "httpx", "httpcore", "anthropic")

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in TRUE_VALUES


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class EngineConfig:
    """
    Runtime knobs for the orchestration engine and the perception-action loop.

    Timeouts are in seconds; a stage_timeout of None disables the per-stage limit.
    """

    # Perception-action loop
    max_steps: int = 50
    settle_interval: float = 0.5
    history_window: int = 5
    rpa_task_timeout: Optional[float] = None

    # Orchestration
    stage_timeout: Optional[float] = 300.0

    # Malformed model output degrades to empty/completion instead of raising
    degrade_on_malformed: bool = True

    # Tool-protocol bridge
    mcp_command: str = "mcp-cli"
    mcp_servers: list[str] = field(default_factory=list)
    mcp_discovery_timeout: float = 30.0
    mcp_call_timeout: float = 60.0
    mcp_max_output_bytes: int = 10 * 1024 * 1024

    # Browser sessions handed out concurrently
    browser_max_sessions: int = 2

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create EngineConfig from environment variables.

        Environment variables:
            RPA_MAX_STEPS: int (default: 50)
            RPA_SETTLE_MS: int in ms (default: 500)
            RPA_HISTORY_WINDOW: int (default: 5)
            RPA_TASK_TIMEOUT: seconds per GUI task, 0 disables (default: 0)
            STAGE_TIMEOUT: seconds, 0 disables (default: 300)
            DEGRADE_ON_MALFORMED: true/false (default: true)
            MCP_CLI_COMMAND: executable (default: mcp-cli)
            MCP_SERVERS: comma-separated server names
            MCP_DISCOVERY_TIMEOUT / MCP_CALL_TIMEOUT: seconds (default: 30 / 60)
            MCP_MAX_OUTPUT_BYTES: int (default: 10485760)
            BROWSER_MAX_SESSIONS: int (default: 2)
        """
        stage_timeout = float(os.getenv("STAGE_TIMEOUT", "300"))
        task_timeout = float(os.getenv("RPA_TASK_TIMEOUT", "0"))

        return cls(
            max_steps=int(os.getenv("RPA_MAX_STEPS", "50")),
            settle_interval=int(os.getenv("RPA_SETTLE_MS", "500")) / 1000,
            history_window=int(os.getenv("RPA_HISTORY_WINDOW", "5")),
            rpa_task_timeout=task_timeout if task_timeout > 0 else None,
            stage_timeout=stage_timeout if stage_timeout > 0 else None,
            degrade_on_malformed=_env_bool("DEGRADE_ON_MALFORMED", "true"),
            mcp_command=os.getenv("MCP_CLI_COMMAND", "mcp-cli"),
            mcp_servers=_env_list("MCP_SERVERS"),
            mcp_discovery_timeout=float(os.getenv("MCP_DISCOVERY_TIMEOUT", "30")),
            mcp_call_timeout=float(os.getenv("MCP_CALL_TIMEOUT", "60")),
            mcp_max_output_bytes=int(os.getenv("MCP_MAX_OUTPUT_BYTES", str(10 * 1024 * 1024))),
            browser_max_sessions=int(os.getenv("BROWSER_MAX_SESSIONS", "2")),
        )


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the operations agent.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("ops_agent").setLevel(level)

    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
