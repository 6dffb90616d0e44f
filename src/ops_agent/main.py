"""
Operations Agent CLI Entry Point

Resolves a problem report from the command line.

Usage:
    ops-agent "MES line 3 stopped reporting output counts"
    ops-agent "Acknowledge the boiler pressure alarm" --headless --max-steps 20
    python -m ops_agent "..." --dry-run
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

from .agents import create_engine
from .browser import BrowserConfig, BrowserController, SessionPool
from .config import EngineConfig, configure_logging
from .connectors import ConnectorRegistry
from .llm import create_provider_from_env
from .mcp import MCPBridge, MCPServerConfig
from .models import Credentials
from .tui import (
    confirm_plan,
    get_console,
    print_analysis,
    print_computer_action,
    print_error,
    print_execution_result,
    print_plan,
    stage_spinner,
)

# Load environment variables
load_dotenv()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Industrial operations agent: classify, plan and resolve problem reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    ops-agent "Work order WO-1182 did not sync to the ERP"
    ops-agent "Export yesterday's kiln temperatures from SCADA" --headless
    ops-agent "PLC-7 alarm keeps firing" --dry-run --connectors connectors.json
        """,
    )

    parser.add_argument(
        "problem",
        help="Free-text problem report",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify and plan only, do not execute",
    )

    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Step budget for GUI automation (default: RPA_MAX_STEPS or 50)",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging with timestamps",
    )

    parser.add_argument(
        "--connectors",
        type=str,
        default=None,
        help="JSON file with API connector definitions",
    )

    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Approve plans that require approval without prompting",
    )

    return parser.parse_args(argv)


async def run_problem(
    problem: str,
    config: EngineConfig,
    connectors: Optional[str] = None,
    headless: bool = False,
    dry_run: bool = False,
    auto_approve: bool = False,
) -> bool:
    """
    Resolve one problem report.

    Returns:
        True if the problem was resolved (or planned, for a dry run)
    """
    console = get_console()

    llm = create_provider_from_env()
    registry = ConnectorRegistry.from_file(connectors) if connectors else ConnectorRegistry()
    bridge = None
    if config.mcp_servers:
        bridge = MCPBridge(
            config.mcp_command,
            [MCPServerConfig(name=name) for name in config.mcp_servers],
            discovery_timeout=config.mcp_discovery_timeout,
            call_timeout=config.mcp_call_timeout,
            max_output_bytes=config.mcp_max_output_bytes,
        )

    credentials = None
    if os.getenv("RPA_USERNAME"):
        credentials = Credentials(
            username=os.getenv("RPA_USERNAME"),
            password=os.getenv("RPA_PASSWORD"),
        )

    browser_config = BrowserConfig.from_env()
    if headless:
        browser_config.headless = True
    controller = BrowserController(browser_config)
    pool = SessionPool(controller, max_sessions=config.browser_max_sessions)

    engine = create_engine(
        llm,
        config=config,
        registry=registry,
        bridge=bridge,
        drivers=pool,
        credentials=credentials,
        approval_handler=(lambda plan: True) if auto_approve else confirm_plan,
        on_action=print_computer_action,
    )

    console.print(f"[bold]Problem:[/bold] {problem}\n")

    try:
        if dry_run:
            with stage_spinner("Classifying and planning..."):
                result = await engine.handle_problem(problem, dry_run=True)
        else:
            # Approval prompts and GUI actions print live
            result = await engine.handle_problem(problem)

        if result.analysis is not None:
            print_analysis(result.analysis)
        if dry_run and result.success:
            print_plan(result.plan)
            console.print("[dim]Dry run: nothing executed[/dim]")
        else:
            print_execution_result(result)
        return result.success

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return False
    finally:
        await pool.close()
        await registry.close()
        await llm.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        os.environ.setdefault("LOG_LEVEL", "DEBUG")
    configure_logging(
        level=logging.DEBUG if args.verbose else None,
        verbose=args.verbose,
    )

    config = EngineConfig.from_env()
    if args.max_steps is not None:
        config.max_steps = args.max_steps

    try:
        success = asyncio.run(run_problem(
            problem=args.problem,
            config=config,
            connectors=args.connectors,
            headless=args.headless,
            dry_run=args.dry_run,
            auto_approve=args.yes,
        ))
    except (ValueError, OSError) as e:
        # Provider credentials or connector file problems
        print_error(str(e), stage="startup")
        return 2

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
