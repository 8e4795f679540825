"""
Command-Line Interface

CLI for running a performance analysis, issuing single protocol commands
and inspecting stored sessions.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from .agents import SUPPORTED_AGENTS
from .config import WizardConfig
from .errors import WizardError
from .runner import AnalysisRunner
from .wizard import build_wizard

logger = logging.getLogger(__name__)


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--site-url", type=str, default=None, help="Site to analyze")
    p.add_argument(
        "--agent",
        type=str,
        default=None,
        help=f"AI agent ({', '.join(SUPPORTED_AGENTS)}; default: gemini)",
    )
    p.add_argument("--model", type=str, default=None, help="Model name (default: agent default)")
    p.add_argument("--api-key", type=str, default=None, help="API key (or set via environment variable)")
    p.add_argument("--config", type=str, default=None, help="JSON config file")
    p.add_argument("--state-dir", type=str, default=None, help="Directory for session state")
    p.add_argument("--session", type=str, default=None, help="Session id (default: site host)")
    p.add_argument("--debug", action="store_true", default=None, help="Skip network calls")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="performance-wizard",
        description="Performance Wizard - AI-assisted website performance analysis",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Run a full analysis")
    _add_common_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--only",
        action="append",
        default=None,
        metavar="TITLE",
        help="Run only the named data source step (repeatable)",
    )
    analyze_parser.add_argument(
        "--additional-questions",
        action="store_true",
        default=None,
        help="Ask the agent for follow-up questions",
    )
    analyze_parser.add_argument(
        "--resume",
        action="store_true",
        help="Keep records from a previous run instead of starting fresh",
    )

    # Single protocol command
    command_parser = subparsers.add_parser("command", help="Issue one protocol command")
    _add_common_arguments(command_parser)
    command_parser.add_argument(
        "name",
        choices=["get_next_action", "run_action", "prompt", "start"],
        help="Protocol command",
    )
    command_parser.add_argument("--step", type=int, default=0, help="Step index (default: 0)")
    command_parser.add_argument("--prompt", type=str, default="", help="Prompt text for 'prompt'")
    command_parser.add_argument(
        "--additional-questions",
        action="store_true",
        default=None,
        help="Ask the agent for follow-up questions",
    )

    # History
    history_parser = subparsers.add_parser("history", help="Print stored step records")
    _add_common_arguments(history_parser)

    # Agents
    subparsers.add_parser("agents", help="List supported agents")

    return parser


def load_config(args) -> WizardConfig:
    overrides = {
        "site_url": args.site_url,
        "agent": args.agent,
        "model": args.model,
        "api_key": args.api_key,
        "state_dir": args.state_dir,
        "session_id": args.session,
        "debug_mode": args.debug,
        "additional_questions": getattr(args, "additional_questions", None),
        "enabled_sources": getattr(args, "only", None),
    }
    if args.config:
        return WizardConfig.from_file(args.config, **overrides)
    return WizardConfig.from_env(**overrides)


def run_analyze(args) -> int:
    """Run the analyze command."""
    config = load_config(args)
    if not config.site_url and not config.debug_mode:
        print("Error: --site-url is required (or set PERFORMANCE_WIZARD_SITE_URL)")
        return 1

    wizard = build_wizard(config)
    print(f"Analyzing {config.site_url or config.session_id} with {wizard.agent.get_name()}...")
    runner = AnalysisRunner(
        wizard.dispatcher,
        enabled_sources=config.enabled_sources,
        additional_questions=config.additional_questions,
    )
    result = runner.run(fresh=not args.resume)

    print(f"\nSteps run: {result.steps_run}")
    if result.steps_skipped:
        print(f"Steps skipped: {result.steps_skipped}")
    print("Analysis complete." if result.complete else "Analysis did not complete.")
    return 0 if result.complete else 1


def run_command(args) -> int:
    """Run a single protocol command and print the JSON response."""
    wizard = build_wizard(load_config(args))
    response = wizard.dispatcher.handle_command({
        "command": args.name,
        "step": args.step,
        "prompt": args.prompt,
        "additional_questions": bool(args.additional_questions),
    })
    print(json.dumps(response.to_dict(), indent=2))
    return 0 if response.ok else 1


def run_history(args) -> int:
    """Print the stored records of a session."""
    wizard = build_wizard(load_config(args))
    records = wizard.history()
    payload = {
        "session_id": wizard.session_id,
        "complete": wizard.store.is_complete(wizard.session_id),
        "steps": {str(index): records[index].to_dict() for index in sorted(records)},
    }
    print(json.dumps(payload, indent=2))
    return 0


def run_agents(args) -> int:
    """List supported agents."""
    for key, agent_cls in SUPPORTED_AGENTS.items():
        print(f"{key:10s} {agent_cls.name}: {agent_cls.description}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO if getattr(args, "verbose", False) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handlers = {
        "analyze": run_analyze,
        "command": run_command,
        "history": run_history,
        "agents": run_agents,
    }
    try:
        return handlers[args.command](args)
    except WizardError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
