#!/usr/bin/env python3
"""
DataFlow Verification Automation - command line entry point

Usage:
    python main.py verification-request [--headless] [--no-pause] [--config FILE] [--fresh-login]
    python main.py onboarding [--headless] [--no-pause] [--config FILE]

Settings come from config/automation_config.json (or --config) and the
environment / .env file; the flags here override them for one run.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from base_exceptions import AutomationCompleteException
from config_manager import ConfigurationManager, DataFlowAutomationConfig
from flow import DataFlowAutomator
from session_store import SessionStore

load_dotenv()

LOG_FILE = 'dataflow_automation.log'
SCENARIOS = ('verification-request', 'onboarding')

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Automate the DataFlow staging verification portal")
    parser.add_argument("scenario", choices=SCENARIOS, help="Scenario to run")
    parser.add_argument("--headless", action="store_true",
                        help="Run without a browser window (manual pauses become failures)")
    parser.add_argument("--no-pause", action="store_true",
                        help="Fail a step instead of pausing for the operator")
    parser.add_argument("--config", metavar="FILE",
                        help="JSON configuration file (default: config/automation_config.json)")
    parser.add_argument("--fresh-login", action="store_true",
                        help="Discard the saved cookie session before logging in")
    return parser.parse_args(argv)


def apply_cli_overrides(config: DataFlowAutomationConfig, args: argparse.Namespace) -> DataFlowAutomationConfig:
    if args.headless:
        config.automation_mode.headless = True
    if args.no_pause or config.automation_mode.headless:
        config.automation_mode.manual_pause_enabled = False
    return config


async def main(argv: Optional[List[str]] = None):
    """
    Run the chosen scenario.

    Raises:
        AutomationCompleteException: always, carrying the outcome of the run.
    """
    args = parse_args(argv)
    configure_logging()

    config_manager = ConfigurationManager()
    config = apply_cli_overrides(config_manager.load_configuration(args.config), args)
    logging.getLogger().setLevel(getattr(logging, config.automation.log_level.upper(), logging.INFO))

    if args.fresh_login:
        SessionStore(config.dataflow.cookies_file, config.dataflow.session_max_age_hours).clear()

    automator = DataFlowAutomator(config_manager, config=config)
    if args.scenario == 'onboarding':
        success = await automator.run_onboarding()
    else:
        success = await automator.run_verification_request()

    if success:
        logger.info(f"DataFlow {args.scenario} completed successfully")
        message = f"{args.scenario} completed"
    else:
        logger.error(f"DataFlow {args.scenario} failed")
        message = automator.automation_state.last_error or f"{args.scenario} failed"

    raise AutomationCompleteException(message, success=success, summary_path=automator.summary_path)


def cli():
    try:
        asyncio.run(main())
    except AutomationCompleteException as e:
        e.display_completion_message()
    except KeyboardInterrupt:
        print("\n🛑 Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
