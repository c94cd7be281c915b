"""Command-line interface.

Examples:
  # Full project setup
  scrum-master setup --repository https://github.com/acme/shop --organization O_kgDO...

  # Health and status of a fresh engine
  scrum-master health
  scrum-master status

  # Periodic health checks
  scrum-master monitor --interval 30
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import Any

from . import __version__
from .config import Config, ConfigurationError, load_config
from .core import ScrumMasterEngine, create_engine
from .exceptions import InvalidRepositoryUrlError
from .github import parse_repository_url
from .observers import AlertThresholds, HealthMonitor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrum-master",
        description="Semi-autonomous scrum master for GitHub projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--config", "-c", help="Configuration file path (YAML)")
    parser.add_argument("--log-level", help="Log level (overrides configuration)")

    commands = parser.add_subparsers(dest="command", required=True)

    setup = commands.add_parser("setup", help="Set up a GitHub project for a repository")
    setup.add_argument("--repository", "-r", required=True, help="GitHub repository URL")
    setup.add_argument(
        "--organization", "-o", required=True, help="Owner node id for the project"
    )
    setup.add_argument("--title", "-t", help="Project title (defaults to repository name)")
    setup.add_argument("--description", "-d", help="Project description")
    setup.add_argument("--slack-webhook", help="Slack webhook URL for notifications")
    setup.add_argument(
        "--email", help="Email addresses for notifications (comma-separated)"
    )

    commands.add_parser("health", help="Check system health")
    commands.add_parser("status", help="Show processing status")

    monitor = commands.add_parser("monitor", help="Run periodic health checks")
    monitor.add_argument(
        "--interval", type=float, default=60.0, help="Check interval in seconds"
    )

    commands.add_parser("interactive", help="Prompt for setup parameters")
    return parser


def notification_overrides(
    slack_webhook: str | None, email: str | None
) -> dict[str, Any]:
    """Config fragment for the notification flags of ``setup``."""
    notifications: dict[str, Any] = {}
    if slack_webhook:
        notifications["slack"] = {"webhook_url": slack_webhook}
    if email:
        recipients = [addr.strip() for addr in email.split(",") if addr.strip()]
        notifications["email"] = {"recipients": recipients}
    return {"notifications": notifications} if notifications else {}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def install_signal_handlers() -> None:
    """Exit immediately on SIGINT or SIGTERM; in-flight requests are abandoned."""

    def signal_handler(sig: int, frame: Any) -> None:
        print("\nShutting down...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def run_setup(
    engine: ScrumMasterEngine,
    repository_url: str,
    organization_id: str,
    title: str,
    description: str,
) -> int:
    print("🚀 Starting Semi-Autonomous Scrum Master...")
    print(f"📋 Project: {title}")
    print(f"🔗 Repository: {repository_url}")
    print(f"🏢 Organization: {organization_id}\n")

    async with engine.client:
        result = await engine.setup_project(
            repository_url, title, description, organization_id
        )

    if not result.success:
        print(f"❌ Project setup failed: {result.error}", file=sys.stderr)
        return 1

    print("✅ Project setup completed successfully!")
    print(f"🔗 Project URL: {result.project_url}")
    print(f"📊 Issues Created: {result.issues_created}")
    print(f"🏃 Sprint Configured: {'Yes' if result.sprint_configured else 'No'}")
    return 0


async def run_health_check(engine: ScrumMasterEngine) -> int:
    health = await engine.health_check()

    print("🔍 System Health Check")
    print("=" * 21)
    print(f"Overall Health: {'✅ Healthy' if health.overall else '❌ Unhealthy'}")
    print(
        "Command Invoker: "
        f"{'✅ Healthy' if health.command_invoker.is_healthy else '❌ Unhealthy'}"
    )
    print(f"Recent Events: {health.recent_events}")
    print(f"Error Events: {health.error_events}")
    print(f"Currently Processing: {'Yes' if health.is_processing else 'No'}")
    last = health.last_activity.isoformat() if health.last_activity else "None"
    print(f"Last Activity: {last}")

    if not health.overall:
        print("\n⚠️  Issues detected:")
        if not health.command_invoker.is_healthy:
            print("  - Command invoker is unhealthy")
        if health.error_events:
            print(f"  - {health.error_events} error events in recent history")
    return 0


def run_status(engine: ScrumMasterEngine) -> int:
    status = engine.get_processing_status()

    print("📊 Processing Status")
    print("=" * 19)
    print(f"Processing: {'🔄 Active' if status.is_processing else '⏸️  Idle'}")
    print(f"Current Repository: {status.current_repository or 'None'}")
    print(f"Current Project: {status.current_project or 'None'}")
    print(f"Active Observers: {status.total_observers}")
    if status.last_event:
        print(
            f"Last Event: {status.last_event.type.value} at "
            f"{status.last_event.timestamp.isoformat()}"
        )
        print(f"Message: {status.last_event.message}")
    return 0


async def run_monitor(
    engine: ScrumMasterEngine, interval: float, iterations: int | None = None
) -> int:
    """Print a health line every ``interval`` seconds.

    Runs until interrupted, or for ``iterations`` checks when given.
    """
    engine.add_observer(HealthMonitor(AlertThresholds(max_error_rate=10.0)))
    print(f"🔄 Monitoring every {interval:g} seconds. Press Ctrl+C to stop.")

    count = 0
    while iterations is None or count < iterations:
        health = await engine.health_check()
        stamp = datetime.now(UTC).isoformat()
        if health.overall:
            print(f"[{stamp}] ✅ System healthy")
        else:
            print(f"[{stamp}] ❌ System issues detected")
        count += 1
        if iterations is None or count < iterations:
            await asyncio.sleep(interval)
    return 0


def prompt_setup_arguments() -> dict[str, str | None]:
    """Ask for the ``setup`` parameters on stdin."""
    repository = input("Enter GitHub repository URL: ").strip()
    organization = input("Enter GitHub organization ID: ").strip()
    title = input("Enter project title (or press Enter for default): ").strip()
    description = input("Enter project description (optional): ").strip()
    slack_webhook = input("Enter Slack webhook URL (optional): ").strip()
    email = input(
        "Enter email addresses for notifications (comma-separated, optional): "
    ).strip()
    return {
        "repository": repository,
        "organization": organization,
        "title": title or None,
        "description": description or None,
        "slack_webhook": slack_webhook or None,
        "email": email or None,
    }


def _setup(config_path: str | None, params: dict[str, Any]) -> int:
    try:
        owner, repo = parse_repository_url(params["repository"])
    except InvalidRepositoryUrlError as e:
        print(f"❌ {e}: {params['repository']}", file=sys.stderr)
        return 1

    config = load_config(
        config_path,
        overrides=notification_overrides(params.get("slack_webhook"), params.get("email")),
    )
    if params.get("email") and not config.notifications.email.enabled:
        logger.warning("Email notifications need smtp_host and from_address; skipping")

    engine = create_engine(config)
    title = params.get("title") or repo
    description = params.get("description") or f"Scrum project for {title}"
    return asyncio.run(
        run_setup(engine, params["repository"], params["organization"], title, description)
    )


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, resolve configuration and dispatch a command.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        config: Config = load_config(args.config)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(args.log_level or config.log_level.value)
    install_signal_handlers()

    if not config.github.token and not config.github.uses_app_auth:
        print("❌ GITHUB_TOKEN environment variable is required", file=sys.stderr)
        return 1

    try:
        if args.command == "setup":
            return _setup(args.config, vars(args))
        if args.command == "interactive":
            print("🎯 Interactive Project Setup")
            return _setup(args.config, prompt_setup_arguments())

        engine = create_engine(config)
        if args.command == "health":
            return asyncio.run(run_health_check(engine))
        if args.command == "status":
            return run_status(engine)
        if args.command == "monitor":
            return asyncio.run(run_monitor(engine, args.interval))
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0

    return 1


def main() -> None:
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
