"""Print a one-shot ledger summary for a user: balances and split statuses."""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from splitledger.config import configure_logging, get_settings
from splitledger.controller import LedgerController
from splitledger.money import format_money
from splitledger.services.ledger import HttpLedgerClient, LedgerClientInterface


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="splitledger", description=__doc__)
    subcommands = parser.add_subparsers(dest="command", required=True)

    summary = subcommands.add_parser("summary", help="Refresh once and print the ledger summary")
    summary.add_argument("--user-id", required=True, help="Observer user id")
    summary.add_argument("--token", help="Bearer credential (defaults to LEDGER_API_TOKEN)")
    summary.add_argument("--base-url", help="Ledger API base URL (defaults to LEDGER_API_BASE_URL)")
    summary.add_argument("--log-level", help="Log level (defaults to SPLITLEDGER_LOG_LEVEL)")
    return parser.parse_args(argv)


def format_summary(controller: LedgerController) -> list[str]:
    """Return the lines printed by the summary command."""
    stats = controller.computed_stats
    lines = [
        f"You owe:      {format_money(stats.total_owed)}",
        f"You are owed: {format_money(stats.total_owing)}",
        f"Net balance:  {format_money(stats.net_balance)}",
    ]
    if controller.enriched_splits:
        lines.append("")
    for split, classification in zip(controller.enriched_splits, controller.classifications):
        lines.append(
            f"{split.name or split.id}: {classification.status.label}"
            f" {format_money(classification.amount)}"
        )
    return lines


async def run_summary(client: LedgerClientInterface, user_id: str) -> int:
    controller = LedgerController(client, user_id)
    result = await controller.refresh()
    await controller.flush_notifications()
    if not result.succeeded:
        print(f"error: {controller.error}", file=sys.stderr)
        return 1
    for line in format_summary(controller):
        print(line)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level)

    api_settings = get_settings().ledger_api
    if args.base_url:
        api_settings = api_settings.model_copy(update={"base_url": args.base_url.rstrip("/")})
    client = HttpLedgerClient(settings=api_settings, token=args.token)

    return asyncio.run(run_summary(client, args.user_id))


if __name__ == "__main__":
    sys.exit(main())
