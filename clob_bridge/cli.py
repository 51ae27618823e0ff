import argparse
import asyncio
import sys
from typing import List, Optional

from clob_bridge import __version__
from clob_bridge.client.bridge_client import BridgeClient
from clob_bridge.core.probe import ProbeOutcome
from clob_bridge.utils.errors import BridgeClientError

RULE = "=" * 70


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clob-bridge",
        description="JSON-line bridge to the Polymarket CLOB (one command per stdin line, one response per stdout line)",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "probe"],
        help="serve: run the line protocol (default); probe: find the working signature type and exit",
    )
    parser.add_argument("--config", dest="config_path", help="Path to config file (YAML)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--log-format", choices=["json", "text"])
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--funder", dest="funder_address", help="Funder/proxy address (overrides environment)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def log_probe_report(logger, outcome: ProbeOutcome):
    """Human-readable summary of a probe run"""
    logger.info(RULE)
    winner = outcome.winner
    if winner is not None:
        logger.info("AUTHENTICATION SUCCESSFUL")
        logger.info(RULE)
        logger.info(f"Signature type: {winner.mode.label}")
        logger.info(f"Funder address: {outcome.funder_address or 'auto-derived'}")
        logger.info(f"Balance: {winner.balance.balance}")
        logger.info("Recommended environment variables:")
        logger.info(f"  POLYMARKET_SIGNATURE_TYPE={winner.mode.value}")
        if outcome.funder_address:
            logger.info(f"  POLYMARKET_PROXY_ADDRESS={outcome.funder_address}")
        return

    logger.error("AUTHENTICATION FAILED")
    logger.info(RULE)
    for attempt in outcome.attempts:
        logger.info(f"  {attempt.mode.label}: {attempt.story.error_details}")
    logger.warning("Most likely causes:")
    logger.warning("  1. Wallet has never traded on Polymarket")
    logger.warning("  2. Missing or incorrect POLYMARKET_PROXY_ADDRESS for browser wallets")
    logger.warning("  3. Private key doesn't match the registered wallet")
    logger.warning("To fix:")
    logger.warning("  1. Log in at https://polymarket.com with your wallet")
    logger.warning("  2. Make at least one small trade")
    logger.warning("  3. Copy your deposit address from Profile > Wallet")
    logger.warning("  4. Set POLYMARKET_PROXY_ADDRESS to that address and restart")


async def run_probe(client: BridgeClient, funder_address: Optional[str]) -> int:
    outcome = await client.probe(funder_address)
    log_probe_report(client.logger, outcome)
    client.writer.emit(outcome.to_response())
    return 0 if outcome.winner is not None else 1


async def main_async(args: argparse.Namespace) -> int:
    overrides = {
        "log_level": args.log_level,
        "log_format": args.log_format,
        "log_file": args.log_file,
    }
    if args.command == "serve" and args.funder_address:
        overrides["funder_address"] = args.funder_address

    async with BridgeClient(config_path=args.config_path, overrides=overrides) as client:
        if args.command == "probe":
            return await run_probe(client, args.funder_address)
        await client.serve()
        return 0


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(main_async(args))
    except BridgeClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
