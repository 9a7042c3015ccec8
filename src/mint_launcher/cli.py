#!/usr/bin/env python3
"""
Command-line interface for the Token-2022 mint launcher.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import uvloop

from mint_launcher.config_loader import (
    build_compute_budget,
    load_mint_config,
    print_config_summary,
)
from mint_launcher.core.client import SolanaClient
from mint_launcher.core.errors import MintLauncherError
from mint_launcher.launcher.pipeline import MintLauncher
from mint_launcher.utils.explorer import explorer_address_url
from mint_launcher.utils.logger import get_logger, set_level, setup_file_logging

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Create a Token-2022 mint with on-chain metadata and issue its initial supply."
    )
    parser.add_argument("config", help="Path to the mint YAML configuration")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute sizes, rent and the instruction plan without submitting",
    )
    parser.add_argument(
        "--mint-key-out",
        type=str,
        help="Write the mint secret key (base58) to this file",
    )
    parser.add_argument(
        "--log-dir", type=str, default="logs", help="Directory for the run log file"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def setup_logging(launch_name: str, log_dir: str) -> None:
    """Set up logging to file for a specific launch."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = directory / f"{launch_name}_{timestamp}.log"

    setup_file_logging(str(log_filename))


def write_mint_key(path: str, secret: str) -> None:
    key_path = Path(path)
    key_path.write_text(secret + "\n")
    key_path.chmod(0o600)
    logger.info(f"Mint secret key written to {key_path}")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    if args.verbose:
        set_level(logging.DEBUG)

    try:
        raw_config, mint_config = load_mint_config(args.config)
    except MintLauncherError as e:
        logger.error(f"Configuration error: {e!s}")
        return 1

    setup_logging(mint_config.name, args.log_dir)
    print_config_summary(raw_config, mint_config)

    client = SolanaClient(
        raw_config["rpc_endpoint"],
        max_retries=(raw_config.get("retries") or {}).get("max_attempts", 3),
    )
    launcher = MintLauncher(client, mint_config, build_compute_budget(raw_config))
    logger.info(f"Mint address: {launcher.mint}")

    if args.mint_key_out:
        write_mint_key(args.mint_key_out, launcher.mint_wallet.secret_base58())

    try:
        if args.dry_run:
            prepared = await launcher.prepare()
            logger.info(
                f"Dry run: {len(prepared.transaction.instructions)} instructions, "
                f"{prepared.funded.lamports} lamports deposit, signers "
                f"{[str(p) for p in prepared.transaction.signer_pubkeys]}"
            )
            return 0

        result = await launcher.run()
        logger.info(f"Mint {result.mint} created in {result.signature}")
        logger.info(f"Mint Account: {explorer_address_url(result.mint, mint_config.cluster)}")
        if result.issuance:
            holder = result.issuance.holder
            logger.info(f"ata : {holder.address} ATA of {holder.owner}, balance {holder.amount}")
        return 0
    except MintLauncherError as e:
        logger.error(f"Launch aborted at stage {launcher.lifecycle.stage.value}: {e!s}")
        return 1
    except KeyboardInterrupt:
        logger.info(f"Launch interrupted at stage {launcher.lifecycle.stage.value}")
        return 130
    finally:
        await client.close()


def run() -> None:
    sys.exit(uvloop.run(main()))


if __name__ == "__main__":
    run()
