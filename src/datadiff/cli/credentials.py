"""
Connection URL resolution for the CLI.

URLs come from HashiCorp Vault (--use-vault), command-line arguments or the
DATADIFF_REFERENCE_URL / DATADIFF_TARGET_URL environment variables, in that
order of precedence.
"""

import argparse
import logging
import os
import sys

import requests

from ..utils.vault_client import VaultClient

logger = logging.getLogger(__name__)


def get_connection_urls(args: argparse.Namespace) -> tuple[str, str]:
    """
    Resolve the reference and target connection URLs.

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (reference_url, target_url)
    """
    if args.use_vault:
        try:
            vault_client = VaultClient()
            reference_url = vault_client.get_connection_url("reference")
            target_url = vault_client.get_connection_url("target")
            logger.info("Successfully fetched connection URLs from Vault")
        except (ValueError, requests.RequestException) as e:
            logger.error(f"Failed to fetch credentials from Vault: {e}")
            sys.exit(1)
        return reference_url, target_url

    reference_url = args.reference or os.getenv("DATADIFF_REFERENCE_URL")
    target_url = args.target or os.getenv("DATADIFF_TARGET_URL")
    if not reference_url:
        logger.error("Reference connection not provided (--reference or DATADIFF_REFERENCE_URL)")
        sys.exit(1)
    if not target_url:
        logger.error("Target connection not provided (--target or DATADIFF_TARGET_URL)")
        sys.exit(1)
    return reference_url, target_url


def get_passwords(args: argparse.Namespace) -> tuple[str | None, str | None]:
    """Passwords overriding the URLs, from arguments or DATADIFF_*_PASSWORD."""
    return (
        args.reference_password or os.getenv("DATADIFF_REFERENCE_PASSWORD"),
        args.target_password or os.getenv("DATADIFF_TARGET_PASSWORD"),
    )
