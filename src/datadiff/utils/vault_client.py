"""
HashiCorp Vault client for fetching connection credentials.

Secrets live in the KV v2 engine under ``secret/datadiff/<role>`` (role is
``reference`` or ``target``) and hold either a complete ``url`` or the
parts ``type``, ``host``, ``port``, ``database``, ``username`` and
``password``.
"""

import logging
import os
import re
from typing import Any
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

SECRET_MOUNT = "secret"
SECRET_PREFIX = "datadiff"

_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")
_SAFE_ROLE = re.compile(r"^[a-zA-Z0-9_]+$")
_DEFAULT_PORTS = {"postgresql": 5432, "mssql": 1433}


class VaultClient:
    """
    HashiCorp Vault client using the KV v2 secrets engine.

    Args:
        vault_addr: Vault server address (default: VAULT_ADDR)
        vault_token: Authentication token (default: VAULT_TOKEN)
        namespace: Vault Enterprise namespace

    Raises:
        ValueError: If the address or token is missing
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
    ):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )
        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")
        self.headers = {"X-Vault-Token": self.vault_token, "Content-Type": "application/json"}
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Fetch a secret from the KV v2 engine.

        Args:
            secret_path: Path including the mount, e.g. "secret/datadiff/target"

        Returns:
            Secret data

        Raises:
            ValueError: If the path is invalid or the secret is missing or empty
            requests.RequestException: If the request fails
        """
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")
        if ".." in secret_path or secret_path.startswith("//"):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. Path traversal attempts are not allowed."
            )
        if not _SAFE_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        # KV v2 reads go through <mount>/data/<path>
        if "/data/" not in secret_path:
            mount, sep, rest = secret_path.partition("/")
            secret_path = f"{mount}/data/{rest}" if sep else f"{secret_path}/data"

        url = f"{self.vault_addr}/v1/{secret_path}"
        logger.debug(f"Fetching secret from: {url}")
        response = requests.get(url, headers=self.headers, timeout=10)
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")
        return secret_data

    def get_connection_url(self, role: str) -> str:
        """
        Build the connection URL stored for a role.

        Args:
            role: "reference", "target" or another alphanumeric role name

        Returns:
            Connection URL accepted by datadiff.connection.connect()

        Raises:
            ValueError: If the role is invalid or the secret lacks fields
        """
        if not role or not _SAFE_ROLE.match(role):
            raise ValueError(
                f"Invalid role: {role!r}. Only alphanumeric characters and underscores are allowed."
            )

        secret = self.get_secret(f"{SECRET_MOUNT}/{SECRET_PREFIX}/{role}")
        if secret.get("url"):
            logger.info(f"Fetched {role} connection URL from Vault")
            return secret["url"]

        missing = [f for f in ("type", "host", "database", "username", "password") if f not in secret]
        if missing:
            raise ValueError(f"Missing required fields in secret: {', '.join(missing)}")

        scheme = secret["type"]
        port = secret.get("port", _DEFAULT_PORTS.get(scheme))
        netloc = f"{quote(secret['username'], safe='')}:{quote(secret['password'], safe='')}@{secret['host']}"
        if port:
            netloc += f":{port}"
        logger.info(f"Fetched {role} credentials from Vault")
        return f"{scheme}://{netloc}/{secret['database']}"

    def health_check(self) -> bool:
        """
        Check whether Vault is reachable and unsealed.

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"
        try:
            response = requests.get(url, timeout=5)
            # 200 active, 429 standby, 472 DR secondary, 473 performance standby
            return response.status_code in (200, 429, 472, 473)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
