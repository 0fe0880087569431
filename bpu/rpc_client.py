"""JSON-RPC client for fetching raw transactions from a node.

Only the read path needed to project a transaction by id is covered. The
client works against any bitcoind-compatible node; ``getrawtransaction``
needs ``-txindex`` for transactions outside the mempool and wallet.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Optional

import requests
from requests import RequestException, Response

from .config import ConfigurationError, RPCConfig, load_rpc_config

logger = logging.getLogger(__name__)

__all__ = [
    "ConfigurationError",
    "NodeRPCClient",
    "RPCConfig",
    "RPCError",
    "RPCTransportError",
    "format_rpc_hint",
]


class RPCError(RuntimeError):
    """Raised when the node responds with an RPC error."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common ``getrawtransaction`` failures."""

    if error_obj is None:
        return None

    code = None
    message = ""
    if isinstance(error_obj, RPCError):
        code = error_obj.code
        message = error_obj.message
    elif isinstance(error_obj, dict):
        code = error_obj.get("code")
        message = str(error_obj.get("message", ""))

    if code == -5 and "No such mempool" in message:
        return (
            "The node does not know this transaction. Confirmed transactions are only "
            "available when the node runs with -txindex=1."
        )
    if code == -8 and "parameter 1 must be hexadecimal" in message:
        return "Transaction ids are 64 hex characters."
    return None


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NodeRPCClient:
    """Thin JSON-RPC client; each helper maps to one node RPC method."""

    def __init__(self, config: RPCConfig) -> None:
        self.config = config
        self._session = requests.Session()
        self._url = config.base_url

    @classmethod
    def from_env(cls) -> "NodeRPCClient":
        """Instantiate a client using environment variables or config file."""

        return cls(load_rpc_config())

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "1.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self._url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                auth=(self.config.user, self.config.password),
                timeout=30,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure the node is reachable and BPU_RPC_* variables "
                "(or ~/.bpu.yaml) point to the right host and port."
            ) from exc

        result = self._decode_response(response)
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _decode_response(self, response: Response) -> dict[str, Any]:
        # bitcoind reports JSON-RPC errors with HTTP 500 and a JSON body, so
        # the body is read before the status is checked.
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            return body

        if response.status_code == 401:
            raise RPCTransportError(
                "Unauthorized (401). Check BPU_RPC_USER/BPU_RPC_PASSWORD or ~/.bpu.yaml.",
                status_code=response.status_code,
            )
        if not response.ok:
            logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
            raise RPCTransportError(
                f"RPC server returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            logger.debug("RPC JSON parse error: %s", response.text)
            raise RPCTransportError("RPC server returned malformed JSON")
        return body

    def get_raw_transaction(self, txid: str) -> str:
        """Return the raw transaction hex for ``txid``."""

        return self.call("getrawtransaction", [txid, False])
