import itertools
import logging
from typing import Any, Dict, List, Optional, Union

import requests

from .errors import InvalidParameterError, RpcError, RpcProtocolError, RpcTransportError
from .hexcodec import from_hex_quantity, to_hex_quantity

logger = logging.getLogger(__name__)

BLOCK_TAGS = {"latest", "earliest", "pending"}


class RpcClient:
    """
    JSON-RPC 2.0 client for a Celo node (HTTP POST).

    One network round trip per call and no retries; wrap calls with
    ``retry.retry_with_backoff`` where repeating them is safe.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise InvalidParameterError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))
        self._ids = itertools.count(1)

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def call(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise InvalidParameterError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise InvalidParameterError("params must be a list.")

        request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        logger.debug("RPC %s id=%s -> %s", method, request_id, self.rpc_url)

        try:
            response = self.session.post(
                self.rpc_url,
                json=payload,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            raise RpcTransportError(f"RPC request {method} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            # nodes often send the JSON-RPC error envelope with a 4xx/5xx status
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict) and data.get("error") is not None:
                return self._unwrap(data, request_id, method)
            try:
                response.raise_for_status()
            except requests.RequestException as exc:
                raise RpcTransportError(f"RPC request {method} failed: {exc}") from exc
            raise RpcTransportError(f"RPC request {method} failed: HTTP {response.status_code}.")

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcProtocolError("Unexpected JSON-RPC response (invalid JSON).") from exc
        return self._unwrap(data, request_id, method)

    def _unwrap(self, data: Any, request_id: int, method: str) -> Any:
        if not isinstance(data, dict):
            raise RpcProtocolError("Unexpected JSON-RPC response (non-object).")

        # an error for a request the node could not parse carries id null
        unparsed_error = data.get("id") is None and data.get("error") is not None
        if data.get("id") != request_id and not unparsed_error:
            raise RpcProtocolError(
                f"JSON-RPC response id {data.get('id')!r} does not match request id {request_id}."
            )

        error_obj = data.get("error")
        if error_obj is not None:
            if not isinstance(error_obj, dict):
                raise RpcProtocolError("Unexpected JSON-RPC response (malformed error).")
            logger.warning(
                "RPC %s id=%s failed: code=%s message=%s",
                method,
                request_id,
                error_obj.get("code"),
                error_obj.get("message"),
            )
            raise RpcError(error_obj.get("code"), error_obj.get("message") or "", error_obj.get("data"))

        if "result" not in data:
            raise RpcProtocolError("Unexpected JSON-RPC response (missing result).")
        return data["result"]

    def _block_param(self, block: Union[int, str]) -> str:
        if isinstance(block, str) and block.strip().lower() in BLOCK_TAGS:
            return block.strip().lower()
        return to_hex_quantity(block)

    def get_block_number(self) -> int:
        result = self.call("eth_blockNumber", [])
        if not isinstance(result, str):
            raise RpcProtocolError("eth_blockNumber returned unexpected result.")
        return from_hex_quantity(result)

    def get_chain_id(self) -> int:
        return from_hex_quantity(self.call("eth_chainId", []))

    def get_balance(self, address: str, block: Union[int, str] = "latest") -> str:
        return self.call("eth_getBalance", [address, self._block_param(block)])

    def get_transaction_count(self, address: str, block: Union[int, str] = "latest") -> str:
        return self.call("eth_getTransactionCount", [address, self._block_param(block)])

    def get_gas_price(self) -> str:
        return self.call("eth_gasPrice", [])

    def estimate_gas(self, transaction: Dict[str, Any]) -> str:
        return self.call("eth_estimateGas", [transaction])

    def get_block(self, block: Union[int, str] = "latest", full_transactions: bool = False) -> Any:
        return self.call("eth_getBlockByNumber", [self._block_param(block), bool(full_transactions)])

    def get_transaction(self, tx_hash: str) -> Any:
        return self.call("eth_getTransactionByHash", [tx_hash])

    def get_transaction_receipt(self, tx_hash: str) -> Any:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def eth_call(self, to: str, data: str, block: Union[int, str] = "latest") -> str:
        return self.call("eth_call", [{"to": to, "data": data}, self._block_param(block)])

    def get_logs(self, log_filter: Dict[str, Any]) -> List[Any]:
        result = self.call("eth_getLogs", [log_filter])
        if not isinstance(result, list):
            raise RpcProtocolError("eth_getLogs returned unexpected result.")
        return result
