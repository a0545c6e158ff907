import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .errors import ConfigurationError, ExplorerError, InvalidParameterError

logger = logging.getLogger(__name__)

NO_TRANSACTIONS_FOUND = "No transactions found"

TOKEN_TRANSFER_ACTIONS = {
    "erc20": "tokentx",
    "erc721": "tokennfttx",
}


class ExplorerClient:
    """Celoscan / Blockscout account API client with basic retry on idempotent GETs."""

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = (api_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()

    def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: int = 99999999,
        page: Optional[int] = None,
        offset: Optional[int] = None,
        sort: str = "asc",
    ) -> List[Any]:
        params: Dict[str, Any] = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": start_block,
            "endblock": end_block,
            "sort": sort,
        }
        self._add_paging(params, page, offset)
        return self._as_list(self.request(params))

    def get_token_transfers(
        self,
        address: str,
        contract_address: Optional[str] = None,
        start_block: int = 0,
        end_block: int = 99999999,
        page: Optional[int] = None,
        offset: Optional[int] = None,
        sort: str = "asc",
        token_type: str = "erc20",
    ) -> List[Any]:
        action = TOKEN_TRANSFER_ACTIONS.get((token_type or "").lower())
        if not action:
            raise InvalidParameterError(f"Unsupported token_type '{token_type}'. Expected erc20|erc721.")

        params: Dict[str, Any] = {
            "module": "account",
            "action": action,
            "address": address,
            "startblock": start_block,
            "endblock": end_block,
            "sort": sort,
        }
        if contract_address:
            params["contractaddress"] = contract_address
        self._add_paging(params, page, offset)
        return self._as_list(self.request(params))

    def get_token_holders(
        self, contract_address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[Any]:
        params: Dict[str, Any] = {
            "module": "token",
            "action": "tokenholderlist",
            "contractaddress": contract_address,
        }
        self._add_paging(params, page, offset)
        return self._as_list(self.request(params))

    def request(self, params: Dict[str, Any]) -> Any:
        """GET the explorer API and return ``result``, honouring the empty-set sentinel."""
        if not self.api_url:
            raise ConfigurationError("Explorer API not available for this network.")

        merged = dict(params)
        if self.api_key:
            merged["apikey"] = self.api_key

        payload = self._get(merged)
        if not isinstance(payload, dict):
            raise ExplorerError("Unexpected response from explorer (non-object).")

        status = str(payload.get("status", "")).strip()
        message = payload.get("message", "")
        if status == "0":
            if message == NO_TRANSACTIONS_FOUND:
                logger.debug("Explorer %s/%s returned no rows", params.get("module"), params.get("action"))
                return payload.get("result") or []
            result = payload.get("result")
            detail = result if isinstance(result, str) else ""
            raise ExplorerError(f"Explorer API error: {message or detail or 'unknown error'}.")
        return payload.get("result")

    def _get(self, params: Dict[str, Any]) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.get(self.api_url, params=params, timeout=self.timeout)
                if response.status_code >= 500 and attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                    continue

                response.raise_for_status()
                payload = response.json()
                if self._is_rate_limit_payload(payload) and attempt < self.max_retries:
                    logger.info("Explorer rate limited, retrying (attempt %d)", attempt)
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                return payload
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise ExplorerError(f"Explorer request failed: {exc}") from exc
            except ValueError as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise ExplorerError("Failed to parse response from explorer.") from exc

        if last_error:
            raise ExplorerError(str(last_error)) from last_error
        raise ExplorerError("Explorer request failed without a response.")

    def _is_rate_limit_payload(self, payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False
        candidates = [
            value for value in (payload.get("message"), payload.get("result")) if isinstance(value, str) and value
        ]
        haystack = " ".join(candidates).lower()
        return "rate limit" in haystack or "max calls per sec" in haystack or "too many requests" in haystack

    def _add_paging(self, params: Dict[str, Any], page: Optional[int], offset: Optional[int]) -> None:
        if page is not None:
            params["page"] = page
        if offset is not None:
            params["offset"] = offset

    def _as_list(self, result: Any) -> List[Any]:
        if not isinstance(result, list):
            raise ExplorerError("Unexpected response from explorer (result is not a list).")
        return result
