import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .abi import (
    decode_result,
    decode_string,
    decode_uint256,
    encode_function_call,
    encode_function_data,
    function_selector,
    parse_function_signature,
)
from .config import Config
from .errors import InvalidParameterError, SigningNotSupportedError, UnsupportedOperationError
from .events import build_log_filter, decode_transfer_log, transfer_filter
from .explorer_client import ExplorerClient
from .hexcodec import from_hex_quantity, normalize_address, normalize_hash, to_hex_quantity, truncate_address
from .identity import hash_phone_number
from .networks import (
    EPOCH_SIZE,
    STABLECOINS,
    calculate_epoch_from_block,
    get_epoch_boundaries,
    get_exchange_address,
    get_fee_currency_options,
    get_stablecoin,
    get_stablecoin_address,
    resolve_network,
)
from .rpc_client import RpcClient
from .units import DEFAULT_DECIMALS, calculate_percentage, convert_units, format_units, parse_units

logger = logging.getLogger(__name__)

NATIVE_TOKEN = "CELO"
DEFAULT_STABLECOIN = "cUSD"

T = TypeVar("T")


class Resource(str, Enum):
    ACCOUNT = "account"
    TOKEN = "token"
    BLOCK = "block"
    TRANSACTION = "transaction"
    CONTRACT = "contract"
    STAKING = "staking"
    EVENTS = "events"
    HISTORY = "history"
    NETWORK = "network"
    STABLECOIN = "stablecoin"
    UTILITY = "utility"


Handler = Callable[[Dict[str, Any]], Dict[str, Any]]


class CeloService:
    """Read/query operations for one Celo network, dispatched by (resource, operation)."""

    def __init__(
        self,
        config: Config,
        rpc_client: Optional[RpcClient] = None,
        explorer_client: Optional[ExplorerClient] = None,
    ) -> None:
        self.config = config
        self.profile = resolve_network(config.network, config.rpc_url)
        self.rpc = rpc_client or RpcClient(self.profile.rpc_url, timeout=config.request_timeout)
        self.explorer = explorer_client or ExplorerClient(
            api_url=config.explorer_api_url or self.profile.explorer_api_url,
            api_key=config.explorer_api_key,
            timeout=config.request_timeout,
        )
        self._handlers: Dict[Tuple[Resource, str], Handler] = {
            (Resource.ACCOUNT, "getBalance"): self.get_account_balance,
            (Resource.ACCOUNT, "getTransactionCount"): self.get_transaction_count,
            (Resource.ACCOUNT, "getStableBalance"): self.get_stable_balance,
            (Resource.ACCOUNT, "getAllBalances"): self.get_all_balances,
            (Resource.TOKEN, "getBalance"): self.get_token_balance,
            (Resource.TOKEN, "getAllowance"): self.get_token_allowance,
            (Resource.TOKEN, "getInfo"): self.get_token_info,
            (Resource.TOKEN, "getTokenHolders"): self.get_token_holders,
            (Resource.BLOCK, "getLatest"): self.get_latest_block,
            (Resource.BLOCK, "get"): self.get_block,
            (Resource.TRANSACTION, "get"): self.get_transaction,
            (Resource.TRANSACTION, "getReceipt"): self.get_transaction_receipt,
            (Resource.TRANSACTION, "estimateGas"): self.estimate_gas,
            (Resource.TRANSACTION, "send"): self.send_transaction,
            (Resource.CONTRACT, "call"): self.call_contract,
            (Resource.CONTRACT, "encode"): self.encode_call,
            (Resource.STAKING, "getLockedGold"): self.get_locked_gold,
            (Resource.EVENTS, "getLogs"): self.get_logs,
            (Resource.EVENTS, "getTransfers"): self.get_transfers,
            (Resource.HISTORY, "getTransactions"): self.get_transaction_history,
            (Resource.HISTORY, "getTokenTransfers"): self.get_token_transfer_history,
            (Resource.NETWORK, "getNetworkStats"): self.get_network_stats,
            (Resource.NETWORK, "getEpochInfo"): self.get_epoch_info,
            (Resource.STABLECOIN, "getExchangeRate"): self.get_exchange_rate,
            (Resource.STABLECOIN, "getBucketSizes"): self.get_bucket_sizes,
            (Resource.UTILITY, "convertUnits"): self.convert_units,
            (Resource.UTILITY, "getGasPrice"): self.get_gas_price,
            (Resource.UTILITY, "getFeeCurrencies"): self.get_fee_currencies,
            (Resource.UTILITY, "hashPhoneNumber"): self.hash_phone_number,
        }

    def operations(self) -> List[Tuple[str, str]]:
        return [(resource.value, operation) for resource, operation in self._handlers]

    def execute(self, resource: str, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            key = (Resource(resource), operation)
        except ValueError as exc:
            raise UnsupportedOperationError(f"Unknown resource '{resource}'.") from exc
        handler = self._handlers.get(key)
        if handler is None:
            raise UnsupportedOperationError(f"Unknown operation '{operation}' for resource '{resource}'.")
        if params is not None and not isinstance(params, dict):
            raise InvalidParameterError("params must be an object.")
        logger.debug("Executing %s.%s on %s", resource, operation, self.profile.key)
        return handler(dict(params or {}))

    # account

    def get_account_balance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        balance_wei = from_hex_quantity(self.rpc.get_balance(address, params.get("block", "latest")))
        return self._response(
            address=address,
            balance_wei=str(balance_wei),
            balance=format_units(balance_wei),
            unit=NATIVE_TOKEN,
        )

    def get_transaction_count(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        nonce = from_hex_quantity(self.rpc.get_transaction_count(address, params.get("block", "latest")))
        return self._response(address=address, transaction_count=nonce)

    def get_stable_balance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        symbol, info = self._resolve_stablecoin(params)
        token_address = get_stablecoin_address(symbol, self.profile.key).lower()
        raw = self._erc20_balance(token_address, address)
        return self._response(
            address=address,
            token=symbol,
            token_address=token_address,
            balance_raw=raw,
            balance=format_units(raw, info["decimals"]),
        )

    def get_all_balances(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Native CELO plus every stablecoin, fetched concurrently."""
        address = normalize_address(self._require(params, "address"))
        logger.debug("Fetching all balances for %s on %s", truncate_address(address), self.profile.key)

        jobs: Dict[str, Callable[[], str]] = {
            NATIVE_TOKEN: lambda: str(from_hex_quantity(self.rpc.get_balance(address))),
        }
        for symbol in STABLECOINS:
            token_address = get_stablecoin_address(symbol, self.profile.key).lower()
            jobs[symbol] = partial(self._erc20_balance, token_address, address)
        balances = self._gather(jobs)

        decimals = {symbol: info["decimals"] for symbol, info in STABLECOINS.items()}
        return self._response(
            address=address,
            balances=balances,
            balances_formatted={
                symbol: format_units(raw, decimals.get(symbol, DEFAULT_DECIMALS)) for symbol, raw in balances.items()
            },
        )

    # token

    def get_token_balance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        symbol, token_address, decimals = self._resolve_token(params)
        raw = self._erc20_balance(token_address, address)
        return self._response(
            address=address,
            token=symbol,
            token_address=token_address,
            balance_raw=raw,
            balance=format_units(raw, decimals),
            decimals=decimals,
        )

    def get_token_allowance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        owner = normalize_address(self._require(params, "owner"), "owner")
        spender = normalize_address(self._require(params, "spender"), "spender")
        symbol, token_address, decimals = self._resolve_token(params)
        result = self.rpc.eth_call(token_address, encode_function_data("allowance", [owner, spender]))
        raw = decode_uint256(result)
        return self._response(
            owner=owner,
            spender=spender,
            token=symbol,
            token_address=token_address,
            allowance_raw=raw,
            allowance=format_units(raw, decimals),
        )

    def get_token_info(self, params: Dict[str, Any]) -> Dict[str, Any]:
        _, token_address, _ = self._resolve_token(params)
        name = decode_string(self.rpc.eth_call(token_address, encode_function_data("name", [])))
        symbol = decode_string(self.rpc.eth_call(token_address, encode_function_data("symbol", [])))
        decimals = int(decode_uint256(self.rpc.eth_call(token_address, encode_function_data("decimals", []))))
        total_supply = decode_uint256(self.rpc.eth_call(token_address, encode_function_data("totalSupply", [])))
        return self._response(
            token_address=token_address,
            name=name,
            symbol=symbol,
            decimals=decimals,
            total_supply_raw=total_supply,
            total_supply=format_units(total_supply, decimals),
        )

    def get_token_holders(self, params: Dict[str, Any]) -> Dict[str, Any]:
        _, token_address, _ = self._resolve_token(params)
        holders = self.explorer.get_token_holders(
            token_address,
            page=params.get("page", 1),
            offset=params.get("offset", 100),
        )
        return self._response(token_address=token_address, holders=holders, count=len(holders))

    # block

    def get_latest_block(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._response(block_number=self.rpc.get_block_number())

    def get_block(self, params: Dict[str, Any]) -> Dict[str, Any]:
        block = params.get("block", "latest")
        block = self._parse_block(block)
        full = bool(params.get("full_transactions", False))
        return self._response(block=self.rpc.get_block(block, full))

    # transaction

    def get_transaction(self, params: Dict[str, Any]) -> Dict[str, Any]:
        tx_hash = normalize_hash(self._require(params, "tx_hash"), "tx_hash")
        return self._response(tx_hash=tx_hash, transaction=self.rpc.get_transaction(tx_hash))

    def get_transaction_receipt(self, params: Dict[str, Any]) -> Dict[str, Any]:
        tx_hash = normalize_hash(self._require(params, "tx_hash"), "tx_hash")
        receipt = self.rpc.get_transaction_receipt(tx_hash)
        status = None
        if isinstance(receipt, dict) and receipt.get("status"):
            status = "success" if from_hex_quantity(receipt["status"]) == 1 else "failed"
        return self._response(tx_hash=tx_hash, receipt=receipt, status=status)

    def estimate_gas(self, params: Dict[str, Any]) -> Dict[str, Any]:
        transaction: Dict[str, Any] = {"to": normalize_address(self._require(params, "to"), "to")}
        if params.get("from"):
            transaction["from"] = normalize_address(params["from"], "from")
        if params.get("value") is not None:
            transaction["value"] = to_hex_quantity(params["value"])
        if params.get("data"):
            transaction["data"] = params["data"]
        if params.get("fee_currency"):
            transaction["feeCurrency"] = normalize_address(params["fee_currency"], "fee_currency")
        gas = from_hex_quantity(self.rpc.estimate_gas(transaction))
        return self._response(transaction=transaction, gas=gas)

    def send_transaction(self, params: Dict[str, Any]) -> Dict[str, Any]:
        raise SigningNotSupportedError()

    # contract

    def call_contract(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        signature = self._require(params, "function")
        args = params.get("args") or []
        output_types = params.get("output_types") or []
        if not isinstance(args, list) or not isinstance(output_types, list):
            raise InvalidParameterError("args and output_types must be arrays.")

        name, types = parse_function_signature(signature)
        data = encode_function_call(name, types, args)
        result = self.rpc.eth_call(address, data, self._parse_block(params.get("block", "latest")))

        if output_types == ["string"]:
            decoded: List[Any] = [decode_string(result)]
        else:
            decoded = decode_result(result, output_types)
        return self._response(address=address, function=signature, data=data, result=result, decoded=decoded)

    def encode_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        signature = self._require(params, "function")
        args = params.get("args") or []
        name, types = parse_function_signature(signature)
        data = encode_function_call(name, types, args)
        return {"function": signature, "selector": function_selector(signature), "data": data}

    # staking

    def get_locked_gold(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        locked_gold = self.profile.contract("LockedGold")
        data = encode_function_call("getAccountTotalLockedGold", ["address"], [address])
        raw = decode_uint256(self.rpc.eth_call(locked_gold, data))
        return self._response(address=address, locked_raw=raw, locked=format_units(raw), unit=NATIVE_TOKEN)

    # events

    def get_logs(self, params: Dict[str, Any]) -> Dict[str, Any]:
        log_filter = build_log_filter(
            params.get("from_block", "latest"),
            params.get("to_block", "latest"),
            params.get("address"),
            params.get("topics"),
        )
        logs = self.rpc.get_logs(log_filter)
        return self._response(filter=log_filter, logs=logs)

    def get_transfers(self, params: Dict[str, Any]) -> Dict[str, Any]:
        _, token_address, decimals = self._resolve_token(params)
        log_filter = transfer_filter(
            params.get("from_block", "latest"),
            params.get("to_block", "latest"),
            token_address,
            sender=params.get("sender"),
            recipient=params.get("recipient"),
        )
        transfers = []
        for entry in self.rpc.get_logs(log_filter):
            transfer = decode_transfer_log(entry)
            transfer["value_formatted"] = format_units(transfer["value"], decimals)
            transfers.append(transfer)
        return self._response(token_address=token_address, transfers=transfers)

    # history (explorer)

    def get_transaction_history(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        transactions = self.explorer.get_transactions(
            address,
            start_block=int(params.get("start_block", 0)),
            end_block=int(params.get("end_block", 99999999)),
            page=params.get("page"),
            offset=params.get("offset"),
            sort=self._parse_sort(params.get("sort")),
        )
        return self._response(address=address, transactions=transactions)

    def get_token_transfer_history(self, params: Dict[str, Any]) -> Dict[str, Any]:
        address = normalize_address(self._require(params, "address"))
        contract_address = None
        if params.get("token") or params.get("token_address"):
            _, contract_address, _ = self._resolve_token(params)
        transfers = self.explorer.get_token_transfers(
            address,
            contract_address=contract_address,
            start_block=int(params.get("start_block", 0)),
            end_block=int(params.get("end_block", 99999999)),
            page=params.get("page"),
            offset=params.get("offset"),
            sort=self._parse_sort(params.get("sort")),
        )
        return self._response(address=address, transfers=transfers)

    # network

    def get_network_stats(self, params: Dict[str, Any]) -> Dict[str, Any]:
        stats = self._gather(
            {
                "block_number": self.rpc.get_block_number,
                "gas_price": self.rpc.get_gas_price,
                "chain_id": self.rpc.get_chain_id,
            }
        )
        gas_price = from_hex_quantity(stats["gas_price"])
        return self._response(
            node_chain_id=stats["chain_id"],
            block_number=stats["block_number"],
            gas_price_wei=str(gas_price),
            gas_price_gwei=format_units(gas_price, 9),
            epoch=calculate_epoch_from_block(stats["block_number"]),
        )

    def get_epoch_info(self, params: Dict[str, Any]) -> Dict[str, Any]:
        block_number = self.rpc.get_block_number()
        epoch = calculate_epoch_from_block(block_number)
        boundaries = get_epoch_boundaries(epoch)
        return self._response(
            epoch=epoch,
            block_number=block_number,
            epoch_size=EPOCH_SIZE,
            first_block=boundaries["first_block"],
            last_block=boundaries["last_block"],
            blocks_remaining=boundaries["last_block"] + 1 - block_number,
            progress_percent=calculate_percentage(block_number - boundaries["first_block"], EPOCH_SIZE),
        )

    # stablecoin (legacy Mento Exchange contracts)

    def get_exchange_rate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        symbol, info = self._resolve_stablecoin(params)
        exchange = get_exchange_address(symbol, self.profile.key)
        sell_celo = self._parse_bool(params.get("sell_celo", True), "sell_celo")
        sell_amount = parse_units(str(params.get("amount", "1")), DEFAULT_DECIMALS)

        data = encode_function_call("getBuyTokenAmount", ["uint256", "bool"], [sell_amount, sell_celo])
        buy_amount = decode_uint256(self.rpc.eth_call(exchange, data))
        sold, bought = (NATIVE_TOKEN, symbol) if sell_celo else (symbol, NATIVE_TOKEN)
        return self._response(
            pair=f"{sold}/{bought}",
            exchange_address=exchange,
            sell_amount_raw=sell_amount,
            buy_amount_raw=buy_amount,
            buy_amount=format_units(buy_amount, info["decimals"] if sell_celo else DEFAULT_DECIMALS),
        )

    def get_bucket_sizes(self, params: Dict[str, Any]) -> Dict[str, Any]:
        symbol, info = self._resolve_stablecoin(params)
        exchange = get_exchange_address(symbol, self.profile.key)
        # with sellGold=true the buy bucket holds the stable token and the sell bucket holds CELO
        data = encode_function_call("getBuyAndSellBuckets", ["bool"], [True])
        stable_bucket, celo_bucket = decode_result(self.rpc.eth_call(exchange, data), ["uint256", "uint256"])
        return self._response(
            token=symbol,
            exchange_address=exchange,
            stable_bucket_raw=stable_bucket,
            stable_bucket=format_units(stable_bucket, info["decimals"]),
            celo_bucket_raw=celo_bucket,
            celo_bucket=format_units(celo_bucket),
        )

    # utility

    def convert_units(self, params: Dict[str, Any]) -> Dict[str, Any]:
        value = self._require(params, "value")
        from_unit = params.get("from_unit", "wei")
        return {"value": str(value), "from_unit": from_unit, **convert_units(value, from_unit)}

    def get_gas_price(self, params: Dict[str, Any]) -> Dict[str, Any]:
        wei = from_hex_quantity(self.rpc.get_gas_price())
        return self._response(gas_price_wei=str(wei), gas_price_gwei=format_units(wei, 9))

    def get_fee_currencies(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._response(fee_currencies=get_fee_currency_options(self.profile.key))

    def hash_phone_number(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return hash_phone_number(self._require(params, "phone_number"), params.get("pepper"))

    # helpers

    def _erc20_balance(self, token_address: str, address: str) -> str:
        return decode_uint256(self.rpc.eth_call(token_address, encode_function_data("balanceOf", [address])))

    def _gather(self, jobs: Dict[str, Callable[[], T]]) -> Dict[str, T]:
        """Run independent reads concurrently; the first failure propagates."""
        with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
            futures = {key: pool.submit(job) for key, job in jobs.items()}
            return {key: future.result() for key, future in futures.items()}

    def _resolve_stablecoin(self, params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        symbol = params.get("stablecoin") or DEFAULT_STABLECOIN
        return symbol, get_stablecoin(symbol)

    def _parse_bool(self, value: Any, key: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise InvalidParameterError(f"{key} must be true or false.")

    def _response(self, **fields: Any) -> Dict[str, Any]:
        return {"network": self.profile.key, "chain_id": self.profile.chain_id, **fields}

    def _require(self, params: Dict[str, Any], key: str) -> Any:
        value = params.get(key)
        if value is None or value == "":
            raise InvalidParameterError(f"Missing required parameter '{key}'.")
        return value

    def _resolve_token(self, params: Dict[str, Any]) -> Tuple[str, str, int]:
        """Return (symbol, contract address, decimals) for the token named in params."""
        token_address = params.get("token_address")
        decimals = params.get("decimals", DEFAULT_DECIMALS)
        if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
            raise InvalidParameterError("decimals must be a non-negative integer.")
        if token_address:
            return "custom", normalize_address(token_address, "token_address"), decimals

        symbol = params.get("token") or "cUSD"
        if symbol == NATIVE_TOKEN:
            return symbol, self.profile.contract("GoldToken").lower(), DEFAULT_DECIMALS
        info = get_stablecoin(symbol)
        return symbol, get_stablecoin_address(symbol, self.profile.key).lower(), info["decimals"]

    def _parse_block(self, block: Any) -> Any:
        if isinstance(block, str) and block.strip().lower() in {"latest", "earliest", "pending"}:
            return block.strip().lower()
        if isinstance(block, (int, str)) and not isinstance(block, bool):
            return to_hex_quantity(block)
        raise InvalidParameterError("block must be latest|earliest|pending or a block number.")

    def _parse_sort(self, sort: Optional[str]) -> str:
        if sort is None:
            return "asc"
        normalized = str(sort).lower()
        if normalized not in {"asc", "desc"}:
            raise InvalidParameterError("sort must be 'asc' or 'desc'.")
        return normalized
