import hashlib

import pytest

from celo_adapter.abi import encode_parameters, function_selector
from celo_adapter.config import Config
from celo_adapter.errors import (
    ConfigurationError,
    InvalidParameterError,
    MissingEndpointError,
    RpcError,
    SigningNotSupportedError,
    UnsupportedOperationError,
)
from celo_adapter.events import TRANSFER_TOPIC, address_topic
from celo_adapter.explorer_client import ExplorerClient
from celo_adapter.networks import ALFAJORES_CONTRACTS, MAINNET_CONTRACTS
from celo_adapter.rpc_client import RpcClient
from celo_adapter.service import CeloService

from ._fakes import ALICE, BOB, FakeExplorer, FakeNode, word

CUSD = MAINNET_CONTRACTS["StableToken"].lower()
TX_HASH = "0x" + "cd" * 32


def make_service(results=None, payloads=None, network="mainnet", rpc_url=None):
    node = FakeNode(results)
    explorer = FakeExplorer(payloads or [])
    service = CeloService(
        Config(network=network, rpc_url=rpc_url),
        rpc_client=RpcClient("https://node.example", session=node.session),
        explorer_client=ExplorerClient("https://explorer.example/api", session=explorer.session),
    )
    return service, node, explorer


def test_custom_network_without_endpoint_fails_before_any_request():
    with pytest.raises(MissingEndpointError):
        CeloService(Config(network="custom"))


def test_unknown_resource_and_operation():
    service, node, _ = make_service()
    with pytest.raises(UnsupportedOperationError):
        service.execute("wallet", "getBalance", {})
    with pytest.raises(UnsupportedOperationError):
        service.execute("account", "transfer", {})
    assert node.requests == []


def test_operations_lists_every_pair():
    service, _, _ = make_service()
    pairs = service.operations()
    assert ("account", "getBalance") in pairs
    assert ("utility", "hashPhoneNumber") in pairs
    assert len(pairs) == len(set(pairs))


def test_account_balance():
    service, node, _ = make_service({"eth_getBalance": "0x14d1120d7b160000"})
    result = service.execute("account", "getBalance", {"address": ALICE.upper().replace("0X", "0x")})
    assert result == {
        "network": "mainnet",
        "chain_id": 42220,
        "address": ALICE,
        "balance_wei": "1500000000000000000",
        "balance": "1.5",
        "unit": "CELO",
    }
    assert node.requests[0]["params"] == [ALICE, "latest"]


def test_missing_and_invalid_address_fail_before_any_request():
    service, node, _ = make_service()
    with pytest.raises(InvalidParameterError):
        service.execute("account", "getBalance", {})
    with pytest.raises(InvalidParameterError):
        service.execute("account", "getBalance", {"address": "0x1234"})
    assert node.requests == []


def test_transaction_count():
    service, _, _ = make_service({"eth_getTransactionCount": "0x7"})
    assert service.execute("account", "getTransactionCount", {"address": ALICE})["transaction_count"] == 7


def test_token_balance_defaults_to_cusd():
    service, node, _ = make_service({"eth_call": "0x" + word(2500000)})
    result = service.execute("token", "getBalance", {"address": ALICE})
    assert result["token"] == "cUSD"
    assert result["token_address"] == CUSD
    assert result["balance_raw"] == "2500000"
    assert result["balance"] == "0.0000000000025"

    call = node.requests[0]["params"][0]
    assert call["to"] == CUSD
    assert call["data"] == function_selector("balanceOf(address)") + "0" * 24 + ALICE[2:]


def test_token_balance_for_custom_token_and_decimals():
    service, _, _ = make_service({"eth_call": "0x" + word(2500000)})
    result = service.execute("token", "getBalance", {"address": ALICE, "token_address": BOB, "decimals": 6})
    assert result["token_address"] == BOB
    assert result["balance"] == "2.5"
    with pytest.raises(InvalidParameterError):
        service.execute("token", "getBalance", {"address": ALICE, "decimals": -1})


def test_token_allowance():
    service, node, _ = make_service({"eth_call": "0x" + word(10**18)})
    result = service.execute("token", "getAllowance", {"owner": ALICE, "spender": BOB, "token": "cEUR"})
    assert result["allowance"] == "1"
    assert node.requests[0]["params"][0]["to"] == MAINNET_CONTRACTS["StableTokenEUR"].lower()


def test_token_info_decodes_metadata():
    answers = {
        function_selector("name()"): "0x" + encode_parameters(["string"], ["Celo Dollar"]),
        function_selector("symbol()"): "0x" + "cUSD".encode().hex().ljust(64, "0"),
        function_selector("decimals()"): "0x" + word(18),
        function_selector("totalSupply()"): "0x" + word(3 * 10**18),
    }
    service, _, _ = make_service({"eth_call": lambda params: answers[params[0]["data"]]})
    result = service.execute("token", "getInfo", {"token": "cUSD"})
    assert result["name"] == "Celo Dollar"
    assert result["symbol"] == "cUSD"
    assert result["decimals"] == 18
    assert result["total_supply"] == "3"


def test_latest_block_and_block_by_number():
    service, node, _ = make_service({"eth_blockNumber": "0x3e8", "eth_getBlockByNumber": {"number": "0x64"}})
    assert service.execute("block", "getLatest")["block_number"] == 1000
    result = service.execute("block", "get", {"block": 100, "full_transactions": True})
    assert result["block"] == {"number": "0x64"}
    assert node.requests[1]["params"] == ["0x64", True]


def test_transaction_lookup_and_pending_null():
    service, _, _ = make_service({"eth_getTransactionByHash": None})
    result = service.execute("transaction", "get", {"tx_hash": TX_HASH})
    assert result["transaction"] is None


def test_receipt_status():
    service, _, _ = make_service({"eth_getTransactionReceipt": {"status": "0x1", "gasUsed": "0x5208"}})
    assert service.execute("transaction", "getReceipt", {"tx_hash": TX_HASH})["status"] == "success"


def test_estimate_gas_builds_transaction():
    service, node, _ = make_service({"eth_estimateGas": "0x5208"})
    result = service.execute(
        "transaction",
        "estimateGas",
        {"to": BOB, "from": ALICE, "value": "1000", "fee_currency": MAINNET_CONTRACTS["StableToken"]},
    )
    assert result["gas"] == 21000
    assert node.requests[0]["params"] == [{"to": BOB, "from": ALICE, "value": "0x3e8", "feeCurrency": CUSD}]


def test_send_is_not_supported():
    service, node, _ = make_service()
    with pytest.raises(SigningNotSupportedError):
        service.execute("transaction", "send", {"to": BOB, "value": "1"})
    assert node.requests == []


def test_contract_call_encodes_and_decodes():
    service, node, _ = make_service({"eth_call": "0x" + word(5)})
    result = service.execute(
        "contract",
        "call",
        {"address": CUSD, "function": "balanceOf(address)", "args": [ALICE], "output_types": ["uint256"]},
    )
    assert result["decoded"] == ["5"]
    assert node.requests[0]["params"][0]["data"] == result["data"]


def test_contract_encode_needs_no_node():
    service, node, _ = make_service()
    result = service.execute("contract", "encode", {"function": "transfer(address,uint256)", "args": [BOB, 1]})
    assert result["selector"] == "0xa9059cbb"
    assert result["data"] == "0xa9059cbb" + "0" * 24 + BOB[2:] + word(1)
    assert node.requests == []


def test_locked_gold_uses_network_contract():
    service, node, _ = make_service({"eth_call": "0x" + word(2 * 10**18)}, network="alfajores")
    result = service.execute("staking", "getLockedGold", {"address": ALICE})
    assert result["locked"] == "2"
    assert result["chain_id"] == 44787
    assert node.requests[0]["params"][0]["to"] == ALFAJORES_CONTRACTS["LockedGold"]


def test_get_transfers_filters_and_decodes():
    log = {
        "address": CUSD,
        "topics": [TRANSFER_TOPIC, address_topic(ALICE), address_topic(BOB)],
        "data": "0x" + word(15 * 10**17),
        "blockNumber": "0x10",
        "transactionHash": TX_HASH,
        "logIndex": "0x1",
    }
    service, node, _ = make_service({"eth_getLogs": [log]})
    result = service.execute("events", "getTransfers", {"sender": ALICE, "from_block": 1, "to_block": 20})

    assert node.requests[0]["params"] == [
        {
            "fromBlock": "0x1",
            "toBlock": "0x14",
            "address": CUSD,
            "topics": [TRANSFER_TOPIC, address_topic(ALICE), None],
        }
    ]
    transfer = result["transfers"][0]
    assert transfer["from"] == ALICE
    assert transfer["to"] == BOB
    assert transfer["value_formatted"] == "1.5"


def test_get_logs_passes_topics_through():
    service, node, _ = make_service({"eth_getLogs": []})
    result = service.execute("events", "getLogs", {"from_block": "earliest", "topics": [TRANSFER_TOPIC]})
    assert result["logs"] == []
    assert node.requests[0]["params"][0]["topics"] == [TRANSFER_TOPIC]


def test_history_uses_explorer():
    rows = [{"hash": TX_HASH}]
    service, node, explorer = make_service(
        payloads=[{"status": "1", "message": "OK", "result": rows}, {"status": "0", "message": "No transactions found", "result": []}]
    )
    assert service.execute("history", "getTransactions", {"address": ALICE, "sort": "DESC"})["transactions"] == rows
    assert explorer.calls[0]["params"]["sort"] == "desc"

    result = service.execute("history", "getTokenTransfers", {"address": ALICE, "token": "cUSD"})
    assert result["transfers"] == []
    assert explorer.calls[1]["params"]["contractaddress"] == CUSD
    assert node.requests == []


def test_history_rejects_bad_sort():
    service, _, explorer = make_service()
    with pytest.raises(InvalidParameterError):
        service.execute("history", "getTransactions", {"address": ALICE, "sort": "sideways"})
    assert explorer.calls == []


def test_utilities():
    service, _, _ = make_service({"eth_gasPrice": "0x12a05f200"})
    assert service.execute("utility", "convertUnits", {"value": "1", "from_unit": "celo"})["wei"] == str(10**18)
    gas = service.execute("utility", "getGasPrice")
    assert gas["gas_price_wei"] == "5000000000"
    assert gas["gas_price_gwei"] == "5"
    fee_currencies = service.execute("utility", "getFeeCurrencies")["fee_currencies"]
    assert fee_currencies[0]["symbol"] == "CELO"
    hashed = service.execute("utility", "hashPhoneNumber", {"phone_number": "+14155550123"})
    assert hashed["hash"] == "0x" + hashlib.sha256(b"+14155550123").hexdigest()


CEUR = MAINNET_CONTRACTS["StableTokenEUR"].lower()
CREAL = MAINNET_CONTRACTS["StableTokenBRL"].lower()


def test_stable_balance():
    service, node, _ = make_service({"eth_call": "0x" + word(25 * 10**17)})
    result = service.execute("account", "getStableBalance", {"address": ALICE, "stablecoin": "cEUR"})
    assert result["token"] == "cEUR"
    assert result["balance"] == "2.5"
    assert node.requests[0]["params"][0]["to"] == CEUR
    with pytest.raises(ConfigurationError):
        service.execute("account", "getStableBalance", {"address": ALICE, "stablecoin": "cGBP"})


def test_all_balances_fetches_native_and_every_stablecoin():
    token_balances = {CUSD: word(2 * 10**18), CEUR: word(0), CREAL: word(5 * 10**17)}
    service, node, _ = make_service(
        {
            "eth_getBalance": "0xde0b6b3a7640000",
            "eth_call": lambda params: "0x" + token_balances[params[0]["to"]],
        }
    )
    result = service.execute("account", "getAllBalances", {"address": ALICE})

    assert result["balances"] == {
        "CELO": "1000000000000000000",
        "cUSD": "2000000000000000000",
        "cEUR": "0",
        "cREAL": "500000000000000000",
    }
    assert result["balances_formatted"] == {"CELO": "1", "cUSD": "2", "cEUR": "0", "cREAL": "0.5"}
    assert sorted(node.methods()) == ["eth_call", "eth_call", "eth_call", "eth_getBalance"]
    assert len({req["id"] for req in node.requests}) == 4


def test_all_balances_propagates_failures():
    service, _, _ = make_service(
        {"eth_getBalance": "0x0", "eth_call": {"error": {"code": -32000, "message": "execution reverted"}}}
    )
    with pytest.raises(RpcError):
        service.execute("account", "getAllBalances", {"address": ALICE})


def test_token_holders_uses_explorer():
    rows = [{"TokenHolderAddress": ALICE, "TokenHolderQuantity": "1"}]
    service, node, explorer = make_service(payloads=[{"status": "1", "message": "OK", "result": rows}])
    result = service.execute("token", "getTokenHolders", {"token": "cUSD"})
    assert result["holders"] == rows
    assert result["count"] == 1
    params = explorer.calls[0]["params"]
    assert params["action"] == "tokenholderlist"
    assert params["contractaddress"] == CUSD
    assert (params["page"], params["offset"]) == (1, 100)
    assert node.requests == []


def test_network_stats():
    service, node, _ = make_service({"eth_blockNumber": "0x8701", "eth_gasPrice": "0x12a05f200", "eth_chainId": "0xa4ec"})
    result = service.execute("network", "getNetworkStats")
    assert result["block_number"] == 34561
    assert result["epoch"] == 2
    assert result["node_chain_id"] == 42220
    assert result["gas_price_gwei"] == "5"
    assert sorted(node.methods()) == ["eth_blockNumber", "eth_chainId", "eth_gasPrice"]


def test_epoch_info():
    service, _, _ = make_service({"eth_blockNumber": hex(34560 + 4320)})
    result = service.execute("network", "getEpochInfo")
    assert result["epoch"] == 2
    assert result["first_block"] == 34560
    assert result["last_block"] == 51839
    assert result["blocks_remaining"] == 12960
    assert result["progress_percent"] == "25.00"


def test_exchange_rate_calls_exchange_contract():
    service, node, _ = make_service({"eth_call": "0x" + word(5 * 10**17)})
    result = service.execute("stablecoin", "getExchangeRate", {})
    assert result["pair"] == "CELO/cUSD"
    assert result["buy_amount"] == "0.5"

    call = node.requests[0]["params"][0]
    assert call["to"] == MAINNET_CONTRACTS["Exchange"]
    assert call["data"] == function_selector("getBuyTokenAmount(uint256,bool)") + word(10**18) + word(1)


def test_exchange_rate_selling_stablecoin():
    service, node, _ = make_service({"eth_call": "0x" + word(2 * 10**18)})
    result = service.execute(
        "stablecoin", "getExchangeRate", {"stablecoin": "cEUR", "amount": "0.5", "sell_celo": "false"}
    )
    assert result["pair"] == "cEUR/CELO"
    assert result["sell_amount_raw"] == str(5 * 10**17)
    call = node.requests[0]["params"][0]
    assert call["to"] == MAINNET_CONTRACTS["ExchangeEUR"]
    assert call["data"].endswith(word(0))
    with pytest.raises(InvalidParameterError):
        service.execute("stablecoin", "getExchangeRate", {"sell_celo": "maybe"})


def test_bucket_sizes():
    service, node, _ = make_service({"eth_call": "0x" + word(3 * 10**18) + word(10**18)})
    result = service.execute("stablecoin", "getBucketSizes", {"stablecoin": "cREAL"})
    assert result["stable_bucket"] == "3"
    assert result["celo_bucket"] == "1"
    call = node.requests[0]["params"][0]
    assert call["to"] == MAINNET_CONTRACTS["ExchangeBRL"]
    assert call["data"] == function_selector("getBuyAndSellBuckets(bool)") + word(1)
