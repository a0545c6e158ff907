from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from .errors import (
    ConfigurationError,
    InvalidParameterError,
    MissingContractError,
    MissingEndpointError,
    UnknownNetworkError,
)
from .hexcodec import from_hex_quantity

MAINNET_CONTRACTS: Dict[str, str] = {
    "GoldToken": "0x471EcE3750Da237f93B8E339c536989b8978a438",
    "StableToken": "0x765DE816845861e75A25fCA122bb6898B8B1282a",
    "StableTokenEUR": "0xD8763CBa276a3738E6DE85b4b3bF5FDed6D6cA73",
    "StableTokenBRL": "0xe8537a3d056DA446677B9E9d6c5dB704EaAb4787",
    "Attestations": "0xdC553892cdeeeD9f575aa0FBA099e5847fd88D20",
    "FederatedAttestations": "0x0aD5b1d0C25ecF6266Dd951403723B2687d6aff2",
    "OdisPayments": "0x9E78E2E49F7B82c6D3cC8A1d4c4e3cdE0A5b2E06",
    "Election": "0x8D6677192144292870907E3Fa8A5527fE55A7ff6",
    "LockedGold": "0x6cC083Aed9e3ebe302A6336dBC7c921C9f03349E",
    "Validators": "0xaEb865bCa93DdC8F47b8e29F40C5399cE34d0C58",
    "Governance": "0xD533Ca259b330c7A88f74E000a3FaEa2d63B7972",
    "Reserve": "0x9380fA34Fd9e4Fd14c06305fd7B6199089eD4eb9",
    "Exchange": "0x67316300f17f063085Ca8bCa4bd3f7a5a3C66275",
    "ExchangeEUR": "0xE383394B913d7302c49F794C7d3243c429d53D1d",
    "ExchangeBRL": "0x8f2cf9855C919AFAC8Bd2E7acEc0205ed568a4EA",
    "Registry": "0x000000000000000000000000000000000000ce10",
}

ALFAJORES_CONTRACTS: Dict[str, str] = {
    "GoldToken": "0xF194afDf50B03e69Bd7D057c1Aa9e10c9954E4C9",
    "StableToken": "0x874069Fa1Eb16D44d622F2e0Ca25eeA172369bC1",
    "StableTokenEUR": "0x10c892A6EC43a53E45D0B916B4b7D383B1b78C0F",
    "StableTokenBRL": "0xE4D517785D091D3c54818832dB6094bcc2744545",
    "Attestations": "0xAD5E5722427d79DFf28a4Ab30249729d1F8B4cc0",
    "FederatedAttestations": "0x70F9314aF173c246669cFb0EEe79F9Cfd9C34ee3",
    "OdisPayments": "0x645170cdB6B5c1bc80847bb728dBa56C50a20a49",
    "Election": "0x1c3eDf937CFc2F6F51784D20DEB1af1F9a8655fA",
    "LockedGold": "0x6a4CC5693DC5BFA3799C699F3B941bA2Cb00c341",
    "Validators": "0x9acF2A99914E083aD0d610672E93d14b0736BBCc",
    "Governance": "0xAA963FC97281d9632d96700aB62A4D1340F9a28a",
    "Reserve": "0xa7ed835288Aa4524bB6C73DD23c0bF4315D9Fe3e",
    "Exchange": "0x17bc3C8798BC1e0718f83EB032DfED2Ee2a6F0a8",
    "ExchangeEUR": "0x997B494F17D3c49E66Fafb50F37b5d9Ba693F5dC",
    "ExchangeBRL": "0xf391DcaA77B9d5cc28F4815E022B7E95e91A4E16",
    "Registry": "0x000000000000000000000000000000000000ce10",
}


@dataclass(frozen=True)
class NetworkProfile:
    key: str
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    explorer_api_url: str
    contracts: Dict[str, str] = field(default_factory=dict)

    def contract(self, name: str) -> str:
        address = self.contracts.get(name)
        if not address:
            raise MissingContractError(f"Contract {name} not found for network {self.key}.")
        return address


NETWORKS: Dict[str, NetworkProfile] = {
    "mainnet": NetworkProfile(
        key="mainnet",
        name="Celo Mainnet",
        chain_id=42220,
        rpc_url="https://forno.celo.org",
        explorer_url="https://celoscan.io",
        explorer_api_url="https://api.celoscan.io/api",
        contracts=MAINNET_CONTRACTS,
    ),
    "alfajores": NetworkProfile(
        key="alfajores",
        name="Alfajores Testnet",
        chain_id=44787,
        rpc_url="https://alfajores-forno.celo-testnet.org",
        explorer_url="https://alfajores.celoscan.io",
        explorer_api_url="https://api-alfajores.celoscan.io/api",
        contracts=ALFAJORES_CONTRACTS,
    ),
    "baklava": NetworkProfile(
        key="baklava",
        name="Baklava Testnet",
        chain_id=62320,
        rpc_url="https://baklava-forno.celo-testnet.org",
        explorer_url="https://baklava-blockscout.celo-testnet.org",
        explorer_api_url="https://baklava-blockscout.celo-testnet.org/api",
        contracts=ALFAJORES_CONTRACTS,
    ),
}

# custom endpoints reuse the mainnet chain id and contract table
CUSTOM_NETWORK = "custom"
DEFAULT_NETWORK = "mainnet"

STABLECOINS: Dict[str, Dict[str, Any]] = {
    "cUSD": {
        "symbol": "cUSD",
        "name": "Celo Dollar",
        "decimals": 18,
        "contract": "StableToken",
        "exchange": "Exchange",
    },
    "cEUR": {
        "symbol": "cEUR",
        "name": "Celo Euro",
        "decimals": 18,
        "contract": "StableTokenEUR",
        "exchange": "ExchangeEUR",
    },
    "cREAL": {
        "symbol": "cREAL",
        "name": "Celo Brazilian Real",
        "decimals": 18,
        "contract": "StableTokenBRL",
        "exchange": "ExchangeBRL",
    },
}


def _normalize_key(network: Optional[str]) -> str:
    return (network or "").strip().lower()


def resolve_network(network: Optional[str], rpc_url: Optional[str] = None) -> NetworkProfile:
    """
    Resolve a network key to its profile. ``rpc_url`` overrides the default endpoint
    and is mandatory for the ``custom`` network.
    """
    key = _normalize_key(network)
    override = (rpc_url or "").strip()

    if key == CUSTOM_NETWORK:
        if not override:
            raise MissingEndpointError("Custom network requires an RPC endpoint.")
        base = NETWORKS[DEFAULT_NETWORK]
        return replace(
            base,
            key=CUSTOM_NETWORK,
            name="Custom",
            rpc_url=override,
            explorer_url="",
            explorer_api_url="",
        )

    profile = NETWORKS.get(key)
    if profile is None:
        allowed = ", ".join(sorted(list(NETWORKS) + [CUSTOM_NETWORK]))
        raise UnknownNetworkError(f"Unknown network '{network}'. Supported: {allowed}.")
    if override:
        return replace(profile, rpc_url=override)
    return profile


def _contract_table(network: Optional[str]) -> Dict[str, str]:
    key = _normalize_key(network)
    if key in (DEFAULT_NETWORK, CUSTOM_NETWORK):
        return MAINNET_CONTRACTS
    if key in NETWORKS:
        return NETWORKS[key].contracts
    raise UnknownNetworkError(f"Unknown network '{network}'.")


def get_contract_address(network: Optional[str], name: str) -> str:
    address = _contract_table(network).get(name)
    if not address:
        raise MissingContractError(f"Contract {name} not found for network {network}.")
    return address


def get_chain_id(network: Optional[str]) -> int:
    key = _normalize_key(network)
    if key == CUSTOM_NETWORK:
        return NETWORKS[DEFAULT_NETWORK].chain_id
    profile = NETWORKS.get(key)
    if profile is None:
        raise UnknownNetworkError(f"Unknown network '{network}'.")
    return profile.chain_id


def get_stablecoin(symbol: str) -> Dict[str, Any]:
    info = STABLECOINS.get(symbol)
    if info is None:
        raise ConfigurationError(
            f"Unknown stablecoin '{symbol}'. Supported: {', '.join(sorted(STABLECOINS))}."
        )
    return info


def get_stablecoin_address(symbol: str, network: Optional[str]) -> str:
    return get_contract_address(network, get_stablecoin(symbol)["contract"])


def get_exchange_address(symbol: str, network: Optional[str]) -> str:
    return get_contract_address(network, get_stablecoin(symbol)["exchange"])


def get_fee_currency_options(network: Optional[str]) -> List[Dict[str, Optional[str]]]:
    options: List[Dict[str, Optional[str]]] = [
        {"symbol": "CELO", "address": None, "name": "Celo Native Token"}
    ]
    for symbol, info in STABLECOINS.items():
        options.append(
            {
                "symbol": symbol,
                "address": get_contract_address(network, info["contract"]),
                "name": info["name"],
            }
        )
    return options


def list_networks() -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for key, profile in NETWORKS.items():
        out.append(
            {
                "network": key,
                "name": profile.name,
                "chain_id": profile.chain_id,
                "rpc_url": profile.rpc_url,
                "explorer_url": profile.explorer_url,
            }
        )
    out.append(
        {
            "network": CUSTOM_NETWORK,
            "name": "Custom",
            "chain_id": NETWORKS[DEFAULT_NETWORK].chain_id,
            "rpc_url": None,
            "explorer_url": None,
        }
    )
    return out


# approximate blocks per epoch (one day of 5s blocks)
EPOCH_SIZE = 17280


def calculate_epoch_from_block(block_number: Union[int, str]) -> int:
    """Epoch containing ``block_number`` (int, decimal string or 0x quantity)."""
    if isinstance(block_number, bool):
        raise InvalidParameterError("block_number must be an integer.")
    if isinstance(block_number, str):
        candidate = block_number.strip()
        if candidate.startswith("0x"):
            block = from_hex_quantity(candidate)
        elif candidate.isascii() and candidate.isdigit():
            block = int(candidate, 10)
        else:
            raise InvalidParameterError(f"Invalid block number '{block_number}'.")
    elif isinstance(block_number, int):
        block = block_number
    else:
        raise InvalidParameterError("block_number must be an integer.")
    if block < 0:
        raise InvalidParameterError("block_number must be non-negative.")
    return block // EPOCH_SIZE


def get_epoch_boundaries(epoch_number: int) -> Dict[str, int]:
    if isinstance(epoch_number, bool) or not isinstance(epoch_number, int) or epoch_number < 0:
        raise InvalidParameterError("epoch_number must be a non-negative integer.")
    return {
        "first_block": epoch_number * EPOCH_SIZE,
        "last_block": (epoch_number + 1) * EPOCH_SIZE - 1,
    }
