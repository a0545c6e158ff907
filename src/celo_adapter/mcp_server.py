"""
MCP server exposing the Celo read/query operations.
"""

import argparse
from collections.abc import Mapping
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .abi import encode_function_call as _encode_function_call
from .abi import function_selector, parse_function_signature
from .config import configure_logging, load_config
from .errors import InvalidParameterError
from .service import CeloService
from .units import convert_units as _convert_units
from .units import format_units as _format_units
from .units import parse_units as _parse_units

server = FastMCP(
    name="celo-adapter",
    instructions="Query Celo accounts, tokens, blocks, transactions and events over JSON-RPC.",
)

_service: Optional[CeloService] = None


def _get_service() -> CeloService:
    global _service
    if _service is None:
        _service = CeloService(load_config())
    return _service


def _call_args(value: Optional[Any]) -> list:
    """Calldata arguments as a list; a lone number is wrapped, strings and objects are refused."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        raise InvalidParameterError(
            "args must be a JSON array of arguments, e.g. [\"0x765d...282a\", \"1000\"]."
        )
    return [value]


@server.tool(
    name="execute",
    title="Run Celo Operation",
    description="Run a read/query operation, e.g. resource='token', operation='getBalance', params={'address': '0x...', 'token': 'cUSD'}.",
)
def execute(resource: str, operation: str, params: Optional[dict] = None) -> dict:
    svc = _get_service()
    return svc.execute(resource, operation, params or {})


@server.tool(
    name="list_operations",
    title="List Operations",
    description="List the supported (resource, operation) pairs.",
)
def list_operations() -> dict:
    svc = _get_service()
    return {"operations": [f"{resource}.{operation}" for resource, operation in svc.operations()]}


@server.tool(
    name="encode_function_call",
    title="Encode Function Call",
    description="Compute selector and ABI-encoded call data from a function signature and arguments. `args` must be an array.",
)
def encode_function_call(function: str, args: Optional[Any] = None) -> dict:
    name, types = parse_function_signature(function)
    call_args = _call_args(args)
    return {
        "function": function,
        "selector": function_selector(function),
        "data": _encode_function_call(name, types, call_args),
    }


@server.tool(
    name="convert_units",
    title="Convert Units",
    description="Express an amount given in wei, gwei or celo in all three units.",
)
def convert_units(value: str, from_unit: str = "wei") -> dict:
    return _convert_units(value, from_unit)


@server.tool(
    name="format_units",
    title="Format Base Units",
    description="Format a base-unit integer amount as a decimal string (decimals default 18).",
)
def format_units(value: str, decimals: int = 18) -> dict:
    return {"value": value, "decimals": decimals, "formatted": _format_units(value, decimals)}


@server.tool(
    name="parse_units",
    title="Parse Decimal Amount",
    description="Parse a decimal amount into base units (decimals default 18). Excess precision is truncated.",
)
def parse_units(value: str, decimals: int = 18) -> dict:
    return {"value": value, "decimals": decimals, "base_units": _parse_units(value, decimals)}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Celo MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    args = parser.parse_args()

    configure_logging(load_config().log_level)
    server.settings.host = args.host
    server.settings.port = args.port
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
