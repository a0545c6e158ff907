import argparse
import json
import sys
from typing import Any, Optional

from .abi import encode_function_call, function_selector, parse_function_signature
from .config import configure_logging, load_config
from .errors import CeloAdapterError
from .networks import list_networks
from .service import CeloService
from .units import convert_units


def _json_arg(raw: Optional[str], name: str, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"--{name} must be valid JSON: {exc}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query the Celo blockchain over JSON-RPC.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a resource operation")
    run_parser.add_argument("resource", help="Resource name, e.g. account, token, block.")
    run_parser.add_argument("operation", help="Operation name, e.g. getBalance.")
    run_parser.add_argument(
        "--params",
        required=False,
        help='Operation parameters as a JSON object, e.g. \'{"address": "0x..."}\'.',
    )
    run_parser.add_argument(
        "--network",
        required=False,
        help="Optional network override. Defaults to CELO_NETWORK env or mainnet.",
    )
    run_parser.add_argument(
        "--rpc-url",
        required=False,
        help="Optional RPC endpoint override (required for --network custom).",
    )

    convert_parser = subparsers.add_parser("convert", help="Convert between wei, gwei and celo")
    convert_parser.add_argument("value", help="Amount to convert.")
    convert_parser.add_argument(
        "--from",
        dest="from_unit",
        default="wei",
        choices=["wei", "gwei", "celo"],
        help="Unit of VALUE. Defaults to wei.",
    )

    encode_parser = subparsers.add_parser("encode", help="Encode calldata for a function call")
    encode_parser.add_argument("function", help="Function signature, e.g. 'balanceOf(address)'.")
    encode_parser.add_argument(
        "--args",
        required=False,
        help='Arguments as a JSON array, e.g. \'["0x..."]\'.',
    )

    subparsers.add_parser("networks", help="List supported networks")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        configure_logging(config.log_level)

        if args.command == "run":
            if args.network:
                config.network = args.network.strip().lower()
            if args.rpc_url:
                config.rpc_url = args.rpc_url.strip()
            params = _json_arg(args.params, "params", {})
            result = CeloService(config).execute(args.resource, args.operation, params)
        elif args.command == "convert":
            result = {"value": args.value, "from_unit": args.from_unit, **convert_units(args.value, args.from_unit)}
        elif args.command == "encode":
            call_args = _json_arg(args.args, "args", [])
            name, types = parse_function_signature(args.function)
            result = {
                "function": args.function,
                "selector": function_selector(args.function),
                "data": encode_function_call(name, types, call_args),
            }
        else:
            result = list_networks()
        print(json.dumps(result, indent=2))
    except (CeloAdapterError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
