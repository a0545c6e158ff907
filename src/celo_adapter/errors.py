from typing import Any, Optional


class CeloAdapterError(Exception):
    """Base class for every error raised by celo_adapter."""


class ConfigurationError(CeloAdapterError, ValueError):
    pass


class UnknownNetworkError(ConfigurationError):
    pass


class MissingEndpointError(ConfigurationError):
    pass


class MissingContractError(ConfigurationError):
    pass


class RpcError(CeloAdapterError):
    """The node answered with a JSON-RPC error envelope."""

    def __init__(self, code: Optional[int], message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        parts = []
        if code is not None:
            parts.append(f"code {code}")
        if message:
            parts.append(str(message))
        if data:
            parts.append(str(data))
        super().__init__(f"RPC error: {': '.join(parts) if parts else 'unknown error'}.")


class RpcProtocolError(CeloAdapterError):
    pass


class RpcTransportError(CeloAdapterError):
    pass


class ExplorerError(CeloAdapterError):
    pass


class EncodingError(CeloAdapterError, ValueError):
    pass


class UnsupportedTypeError(EncodingError):
    pass


class InvalidAmountError(CeloAdapterError, ValueError):
    pass


class MalformedHexError(CeloAdapterError, ValueError):
    pass


class InvalidParameterError(CeloAdapterError, ValueError):
    pass


class UnsupportedOperationError(CeloAdapterError, ValueError):
    pass


class SigningNotSupportedError(CeloAdapterError, NotImplementedError):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or "Transaction signing is not supported. Sign the transaction with an external "
            "wallet or signing service and submit the raw transaction yourself."
        )
