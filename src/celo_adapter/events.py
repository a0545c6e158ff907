"""
Event log filters for ``eth_getLogs`` and the block window used by pollers.

Topic positions follow the standard filter semantics: topic[0] is the event
signature hash, topic[1..3] are the indexed arguments in declaration order. Each
position is ``None`` (wildcard), one hash, or a list of hashes (OR).
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .abi import address_word, event_topic
from .errors import InvalidParameterError
from .hexcodec import from_hex_quantity, normalize_address, normalize_hash, to_hex_quantity

TRANSFER_EVENT = "Transfer(address,address,uint256)"
TRANSFER_TOPIC = event_topic(TRANSFER_EVENT)

MAX_TOPICS = 4
BLOCK_TAGS = {"latest", "earliest", "pending"}

TopicFilter = Union[None, str, Sequence[str]]


def _block_value(value: Union[int, str], field: str) -> str:
    if isinstance(value, str) and value.strip().lower() in BLOCK_TAGS:
        return value.strip().lower()
    try:
        return to_hex_quantity(value)
    except ValueError as exc:
        raise InvalidParameterError(f"{field} must be a block number or latest|earliest|pending.") from exc


def _topic_entry(entry: TopicFilter, idx: int) -> Union[None, str, List[str]]:
    if entry is None:
        return None
    if isinstance(entry, str):
        return normalize_hash(entry, f"topics[{idx}]")
    if isinstance(entry, (list, tuple)):
        if not entry:
            raise InvalidParameterError(f"topics[{idx}] alternatives cannot be empty.")
        return [normalize_hash(item, f"topics[{idx}]") for item in entry]
    raise InvalidParameterError(f"topics[{idx}] must be null, a topic hash or a list of topic hashes.")


def build_log_filter(
    from_block: Union[int, str],
    to_block: Union[int, str] = "latest",
    address: Optional[Union[str, Sequence[str]]] = None,
    topics: Optional[Sequence[TopicFilter]] = None,
) -> Dict[str, Any]:
    log_filter: Dict[str, Any] = {
        "fromBlock": _block_value(from_block, "fromBlock"),
        "toBlock": _block_value(to_block, "toBlock"),
    }
    if address:
        if isinstance(address, str):
            log_filter["address"] = normalize_address(address)
        else:
            log_filter["address"] = [normalize_address(item) for item in address]
    if topics is not None:
        if len(topics) > MAX_TOPICS:
            raise InvalidParameterError(f"At most {MAX_TOPICS} topics are supported.")
        log_filter["topics"] = [_topic_entry(entry, idx) for idx, entry in enumerate(topics)]
    return log_filter


def address_topic(address: str) -> str:
    return address_word(address)


def transfer_filter(
    from_block: Union[int, str],
    to_block: Union[int, str],
    token_address: Optional[str] = None,
    sender: Optional[str] = None,
    recipient: Optional[str] = None,
) -> Dict[str, Any]:
    topics: List[TopicFilter] = [
        TRANSFER_TOPIC,
        address_topic(sender) if sender else None,
        address_topic(recipient) if recipient else None,
    ]
    return build_log_filter(from_block, to_block, token_address, topics)


def compute_poll_window(
    current_block: int,
    last_block: Optional[int] = None,
    confirmations: int = 1,
    lookback: int = 100,
    max_range: int = 1000,
) -> Optional[Tuple[int, int]]:
    """
    Block range a poller should scan next, or None when there is nothing new.

    Without a checkpoint the window starts ``lookback`` blocks back. It never spans
    more than ``max_range`` blocks and stops ``confirmations`` blocks below the head.
    """
    last = last_block if last_block is not None else current_block - lookback
    if current_block <= last:
        return None

    from_block = max(last + 1, current_block - max_range)
    to_block = current_block - max(0, confirmations)
    if to_block < from_block:
        return None
    return from_block, to_block


def _topic_address(topic: str) -> str:
    return "0x" + topic[-40:].lower()


def decode_transfer_log(log: Dict[str, Any]) -> Dict[str, Any]:
    topics = log.get("topics") or []
    if len(topics) < 3 or str(topics[0]).lower() != TRANSFER_TOPIC:
        raise InvalidParameterError("Log is not an ERC-20 Transfer event.")

    data = log.get("data") or "0x"
    return {
        "address": str(log.get("address", "")).lower(),
        "from": _topic_address(topics[1]),
        "to": _topic_address(topics[2]),
        "value": str(from_hex_quantity(data)) if data != "0x" else "0",
        "blockNumber": from_hex_quantity(log["blockNumber"]) if log.get("blockNumber") else None,
        "transactionHash": log.get("transactionHash"),
        "logIndex": from_hex_quantity(log["logIndex"]) if log.get("logIndex") else None,
    }
