"""Contract call encoding and result decoding — no I/O."""
from __future__ import annotations

from typing import Any

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from ...errors import ChainReadFailure


def arg_types(signature: str) -> list[str]:
    """``"borrow(uint256,uint256)"`` → ``["uint256", "uint256"]``."""
    inner = signature[signature.index("(") + 1 : signature.rindex(")")]
    return [t.strip() for t in inner.split(",") if t.strip()]


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type == "bytes32" and isinstance(value, str):
        raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        if len(raw) != 32:
            raise ValueError(f"bytes32 value has {len(raw)} bytes")
        return raw
    return value


def encode_call(signature: str, *args: Any) -> str:
    """Encode calldata for a function signature and positional args."""
    types = arg_types(signature)
    if len(types) != len(args):
        raise ValueError(f"{signature} takes {len(types)} args, got {len(args)}")
    selector = function_signature_to_4byte_selector(signature)
    values = [_normalize(t, v) for t, v in zip(types, args)]
    return "0x" + (selector + encode(types, values)).hex()


def decode_result(output_types: list[str], data: str) -> tuple[Any, ...]:
    """Decode an ``eth_call`` hex result into a tuple.

    Raises:
        ChainReadFailure: empty or malformed return data (e.g. no contract).
    """
    payload = data[2:] if data.startswith("0x") else data
    if not payload:
        raise ChainReadFailure("Empty return data")
    try:
        return tuple(decode(output_types, bytes.fromhex(payload)))
    except Exception as e:
        raise ChainReadFailure(f"Could not decode {output_types}: {e}") from e
