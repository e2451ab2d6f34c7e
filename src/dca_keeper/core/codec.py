# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Codec for the batch token returned by the ledger's readiness check.

The token is the ABI encoding of a dynamic ``uint256[]``: a 32 byte offset,
a 32 byte length and one 32 byte word per order identifier, hex encoded with
a ``0x`` prefix.
"""

WORD_SIZE = 32
MAX_UINT256 = 2**256 - 1


def encode_order_ids(order_ids: list[int]) -> str:
    words = [WORD_SIZE, len(order_ids), *order_ids]
    for word in words:
        if not 0 <= word <= MAX_UINT256:
            raise ValueError(f"Value out of uint256 range: {word}")
    return "0x" + "".join(word.to_bytes(WORD_SIZE, "big").hex() for word in words)


def decode_order_ids(perform_data: str) -> list[int]:
    """
    Decode the identifiers from a batch token.

    Raises ValueError if the token is not a valid ``uint256[]`` encoding.
    """
    data = bytes.fromhex(perform_data.removeprefix("0x"))
    if len(data) < 2 * WORD_SIZE or len(data) % WORD_SIZE:
        raise ValueError(f"Malformed batch token of {len(data)} bytes")

    def word(index: int) -> int:
        return int.from_bytes(data[index : index + WORD_SIZE], "big")

    offset = word(0)
    if offset % WORD_SIZE or offset + WORD_SIZE > len(data):
        raise ValueError(f"Invalid offset {offset} in batch token")

    length = word(offset)
    start = offset + WORD_SIZE
    if start + length * WORD_SIZE > len(data):
        raise ValueError(f"Batch token too short for {length} identifiers")

    return [word(start + i * WORD_SIZE) for i in range(length)]
