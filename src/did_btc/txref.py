"""BIP-136 transaction position references ("txref").

A txref encodes where a transaction sits in the chain: block height, index
of the transaction in its block, and optionally an output index. The data
is packed into 5-bit groups:

=====  ===========================================================
Group  Content
=====  ===========================================================
0      magic code: 3 mainnet, 4 mainnet + outpoint,
       6 testnet, 7 testnet + outpoint
1      bits 0-3 of the height, shifted left by one (bit 0 is the
       version, always 0)
2-5    bits 4-23 of the height, five at a time
6-8    bits 0-14 of the transaction index, five at a time
9-11   bits 0-14 of the outpoint, five at a time (extended only)
=====  ===========================================================

The groups are checksummed with bech32m under the human-readable part
``tx`` (mainnet) or ``txtest`` (testnet) and rendered in dash-separated
groups of four characters, e.g. ``txtest1:8q7p-v92k-prqq-7s2k-6a``.

See https://github.com/bitcoin/bips/blob/master/bip-0136.mediawiki
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bitcoinutils.bech32 import CHARSET, Encoding, bech32_decode, bech32_encode

from did_btc.consts import Network
from did_btc.errors import DidFormatError

MAGIC_MAINNET: int = 3
MAGIC_MAINNET_EXTENDED: int = 4
MAGIC_TESTNET: int = 6
MAGIC_TESTNET_EXTENDED: int = 7

HRP_MAINNET: str = "tx"
HRP_TESTNET: str = "txtest"

MAX_BLOCK_HEIGHT: int = 0xFFFFFF
MAX_TX_INDEX: int = 0x7FFF
MAX_OUTPOINT: int = 0x7FFF

_GROUP_SIZE: int = 4


@dataclass(frozen=True)
class TxRef:
    """A decoded transaction position."""

    block_height: int
    tx_index: int
    outpoint: Optional[int] = None
    network: Network = Network.MAINNET


def _is_mainnet(network: Network | str) -> bool:
    # Regtest has no txref space of its own and shares testnet's.
    return Network(network) is Network.MAINNET


def _split_15_bits(value: int) -> list[int]:
    return [value & 0x1F, (value & 0x3E0) >> 5, (value & 0x7C00) >> 10]


def _check_range(name: str, value: int, maximum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValueError(f"{name} must be an integer between 0 and {maximum}, got {value!r}")


def encode_txref(
    block_height: int,
    tx_index: int,
    network: Network | str = Network.MAINNET,
    outpoint: Optional[int] = None,
) -> str:
    """Encode a transaction position as a txref string.

    Raises
    ------
    ValueError
        If a component is out of range.
    """
    _check_range("block_height", block_height, MAX_BLOCK_HEIGHT)
    _check_range("tx_index", tx_index, MAX_TX_INDEX)
    if outpoint is not None:
        _check_range("outpoint", outpoint, MAX_OUTPOINT)

    mainnet = _is_mainnet(network)
    if outpoint is None:
        magic = MAGIC_MAINNET if mainnet else MAGIC_TESTNET
    else:
        magic = MAGIC_MAINNET_EXTENDED if mainnet else MAGIC_TESTNET_EXTENDED
    hrp = HRP_MAINNET if mainnet else HRP_TESTNET

    data = [
        magic,
        (block_height & 0xF) << 1,
        (block_height & 0x1F0) >> 4,
        (block_height & 0x3E00) >> 9,
        (block_height & 0x7C000) >> 14,
        (block_height & 0xF80000) >> 19,
        *_split_15_bits(tx_index),
    ]
    if outpoint is not None:
        data.extend(_split_15_bits(outpoint))

    encoded = bech32_encode(hrp, data, Encoding.BECH32M)
    chars = encoded[len(hrp) + 1 :]
    groups = [chars[i : i + _GROUP_SIZE] for i in range(0, len(chars), _GROUP_SIZE)]
    return f"{hrp}1:{'-'.join(groups)}"


def _hrp_for_magic_char(char: str) -> str:
    magic = CHARSET.find(char)
    if magic in (MAGIC_MAINNET, MAGIC_MAINNET_EXTENDED):
        return HRP_MAINNET
    if magic in (MAGIC_TESTNET, MAGIC_TESTNET_EXTENDED):
        return HRP_TESTNET
    raise DidFormatError(f"Unrecognized txref magic character {char!r}")


def decode_txref(txref: str) -> TxRef:
    """Decode a txref, with or without its ``tx1:``/``txtest1:`` prefix.

    Raises
    ------
    DidFormatError
        If the string is not a valid txref.
    """
    compact = txref.strip().lower().replace("-", "").replace(":", "")
    if compact.startswith(HRP_TESTNET + "1"):
        compact = compact[len(HRP_TESTNET) + 1 :]
    elif compact.startswith(HRP_MAINNET + "1"):
        compact = compact[len(HRP_MAINNET) + 1 :]
    if not compact:
        raise DidFormatError("Empty txref")

    hrp = _hrp_for_magic_char(compact[0])
    decoded_hrp, data, spec = bech32_decode(f"{hrp}1{compact}")
    if decoded_hrp is None or spec is not Encoding.BECH32M:
        raise DidFormatError(f"Invalid txref checksum in {txref!r}")

    magic = data[0]
    extended = magic in (MAGIC_MAINNET_EXTENDED, MAGIC_TESTNET_EXTENDED)
    if len(data) != (12 if extended else 9):
        raise DidFormatError(f"Invalid txref length in {txref!r}")
    if data[1] & 1:
        raise DidFormatError(f"Unsupported txref version in {txref!r}")

    block_height = (
        (data[1] >> 1)
        | (data[2] << 4)
        | (data[3] << 9)
        | (data[4] << 14)
        | (data[5] << 19)
    )
    tx_index = data[6] | (data[7] << 5) | (data[8] << 10)
    outpoint = data[9] | (data[10] << 5) | (data[11] << 10) if extended else None
    network = Network.MAINNET if hrp == HRP_MAINNET else Network.TESTNET
    return TxRef(
        block_height=block_height, tx_index=tx_index, outpoint=outpoint, network=network
    )


__all__ = [
    "HRP_MAINNET",
    "HRP_TESTNET",
    "TxRef",
    "decode_txref",
    "encode_txref",
]
