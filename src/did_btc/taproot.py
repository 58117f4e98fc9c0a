"""Taproot (BIP341) key derivation, commitments, and segwit addresses.

:class:`TaprootKey` turns a raw 32-byte private key into everything a
``did:btc`` transaction needs from it: the internal x-only key, the tweaked
output key used for key-path spends, the matching signing key, and the
P2TR output script.

:func:`taproot_commitment` commits an internal key to a single tapscript
leaf and exposes the resulting output script and BIP341 control block.

Tweaks, leaf hashes and control blocks come from ``bitcoinutils.utils``.
Addresses are converted with the bech32 reference code shipped with the
same library. Its process-wide network setting is never used: every
function that renders or parses an address takes the network explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from bitcoinutils import bech32
from bitcoinutils.keys import PublicKey
from bitcoinutils.script import Script
from bitcoinutils.utils import ControlBlock, calculate_tweak, i_to_b32, tapleaf_tagged_hash

from did_btc.consts import Network
from did_btc.ecc import Secp256k1
from did_btc.errors import DidValidationError

_NETWORK_HRP: dict[Network, str] = {
    Network.MAINNET: "bc",
    Network.TESTNET: "tb",
    Network.REGTEST: "bcrt",
}

# OP_0 and OP_1 .. OP_16 name the witness version of a segwit output.
_WITNESS_VERSION_OPS: tuple[str, ...] = ("OP_0",) + tuple(f"OP_{n}" for n in range(1, 17))


# ------------------------------------------------------------------
# Tweaks
# ------------------------------------------------------------------


def lift_x(x_only: bytes) -> PublicKey:
    """Return the even-y :class:`~bitcoinutils.keys.PublicKey` of an x-only key."""
    return PublicKey("02" + bytes(x_only).hex())


def taptweak(internal_pubkey: bytes, leaf_script: Script | None = None) -> bytes:
    """Return the TapTweak hash of an internal key.

    With *leaf_script* the tweak commits to a tree made of that leaf alone;
    without it the output is spendable by key path only.
    """
    return i_to_b32(calculate_tweak(lift_x(internal_pubkey), leaf_script))


# ------------------------------------------------------------------
# Output scripts and addresses
# ------------------------------------------------------------------


def network_hrp(network: Network | str) -> str:
    """Return the bech32 human-readable part for *network*."""
    return _NETWORK_HRP[Network(network)]


def p2tr_output_script(output_key: bytes) -> Script:
    """Return the ``OP_1 <output key>`` script paying to a Taproot output key."""
    return Script(["OP_1", bytes(output_key).hex()])


class CompiledScript(Script):
    """A :class:`~bitcoinutils.script.Script` whose serialization is fixed.

    ``Script`` re-encodes its tokens on every ``to_bytes`` call and picks
    its own push opcodes. Scripts that must keep an exact byte layout (the
    reveal script, caller-supplied output scripts) are wrapped in this
    class so that signing, hashing and serialization all see the same bytes.
    """

    def __init__(self, raw: bytes) -> None:
        super().__init__([])
        self._raw = bytes(raw)

    def to_bytes(self, segwit: bool = False) -> bytes:
        return self._raw

    def to_hex(self, segwit: bool = False) -> str:
        return self._raw.hex()

    def __repr__(self) -> str:
        return f"CompiledScript({self._raw.hex()})"


def as_script(script: Script | bytes) -> Script:
    """Return *script* as a :class:`bitcoinutils.script.Script`."""
    if isinstance(script, Script):
        return script
    return CompiledScript(script)


def address_to_output_script(address: str, network: Network | str) -> Script:
    """Decode a segwit address for *network* into its output script.

    Raises
    ------
    DidValidationError
        If the address is not a valid segwit address on *network*.
    """
    network = Network(network)
    witness_version, program = bech32.decode(network_hrp(network), address)
    if witness_version is None or program is None:
        raise DidValidationError(
            f"Invalid change address {address} for network {network.value}"
        )
    return Script([_WITNESS_VERSION_OPS[witness_version], bytes(program).hex()])


def output_script_to_address(script: Script | bytes, network: Network | str) -> str:
    """Render a segwit output script as an address on *network*.

    Raises
    ------
    DidValidationError
        If the script is not a segwit output script.
    """
    raw = script.to_bytes() if isinstance(script, Script) else bytes(script)
    version_byte = raw[0] if raw else None
    if version_byte == 0x00:
        witness_version = 0
    elif version_byte is not None and 0x51 <= version_byte <= 0x60:
        witness_version = version_byte - 0x50
    else:
        raise DidValidationError(f"Output script {raw.hex()} is not a segwit output.")
    program = raw[2:]
    if len(raw) < 4 or raw[1] != len(program):
        raise DidValidationError(f"Output script {raw.hex()} is not a segwit output.")
    address = bech32.encode(network_hrp(network), witness_version, program)
    if address is None:
        raise DidValidationError(f"Output script {raw.hex()} is not a segwit output.")
    return address


# ------------------------------------------------------------------
# Keys
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TaprootKey:
    """A Taproot key pair derived from a raw private key.

    Parameters
    ----------
    internal_privkey:
        The 32-byte private key the caller supplied.
    internal_pubkey:
        The x-only public key of ``internal_privkey``.
    tweaked_privkey:
        The key-path signing key (BIP341 ``taproot_tweak_seckey`` with an
        empty script tree).
    tweaked_pubkey:
        The x-only output key committed to by :attr:`output`.
    parity:
        Parity of the output key's y coordinate.
    """

    internal_privkey: bytes = field(repr=False)
    internal_pubkey: bytes
    tweaked_privkey: bytes = field(repr=False)
    tweaked_pubkey: bytes
    parity: int

    @classmethod
    def from_privkey(cls, privkey: bytes, ecc: Secp256k1 | None = None) -> "TaprootKey":
        """Derive the key pair for *privkey* with the given (or default) backend."""
        ecc = ecc or Secp256k1()
        internal_pubkey = ecc.x_only_pubkey(privkey)
        tweak = taptweak(internal_pubkey)
        tweaked_pubkey, parity = ecc.tweak_x_only_pubkey(internal_pubkey, tweak)
        return cls(
            internal_privkey=bytes(privkey),
            internal_pubkey=internal_pubkey,
            tweaked_privkey=ecc.tweak_private_key(privkey, tweak),
            tweaked_pubkey=tweaked_pubkey,
            parity=parity,
        )

    @property
    def output_script(self) -> Script:
        """The P2TR output script paying to this key."""
        return p2tr_output_script(self.tweaked_pubkey)

    @property
    def output(self) -> bytes:
        """The compiled P2TR output script."""
        return self.output_script.to_bytes()

    def address(self, network: Network | str = Network.MAINNET) -> str:
        """Return the bech32m P2TR address of this key on *network*."""
        return bech32.encode(network_hrp(network), 1, self.tweaked_pubkey)


@dataclass(frozen=True)
class TaprootCommitment:
    """An internal key committed to a single tapscript leaf.

    Parameters
    ----------
    internal_pubkey:
        The x-only internal key.
    leaf_script:
        The tapscript the output commits to.
    leaf_hash:
        TapLeaf hash of ``leaf_script``; also the merkle root of the
        one-leaf tree.
    output_key:
        The tweaked x-only output key.
    parity:
        Parity of the output key's y coordinate.
    """

    internal_pubkey: bytes
    leaf_script: Script
    leaf_hash: bytes
    output_key: bytes
    parity: int

    @property
    def output_script(self) -> Script:
        return p2tr_output_script(self.output_key)

    @property
    def control_block(self) -> bytes:
        """BIP341 control block for spending the only leaf."""
        return ControlBlock(
            lift_x(self.internal_pubkey),
            scripts=[[self.leaf_script]],
            index=0,
            is_odd=bool(self.parity),
        ).to_bytes()


def taproot_commitment(
    internal_pubkey: bytes,
    leaf_script: Script,
    ecc: Secp256k1 | None = None,
) -> TaprootCommitment:
    """Commit *internal_pubkey* to a script tree made of *leaf_script* alone."""
    ecc = ecc or Secp256k1()
    output_key, parity = ecc.tweak_x_only_pubkey(
        internal_pubkey, taptweak(internal_pubkey, leaf_script)
    )
    return TaprootCommitment(
        internal_pubkey=bytes(internal_pubkey),
        leaf_script=leaf_script,
        leaf_hash=tapleaf_tagged_hash(leaf_script),
        output_key=output_key,
        parity=parity,
    )


def get_change_output(
    change_address: str | None,
    privkey: bytes,
    network: Network | str,
    ecc: Secp256k1 | None = None,
) -> Script:
    """Return the change output script for a build.

    Defaults to the P2TR output of *privkey* when no address is given.

    Raises
    ------
    DidValidationError
        If *change_address* is not a segwit address on *network*.
    """
    if not change_address:
        return TaprootKey.from_privkey(privkey, ecc).output_script
    return address_to_output_script(change_address, network)


__all__ = [
    "CompiledScript",
    "TaprootCommitment",
    "TaprootKey",
    "address_to_output_script",
    "as_script",
    "get_change_output",
    "network_hrp",
    "output_script_to_address",
    "p2tr_output_script",
    "lift_x",
    "taproot_commitment",
    "taptweak",
]
