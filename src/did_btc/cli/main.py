"""CLI entry point for did-btc.

Invoked as::

    did-btc [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m did_btc.cli.main

Commands
--------
version        Show version information
keygen         Generate a subject key (multikey) or a wallet key
create         Build a single DID creation transaction
batch-create   Build a commit/reveal pair creating a batch of DIDs
update         Build a commit/reveal pair updating a DID
batch-update   Build a commit/reveal pair updating DIDs of a batch
deactivate     Build a DID deactivation transaction
resolve        Resolve a DID from its transactions
document       Resolve a DID and print its DID document
encode-id      Encode a did:btc identifier
decode-id      Decode a did:btc identifier

UTXOs are given as ``TXID:VOUT:VALUE`` and keys as hex. Build commands print
the signed transactions as JSON.
"""
from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

import click
from rich.console import Console
from rich.table import Table

from did_btc.consts import DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS, DUST_LIMIT, Network
from did_btc.errors import DidBtcError
from did_btc.models import Utxo, WalletUtxo

console = Console()

_NETWORK_CHOICE = click.Choice([network.value for network in Network])
_CODEC_CHOICE = click.Choice(["ed25519-pub", "secp256k1-pub"])


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="did-btc")
def cli() -> None:
    """Build and resolve did:btc DIDs anchored in Bitcoin transactions"""


# ------------------------------------------------------------------
# Shared options
# ------------------------------------------------------------------


def _network_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--network",
        type=_NETWORK_CHOICE,
        default=Network.MAINNET.value,
        show_default=True,
        help="Bitcoin network.",
    )(func)


def _funding_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every transaction-building command."""
    options = [
        click.option(
            "--fee-rate",
            type=float,
            required=True,
            help="Fee rate in sats per vbyte (at least 1).",
        ),
        click.option(
            "--utxo",
            "utxos",
            multiple=True,
            help="Funding output TXID:VOUT:VALUE (repeatable).",
        ),
        click.option(
            "--wallet-key",
            default=None,
            help="Hex secret key controlling every --utxo.",
        ),
        click.option(
            "--change-address",
            default=None,
            help="Segwit address for change (defaults to the signer's P2TR address).",
        ),
        _network_option,
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _history_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options naming the transactions a DID is resolved from."""
    func = click.option(
        "--tx-file",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="File with one transaction hex per line, creation first.",
    )(func)
    return click.option(
        "--tx",
        "tx_hex",
        multiple=True,
        help="Transaction hex, creation first (repeatable).",
    )(func)


# ------------------------------------------------------------------
# version / keygen
# ------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from did_btc import __version__

    console.print(f"[bold]did-btc[/bold] v{__version__}")


@cli.command(name="keygen")
@click.option("--codec", type=_CODEC_CHOICE, default="ed25519-pub", show_default=True)
@click.option(
    "--wallet",
    is_flag=True,
    default=False,
    help="Generate a secp256k1 wallet key and print its P2TR address instead.",
)
@_network_option
def keygen_command(codec: str, wallet: bool, network: str) -> None:
    """Generate a key pair.

    Without --wallet, prints a subject key as a multikey ready for
    ``create``. With --wallet, prints a key for funding or DID outputs.
    """
    from did_btc.key_manager import KeyManager

    manager = KeyManager()
    if wallet:
        privkey = manager.generate_wallet_key()
        _emit({"privateKey": privkey.hex(), "address": manager.taproot_address(privkey, network)})
        return
    private_bytes, multikey = manager.generate_multikey(codec)
    _emit({"codec": codec, "privateKey": private_bytes.hex(), "publicKeyMultibase": multikey})


# ------------------------------------------------------------------
# create / batch-create
# ------------------------------------------------------------------


@cli.command(name="create")
@click.argument("multikey")
@_funding_options
@click.option("--did-sats", type=int, default=DUST_LIMIT, show_default=True)
@click.option(
    "--flags",
    type=int,
    default=int(DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS),
    show_default=True,
    help="Verification relationship flags of the initial key.",
)
def create_command(
    multikey: str,
    fee_rate: float,
    utxos: tuple[str, ...],
    wallet_key: str | None,
    change_address: str | None,
    network: str,
    did_sats: int,
    flags: int,
) -> None:
    """Build the transaction creating a DID for MULTIKEY (``z...``)."""
    from did_btc.encoding import decode_multibase
    from did_btc.operations import DidTransactionBuilder

    with _handle_errors():
        result = DidTransactionBuilder().create(
            multikey=decode_multibase(multikey),
            wallet_utxos=_wallet_utxos(utxos, wallet_key),
            sats_per_vbyte=fee_rate,
            network=network,
            change_address=change_address,
            did_sats=did_sats,
            verification_relationship_flags=flags,
        )
    _emit(result.to_dict())


@cli.command(name="batch-create")
@click.argument("pubkeys", nargs=-1, required=True)
@_funding_options
@click.option("--did-sats", type=int, default=DUST_LIMIT, show_default=True)
@click.option("--codec", type=_CODEC_CHOICE, default="ed25519-pub", show_default=True)
@click.option(
    "--flags",
    type=int,
    default=int(DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS),
    show_default=True,
    help="Verification relationship flags shared by every DID in the batch.",
)
def batch_create_command(
    pubkeys: tuple[str, ...],
    fee_rate: float,
    utxos: tuple[str, ...],
    wallet_key: str | None,
    change_address: str | None,
    network: str,
    did_sats: int,
    codec: str,
    flags: int,
) -> None:
    """Build a commit/reveal pair creating one DID per PUBKEYS entry (raw hex)."""
    from did_btc.operations import DidTransactionBuilder

    with _handle_errors():
        result = DidTransactionBuilder().batch_create(
            pubkeys=[_hex_argument("pubkey", key) for key in pubkeys],
            wallet_utxos=_wallet_utxos(utxos, wallet_key),
            sats_per_vbyte=fee_rate,
            network=network,
            change_address=change_address,
            did_sats=did_sats,
            codec=codec,
            verification_relationship_flags=flags,
        )
    _emit(result.to_dict())


# ------------------------------------------------------------------
# update / batch-update / deactivate
# ------------------------------------------------------------------


@cli.command(name="update")
@click.option("--payload", required=True, help="The update as JSON ({\"vm\", \"u\", \"d\", \"a\"}).")
@click.option("--did-utxo", required=True, help="The output controlling the DID, TXID:VOUT:VALUE.")
@click.option("--did-key", required=True, help="Hex secret key of the DID output.")
@click.option("--did-index", type=int, default=None, help="Index of the DID in its batch.")
@click.option("--did-sats", type=int, default=DUST_LIMIT, show_default=True)
@_history_options
@_funding_options
def update_command(
    payload: str,
    did_utxo: str,
    did_key: str,
    did_index: int | None,
    did_sats: int,
    tx_hex: tuple[str, ...],
    tx_file: str | None,
    fee_rate: float,
    utxos: tuple[str, ...],
    wallet_key: str | None,
    change_address: str | None,
    network: str,
) -> None:
    """Build a commit/reveal pair applying --payload to a DID.

    The current state of the DID is resolved from --tx/--tx-file first so the
    update can be validated before anything is signed.
    """
    from did_btc.operations import DidTransactionBuilder, DidUpdate, resolve_did_btc

    with _handle_errors():
        update = DidUpdate.from_json(_json_argument("--payload", payload))
        did = resolve_did_btc(_read_transactions(tx_hex, tx_file), did_index)
        result = DidTransactionBuilder().update(
            did=did,
            update=update,
            did_utxo=_parse_utxo(did_utxo),
            did_privkey=_hex_argument("--did-key", did_key),
            sats_per_vbyte=fee_rate,
            network=network,
            wallet_utxos=_wallet_utxos(utxos, wallet_key, required=False),
            change_address=change_address,
            did_sats=did_sats,
        )
    _emit(result.to_dict())


@cli.command(name="batch-update")
@click.option(
    "--update",
    "updates",
    multiple=True,
    help="INDEX=JSON update for the DID at INDEX of the batch (repeatable).",
)
@click.option(
    "--deactivate",
    "deactivations",
    type=int,
    multiple=True,
    help="Index of a DID of the batch to deactivate (repeatable).",
)
@click.option("--did-utxo", required=True, help="The output controlling the batch, TXID:VOUT:VALUE.")
@click.option("--did-key", required=True, help="Hex secret key of the DID output.")
@click.option("--did-sats", type=int, default=DUST_LIMIT, show_default=True)
@_history_options
@_funding_options
def batch_update_command(
    updates: tuple[str, ...],
    deactivations: tuple[int, ...],
    did_utxo: str,
    did_key: str,
    did_sats: int,
    tx_hex: tuple[str, ...],
    tx_file: str | None,
    fee_rate: float,
    utxos: tuple[str, ...],
    wallet_key: str | None,
    change_address: str | None,
    network: str,
) -> None:
    """Build a commit/reveal pair updating or deactivating DIDs of a batch."""
    from did_btc.operations import BatchDidUpdate, DidTransactionBuilder, DidUpdate, resolve_did_btc

    with _handle_errors():
        transactions = _read_transactions(tx_hex, tx_file) if updates else []
        batch_updates = []
        for entry in updates:
            index_text, sep, update_json = entry.partition("=")
            if not sep or not index_text.strip().isdigit():
                raise click.BadParameter(f"expected INDEX=JSON, got {entry!r}", param_hint="--update")
            index = int(index_text)
            batch_updates.append(
                BatchDidUpdate(
                    i=index,
                    update=DidUpdate.from_json(_json_argument("--update", update_json)),
                    did=resolve_did_btc(transactions, index),
                )
            )
        result = DidTransactionBuilder().batch_update(
            did_utxo=_parse_utxo(did_utxo),
            did_privkey=_hex_argument("--did-key", did_key),
            sats_per_vbyte=fee_rate,
            network=network,
            updates=batch_updates,
            deactivation_indexes=list(deactivations),
            wallet_utxos=_wallet_utxos(utxos, wallet_key, required=False),
            change_address=change_address,
            did_sats=did_sats,
        )
    _emit(result.to_dict())


@cli.command(name="deactivate")
@click.option("--did-utxo", required=True, help="The output controlling the DID, TXID:VOUT:VALUE.")
@click.option("--did-key", required=True, help="Hex secret key of the DID output.")
@_funding_options
def deactivate_command(
    did_utxo: str,
    did_key: str,
    fee_rate: float,
    utxos: tuple[str, ...],
    wallet_key: str | None,
    change_address: str | None,
    network: str,
) -> None:
    """Build the transaction deactivating a single DID."""
    from did_btc.operations import DidTransactionBuilder

    with _handle_errors():
        result = DidTransactionBuilder().deactivate(
            did_utxo=_parse_utxo(did_utxo),
            did_privkey=_hex_argument("--did-key", did_key),
            sats_per_vbyte=fee_rate,
            network=network,
            wallet_utxos=_wallet_utxos(utxos, wallet_key, required=False),
            change_address=change_address,
        )
    _emit(result.to_dict())


# ------------------------------------------------------------------
# resolve / document
# ------------------------------------------------------------------


@cli.command(name="resolve")
@click.argument("transactions", nargs=-1)
@click.option(
    "--tx-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="File with one transaction hex per line, creation first.",
)
@click.option("--did-index", type=int, default=None, help="Index of the DID in its batch.")
@click.option(
    "--history",
    is_flag=True,
    default=False,
    help="Show the outcome of every update transaction as a table.",
)
def resolve_command(
    transactions: tuple[str, ...],
    tx_file: str | None,
    did_index: int | None,
    history: bool,
) -> None:
    """Resolve a DID from TRANSACTIONS (hex, creation first)."""
    from did_btc.operations import replay_did_btc

    with _handle_errors():
        resolution = replay_did_btc(_read_transactions(transactions, tx_file), did_index)

    if history:
        table = Table(title="Update history", show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("Outcome", style="bold")
        table.add_column("Reason")
        for position, entry in enumerate(resolution.history, start=1):
            table.add_row(str(position), entry.outcome.value, entry.reason or "")
        console.print(table)
    _emit(resolution.did.to_dict())


@cli.command(name="document")
@click.argument("did_id")
@click.argument("transactions", nargs=-1)
@click.option(
    "--tx-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="File with one transaction hex per line, creation first.",
)
def document_command(did_id: str, transactions: tuple[str, ...], tx_file: str | None) -> None:
    """Resolve DID_ID from TRANSACTIONS and print its DID document.

    The batch index is taken from DID_ID.
    """
    from did_btc.document import build_did_document
    from did_btc.identifier import decode_did_btc
    from did_btc.operations import resolve_did_btc

    with _handle_errors():
        identifier = decode_did_btc(did_id)
        did = resolve_did_btc(_read_transactions(transactions, tx_file), identifier.did_index)
        document = build_did_document(did, did_id)
    _emit(document.to_dict())


# ------------------------------------------------------------------
# encode-id / decode-id
# ------------------------------------------------------------------


@cli.command(name="encode-id")
@click.option("--block-height", type=int, required=True)
@click.option("--tx-index", type=int, required=True)
@click.option("--did-index", type=int, default=None, help="Index of the DID in its batch.")
@_network_option
def encode_id_command(
    block_height: int, tx_index: int, did_index: int | None, network: str
) -> None:
    """Encode the position of a creation transaction as a did:btc identifier."""
    from did_btc.identifier import DidBtcIdentifier, encode_did_btc

    with _handle_errors():
        did = encode_did_btc(
            DidBtcIdentifier(
                block_height=block_height,
                tx_index=tx_index,
                did_index=did_index,
                network=Network(network),
            )
        )
    click.echo(did)


@cli.command(name="decode-id")
@click.argument("did_id")
def decode_id_command(did_id: str) -> None:
    """Decode DID_ID into block height, transaction index and batch index."""
    from did_btc.identifier import decode_did_btc

    with _handle_errors():
        identifier = decode_did_btc(did_id)
    _emit(identifier.to_dict())


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Turn library errors into a red message and exit status 1."""
    try:
        yield
    except DidBtcError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


def _emit(data: dict[str, object]) -> None:
    """Print *data* as JSON on stdout, unwrapped so hex stays on one line."""
    click.echo(json.dumps(data, indent=2))


def _hex_argument(name: str, value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not valid hex", param_hint=name) from None


def _json_argument(name: str, value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint=name) from None


def _parse_utxo(value: str) -> Utxo:
    """Parse ``TXID:VOUT:VALUE`` into a :class:`~did_btc.models.Utxo`."""
    parts = value.split(":")
    if len(parts) != 3 or not parts[1].isdigit() or not parts[2].isdigit():
        raise click.BadParameter(f"expected TXID:VOUT:VALUE, got {value!r}", param_hint="utxo")
    try:
        return Utxo.from_hex(parts[0], int(parts[1]), int(parts[2]))
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="utxo") from None


def _wallet_utxos(
    utxos: tuple[str, ...], wallet_key: str | None, required: bool = True
) -> list[WalletUtxo]:
    """Pair every ``--utxo`` with the ``--wallet-key`` secret."""
    if not utxos:
        if required:
            raise click.UsageError("At least one --utxo is required.")
        return []
    if wallet_key is None:
        raise click.UsageError("--wallet-key is required with --utxo.")
    privkey = _hex_argument("--wallet-key", wallet_key)
    return [WalletUtxo(utxo=_parse_utxo(utxo), privkey=privkey) for utxo in utxos]


def _read_transactions(tx_hex: tuple[str, ...], tx_file: str | None) -> list[str]:
    """Collect transaction hex from arguments and, if given, a file.

    Blank lines and lines starting with ``#`` in the file are ignored.
    """
    transactions = [tx.strip() for tx in tx_hex if tx.strip()]
    if tx_file:
        for line in Path(tx_file).read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                transactions.append(line)
    if not transactions:
        raise click.UsageError("No transactions given.")
    return transactions


if __name__ == "__main__":
    cli()
