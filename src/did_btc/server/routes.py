"""Route handler functions for the did-btc resolver server.

Each function accepts parsed request data and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
functions and serializes the results to JSON.

Documents of DIDs resolved with an ``id`` are kept in memory so that
``GET /identifiers/{did}`` can return them without the transactions.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from did_btc.document import build_did_document
from did_btc.errors import DidBtcError, DidFormatError
from did_btc.identifier import decode_did_btc
from did_btc.operations.resolve import replay_did_btc
from did_btc.server.models import (
    ErrorResponse,
    HealthResponse,
    HistoryEntry,
    IdentifierResponse,
    ResolveRequest,
    ResolveResponse,
)

logger = logging.getLogger(__name__)

# Module-level shared state
_documents: dict[str, dict[str, object]] = {}


def reset_state() -> None:
    """Forget every cached document. Used in tests and for clean restarts."""
    global _documents
    _documents = {}


def handle_resolve(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /resolve.

    Parameters
    ----------
    body:
        Parsed JSON request body: ``transactions`` (hex, creation first),
        optional ``did_index`` and optional ``id``. When ``id`` is given
        the batch index defaults to the one it encodes and the response
        includes the DID document.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        request = ResolveRequest.model_validate(body)
    except ValidationError as exc:
        return 422, ErrorResponse(error="Validation error", detail=str(exc)).model_dump()

    did_index = request.did_index
    try:
        if request.id is not None:
            identifier = decode_did_btc(request.id)
            if did_index is None:
                did_index = identifier.did_index
        resolution = replay_did_btc(request.transactions, did_index)
        document = (
            build_did_document(resolution.did, request.id).to_dict()
            if request.id is not None
            else None
        )
    except DidBtcError as exc:
        logger.info("Resolution failed: %s", exc)
        return 422, ErrorResponse(error="Resolution error", detail=str(exc)).model_dump()

    if request.id is not None and document is not None:
        _documents[request.id] = document

    response = ResolveResponse(
        did=resolution.did.to_dict(),
        history=[
            HistoryEntry(outcome=entry.outcome.value, reason=entry.reason)
            for entry in resolution.history
        ],
        document=document,
    )
    return 200, response.model_dump()


def handle_get_identifier(did_id: str) -> tuple[int, dict[str, object]]:
    """Handle GET /identifiers/{did}.

    Decodes the identifier and attaches the document cached by an earlier
    ``POST /resolve``, if any.

    Parameters
    ----------
    did_id:
        The ``did:btc`` identifier from the URL path.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        identifier = decode_did_btc(did_id)
    except DidFormatError as exc:
        return 400, ErrorResponse(error="Invalid identifier", detail=str(exc)).model_dump()

    response = IdentifierResponse(
        id=did_id,
        block_height=identifier.block_height,
        tx_index=identifier.tx_index,
        did_index=identifier.did_index,
        network=identifier.network.value,
        document=_documents.get(did_id),
    )
    return 200, response.model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP 200 and the health response dictionary.
    """
    from did_btc import __version__

    response = HealthResponse(version=__version__, resolved_count=len(_documents))
    return 200, response.model_dump()


__all__ = [
    "handle_get_identifier",
    "handle_health",
    "handle_resolve",
    "reset_state",
]
