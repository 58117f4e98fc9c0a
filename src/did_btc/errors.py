"""Exception hierarchy for did-btc.

Three families of failures exist:

* :class:`DidValidationError`: the caller supplied inputs that can never
  produce a valid transaction. Raised before anything is built.
* :class:`InsufficientFundsError`: the supplied UTXOs cannot pay for the
  outputs plus the fee. Raised while sizing a transaction; the whole build
  is aborted.
* :class:`DidFormatError`: bytes or strings being decoded do not follow the
  ``did:btc`` encodings.

The validation and format errors also derive from :class:`ValueError` so
callers that only care about "bad input" can catch that.
"""
from __future__ import annotations


class DidBtcError(Exception):
    """Base exception for all did-btc errors."""


class DidValidationError(DidBtcError, ValueError):
    """Raised when builder inputs fail validation."""


class InsufficientFundsError(DidBtcError):
    """Raised when the inputs do not cover the outputs and the fee.

    Parameters
    ----------
    available_change:
        ``input_value - output_value - fee``; always negative.
    """

    def __init__(self, available_change: int) -> None:
        self.available_change = available_change
        super().__init__(
            "Insufficient funds for transaction fee "
            f"(short by {-available_change} sats)."
        )


class DidFormatError(DidBtcError, ValueError):
    """Raised when encoded data cannot be decoded as did:btc data."""


__all__ = [
    "DidBtcError",
    "DidFormatError",
    "DidValidationError",
    "InsufficientFundsError",
]
