"""Marketplace rejection taxonomy.

Every error here is a rejection: the operation that raised it left no
trace in listing state, custody or balances.  ``reason`` is a stable
string that calling tooling may branch on, so changing one is a breaking
change.
"""

from __future__ import annotations


class MarketError(RuntimeError):
    """Base class for all marketplace rejections."""

    reason: str = "Market operation rejected"

    def __init__(self, reason: str | None = None, detail: str = "") -> None:
        if reason is not None:
            self.reason = reason
        self.detail = detail
        message = f"{self.reason}: {detail}" if detail else self.reason
        super().__init__(message)


class InvalidPrice(MarketError):
    """Requested listing price is below the minimum."""

    reason = "Price must be at least 1 wei"


class IncorrectPayment(MarketError):
    """Attached payment is not exactly the required amount."""

    reason = "Price must be equal to listing price"

    SALE_REASON = "Please submit the asking price in order to complete the purchase"


class NotListed(MarketError):
    """The asset identity has no active listing."""

    reason = "nft is not listed"


class NotAuthorized(MarketError):
    """Caller lacks the role the operation requires."""

    reason = "Caller is not authorized"

    DELIST_REASON = "Only Owner of NFT can de-list"
    UPDATE_PRICE_REASON = "Only Owner of NFT can update its price"
    SET_FEE_REASON = "Only owner can update listing price"
    WITHDRAW_REASON = "Only owner can withdraw"


class TransferFailed(MarketError):
    """A custody or value transfer collaborator refused the operation."""

    reason = "Transfer failed"


class RoyaltyExceedsPrice(MarketError):
    """The royalty source asked for more than the sale price."""

    reason = "Royalty exceeds sale price"


class CollaboratorError(RuntimeError):
    """Raised by asset registries and value transfer backends.

    The marketplace never lets this escape; it is re-raised as
    ``TransferFailed``.
    """
