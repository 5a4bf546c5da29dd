"""Capabilities the marketplace needs from the outside world.

The marketplace never tracks ownership or balances itself.  It depends on
two Protocols:

1. ``AssetRegistry``: custody of non-fungible assets and royalty rules.
2. ``ValueTransfer``: the native value ledger.

Any object with the right methods satisfies them; the in-memory variants
in ``nftmarket.collaborators.memory`` are used for tests and the demo.
Implementations signal refusal with ``CollaboratorError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class RoyaltyInfo(BaseModel):
    """Royalty owed on a sale: who receives it and how much."""

    model_config = ConfigDict(frozen=True)

    beneficiary: str
    amount: int


@runtime_checkable
class AssetRegistry(Protocol):
    """Protocol for asset registries (ERC-721 + ERC-2981 semantics)."""

    @property
    def address(self) -> str:
        """Identity the marketplace uses as ``asset_registry``."""
        ...

    def owner_of(self, asset_id: int) -> str:
        """Return the current custodian of *asset_id*."""
        ...

    def transfer_custody(
        self, asset_id: int, from_party: str, to_party: str, operator: str
    ) -> None:
        """Move custody of *asset_id* from *from_party* to *to_party*.

        Must fail unless *from_party* holds the asset and *operator* is
        *from_party* or has been approved by it.
        """
        ...

    def royalty_info(self, asset_id: int, sale_price: int) -> RoyaltyInfo:
        """Return the royalty owed when *asset_id* sells for *sale_price*."""
        ...


@runtime_checkable
class ValueTransfer(Protocol):
    """Protocol for the native value ledger."""

    def balance_of(self, party: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move *amount* from *sender* to *recipient*, or fail."""
        ...

    def disburse(self, sender: str, payouts: Sequence[tuple[str, int]]) -> None:
        """Pay every ``(recipient, amount)`` in *payouts* from *sender*.

        Either every payout happens or none does.
        """
        ...
