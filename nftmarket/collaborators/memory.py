"""In-memory asset registry and value ledger.

``InMemoryAssetRegistry`` follows ERC-721 custody/approval rules and
ERC-2981 royalties (basis points over a 10000 denominator).
``InMemoryBank`` holds integer balances in the smallest native unit.
Both are suitable for development and testing; production wires the
marketplace to real backends through the same Protocols.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from nftmarket.collaborators.protocols import RoyaltyInfo
from nftmarket.core.errors import CollaboratorError
from nftmarket.models.listing import ZERO_ADDRESS

logger = logging.getLogger(__name__)

FEE_DENOMINATOR = 10_000


class InMemoryAssetRegistry:
    """ERC-721 style registry with ERC-2981 royalties.

    Parameters
    ----------
    address:
        Identity of this registry.
    royalty_receiver:
        Default royalty beneficiary for every asset.
    royalty_bps:
        Default royalty in basis points of the sale price.
    """

    def __init__(
        self,
        address: str,
        royalty_receiver: str = ZERO_ADDRESS,
        royalty_bps: int = 0,
    ) -> None:
        self._address = address
        self._owners: dict[int, str] = {}
        self._approvals: dict[int, str] = {}
        self._operators: dict[str, set[str]] = {}
        self._default_royalty = (ZERO_ADDRESS, 0)
        self._token_royalties: dict[int, tuple[str, int]] = {}
        self.set_default_royalty(royalty_receiver, royalty_bps)

    @property
    def address(self) -> str:
        return self._address

    # -- Ownership ----------------------------------------------------------

    def mint(self, to_party: str, asset_id: int) -> None:
        """Create *asset_id* in the custody of *to_party*."""
        if to_party == ZERO_ADDRESS:
            raise CollaboratorError("ERC721: mint to the zero address")
        if asset_id in self._owners:
            raise CollaboratorError(f"ERC721: token {asset_id} already minted")
        self._owners[asset_id] = to_party

    def owner_of(self, asset_id: int) -> str:
        try:
            return self._owners[asset_id]
        except KeyError:
            raise CollaboratorError(f"ERC721: invalid token ID {asset_id}") from None

    # -- Approvals ----------------------------------------------------------

    def approve(self, caller: str, operator: str, asset_id: int) -> None:
        """Let *operator* move *asset_id* on behalf of its owner."""
        owner = self.owner_of(asset_id)
        if operator == owner:
            raise CollaboratorError("ERC721: approval to current owner")
        if caller != owner and caller not in self._operators.get(owner, set()):
            raise CollaboratorError(
                "ERC721: approve caller is not token owner or approved for all"
            )
        self._approvals[asset_id] = operator

    def get_approved(self, asset_id: int) -> str:
        self.owner_of(asset_id)
        return self._approvals.get(asset_id, ZERO_ADDRESS)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        if owner == operator:
            raise CollaboratorError("ERC721: approve to caller")
        operators = self._operators.setdefault(owner, set())
        if approved:
            operators.add(operator)
        else:
            operators.discard(operator)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return operator in self._operators.get(owner, set())

    # -- Custody ------------------------------------------------------------

    def transfer_custody(
        self, asset_id: int, from_party: str, to_party: str, operator: str
    ) -> None:
        owner = self.owner_of(asset_id)
        if owner != from_party:
            raise CollaboratorError("ERC721: transfer from incorrect owner")
        if to_party == ZERO_ADDRESS:
            raise CollaboratorError("ERC721: transfer to the zero address")
        if not (
            operator == owner
            or self._approvals.get(asset_id) == operator
            or self.is_approved_for_all(owner, operator)
        ):
            raise CollaboratorError("ERC721: caller is not token owner or approved")

        self._approvals.pop(asset_id, None)
        self._owners[asset_id] = to_party
        logger.debug("Asset %s#%d: %s -> %s.", self._address, asset_id, from_party, to_party)

    # -- Royalties ----------------------------------------------------------

    def set_default_royalty(self, receiver: str, bps: int) -> None:
        self._default_royalty = self._checked_royalty(receiver, bps)

    def set_token_royalty(self, asset_id: int, receiver: str, bps: int) -> None:
        self._token_royalties[asset_id] = self._checked_royalty(receiver, bps)

    def royalty_info(self, asset_id: int, sale_price: int) -> RoyaltyInfo:
        receiver, bps = self._token_royalties.get(asset_id, self._default_royalty)
        return RoyaltyInfo(
            beneficiary=receiver, amount=sale_price * bps // FEE_DENOMINATOR
        )

    @staticmethod
    def _checked_royalty(receiver: str, bps: int) -> tuple[str, int]:
        if not 0 <= bps <= FEE_DENOMINATOR:
            raise CollaboratorError("ERC2981: royalty fee will exceed salePrice")
        if bps and receiver == ZERO_ADDRESS:
            raise CollaboratorError("ERC2981: invalid receiver")
        return receiver, bps


class InMemoryBank:
    """Integer balances with atomic single and multi-party transfers."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self._lock = threading.Lock()

    def mint(self, party: str, amount: int) -> None:
        """Credit *party* with freshly created value."""
        if amount < 0:
            raise CollaboratorError("Cannot mint a negative amount")
        with self._lock:
            self._balances[party] = self._balances.get(party, 0) + amount

    def balance_of(self, party: str) -> int:
        return self._balances.get(party, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.disburse(sender, [(recipient, amount)])

    def disburse(self, sender: str, payouts: Sequence[tuple[str, int]]) -> None:
        if any(amount < 0 for _, amount in payouts):
            raise CollaboratorError("Cannot transfer a negative amount")
        total = sum(amount for _, amount in payouts)
        with self._lock:
            available = self._balances.get(sender, 0)
            if available < total:
                raise CollaboratorError(
                    f"Insufficient balance: {sender} has {available}, needs {total}"
                )
            self._balances[sender] = available - total
            for recipient, amount in payouts:
                self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def total_supply(self) -> int:
        return sum(self._balances.values())
