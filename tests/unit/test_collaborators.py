"""Tests for the in-memory asset registry and bank."""

from __future__ import annotations

import pytest

from nftmarket.collaborators import (
    AssetRegistry,
    InMemoryAssetRegistry,
    InMemoryBank,
    RoyaltyInfo,
    ValueTransfer,
)
from nftmarket.core.errors import CollaboratorError
from nftmarket.models.listing import ZERO_ADDRESS


class TestProtocols:
    def test_registry_satisfies_protocol(self):
        assert isinstance(InMemoryAssetRegistry("0xreg"), AssetRegistry)

    def test_bank_satisfies_protocol(self):
        assert isinstance(InMemoryBank(), ValueTransfer)


class TestInMemoryAssetRegistry:
    @pytest.fixture
    def reg(self) -> InMemoryAssetRegistry:
        reg = InMemoryAssetRegistry("0xreg", royalty_receiver="0xcreator", royalty_bps=250)
        reg.mint("0xalice", 1)
        return reg

    def test_mint_and_owner(self, reg: InMemoryAssetRegistry):
        assert reg.owner_of(1) == "0xalice"

    def test_double_mint_rejected(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="already minted"):
            reg.mint("0xbob", 1)

    def test_unknown_token(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="invalid token ID"):
            reg.owner_of(99)

    def test_owner_can_transfer(self, reg: InMemoryAssetRegistry):
        reg.transfer_custody(1, "0xalice", "0xbob", "0xalice")
        assert reg.owner_of(1) == "0xbob"

    def test_unapproved_operator_rejected(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="not token owner or approved"):
            reg.transfer_custody(1, "0xalice", "0xbob", "0xmarket")

    def test_approved_operator_and_approval_cleared(self, reg: InMemoryAssetRegistry):
        reg.approve("0xalice", "0xmarket", 1)
        assert reg.get_approved(1) == "0xmarket"
        reg.transfer_custody(1, "0xalice", "0xmarket", "0xmarket")
        assert reg.owner_of(1) == "0xmarket"
        assert reg.get_approved(1) == ZERO_ADDRESS

    def test_operator_for_all(self, reg: InMemoryAssetRegistry):
        reg.set_approval_for_all("0xalice", "0xmarket", True)
        assert reg.is_approved_for_all("0xalice", "0xmarket")
        reg.transfer_custody(1, "0xalice", "0xbob", "0xmarket")
        assert reg.owner_of(1) == "0xbob"

    def test_revoke_operator_for_all(self, reg: InMemoryAssetRegistry):
        reg.set_approval_for_all("0xalice", "0xmarket", True)
        reg.set_approval_for_all("0xalice", "0xmarket", False)
        with pytest.raises(CollaboratorError):
            reg.transfer_custody(1, "0xalice", "0xbob", "0xmarket")

    def test_approve_by_non_owner_rejected(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="approve caller"):
            reg.approve("0xmallory", "0xmarket", 1)

    def test_transfer_from_wrong_owner(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="incorrect owner"):
            reg.transfer_custody(1, "0xbob", "0xcarol", "0xbob")

    def test_transfer_to_zero_address(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="zero address"):
            reg.transfer_custody(1, "0xalice", ZERO_ADDRESS, "0xalice")

    def test_default_royalty(self, reg: InMemoryAssetRegistry):
        assert reg.royalty_info(1, 10_000) == RoyaltyInfo(beneficiary="0xcreator", amount=250)

    def test_royalty_rounds_down(self, reg: InMemoryAssetRegistry):
        assert reg.royalty_info(1, 39).amount == 0

    def test_token_royalty_overrides_default(self, reg: InMemoryAssetRegistry):
        reg.set_token_royalty(1, "0xartist", 1000)
        assert reg.royalty_info(1, 300) == RoyaltyInfo(beneficiary="0xartist", amount=30)

    def test_royalty_above_denominator_rejected(self, reg: InMemoryAssetRegistry):
        with pytest.raises(CollaboratorError, match="exceed salePrice"):
            reg.set_default_royalty("0xcreator", 10_001)


class TestInMemoryBank:
    def test_transfer(self):
        bank = InMemoryBank({"a": 100})
        bank.transfer("a", "b", 40)
        assert bank.balance_of("a") == 60
        assert bank.balance_of("b") == 40

    def test_insufficient_balance(self):
        bank = InMemoryBank({"a": 10})
        with pytest.raises(CollaboratorError, match="Insufficient balance"):
            bank.transfer("a", "b", 11)
        assert bank.balance_of("a") == 10

    def test_disburse_is_all_or_nothing(self):
        bank = InMemoryBank({"a": 100})
        with pytest.raises(CollaboratorError):
            bank.disburse("a", [("b", 60), ("c", 60)])
        assert bank.balance_of("a") == 100
        assert bank.balance_of("b") == 0
        assert bank.balance_of("c") == 0

    def test_disburse_pays_everyone(self):
        bank = InMemoryBank({"a": 100})
        bank.disburse("a", [("b", 30), ("c", 70)])
        assert (bank.balance_of("a"), bank.balance_of("b"), bank.balance_of("c")) == (0, 30, 70)

    def test_negative_amount_rejected(self):
        bank = InMemoryBank({"a": 100})
        with pytest.raises(CollaboratorError, match="negative"):
            bank.transfer("a", "b", -1)

    def test_supply_is_conserved(self):
        bank = InMemoryBank({"a": 100, "b": 5})
        bank.disburse("a", [("b", 30), ("c", 20)])
        assert bank.total_supply() == 105

    def test_mint(self):
        bank = InMemoryBank()
        bank.mint("a", 7)
        assert bank.balance_of("a") == 7
