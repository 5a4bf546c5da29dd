"""External collaborators — asset registries and the native value ledger."""

from nftmarket.collaborators.memory import InMemoryAssetRegistry, InMemoryBank
from nftmarket.collaborators.protocols import AssetRegistry, RoyaltyInfo, ValueTransfer

__all__ = [
    "AssetRegistry",
    "ValueTransfer",
    "RoyaltyInfo",
    "InMemoryAssetRegistry",
    "InMemoryBank",
]
