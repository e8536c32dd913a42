"""Asset contracts: non-fungible collectibles and fungible payment tokens"""
from nftauction.core.assets.collectible import Collectible
from nftauction.core.assets.token import FungibleToken

__all__ = [
    "Collectible",
    "FungibleToken",
]
