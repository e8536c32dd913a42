"""
Shared fixtures: a fresh chain with a priced native feed, an oracle,
a collectible, a payment token and a registry using the default tiers.
"""

from dataclasses import dataclass

import pytest

from nftauction.core.assets import Collectible, FungibleToken
from nftauction.core.chain import Chain
from nftauction.core.oracle import PriceFeed, PriceOracle
from nftauction.core.registry import AuctionRegistry
from nftauction.crypto import generate_keypair
from nftauction.utils.units import ether, usd

AUCTION_DURATION = 3600
START_PRICE = ether(1)
ETH_PRICE = usd(2000)
TOKEN_PRICE = usd(1)


@dataclass
class Market:
    chain: Chain
    admin: bytes
    seller: bytes
    alice: bytes
    bob: bytes
    carol: bytes
    feed: PriceFeed
    token_feed: PriceFeed
    oracle: PriceOracle
    nft: Collectible
    token: FungibleToken
    registry: AuctionRegistry

    def list_asset(self, start_price: int = START_PRICE, duration: int = AUCTION_DURATION):
        """Mint a token to the seller and open a native auction for it."""
        token_id = self.nft.mint(self.admin, self.seller)
        self.nft.approve(self.seller, self.registry.address, token_id)
        address = self.registry.create_auction(
            self.seller, duration, start_price, self.nft.address, token_id
        )
        return self.chain.contract_at(address), token_id

    def list_asset_for_token(self, start_price: int = ether(100), duration: int = AUCTION_DURATION):
        """Mint a token to the seller and open a token-denominated auction for it."""
        token_id = self.nft.mint(self.admin, self.seller)
        self.nft.approve(self.seller, self.registry.address, token_id)
        address = self.registry.create_auction_with_token(
            self.seller, duration, start_price, self.nft.address, token_id, self.token.address
        )
        return self.chain.contract_at(address), token_id


@pytest.fixture
def market():
    """A funded marketplace with ETH at $2000 and the test token at $1."""
    chain = Chain()
    admin, seller, alice, bob, carol = (generate_keypair().address for _ in range(5))

    for account in (alice, bob, carol):
        chain.mint_native(account, ether(10))

    feed = PriceFeed(chain, admin, description="ETH / USD")
    feed.set_latest_answer(admin, ETH_PRICE)
    token_feed = PriceFeed(chain, admin, description="TEST / USD")
    token_feed.set_latest_answer(admin, TOKEN_PRICE)

    oracle = PriceOracle(chain, admin, native_feed=feed.address)
    token = FungibleToken(chain, admin, "TestToken", "TEST", 18)
    oracle.set_feed(admin, token.address, token_feed.address)
    for account in (alice, bob, carol):
        token.mint(admin, account, ether(1000))

    nft = Collectible(chain, admin, "TestNFT", "TNFT")
    registry = AuctionRegistry(chain, admin, admin=admin, price_oracle=oracle.address)

    return Market(
        chain=chain,
        admin=admin,
        seller=seller,
        alice=alice,
        bob=bob,
        carol=carol,
        feed=feed,
        token_feed=token_feed,
        oracle=oracle,
        nft=nft,
        token=token,
        registry=registry,
    )
