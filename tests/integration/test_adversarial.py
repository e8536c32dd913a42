"""
Adversarial tests.

Tests the marketplace against:
1. Reentrant callbacks during refunds, settlement and withdrawal
2. Collaborators that reject payments
3. Tokens that report failure instead of raising
4. Griefing bidders
"""

import pytest

from nftauction.core.assets import FungibleToken
from nftauction.core.auction import AuctionState
from nftauction.core.errors import ReentrantCall, TransferFailed
from nftauction.utils.units import ether

from tests.conftest import AUCTION_DURATION


class BlockingToken(FungibleToken):
    """Token whose transfers to blocked recipients return False."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.blocked = set()

    def _move(self, sender, to, amount):
        if to in self.blocked:
            return False
        return super()._move(sender, to, amount)


@pytest.fixture
def blocking_token(market):
    token = BlockingToken(market.chain, market.admin, "Blocking", "BLK")
    market.oracle.set_feed(market.admin, token.address, market.token_feed.address)
    for account in (market.alice, market.bob):
        token.mint(market.admin, account, ether(1000))
    return token


# =============================================================================
# Reentrancy
# =============================================================================


class TestReentrancy:
    """Callbacks that try to re-enter a running operation."""

    def test_refund_hook_rebids(self, market):
        """An outbid bidder cannot bid again from inside its own refund."""
        auction, _ = market.list_asset()
        auction.bid(market.alice, ether("1.5"))
        seen = []

        def rebid(sender, amount):
            try:
                auction.bid(market.alice, ether(3))
            except ReentrantCall as e:
                seen.append(e)
                raise

        market.chain.set_receive_hook(market.alice, rebid)

        with pytest.raises(TransferFailed) as excinfo:
            auction.bid(market.bob, ether(2))

        assert len(seen) == 1
        assert isinstance(excinfo.value.__cause__, ReentrantCall)
        assert auction.record.highest_bidder == market.alice
        assert market.chain.balance_of(market.bob) == ether(10)
        assert market.chain.balance_of(auction.address) == ether("1.5")

    def test_refund_hook_tries_to_end(self, market):
        auction, _ = market.list_asset()
        auction.bid(market.alice, ether("1.5"))
        market.chain.set_receive_hook(market.alice, lambda sender, amount: auction.end(market.alice))

        with pytest.raises(TransferFailed) as excinfo:
            auction.bid(market.bob, ether(2))
        assert isinstance(excinfo.value.__cause__, ReentrantCall)

    def test_guard_released_after_failed_bid(self, market):
        auction, _ = market.list_asset()
        auction.bid(market.alice, ether("1.5"))
        market.chain.set_receive_hook(market.alice, lambda sender, amount: auction.cancel(market.seller))

        with pytest.raises(TransferFailed):
            auction.bid(market.bob, ether(2))

        market.chain.set_receive_hook(market.alice, None)
        auction.bid(market.bob, ether(2))
        assert auction.record.highest_bidder == market.bob

    def test_seller_hook_reenters_settlement(self, market):
        """Re-entering end() from the seller payout aborts the whole settlement."""
        auction, token_id = market.list_asset()
        auction.bid(market.alice, ether(2))
        market.chain.advance_time(AUCTION_DURATION)
        market.chain.set_receive_hook(market.seller, lambda sender, amount: auction.end(market.seller))

        with pytest.raises(TransferFailed):
            auction.end(market.admin)

        assert not auction.record.ended
        assert auction.state == AuctionState.ENDABLE
        assert market.nft.owner_of(token_id) == auction.address
        assert market.chain.balance_of(auction.address) == ether(2)
        assert market.chain.events("AuctionEnded") == []

        market.chain.set_receive_hook(market.seller, None)
        assert auction.end(market.admin) == AuctionState.SETTLED

    def test_withdraw_hook_reenters(self, market):
        auction, _ = market.list_asset()
        auction.bid(market.alice, ether(2))
        market.chain.advance_time(AUCTION_DURATION)
        auction.end(market.admin)
        market.chain.set_receive_hook(
            market.admin, lambda sender, amount: market.registry.withdraw_fees(market.admin, market.admin)
        )

        with pytest.raises(TransferFailed) as excinfo:
            market.registry.withdraw_fees(market.admin, market.admin)

        assert isinstance(excinfo.value.__cause__, ReentrantCall)
        assert market.registry.fee_balance() == ether("0.05")

    def test_other_auction_callable_from_hook(self, market):
        """The guard is per auction; a refund may fund a bid elsewhere."""
        first, _ = market.list_asset()
        second, _ = market.list_asset()
        first.bid(market.alice, ether("1.5"))
        market.chain.set_receive_hook(
            market.alice, lambda sender, amount: second.bid(market.alice, amount + ether(1))
        )

        first.bid(market.bob, ether(2))

        assert first.record.highest_bidder == market.bob
        assert second.record.highest_bidder == market.alice
        assert second.record.highest_bid == ether("2.5")

    def test_failed_bid_swallowed_by_hook_leaves_no_trace(self, market):
        """A bid that fails inside a refund hook is undone even if the hook carries on."""
        first, _ = market.list_asset()
        second, _ = market.list_asset()
        second.bid(market.carol, ether("1.5"))
        market.chain.set_receive_hook(market.carol, lambda sender, amount: False)
        first.bid(market.alice, ether("1.5"))

        def bid_elsewhere(sender, amount):
            try:
                second.bid(market.alice, ether(2))
            except TransferFailed:
                pass

        market.chain.set_receive_hook(market.alice, bid_elsewhere)

        first.bid(market.bob, ether(2))

        assert first.record.highest_bidder == market.bob
        assert market.chain.balance_of(first.address) == first.record.highest_bid
        assert market.chain.balance_of(market.alice) == ether(10)

        assert second.record.highest_bidder == market.carol
        assert second.record.highest_bid == ether("1.5")
        assert market.chain.balance_of(second.address) == second.record.highest_bid
        assert market.chain.balance_of(market.carol) == ether("8.5")
        assert len(market.chain.events("BidPlaced", second.address)) == 1


# =============================================================================
# Rejected Payments
# =============================================================================


class TestRejectedPayments:
    """Collaborators refusing to receive funds."""

    def test_registry_rejects_fee(self, market):
        """A failing fee transfer rolls back the seller payout and asset transfer."""
        auction, token_id = market.list_asset()
        auction.bid(market.alice, ether(2))
        market.chain.advance_time(AUCTION_DURATION)
        market.chain.set_receive_hook(market.registry.address, lambda sender, amount: False)

        with pytest.raises(TransferFailed):
            auction.end(market.admin)

        assert market.chain.balance_of(market.seller) == 0
        assert market.nft.owner_of(token_id) == auction.address
        assert not auction.record.ended

    def test_zero_fee_skips_registry(self, market):
        """With a 0 bps rate the registry is never paid, so it cannot block."""
        market.registry.set_default_fee_rate(market.admin, 0)
        auction, token_id = market.list_asset()
        auction.bid(market.alice, ether(2))
        market.chain.advance_time(AUCTION_DURATION)
        market.chain.set_receive_hook(market.registry.address, lambda sender, amount: False)

        auction.end(market.admin)

        assert market.chain.balance_of(market.seller) == ether(2)
        assert market.nft.owner_of(token_id) == market.alice

    def test_griefing_bidder_keeps_lead(self, market):
        """A bidder refusing refunds blocks outbidding; funds stay safe."""
        auction, _ = market.list_asset()
        auction.bid(market.alice, ether("1.5"))
        market.chain.set_receive_hook(market.alice, lambda sender, amount: False)

        for bidder in (market.bob, market.carol):
            with pytest.raises(TransferFailed):
                auction.bid(bidder, ether(5))
            assert market.chain.balance_of(bidder) == ether(10)

        market.chain.advance_time(AUCTION_DURATION)
        auction.end(market.admin)
        assert market.chain.balance_of(market.seller) == ether("1.5") - ether("1.5") * 250 // 10_000


# =============================================================================
# Falsy Token Transfers
# =============================================================================


class TestFalsyTokens:
    """Tokens that return False rather than raising."""

    def _list(self, market, token):
        token_id = market.nft.mint(market.admin, market.seller)
        market.nft.approve(market.seller, market.registry.address, token_id)
        address = market.registry.create_auction_with_token(
            market.seller, AUCTION_DURATION, ether(100), market.nft.address, token_id, token.address
        )
        return market.chain.contract_at(address), token_id

    def test_failed_fee_transfer_rolls_back_settlement(self, market, blocking_token):
        auction, token_id = self._list(market, blocking_token)
        blocking_token.approve(market.alice, auction.address, ether(200))
        auction.bid_with_token(market.alice, ether(200))
        market.chain.advance_time(AUCTION_DURATION)
        blocking_token.blocked.add(market.registry.address)

        with pytest.raises(TransferFailed):
            auction.end(market.admin)

        assert blocking_token.balance_of(market.seller) == 0
        assert blocking_token.balance_of(auction.address) == ether(200)
        assert market.nft.owner_of(token_id) == auction.address
        assert not auction.record.ended

        blocking_token.blocked.clear()
        auction.end(market.admin)
        assert blocking_token.balance_of(market.seller) == ether(195)
        assert market.registry.token_fee_balance(blocking_token.address) == ether(5)

    def test_failed_refund_rejects_bid(self, market, blocking_token):
        auction, _ = self._list(market, blocking_token)
        for bidder in (market.alice, market.bob):
            blocking_token.approve(bidder, auction.address, ether(500))
        auction.bid_with_token(market.alice, ether(200))
        blocking_token.blocked.add(market.alice)

        with pytest.raises(TransferFailed):
            auction.bid_with_token(market.bob, ether(300))

        assert blocking_token.balance_of(market.bob) == ether(1000)
        assert blocking_token.allowance(market.bob, auction.address) == ether(500)
        assert auction.record.highest_bidder == market.alice

    def test_failed_withdrawal(self, market, blocking_token):
        auction, _ = self._list(market, blocking_token)
        blocking_token.approve(market.alice, auction.address, ether(200))
        auction.bid_with_token(market.alice, ether(200))
        market.chain.advance_time(AUCTION_DURATION)
        auction.end(market.admin)
        blocking_token.blocked.add(market.carol)

        with pytest.raises(TransferFailed):
            market.registry.withdraw_token_fees(market.admin, blocking_token.address, market.carol)
        assert market.registry.token_fee_balance(blocking_token.address) == ether(5)
