"""
Tests for the collectible and fungible token collaborators.
"""

import pytest

from nftauction.core.access import OPERATOR_ROLE
from nftauction.core.errors import AssetTransferError, InvalidParameter, Unauthorized
from nftauction.utils.validation import NULL_ADDRESS


class TestCollectible:
    """Tests for the non-fungible asset contract."""

    def test_mint_sequential_ids(self, market):
        first = market.nft.mint(market.admin, market.seller)
        second = market.nft.mint(market.admin, market.alice)

        assert (first, second) == (1, 2)
        assert market.nft.owner_of(first) == market.seller
        assert market.nft.balance_of(market.alice) == 1
        assert market.chain.events("TokenMinted")[-1]["token_id"] == 2

    def test_mint_requires_operator(self, market):
        with pytest.raises(Unauthorized):
            market.nft.mint(market.alice, market.alice)

        market.nft.grant_role(market.admin, OPERATOR_ROLE, market.alice)
        assert market.nft.mint(market.alice, market.alice) == 1

    def test_mint_to_null(self, market):
        with pytest.raises(InvalidParameter):
            market.nft.mint(market.admin, NULL_ADDRESS)

    def test_unknown_token(self, market):
        assert not market.nft.exists(42)
        with pytest.raises(AssetTransferError):
            market.nft.owner_of(42)

    def test_transfer_by_owner(self, market):
        token_id = market.nft.mint(market.admin, market.seller)

        market.nft.transfer_from(market.seller, market.seller, market.bob, token_id)

        assert market.nft.owner_of(token_id) == market.bob

    def test_transfer_with_approval_clears_it(self, market):
        token_id = market.nft.mint(market.admin, market.seller)
        market.nft.approve(market.seller, market.alice, token_id)
        assert market.nft.get_approved(token_id) == market.alice

        market.nft.transfer_from(market.alice, market.seller, market.alice, token_id)

        assert market.nft.owner_of(token_id) == market.alice
        assert market.nft.get_approved(token_id) == NULL_ADDRESS

    def test_operator_for_all(self, market):
        first = market.nft.mint(market.admin, market.seller)
        second = market.nft.mint(market.admin, market.seller)
        market.nft.set_approval_for_all(market.seller, market.carol, True)

        market.nft.transfer_from(market.carol, market.seller, market.carol, first)
        market.nft.set_approval_for_all(market.seller, market.carol, False)

        with pytest.raises(AssetTransferError):
            market.nft.transfer_from(market.carol, market.seller, market.carol, second)

    def test_unauthorized_transfer(self, market):
        token_id = market.nft.mint(market.admin, market.seller)

        with pytest.raises(AssetTransferError):
            market.nft.transfer_from(market.bob, market.seller, market.bob, token_id)
        with pytest.raises(AssetTransferError):
            market.nft.approve(market.bob, market.bob, token_id)

    def test_wrong_sender_or_null_recipient(self, market):
        token_id = market.nft.mint(market.admin, market.seller)

        with pytest.raises(AssetTransferError):
            market.nft.transfer_from(market.seller, market.alice, market.bob, token_id)
        with pytest.raises(AssetTransferError):
            market.nft.transfer_from(market.seller, market.seller, NULL_ADDRESS, token_id)


class TestFungibleToken:
    """Tests for the payment token contract."""

    def test_mint_owner_only(self, market):
        with pytest.raises(Unauthorized):
            market.token.mint(market.alice, market.alice, 1)

    def test_transfer(self, market):
        assert market.token.transfer(market.alice, market.bob, 100)
        assert market.token.balance_of(market.bob) == 1000 * 10**18 + 100

    def test_transfer_over_balance_returns_false(self, market):
        balance = market.token.balance_of(market.alice)

        assert market.token.transfer(market.alice, market.bob, balance + 1) is False
        assert market.token.balance_of(market.alice) == balance

    def test_transfer_from_consumes_allowance(self, market):
        market.token.approve(market.alice, market.carol, 300)

        assert market.token.transfer_from(market.carol, market.alice, market.carol, 200)
        assert market.token.allowance(market.alice, market.carol) == 100
        assert market.token.transfer_from(market.carol, market.alice, market.carol, 200) is False
        assert market.token.allowance(market.alice, market.carol) == 100

    def test_transfer_to_null_returns_false(self, market):
        assert market.token.transfer(market.alice, NULL_ADDRESS, 1) is False
