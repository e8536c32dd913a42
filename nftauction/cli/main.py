"""
NFT Auction CLI - Command Line Interface for the auction marketplace

Main entry point for all CLI commands.
"""

import logging
from decimal import Decimal

import click

from nftauction.core.config import load_config
from nftauction.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False), help="JSON config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path):
    """NFT Auction Marketplace - escrow auctions with tiered platform fees"""
    config = load_config(config_path)

    level = logging.DEBUG if debug else getattr(logging, config.log_level)
    setup_logging(level=level, log_dir=str(config.log_dir), log_to_file=config.log_to_file, force=True)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Config Commands
# =============================================================================


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the effective configuration"""
    from nftauction.core.registry import UNREACHABLE_THRESHOLD
    from nftauction.utils.units import format_units

    config = ctx.obj["config"]
    click.echo("Marketplace Configuration")
    click.echo("-" * 40)
    click.echo(f"  Default fee rate: {config.default_fee_rate} bps")
    click.echo(f"  Staleness threshold: {config.staleness_threshold}s")
    click.echo(f"  Native decimals: {config.native_decimals}")
    click.echo("  Fee tiers:")
    for threshold, rate in config.fee_tiers:
        if threshold >= UNREACHABLE_THRESHOLD:
            bound = "above"
        else:
            bound = f"< ${format_units(threshold, config.usd_decimals)}"
        click.echo(f"    {bound}: {rate} bps")


@cli.command("fee-rate")
@click.argument("usd_amount")
@click.pass_context
def fee_rate(ctx, usd_amount):
    """Look up the fee rate for a USD amount (e.g. 999.99)"""
    from nftauction.core.chain import Chain
    from nftauction.core.oracle import PriceOracle
    from nftauction.core.registry import AuctionRegistry
    from nftauction.crypto import generate_keypair
    from nftauction.utils.units import parse_units

    config = ctx.obj["config"]
    try:
        amount = parse_units(usd_amount, config.usd_decimals)
    except (ValueError, ArithmeticError):
        raise click.BadParameter(f"not a USD amount: {usd_amount}", param_hint="USD_AMOUNT")

    chain = Chain()
    admin = generate_keypair().address
    oracle = PriceOracle(chain, admin, staleness_threshold=config.staleness_threshold)
    registry = AuctionRegistry.from_config(chain, admin, oracle.address, config)

    rate = registry.calculate_fee_rate(amount)
    click.echo(f"${usd_amount}: {rate} bps ({Decimal(rate) / 100}%)")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--eth-price", default="2000", help="Native currency price in USD")
@click.option("--oracle-down", is_flag=True, help="Run with an unavailable price feed")
@click.pass_context
def demo(ctx, eth_price, oracle_down):
    """Run a full auction lifecycle on a fresh simulated chain"""
    from nftauction.core.assets import Collectible
    from nftauction.core.chain import Chain
    from nftauction.core.oracle import PriceFeed, PriceOracle
    from nftauction.core.registry import AuctionRegistry
    from nftauction.crypto import keypair_from_seed, short
    from nftauction.utils.units import ether, format_units, usd

    config = ctx.obj["config"]

    def eth(amount: int) -> str:
        return format_units(amount, config.native_decimals)

    click.echo("=" * 60)
    click.echo("  NFT AUCTION MARKETPLACE - DEMO")
    click.echo("=" * 60)
    click.echo()

    # Setup
    click.echo("📦 Deploying contracts...")
    chain = Chain()
    admin, seller, alice, bob, carol = (
        keypair_from_seed(name).address for name in (b"admin", b"seller", b"alice", b"bob", b"carol")
    )
    for account in (alice, bob, carol):
        chain.mint_native(account, ether(10))

    feed = PriceFeed(chain, admin, description="ETH / USD")
    if not oracle_down:
        feed.set_latest_answer(admin, usd(eth_price))
    oracle = PriceOracle(chain, admin, native_feed=feed.address, staleness_threshold=config.staleness_threshold)
    registry = AuctionRegistry.from_config(chain, admin, oracle.address, config)
    nft = Collectible(chain, admin, "Demo Collectible", "DEMO")
    click.echo(f"  ✓ Registry {short(registry.address)}, oracle {short(oracle.address)}")
    click.echo()

    # Listing
    click.echo("🖼️  Seller lists token #1 (start 1.0, 1 hour)...")
    token_id = nft.mint(admin, seller)
    nft.approve(seller, registry.address, token_id)
    auction_address = registry.create_auction(seller, 3600, ether(1), nft.address, token_id)
    auction = chain.contract_at(auction_address)
    click.echo(f"  ✓ Auction {short(auction_address)}, fee rate {auction.record.fee_rate_bps} bps")
    click.echo()

    # Bidding
    click.echo("💸 Bidding...")
    for name, bidder, amount in (("Alice", alice, "1.2"), ("Bob", bob, "1.5"), ("Carol", carol, "2.0")):
        usd_value = auction.bid(bidder, ether(amount))
        click.echo(f"  ✓ {name} bids {amount} (${format_units(usd_value, config.usd_decimals)})")
    click.echo(f"  ✓ Alice refunded: {eth(chain.balance_of(alice))}")
    click.echo(f"  ✓ Bob refunded: {eth(chain.balance_of(bob))}")
    click.echo()

    # Settlement
    click.echo("⚖️  Settling after the window closes...")
    chain.advance_time(3600)
    state = registry.end_auction(admin, 0)
    ended = chain.events("AuctionEnded", auction_address)[-1]
    click.echo(f"  ✓ Outcome: {state.name}")
    click.echo(f"  ✓ Token #{token_id} owner is Carol: {nft.owner_of(token_id) == carol}")
    click.echo(f"  ✓ Seller received: {eth(chain.balance_of(seller))}")
    click.echo(f"  ✓ Platform fee: {eth(ended['platform_fee'])}")
    click.echo()

    click.echo("📊 Final Statistics:")
    click.echo(f"  Registry: {registry.stats()}")
    click.echo(f"  Chain: {chain.stats()}")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
