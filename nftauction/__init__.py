"""
NFT Auction Marketplace

An escrow auction marketplace for non-fungible assets:
- Registry that deploys one auction per listed asset
- Bids in native currency or a fungible token, with refund on outbid
- Settlement with tiered platform fees
- USD reporting through a staleness-aware price oracle
"""

__version__ = "0.1.0"
