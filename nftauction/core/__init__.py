"""Marketplace core: chain simulation, assets, oracle, auctions and registry"""
