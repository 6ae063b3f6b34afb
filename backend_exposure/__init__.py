"""
Backend Exposure: wallet exposure analysis engine for Solana addresses.

Fetches public on-chain activity through a rotating RPC pool, runs independent
privacy heuristics (funding, timing, tokens, velocity, income, net worth, P&L,
privacy hygiene, counterparties) and folds them into one explainable exposure
score per wallet.
"""

__version__ = "0.1.0"
