"""Foldly: file collection links, personal workspaces and the tree engine behind them."""

__version__ = "1.0.0"
