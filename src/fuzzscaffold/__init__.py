"""
fuzzscaffold: account snapshots and fuzz test scaffolding for Anchor programs.
"""

__version__ = "0.1.0"
