"""
Token-2022 mint launcher: create a mint with on-chain metadata and issue its
initial supply in a strictly ordered, verified pipeline.
"""

__version__ = "0.1.0"
