"""
insertbench

Sustained concurrent INSERT load generator for clustered SQL stores that
speak the PostgreSQL wire protocol.
"""

__version__ = "0.1.0"
