"""
Ledger Kernel - reconciliation core

Canonical money-movement types shared by every layer of the engine:
- Typed, coded exceptions
- Structured JSON logging
- Injectable clock
- Business-date parsing across mixed input formats
- Immutable ledger value types
"""

__version__ = "0.1.0"
