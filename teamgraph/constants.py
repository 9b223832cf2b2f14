"""Reserved node and step-source identifiers."""

ID_START = "start"
ID_END = "end"
ID_SUPERVISOR = "supervisor"
ID_BIDDING = "bidding"
ID_SYSTEM = "system"

# Node names that may never be used as agent names
RESERVED_NAMES = frozenset({ID_START, ID_END, ID_SUPERVISOR, ID_BIDDING, ID_SYSTEM})

__all__ = ["ID_START", "ID_END", "ID_SUPERVISOR", "ID_BIDDING", "ID_SYSTEM", "RESERVED_NAMES"]
