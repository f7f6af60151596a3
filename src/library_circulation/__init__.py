"""Library circulation engine.

Copies, loans, reservations and fines over a single SQL store, with a thin
MCP server on top. The engine lives in ``library_circulation.circulation``;
``library_circulation.server`` wires it to FastMCP.
"""

__version__ = "0.1.0"
