"""
Server Info - runtime telemetry aggregator

Collects process, session, socket and database observer metrics from
independent info sections and serves them as JSON:
- CPU usage normalized per wall-clock second
- Event loop delay from a drift-based probe
- Per-category counters flattened to plain objects
- Machine-readable metric descriptions
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
