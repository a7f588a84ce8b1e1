"""Ingestion layer.

This package contains the adapter that fetches the machine status feed and
turns it into normalized :class:`pylaundry.models.MachineSnapshot` objects.
"""

__all__: list[str] = []
