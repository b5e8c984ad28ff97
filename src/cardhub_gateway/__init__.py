"""CardHub edge gateway: sync, query, carrier webhook and push fan-out."""

__version__ = "0.1.0"
