"""Fault-tolerant broadcast delivery."""

from wednesday.delivery.broadcast import BroadcastReport, Broadcaster

__all__ = ["BroadcastReport", "Broadcaster"]
