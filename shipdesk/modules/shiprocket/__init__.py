"""
Shiprocket Module
=================

Shipment gateway for the console. Calls go through the backend's
Shiprocket proxy endpoints: create, track, cancel.
"""

from .service import ShiprocketService

__all__ = ['ShiprocketService']
