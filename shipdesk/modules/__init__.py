"""
ShipDesk Modules
================

Feature modules for the ShipDesk console.
"""
