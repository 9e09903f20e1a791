"""Inventory stock monitoring and low-stock alerting."""
