"""Tenant dashboard summary with Redis caching and scheduled refresh."""
