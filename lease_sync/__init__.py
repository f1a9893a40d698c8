"""Tenant/lease sync into GoHighLevel contacts and opportunities."""
