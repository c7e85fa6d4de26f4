"""Billing platform: plan catalog, subscription lifecycle, invoices and sweeps."""
