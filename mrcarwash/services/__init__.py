"""Billing workflows: batch service assignment and invoice generation.

Both run under a per-vehicle lock and talk to the API only through repositories.
"""
