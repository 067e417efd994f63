"""Handover: order lifecycle and redemption service."""
