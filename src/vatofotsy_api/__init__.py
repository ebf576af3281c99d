"""Vatofotsy API - organizations, polls and voting."""
