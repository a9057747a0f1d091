"""Tally: expense reporting API."""
