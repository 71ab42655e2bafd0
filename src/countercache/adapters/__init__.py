"""Persistence adapters for countercache."""
