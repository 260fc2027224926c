"""Core domain logic for the uptime monitoring dashboard.

This package contains the aggregation pipeline and domain models,
isolated from the HTTP API so they can be tested and reasoned about directly.
"""
