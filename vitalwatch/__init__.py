"""Vital-sign monitoring core.

Turns a stream of physiological readings into deduplicated alerts, a composite
health insight and prioritized recommendations, one subject at a time.
"""
