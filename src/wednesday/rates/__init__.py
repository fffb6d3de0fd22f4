"""Price fetching, asset table and trend detection.

Submodules are imported directly (``wednesday.rates.trend`` etc.) because
the cache package depends on ``wednesday.rates.models``.
"""
