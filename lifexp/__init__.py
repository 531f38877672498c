# ========================
# lifexp/__init__.py
# ========================

"""
World Life Expectancy Pipeline

Cleaning and reporting pipeline for the per-country, per-year
life expectancy dataset.
"""

__version__ = "1.0.0"
