"""
Projects Module

Research project listings owned by professors: creation, public search,
lifecycle (DRAFT -> PUBLISHED -> CLOSED), visibility, and the daily
deadline sweep.
"""
