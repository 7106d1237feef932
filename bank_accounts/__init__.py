"""
Bank Account Service

Account management for banking customers: account creation gated by
customer classification and eligibility rules, with per-variant validation
and document-store persistence.
"""

__version__ = "1.0.0"
