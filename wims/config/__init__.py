# wims/config/__init__.py
from __future__ import annotations

"""
wims.config holds static identity data.

- Company identity lives in: wims.config.company
- Runtime settings live in: wims.settings
"""

from .company import company_context

__all__ = ["company_context"]
