# wims/config/company.py
from __future__ import annotations

"""
Single source of truth for the WIMS company identity.

Used by bill payloads and the PDF renderer so that every printed document
carries the same header and footer.
"""

# -----------------------------
# Canonical fields
# -----------------------------
COMPANY_NAME = "WIMS Beverages Pvt Ltd"
COMPANY_TAGLINE = "Warehouse • Inventory • Sales"

# Single display line (PDF-friendly)
COMPANY_ADDRESS = "Plot 14, Industrial Area Phase II, Ludhiana, Punjab 141003"

COMPANY_EMAIL = "accounts@wims.com"

COMPANY_PHONES = ["+91-161-400-1200", "+91-98140-01200"]

# "Primary" phone for single-line places (headers/footers)
COMPANY_PHONE = COMPANY_PHONES[0]

COMPANY_GSTIN = "03AAACW1234F1Z5"
COMPANY_STATE = "Punjab"
COMPANY_STATE_CODE = "03"


COMPANY_PROFILE = {
    "name": COMPANY_NAME,
    "email": COMPANY_EMAIL,
    "phones": " / ".join(COMPANY_PHONES),
    "address": COMPANY_ADDRESS,
    "gstin": COMPANY_GSTIN,
    "state": COMPANY_STATE,
    "state_code": COMPANY_STATE_CODE,
    "tagline": COMPANY_TAGLINE,
    "phone_primary": COMPANY_PHONE,
}


def company_context() -> dict:
    """
    Company block injected into bill payloads and the PDF header.
    """
    return {
        "COMPANY_NAME": COMPANY_NAME,
        "COMPANY_TAGLINE": COMPANY_TAGLINE,
        "COMPANY_ADDRESS": COMPANY_ADDRESS,
        "COMPANY_EMAIL": COMPANY_EMAIL,
        "COMPANY_PHONE": COMPANY_PHONE,
        "COMPANY_PHONES": COMPANY_PHONES,
        "COMPANY_GSTIN": COMPANY_GSTIN,
        "COMPANY_PROFILE": COMPANY_PROFILE,
    }
