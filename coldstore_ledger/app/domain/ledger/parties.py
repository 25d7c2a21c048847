"""
Party keys.

A party is either a buyer (keyed by normalized name) or a farmer (keyed by
name, village and contact). Sales without a buyer and self-sales belong to
the farmer.
"""

from typing import Optional

BUYER_PREFIX = "buyer:"
FARMER_PREFIX = "farmer:"


def _norm(value: Optional[str]) -> str:
    return " ".join((value or "").split()).lower()


def buyer_key(buyer_name: str) -> str:
    return f"{BUYER_PREFIX}{_norm(buyer_name)}"


def farmer_key(farmer_name: str, village: Optional[str] = "", contact_number: Optional[str] = "") -> str:
    return f"{FARMER_PREFIX}{_norm(farmer_name)}|{_norm(village)}|{_norm(contact_number)}"


def same_buyer(left: Optional[str], right: Optional[str]) -> bool:
    return _norm(left) == _norm(right)


def sale_party_key(farmer: str, buyer_name: Optional[str], is_self_sale: bool) -> str:
    """Party that owes a sale's dues, given the sale's farmer key."""
    if is_self_sale or not _norm(buyer_name):
        return farmer
    return buyer_key(buyer_name)