"""Identity document number validators (KTP, SIM, passport)."""

import re
from typing import Callable, Dict, Optional

from complaint_desk.entities import IdentityType

_KTP = re.compile(r"^\d{16}$")
_SIM = re.compile(r"^\d{12}$")
_PASSPORT = re.compile(r"^[A-Z]\d{7}$")


def _all_same(value: str) -> bool:
    return len(set(value)) == 1


def validate_ktp(value: str) -> Optional[str]:
    """
    Validate an Indonesian resident identity card (KTP) number.

    Returns:
        Optional[str]: Error message, or None when valid
    """
    if not _KTP.match(value):
        return "KTP number must be exactly 16 digits."
    if _all_same(value):
        return "KTP number is not valid."
    return None


def validate_sim(value: str) -> Optional[str]:
    """Validate a driving licence (SIM) number: 12 digits, not all identical."""
    if not _SIM.match(value):
        return "SIM number must be exactly 12 digits."
    if _all_same(value):
        return "SIM number is not valid."
    return None


def validate_passport(value: str) -> Optional[str]:
    if not _PASSPORT.match(value):
        return "Passport number must be 1 uppercase letter followed by 7 digits."
    if value[1:] == "0000000":
        return "Passport number is not valid."
    return None


IDENTITY_VALIDATORS: Dict[IdentityType, Callable[[str], Optional[str]]] = {
    IdentityType.KTP: validate_ktp,
    IdentityType.SIM: validate_sim,
    IdentityType.PASSPORT: validate_passport,
}


def validate_identity_number(identity_type: IdentityType, value: str) -> Optional[str]:
    """Dispatch to the validator for ``identity_type``."""
    validator = IDENTITY_VALIDATORS.get(IdentityType(identity_type))
    if validator is None:
        return None
    return validator(value)
