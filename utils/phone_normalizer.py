import logging
import os
import re
import unicodedata
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from constants.phone_rules import (
    DEFAULT_COUNTRY_CODE_RULES,
    PHONE_COMPARE_LAST_DIGITS_ENV,
    PHONE_COUNTRY_CODES_ENV,
)

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


class CountryCodeRule(BaseModel):
    """Rewrites an international number to its local form."""

    country_code: str
    local_length: int = Field(gt=0)
    trunk_prefix: str = "0"

    model_config = ConfigDict(frozen=True)


def _default_rules() -> List[CountryCodeRule]:
    return [
        CountryCodeRule(country_code=code, local_length=length, trunk_prefix=trunk)
        for code, length, trunk in DEFAULT_COUNTRY_CODE_RULES
    ]


class PhonePolicy(BaseModel):
    """Configurable rules used to build the phone comparison key"""

    country_codes: List[CountryCodeRule] = Field(default_factory=_default_rules)
    # Compare only the trailing N digits when set
    compare_last_digits: Optional[int] = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)


DEFAULT_PHONE_POLICY = PhonePolicy()


def _apply_country_code(digits: str, rules: List[CountryCodeRule]) -> str:
    for rule in rules:
        if not digits.startswith(rule.country_code):
            continue
        remainder = digits[len(rule.country_code):]
        if len(remainder) == rule.local_length:
            return rule.trunk_prefix + remainder
        # +886 0912... style, trunk prefix already present
        if (
            rule.trunk_prefix
            and remainder.startswith(rule.trunk_prefix)
            and len(remainder) == rule.local_length + len(rule.trunk_prefix)
        ):
            return remainder
    return digits


def normalize_phone(phone, policy: Optional[PhonePolicy] = None) -> Optional[str]:
    """
    Convert a raw phone value into the key used to compare phone numbers.

    Non-digit characters are dropped, full-width digits are folded to ASCII and
    a recognized country code is rewritten to the local form, so
    "+886 912-345-678", "0912 345 678" and "0912345678" share one key.

    Args:
        phone: Raw phone value; anything that is not a string is converted with str()
        policy: Normalization rules (default: DEFAULT_PHONE_POLICY)

    Returns:
        Optional[str]: The canonical digit string, or None when the input has no
        digits. None never compares equal for grouping purposes.
    """
    if phone is None:
        return None
    policy = policy or DEFAULT_PHONE_POLICY

    text = unicodedata.normalize("NFKC", str(phone))
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return None

    key = _apply_country_code(digits, policy.country_codes)

    if policy.compare_last_digits and len(key) >= policy.compare_last_digits:
        key = key[-policy.compare_last_digits:]
    return key


def _parse_country_code_rules(value: str) -> List[CountryCodeRule]:
    rules = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = [part.strip() for part in chunk.split(":")]
        if len(parts) not in (2, 3) or not parts[0].isdigit():
            raise ValueError(f"Invalid country code rule: {chunk!r}")
        trunk = parts[2] if len(parts) == 3 else "0"
        rules.append(
            CountryCodeRule(country_code=parts[0], local_length=int(parts[1]), trunk_prefix=trunk)
        )
    return rules


def load_phone_policy(env: Optional[Mapping[str, str]] = None) -> PhonePolicy:
    """
    Build the phone policy from environment variables.

    PHONE_COUNTRY_CODES takes comma separated "code:local_length[:trunk]" rules,
    e.g. "886:9:0". PHONE_COMPARE_LAST_DIGITS limits comparison to the trailing
    digits. Malformed values are logged and the defaults are kept.
    """
    env = os.environ if env is None else env

    country_codes = _default_rules()
    raw_rules = env.get(PHONE_COUNTRY_CODES_ENV)
    if raw_rules:
        try:
            country_codes = _parse_country_code_rules(raw_rules)
        except ValueError as e:
            logger.warning(f"Ignoring {PHONE_COUNTRY_CODES_ENV}={raw_rules!r}: {e}")

    compare_last_digits = None
    raw_last_digits = env.get(PHONE_COMPARE_LAST_DIGITS_ENV)
    if raw_last_digits:
        try:
            compare_last_digits = int(raw_last_digits)
            if compare_last_digits <= 0:
                raise ValueError("must be positive")
        except ValueError as e:
            logger.warning(f"Ignoring {PHONE_COMPARE_LAST_DIGITS_ENV}={raw_last_digits!r}: {e}")
            compare_last_digits = None

    policy = PhonePolicy(country_codes=country_codes, compare_last_digits=compare_last_digits)
    logger.debug(f"Phone policy loaded: {policy.model_dump()}")
    return policy
