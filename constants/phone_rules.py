"""
Phone normalization defaults.

Each rule is (country code, local number length without trunk prefix, trunk prefix).
Taiwan mobile numbers are written locally as 09XXXXXXXX and internationally as
+886 9XXXXXXXX.
"""

DEFAULT_COUNTRY_CODE_RULES = [
    ("886", 9, "0"),
]

# Environment variables read by utils.phone_normalizer.load_phone_policy
PHONE_COUNTRY_CODES_ENV = "PHONE_COUNTRY_CODES"
PHONE_COMPARE_LAST_DIGITS_ENV = "PHONE_COMPARE_LAST_DIGITS"
