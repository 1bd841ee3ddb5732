"""Shared pydantic field types."""

import re
from typing import Annotated

from pydantic import AfterValidator


_MSISDN = re.compile(r"^254[17]\d{8}$")


def normalize_msisdn(value: str) -> str:
    """Return a Kenyan mobile number in the `2547XXXXXXXX` form M-Pesa expects.

    Accepts `07…`/`01…`, `+254…`, `254…` and bare `7…`/`1…`, ignoring spaces
    and dashes.
    """

    digits = re.sub(r"[\s-]", "", value)
    if digits.startswith("+"):
        digits = digits[1:]
    if digits.startswith("0"):
        digits = "254" + digits[1:]
    elif len(digits) == 9 and digits[0] in "17":
        digits = "254" + digits
    if not _MSISDN.match(digits):
        raise ValueError(f"not a valid M-Pesa phone number: {value!r}")
    return digits


Msisdn = Annotated[str, AfterValidator(normalize_msisdn)]
