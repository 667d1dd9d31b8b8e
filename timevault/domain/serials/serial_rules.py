"""
Brand-specific serial number formats.

Brands are matched case-insensitively; serial numbers are matched as given,
so alphanumeric formats only accept upper-case letters.
"""
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class SerialRule:
    brand: str
    pattern: re.Pattern[str]
    format_message: str


SERIAL_RULES: dict[str, SerialRule] = {
    "rolex": SerialRule(
        brand="rolex",
        pattern=re.compile(r"^[A-Z0-9]{8}$"),
        format_message="Rolex serial numbers must be 8 alphanumeric characters (e.g., A1B2C3D4)",
    ),
    "omega": SerialRule(
        brand="omega",
        pattern=re.compile(r"^[0-9]{7,8}$"),
        format_message="Omega serial numbers must be 7-8 digits (e.g., 12345678)",
    ),
    "seiko": SerialRule(
        brand="seiko",
        pattern=re.compile(r"^[0-9]{6,7}$"),
        format_message="Seiko serial numbers must be 6-7 digits (e.g., 123456)",
    ),
    "casio": SerialRule(
        brand="casio",
        pattern=re.compile(r"^[A-Z0-9]{6,10}$"),
        format_message="Casio serial numbers must be 6-10 alphanumeric characters (e.g., ABC123)",
    ),
}


@dataclass(frozen=True)
class SerialValidationResult:
    valid: bool
    message: str


def get_supported_brands() -> list[str]:
    """Return supported brand names, capitalised for display."""
    return [brand.capitalize() for brand in SERIAL_RULES]


def validate_serial_number(brand: str | None, serial_number: str | None) -> SerialValidationResult:
    if not brand or not serial_number:
        return SerialValidationResult(False, "Brand and serial number are required")

    rule = SERIAL_RULES.get(brand.strip().lower())
    if rule is None:
        return SerialValidationResult(
            False,
            f"Unsupported brand: {brand}. "
            f"Supported brands are: {', '.join(get_supported_brands())}",
        )

    if not rule.pattern.fullmatch(serial_number):
        return SerialValidationResult(False, rule.format_message)

    return SerialValidationResult(True, "Serial number is valid")
