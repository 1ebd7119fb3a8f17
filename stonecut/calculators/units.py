"""
Unit conversion helpers — centimeters and meters.

Never raise: missing, non-numeric or non-positive input yields 0.
"""


def _number(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (ValueError, TypeError):
        return 0.0


def convert_length(value, from_unit: str, to_unit: str) -> float:
    """Convert a length between 'cm' and 'm'. Unknown units pass through."""
    value = _number(value)
    if from_unit == to_unit:
        return value
    if from_unit == "m" and to_unit == "cm":
        return value * 100
    if from_unit == "cm" and to_unit == "m":
        return value / 100
    return value


def convert_width(value, from_unit: str, to_unit: str) -> float:
    return convert_length(value, from_unit, to_unit)


def to_meters(value, unit: str) -> float:
    value = _number(value)
    if value <= 0:
        return 0.0
    return value if unit == "m" else value / 100


def convert_meters_to_unit(value, unit: str) -> float:
    value = _number(value)
    if value <= 0:
        return 0.0
    return value if unit == "m" else value * 100


def calculate_square_meters(length, width, length_unit: str, width_unit: str,
                            quantity: float = 1) -> float:
    """Area in m² of `quantity` pieces of length × width."""
    length_cm = convert_length(length, length_unit, "cm")
    width_cm = convert_length(width, width_unit, "cm")
    return (length_cm * width_cm * _number(quantity)) / 10000


# --- Draft length helpers ---

def get_standard_length_meters(draft) -> float:
    """Standard (catalog) length of a draft in meters, or 0."""
    value = draft.standard_length_value
    if value and value > 0:
        unit = draft.standard_length_unit or draft.length_unit or "m"
        return to_meters(value, unit)
    return 0.0


def get_actual_length_meters(draft) -> float:
    """Entered length, falling back to the standard length, then 0."""
    manual = to_meters(draft.length_value or 0, draft.length_unit or "cm")
    if manual > 0:
        return manual
    return get_standard_length_meters(draft)


def get_pricing_length_meters(draft) -> float:
    """Length billed for: the standard length when set, else the actual length."""
    standard = get_standard_length_meters(draft)
    actual = get_actual_length_meters(draft)
    if standard > 0:
        if actual > 0 and abs(standard - actual) < 0.000001:
            return actual
        return standard
    return actual
