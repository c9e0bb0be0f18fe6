"""
Formatting and lookup tables shared by every generated document.

All money goes through format_currency and all dates through format_date so
the same input always renders to the same text.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from src.core.config import settings

Color = tuple[int, int, int]

COLORS: dict[str, Color] = {
    "primary": (37, 99, 235),
    "success": (16, 185, 129),
    "dark": (15, 23, 42),
    "muted": (100, 116, 139),
    "light": (241, 245, 249),
    "white": (255, 255, 255),
    "border": (226, 232, 240),
    "warning": (245, 158, 11),
    "danger": (239, 68, 68),
    "stripe": (248, 250, 252),
    "paid_card": (236, 253, 245),
    "balance_card": (254, 242, 242),
    "amount_box": (240, 253, 244),
}

FEE_TYPE_COLORS: dict[str, Color] = {
    "tuition": (37, 99, 235),
    "exam": (124, 58, 237),
    "transport": (5, 150, 105),
    "fine": (239, 68, 68),
    "library": (217, 119, 6),
    "lab": (220, 38, 38),
    "admission": (8, 145, 178),
    "sports": (202, 138, 4),
    "other": (107, 114, 128),
}

FEE_TYPE_LABELS: dict[str, str] = {
    "tuition": "Tuition Fee",
    "exam": "Exam Fee",
    "transport": "Transport Fee",
    "fine": "Fine",
    "library": "Library Fee",
    "lab": "Lab Fee",
    "admission": "Admission Fee",
    "sports": "Sports Fee",
    "other": "Other Fee",
}

STATUS_LABELS: dict[str, str] = {
    "paid": "Paid",
    "unpaid": "Unpaid",
    "partial": "Partial",
    "overdue": "Overdue",
}

STATUS_COLORS: dict[str, Color] = {
    "paid": COLORS["success"],
    "partial": COLORS["warning"],
    "overdue": COLORS["danger"],
}


def fee_type_label(fee_type) -> str:
    key = str(fee_type or "other")
    return FEE_TYPE_LABELS.get(key, key)


def status_label(status) -> str:
    key = str(status or "")
    return STATUS_LABELS.get(key, key or "Unknown")


def fee_type_color(fee_type) -> Color:
    return FEE_TYPE_COLORS.get(str(fee_type or "other"), FEE_TYPE_COLORS["other"])


def tint(color: Color, amount: int = 190) -> Color:
    """Lighten a colour by adding amount to each channel (capped at 255)."""
    return tuple(min(255, channel + amount) for channel in color)


def status_pill_colors(status) -> tuple[Color, Color]:
    """(fill, text) for a status cell; unknown and unpaid statuses are muted."""
    fill = STATUS_COLORS.get(str(status or ""), COLORS["muted"])
    return fill, COLORS["white"]


def hex_color(color: Color) -> str:
    return "#{:02x}{:02x}{:02x}".format(*color)


def _group_digits(digits: str, grouping: str) -> str:
    if grouping == "western" or len(digits) <= 3:
        groups = []
        while digits:
            groups.insert(0, digits[-3:])
            digits = digits[:-3]
        return ",".join(groups)

    # Indian: last three digits, then pairs (12,34,567)
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while head:
        groups.insert(0, head[-2:])
        head = head[:-2]
    return ",".join(groups + [tail])


def format_currency(
    amount,
    symbol: str | None = None,
    grouping: str | None = None,
) -> str:
    """
    Format a money value with the configured symbol and digit grouping.

    Whole amounts have no decimals; anything else shows two places.

        >>> format_currency(Decimal("1234567"), symbol="₹", grouping="indian")
        '₹12,34,567'
        >>> format_currency(Decimal("1500.5"), symbol="₹", grouping="western")
        '₹1,500.50'
    """
    symbol = settings.currency_symbol if symbol is None else symbol
    grouping = grouping or settings.currency_grouping

    value = amount if isinstance(amount, Decimal) else Decimal(str(amount or 0))
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    value = abs(value)

    whole, _, fraction = f"{value:.2f}".partition(".")
    text = _group_digits(whole, grouping)
    if fraction != "00":
        text = f"{text}.{fraction}"
    return f"{sign}{symbol}{text}"


def format_date(value: date | datetime | None, empty: str = "N/A") -> str:
    """Day-month-year (dd/mm/yyyy)."""
    if value is None:
        return empty
    return value.strftime("%d/%m/%Y")


def format_datetime(value: datetime) -> str:
    return value.strftime("%d/%m/%Y %H:%M")
