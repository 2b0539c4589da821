from collections.abc import Iterable
from typing import Optional

from models import TransactionType

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}

DEFAULT_COLOR = "#8b5cf6"
INCOME_COLOR = "#00C853"

PASTEL_COLORS = (
    "#FF6B6B",
    "#4ECDC4",
    "#FFE66D",
    "#FF8B94",
    "#A8E6CF",
    "#FFD3B6",
    "#FFAAA5",
    "#AA96DA",
    "#FCBAD3",
    "#A1DE93",
    "#F38181",
)

TAILWIND_TO_HEX = {
    "bg-blue-400": "#60a5fa",
    "bg-blue-500": "#3b82f6",
    "bg-blue-600": "#2563eb",
    "bg-green-400": "#4ade80",
    "bg-green-500": "#10b981",
    "bg-green-600": "#059669",
    "bg-orange-400": "#fb923c",
    "bg-orange-500": "#f97316",
    "bg-orange-600": "#ea580c",
    "bg-purple-400": "#c084fc",
    "bg-purple-500": "#a855f7",
    "bg-purple-600": "#9333ea",
    "bg-pink-400": "#f472b6",
    "bg-pink-500": "#ec4899",
    "bg-pink-600": "#db2777",
    "bg-yellow-400": "#facc15",
    "bg-yellow-500": "#eab308",
    "bg-yellow-600": "#ca8a04",
    "bg-red-400": "#f87171",
    "bg-red-500": "#ef4444",
    "bg-red-600": "#dc2626",
    "bg-cyan-400": "#22d3ee",
    "bg-cyan-500": "#06b6d4",
    "bg-cyan-600": "#0891b2",
    "bg-indigo-400": "#818cf8",
    "bg-indigo-500": "#6366f1",
    "bg-indigo-600": "#4f46e5",
    "bg-gray-400": "#9ca3af",
    "bg-gray-500": "#6b7280",
    "bg-gray-600": "#4b5563",
}


def format_currency(cents: int, currency: str = "USD") -> str:
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    amount = f"{abs(cents) / 100:,.2f}"
    text = f"{symbol}{amount}" if symbol else f"{code} {amount}"
    return f"-{text}" if cents < 0 else text


def color_to_hex(color: Optional[str]) -> str:
    """Hex colours pass through; Tailwind classes map to hex; anything else gets the default."""
    if not color:
        return DEFAULT_COLOR
    if color.startswith("#"):
        return color
    return TAILWIND_TO_HEX.get(color, DEFAULT_COLOR)


def default_category_color(
    category_type: TransactionType, used_colors: Iterable[Optional[str]] = ()
) -> str:
    if category_type == TransactionType.income:
        return INCOME_COLOR
    used = {c.upper() for c in used_colors if c}
    for color in PASTEL_COLORS:
        if color.upper() not in used:
            return color
    return PASTEL_COLORS[0]
