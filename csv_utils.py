import csv
import json
import re
from datetime import date
from io import StringIO
from typing import Mapping, Sequence

from ledger import TransactionRecord

EXPORT_HEADERS = ["Date", "Description", "Category", "Wallet", "Type", "Amount"]

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
}


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^\.",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def format_amount(cents: int) -> str:
    return f"{cents / 100:.2f}"


def export_filename(fmt: str, today: date) -> str:
    return f"transactions_{today.isoformat()}.{fmt}"


def export_csv(
    transactions: Sequence[TransactionRecord],
    category_names: Mapping[int, str],
    wallet_names: Mapping[int, str],
) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for txn in transactions:
        writer.writerow(
            [
                txn.date,
                sanitize_csv_value(txn.description),
                sanitize_csv_value(category_names.get(txn.category_id, "Unknown")),
                sanitize_csv_value(wallet_names.get(txn.wallet_id, "Unknown")),
                txn.type.value,
                format_amount(txn.amount_cents),
            ]
        )
    return output.getvalue()


def export_json(transactions: Sequence[TransactionRecord]) -> str:
    rows = [
        {
            "id": txn.id,
            "wallet_id": txn.wallet_id,
            "category_id": txn.category_id,
            "type": txn.type.value,
            "amount_cents": txn.amount_cents,
            "description": txn.description,
            "date": txn.date,
            "created_at": txn.created_at.isoformat() if txn.created_at else None,
        }
        for txn in transactions
    ]
    return json.dumps(rows, indent=2)
