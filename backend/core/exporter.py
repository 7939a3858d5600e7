"""Vendor report export.

One row per vendor, in the order given (the accumulator's rating order).
"""

from datetime import date

import pandas as pd

from backend.api.schemas import Vendor

EXPORT_COLUMNS = ["Vendor Name", "Contact", "Address", "City", "Website", "Rating"]
EXPORT_FILENAME = "vendor_sourcing_report.csv"


def _rating_label(rating: float | None) -> str:
    if not rating:
        return "-"
    return f"{rating:g}/5"


def vendors_to_frame(vendors: list[Vendor]) -> pd.DataFrame:
    """Build the report table."""
    rows = [
        [
            v.name,
            v.contact or "N/A",
            v.address or "N/A",
            v.city or "N/A",
            v.website or "N/A",
            _rating_label(v.rating),
        ]
        for v in vendors
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_csv(vendors: list[Vendor], generated_on: date | None = None) -> bytes:
    """Render the vendor report as UTF-8 CSV.

    The first line is a title comment carrying the generation date.

    Args:
        vendors: Vendors in display order.
        generated_on: Report date, defaults to today.

    Returns:
        CSV document bytes.
    """
    generated_on = generated_on or date.today()
    header = f"# Vendor Sourcing Report, generated on {generated_on.isoformat()}\n"
    body = vendors_to_frame(vendors).to_csv(index=False)
    return (header + body).encode("utf-8")
