"""Excel XLSX exporter for the product feed."""

from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from src.models import ProductRecord

FEED_COLUMNS = [
    "id",
    "title",
    "description",
    "link",
    "condition",
    "price",
    "availability",
    "adult",
    "image link",
    "mpn",
    "brand",
    "product types",
]
SHEET_NAME = "Feed"
MAX_COLUMN_WIDTH = 60


def export_feed_to_excel(
    records: list[ProductRecord], output_path: str = "output/feed.xlsx"
) -> Path:
    """Write feed records to an Excel sheet, one row per product.

    Args:
        records: Finished product records, in output order
        output_path: Path to the XLSX file to create

    Returns:
        Path to the written file
    """
    if not records:
        logger.warning("No products to export, writing header-only feed")

    rows = [_record_to_row(record) for record in records]
    df = pd.DataFrame(rows, columns=FEED_COLUMNS)

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_file, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)

        worksheet = writer.sheets[SHEET_NAME]
        for column in worksheet.columns:
            max_length = max(len(str(cell.value or "")) for cell in column)
            column_letter = column[0].column_letter
            worksheet.column_dimensions[column_letter].width = min(
                max_length + 2, MAX_COLUMN_WIDTH
            )

    logger.info(f"Exported {len(records)} products to {output_file}")
    return output_file


def _record_to_row(record: ProductRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "description": record.description,
        "link": record.link,
        "condition": record.condition,
        "price": record.price,
        "availability": record.availability,
        "adult": record.adult,
        "image link": record.image_link,
        "mpn": record.mpn,
        "brand": record.brand,
        "product types": record.product_types,
    }
