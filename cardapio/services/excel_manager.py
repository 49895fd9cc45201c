"""
Excel File Manager with Concurrency Control

Appends stored orders to a single spreadsheet the restaurant can open
offline. Several Celery processes may export at once, so every write
happens under a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from cardapio.core.config import get_settings
from cardapio.services.pricing import format_price

settings = get_settings()
logger = logging.getLogger(__name__)


def summarize_items(items: list[dict[str, Any]]) -> str:
    """One spreadsheet cell per order: "2x X Burger (Sem Cebola) [+1x Bacon]; ..."."""
    parts = []
    for item in items or []:
        text = f"{item.get('quantity', 1)}x {item.get('product_name', '')}"
        if item.get("notes"):
            text += f" ({item['notes']})"
        extras = item.get("extras_json") or []
        if extras:
            text += " [" + ", ".join(f"+{e.get('qty', 1)}x {e.get('name', '')}" for e in extras) + "]"
        parts.append(text)
    return "; ".join(parts)


class ExcelManager:
    """Thread-safe Excel file manager."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "restaurant_id",
        "customer_name",
        "customer_phone",
        "order_type",
        "delivery_address",
        "payment_method",
        "change_for",
        "items",
        "total_amount",
        "total_label",
        "status",
        "exported_at",
    ]

    @classmethod
    def data_dir(cls) -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def orders_file(cls) -> Path:
        return cls.data_dir() / get_settings().excel_filename

    @classmethod
    def _lock_file(cls) -> Path:
        orders_file = cls.orders_file()
        return orders_file.parent / f"{orders_file.name}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def build_row(cls, order_data: dict[str, Any], export_time: Optional[str] = None) -> dict[str, Any]:
        export_time = export_time or datetime.now().isoformat()
        total = float(order_data.get("total_amount") or 0)
        return {
            "order_id": order_data.get("id"),
            "date_time": order_data.get("created_at", export_time),
            "restaurant_id": order_data.get("restaurant_id"),
            "customer_name": order_data.get("customer_name"),
            "customer_phone": order_data.get("customer_phone"),
            "order_type": order_data.get("order_type"),
            "delivery_address": order_data.get("delivery_address"),
            "payment_method": order_data.get("payment_method"),
            "change_for": order_data.get("change_for"),
            "items": summarize_items(order_data.get("items", [])),
            "total_amount": total,
            "total_label": format_price(total),
            "status": order_data.get("status"),
            "exported_at": export_time,
        }

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append an order to the Excel file with file locking."""
        cls._ensure_data_dir()

        order_id = order_data.get("id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls._lock_file()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                orders_file = cls.orders_file()
                df = cls._load_or_create_df(orders_file)

                export_time = datetime.now().isoformat()
                new_row = cls.build_row(order_data, export_time)

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(orders_file), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all exported orders."""
        orders_file = cls.orders_file()
        if not orders_file.exists():
            return []

        try:
            df = pd.read_excel(orders_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading orders: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the Excel file and its lock."""
        try:
            for f in [cls.orders_file(), cls._lock_file()]:
                if f.exists():
                    f.unlink()
            logger.info("Excel export cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing files: {e}")
            return False
