"""
Excel Verification Script

Checks the Excel export written by the Celery worker after a simulation.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from cardapio.services.excel_manager import ExcelManager

REQUIRED_COLUMNS = ["order_id", "customer_name", "order_type", "payment_method", "total_amount", "status"]


def verify_excel() -> bool:
    """Verify Excel file integrity after simulation."""
    excel_file = ExcelManager.orders_file()

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {excel_file}")
    print("=" * 60)

    if not excel_file.exists():
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(excel_file, engine="openpyxl")
        print("\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print("\n✅ All required columns present")

    ok = not missing
    if "order_id" in df.columns:
        duplicates = int(df["order_id"].duplicated().sum())
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate order IDs found!")
            ok = False
        else:
            print("✅ No duplicate order IDs")

    if "order_type" in df.columns:
        print("\n🛵 BY FULFILLMENT:")
        for order_type, count in df["order_type"].value_counts().items():
            print(f"   {order_type}: {count}")

    if "total_amount" in df.columns and len(df) > 0:
        total = df["total_amount"].sum()
        avg = df["total_amount"].mean()
        print("\n💰 REVENUE:")
        print(f"   Total: R$ {total:.2f}".replace(".", ","))
        print(f"   Average: R$ {avg:.2f}".replace(".", ","))

    print("\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ["order_id", "customer_name", "total_label", "status"] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
