"""
                        Services Module

Business logic for the storefront and the staff order board. Backends
with more than one implementation (catalog, orders, messaging) are picked
by a cached factory from the current settings.

Services:
    - catalog: Restaurant menu reads (SQL or in-memory demo menu)
    - product_selection: Product customization wizard
    - cart: Per-session cart store
    - checkout: Three-step checkout wizard and order hand-off
    - orders: Order persistence (SQL or in-memory)
    - messaging: WhatsApp click-to-chat channel
    - order_board: Staff board columns and status moves
    - excel_manager: Thread-safe Excel operations
"""

from cardapio.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
