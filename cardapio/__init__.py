"""
                Cardápio

Digital menu, cart and WhatsApp checkout backend for restaurants,
with a staff order board and background order export.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
