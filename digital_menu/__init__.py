"""
                Digital Menu Ordering Backend

Establishments publish a menu, customers place orders from the public
menu, and every order is priced against the catalog and rendered into
a WhatsApp message for the establishment.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
