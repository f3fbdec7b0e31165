"""
                The Mex - Ordering Backend

Order placement and real-time order tracking for The Mex restaurant.
Customers follow their order live over a WebSocket while staff move it
through the kitchen; status changes also go out by SMS.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
