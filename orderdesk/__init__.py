"""
                OrderDesk

A small order-taking backend for food ordering: customers place
orders over HTTP, staff follow them live over WebSockets and receive
Web Push notifications for every new order.

License: MIT
"""

__version__ = "1.0.0"
