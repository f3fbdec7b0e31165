"""
                        Services Module

Collaborators of the order tracking pipeline, each with a development
and a production implementation.

Services:
    - orders: order persistence (PostgreSQL or in-memory)
    - notifications: customer SMS (mock or Twilio)
    - status: the status transition coordinator
"""
