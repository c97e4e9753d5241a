"""SafeTrade.

Backend service for a peer-to-peer motorcycle marketplace. Buyers and sellers
meet through verified listings, screened in-app messaging and "safe zone"
meeting places.

Core subpackages
----------------

- ``safetrade.core``:

  - Logging configuration.
  - The database layer: SQLModel entities, repositories, engine and session
    management.
  - I/O schemas shared by the API.

- ``safetrade.server``:

  - The FastAPI application, settings, exception handlers and middleware.
  - Routers per resource (listings, favorites, messaging, safe zones,
    meetings, deal agreements, verification).
  - Domain services (VIN decoding, fraud analysis, identity heuristics,
    phone codes, meeting scheduling, deal agreements, remote auth).
"""

__version__ = "1.0.0"
