# Services package init
"""
CodeSnap Backend — Services Layer
===================================

What:  Business logic between the routes (HTTP) and the database.
How:   Plain classes constructed per request by routes/dependencies.py,
       except AdminAuthenticator, which is one instance per process.

Service Inventory:
    - PasteStore: expiration-aware queries over the pastes table
    - PasteService: validation, public ids, expiry, admin gate, projection
    - AdminAuthenticator: admin password check and capability tokens
    - UploadService: CSV/XML upload validation and decoding
    - maintenance: example seeding and the periodic expiry sweeper
"""
