"""
Service layer.

Each service encapsulates the business rules for one domain and talks
to SQLite directly.  Services raise ``ValueError`` (or one of the
subclasses in ``core.errors``) and leave HTTP concerns to the
endpoints.
"""
