"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature uses: the database
handle, startup DDL, upload storage, pagination, error rendering and logging.
Feature-specific SQL and business logic stay in the feature package
(e.g. `products/`).
"""
