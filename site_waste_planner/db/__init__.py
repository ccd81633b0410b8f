"""
SQLite reference implementation of the planner's collaborators.

Modules
-------
connection  : get_connection() context manager.
schema      : idempotent DDL + apply_schema().
repositories: one repository per table, each satisfying a protocol from
              ``site_waste_planner.interfaces``.
"""
