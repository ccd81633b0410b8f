"""
Reference data loading.

Modules
-------
seed_loader: project bundle JSON → SQLite (project, streams, facilities,
             forecast items, distances, plan document).
"""
