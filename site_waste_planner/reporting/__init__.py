"""
Reporting: terminal formatting and file export of planning results.

Modules
-------
formatters: ASCII blocks for CLI output (typer.echo).
export    : CSV / JSON writers and flatteners for spreadsheets.
"""
