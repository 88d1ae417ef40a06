"""Bulk import of phone lines and assets from Excel or CSV files.

A file is previewed into a session of validated rows, rows are edited
and revalidated one at a time, and the importable rows are committed
sequentially with progress reporting.
"""
