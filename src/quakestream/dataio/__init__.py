"""Disk-level helpers for event history files.

- :mod:`csv_writer` formats event rows and writes files atomically.
- :mod:`file_paths` centralises where history and exports live.
"""
