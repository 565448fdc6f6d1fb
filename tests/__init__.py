"""Test package for the localchat client.

Structure:
    - unit/: Individual modules in isolation
    - integration/: Generation flow against a mocked completion server
    - helpers.py: Frame builders, fake clock and recording store

Leverages pytest with pytest-check for soft assertions.
"""
