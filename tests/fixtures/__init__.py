"""Test fixtures for ChromiumKit tests.

- builds: fake snapshot archives, pre-populated cache folders and a
  configuration rooted in the test's temporary directory

Import fixtures in your tests using:
    from tests.fixtures.builds import build_zip_bytes, populate_build
"""

__all__ = [
    "builds",
]
