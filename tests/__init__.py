"""Test package for jmaptool.

What:
  Marks ``tests`` as a package so the wiring tests at this level import under
  a stable name, separate from the ``unit`` and ``e2e`` suites.

Invariants & Safety:
  - The file must remain side-effect free; path setup lives in ``conftest.py``.
"""
