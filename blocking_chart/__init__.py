"""Ingest blocking charts (pasted text or spreadsheets) into campaign shells."""

__version__ = "0.1.0"
