"""Roster spreadsheet import (xlsx / csv) and export helpers."""
