"""HTTP routes for the vault auth application."""

from . import ui
