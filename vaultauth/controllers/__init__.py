"""Request controllers for the vault auth application."""

from . import authentication
