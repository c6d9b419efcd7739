"""Integrations with the directory database, session store and mail."""
