"""Shared configuration, logging, database and upstream clients for the audiobook services."""
