"""Mech REPL: interactive and batch client for a Mech runtime core."""
