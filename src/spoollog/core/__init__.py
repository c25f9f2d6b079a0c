"""Core pipeline of the spool log sink."""
