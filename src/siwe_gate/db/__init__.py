"""Database helpers for SIWE Gate."""
