"""HTTP API for SIWE Gate."""
