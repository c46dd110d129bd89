"""SSRF-hardened concurrent URL fetch-and-persist service."""
