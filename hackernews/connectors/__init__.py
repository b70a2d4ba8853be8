"""Upstream connectors: HTTP worker, item API, scraped pages."""
