"""
Core utilities shared across the portal.

This package hosts configuration helpers (env vars, paths, feature flags) and
cross-cutting adapters such as the SMTP mailer. Services and the client tier
depend on these primitives instead of reading os.environ directly.
"""
