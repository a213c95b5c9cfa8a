"""
Server-side use cases for the portal API.

Routers call these services instead of touching the repository directly;
services translate between SQL rows and the wire records and raise
PortalServiceError for anything the client should see.
"""
