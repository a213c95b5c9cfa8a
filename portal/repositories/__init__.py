"""
Persistence adapters.

sql_repository backs the REST server; json_storage is the durable local
key-value store the client falls back to when the server is unreachable.
"""
