"""
FastAPI routers grouped by collection (service providers, appliances, issues).

Each file exposes an APIRouter that app.py mounts under the /api prefix.
"""
