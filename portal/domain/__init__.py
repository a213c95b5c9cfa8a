"""Domain records and rules shared by the client data layer and the backend."""
