"""User management service: users table, repository/service core and FastAPI adapter."""
