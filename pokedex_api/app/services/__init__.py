"""
Service layer.

Each service encapsulates the business logic for one domain (users,
pokemons) and talks to the SQLite store through ``core.db``.  API
handlers call services and never issue SQL themselves.
"""
