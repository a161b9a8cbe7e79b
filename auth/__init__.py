"""auth/ -- Authentication and authorization package for ElectriFind.

Credential store (passwords.py, store.py), token service (tokens.py),
access control guard (dependencies.py) and account workflows (service.py).

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/; configuration is injected by api/main.py.
api/ imports from auth/, not the other way around.
"""
