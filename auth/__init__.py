"""auth/ -- Credential authentication and session identity for DevDash.

Layer rule: auth/ imports only stdlib + third-party libraries (fastapi only
in dependencies.py). It does NOT import from api/ or core/.
api/ imports from auth/, not the other way around.
"""
