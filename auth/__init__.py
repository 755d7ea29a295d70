"""auth/ -- Authentication and authorization package for NoteSafe.

Credential store, password hashing, token service, auth service, and the
identity resolver that scopes note access to the caller.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/ or notes/.
api/ and notes/ import from auth/, not the other way around.
"""
