"""auth/ -- Identity provider client, user record store, token verification
and account orchestration for authgate.

Layer rule: auth/ imports only core/ + stdlib + third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
