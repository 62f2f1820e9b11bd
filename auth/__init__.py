"""auth/ -- Credentials, session tokens, and the authorization gate for SessionVault.

Layer rule: auth/ imports from core/, db/, and cache/ only.
It does NOT import from api/. api/ imports from auth/, not the other way around.
Only auth/dependencies.py imports fastapi.
"""
