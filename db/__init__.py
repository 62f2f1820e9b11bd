"""db/ -- Connection pool, transaction helper, and schema scripts.

Layer rule: db/ imports only stdlib + SQLAlchemy. It does NOT import from
api/, auth/, or cache/.
"""
