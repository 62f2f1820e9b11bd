"""cache/ -- In-memory token cache. Imports only auth.models."""
