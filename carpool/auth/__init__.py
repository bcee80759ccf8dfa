"""Authentication: identity provider, session principal and admission gate."""
