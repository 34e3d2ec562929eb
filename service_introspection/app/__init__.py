"""
Introspection Service package for the 254Carbon Access Layer.

The service is the target of a reverse proxy's authorization subrequest. It
asks the identity provider (Keycloak) whether the caller's bearer token is
active and hands the claims back as `Token-*` headers.

- app.main: Application entrypoint that wires routes and lifecycle.
- app.introspection: The adapter, its request context and claim mapping.
- app.adapters: Named subrequest routes reaching the provider over HTTP.

Design notes:
- Module import must not perform network calls; all IO happens in route
  handlers.
- Stateless: nothing survives a request apart from metrics counters.
"""
