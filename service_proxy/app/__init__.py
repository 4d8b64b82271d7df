"""
Proxy Service package for the TopTex API.

The proxy forwards browser requests to the upstream commerce API, holding the
credential server-side:
- Authentication: cached bearer token renewed via /v3/authenticate
- Forwarding: JSON passthrough envelope and PDF byte relay under /v3/
- UI: static request composer served at /

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.auth: Token manager.
- app.forwarding: Path contract and the two forwarders.
"""
