"""Query services, HTTP routers and application wiring."""
