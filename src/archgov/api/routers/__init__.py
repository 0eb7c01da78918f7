"""HTTP routers mounted by ``archgov.api.create_app``."""
