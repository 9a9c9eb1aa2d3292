"""tenantauth: bearer-token authentication and RBAC core."""

__version__ = "0.1.0"
