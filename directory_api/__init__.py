"""REST API for managing users and groups in an LDAP directory."""

__version__ = "1.0.0"
