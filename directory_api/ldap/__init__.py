"""LDAP directory access package.

Public API:
    - LDAPConfig
    - LDAPConnection
    - DirectoryHandle
"""

from .models import LDAPConfig, Credential, UserAttributes, GroupAttributes
from .client import LDAPConnection
from .handle import DirectoryHandle

__all__ = [
    "LDAPConfig",
    "Credential",
    "UserAttributes",
    "GroupAttributes",
    "LDAPConnection",
    "DirectoryHandle",
]
